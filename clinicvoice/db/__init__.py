"""SQLAlchemy persistence for tenants and appointments."""
