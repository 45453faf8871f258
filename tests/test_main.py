import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock

from clinicvoice.config.settings import BridgeSettings
from clinicvoice.db.stores import SqlSchedulingStore, SqlTenantStore
from clinicvoice.main import app, build_stores, websocket_manager
from clinicvoice.services.stores import InMemorySchedulingStore, InMemoryTenantStore

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["openai_api_key_configured"], bool)
    assert response_json["active_sessions"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "ClinicVoice Call Bridge"
    assert response_json["version"] == "1.0.0"
    assert "/voice/webhook" in response_json["endpoints"]
    assert "/voice/media-stream" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


def test_routes_registered():
    route_paths = [route.path for route in app.routes]
    assert "/voice/webhook" in route_paths
    assert "/voice/media-stream" in route_paths
    assert "/health" in route_paths
    assert "/" in route_paths


def test_websocket_manager_initialization():
    """Test that the media stream manager is wired up"""
    assert websocket_manager.resolver is not None
    assert websocket_manager.executor is not None
    assert len(websocket_manager.registry) == 0


@pytest.mark.asyncio
async def test_media_stream_endpoint_delegates_to_manager():
    """Test that the websocket endpoint calls the handle_websocket method"""
    with patch("clinicvoice.websocket_manager.MediaStreamManager.handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/voice/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_build_in_memory_stores(tmp_path):
    path = tmp_path / "tenants.yaml"
    path.write_text("tenants:\n  - id: clinic-1\n    name: Riverside Clinic\n")

    tenant_store, scheduling_store, engine = build_stores(BridgeSettings(tenants_file=str(path)))

    assert isinstance(tenant_store, InMemoryTenantStore)
    assert isinstance(scheduling_store, InMemorySchedulingStore)
    assert engine is None


@pytest.mark.asyncio
async def test_build_sql_stores():
    tenant_store, scheduling_store, engine = build_stores(
        BridgeSettings(database_url="sqlite:///:memory:")
    )

    assert isinstance(tenant_store, SqlTenantStore)
    assert isinstance(scheduling_store, SqlSchedulingStore)
    assert engine.url.drivername == "sqlite+aiosqlite"
    await engine.dispose()
