"""
ClinicVoice - Twilio to OpenAI Realtime API Call Bridge

This application answers inbound phone calls for clinics with an AI receptionist.
Each call's Twilio media stream is bridged to its own OpenAI Realtime conversation,
personalised for the clinic that owns the dialed number, and the assistant can
book appointments into the clinic's schedule while the caller is on the line.

Architecture Overview:
- FastAPI server exposing the Twilio voice webhook and the media-stream WebSocket
- One CallSession per call, owning the telephony leg and the AI leg
- A single event inbox per session, so both legs and booking results are
  processed strictly in order
- Pluggable tenant and scheduling stores (SQLAlchemy or in-memory)

Key Components:
- bot: Call session state machine, leg interfaces and the OpenAI Realtime leg
- config: Application-wide constants, settings and logging setup
- db: SQLAlchemy models and SQL-backed stores
- handlers: Twilio voice webhook and the Twilio media stream leg
- models: Protocol schemas, internal events, tenant and booking value objects
- services: Tenant resolution, booking execution and in-memory stores
- websocket_manager: Creates and runs a session for each media stream connection

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - DATABASE_URL: Optional SQL database (in-memory stores otherwise)
   - TENANTS_FILE: Optional YAML file seeding the in-memory tenant store
   - PUBLIC_HOST: Public host name Twilio uses to reach this server
   - TWILIO_AUTH_TOKEN: Optional, enables webhook signature validation

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio phone number's voice webhook at:
   - https://your-server/voice/webhook?clinicId=<clinic id>
"""
