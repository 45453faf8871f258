"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol event names, defaults and spoken text
so both legs of the bridge stay consistent.
"""

# Logger name used throughout the application
LOGGER_NAME = "clinicvoice"

# Default OpenAI model and endpoint for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-10-01"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_VOICE = "alloy"

# Audio format shared by both legs (opaque to the bridge)
AUDIO_FORMAT_G711_ALAW = "g711_alaw"
AUDIO_FORMAT_G711_ULAW = "g711_ulaw"
AUDIO_FORMAT_PCM16 = "pcm16"
SUPPORTED_AUDIO_FORMATS = [
    AUDIO_FORMAT_G711_ALAW,
    AUDIO_FORMAT_G711_ULAW,
    AUDIO_FORMAT_PCM16,
]

# Twilio media stream event tags
TWILIO_EVENT_CONNECTED = "connected"
TWILIO_EVENT_START = "start"
TWILIO_EVENT_MEDIA = "media"
TWILIO_EVENT_STOP = "stop"
TWILIO_EVENT_MARK = "mark"
TWILIO_EVENT_DTMF = "dtmf"

# OpenAI Realtime client events
REALTIME_SESSION_UPDATE = "session.update"
REALTIME_AUDIO_APPEND = "input_audio_buffer.append"
REALTIME_AUDIO_COMMIT = "input_audio_buffer.commit"
REALTIME_RESPONSE_CREATE = "response.create"
REALTIME_ITEM_CREATE = "conversation.item.create"

# OpenAI Realtime server events
REALTIME_AUDIO_DELTA = "response.audio.delta"
REALTIME_FUNCTION_CALL_DONE = "response.function_call_arguments.done"
REALTIME_RESPONSE_DONE = "response.done"
REALTIME_ERROR = "error"

# Booking tool
BOOKING_TOOL_NAME = "create_booking"
DEFAULT_APPOINTMENT_TYPE = "General Consultation"
APPOINTMENT_STATUS_SCHEDULED = "scheduled"

# Booking failure reasons
BOOKING_ERROR_VALIDATION = "validation"
BOOKING_ERROR_PERSISTENCE = "persistence"
BOOKING_ERROR_NO_TENANT = "no_tenant"

# Generic tenant fallbacks
GENERIC_DISPLAY_NAME = "the clinic"
GENERIC_CALLBACK_NUMBER = "our main number"

INSTRUCTIONS_TEMPLATE = (
    "You are ClinicVoice, a friendly UK receptionist for {name}. "
    "Greet callers warmly, gather their name, contact details, and reason for calling. "
    "Help them book appointments using available time slots. "
    "If you can book an appointment, use the create_booking tool. "
    "Maintain patient confidentiality and be helpful but professional. "
    "For emergencies, advise calling 999 immediately. "
    "Our phone number is {phone}."
)
CUSTOM_INSTRUCTIONS_TEMPLATE = "You are the receptionist for {name}. {instructions}"

# Spoken text
TENANT_GREETING_TEMPLATE = (
    "Hello! Thank you for calling {name}. "
    "Our AI assistant will help you with appointments and inquiries."
)
GENERIC_GREETING = (
    "Thank you for calling. Please hold while we connect you to our AI assistant."
)
TECHNICAL_DIFFICULTIES_MESSAGE = (
    "We're experiencing technical difficulties. Please try calling again."
)
APOLOGY_MESSAGE = (
    "We're sorry, our assistant is unavailable right now. Please call back later."
)

# TwiML voice settings
TWIML_VOICE = "alice"
TWIML_LANGUAGE = "en-GB"
STREAM_NAME = "clinicvoice-stream"

# HTTP / WebSocket paths
WEBHOOK_PATH = "/voice/webhook"
MEDIA_STREAM_PATH = "/voice/media-stream"
ROUTING_KEY_PARAM = "clinicId"
