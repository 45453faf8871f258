"""
Handlers module for the Twilio side of the call bridge.

Key components:
- voice_webhook: Answers Twilio's inbound-call webhook with TwiML that greets the
  caller and connects the call to the media stream, validating the request
  signature when an auth token is configured.
- twilio_stream: TwilioMediaLeg, the telephony leg over a Twilio media stream
  WebSocket, decoding start/media/stop frames and sending audio back to the caller.
"""
