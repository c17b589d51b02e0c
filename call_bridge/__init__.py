"""
Call Bridge - Telephony Media Streams to Conversational AI Agent

This application bridges a telephony platform's media-stream WebSocket to a
conversational AI agent's WebSocket so that a phone caller talks directly to the
agent. Session lifecycle events and audio are translated between the two protocols
in real time; agent audio is transcoded to 8 kHz mu-law when needed.

Architecture Overview:
- FastAPI server exposing the media-stream WebSocket endpoint
- One CallBridge per call, serializing all events for that call
- Signed, per-call agent connection URLs fetched from the agent provider
- Pure protocol translation and audio transcoding functions

Key Components:
- audio: mu-law companding and resampling of agent audio
- bridge: the per-call controller and the protocol translator
- config: Application-wide constants and logging setup
- models: Message schemas and the per-call Session state machine
- services: The signed-URL client and the two leg channels
- websocket_manager: Accepts media-stream connections and runs their bridges

Getting Started:
1. Set up environment variables:
   - ELEVENLABS_API_KEY: API key used to request signed agent URLs
   - ELEVENLABS_AGENT_ID: The agent callers are connected to
   - AGENT_OUTPUT_FORMAT: Agent audio format (default ulaw_8000)
   - PORT / HOST / LOG_LEVEL: Server settings

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the call platform's media stream at ws://your-server:8000/media-stream
"""
