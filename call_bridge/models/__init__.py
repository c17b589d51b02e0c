"""
Models module for data structures and state management in the call bridge.

Key components:
- message_schemas: Pydantic models for the telephony media-stream envelopes and the
  agent protocol messages the bridge parses or produces.
- session: the per-call Session and its lifecycle state machine.

Usage examples:
```python
from call_bridge.models import Session, SessionState

session = Session(telephony_leg=leg)
session.begin("MZ123", {"first_message": "Hi there"})
assert session.state is SessionState.CONNECTING

from call_bridge.models import ClearMessage

clear = ClearMessage(streamSid=session.stream_sid)
await leg.send(clear)
```
"""

from call_bridge.models.message_schemas import (
    AgentOutgoingMessage,
    ClearMessage,
    ConversationInitiationClientData,
    MediaPayload,
    OutboundMediaMessage,
    OutgoingMessage,
    PongMessage,
    StartMessage,
    StartPayload,
    StopMessage,
    TelephonyMessage,
    TelephonyOutgoingMessage,
    UserAudioChunkMessage,
)
from call_bridge.models.session import Session, SessionState
