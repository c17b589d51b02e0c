"""
Bridge module: the per-call controller and the protocol translator it drives.

Key components:
- CallBridge: owns one Session and both of its legs, serializes every event for the
  call through one queue, and tears the call down when either side ends.
- translator: pure functions mapping telephony envelopes to agent envelopes and back.

Usage examples:
```python
from call_bridge.bridge import CallBridge
from call_bridge.services import SignedUrlClient, TelephonyLeg

bridge = CallBridge(TelephonyLeg(websocket), SignedUrlClient(), agent_id="agent_123")
await bridge.run()
```
"""

from call_bridge.bridge.controller import CallBridge

__all__ = ["CallBridge"]
