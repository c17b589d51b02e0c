"""
Services module for the external connections a call depends on.

Key components:
- signed_url: SignedUrlClient, which asks the agent provider for a short-lived,
  pre-authorised WebSocket URL for one call.
- legs: TelephonyLeg and AgentLeg, the two message channels a CallBridge owns.

Usage examples:
```python
from call_bridge.services import AgentLeg, SignedUrlClient

client = SignedUrlClient(api_key="xi-...")
url = await client.get_signed_url("agent_123")
agent = await AgentLeg.connect(url)
await agent.close()
```
"""

from call_bridge.services.legs import AgentLeg, TelephonyLeg
from call_bridge.services.signed_url import SignedUrlClient

__all__ = ["AgentLeg", "SignedUrlClient", "TelephonyLeg"]
