"""In-memory stand-ins for the two legs of a call."""

import asyncio
import json

from pydantic import BaseModel


class FakeLeg:
    """Leg that records what is sent and yields what the test feeds it."""

    def __init__(self, name="leg"):
        self.name = name
        self.sent = []
        self.close_calls = 0
        self.closed = False
        self._inbox = asyncio.Queue()

    def feed(self, message):
        """Deliver an inbound message; dicts are sent as JSON text."""
        if not isinstance(message, str):
            message = json.dumps(message)
        self._inbox.put_nowait(message)

    def hang_up(self):
        """End the inbound stream as a normal close would."""
        self._inbox.put_nowait(None)

    def fail(self, error):
        """End the inbound stream with an error."""
        self._inbox.put_nowait(error)

    async def messages(self):
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def send(self, message):
        if isinstance(message, BaseModel):
            message = message.model_dump(exclude_none=True)
        self.sent.append(message)

    async def close(self):
        self.close_calls += 1
        self.closed = True


async def wait_until(predicate, timeout=1.0):
    """Yield to the event loop until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.001)
