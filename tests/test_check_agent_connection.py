from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from call_bridge.exceptions import AgentConnectionError, SignedUrlError
from check_agent_connection import check_connection
from tests.fakes import FakeLeg


@pytest.fixture
def client():
    client = MagicMock()
    client.get_signed_url = AsyncMock(return_value="wss://agent.example/convai?token=abc")
    return client


@pytest.mark.asyncio
async def test_check_succeeds(client):
    leg = FakeLeg("agent")
    with patch("check_agent_connection.AgentLeg.connect", new=AsyncMock(return_value=leg)) as connect:
        assert await check_connection("agent_1", client=client) is True

    client.get_signed_url.assert_awaited_once_with("agent_1")
    connect.assert_awaited_once_with("wss://agent.example/convai?token=abc")
    assert leg.closed


@pytest.mark.asyncio
async def test_check_fails_without_signed_url(client):
    client.get_signed_url.side_effect = SignedUrlError("401 Unauthorized")
    with patch("check_agent_connection.AgentLeg.connect", new=AsyncMock()) as connect:
        assert await check_connection("agent_1", client=client) is False
    connect.assert_not_awaited()


@pytest.mark.asyncio
async def test_check_fails_when_agent_refuses(client):
    with patch(
        "check_agent_connection.AgentLeg.connect",
        new=AsyncMock(side_effect=AgentConnectionError("refused")),
    ):
        assert await check_connection("agent_1", client=client) is False
