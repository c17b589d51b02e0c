import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch

from call_bridge.exceptions import SignedUrlError
from call_bridge.main import app, websocket_manager

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["agent_api_key_configured"], bool)
    assert isinstance(response_json["agent_id_configured"], bool)
    assert response_json["agent_output_format"] == websocket_manager.transcoder.source_format
    assert response_json["active_calls"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Call Bridge"
    assert "description" in response_json
    assert response_json["version"] == "1.0.0"
    assert "/media-stream" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


@pytest.mark.asyncio
async def test_websocket_endpoint():
    """Test that websocket endpoint calls the handle_websocket method"""
    with patch.object(websocket_manager, "handle_websocket", new=AsyncMock()) as mock_handle:
        mock_websocket = MagicMock()

        # Find the websocket endpoint by path
        websocket_route = next(route for route in app.routes if route.path == "/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_awaited_once_with(mock_websocket)


def test_media_stream_closed_when_agent_unavailable(monkeypatch):
    """Test a real media-stream connection is closed when the agent cannot be reached"""
    issuer = MagicMock()
    issuer.get_signed_url = AsyncMock(side_effect=SignedUrlError("401 Unauthorized"))
    monkeypatch.setattr(websocket_manager, "url_issuer", issuer)

    with client.websocket_connect("/media-stream") as ws:
        ws.send_json({"event": "connected", "protocol": "Call"})
        ws.send_json({"event": "start", "start": {"streamSid": "MZ1", "callSid": "CA1"}})
        with pytest.raises(WebSocketDisconnect):
            ws.receive_text()

    issuer.get_signed_url.assert_awaited_once()


def test_media_stream_survives_binary_frame(monkeypatch):
    """Test a stray binary frame is skipped and the call still starts"""
    issuer = MagicMock()
    issuer.get_signed_url = AsyncMock(side_effect=SignedUrlError("401 Unauthorized"))
    monkeypatch.setattr(websocket_manager, "url_issuer", issuer)

    with client.websocket_connect("/media-stream") as ws:
        ws.send_bytes(b"\x01\x02")
        ws.send_json({"event": "start", "start": {"streamSid": "MZ1", "callSid": "CA1"}})
        with pytest.raises(WebSocketDisconnect):
            ws.receive_text()

    # The start after the binary frame reached the bridge
    issuer.get_signed_url.assert_awaited_once()


def test_app_startup_configuration():
    """Test the app configuration on startup"""
    assert app.title == "Call Bridge"
    assert app.version == "1.0.0"

    route_paths = [route.path for route in app.routes]
    assert "/media-stream" in route_paths
    assert "/health" in route_paths
    assert "/" in route_paths
