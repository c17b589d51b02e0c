import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.fakes import FakeLeg


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def telephony_leg():
    return FakeLeg("telephony")


@pytest.fixture
def agent_leg():
    return FakeLeg("agent")


@pytest.fixture
def url_issuer():
    """URL issuer that hands out a fixed signed URL"""
    issuer = MagicMock()
    issuer.get_signed_url = AsyncMock(return_value="wss://agent.example/convai?token=abc")
    return issuer
