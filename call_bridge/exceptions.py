"""Exceptions raised by the call bridge."""


class BridgeError(Exception):
    """Base class for errors scoped to a single call."""


class SignedUrlError(BridgeError):
    """The agent provider did not issue a signed connection URL."""


class AgentConnectionError(BridgeError):
    """The agent leg could not be opened."""


class SessionStateError(BridgeError):
    """A session was asked to make a transition its state machine forbids."""


class UnsupportedAudioFormat(ValueError):
    """An agent output format the transcoder does not know how to convert."""
