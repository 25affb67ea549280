"""Exceptions raised across the layers of the client"""


class MillClientError(Exception):
    """Base class for every error raised by the client"""


class ProtocolError(MillClientError):
    """Server sent a message we cannot interpret (malformed or unexpected shape)."""


class IllegalLocalMoveError(MillClientError):
    """A user selection resolved to a move that is not in the current legal set."""


class ConnectionFailureError(MillClientError):
    """Connection to the server could not be established or was dropped."""


class InvariantViolationError(MillClientError):
    """
    The server instructed an operation the local board cannot satisfy.
    Not expected under a correct server: better to fail loudly than to corrupt the board.
    """


class SessionStateError(MillClientError):
    """Intent does not make sense in the current phase of the session."""


class ConfigurationError(MillClientError):
    """An environment variable holds a value the client cannot use."""
