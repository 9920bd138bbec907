"""Exception taxonomy.

Two families:
- ChatError: caller mistakes. Always propagated to the UI.
- GatewayError: environment/server failures. Absorbed by the inference
  gateway and turned into mock replies.
"""

from typing import Optional


class ChatError(Exception):
    """Base class for errors surfaced to the caller."""


class InvalidArgumentError(ChatError, ValueError):
    """A required input was blank or malformed."""


class NotFoundError(ChatError, KeyError):
    """Unknown session or model id."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class InvalidStateError(ChatError, RuntimeError):
    """Operation not allowed in the object's current state."""


class GatewayError(Exception):
    """Base class for inference server failures."""


class ServerUnreachableError(GatewayError):
    """The inference server could not be reached."""


class InferenceTimeoutError(GatewayError):
    """The generation call exceeded its timeout."""


class ProtocolError(GatewayError):
    """The server answered, but not with a usable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
