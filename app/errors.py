# app/errors.py
"""
Error kinds raised while serving a chat turn.

ChatError subclasses are terminal for the request and are rendered by the
HTTP layer as {"error": message} with their status code. ToolError subclasses
are recoverable: ToolExecutor turns them into function-response payloads so
the model can react to them, and they never reach the HTTP caller.
"""
from typing import Optional


class ChatError(Exception):
    """Base class for errors that end a chat request."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(ChatError):
    """The request payload is unusable (e.g. empty message)."""

    status_code = 400


class QuotaExceededError(ChatError):
    """The model provider refused the call because a quota ran out."""

    status_code = 429


class SafetyBlockedError(ChatError):
    """The model declined to answer because of its content-safety filters."""


class UpstreamProtocolError(ChatError):
    """Any other model provider failure, including runaway tool-call loops."""


class UpstreamTimeoutError(ChatError):
    """An outbound call or the whole turn took longer than allowed."""

    status_code = 504


class ToolError(Exception):
    """Base class for tool failures that are reported back to the model."""


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"The function '{name}' does not exist.")


class ToolExecutionError(ToolError):
    """A tool handler could not produce a result."""
