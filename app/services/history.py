# app/services/history.py
"""
Conversation history for a single chat turn.

The browser owns the long-lived history and sends it with every request as a
list of wire Messages. During a turn the server only appends to it, using the
closed set of entry types below. TurnHistory refuses any ordering where a
model tool call is not answered by a matching tool result before the next
model entry.
"""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from app.schemas import FunctionCall, FunctionResponse, Message, Part


@dataclass(frozen=True)
class ToolCallRequest:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCallResult:
    name: str
    response: Dict[str, Any]

    @classmethod
    def failure(cls, name: str, message: str) -> "ToolCallResult":
        return cls(name=name, response={"error": message})

    @property
    def is_error(self) -> bool:
        return "error" in self.response


@dataclass(frozen=True)
class UserText:
    role: ClassVar[str] = "user"
    text: str

    def to_message(self) -> Message:
        return Message(role=self.role, parts=[Part(text=self.text)])


@dataclass(frozen=True)
class ModelText:
    role: ClassVar[str] = "model"
    text: str

    def to_message(self) -> Message:
        return Message(role=self.role, parts=[Part(text=self.text)])


@dataclass(frozen=True)
class ModelToolCall:
    role: ClassVar[str] = "model"
    call: ToolCallRequest

    def to_message(self) -> Message:
        part = Part(function_call=FunctionCall(name=self.call.name, args=dict(self.call.args)))
        return Message(role=self.role, parts=[part])


@dataclass(frozen=True)
class ToolResult:
    role: ClassVar[str] = "function"
    result: ToolCallResult

    def to_message(self) -> Message:
        part = Part(
            function_response=FunctionResponse(name=self.result.name, response=dict(self.result.response))
        )
        return Message(role=self.role, parts=[part])


HistoryEntry = Union[UserText, ModelText, ModelToolCall, ToolResult]


class TurnHistory:
    """Prior history supplied by the caller plus the entries of the current turn."""

    def __init__(self, prior: Sequence[Message] = ()):
        self._prior: Tuple[Message, ...] = tuple(prior)
        self._entries: List[HistoryEntry] = []
        self._pending_call: Optional[ToolCallRequest] = None

    @property
    def prior(self) -> Tuple[Message, ...]:
        return self._prior

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def pending_call(self) -> Optional[ToolCallRequest]:
        return self._pending_call

    def add_user_text(self, text: str) -> None:
        self._ensure_no_pending_call("user message")
        self._entries.append(UserText(text))

    def add_tool_call(self, call: ToolCallRequest) -> None:
        self._ensure_no_pending_call("tool call")
        self._entries.append(ModelToolCall(call))
        self._pending_call = call

    def add_tool_result(self, result: ToolCallResult) -> None:
        if self._pending_call is None:
            raise ValueError(f"Tool result for '{result.name}' has no matching tool call")
        if self._pending_call.name != result.name:
            raise ValueError(
                f"Tool result for '{result.name}' does not match pending call '{self._pending_call.name}'"
            )
        self._entries.append(ToolResult(result))
        self._pending_call = None

    def add_model_text(self, text: str) -> None:
        self._ensure_no_pending_call("model reply")
        self._entries.append(ModelText(text))

    def to_messages(self) -> List[Message]:
        return list(self._prior) + [entry.to_message() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._prior) + len(self._entries)

    def _ensure_no_pending_call(self, what: str) -> None:
        if self._pending_call is not None:
            raise ValueError(
                f"Cannot append a {what} while tool call '{self._pending_call.name}' is unanswered"
            )
