# app/services/model_client.py
"""
Model provider boundary.

ConversationLoop only sees the ModelClient / ModelSession protocols and the
ModelTurn variants below. GeminiModelClient implements them on top of
google-generativeai and translates the SDK's exceptions into the errors in
app.errors.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Protocol, Sequence, Tuple, Union

import google.generativeai as genai
from google.api_core.exceptions import DeadlineExceeded, GoogleAPICallError, ResourceExhausted
from google.generativeai import protos
from google.generativeai.types import (
    BlockedPromptException,
    HarmBlockThreshold,
    HarmCategory,
    StopCandidateException,
)

from app.errors import QuotaExceededError, SafetyBlockedError, UpstreamProtocolError, UpstreamTimeoutError
from app.schemas import Message
from app.services.history import ToolCallRequest, ToolCallResult
from app.services.tools import ToolDeclaration

MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.9

GENERATION_CONFIG = genai.types.GenerationConfig(
    max_output_tokens=MAX_OUTPUT_TOKENS,
    temperature=TEMPERATURE,
)

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}

QUOTA_MESSAGE = (
    "MUDA MUDA MUDA! You have exhausted my generosity (and the Gemini API quota). "
    "Wait a while before bothering me again, or check your Google plan."
)

SAFETY_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}

_SCHEMA_TYPES = {
    "string": protos.Type.STRING,
    "number": protos.Type.NUMBER,
    "integer": protos.Type.INTEGER,
    "boolean": protos.Type.BOOLEAN,
    "array": protos.Type.ARRAY,
    "object": protos.Type.OBJECT,
}


# --- Model Turns ---
@dataclass(frozen=True)
class TextReply:
    text: str


@dataclass(frozen=True)
class ToolCallsRequested:
    calls: Tuple[ToolCallRequest, ...]


@dataclass(frozen=True)
class EmptyReply:
    """The model answered with neither text nor a tool call."""


ModelTurn = Union[TextReply, ToolCallsRequested, EmptyReply]


class ModelSession(Protocol):
    async def send_text(self, text: str) -> ModelTurn:
        ...

    async def send_tool_result(self, result: ToolCallResult) -> ModelTurn:
        ...


class ModelClient(Protocol):
    def start_session(self, history: Sequence[Message]) -> ModelSession:
        ...


# --- Gemini Conversion ---
def to_gemini_tool(declarations: Iterable[ToolDeclaration]) -> protos.Tool:
    function_declarations = []
    for declaration in declarations:
        kwargs: Dict[str, Any] = {"name": declaration.name, "description": declaration.description}
        if declaration.params:
            kwargs["parameters"] = protos.Schema(
                type_=protos.Type.OBJECT,
                properties={
                    name: protos.Schema(type_=_SCHEMA_TYPES[param.type], description=param.description)
                    for name, param in declaration.params.items()
                },
                required=declaration.required,
            )
        function_declarations.append(protos.FunctionDeclaration(**kwargs))
    return protos.Tool(function_declarations=function_declarations)


def to_gemini_content(message: Message) -> protos.Content:
    parts = []
    for part in message.parts:
        if part.function_call is not None:
            parts.append(
                protos.Part(
                    function_call=protos.FunctionCall(
                        name=part.function_call.name, args=part.function_call.args
                    )
                )
            )
        elif part.function_response is not None:
            parts.append(
                protos.Part(
                    function_response=protos.FunctionResponse(
                        name=part.function_response.name, response=part.function_response.response
                    )
                )
            )
        else:
            parts.append(protos.Part(text=part.text))
    return protos.Content(role=message.role, parts=parts)


def finish_reason_name(candidate) -> str:
    reason = getattr(candidate, "finish_reason", None)
    return getattr(reason, "name", str(reason))


def parse_response(response) -> ModelTurn:
    """
    Reduces a GenerateContentResponse to exactly one ModelTurn variant.

    Blocked prompts and abnormal finish reasons never get here: ChatSession
    raises for them first and GeminiSession._send translates the exception.
    """
    if not response.candidates:
        return EmptyReply()

    candidate = response.candidates[0]
    calls = []
    texts = []
    try:
        for part in candidate.content.parts:
            if "function_call" in part:
                args = protos.FunctionCall.to_dict(part.function_call).get("args") or {}
                calls.append(ToolCallRequest(name=part.function_call.name, args=args))
            elif part.text:
                texts.append(part.text)
    except (AttributeError, TypeError, ValueError) as e:
        raise UpstreamProtocolError(f"Gemini returned a response I could not read: {e}") from e

    if calls:
        return ToolCallsRequested(tuple(calls))
    text = "".join(texts)
    if text.strip():
        return TextReply(text)
    return EmptyReply()


# --- Gemini Client ---
class GeminiSession:
    def __init__(self, chat):
        self._chat = chat

    async def send_text(self, text: str) -> ModelTurn:
        return await self._send(text)

    async def send_tool_result(self, result: ToolCallResult) -> ModelTurn:
        part = protos.Part(
            function_response=protos.FunctionResponse(name=result.name, response=result.response)
        )
        return await self._send([part])

    async def _send(self, content) -> ModelTurn:
        try:
            response = await self._chat.send_message_async(content, generation_config=GENERATION_CONFIG)
        except ResourceExhausted as e:
            raise QuotaExceededError(QUOTA_MESSAGE) from e
        except DeadlineExceeded as e:
            raise UpstreamTimeoutError("Gemini took too long to answer. Try again.") from e
        except GoogleAPICallError as e:
            raise UpstreamProtocolError(
                f"Gemini API error: {e.code} {e.message}", status_code=e.code or 500
            ) from e
        except BlockedPromptException as e:
            raise SafetyBlockedError(
                f"Your request was blocked for safety reasons. Pathetic. Details: {e}"
            ) from e
        except StopCandidateException as e:
            reason = finish_reason_name(e.args[0] if e.args else None)
            if reason in SAFETY_FINISH_REASONS:
                raise SafetyBlockedError(
                    f"My answer was blocked for safety reasons ({reason}). Pathetic. Details: {e}"
                ) from e
            raise UpstreamProtocolError(f"Gemini stopped answering early ({reason}). Try again.") from e
        except IndexError:
            # ChatSession reads candidates[0] before we see the response
            return EmptyReply()
        return parse_response(response)


class GeminiModelClient:
    """Starts Gemini chat sessions with the persona, safety settings and tools."""

    def __init__(self, model_name: str, system_instruction: str, declarations: Iterable[ToolDeclaration]):
        self._model = genai.GenerativeModel(
            model_name,
            system_instruction=system_instruction,
            safety_settings=SAFETY_SETTINGS,
            tools=[to_gemini_tool(declarations)],
        )

    def start_session(self, history: Sequence[Message]) -> GeminiSession:
        chat = self._model.start_chat(history=[to_gemini_content(message) for message in history])
        return GeminiSession(chat)
