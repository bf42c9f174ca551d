# app/schemas.py
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Literal, Optional


class FunctionCall(BaseModel):
    """A tool-call request issued by the model."""
    name: str
    args: Dict[str, Any] = {}


class FunctionResponse(BaseModel):
    """The result handed back to the model after running a tool."""
    name: str
    response: Dict[str, Any] = {}


class Part(BaseModel):
    """One piece of a message: text, a function call or a function response."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    function_call: Optional[FunctionCall] = Field(default=None, alias="functionCall")
    function_response: Optional[FunctionResponse] = Field(default=None, alias="functionResponse")

    @model_validator(mode="after")
    def check_single_kind(self):
        kinds = [k for k in (self.text, self.function_call, self.function_response) if k is not None]
        if len(kinds) != 1:
            raise ValueError("A part must hold exactly one of text, functionCall or functionResponse")
        return self


class Message(BaseModel):
    """Defines the structure for a single message in the history."""
    role: Literal["user", "model", "function"]
    parts: List[Part] = Field(min_length=1)


class ChatRequest(BaseModel):
    """Defines the structure for an incoming chat request from the frontend."""
    message: Optional[str] = None
    history: List[Message] = []


class ChatResponse(BaseModel):
    response: str
    history: List[Message]


class ErrorResponse(BaseModel):
    error: str


class ResetResponse(BaseModel):
    message: str
