"""Pydantic models for the chat completion data contract.

Messages, tool calls, requests and responses follow the OpenAI chat
completions shape so a service adapter can send ``to_openai()`` output
as-is and validate the reply with ``CompletionResponse.model_validate``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    DEVELOPER = "developer"


class FinishReason(StrEnum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    FUNCTION_CALL = "function_call"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class FunctionCall(BaseModel):
    name: str
    arguments: str = ""  # raw JSON text as emitted by the model


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments


class Message(BaseModel):
    """A single message in the conversation context.

    Assistant messages carry exactly one of content, refusal or tool_calls.
    """

    role: Role
    content: str | None = None
    refusal: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None  # for role="tool" responses
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def developer(cls, content: str) -> Message:
        return cls(role=Role.DEVELOPER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def refusal_message(cls, refusal: str) -> Message:
        return cls(role=Role.ASSISTANT, refusal=refusal)

    @classmethod
    def tool_calls_message(cls, tool_calls: list[ToolCall]) -> Message:
        return cls(role=Role.ASSISTANT, tool_calls=list(tool_calls))

    def to_openai(self) -> dict[str, Any]:
        """Render the chat completions wire dict."""
        d: dict[str, Any] = {"role": self.role.value}
        if self.content is not None:
            d["content"] = self.content
        if self.refusal is not None:
            d["refusal"] = self.refusal
        if self.tool_calls:
            d["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            d["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            d["name"] = self.name
        return d


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ToolDescriptor(BaseModel):
    """A tool as advertised to the model."""

    name: str
    description: str | None = None
    parameters: dict[str, Any]  # JSON Schema object
    strict: bool = False

    def to_openai(self) -> dict[str, Any]:
        function: dict[str, Any] = {
            "name": self.name,
            "parameters": self.parameters,
            "strict": self.strict,
        }
        if self.description is not None:
            function["description"] = self.description
        return {"type": "function", "function": function}


class NamedToolChoice(BaseModel):
    """Force the model to call one specific tool."""

    name: str

    def to_openai(self) -> dict[str, Any]:
        return {"type": "function", "function": {"name": self.name}}


ToolChoice = Literal["auto", "required", "none"] | NamedToolChoice


class CompletionRequest(BaseModel):
    model: str
    messages: list[Message]
    tools: list[ToolDescriptor] = Field(default_factory=list)
    temperature: float | None = None
    presence_penalty: float | None = None
    max_completion_tokens: int | None = None
    tool_choice: ToolChoice | None = None

    def to_openai(self) -> dict[str, Any]:
        """Render the chat completions request body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_openai() for m in self.messages],
        }
        if self.tools:
            payload["tools"] = [t.to_openai() for t in self.tools]
            if self.tool_choice is not None:
                payload["tool_choice"] = (
                    self.tool_choice.to_openai()
                    if isinstance(self.tool_choice, NamedToolChoice)
                    else self.tool_choice
                )
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.presence_penalty is not None:
            payload["presence_penalty"] = self.presence_penalty
        if self.max_completion_tokens is not None:
            payload["max_completion_tokens"] = self.max_completion_tokens
        return payload


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int | None = None


class ChoiceMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Role = Role.ASSISTANT
    content: str | None = None
    refusal: str | None = None
    tool_calls: list[ToolCall] | None = None


class Choice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    finish_reason: FinishReason | None = None
    message: ChoiceMessage


class CompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None
