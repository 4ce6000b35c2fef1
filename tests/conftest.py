"""Shared fixtures: a scripted completion service, tools and an executor.

No network access: every test drives the agent through ScriptedService,
which replays canned responses (or raises canned errors) in order and
records each request it receives.
"""

import asyncio
import uuid

import pytest
from pydantic import BaseModel

from agentloop.billing import BudgetTracker
from agentloop.config import SamplingSettings
from agentloop.executor import RequestExecutor
from agentloop.schemas import (
    Choice,
    ChoiceMessage,
    CompletionRequest,
    CompletionResponse,
    FinishReason,
    FunctionCall,
    ToolCall,
    Usage,
)
from agentloop.tools import FunctionTool, Tool, ToolRegistry

# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def make_tool_call(name: str, arguments: str = "{}", call_id: str | None = None) -> ToolCall:
    return ToolCall(
        id=call_id or f"call_{uuid.uuid4().hex[:12]}",
        function=FunctionCall(name=name, arguments=arguments),
    )


def make_response(
    content: str | None = None,
    *,
    tool_calls: list[ToolCall] | None = None,
    refusal: str | None = None,
    finish_reason: FinishReason | None = None,
    usage: tuple[int, int] | None = (10, 5),
) -> CompletionResponse:
    """Build a single-choice CompletionResponse.

    finish_reason defaults to whatever the body implies (tool_calls / stop).
    """
    if finish_reason is None:
        if tool_calls:
            finish_reason = FinishReason.TOOL_CALLS
        elif content is not None:
            finish_reason = FinishReason.STOP
    return CompletionResponse(
        id=f"chatcmpl-{uuid.uuid4().hex[:8]}",
        model="gpt-4o",
        choices=[
            Choice(
                index=0,
                finish_reason=finish_reason,
                message=ChoiceMessage(content=content, refusal=refusal, tool_calls=tool_calls),
            )
        ],
        usage=Usage(prompt_tokens=usage[0], completion_tokens=usage[1]) if usage else None,
    )


# ---------------------------------------------------------------------------
# Completion services
# ---------------------------------------------------------------------------


class ScriptedService:
    """Replays responses in order; exceptions in the script are raised."""

    def __init__(self, script: list | None = None) -> None:
        self.script = list(script or [])
        self.requests: list[CompletionRequest] = []

    async def submit(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if not self.script:
            raise AssertionError("ScriptedService script exhausted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class HangingService:
    """Never answers; every call waits until cancelled."""

    def __init__(self) -> None:
        self.calls = 0

    async def submit(self, request: CompletionRequest) -> CompletionResponse:
        self.calls += 1
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


class EchoService:
    """Answers every request with the last user message, after yielding once."""

    async def submit(self, request: CompletionRequest) -> CompletionResponse:
        await asyncio.sleep(0)
        return make_response(f"echo: {request.messages[-1].content}")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class EchoArgs(BaseModel):
    message: str


class AddArgs(BaseModel):
    a: float
    b: float


class SubmitArgs(BaseModel):
    files: list[str]


class SubmitTool(Tool[SubmitArgs]):
    """Target tool for run_until_tool; never dispatched."""

    name = "submit"
    description = "Submit the final list of files."
    arguments = SubmitArgs

    async def invoke(self, args: SubmitArgs) -> str:
        raise AssertionError("submit must not be dispatched")


async def _echo(message: str) -> str:
    return f"Echo: {message}"


async def _add(a: float, b: float) -> str:
    return str(a + b)


def make_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(FunctionTool("echo", _echo, EchoArgs, description="Echo tool"))
    registry.register(FunctionTool("add", _add, AddArgs, description="Add tool"))
    return registry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> ToolRegistry:
    return make_registry()


@pytest.fixture
def budget() -> BudgetTracker:
    return BudgetTracker(cap=10.0)


@pytest.fixture
def sampling() -> SamplingSettings:
    """Fast settings: one attempt, 5s deadline."""
    return SamplingSettings(timeout=5, retry=1)


@pytest.fixture
def service() -> ScriptedService:
    return ScriptedService()


@pytest.fixture
def executor(service, budget, sampling) -> RequestExecutor:
    return RequestExecutor(service, "gpt-4o", budget, default_settings=sampling)
