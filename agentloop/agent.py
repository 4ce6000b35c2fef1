"""Agent -- owns one conversation and drives it turn by turn.

run_once() is the shared turn primitive: build a request from the context,
execute it with retry, classify the first choice and append the assistant
message. The two drivers, run_until_tool() and run_until_text(), map each
classified turn to an action (Continue / Unexpected / Out) and loop while
the action is Continue.

An Agent is not safe for concurrent use: the context is mutated in place.
The RequestExecutor it holds may be shared with other agents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from agentloop.config import SamplingSettings
from agentloop.errors import (
    SchemaMismatch,
    TurnLimitExceeded,
    UnexpectedResponse,
    UnknownTool,
    UnsupportedResponseShape,
)
from agentloop.executor import RequestExecutor
from agentloop.schemas import (
    CompletionRequest,
    CompletionResponse,
    FinishReason,
    Message,
    ToolCall,
)
from agentloop.tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SYSTEM_PROMPT = "You are an expert agent that calls tool to complete your task."

# Errors that trigger a new turn instead of ending the conversation
DEFAULT_RECOVERABLE: tuple[type[Exception], ...] = (UnknownTool, SchemaMismatch)


# ---------------------------------------------------------------------------
# Turn outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCallsTurn:
    """The model asked for tool calls, in the order given."""

    calls: list[ToolCall]


@dataclass(frozen=True)
class RefusalTurn:
    text: str


@dataclass(frozen=True)
class MessageTurn:
    text: str


Turn = ToolCallsTurn | RefusalTurn | MessageTurn


@dataclass(frozen=True)
class Continue:
    """Issue another turn."""


@dataclass(frozen=True)
class Unexpected:
    """Terminal: the model answered in a way the driver did not ask for."""

    text: str


@dataclass(frozen=True)
class Out(Generic[T]):
    """Terminal: the driver's result."""

    value: T


CONTINUE = Continue()

AgentAction = Continue | Unexpected | Out


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class Agent:
    """A single conversation with tool access."""

    def __init__(
        self,
        executor: RequestExecutor,
        tools: ToolRegistry,
        user: str,
        system: str | None = None,
        settings: SamplingSettings | None = None,
        prefix: str = "agent",
    ) -> None:
        self.executor = executor
        self.tools = tools
        self.settings = settings
        self.prefix = prefix
        self.context: list[Message] = [
            Message.system(system or DEFAULT_SYSTEM_PROMPT),
            Message.user(user),
        ]

    # ------------------------------------------------------------------
    # Turn primitive
    # ------------------------------------------------------------------

    def build_request(self, settings: SamplingSettings | None = None) -> CompletionRequest:
        """Snapshot the context and tool catalog into a request."""
        return self.executor.build_request(
            self.context,
            settings or self._settings(),
            tools=self.tools.catalog(),
        )

    async def run_once(
        self,
        settings: SamplingSettings | None = None,
        prefix: str | None = None,
    ) -> Turn:
        """Execute one turn and append the assistant message to the context.

        Errors from the executor propagate unchanged.
        """
        settings = settings or self._settings()
        request = self.build_request(settings)
        response = await self.executor.complete_with_retry(
            request,
            timeout=settings.timeout,
            max_attempts=settings.retry,
            prefix=prefix or self.prefix,
        )
        return self._classify(response)

    def _classify(self, response: CompletionResponse) -> Turn:
        if not response.choices:
            raise UnsupportedResponseShape(response)
        choice = response.choices[0]
        msg = choice.message
        reason = choice.finish_reason

        if reason == FinishReason.TOOL_CALLS or msg.tool_calls:
            calls = list(msg.tool_calls or [])
            self.context.append(Message.tool_calls_message(calls))
            return ToolCallsTurn(calls)

        if reason == FinishReason.CONTENT_FILTER or msg.refusal is not None:
            refusal = msg.refusal or ""
            self.context.append(Message.refusal_message(refusal))
            return RefusalTurn(refusal)

        if reason in (FinishReason.STOP, FinishReason.LENGTH) or msg.content:
            content = msg.content or ""
            self.context.append(Message.assistant(content))
            return MessageTurn(content)

        raise UnsupportedResponseShape(choice)

    async def _handle_toolcalls(self, calls: list[ToolCall]) -> None:
        """Dispatch every call in order and append the joined results.

        The first failing call aborts the batch; nothing is appended.
        """
        results: list[str] = []
        for call in calls:
            results.append(await self.tools.dispatch(call.name, call.arguments))
        self.context.append(Message.user("\n".join(results)))

    # ------------------------------------------------------------------
    # Driver: until a target tool is called
    # ------------------------------------------------------------------

    async def step_until_tool(
        self,
        target: Tool[Any],
        settings: SamplingSettings | None = None,
        prefix: str | None = None,
        recoverable: tuple[type[Exception], ...] = DEFAULT_RECOVERABLE,
    ) -> AgentAction:
        turn = await self.run_once(settings, prefix)
        if not isinstance(turn, ToolCallsTurn):
            return Unexpected(turn.text)

        hit = next((c for c in turn.calls if c.name == target.name), None)
        try:
            if hit is not None:
                return Out(target.parse_arguments(hit.arguments))
            await self._handle_toolcalls(turn.calls)
        except recoverable as e:
            logger.warning("Error %s during tool call, retry...", e)
        return CONTINUE

    async def run_until_tool(
        self,
        target: Tool[Any],
        settings: SamplingSettings | None = None,
        prefix: str | None = None,
        recoverable: tuple[type[Exception], ...] = DEFAULT_RECOVERABLE,
        max_turns: int | None = None,
    ) -> Any:
        """Loop until the model calls ``target``; return its parsed arguments.

        Other tool calls are dispatched through the registry in between.
        Unknown tools and malformed arguments (including a malformed call to
        ``target``) are logged and answered with a new turn.

        Raises:
            UnexpectedResponse: the model replied with text or a refusal.
            TurnLimitExceeded: more than ``max_turns`` turns were needed.
        """
        turns = 0
        while True:
            self._check_turns(turns, max_turns)
            action = await self.step_until_tool(target, settings, prefix, recoverable)
            turns += 1
            logger.debug("Agent action: %r", action)
            if isinstance(action, Out):
                return action.value
            if isinstance(action, Unexpected):
                raise UnexpectedResponse(action.text)

    # ------------------------------------------------------------------
    # Driver: until a text reply
    # ------------------------------------------------------------------

    async def step_until_text(
        self,
        settings: SamplingSettings | None = None,
        prefix: str | None = None,
        recoverable: tuple[type[Exception], ...] = DEFAULT_RECOVERABLE,
    ) -> AgentAction:
        turn = await self.run_once(settings, prefix)
        if isinstance(turn, MessageTurn):
            return Out(turn.text)
        if isinstance(turn, RefusalTurn):
            return Unexpected(turn.text)

        try:
            await self._handle_toolcalls(turn.calls)
        except recoverable as e:
            logger.warning("Error %s during tool call, retry...", e)
        return CONTINUE

    async def run_until_text(
        self,
        settings: SamplingSettings | None = None,
        prefix: str | None = None,
        recoverable: tuple[type[Exception], ...] = DEFAULT_RECOVERABLE,
        max_turns: int | None = None,
    ) -> str:
        """Loop until the model replies with text and return it.

        Every tool call is dispatched; none ends the loop. A refusal also
        ends the loop and its text is returned as the result.
        """
        turns = 0
        while True:
            self._check_turns(turns, max_turns)
            action = await self.step_until_text(settings, prefix, recoverable)
            turns += 1
            logger.debug("Agent action: %r", action)
            if isinstance(action, Out):
                return action.value
            if isinstance(action, Unexpected):
                return action.text

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _settings(self) -> SamplingSettings:
        return self.settings or self.executor.default_settings

    @staticmethod
    def _check_turns(turns: int, max_turns: int | None) -> None:
        if max_turns is not None and turns >= max_turns:
            raise TurnLimitExceeded(max_turns)
