"""Request execution -- one completion call with deadline, retry, budget and debug.

RequestExecutor is shared by reference across any number of agents. It owns
no per-conversation state: the budget tracker and debug recorder it holds
are themselves synchronized.
"""

from __future__ import annotations

import asyncio
import logging

from agentloop.billing import BudgetTracker
from agentloop.config import SamplingSettings
from agentloop.debug import DebugRecorder
from agentloop.errors import (
    AllAttemptsTimedOut,
    AttemptTimeout,
    BudgetExceeded,
    ConfigurationError,
    RetryExhausted,
    TransportFailure,
    UnsupportedResponseShape,
)
from agentloop.schemas import CompletionRequest, CompletionResponse, Message, ToolDescriptor
from agentloop.service import CompletionService

logger = logging.getLogger(__name__)

_THINK_OPEN = "<think>"
_THINK_CLOSE = "</think>"


class RequestExecutor:
    """Executes completion requests against a CompletionService.

    complete() runs exactly one call: record request, submit, record
    response, charge the budget. complete_with_retry() wraps it with a
    per-attempt deadline and a bounded number of immediate retries.
    """

    def __init__(
        self,
        service: CompletionService,
        model: str,
        budget: BudgetTracker,
        recorder: DebugRecorder | None = None,
        default_settings: SamplingSettings | None = None,
    ) -> None:
        # Fail at construction rather than after the first paid call
        budget.pricing_for(model)
        self.service = service
        self.model = model
        self.budget = budget
        self.recorder = recorder
        self.default_settings = default_settings or SamplingSettings()

    # ------------------------------------------------------------------
    # Single call
    # ------------------------------------------------------------------

    async def complete(
        self,
        request: CompletionRequest,
        prefix: str = "llm",
    ) -> CompletionResponse:
        """Run one completion call.

        Raises TransportFailure from the service unchanged and BudgetExceeded
        once both usage charges have been applied.
        """
        slot = self.recorder.next_slot(prefix) if self.recorder else None
        if slot is not None:
            await self.recorder.record_request(slot, request)

        response = await self.service.submit(request)

        if slot is not None:
            await self.recorder.record_response(slot, response)

        if response.usage is not None:
            exceeded: BudgetExceeded | None = None
            try:
                self.budget.charge_input(self.model, response.usage.prompt_tokens)
            except BudgetExceeded as e:
                exceeded = e
            try:
                self.budget.charge_output(self.model, response.usage.completion_tokens)
            except BudgetExceeded as e:
                exceeded = e
            if exceeded is not None:
                raise exceeded
        else:
            logger.warning("No usage?! response id=%s", response.id)

        logger.info("Model %s", self.budget)
        return response

    # ------------------------------------------------------------------
    # Retry with timeout
    # ------------------------------------------------------------------

    async def complete_with_retry(
        self,
        request: CompletionRequest,
        timeout: float | None = None,
        max_attempts: int | None = None,
        prefix: str = "llm",
    ) -> CompletionResponse:
        """Run complete() up to max_attempts times, each under a deadline.

        A timeout or TransportFailure moves on to the next attempt at once
        (no backoff). Any other error propagates immediately.

        Args:
            timeout: Seconds per attempt; 0 means unbounded. None uses the
                executor's sampling settings.
            max_attempts: Number of attempts. Defaults to the settings' retry.

        Raises:
            ConfigurationError: max_attempts is 0.
            AllAttemptsTimedOut: no attempt ever returned.
            RetryExhausted: every attempt failed; carries the last error.
        """
        if timeout is None:
            timeout = self.default_settings.timeout
        if max_attempts is None:
            max_attempts = self.default_settings.retry
        if max_attempts <= 0:
            raise ConfigurationError("retry is zero?!")
        deadline = timeout or None

        last_error: TransportFailure | None = None
        timed_out: AttemptTimeout | None = None
        for attempt in range(max_attempts):
            try:
                return await asyncio.wait_for(self.complete(request, prefix), timeout=deadline)
            except asyncio.TimeoutError:
                timed_out = AttemptTimeout(timeout)
                logger.warning(
                    "Timeout with %d retry, timeout seconds = %s", attempt, timeout
                )
            except TransportFailure as e:
                last_error = e
                logger.warning(
                    "Having an error %s during %d retry (timeout is %s seconds)",
                    e,
                    attempt,
                    timeout,
                )

        if last_error is None:
            raise AllAttemptsTimedOut(max_attempts, deadline) from timed_out
        raise RetryExhausted(last_error, max_attempts) from last_error

    # ------------------------------------------------------------------
    # Plain prompt (no tools)
    # ------------------------------------------------------------------

    def build_request(
        self,
        messages: list[Message],
        settings: SamplingSettings | None = None,
        tools: list[ToolDescriptor] | None = None,
    ) -> CompletionRequest:
        settings = settings or self.default_settings
        return CompletionRequest(
            model=self.model,
            messages=list(messages),
            tools=tools or [],
            temperature=settings.temperature,
            presence_penalty=settings.presence_penalty,
            max_completion_tokens=settings.max_completion_tokens,
            tool_choice=settings.tool_choice_param() if tools else None,
        )

    async def prompt_once(
        self,
        sys_msg: str,
        user_msg: str,
        settings: SamplingSettings | None = None,
        prefix: str = "llm",
    ) -> str:
        """Single system+user completion, returning the reply text."""
        request = self.build_request([Message.system(sys_msg), Message.user(user_msg)], settings)
        return _reply_text(await self.complete(request, prefix))

    async def prompt_once_with_retry(
        self,
        sys_msg: str,
        user_msg: str,
        settings: SamplingSettings | None = None,
        prefix: str = "llm",
    ) -> str:
        settings = settings or self.default_settings
        request = self.build_request([Message.system(sys_msg), Message.user(user_msg)], settings)
        response = await self.complete_with_retry(
            request, timeout=settings.timeout, max_attempts=settings.retry, prefix=prefix
        )
        return _reply_text(response)


def _reply_text(response: CompletionResponse) -> str:
    if not response.choices:
        raise UnsupportedResponseShape(response)
    return strip_think(response.choices[0].message.content or "")


def strip_think(text: str) -> str:
    """Drop a leading <think>...</think> block emitted by reasoning models."""
    if not text.startswith(_THINK_OPEN):
        return text
    end = text.find(_THINK_CLOSE)
    if end == -1:
        logger.warning("Unclosed </think>, resp_msg: %s", text)
        return text
    rest = text[end + len(_THINK_CLOSE):]
    if not rest:
        logger.warning("No content after </think>?! %s", text)
        return text
    return rest
