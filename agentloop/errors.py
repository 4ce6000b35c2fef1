"""Error hierarchy for the agent loop.

All errors inherit from AgentLoopError so callers can catch everything the
package raises in one place. Recoverable tool errors (UnknownTool,
SchemaMismatch) are handled inside the agent drivers; the rest propagate.
"""

from __future__ import annotations

from typing import Any


class AgentLoopError(Exception):
    """Base for all agentloop errors."""


class ConfigurationError(AgentLoopError):
    """Invalid configuration (zero retries, unknown model pricing, ...)."""


# ---------------------------------------------------------------------------
# Request execution
# ---------------------------------------------------------------------------


class TransportFailure(AgentLoopError):
    """The completion service or the network failed. Retried by the executor."""


class AttemptTimeout(AgentLoopError):
    """A single completion attempt exceeded its deadline."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Completion attempt timed out after {timeout}s")


class RetryExhausted(AgentLoopError):
    """Every attempt failed.

    Attributes:
        last_error: The last error returned by an attempt, or None if no
            attempt ever returned.
        attempts: Number of attempts made.
    """

    def __init__(
        self,
        last_error: BaseException | None,
        attempts: int,
        message: str | None = None,
    ) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(message or f"All {attempts} attempts failed, last error: {last_error}")


class AllAttemptsTimedOut(RetryExhausted):
    """Every attempt hit the per-attempt deadline."""

    def __init__(self, attempts: int, timeout: float | None) -> None:
        self.timeout = timeout
        super().__init__(None, attempts, f"All {attempts} attempts timed out (timeout {timeout}s)")


class BudgetExceeded(AgentLoopError):
    """Cumulative spend went over the cap. The triggering charge is kept."""

    def __init__(self, spent: float, cap: float) -> None:
        self.spent = spent
        self.cap = cap
        super().__init__(f"cap {cap} reached, current {spent}")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class ToolError(AgentLoopError):
    """Base for tool dispatch errors."""


class UnknownTool(ToolError):
    """The model called a tool that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No such tool: {name}")


class SchemaMismatch(ToolError):
    """Tool arguments failed to parse or validate against the tool schema.

    Attributes:
        schema: The JSON schema the arguments were expected to match.
        raw: The raw argument text emitted by the model.
    """

    def __init__(self, schema: dict[str, Any], raw: str, reason: str = "") -> None:
        self.schema = schema
        self.raw = raw
        self.reason = reason
        message = f"Incorrect tool call arguments {raw!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class UnsupportedResponseShape(AgentLoopError):
    """The completion response matched none of the known finish categories."""

    def __init__(self, detail: Any) -> None:
        self.detail = detail
        super().__init__(f"Not supported choice: {detail!r}")


class UnexpectedResponse(AgentLoopError):
    """The model answered with text or a refusal while a tool call was expected."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Unexpected response: {text}")


class TurnLimitExceeded(AgentLoopError):
    """A driver loop ran more turns than allowed."""

    def __init__(self, turns: int) -> None:
        self.turns = turns
        super().__init__(f"Agent loop reached max_turns={turns}")
