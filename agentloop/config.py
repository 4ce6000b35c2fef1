"""Settings via pydantic-settings.

Fields use validation_alias to read the same unprefixed env vars
(LLM_TEMPERATURE, OPENAI_API_MODEL, ...) the command line tools export,
so a single .env file drives every entry point.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentloop import pricing
from agentloop.errors import ConfigurationError
from agentloop.schemas import NamedToolChoice, ToolChoice

if TYPE_CHECKING:
    from agentloop.executor import RequestExecutor
    from agentloop.service import CompletionService

_TOOL_CHOICE_MODES = ("auto", "required", "none")


class SamplingSettings(BaseModel):
    """Per-request sampling parameters plus retry/timeout for one call."""

    temperature: float = 0.8
    presence_penalty: float = 0.0
    max_completion_tokens: int = 16384
    tool_choice: str = "auto"  # auto | required | none | <tool name>
    timeout: float = Field(120.0, ge=0)  # seconds per attempt, 0 = unbounded
    retry: int = Field(5, ge=0)

    def tool_choice_param(self) -> ToolChoice:
        """Map the tool_choice string to a request value.

        Anything other than auto/required/none names a tool to force.
        """
        if self.tool_choice in _TOOL_CHOICE_MODES:
            return self.tool_choice  # type: ignore[return-value]
        return NamedToolChoice(name=self.tool_choice)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore", populate_by_name=True
    )

    model: str = Field("o1", validation_alias="OPENAI_API_MODEL")

    llm_temperature: float = Field(0.8, validation_alias="LLM_TEMPERATURE")
    llm_presence_penalty: float = Field(0.0, validation_alias="LLM_PRESENCE_PENALTY")
    llm_prompt_timeout: int = Field(120, validation_alias="LLM_PROMPT_TIMEOUT")  # 0 = unbounded
    llm_retry: int = Field(5, validation_alias="LLM_RETRY")
    llm_max_completion_tokens: int = Field(16384, validation_alias="LLM_MAX_COMPLETION_TOKENS")
    llm_tool_choice: str = Field("auto", validation_alias="LLM_TOOL_CHOICE")

    # Cumulative USD spend cap across every conversation of the process
    billing_cap: float = Field(10.0, validation_alias="LLM_BILLING_CAP")

    # Transcripts go to <llm_debug>/<pid>/ when set; an empty value counts as unset
    llm_debug: Path | None = Field(None, validation_alias="LLM_DEBUG")

    @field_validator("model")
    @classmethod
    def _validate_model(cls, v: str) -> str:
        try:
            pricing.lookup(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from None
        return v

    @field_validator("llm_prompt_timeout", "llm_retry", "llm_max_completion_tokens")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def sampling(self) -> SamplingSettings:
        return SamplingSettings(
            temperature=self.llm_temperature,
            presence_penalty=self.llm_presence_penalty,
            max_completion_tokens=self.llm_max_completion_tokens,
            tool_choice=self.llm_tool_choice,
            timeout=self.llm_prompt_timeout,
            retry=self.llm_retry,
        )

    def build_executor(self, service: CompletionService) -> RequestExecutor:
        """Wire a RequestExecutor with a fresh budget and optional debug recorder."""
        from agentloop.billing import BudgetTracker
        from agentloop.debug import DebugRecorder
        from agentloop.executor import RequestExecutor

        recorder = (
            DebugRecorder.for_process(self.llm_debug) if self.llm_debug is not None else None
        )
        return RequestExecutor(
            service=service,
            model=self.model,
            budget=BudgetTracker(self.billing_cap),
            recorder=recorder,
            default_settings=self.sampling(),
        )
