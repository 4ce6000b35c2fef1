"""Tests for Settings / SamplingSettings loading from the environment."""

import os

import pytest
from pydantic import ValidationError

from agentloop.config import SamplingSettings, Settings
from agentloop.executor import RequestExecutor
from agentloop.schemas import NamedToolChoice
from tests.conftest import ScriptedService

_ENV_VARS = (
    "OPENAI_API_MODEL",
    "LLM_TEMPERATURE",
    "LLM_PRESENCE_PENALTY",
    "LLM_PROMPT_TIMEOUT",
    "LLM_RETRY",
    "LLM_MAX_COMPLETION_TOKENS",
    "LLM_TOOL_CHOICE",
    "LLM_BILLING_CAP",
    "LLM_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any .env file."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = Settings()
    assert settings.model == "o1"
    assert settings.billing_cap == 10.0
    assert settings.llm_debug is None

    sampling = settings.sampling()
    assert sampling == SamplingSettings()
    assert sampling.temperature == 0.8
    assert sampling.timeout == 120
    assert sampling.retry == 5
    assert sampling.max_completion_tokens == 16384


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
    monkeypatch.setenv("LLM_PROMPT_TIMEOUT", "0")
    monkeypatch.setenv("LLM_RETRY", "2")
    monkeypatch.setenv("LLM_BILLING_CAP", "1.5")

    settings = Settings()
    sampling = settings.sampling()

    assert settings.model == "gpt-4o-mini"
    assert settings.billing_cap == 1.5
    assert sampling.temperature == 0.2
    assert sampling.timeout == 0
    assert sampling.retry == 2


def test_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("LLM_RETRY=3\nOPENAI_API_MODEL=gpt-4o\n")
    settings = Settings()
    assert settings.llm_retry == 3
    assert settings.model == "gpt-4o"


def test_unknown_model_rejected(monkeypatch):
    monkeypatch.setenv("OPENAI_API_MODEL", "gpt-unknown")
    with pytest.raises(ValidationError, match="gpt-unknown"):
        Settings()


def test_negative_retry_rejected(monkeypatch):
    monkeypatch.setenv("LLM_RETRY", "-1")
    with pytest.raises(ValidationError):
        Settings()


# ---------------------------------------------------------------------------
# tool_choice
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("mode", ["auto", "required", "none"])
def test_tool_choice_modes(mode):
    assert SamplingSettings(tool_choice=mode).tool_choice_param() == mode


def test_tool_choice_named_tool(monkeypatch):
    monkeypatch.setenv("LLM_TOOL_CHOICE", "submit")
    choice = Settings().sampling().tool_choice_param()
    assert choice == NamedToolChoice(name="submit")
    assert choice.to_openai() == {"type": "function", "function": {"name": "submit"}}


# ---------------------------------------------------------------------------
# Executor wiring
# ---------------------------------------------------------------------------


def test_build_executor_without_debug():
    executor = Settings(model="gpt-4o").build_executor(ScriptedService())
    assert isinstance(executor, RequestExecutor)
    assert executor.model == "gpt-4o"
    assert executor.recorder is None
    assert executor.budget.cap == 10.0
    assert executor.default_settings.retry == 5


def test_build_executor_with_debug_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_DEBUG", str(tmp_path / "debug"))

    executor = Settings().build_executor(ScriptedService())

    assert executor.recorder is not None
    assert executor.recorder.directory == tmp_path / "debug" / str(os.getpid())
    assert executor.recorder.directory.is_dir()


def test_empty_debug_dir_means_disabled(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_DEBUG", "")

    settings = Settings()
    executor = settings.build_executor(ScriptedService())

    assert settings.llm_debug is None
    assert executor.recorder is None
    assert not (tmp_path / str(os.getpid())).exists()
