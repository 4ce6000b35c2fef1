"""agentloop -- drive a tool-calling conversation with a completion service.

Public API: Agent, RequestExecutor, ToolRegistry, BudgetTracker,
DebugRecorder, Settings and the error types from errors.py.
"""

from agentloop.agent import Agent, Continue, Out, Unexpected
from agentloop.billing import BudgetTracker
from agentloop.config import SamplingSettings, Settings
from agentloop.debug import DebugRecorder
from agentloop.errors import (
    AgentLoopError,
    AllAttemptsTimedOut,
    AttemptTimeout,
    BudgetExceeded,
    ConfigurationError,
    RetryExhausted,
    SchemaMismatch,
    ToolError,
    TransportFailure,
    TurnLimitExceeded,
    UnexpectedResponse,
    UnknownTool,
    UnsupportedResponseShape,
)
from agentloop.executor import RequestExecutor
from agentloop.service import CompletionService
from agentloop.tools import FunctionTool, Tool, ToolRegistry

__all__ = [
    "Agent",
    "Continue",
    "Out",
    "Unexpected",
    "RequestExecutor",
    "CompletionService",
    "BudgetTracker",
    "DebugRecorder",
    "Settings",
    "SamplingSettings",
    "Tool",
    "FunctionTool",
    "ToolRegistry",
    # Errors
    "AgentLoopError",
    "AllAttemptsTimedOut",
    "AttemptTimeout",
    "BudgetExceeded",
    "ConfigurationError",
    "RetryExhausted",
    "SchemaMismatch",
    "ToolError",
    "TransportFailure",
    "TurnLimitExceeded",
    "UnexpectedResponse",
    "UnknownTool",
    "UnsupportedResponseShape",
]
