"""Protocol for the completion service collaborator.

The package does not ship a wire client. Any object with an async
``submit`` that returns a CompletionResponse (or raises TransportFailure
on service/network errors) can drive a RequestExecutor.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from agentloop.schemas import CompletionRequest, CompletionResponse


@runtime_checkable
class CompletionService(Protocol):
    """Submit one chat completion request."""

    async def submit(self, request: CompletionRequest) -> CompletionResponse: ...
