"""Best-effort transcript capture for completion calls.

Each completion attempt gets a slot ``<prefix>-<12-digit index>`` in the
debug directory. The slot file holds a human-readable rendering of the
request and response; ``<slot>.jsonl`` holds the same data as JSON lines.
Write failures are logged and never fail the completion call.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import os
import shutil
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from agentloop.schemas import CompletionRequest, CompletionResponse

logger = logging.getLogger(__name__)

STRUCTURED_SUFFIX = ".jsonl"


class DebugRecorder:
    """Writes request/response transcripts into one directory.

    The sequence counter is shared by every executor and agent holding this
    recorder; indices are unique and strictly increasing per call.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self._counter = itertools.count()
        self._lock = threading.Lock()

    @classmethod
    def for_process(cls, root: Path | str) -> DebugRecorder:
        """Create a recorder in ``<root>/<pid>``.

        A directory left by an earlier process with the same pid is cleared.
        """
        path = Path(root) / str(os.getpid())
        if path.exists():
            logger.warning("PID clash?! %s", path)
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)
        return cls(path)

    def next_slot(self, prefix: str = "llm") -> Path:
        """Issue the next transcript path."""
        with self._lock:
            idx = next(self._counter)
        return self.directory / f"{prefix}-{idx:012d}"

    @staticmethod
    def slot_index(slot: Path) -> int:
        """Parse the sequence index back out of a slot path."""
        return int(slot.name.rsplit("-", 1)[1].split(".", 1)[0])

    async def record_request(self, slot: Path, request: CompletionRequest) -> None:
        await self._write(
            slot,
            lambda: (render_request(request), {"kind": "request", "request": request.to_openai()}),
            truncate=True,
        )

    async def record_response(self, slot: Path, response: CompletionResponse) -> None:
        await self._write(
            slot,
            lambda: (
                render_response(response),
                {"kind": "response", "response": response.model_dump(mode="json")},
            ),
            truncate=False,
        )

    async def _write(
        self,
        slot: Path,
        build: Callable[[], tuple[str, dict[str, Any]]],
        *,
        truncate: bool,
    ) -> None:
        # Rendering is inside the guard too: nothing here may fail the call
        try:
            text, record = build()
            await asyncio.to_thread(_write_pair, slot, text, record, truncate)
        except Exception as e:
            logger.warning("Fail to save llm debug %s due to %s", slot, e)


def _write_pair(slot: Path, text: str, record: dict[str, Any], truncate: bool) -> None:
    mode = "w" if truncate else "a"
    line = json.dumps(record, ensure_ascii=False)
    with open(slot, mode, encoding="utf-8") as fp:
        fp.write(text)
    structured = slot.with_name(slot.name + STRUCTURED_SUFFIX)
    with open(structured, mode, encoding="utf-8") as fp:
        fp.write(line + "\n")


# ---------------------------------------------------------------------------
# Human-readable rendering
# ---------------------------------------------------------------------------


def render_request(request: CompletionRequest) -> str:
    lines = [f"====Request==== model={request.model}"]
    for msg in request.messages:
        lines.append(f"[{msg.role.value}]")
        if msg.content is not None:
            lines.append(msg.content)
        if msg.refusal is not None:
            lines.append(f"(refusal) {msg.refusal}")
        for tc in msg.tool_calls:
            lines.append(f"(tool_call {tc.id}) {tc.name}({tc.arguments})")
    if request.tools:
        lines.append("====Tools====")
        for tool in request.tools:
            lines.append(f"{tool.name}: {tool.description or ''}")
            lines.append(json.dumps(tool.parameters, indent=2))
    return "\n".join(lines) + "\n"


def render_response(response: CompletionResponse) -> str:
    lines = ["", "====Resp====="]
    for choice in response.choices:
        reason = choice.finish_reason.value if choice.finish_reason else "none"
        lines.append(f"[choice {choice.index}] finish_reason={reason}")
        msg = choice.message
        if msg.content is not None:
            lines.append(msg.content)
        if msg.refusal is not None:
            lines.append(f"(refusal) {msg.refusal}")
        for tc in msg.tool_calls or []:
            lines.append(f"(tool_call {tc.id}) {tc.name}({tc.arguments})")
    if response.usage is not None:
        lines.append(
            f"====Usage==== prompt={response.usage.prompt_tokens} "
            f"completion={response.usage.completion_tokens}"
        )
    return "\n".join(lines) + "\n"
