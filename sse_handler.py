"""Server-Sent Events (SSE) reframing of the upstream completion stream."""

from __future__ import annotations

import enum
import json
from typing import Any, List, Optional

from logger import StructuredLog

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"{DATA_PREFIX}{DONE_SENTINEL}\n\n"

# Upper bound on upstream text copied into a warning
LOG_SNIPPET_CHARS = 100


def sse_content_frame(content: str) -> str:
    """Serialize one text fragment as a normalized `data: {"content": ...}` frame."""
    payload = json.dumps({"content": content}, ensure_ascii=False, separators=(",", ":"))
    return f"{DATA_PREFIX}{payload}\n\n"


def is_done_data_line(line: str) -> bool:
    """
    Accept: "data: [DONE]" / "data:  [DONE]  " (tolerate whitespace around the sentinel)
    """
    if not line.startswith(DATA_PREFIX):
        return False
    return line[len(DATA_PREFIX):].strip() == DONE_SENTINEL


def extract_delta_content(obj: Any) -> Optional[str]:
    """Return choices[0].delta.content when it is a non-empty string."""
    if not isinstance(obj, dict):
        return None
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    ch0 = choices[0]
    if not isinstance(ch0, dict):
        return None
    delta = ch0.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class StreamState(enum.Enum):
    RECEIVING = "receiving"
    DONE = "done"


class StreamReframer:
    """
    Turn the upstream `chat.completion.chunk` stream into `{"content": ...}` frames.

    Chunks are fed as they arrive and split on newlines. By default a line cut
    by a chunk boundary is not reassembled: its first half fails to decode and
    its second half lacks the data prefix, so both are dropped. Pass
    reassemble_lines=True to carry the unterminated tail of a chunk over to the
    next one instead.

    Output accumulates in a single buffer that is returned once, after the
    upstream stream has ended.
    """

    def __init__(self, log: StructuredLog, *, reassemble_lines: bool = False) -> None:
        self._log = log
        self._reassemble_lines = reassemble_lines
        self._pending = ""
        self._parts: List[str] = []
        self.state = StreamState.RECEIVING
        self.chunk_count = 0

    @property
    def body(self) -> str:
        return "".join(self._parts)

    @property
    def size(self) -> int:
        return sum(len(p) for p in self._parts)

    def feed(self, chunk: str) -> None:
        """Consume one chunk of decoded upstream text."""
        self.chunk_count += 1
        if self._reassemble_lines:
            text = self._pending + chunk
            lines = text.split("\n")
            self._pending = lines.pop()
        else:
            lines = chunk.split("\n")
        for line in lines:
            self._consume_line(line)

    def close(self) -> str:
        """Flush any carried-over partial line and return the full body."""
        if self._pending:
            pending, self._pending = self._pending, ""
            self._consume_line(pending)
        return self.body

    def _consume_line(self, line: str) -> None:
        if not line.startswith(DATA_PREFIX):
            return
        if is_done_data_line(line):
            self._parts.append(DONE_FRAME)
            self.state = StreamState.DONE
            return

        data = line[len(DATA_PREFIX):].strip()

        if not data:
            return

        try:
            obj = json.loads(data)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, oversized integer literals and runaway nesting
            self._log.warn(
                "Failed to parse streaming chunk",
                error=str(e),
                chunk=data[:LOG_SNIPPET_CHARS],
            )
            return

        content = extract_delta_content(obj)
        if content is not None:
            self._parts.append(sse_content_frame(content))
