"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- A recording stand-in for the structured log collaborator
- Test configuration and httpx mock transports
- Test environment setup
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

# Add parent directory to Python path so tests can import project modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set early enough for collection: relay_service loads config at import time.
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_COLOR", "false")

from config import AppConfig  # noqa: E402


class RecordingLog:
    """Structured log double that keeps every call."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str, Dict[str, Any]]] = []

    def info(self, message: str, **data: Any) -> None:
        self.records.append(("INFO", message, data))

    def warn(self, message: str, **data: Any) -> None:
        self.records.append(("WARN", message, data))

    def error(self, message: str, exc: Optional[BaseException] = None, **data: Any) -> None:
        if exc is not None:
            data = {"exc": exc, **data}
        self.records.append(("ERROR", message, data))

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [m for lvl, m, _ in self.records if level is None or lvl == level]

    def find(self, message: str) -> Dict[str, Any]:
        for _, m, data in self.records:
            if m == message:
                return data
        raise AssertionError(f"no log record {message!r}; got {self.messages()}")


@dataclass
class RecordingTransport:
    """httpx.MockTransport wrapper counting outbound requests."""

    respond: Callable[[httpx.Request], httpx.Response]
    requests: List[httpx.Request] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def recording_log():
    return RecordingLog()


@pytest.fixture
def test_config():
    """Create test configuration."""
    return AppConfig(
        openai_api_key="test-key",
        openai_base_url="https://api.openai.test/v1",
        model="gpt-4o",
        max_output_tokens=4000,
        temperature=0.3,
        max_content_tokens=22000,
        request_timeout_s=5.0,
        stream_line_reassembly=False,
        expose_internal_errors=True,
        port=8000,
        log_level="DEBUG",
        log_path="",
        user_agent="test-agent",
    )


@pytest.fixture
def make_transport():
    """Build a RecordingTransport from a response callable."""
    return RecordingTransport


def sse_stream(*lines: str) -> bytes:
    """Encode upstream SSE lines, each followed by a blank line."""
    return "".join(f"{ln}\n\n" for ln in lines).encode("utf-8")
