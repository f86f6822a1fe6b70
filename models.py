"""Request, message and response types for the document-edit relay."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CORS_ALLOW_ORIGIN = {"Access-Control-Allow-Origin": "*"}

CORS_PREFLIGHT_HEADERS = {
    **CORS_ALLOW_ORIGIN,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

JSON_HEADERS = {"Content-Type": "application/json", **CORS_ALLOW_ORIGIN}

EVENT_STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    **CORS_ALLOW_ORIGIN,
    "Cache-Control": "no-cache",
}


@dataclass
class EditRequest:
    """An editing request from the document-editing client."""

    prompt: str
    markdown: str = ""
    selected_text: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> EditRequest:
        """
        Build from a decoded JSON body.

        Non-object bodies and non-string fields are read as absent, so a
        malformed request ends up failing prompt validation.
        """
        if not isinstance(payload, dict):
            payload = {}
        prompt = payload.get("prompt")
        markdown = payload.get("markdown")
        selected = payload.get("selectedText")
        return cls(
            prompt=prompt if isinstance(prompt, str) else "",
            markdown=markdown if isinstance(markdown, str) else "",
            selected_text=selected if isinstance(selected, str) else None,
        )

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt.strip())


@dataclass(frozen=True)
class ChatMessage:
    """One chat message sent to the completion API."""

    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class RelayResponse:
    """The response object handed back to the function gateway."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @classmethod
    def json_response(cls, status_code: int, payload: Dict[str, Any]) -> RelayResponse:
        return cls(status_code=status_code, headers=dict(JSON_HEADERS), body=json.dumps(payload))

    @classmethod
    def error(
        cls,
        status_code: int,
        message: str,
        *,
        expose: bool = True,
        **diagnostics: Any,
    ) -> RelayResponse:
        """
        JSON error response.

        Diagnostics (details, errorName, stack, ...) are only included when
        expose is set; None values are dropped.
        """
        payload: Dict[str, Any] = {"error": message}
        if expose:
            payload.update({k: v for k, v in diagnostics.items() if v is not None})
        return cls.json_response(status_code, payload)

    @classmethod
    def event_stream(cls, body: str) -> RelayResponse:
        return cls(status_code=200, headers=dict(EVENT_STREAM_HEADERS), body=body)

    @classmethod
    def preflight(cls) -> RelayResponse:
        return cls(status_code=200, headers=dict(CORS_PREFLIGHT_HEADERS), body="")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the gateway response shape."""
        return {"statusCode": self.status_code, "headers": dict(self.headers), "body": self.body}


def build_upstream_payload(
    messages: List[ChatMessage],
    *,
    model: str,
    max_tokens: int,
    temperature: float,
) -> Dict[str, Any]:
    """Completion request body; everything but the messages is configuration."""
    return {
        "model": model,
        "messages": [m.to_dict() for m in messages],
        "stream": True,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
