"""
Document-edit relay handler.

Takes a gateway event {httpMethod, path, headers, body}, builds a prompt from
the editing request, relays it to the completion API and returns
{statusCode, headers, body} with the reframed event stream.
"""

from __future__ import annotations

import asyncio
import json
import traceback
from typing import Any, Callable, Dict, List, Optional, Tuple

from budget import apply_budget
from config import AppConfig, load_config
from logger import StructuredLog, setup_logging
from models import ChatMessage, EditRequest, RelayResponse
from prompts import MODE_SELECTION, build_messages
from upstream import UpstreamClient

MessageBuilder = Callable[[str, Optional[str], str], Tuple[str, List[ChatMessage]]]


class RequestHandler:
    """Validate an editing request and relay it upstream."""

    def __init__(
        self,
        config: AppConfig,
        log: Optional[StructuredLog] = None,
        upstream: Optional[UpstreamClient] = None,
        message_builder: MessageBuilder = build_messages,
    ) -> None:
        self._config = config
        self._log = log or StructuredLog()
        self._upstream = upstream or UpstreamClient(config, self._log)
        self._build_messages = message_builder

    async def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Handle one gateway event; always returns a response dict."""
        return (await self.respond(event)).to_dict()

    async def respond(self, event: Dict[str, Any]) -> RelayResponse:
        self._log.info(
            "Lambda function invoked",
            httpMethod=event.get("httpMethod"),
            path=event.get("path"),
            headers=event.get("headers"),
        )

        if event.get("httpMethod") == "OPTIONS":
            self._log.info("CORS preflight request handled")
            return RelayResponse.preflight()

        try:
            return await self._relay(event)
        except Exception as e:
            self._log.error(
                "Unhandled error in Lambda handler",
                e,
                eventType=type(event).__name__,
                hasBody=bool(event.get("body")),
            )
            return RelayResponse.error(
                500,
                "Internal server error",
                expose=self._config.expose_internal_errors,
                details=str(e),
                errorName=type(e).__name__,
                stack="".join(traceback.format_exception(type(e), e, e.__traceback__)),
            )

    async def _relay(self, event: Dict[str, Any]) -> RelayResponse:
        raw_body = event.get("body") or "{}"
        try:
            payload = json.loads(raw_body)
        except (json.JSONDecodeError, TypeError) as e:
            self._log.error("Failed to parse request body", e, body=raw_body)
            return RelayResponse.error(400, "Invalid JSON in request body")

        req = EditRequest.from_payload(payload)
        self._log.info(
            "Request parsed",
            hasPrompt=bool(req.prompt),
            markdownLength=len(req.markdown),
            hasSelectedText=bool(req.selected_text),
        )

        if not req.has_prompt:
            self._log.warn("Request validation failed: prompt is required")
            return RelayResponse.error(400, "Prompt is required")

        markdown = apply_budget(req.markdown, self._config.max_content_tokens, self._log)

        mode, messages = self._build_messages(req.prompt, req.selected_text, markdown)
        if mode == MODE_SELECTION:
            self._log.info("Using selected text mode", selectedTextLength=len(req.selected_text or ""))
        else:
            self._log.info("Using full document mode")

        return await self._upstream.complete(messages)


def lambda_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Serverless entry point: one isolated invocation per event."""
    config = load_config()
    setup_logging(config.log_path)
    handler = RequestHandler(config)
    return asyncio.run(handler.handle(event))
