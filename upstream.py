"""Upstream OpenAI chat completion exchange."""

from __future__ import annotations

import errno
import json
import time
from typing import Callable, Dict, List, Optional

import httpx

from budget import estimate_tokens
from config import AppConfig
from logger import StructuredLog
from models import ChatMessage, RelayResponse, build_upstream_payload
from sse_handler import StreamReframer, StreamState


def error_code(exc: BaseException) -> Optional[str]:
    """Symbolic errno (e.g. ECONNREFUSED) from the exception chain, if any."""
    seen: Optional[BaseException] = exc
    for _ in range(10):
        if seen is None:
            break
        if isinstance(seen, OSError) and seen.errno:
            return errno.errorcode.get(seen.errno, str(seen.errno))
        seen = seen.__cause__ or seen.__context__
    return None


class Settlement:
    """
    One-shot holder for the outcome of an upstream exchange.

    The first settle() wins. Later attempts (e.g. an error raised while the
    already-settled stream is being closed) are logged and ignored.
    """

    def __init__(self, log: StructuredLog) -> None:
        self._log = log
        self._response: Optional[RelayResponse] = None
        self._source: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self._response is not None

    def settle(self, response: RelayResponse, source: str) -> bool:
        if self._response is not None:
            self._log.warn(
                "Ignoring duplicate upstream outcome",
                source=source,
                settledBy=self._source,
                statusCode=response.status_code,
            )
            return False
        self._response = response
        self._source = source
        return True

    def result(self) -> RelayResponse:
        if self._response is None:
            raise RuntimeError("upstream exchange ended without an outcome")
        return self._response


class UpstreamClient:
    """Send one streaming chat completion request and relay its outcome."""

    def __init__(
        self,
        config: AppConfig,
        log: StructuredLog,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._log = log
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self._config.openai_base_url}/chat/completions"

    def get_headers(self) -> Dict[str, str]:
        """Get default headers for the completion API."""
        return {
            "Authorization": f"Bearer {self._config.openai_api_key}",
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.request_timeout_s),
            transport=self._transport,
        )

    async def complete(self, messages: List[ChatMessage]) -> RelayResponse:
        """
        Run the exchange and return its single settled outcome.

        Failures are returned as error responses, never raised. A missing
        credential short-circuits before any network activity.
        """
        cfg = self._config
        if not cfg.has_api_key:
            self._log.error("OPENAI_API_KEY environment variable not set", RuntimeError("Missing API key"))
            return RelayResponse.error(500, "Server configuration error", details="API key not configured")

        payload = build_upstream_payload(
            messages,
            model=cfg.model,
            max_tokens=cfg.max_output_tokens,
            temperature=cfg.temperature,
        )
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")

        self._log.info(
            "Initiating OpenAI API request",
            model=cfg.model,
            maxTokens=cfg.max_output_tokens,
            temperature=cfg.temperature,
            payloadSize=len(body),
            estimatedInputTokens=estimate_tokens(body.decode("utf-8")),
        )

        settlement = Settlement(self._log)
        reframer = StreamReframer(self._log, reassemble_lines=cfg.stream_line_reassembly)
        t0 = time.monotonic()
        streaming = False

        def elapsed_ms() -> int:
            return int((time.monotonic() - t0) * 1000)

        try:
            async with self._client() as client:
                async with client.stream("POST", self.endpoint, headers=self.get_headers(), content=body) as resp:
                    self._log.info(
                        "OpenAI API response received",
                        statusCode=resp.status_code,
                        headers=dict(resp.headers),
                    )

                    if resp.status_code != 200:
                        raw = await resp.aread()
                        error_body = raw.decode("utf-8", errors="replace")
                        self._log.error(
                            "OpenAI API returned error status",
                            RuntimeError("API Error"),
                            statusCode=resp.status_code,
                            responseBody=error_body,
                        )
                        settlement.settle(
                            RelayResponse.error(
                                resp.status_code,
                                "OpenAI API error",
                                expose=cfg.expose_internal_errors,
                                statusCode=resp.status_code,
                                details=error_body,
                            ),
                            "error-body-end",
                        )
                    else:
                        streaming = True
                        await self._pump(resp, reframer, elapsed_ms)
                        out = reframer.close()
                        self._log.info(
                            "Request completed successfully",
                            duration=elapsed_ms(),
                            chunksReceived=reframer.chunk_count,
                            responseSize=len(out),
                        )
                        settlement.settle(RelayResponse.event_stream(out), "success-end")
        except httpx.TimeoutException as e:
            self._log.error(
                "Request timeout",
                e,
                hostname=self._hostname(),
                duration=elapsed_ms(),
            )
            settlement.settle(
                RelayResponse.error(
                    500,
                    "Request timed out",
                    expose=cfg.expose_internal_errors,
                    details=str(e) or "Request timed out",
                    errorName=type(e).__name__,
                ),
                "timeout",
            )
        except httpx.WriteError as e:
            self._log.error("Failed to write request payload", e, payloadSize=len(body))
            settlement.settle(
                RelayResponse.error(
                    500,
                    "Failed to send request",
                    expose=cfg.expose_internal_errors,
                    details=str(e),
                ),
                "write-error",
            )
        except httpx.HTTPError as e:
            if streaming:
                self._log.error(
                    "OpenAI response stream error",
                    e,
                    duration=elapsed_ms(),
                    chunksReceived=reframer.chunk_count,
                )
                response = RelayResponse.error(
                    500,
                    "OpenAI API error",
                    expose=cfg.expose_internal_errors,
                    details=str(e),
                    errorName=type(e).__name__,
                )
                source = "stream-error"
            else:
                self._log.error(
                    "HTTPS request error",
                    e,
                    hostname=self._hostname(),
                    path="/chat/completions",
                )
                response = RelayResponse.error(
                    500,
                    "Request failed",
                    expose=cfg.expose_internal_errors,
                    details=str(e),
                    errorName=type(e).__name__,
                    errorCode=error_code(e),
                )
                source = "transport-error"
            settlement.settle(response, source)

        return settlement.result()

    async def _pump(
        self,
        resp: httpx.Response,
        reframer: StreamReframer,
        elapsed_ms: Callable[[], int],
    ) -> None:
        """Feed decoded upstream text into the reframer until the stream ends."""
        done_logged = False
        async for text in resp.aiter_text():
            reframer.feed(text)
            if not done_logged and reframer.state is StreamState.DONE:
                done_logged = True
                self._log.info(
                    "OpenAI streaming completed",
                    chunksReceived=reframer.chunk_count,
                    duration=elapsed_ms(),
                    responseSize=reframer.size,
                )

    def _hostname(self) -> str:
        return httpx.URL(self._config.openai_base_url).host
