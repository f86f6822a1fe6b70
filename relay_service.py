"""
Local HTTP front for the document-edit relay.

Stands in for the function gateway during development: every POST/OPTIONS
request is turned into a gateway event and answered with the relay response.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI, Request, Response

from config import load_config
from logger import StructuredLog, setup_logging
from relay_handler import RequestHandler
from utils import dump_config, load_env_files

# Load environment
load_env_files()

# Load configuration
config = load_config()
config.validate()

# Initialize logging
log = setup_logging(config.log_path)
dump_config(config)

app = FastAPI(
    title="docedit-relay",
    version="1.0.0",
)


async def request_to_event(request: Request) -> Dict[str, Any]:
    """Translate an incoming HTTP request into the gateway event shape."""
    raw = await request.body()
    return {
        "httpMethod": request.method,
        "path": request.url.path,
        "headers": dict(request.headers),
        "body": raw.decode("utf-8", errors="replace") if raw else None,
    }


@app.get("/healthz")
async def healthz() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.api_route("/{path:path}", methods=["POST", "OPTIONS"])
async def relay(request: Request) -> Response:
    """Relay an editing request."""
    handler = RequestHandler(config, StructuredLog(log))
    result = await handler.handle(await request_to_event(request))
    return Response(
        content=result["body"],
        status_code=result["statusCode"],
        headers=result["headers"],
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.port, reload=False)
