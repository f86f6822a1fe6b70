"""Utility functions for the document-edit relay."""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

from config import AppConfig
from logger import LOGGER_NAME, mask_secret

log = logging.getLogger(LOGGER_NAME)


def load_env_files() -> None:
    """Load .env files from program and current directory."""
    this_dir = Path(__file__).resolve().parent
    p1 = this_dir / ".env"
    p2 = Path.cwd() / ".env"

    loaded_any = False
    if p1.exists():
        loaded_any = load_dotenv(dotenv_path=str(p1), override=True) or loaded_any
        log.info("Loaded .env from %s", str(p1))
    else:
        log.debug("No .env in program directory: %s", str(p1))

    if p2.exists() and p2 != p1:
        loaded_any = load_dotenv(dotenv_path=str(p2), override=True) or loaded_any
        log.info("Loaded .env from %s", str(p2))
    elif p2 != p1:
        log.debug("No .env in current directory: %s", str(p2))

    if not loaded_any:
        log.debug(".env not loaded (not found or no variables applied).")


def dump_config(config: AppConfig) -> None:
    """Log effective configuration at startup."""
    log.info("=== Document-edit relay startup config ===")
    log.info("OPENAI_BASE_URL=%s", config.openai_base_url)
    log.info(
        "OPENAI_API_KEY_set=%s value=%s len=%s",
        config.has_api_key,
        mask_secret(config.openai_api_key),
        len(config.openai_api_key or ""),
    )
    log.info("OPENAI_MODEL=%s", config.model)
    log.info("MAX_OUTPUT_TOKENS=%s", config.max_output_tokens)
    log.info("TEMPERATURE=%s", config.temperature)
    log.info("MAX_CONTENT_TOKENS=%s", config.max_content_tokens)
    log.info("REQUEST_TIMEOUT_S=%s", config.request_timeout_s)
    log.info("STREAM_LINE_REASSEMBLY=%s", config.stream_line_reassembly)
    log.info("EXPOSE_INTERNAL_ERRORS=%s", config.expose_internal_errors)
    if config.expose_internal_errors:
        log.info("EXPOSE_INTERNAL_ERRORS=true returns stack traces to callers; trusted clients only.")
    log.info("LOG_LEVEL=%s", config.log_level)
    log.info("LOG_PATH=%s", config.log_path or "<stderr>")
    log.info("USER_AGENT=%s", config.user_agent)
    log.info("WorkingDir=%s", str(Path.cwd()))
    log.info("==========================================")
