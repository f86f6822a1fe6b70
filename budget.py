"""Token estimation and head/tail truncation of document content.

Tokens are approximated as one per four characters. This is a coarse
heuristic on raw string length, not a tokenizer.
"""

from __future__ import annotations

import math

from logger import StructuredLog

CHARS_PER_TOKEN = 4
HEAD_SHARE = 0.6
TAIL_SHARE = 0.2
TRUNCATION_MARKER = "\n\n[... middle section truncated for length ...]\n\n"


def estimate_tokens(text: str) -> int:
    """Estimate token count from text using character heuristic."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_content(content: str, max_tokens: int, log: StructuredLog) -> str:
    """
    Keep the head and tail of oversized content and drop the middle.

    In-budget content is returned unchanged. Otherwise the result holds the
    first 60% and the last 20% of the character budget around a fixed marker.

    The tail is sliced from len(content) - tail, assuming content is longer
    than head + tail. That holds whenever truncation fires for realistic
    budgets, but is not guaranteed for tiny max_tokens values.
    """
    estimated = estimate_tokens(content)
    if estimated <= max_tokens:
        return content

    log.warn(
        "Content truncation required",
        originalTokens=estimated,
        maxTokens=max_tokens,
        truncationPercentage=f"{(estimated - max_tokens) / estimated * 100:.2f}",
    )

    max_chars = max_tokens * CHARS_PER_TOKEN
    head = math.floor(max_chars * HEAD_SHARE)
    tail = math.floor(max_chars * TAIL_SHARE)
    return content[:head] + TRUNCATION_MARKER + content[len(content) - tail:]


def apply_budget(markdown: str, max_tokens: int, log: StructuredLog) -> str:
    """Return the document content to send, truncated if over budget."""
    markdown_tokens = estimate_tokens(markdown)
    needs_truncation = markdown_tokens > max_tokens
    log.info(
        "Token estimation",
        markdownTokens=markdown_tokens,
        maxContentTokens=max_tokens,
        needsTruncation=needs_truncation,
    )
    if not needs_truncation:
        return markdown

    log.warn("Truncating markdown", **{"from": markdown_tokens, "to": max_tokens})
    return truncate_content(markdown, max_tokens, log)
