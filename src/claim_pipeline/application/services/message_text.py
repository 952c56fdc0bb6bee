"""Length limits for outgoing chat messages."""

from __future__ import annotations

MAX_MESSAGE_LENGTH = 2000
RESULT_DETAIL_LIMIT = 120
ERROR_TEXT_LIMIT = 1000
_ELLIPSIS = "…"


def clip_text(text: str, limit: int) -> str:
    """Return `text` cut to at most `limit` characters, marking the cut with an ellipsis."""

    if len(text) <= limit:
        return text
    if limit <= 0:
        return ""
    if limit == 1:
        return _ELLIPSIS
    return text[: limit - 1].rstrip() + _ELLIPSIS


__all__ = ["ERROR_TEXT_LIMIT", "MAX_MESSAGE_LENGTH", "RESULT_DETAIL_LIMIT", "clip_text"]
