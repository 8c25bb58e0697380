from __future__ import annotations

import re
from typing import Optional


# Long enough to tell requests apart, short enough that boilerplate tails
# appended by the site don't change the hash.
DESC_FINGERPRINT_CHARS = 200

_WS_RE = re.compile(r"\s+")


def clean_text(value: Optional[str]) -> str:
    """Collapse whitespace runs to one space and trim. None -> ""."""
    if value is None:
        return ""
    return _WS_RE.sub(" ", str(value)).strip()


def cap_text(value: Optional[str], limit: int = DESC_FINGERPRINT_CHARS) -> str:
    text = clean_text(value)
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def snippet(value: Optional[str], limit: int) -> str:
    """Display-side truncation with an ellipsis marker."""
    text = clean_text(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "…"
