"""Turn the rendered concierge page into `Record`s.

Scope is deliberately narrow: only rows of the "Recently Posted Requests"
block are read, so the rest of the page (trending searches, ads) never leaks
into the ledger.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import List, Optional

from selectolax.lexbor import LexborHTMLParser, LexborNode

from .models import Record
from .normalize import clean_text


logger = logging.getLogger(__name__)

SECTION_TITLE = "Recently Posted Requests"

_URL_RE = re.compile(r"https?://[^\s)]+", re.I)
_DECODE_RE = re.compile(r"DecodeText\('([^']+)'")
_PRICE_RE = re.compile(r"\$\s*[\d,]+\s*reward", re.I)
_REWARD_RE = re.compile(r"\s+reward", re.I)
_USER_RE = re.compile(r"posted by\s+([^:]+):", re.I)
_WHEN_RES = (
    re.compile(r"\b(Today|Tomorrow|Mon|Tue|Wed|Thu|Fri|Sat|Sun)\b", re.I),
    re.compile(r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{1,2}\b", re.I),
    re.compile(r"\b\d{1,2}:\d{2}\s*(AM|PM)?\b", re.I),
)

# Elements that start a new line in the rendered text. Inline elements
# (b, a, span, ...) join their neighbours with no added space.
_BLOCK_TAGS = frozenset(
    "address article aside blockquote dd div dl dt fieldset figcaption figure footer form "
    "h1 h2 h3 h4 h5 h6 header hr li main nav ol p pre section table tbody td tfoot th thead tr ul".split()
)
# lexbor has reported text nodes under both names across releases.
_TEXT_TAGS = frozenset({"-text", "#text"})
_SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})


def _find_section(tree: LexborHTMLParser) -> Optional[LexborNode]:
    for section in tree.css(".home-trending-section"):
        for span in section.css(".home-trending-title span"):
            if SECTION_TITLE.lower() in (span.text() or "").lower():
                return section
    return None


def inner_text(node: LexborNode) -> str:
    """Approximate the browser's innerText for one row.

    Text nodes are concatenated as-is; only block elements and <br> add a
    break. Callers collapse whitespace afterwards.
    """
    parts: List[str] = []
    for child in node.iter(include_text=True):
        tag = child.tag or ""
        if tag in _TEXT_TAGS:
            parts.append(child.text(deep=True) or "")
        elif not tag[:1].isalpha() or tag in _SKIP_TAGS:
            continue
        elif tag == "br":
            parts.append("\n")
        elif tag in _BLOCK_TAGS:
            parts.append("\n" + inner_text(child) + "\n")
        else:
            parts.append(inner_text(child))
    return "".join(parts)


def _link_from_onclick(onclick: str) -> str:
    m = _DECODE_RE.search(onclick or "")
    if not m:
        return ""
    try:
        decoded = base64.b64decode(m.group(1)).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""
    u = _URL_RE.search(decoded)
    return u.group(0) if u else ""


def parse_row(text: str, onclick: str, page_url: str) -> Record:
    """Extract fields from one row's visible text (already collapsed)."""
    visible = _URL_RE.search(text)
    link = visible.group(0) if visible else _link_from_onclick(onclick)

    pm = _PRICE_RE.search(text)
    price = _REWARD_RE.sub("", pm.group(0)) if pm else ""

    um = _USER_RE.search(text)
    user = um.group(1).strip() if um else ""

    colon = text.find(":")
    desc = text[colon + 1 :].strip() if colon >= 0 else ""

    when = ""
    for rx in _WHEN_RES:
        wm = rx.search(text)
        if wm:
            when = wm.group(0)
            break

    return Record.create(
        title=f"{price or 'Request'} — {user or 'user'}",
        user=user,
        price=price,
        description=desc,
        when=when,
        link=link,
        page_url=page_url,
    )


def parse_requests(html: str, page_url: str, max_items: int = 20) -> List[Record]:
    section = _find_section(LexborHTMLParser(html)) if (html or "").strip() else None
    if section is None:
        logger.warning("Trending section not found; returning empty list.")
        return []

    rows = section.css(".home-trending-searches .home-trending-item")
    out: List[Record] = []
    for row in rows[:max_items]:
        text = clean_text(inner_text(row))
        if not text:
            continue
        out.append(parse_row(text, row.attributes.get("onclick") or "", page_url))
    return out
