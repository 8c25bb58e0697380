from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import Record
from .normalize import snippet


# Discord rejects message content above 2000 characters.
MAX_MESSAGE_CHARS = 2000
# Summary chunks stay well under the hard limit.
SUMMARY_CHUNK_CHARS = 1900
SUMMARY_SNIPPET_CHARS = 140

NOTHING_FOUND_MESSAGE = "ℹ️ Initial seed: no requests visible right now."


def _headline(record: Record, fallback: str) -> str:
    bits = []
    if record.price:
        bits.append(record.price)
    if record.user:
        bits.append(f"by {record.user}")
    return " — ".join(bits) if bits else fallback


def format_item(record: Record, page_url: str = "") -> str:
    """One Discord message for one new request. Empty fields are left out."""
    headline = _headline(record, record.title or "New Request")
    link = record.link or page_url

    def compose(desc: str) -> str:
        lines = [f"**{headline}**"]
        if desc:
            lines.append(f"> {desc}")
        if record.when:
            lines.append(f"**When:** {record.when}")
        if link:
            lines.append(link)
        return "\n".join(lines)

    content = compose(record.description)
    if len(content) <= MAX_MESSAGE_CHARS:
        return content

    overflow = len(content) - MAX_MESSAGE_CHARS
    keep = max(0, len(record.description) - overflow - 1)
    content = compose(snippet(record.description, keep) if keep else "")
    return content[:MAX_MESSAGE_CHARS]


def _summary_line(record: Record, page_url: str) -> str:
    parts = [f"• **{_headline(record, 'Request')}**"]
    if record.description:
        parts.append(f"— {snippet(record.description, SUMMARY_SNIPPET_CHARS)}")
    parts.append(f"\n{record.link or page_url}")
    return " ".join(parts)


def format_summary_lines(records: Sequence[Record], page_url: str = "") -> List[str]:
    """One compact line per record, in page order."""
    return [_summary_line(r, page_url) for r in records]


def summary_header(count: int) -> str:
    return f"✅ Initial seed: **{count}** current request(s) found"


def chunk_lines(header: str, lines: Iterable[str], limit: int = SUMMARY_CHUNK_CHARS) -> List[str]:
    """Pack header + lines into messages of at most `limit` chars.

    Blocks are separated by a blank line; a line never straddles two chunks.
    """
    chunks: List[str] = []
    buf = header + "\n\n" if header else ""
    for ln in lines:
        if len(ln) > limit:
            ln = ln[: limit - 1] + "…"
        if len(buf + ln) > limit and buf.strip():
            chunks.append(buf.rstrip())
            buf = ""
        buf += ln + "\n\n"
    if buf.strip():
        chunks.append(buf.rstrip())
    return chunks


def summary_messages(records: Sequence[Record], page_url: str = "") -> List[str]:
    if not records:
        return [NOTHING_FOUND_MESSAGE]
    return chunk_lines(summary_header(len(records)), format_summary_lines(records, page_url))
