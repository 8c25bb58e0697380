from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .normalize import clean_text


@dataclass(frozen=True)
class Record:
    """One request row scraped from the concierge page.

    Every field is already cleaned (see `normalize.clean_text`); build instances
    through `Record.create` / `Record.from_raw` so that invariant holds.
    """

    title: str
    link: str
    user: str = ""
    price: str = ""
    description: str = ""
    when: str = ""
    # Only the oldest fingerprint generation reads this. Current pages never fill it.
    meta: str = ""

    @classmethod
    def create(
        cls,
        *,
        title: Any = None,
        link: Any = None,
        user: Any = None,
        price: Any = None,
        description: Any = None,
        when: Any = None,
        meta: Any = None,
        page_url: str = "",
    ) -> "Record":
        return cls(
            title=clean_text(title),
            link=clean_text(link) or clean_text(page_url),
            user=clean_text(user),
            price=clean_text(price),
            description=clean_text(description),
            when=clean_text(when),
            meta=clean_text(meta),
        )

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], page_url: str = "") -> "Record":
        """Build from a loose dict; accepts `desc` as an alias of `description`."""
        return cls.create(
            title=raw.get("title"),
            link=raw.get("link"),
            user=raw.get("user"),
            price=raw.get("price"),
            description=raw.get("description", raw.get("desc")),
            when=raw.get("when"),
            meta=raw.get("meta"),
            page_url=page_url,
        )
