"""Content fingerprints for scraped records.

The set of fields we can pull off the page has changed over time. Each field
set that was ever used to key the ledger is kept here as a *generation*, so a
request recorded under an old formula is still recognised today. Generation 0
is the current one and is the only "primary" key; the rest exist purely for
lookups against older ledgers.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Callable, List, Tuple

from .models import Record
from .normalize import cap_text


FINGERPRINT_HEX_CHARS = 16


@dataclass(frozen=True)
class Generation:
    name: str
    # (serialized key, extractor) pairs in serialization order.
    fields: Tuple[Tuple[str, Callable[[Record], str]], ...]

    def payload(self, record: Record) -> str:
        obj = {key: get(record) for key, get in self.fields}
        # dict preserves insertion order, so key order is fixed by `fields`.
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


GENERATIONS: Tuple[Generation, ...] = (
    Generation(
        name="v3",
        fields=(
            ("p", lambda r: r.price),
            ("u", lambda r: r.user),
            ("d", lambda r: cap_text(r.description)),
            ("w", lambda r: r.when),
            ("l", lambda r: r.link),
        ),
    ),
    Generation(
        name="v2",
        fields=(
            ("t", lambda r: r.title),
            ("d", lambda r: r.description),
            ("w", lambda r: r.when),
            ("p", lambda r: r.price),
            ("l", lambda r: r.link),
        ),
    ),
    Generation(
        name="v1",
        fields=(
            ("t", lambda r: r.title),
            ("m", lambda r: r.meta),
            ("w", lambda r: r.when),
            ("p", lambda r: r.price),
            ("l", lambda r: r.link),
        ),
    ),
)

PRIMARY = GENERATIONS[0]


def digest(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:FINGERPRINT_HEX_CHARS]


def fingerprint(record: Record, generation: Generation = PRIMARY) -> str:
    return digest(generation.payload(record))


def fingerprints(record: Record) -> List[Tuple[str, str]]:
    """Return [(generation name, fingerprint)], most current generation first."""
    return [(g.name, fingerprint(record, g)) for g in GENERATIONS]


def primary_fingerprint(record: Record) -> str:
    return fingerprint(record, PRIMARY)
