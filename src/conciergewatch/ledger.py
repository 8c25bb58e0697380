"""Persisted dedup ledger: fingerprint -> first-seen epoch millis.

The whole ledger lives in one small JSON file that is read at the start of a
run and rewritten at the end. Nothing here talks to the network.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import math
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .errors import StateWriteError
from .fingerprint import PRIMARY, fingerprints
from .models import Record


logger = logging.getLogger(__name__)

# Bump to start a fresh ledger file without touching older ones.
STATE_VERSION = "v1"

DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class LedgerState:
    version: str = STATE_VERSION
    initialized: bool = False
    initialized_at: Optional[str] = None
    sent: Dict[str, object] = field(default_factory=dict)

    def mark_initialized(self, when: Optional[dt.datetime] = None) -> None:
        when = when or dt.datetime.now(dt.timezone.utc)
        self.initialized = True
        self.version = STATE_VERSION
        self.initialized_at = when.isoformat(timespec="seconds").replace("+00:00", "Z")

    def to_dict(self) -> dict:
        out: dict = {"version": self.version, "initialized": self.initialized}
        if self.initialized_at:
            out["initialized_at"] = self.initialized_at
        out["sent"] = self.sent
        return out


@dataclass(frozen=True)
class SeenResult:
    seen: bool
    primary: str
    matched: Optional[str] = None
    generation: Optional[str] = None

    @property
    def legacy_only(self) -> bool:
        return self.seen and self.generation != PRIMARY.name


def now_ms() -> int:
    return int(time.time() * 1000)


def state_path(state_dir: Path, version: str = STATE_VERSION) -> Path:
    return Path(state_dir) / f"state.{version}.json"


def load_state(path: Path) -> LedgerState:
    """Read the ledger. Missing or unreadable files give a fresh state."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return LedgerState()
    except (OSError, ValueError) as e:
        logger.debug("state file %s unreadable (%s); starting fresh", path, e)
        return LedgerState()

    if not isinstance(raw, dict):
        return LedgerState()

    sent = raw.get("sent")
    initialized_at = raw.get("initialized_at")
    return LedgerState(
        version=str(raw.get("version") or STATE_VERSION),
        initialized=bool(raw.get("initialized", False)),
        initialized_at=initialized_at if isinstance(initialized_at, str) else None,
        sent=dict(sent) if isinstance(sent, dict) else {},
    )


def save_state(path: Path, state: LedgerState) -> None:
    """Atomically replace the ledger file (temp file + rename)."""
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StateWriteError(f"could not write {path}: {e}") from e


def _is_timestamp(value: object) -> bool:
    # bool is an int subclass but never a valid timestamp.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def prune(state: LedgerState, ttl_days: int, now: Optional[int] = None) -> int:
    """Drop entries older than the TTL or without a numeric timestamp."""
    now = now_ms() if now is None else now
    cutoff = now - ttl_days * DAY_MS
    stale = [k for k, ts in state.sent.items() if not _is_timestamp(ts) or ts < cutoff]
    for k in stale:
        del state.sent[k]
    if stale:
        logger.info("Pruned %d old entries from state.", len(stale))
    return len(stale)


def is_seen(state: LedgerState, record: Record) -> SeenResult:
    candidates = fingerprints(record)
    primary = candidates[0][1]
    for gen_name, fp in candidates:
        if fp in state.sent:
            return SeenResult(seen=True, primary=primary, matched=fp, generation=gen_name)
    return SeenResult(seen=False, primary=primary)


def mark_all(state: LedgerState, record: Record, ts: Optional[int] = None) -> None:
    ts = now_ms() if ts is None else ts
    for _gen, fp in fingerprints(record):
        state.sent[fp] = ts


def migrate_to_primary(state: LedgerState, result: SeenResult) -> bool:
    """Copy a legacy match's timestamp onto the primary key.

    Returns True when the ledger changed. Never marks anything as new.
    """
    if not result.legacy_only or result.primary in state.sent:
        return False
    state.sent[result.primary] = state.sent[result.matched]
    logger.debug("migrated %s (%s) -> %s", result.matched, result.generation, result.primary)
    return True
