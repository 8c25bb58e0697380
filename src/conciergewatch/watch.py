"""One watch run: fetch -> dedup -> deliver -> persist.

Everything is sequential. The ledger file is written once, at the end of
whichever branch the run takes; if anything raises before that, the previous
file is left untouched and the next run starts from it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .alerts.discord import MessageSink, send_many
from .config import AppConfig
from .formatting import format_item, summary_messages
from .ledger import (
    LedgerState,
    is_seen,
    load_state,
    mark_all,
    migrate_to_primary,
    now_ms,
    prune,
    save_state,
    state_path,
)
from .models import Record
from .seeding import SeedPhase, Transition, current_phase, plan_transition


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunReport:
    transition: Transition
    scraped: int
    new: int = 0
    delivered: int = 0
    failed: int = 0
    pruned: int = 0
    migrated: int = 0

    def summary(self) -> str:
        return (
            f"conciergewatch: {self.transition.value} scraped={self.scraped} new={self.new} "
            f"delivered={self.delivered} failed={self.failed} pruned={self.pruned} migrated={self.migrated}"
        )


def seed(state: LedgerState, records: Sequence[Record], ts: int) -> None:
    for r in records:
        mark_all(state, r, ts)
    state.mark_initialized()


def collect_new(state: LedgerState, records: Sequence[Record], ts: int) -> tuple[List[Record], int]:
    """Mark unseen records and return them, plus the number of legacy keys migrated.

    Marking happens in the same pass that decides "new", so a duplicate later
    in the same batch is already seen.
    """
    new: List[Record] = []
    migrated = 0
    for r in records:
        result = is_seen(state, r)
        if result.seen:
            if migrate_to_primary(state, result):
                migrated += 1
            logger.debug("seen %s via %s: %s", result.primary, result.generation, r.title)
            continue
        mark_all(state, r, ts)
        new.append(r)
        logger.debug("new %s: %s", result.primary, r.title)
    return new, migrated


def run_once(
    cfg: AppConfig,
    *,
    fetch: Callable[[AppConfig], Sequence[Record]],
    sink: MessageSink,
    sleep: Callable[[float], None] = time.sleep,
    clock: Optional[Callable[[], int]] = None,
) -> RunReport:
    clock = clock or now_ms
    path = state_path(cfg.state_dir)
    state = load_state(path)
    pruned = prune(state, cfg.ttl_days, now=clock())

    records = list(fetch(cfg))
    phase = current_phase(state)
    transition = plan_transition(state, first_run=cfg.first_run, seed_if_empty=cfg.seed_if_empty)
    logger.debug("ledger %s -> %s (%s)", phase.value, transition.target.value, transition.value)
    ts = clock()

    if transition.seeds:
        delivered = failed = 0
        if transition.target is SeedPhase.SEEDING:
            logger.info("FIRST_RUN=true and state not initialized → posting summary of current items.")
            delivered, failed = send_many(
                sink, summary_messages(records, cfg.page_url), delay_ms=cfg.delay_ms, sleep=sleep
            )
        else:
            logger.info("State not initialized and FIRST_RUN=false → seeding %d item(s) silently.", len(records))
        seed(state, records, ts)
        save_state(path, state)
        report = RunReport(transition, len(records), delivered=delivered, failed=failed, pruned=pruned)
        logger.info(report.summary())
        return report

    if cfg.first_run and phase is SeedPhase.INCREMENTAL:
        logger.info("FIRST_RUN=true but state already initialized → normal run.")

    new, migrated = collect_new(state, records, ts)
    if not state.initialized:
        state.mark_initialized()

    delivered = failed = 0
    if new:
        logger.info("Posting %d new request(s) to Discord…", len(new))
        messages = [format_item(r, cfg.page_url) for r in new]
        delivered, failed = send_many(sink, messages, delay_ms=cfg.delay_ms, sleep=sleep)
    else:
        logger.info("No new items.")

    save_state(path, state)
    report = RunReport(
        transition,
        len(records),
        new=len(new),
        delivered=delivered,
        failed=failed,
        pruned=pruned,
        migrated=migrated,
    )
    logger.info(report.summary())
    return report
