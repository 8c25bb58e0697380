import json
from pathlib import Path

import pytest

from conciergewatch.config import AppConfig
from conciergewatch.fingerprint import GENERATIONS, fingerprint, fingerprints, primary_fingerprint
from conciergewatch.formatting import NOTHING_FOUND_MESSAGE
from conciergewatch.ledger import LedgerState, load_state, mark_all, save_state, state_path
from conciergewatch.models import Record
from conciergewatch.seeding import Transition
from conciergewatch.watch import run_once


NOW = 1_760_000_000_000


class FakeSink:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, content):
        self.sent.append(content)
        return not self.fail


def _cfg(tmp_path: Path, **kw) -> AppConfig:
    base = dict(webhook_url="https://discord.test/hook", state_dir=tmp_path, delay_ms=0)
    base.update(kw)
    return AppConfig(**base)


def _rec(i, **kw):
    base = dict(price=f"${i}0", user=f"user{i}", description=f"request {i}", link=f"https://x/{i}")
    base.update(kw)
    return Record.create(title=f"{base['price']} — {base['user']}", **base)


def _run(cfg, records, sink, sleeps=None):
    return run_once(
        cfg,
        fetch=lambda _cfg: records,
        sink=sink,
        sleep=(sleeps.append if sleeps is not None else (lambda _s: None)),
        clock=lambda: NOW,
    )


def _initialized_state(tmp_path, records=()):
    state = LedgerState()
    for r in records:
        mark_all(state, r, NOW - 1000)
    state.mark_initialized()
    save_state(state_path(tmp_path), state)
    return state


def test_first_run_broadcasts_one_summary(tmp_path):
    sink = FakeSink()
    records = [_rec(1), _rec(2), _rec(3)]
    report = _run(_cfg(tmp_path, first_run=True), records, sink)

    assert report.transition is Transition.BROADCAST_SEED
    assert len(sink.sent) == 1
    assert "**3** current request(s)" in sink.sent[0]

    state = load_state(state_path(tmp_path))
    assert state.initialized and state.initialized_at
    for r in records:
        for _, fp in fingerprints(r):
            assert state.sent[fp] == NOW


def test_first_run_with_nothing_visible(tmp_path):
    sink = FakeSink()
    _run(_cfg(tmp_path, first_run=True), [], sink)
    assert sink.sent == [NOTHING_FOUND_MESSAGE]
    assert load_state(state_path(tmp_path)).initialized


def test_silent_seed_sends_nothing(tmp_path):
    sink = FakeSink()
    records = [_rec(1), _rec(2)]
    report = _run(_cfg(tmp_path, first_run=False, seed_if_empty=True), records, sink)

    assert report.transition is Transition.SILENT_SEED
    assert sink.sent == []
    state = load_state(state_path(tmp_path))
    assert state.initialized
    assert all(primary_fingerprint(r) in state.sent for r in records)


def test_first_run_flag_left_on_behaves_incrementally(tmp_path):
    _initialized_state(tmp_path, [_rec(1)])
    sink = FakeSink()
    report = _run(_cfg(tmp_path, first_run=True), [_rec(1), _rec(2)], sink)

    assert report.transition is Transition.INCREMENTAL
    assert report.new == 1
    assert len(sink.sent) == 1
    assert "Initial seed" not in sink.sent[0]
    assert "user2" in sink.sent[0]


def test_incremental_delivers_only_unseen_and_migrates_legacy(tmp_path):
    old, fresh = _rec(1), _rec(2)
    state = LedgerState(sent={fingerprint(old, GENERATIONS[1]): NOW - 5000})
    state.mark_initialized()
    save_state(state_path(tmp_path), state)

    sink = FakeSink()
    report = _run(_cfg(tmp_path, first_run=False), [old, fresh], sink)

    assert report.new == 1 and report.migrated == 1
    assert len(sink.sent) == 1 and "user2" in sink.sent[0]

    saved = load_state(state_path(tmp_path))
    assert saved.sent[primary_fingerprint(old)] == NOW - 5000
    assert saved.sent[primary_fingerprint(fresh)] == NOW


def test_duplicate_rows_in_one_run_are_delivered_once(tmp_path):
    _initialized_state(tmp_path)
    raw = {"title": "$50 reward", "user": "alice", "link": "https://x/1"}
    records = [Record.from_raw(raw), Record.from_raw(raw)]
    sink = FakeSink()
    report = _run(_cfg(tmp_path, first_run=False), records, sink)

    assert report.new == 1
    assert len(sink.sent) == 1
    saved = load_state(state_path(tmp_path))
    primary_keys = [k for k in saved.sent if k == primary_fingerprint(records[0])]
    assert len(primary_keys) == 1
    assert len(saved.sent) == len(GENERATIONS)


def test_nothing_new_still_persists_pruning(tmp_path):
    state = _initialized_state(tmp_path, [_rec(1)])
    state.sent["ancient"] = NOW - 100 * 24 * 60 * 60 * 1000
    save_state(state_path(tmp_path), state)

    sink = FakeSink()
    report = _run(_cfg(tmp_path, first_run=False), [_rec(1)], sink)

    assert report.new == 0 and report.pruned == 1
    assert sink.sent == []
    assert "ancient" not in load_state(state_path(tmp_path)).sent


def test_delivery_failure_still_marks_seen(tmp_path):
    _initialized_state(tmp_path)
    cfg = _cfg(tmp_path, first_run=False)
    report = _run(cfg, [_rec(1), _rec(2)], FakeSink(fail=True))
    assert report.failed == 2 and report.delivered == 0

    sink = FakeSink()
    again = _run(cfg, [_rec(1), _rec(2)], sink)
    assert again.new == 0
    assert sink.sent == []


def test_messages_are_throttled(tmp_path):
    _initialized_state(tmp_path)
    sleeps = []
    _run(_cfg(tmp_path, first_run=False, delay_ms=750), [_rec(1), _rec(2), _rec(3)], FakeSink(), sleeps)
    assert sleeps == [0.75, 0.75]


def test_fetch_error_leaves_ledger_untouched(tmp_path):
    _initialized_state(tmp_path, [_rec(1)])
    before = state_path(tmp_path).read_text(encoding="utf-8")

    def broken(_cfg):
        raise RuntimeError("browser crashed")

    with pytest.raises(RuntimeError):
        run_once(_cfg(tmp_path, first_run=False), fetch=broken, sink=FakeSink(), clock=lambda: NOW)
    assert state_path(tmp_path).read_text(encoding="utf-8") == before


def test_uninitialized_ledger_with_history_runs_incrementally(tmp_path):
    p = state_path(tmp_path)
    state = LedgerState()
    mark_all(state, _rec(1), NOW - 1000)
    p.write_text(json.dumps({"sent": state.sent}), encoding="utf-8")

    sink = FakeSink()
    report = _run(_cfg(tmp_path, first_run=False), [_rec(1), _rec(2)], sink)
    assert report.transition is Transition.INCREMENTAL
    assert report.new == 1
    assert load_state(p).initialized
