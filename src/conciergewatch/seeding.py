"""Decides how a run treats the records it sees.

    UNINITIALIZED --first_run--------------------> SEEDING      (one summary broadcast)
    UNINITIALIZED --!first_run, seed_if_empty----> INCREMENTAL  (silent seed)
    UNINITIALIZED --!first_run, history/no seed--> INCREMENTAL  (normal run)
    SEEDING / INCREMENTAL (initialized) ---------> INCREMENTAL  (normal run)

Seeding ends the run: nothing is delivered per item on that path.
"""

from __future__ import annotations

from enum import Enum

from .ledger import LedgerState


class SeedPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    SEEDING = "seeding"
    INCREMENTAL = "incremental"


class Transition(str, Enum):
    BROADCAST_SEED = "broadcast_seed"
    SILENT_SEED = "silent_seed"
    INCREMENTAL = "incremental"

    @property
    def target(self) -> SeedPhase:
        if self is Transition.BROADCAST_SEED:
            return SeedPhase.SEEDING
        return SeedPhase.INCREMENTAL

    @property
    def seeds(self) -> bool:
        return self is not Transition.INCREMENTAL


def current_phase(state: LedgerState) -> SeedPhase:
    if not state.initialized:
        return SeedPhase.UNINITIALIZED
    return SeedPhase.INCREMENTAL


def plan_transition(state: LedgerState, *, first_run: bool, seed_if_empty: bool) -> Transition:
    if current_phase(state) is not SeedPhase.UNINITIALIZED:
        # Left FIRST_RUN on after the first deploy: keep behaving incrementally.
        return Transition.INCREMENTAL
    if first_run:
        return Transition.BROADCAST_SEED
    if seed_if_empty and not state.sent:
        return Transition.SILENT_SEED
    return Transition.INCREMENTAL
