"""
Matching: predicate, per-plan cursor, backfill and the match engine.

- predicate: date, vehicle type, then radius (or exact postal code) for one offer/plan pair.
- cursor: floor_id / initial_backfill_done bookkeeping on enable/disable.
- backfill: one-shot lookback scan when a plan is enabled.
- engine: forward and backup passes; idempotent match upsert.
"""

from loadhunt.services.matching.backfill import run_backfill, run_pending_backfills
from loadhunt.services.matching.engine import MatchEngine, PassResult, get_match_engine
from loadhunt.services.matching.predicate import MatchResult, evaluate

__all__ = [
    "MatchEngine",
    "MatchResult",
    "PassResult",
    "evaluate",
    "get_match_engine",
    "run_backfill",
    "run_pending_backfills",
]
