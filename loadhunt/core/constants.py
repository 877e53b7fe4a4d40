"""
Centralized constants for the scheduler and match lifecycle (Encapsulate What Changes).

Change job IDs or status names here instead of scattering literals across main and services.
Intervals come from engine_config (env-driven).
"""
from loadhunt.core.engine_config import (
    EXPIRATION_SWEEP_SECONDS,
    MISSED_SWEEP_SECONDS,
    REMATCH_SECONDS,
)

# Scheduler job IDs (must match ids used in main.py add_job)
MISSED_SWEEP_JOB_ID = "missed_sweep"
EXPIRATION_SWEEP_JOB_ID = "expiration_sweep"
REMATCH_JOB_ID = "backup_rematch"

MISSED_SWEEP_INTERVAL_SECONDS = MISSED_SWEEP_SECONDS
EXPIRATION_SWEEP_INTERVAL_SECONDS = EXPIRATION_SWEEP_SECONDS
REMATCH_INTERVAL_SECONDS = REMATCH_SECONDS

# Match statuses. Only "active" is actionable; "missed" lives in missed_loads_history.
MATCH_ACTIVE = "active"
MATCH_SKIPPED = "skipped"
MATCH_BID = "bid"
MATCH_BOOKED = "booked"
MATCH_WAITLIST = "waitlist"
MATCH_UNDECIDED = "undecided"
MATCH_MISSED = "missed"
MATCH_EXPIRED = "expired"
MATCH_STATUSES = (
    MATCH_ACTIVE,
    MATCH_SKIPPED,
    MATCH_BID,
    MATCH_BOOKED,
    MATCH_WAITLIST,
    MATCH_UNDECIDED,
    MATCH_MISSED,
    MATCH_EXPIRED,
)

# Load offer statuses
OFFER_NEW = "new"
OFFER_SKIPPED = "skipped"
OFFER_WAITLISTED = "waitlisted"
OFFER_REVIEWED = "reviewed"
OFFER_STATUSES = (OFFER_NEW, OFFER_SKIPPED, OFFER_WAITLISTED, OFFER_REVIEWED)

# Actor recorded in match_action_history for sweeper/engine transitions
SYSTEM_ACTOR_NAME = "system"

# Clearing matches archives them first with this reason
ARCHIVE_REASON_CLEARED = "cleared"
ARCHIVE_REASON_PLAN_DELETED = "plan_deleted"

# Hard caps so listing endpoints stay bounded
MATCH_LIST_LIMIT = 500
HISTORY_LIST_LIMIT = 1000
