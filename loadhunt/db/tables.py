"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts that the
registered models match this list exactly.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "hunt_plans",
    "load_offers",
    "load_hunt_matches",
    "load_hunt_matches_archive",
    "match_action_history",
    "missed_loads_history",
    "vehicle_type_mappings",
)

# Tables cleared when resetting matching state (TRUNCATE). Plans and offers are kept.
MATCH_TABLE_NAMES = (
    "missed_loads_history",
    "match_action_history",
    "load_hunt_matches",
)
