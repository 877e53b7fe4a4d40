"""hunt_plans, load_offers, load_hunt_matches (+ archive), match_action_history, missed_loads_history, vehicle_type_mappings."""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "hunt_plans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("plan_name", sa.String(256), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("vehicle_types", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("origin_postal_code", sa.String(16), nullable=True),
        sa.Column("origin_lat", sa.Float(), nullable=True),
        sa.Column("origin_lng", sa.Float(), nullable=True),
        sa.Column("radius_miles", sa.Integer(), nullable=True),
        sa.Column("available_date", sa.Date(), nullable=True),
        sa.Column("available_time", sa.String(16), nullable=True),
        sa.Column("destination_postal_code", sa.String(16), nullable=True),
        sa.Column("destination_radius_miles", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("floor_id", sa.Integer(), nullable=True),
        sa.Column("initial_backfill_done", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_modified_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_hunt_plans_tenant_id", "hunt_plans", ["tenant_id"])
    op.create_index("ix_hunt_plans_vehicle_id", "hunt_plans", ["vehicle_id"])

    op.create_table(
        "load_offers",
        sa.Column("sequence_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("origin_postal_code", sa.String(16), nullable=True),
        sa.Column("origin_city", sa.String(128), nullable=True),
        sa.Column("origin_state", sa.String(32), nullable=True),
        sa.Column("origin_lat", sa.Float(), nullable=True),
        sa.Column("origin_lng", sa.Float(), nullable=True),
        sa.Column("destination_postal_code", sa.String(16), nullable=True),
        sa.Column("destination_city", sa.String(128), nullable=True),
        sa.Column("destination_state", sa.String(32), nullable=True),
        sa.Column("vehicle_type", sa.String(128), nullable=True),
        sa.Column("pickup_date", sa.String(64), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="new"),
        sa.Column("has_issues", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("issue_notes", sa.Text(), nullable=True),
        sa.Column("from_email", sa.String(256), nullable=True),
        sa.Column("subject", sa.String(512), nullable=True),
        sa.PrimaryKeyConstraint("sequence_id"),
        sa.UniqueConstraint("tenant_id", "external_id", name="uq_load_offers_tenant_external"),
    )
    op.create_index("ix_load_offers_tenant_id", "load_offers", ["tenant_id"])
    op.create_index("ix_load_offers_received_at", "load_offers", ["received_at"])
    op.create_index("ix_load_offers_status", "load_offers", ["status"])

    op.create_table(
        "load_hunt_matches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("load_offer_id", sa.Integer(), sa.ForeignKey("load_offers.sequence_id", ondelete="CASCADE"), nullable=False),
        sa.Column("hunt_plan_id", sa.Integer(), sa.ForeignKey("hunt_plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("distance_miles", sa.Float(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("bid_rate", sa.Float(), nullable=True),
        sa.Column("bid_by", sa.String(64), nullable=True),
        sa.Column("bid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booked_load_id", sa.String(64), nullable=True),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("matched_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("load_offer_id", "hunt_plan_id", name="uq_load_hunt_matches_offer_plan"),
    )
    op.create_index("ix_load_hunt_matches_tenant_id", "load_hunt_matches", ["tenant_id"])
    op.create_index("ix_load_hunt_matches_load_offer_id", "load_hunt_matches", ["load_offer_id"])
    op.create_index("ix_load_hunt_matches_hunt_plan_id", "load_hunt_matches", ["hunt_plan_id"])
    op.create_index("ix_load_hunt_matches_vehicle_id", "load_hunt_matches", ["vehicle_id"])
    op.create_index("ix_load_hunt_matches_status", "load_hunt_matches", ["status"])

    op.create_table(
        "load_hunt_matches_archive",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("original_match_id", sa.Integer(), nullable=False),
        sa.Column("load_offer_id", sa.Integer(), nullable=False),
        sa.Column("hunt_plan_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("distance_miles", sa.Float(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("archive_reason", sa.String(32), nullable=False, server_default="cleared"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_load_hunt_matches_archive_tenant_id", "load_hunt_matches_archive", ["tenant_id"])
    op.create_index("ix_load_hunt_matches_archive_hunt_plan_id", "load_hunt_matches_archive", ["hunt_plan_id"])

    op.create_table(
        "match_action_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("actor_name", sa.String(128), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_match_action_history_tenant_id", "match_action_history", ["tenant_id"])
    op.create_index("ix_match_action_history_match_id", "match_action_history", ["match_id"])
    op.create_index("ix_match_action_history_created_at", "match_action_history", ["created_at"])

    op.create_table(
        "missed_loads_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("load_offer_id", sa.Integer(), nullable=False),
        sa.Column("hunt_plan_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("missed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("from_email", sa.String(256), nullable=True),
        sa.Column("subject", sa.String(512), nullable=True),
        sa.Column("reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", name="uq_missed_loads_history_match_id"),
    )
    op.create_index("ix_missed_loads_history_tenant_id", "missed_loads_history", ["tenant_id"])
    op.create_index("ix_missed_loads_history_load_offer_id", "missed_loads_history", ["load_offer_id"])
    op.create_index("ix_missed_loads_history_vehicle_id", "missed_loads_history", ["vehicle_id"])

    op.create_table(
        "vehicle_type_mappings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("raw_value", sa.String(128), nullable=False),
        sa.Column("canonical_code", sa.String(64), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "raw_value", name="uq_vehicle_type_mappings_tenant_raw"),
    )
    op.create_index("ix_vehicle_type_mappings_tenant_id", "vehicle_type_mappings", ["tenant_id"])


def downgrade() -> None:
    op.drop_table("vehicle_type_mappings")
    op.drop_table("missed_loads_history")
    op.drop_table("match_action_history")
    op.drop_table("load_hunt_matches_archive")
    op.drop_table("load_hunt_matches")
    op.drop_table("load_offers")
    op.drop_table("hunt_plans")
