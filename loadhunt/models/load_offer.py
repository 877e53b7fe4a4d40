"""
One externally-sourced load offer (from the email-parsing pipeline).

sequence_id is assigned in arrival order and is the only key used for cursor comparisons.
Rows are immutable after insert except status / has_issues.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class LoadOffer(Base):
    __tablename__ = "load_offers"

    sequence_id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(128), nullable=False)  # opaque id from the source (e.g. LH-251230-1234)
    tenant_id = Column(String(64), nullable=False, index=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    origin_postal_code = Column(String(16), nullable=True)
    origin_city = Column(String(128), nullable=True)
    origin_state = Column(String(32), nullable=True)
    origin_lat = Column(Float, nullable=True)
    origin_lng = Column(Float, nullable=True)
    destination_postal_code = Column(String(16), nullable=True)
    destination_city = Column(String(128), nullable=True)
    destination_state = Column(String(32), nullable=True)

    vehicle_type = Column(String(128), nullable=True)  # raw, canonicalized at match time
    pickup_date = Column(String(64), nullable=True)  # raw as parsed, e.g. "2025-12-19 08:00 CST"
    expires_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(String(16), nullable=False, default="new", index=True)  # new | skipped | waitlisted | reviewed
    has_issues = Column(Boolean, nullable=False, default=False)
    issue_notes = Column(Text, nullable=True)
    from_email = Column(String(256), nullable=True)
    subject = Column(String(512), nullable=True)

    __table_args__ = (UniqueConstraint("tenant_id", "external_id", name="uq_load_offers_tenant_external"),)

    @property
    def origin_city_state(self) -> str | None:
        """'City, ST' geocoding query, or None when either part is missing."""
        city = (self.origin_city or "").strip()
        state = (self.origin_state or "").strip()
        if city and state:
            return f"{city}, {state}"
        return None

    @property
    def has_coordinates(self) -> bool:
        return self.origin_lat is not None and self.origin_lng is not None
