# prahestate/models.py
"""SQLAlchemy ORM models for persisted entities.

`Estate` holds one row per Sreality listing ever observed, keyed by `sreality_id`;
`SyncLog` is the durable run log, one row per sync cycle.
"""
from sqlalchemy import (
    Column, Integer, BigInteger, Boolean, Float, Text, TIMESTAMP, JSON, func, Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"


class Estate(Base):
    __tablename__ = "estates"
    id = Column(Integer, primary_key=True, index=True)
    sreality_id = Column(BigInteger, nullable=False, unique=True, index=True)
    name = Column(Text)
    category = Column(Integer)
    type = Column(Integer)
    price = Column(BigInteger)
    price_note = Column(Text)
    locality = Column(Text)
    district = Column(Text)
    description = Column(Text)
    gps = Column(JSONType)
    images = Column(JSONType)
    amenities = Column(JSONType)
    sreality_url = Column(Text)
    raw_json = Column(JSONType)

    ownership_type = Column(Text)
    has_balcony = Column(Boolean)
    has_terrace = Column(Boolean)
    power_efficiency = Column(Text)
    has_elevator = Column(Boolean)
    usable_area = Column(Float)
    has_cellar = Column(Boolean)
    is_furnished = Column(Boolean)

    first_seen = Column(TIMESTAMP(timezone=True), nullable=False)
    last_seen = Column(TIMESTAMP(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())


class SyncLog(Base):
    __tablename__ = "sync_logs"
    id = Column(Integer, primary_key=True, index=True)
    status = Column(Text, nullable=False, default=RUN_RUNNING)
    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    completed_at = Column(TIMESTAMP(timezone=True))
    total_items = Column(Integer, nullable=False, default=0)
    new_items = Column(Integer, nullable=False, default=0)
    updated_items = Column(Integer, nullable=False, default=0)
    deleted_items = Column(Integer, nullable=False, default=0)
    skipped_items = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)

Index("idx_estates_active_price", Estate.is_active, Estate.price)
Index("idx_estates_district", Estate.district)
Index("idx_sync_logs_started_at", SyncLog.started_at)
