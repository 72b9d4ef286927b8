# prahestate/crud.py
"""Repository operations for `Estate` and `SyncLog` rows.

The sync engine uses the upsert / mark-inactive / run-log helpers; the read API
uses the query helpers. Each write commits on its own, so rows stored before a
failure stay stored.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from .errors import ItemProcessingError, RepositoryError
from .models import Estate, SyncLog, RUN_RUNNING, RUN_COMPLETED, RUN_FAILED
from .schemas import EstateFilter, NormalizedListing


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def upsert_estate(db: Session, listing: NormalizedListing, seen_at: Optional[datetime] = None) -> bool:
    """Insert or refresh the row for `listing.sreality_id`; returns True when the row is new.

    `first_seen` is only written on insert; `last_seen` and `is_active` on every call.
    """
    seen_at = seen_at or utcnow()
    data = listing.to_columns()
    try:
        obj = db.execute(
            select(Estate).where(Estate.sreality_id == listing.sreality_id)
        ).scalar_one_or_none()
        is_new = obj is None
        if is_new:
            obj = Estate(first_seen=seen_at)
            db.add(obj)
        for k, v in data.items():
            setattr(obj, k, v)
        obj.last_seen = seen_at
        obj.is_active = True
        db.commit()
    except (OperationalError, InterfaceError) as e:
        db.rollback()
        raise RepositoryError(f"Database unavailable while storing estate {listing.sreality_id}: {e}") from e
    except (SQLAlchemyError, OverflowError) as e:
        db.rollback()
        raise ItemProcessingError(f"Could not store estate {listing.sreality_id}: {e}", sreality_id=listing.sreality_id) from e
    return is_new


def mark_inactive_estates(db: Session, seen_ids: Iterable[int]) -> int:
    """Deactivate every active estate not in `seen_ids`; returns how many changed."""
    stmt = (
        update(Estate)
        .where(Estate.is_active.is_(True), Estate.sreality_id.not_in(list(seen_ids)))
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise RepositoryError(f"Failed to mark inactive estates: {e}") from e
    # bulk update bypassed the identity map
    db.expire_all()
    return result.rowcount


def create_sync_run(db: Session) -> SyncLog:
    run = SyncLog(status=RUN_RUNNING, started_at=utcnow())
    try:
        db.add(run)
        db.commit()
        db.refresh(run)
    except SQLAlchemyError as e:
        db.rollback()
        raise RepositoryError(f"Failed to create sync log: {e}") from e
    return run


def update_sync_run(db: Session, run_id: int, **fields: Any) -> SyncLog:
    """Apply `fields` to a running sync log. Finished runs are never touched again."""
    try:
        run = db.get(SyncLog, run_id)
        if run is None:
            raise RepositoryError(f"Sync log {run_id} not found")
        if run.status != RUN_RUNNING:
            raise RepositoryError(f"Sync log {run_id} is already {run.status}")
        for k, v in fields.items():
            setattr(run, k, v)
        if run.status in (RUN_COMPLETED, RUN_FAILED):
            run.completed_at = utcnow()
        db.commit()
        db.refresh(run)
    except SQLAlchemyError as e:
        db.rollback()
        raise RepositoryError(f"Failed to update sync log {run_id}: {e}") from e
    return run


def recent_sync_runs(db: Session, limit: int = 10) -> List[SyncLog]:
    stmt = select(SyncLog).order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars())


def last_finished_sync_run(db: Session) -> Optional[SyncLog]:
    stmt = (
        select(SyncLog)
        .where(SyncLog.status.in_((RUN_COMPLETED, RUN_FAILED)))
        .order_by(SyncLog.started_at.desc(), SyncLog.id.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def get_estate(db: Session, estate_id: int):
    return db.get(Estate, estate_id)


def get_estate_by_sreality_id(db: Session, sreality_id: int):
    return db.query(Estate).filter(Estate.sreality_id == sreality_id).first()


def list_estates(db: Session, page: int = 1, limit: int = 20, filters: Optional[EstateFilter] = None) -> Dict[str, Any]:
    filters = filters or EstateFilter()
    conds = [Estate.is_active.is_(filters.is_active)]
    for field in ("category", "type", "power_efficiency", "has_balcony", "has_terrace",
                  "has_elevator", "has_cellar", "is_furnished"):
        value = getattr(filters, field)
        if value is not None:
            conds.append(getattr(Estate, field) == value)
    for field in ("locality", "district", "ownership_type"):
        value = getattr(filters, field)
        if value:
            conds.append(getattr(Estate, field).ilike(f"%{value}%"))
    if filters.min_price is not None:
        conds.append(Estate.price >= filters.min_price)
    if filters.max_price is not None:
        conds.append(Estate.price <= filters.max_price)
    if filters.min_usable_area is not None:
        conds.append(Estate.usable_area >= filters.min_usable_area)
    if filters.max_usable_area is not None:
        conds.append(Estate.usable_area <= filters.max_usable_area)

    q = db.query(Estate).filter(and_(*conds))
    total = q.count()
    items = (
        q.order_by(Estate.updated_at.desc(), Estate.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"total": total, "items": items, "total_pages": math.ceil(total / limit) if limit else 0}


def get_stats(db: Session) -> Dict[str, Any]:
    total = db.query(func.count(Estate.id)).scalar()
    active = db.query(func.count(Estate.id)).filter(Estate.is_active.is_(True)).scalar()
    last_completed = (
        db.query(SyncLog.completed_at)
        .filter(SyncLog.status == RUN_COMPLETED)
        .order_by(SyncLog.completed_at.desc())
        .first()
    )
    return {
        "total_estates": total,
        "active_estates": active,
        "inactive_estates": total - active,
        "last_sync_at": last_completed[0] if last_completed else None,
    }
