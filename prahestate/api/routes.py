# prahestate/api/routes.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from .. import crud, schemas
from ..db import get_db
from ..errors import AlreadyRunningError
from ..scheduler import SyncCoordinator, get_coordinator
from ..utils import logger

router = APIRouter()

@router.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "prahestate-service",
    }

@router.get("/api/estates", response_model=schemas.EstateListResponse)
def estates(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    category: Optional[int] = None,
    type: Optional[int] = None,
    locality: Optional[str] = None,
    district: Optional[str] = None,
    min_price: Optional[int] = Query(None, alias="minPrice"),
    max_price: Optional[int] = Query(None, alias="maxPrice"),
    ownership_type: Optional[str] = Query(None, alias="ownershipType"),
    has_balcony: Optional[bool] = Query(None, alias="hasBalcony"),
    has_terrace: Optional[bool] = Query(None, alias="hasTerrace"),
    power_efficiency: Optional[str] = Query(None, alias="powerEfficiency"),
    has_elevator: Optional[bool] = Query(None, alias="hasElevator"),
    min_usable_area: Optional[float] = Query(None, alias="minUsableArea"),
    max_usable_area: Optional[float] = Query(None, alias="maxUsableArea"),
    has_cellar: Optional[bool] = Query(None, alias="hasCellar"),
    is_furnished: Optional[bool] = Query(None, alias="isFurnished"),
    db: Session = Depends(get_db)
):
    limit = min(limit, 100)
    filters = schemas.EstateFilter(
        category=category,
        type=type,
        locality=locality,
        district=district,
        min_price=min_price,
        max_price=max_price,
        ownership_type=ownership_type,
        has_balcony=has_balcony,
        has_terrace=has_terrace,
        power_efficiency=power_efficiency,
        has_elevator=has_elevator,
        min_usable_area=min_usable_area,
        max_usable_area=max_usable_area,
        has_cellar=has_cellar,
        is_furnished=is_furnished,
    )
    res = crud.list_estates(db, page=page, limit=limit, filters=filters)
    return {
        "success": True,
        "data": [schemas.EstateOut.model_validate(o) for o in res["items"]],
        "pagination": {"page": page, "limit": limit, "total": res["total"], "total_pages": res["total_pages"]},
    }


@router.get("/api/estates/sreality/{sreality_id}")
def get_estate_by_sreality_id(sreality_id: int, db: Session = Depends(get_db)):
    obj = crud.get_estate_by_sreality_id(db, sreality_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Estate not found")
    return {"success": True, "data": schemas.EstateOut.model_validate(obj)}


@router.get("/api/estates/{estate_id}")
def get_estate(estate_id: int, db: Session = Depends(get_db)):
    obj = crud.get_estate(db, estate_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Estate not found")
    return {"success": True, "data": schemas.EstateOut.model_validate(obj)}


@router.get("/api/stats")
def stats(db: Session = Depends(get_db)):
    return {"success": True, "data": schemas.StatsOut(**crud.get_stats(db))}


@router.post("/api/sync")
def trigger_sync(coordinator: SyncCoordinator = Depends(get_coordinator)):
    try:
        coordinator.trigger_manual()
    except AlreadyRunningError:
        raise HTTPException(status_code=409, detail="Sync is already running")
    # the cycle's outcome only shows up in /api/sync/status and /api/sync/history
    return {"success": True, "message": "Sync started"}


@router.get("/api/sync/status")
def sync_status(coordinator: SyncCoordinator = Depends(get_coordinator)):
    last = coordinator.last_status()
    status = schemas.SyncStatusOut(
        is_running=coordinator.is_running(),
        last_sync=schemas.SyncRunOut.model_validate(last) if last else None,
    )
    return {"success": True, "data": status}


@router.get("/api/sync/history")
def sync_history(limit: int = Query(10, ge=1), coordinator: SyncCoordinator = Depends(get_coordinator)):
    runs = coordinator.history(min(limit, 50))
    logger.debug("Returning %d sync runs", len(runs))
    return {"success": True, "data": [schemas.SyncRunOut.model_validate(r) for r in runs]}
