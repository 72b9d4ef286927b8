# prahestate/schemas.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class Amenity(BaseModel):
    value: Any = None
    type: Optional[str] = None
    unit: Optional[str] = None


class ListingFacts(BaseModel):
    """Typed facts sniffed out of the provider's attribute list."""
    ownership_type: Optional[str] = None
    has_balcony: Optional[bool] = None
    has_terrace: Optional[bool] = None
    power_efficiency: Optional[str] = None
    has_elevator: Optional[bool] = None
    usable_area: Optional[float] = None
    has_cellar: Optional[bool] = None
    is_furnished: Optional[bool] = None


class NormalizedListing(BaseModel):
    sreality_id: int
    name: Optional[str] = None
    category: Optional[int] = None
    type: Optional[int] = None
    price: Optional[int] = None
    price_note: Optional[str] = None
    locality: Optional[str] = None
    district: Optional[str] = None
    description: Optional[str] = None
    gps: Optional[Dict[str, float]] = None
    images: List[str] = Field(default_factory=list)
    amenities: Dict[str, Amenity] = Field(default_factory=dict)
    facts: ListingFacts = Field(default_factory=ListingFacts)
    sreality_url: Optional[str] = None
    raw_json: Optional[Dict[str, Any]] = None

    def to_columns(self) -> Dict[str, Any]:
        """Flatten into `Estate` column values."""
        data = self.model_dump(exclude={"facts"})
        data["amenities"] = data["amenities"] or None
        data.update(self.facts.model_dump())
        return data


class CatalogPage(BaseModel):
    """One page of the catalog response, counters as reported by the provider."""
    page: int
    estates: List[Dict[str, Any]] = Field(default_factory=list)
    result_size: Optional[int] = None
    per_page: Optional[int] = None
    page_count: Optional[int] = None

    @classmethod
    def from_payload(cls, page: int, payload: Dict[str, Any]) -> "CatalogPage":
        embedded = payload.get("_embedded") or {}
        estates = embedded.get("estates") or []
        return cls(
            page=page,
            estates=[e for e in estates if isinstance(e, dict)],
            result_size=_as_int(payload.get("result_size")),
            per_page=_as_int(payload.get("per_page")),
            page_count=_as_int(payload.get("page_count")),
        )


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SyncResult(BaseModel):
    total_items: int = 0
    new_items: int = 0
    updated_items: int = 0
    deleted_items: int = 0
    skipped_items: int = 0


class SyncRunOut(BaseModel):
    id: int
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_items: int = 0
    new_items: int = 0
    updated_items: int = 0
    deleted_items: int = 0
    skipped_items: int = 0
    error_message: Optional[str] = None
    class Config:
        from_attributes = True


class EstateOut(BaseModel):
    id: int
    sreality_id: int
    name: Optional[str] = None
    category: Optional[int] = None
    type: Optional[int] = None
    price: Optional[int] = None
    price_note: Optional[str] = None
    locality: Optional[str] = None
    district: Optional[str] = None
    description: Optional[str] = None
    gps: Optional[Dict[str, Any]] = None
    images: Optional[List[str]] = None
    amenities: Optional[Dict[str, Any]] = None
    sreality_url: Optional[str] = None
    ownership_type: Optional[str] = None
    has_balcony: Optional[bool] = None
    has_terrace: Optional[bool] = None
    power_efficiency: Optional[str] = None
    has_elevator: Optional[bool] = None
    usable_area: Optional[float] = None
    has_cellar: Optional[bool] = None
    is_furnished: Optional[bool] = None
    first_seen: datetime
    last_seen: datetime
    is_active: bool
    updated_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class EstateFilter(BaseModel):
    category: Optional[int] = None
    type: Optional[int] = None
    locality: Optional[str] = None
    district: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    ownership_type: Optional[str] = None
    has_balcony: Optional[bool] = None
    has_terrace: Optional[bool] = None
    power_efficiency: Optional[str] = None
    has_elevator: Optional[bool] = None
    min_usable_area: Optional[float] = None
    max_usable_area: Optional[float] = None
    has_cellar: Optional[bool] = None
    is_furnished: Optional[bool] = None
    is_active: bool = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class EstateListResponse(BaseModel):
    success: bool = True
    data: List[EstateOut]
    pagination: Pagination


class StatsOut(BaseModel):
    total_estates: int
    active_estates: int
    inactive_estates: int
    last_sync_at: Optional[datetime] = None


class SyncStatusOut(BaseModel):
    is_running: bool
    last_sync: Optional[SyncRunOut] = None
