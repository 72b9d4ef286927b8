# prahestate/normalizer.py
"""Turn one raw Sreality estate record into a `NormalizedListing`.

Everything here is pure: no I/O, and a missing or malformed optional field
simply comes out as None. The provider's attribute vocabulary is open-ended,
so every `items` tuple is kept verbatim in `amenities` while a fixed keyword
table picks out the handful of facts we store as typed columns.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from .schemas import Amenity, ListingFacts, NormalizedListing

SITE_URL = "https://www.sreality.cz"
API_PATH_PREFIX = "/api/en/v2"
DETAIL_URL_TEMPLATE = SITE_URL + "/detail/{sreality_id}"

CITY_TOKEN = "Praha"
DISTRICT_RE = re.compile(r"Praha\s*(\d+)", re.I)
NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")

TRUTHY = frozenset({"yes", "ano", "true"})

# fact field -> (lower-cased name fragments, kind); English and Czech labels
FACT_KEYWORDS = (
    ("ownership_type", ("ownership", "vlastnictví"), "text"),
    ("has_balcony", ("balcony", "balkón"), "bool"),
    ("has_terrace", ("terrace", "terasa"), "bool"),
    ("power_efficiency", ("energy", "energetic", "energetick"), "text"),
    ("has_elevator", ("elevator", "výtah", "lift"), "bool"),
    ("usable_area", ("usable area", "užitná plocha", "floor area"), "number"),
    ("has_cellar", ("cellar", "sklep", "basement"), "bool"),
    ("is_furnished", ("furnished", "zařízený", "furniture"), "bool"),
)


def _dig(obj: Any, *keys) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _to_int(value: Any) -> Optional[int]:
    """Exact integer conversion; floats and strings never round-trip through a double."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def provider_id(raw: Dict[str, Any]) -> Optional[int]:
    if not isinstance(raw, dict):
        return None
    return _to_int(raw.get("hash_id"))


def _resolve_price(*sources: Optional[Dict[str, Any]]):
    for source in sources:
        if not isinstance(source, dict):
            continue
        if source.get("price"):
            price = _to_int(source["price"])
            if price is not None:
                return price, None
        descriptor = source.get("price_czk")
        if isinstance(descriptor, dict) and descriptor.get("value_raw"):
            price = _to_int(descriptor["value_raw"])
            if price is not None:
                return price, _price_note(descriptor)
    return None, None


def _price_note(descriptor: Dict[str, Any]) -> Optional[str]:
    name, unit = _opt_text(descriptor.get("name")), _opt_text(descriptor.get("unit"))
    if name and unit:
        return f"{name} ({unit})"
    return name or unit or None


def _collect_images(*sources: Optional[Dict[str, Any]]) -> List[str]:
    images: List[str] = []
    seen = set()
    for source in sources:
        for img in _as_list(_dig(source, "_embedded", "images")):
            href = _dig(img, "_links", "view", "href")
            if isinstance(href, str) and href and href not in seen:
                seen.add(href)
                images.append(href)
    return images


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _opt_text(value: Any) -> Optional[str]:
    return None if value is None else _as_text(value)


def extract_amenities(items: List[Any]):
    """Return (amenity map, facts) for a provider attribute list. Later tuples win."""
    amenities: Dict[str, Amenity] = {}
    facts: Dict[str, Any] = {}
    for item in _as_list(items):
        if not isinstance(item, dict) or not item.get("name"):
            continue
        name = str(item["name"])
        value = item.get("value")
        amenities[name] = Amenity(value=value, type=_opt_text(item.get("type")), unit=_opt_text(item.get("unit")))

        item_name = name.lower()
        text = _as_text(value)
        for field, keywords, kind in FACT_KEYWORDS:
            if not any(k in item_name for k in keywords):
                continue
            if kind == "bool":
                facts[field] = text.strip().lower() in TRUTHY
            elif kind == "number":
                m = NUMBER_RE.search(text)
                if m:
                    facts[field] = float(m.group(1))
            else:
                facts[field] = text
    return amenities, ListingFacts(**facts)


def derive_district(locality: Optional[str]) -> Optional[str]:
    if not locality or CITY_TOKEN not in locality:
        return None
    m = DISTRICT_RE.search(locality)
    if m:
        return f"{CITY_TOKEN} {m.group(1)}"
    return locality


def canonical_url(raw: Dict[str, Any], sreality_id: int) -> str:
    href = _dig(raw, "_links", "self", "href")
    if isinstance(href, str) and href:
        return SITE_URL + href.replace(API_PATH_PREFIX, "")
    return DETAIL_URL_TEMPLATE.format(sreality_id=sreality_id)


def _gps(value: Any) -> Optional[Dict[str, float]]:
    if not isinstance(value, dict):
        return None
    try:
        return {"lat": float(value["lat"]), "lon": float(value["lon"])}
    except (KeyError, TypeError, ValueError):
        return None


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def normalize(raw: Dict[str, Any]) -> NormalizedListing:
    sreality_id = provider_id(raw)
    detail = raw.get("_detail") if isinstance(raw.get("_detail"), dict) else None

    price, price_note = _resolve_price(raw, detail)
    items = _as_list(raw.get("items")) + _as_list(_dig(detail, "items"))
    amenities, facts = extract_amenities(items)
    locality = _opt_str(raw.get("locality"))

    return NormalizedListing(
        sreality_id=sreality_id,
        name=_opt_str(raw.get("name")),
        category=_to_int(raw.get("category")),
        type=_to_int(raw.get("type")),
        price=price,
        price_note=price_note,
        locality=locality,
        district=derive_district(locality),
        description=_opt_str(raw.get("description")),
        gps=_gps(raw.get("gps")),
        images=_collect_images(raw, detail),
        amenities=amenities,
        facts=facts,
        sreality_url=canonical_url(raw, sreality_id),
        raw_json=raw,
    )
