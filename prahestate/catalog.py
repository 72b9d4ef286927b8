# prahestate/catalog.py
"""Paginated client for the Sreality estates catalog."""
import math
import time
from typing import Any, Dict, List, Optional
import requests
from requests import Session
from .config import Settings
from .errors import TransportError
from .schemas import CatalogPage
from .utils import logger, retry

DEFAULT_HEADERS = {
    "User-Agent": "PrahEstate-Service/1.0",
    "Accept": "application/json",
}

# for sale / apartments / Prague
BASE_QUERY = {
    "category_main_cb": 1,
    "category_type_cb": 1,
    "locality_region_id": 10,
}

DETAIL_TIMEOUT_SECONDS = 15


def create_session() -> Session:
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    return session


class CatalogClient:
    def __init__(self, settings: Settings, session: Optional[Session] = None, sleep=time.sleep):
        self.base_url = settings.api_base_url.rstrip("/")
        self.per_page = settings.api_per_page
        self.max_pages = settings.api_max_pages
        self.request_delay = settings.api_request_delay_ms / 1000.0
        self.timeout = settings.api_timeout_seconds
        self.stop_on_short_page = settings.api_stop_on_short_page
        self.fetch_details_enabled = settings.api_fetch_details
        self.detail_delay = settings.api_detail_delay_ms / 1000.0
        self.session = session or create_session()
        self._sleep = sleep

    def fetch_page(self, page: int = 1, extra_params: Optional[Dict[str, Any]] = None) -> CatalogPage:
        params = dict(BASE_QUERY, per_page=self.per_page, page=page)
        if extra_params:
            params.update(extra_params)
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"Catalog page {page} returned HTTP {status}", page=page, status_code=status) from e
        except requests.RequestException as e:
            raise TransportError(f"Failed to fetch catalog page {page}: {e}", page=page) from e
        except ValueError as e:
            raise TransportError(f"Catalog page {page} is not valid JSON", page=page) from e
        if not isinstance(payload, dict):
            raise TransportError(f"Catalog page {page} has unexpected shape", page=page)
        return CatalogPage.from_payload(page, payload)

    def estimate_total_pages(self, page: CatalogPage, fetched: int) -> int:
        """Larger of the reported page count and ceil(result_size / per_page), each capped at max_pages."""
        reported = min(page.page_count or 1, self.max_pages)
        result_size = page.result_size if page.result_size is not None else fetched
        per_page = page.per_page or self.per_page
        calculated = min(math.ceil(result_size / per_page), self.max_pages)
        return max(reported, calculated)

    def fetch_all_pages(self) -> List[Dict[str, Any]]:
        """Fetch every page of the catalog, or raise TransportError; never a partial list."""
        estates: List[Dict[str, Any]] = []
        item_cap = self.max_pages * self.per_page
        current_page, total_pages, pages_fetched = 1, 1, 0
        while current_page <= total_pages and len(estates) < item_cap:
            if pages_fetched:
                # politeness delay between page requests
                self._sleep(self.request_delay)
            logger.info("Fetching page %d/%d...", current_page, total_pages)
            page = self.fetch_page(current_page)
            pages_fetched += 1
            if self.fetch_details_enabled:
                estates.extend(self._with_details(page.estates))
            else:
                estates.extend(page.estates)

            total_pages = self.estimate_total_pages(page, len(estates))
            logger.info(
                "API response: result_size=%s, page_count=%s, per_page=%s, page_items=%d, using_total_pages=%d",
                page.result_size, page.page_count, page.per_page, len(page.estates), total_pages,
            )
            if self.stop_on_short_page and len(page.estates) < self.per_page:
                logger.info("Page %d is short (%d items), treating it as the last page", current_page, len(page.estates))
                break
            current_page += 1

        logger.info("Fetched %d estates from %d pages", len(estates), pages_fetched)
        return estates

    @retry(requests.RequestException, tries=2, delay=1)
    def _get_detail(self, sreality_id: int) -> Dict[str, Any]:
        response = self.session.get(f"{self.base_url}/{sreality_id}", timeout=DETAIL_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()

    def fetch_details(self, sreality_id: int) -> Optional[Dict[str, Any]]:
        """Detail payload for one estate, or None so the basic listing can still be used."""
        try:
            details = self._get_detail(sreality_id)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Failed to fetch details for estate %s: %s", sreality_id, e)
            return None
        return details if isinstance(details, dict) else None

    def _with_details(self, estates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        enriched = []
        for estate in estates:
            details = self.fetch_details(estate.get("hash_id"))
            enriched.append(dict(estate, _detail=details) if details else estate)
            self._sleep(self.detail_delay)
        return enriched
