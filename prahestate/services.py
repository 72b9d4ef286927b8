# prahestate/services.py
"""One reconciliation cycle: fetch everything, upsert what we saw, deactivate the rest."""
from typing import Any, Callable, Dict, List, Set
from sqlalchemy.orm import Session
from . import crud
from .catalog import CatalogClient
from .errors import ItemProcessingError, RepositoryError
from .models import RUN_COMPLETED, RUN_FAILED
from .normalizer import normalize, provider_id
from .schemas import SyncResult
from .utils import logger


def ingest_listing(db: Session, raw: Dict[str, Any], seen: Set[int], seen_at=None) -> bool:
    """Normalize and store one raw estate, recording its id in `seen`.

    The id goes into `seen` before anything can fail, so a listing that is still
    published but briefly unparseable is not deactivated.
    """
    sreality_id = provider_id(raw)
    if sreality_id is None:
        raise ItemProcessingError("estate has no usable hash_id")
    seen.add(sreality_id)
    try:
        listing = normalize(raw)
    except Exception as e:
        raise ItemProcessingError(f"Failed to normalize estate {sreality_id}: {e}", sreality_id=sreality_id) from e
    return crud.upsert_estate(db, listing, seen_at)


class SyncEngine:
    """Runs sync cycles against the store.

    Callers must not run two cycles at once; `SyncCoordinator` holds that guarantee.
    """

    def __init__(self, client: CatalogClient, session_factory: Callable[[], Session],
                 batch_size: int = 100, clock: Callable = crud.utcnow):
        self.client = client
        self.session_factory = session_factory
        self.batch_size = batch_size
        self.clock = clock

    def run_cycle(self) -> SyncResult:
        with self.session_factory() as db:
            run = crud.create_sync_run(db)
            logger.info("Starting estate sync (run %s)...", run.id)
            try:
                result = self._reconcile(db)
                crud.update_sync_run(db, run.id, status=RUN_COMPLETED, **result.model_dump())
            except Exception as e:
                logger.exception("Sync run %s failed: %s", run.id, e)
                db.rollback()
                try:
                    crud.update_sync_run(db, run.id, status=RUN_FAILED, error_message=str(e) or type(e).__name__)
                except RepositoryError as log_error:
                    logger.error("Could not record failure of sync run %s: %s", run.id, log_error)
                raise
            logger.info("Sync run %s completed: %s", run.id, result.model_dump())
            return result

    def _reconcile(self, db: Session) -> SyncResult:
        estates = self.client.fetch_all_pages()
        result = SyncResult(total_items=len(estates))
        logger.info("Processing %d estates...", result.total_items)

        seen: Set[int] = set()
        for start in range(0, len(estates), self.batch_size):
            batch: List[Dict[str, Any]] = estates[start:start + self.batch_size]
            for raw in batch:
                try:
                    is_new = ingest_listing(db, raw, seen, self.clock())
                except ItemProcessingError as e:
                    result.skipped_items += 1
                    logger.warning("Skipping estate %s: %s", e.sreality_id, e)
                    continue
                if is_new:
                    result.new_items += 1
                else:
                    result.updated_items += 1
            logger.info("Processed %d/%d estates", min(start + self.batch_size, len(estates)), result.total_items)

        # only after every batch, or listings not yet re-upserted would be deactivated
        result.deleted_items = crud.mark_inactive_estates(db, seen)
        return result
