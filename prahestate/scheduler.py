# prahestate/scheduler.py
"""Single-flight coordination of sync cycles, manual and scheduled."""
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import lru_cache
from typing import Callable, List, Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session
from . import crud
from .catalog import CatalogClient
from .config import settings
from .db import SessionLocal
from .errors import AlreadyRunningError
from .models import SyncLog
from .schemas import SyncResult
from .services import SyncEngine
from .utils import logger

SYNC_JOB_ID = "estate-sync"


class SyncCoordinator:
    """Owns the one token that lets a sync cycle run.

    A trigger that finds the token taken is rejected, never queued.
    """

    def __init__(self, engine: SyncEngine, session_factory: Callable[[], Session],
                 scheduler: Optional[BackgroundScheduler] = None):
        self.engine = engine
        self.session_factory = session_factory
        self.scheduler = scheduler or BackgroundScheduler()
        self._token = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sync")

    def is_running(self) -> bool:
        return self._token.locked()

    def _acquire(self):
        if not self._token.acquire(blocking=False):
            raise AlreadyRunningError("Sync is already running")

    def _run_and_release(self) -> SyncResult:
        try:
            return self.engine.run_cycle()
        finally:
            self._token.release()

    def run_now(self) -> SyncResult:
        """Run one cycle in the calling thread."""
        self._acquire()
        return self._run_and_release()

    def trigger_manual(self) -> Future:
        """Start a cycle in the background and return its future; raises AlreadyRunningError when busy."""
        self._acquire()
        logger.info("Manual sync triggered")
        try:
            future = self._executor.submit(self._run_and_release)
        except BaseException:
            self._token.release()
            raise
        future.add_done_callback(_log_manual_outcome)
        return future

    def _scheduled_run(self):
        logger.info("Starting scheduled sync...")
        try:
            self.run_now()
        except AlreadyRunningError:
            logger.warning("Scheduled sync skipped: a sync is already running")
        except Exception:
            # next tick still fires
            logger.exception("Scheduled sync failed")

    def schedule_recurring(self, cron_expression: str):
        trigger = CronTrigger.from_crontab(cron_expression)
        self.scheduler.add_job(
            self._scheduled_run, trigger, id=SYNC_JOB_ID,
            max_instances=1, coalesce=True, replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Sync scheduled: %s", cron_expression)

    def last_status(self) -> Optional[SyncLog]:
        with self.session_factory() as db:
            return crud.last_finished_sync_run(db)

    def history(self, limit: int = 10) -> List[SyncLog]:
        with self.session_factory() as db:
            return crud.recent_sync_runs(db, limit)

    def shutdown(self, wait: bool = False):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        self._executor.shutdown(wait=wait)
        logger.info("Sync coordinator stopped")


def _log_manual_outcome(future: Future):
    e = future.exception()
    if e is not None:
        logger.error("Manual sync failed: %s", e)


@lru_cache(maxsize=1)
def get_coordinator() -> SyncCoordinator:
    client = CatalogClient(settings)
    engine = SyncEngine(client, SessionLocal, batch_size=settings.sync_batch_size)
    return SyncCoordinator(engine, SessionLocal)
