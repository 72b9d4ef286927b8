# tests/test_scheduler.py
import threading
import pytest
from prahestate import crud
from prahestate.errors import AlreadyRunningError, TransportError
from prahestate.scheduler import SYNC_JOB_ID, SyncCoordinator
from prahestate.schemas import SyncResult


class BlockingEngine:
    """Engine whose cycle waits until the test releases it."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def run_cycle(self):
        self.calls += 1
        self.started.set()
        assert self.release.wait(5), "test never released the cycle"
        return SyncResult(total_items=1, new_items=1)


class FailingEngine:
    def run_cycle(self):
        raise TransportError("catalog down")


@pytest.fixture
def coordinator_factory(session_factory):
    made = []

    def make(engine):
        coordinator = SyncCoordinator(engine, session_factory)
        made.append(coordinator)
        return coordinator

    yield make
    for coordinator in made:
        coordinator.shutdown()


def test_second_trigger_rejected_while_first_runs(coordinator_factory):
    engine = BlockingEngine()
    coordinator = coordinator_factory(engine)

    first = coordinator.trigger_manual()
    assert engine.started.wait(5)
    assert coordinator.is_running() is True

    with pytest.raises(AlreadyRunningError):
        coordinator.trigger_manual()
    with pytest.raises(AlreadyRunningError):
        coordinator.run_now()

    engine.release.set()
    assert first.result(5).new_items == 1
    assert coordinator.is_running() is False

    # free again once the first cycle is done
    assert coordinator.trigger_manual().result(5).total_items == 1
    assert engine.calls == 2


def test_token_released_after_failure(coordinator_factory):
    coordinator = coordinator_factory(FailingEngine())

    with pytest.raises(TransportError):
        coordinator.run_now()
    assert coordinator.is_running() is False

    future = coordinator.trigger_manual()
    assert isinstance(future.exception(5), TransportError)
    assert coordinator.is_running() is False


def test_scheduled_tick_skips_when_busy(coordinator_factory):
    engine = BlockingEngine()
    coordinator = coordinator_factory(engine)
    running = coordinator.trigger_manual()
    assert engine.started.wait(5)

    coordinator._scheduled_run()
    assert engine.calls == 1

    engine.release.set()
    running.result(5)


def test_scheduled_tick_swallows_cycle_failure(coordinator_factory):
    coordinator = coordinator_factory(FailingEngine())
    coordinator._scheduled_run()
    assert coordinator.is_running() is False


def test_schedule_recurring_registers_cron_job(coordinator_factory):
    coordinator = coordinator_factory(BlockingEngine())
    coordinator.schedule_recurring("0 */6 * * *")

    job = coordinator.scheduler.get_job(SYNC_JOB_ID)
    assert job is not None
    assert coordinator.scheduler.running
    assert "hour='*/6'" in str(job.trigger)

    # re-arming replaces the job instead of adding a second one
    coordinator.schedule_recurring("30 2 * * *")
    assert len(coordinator.scheduler.get_jobs()) == 1


def test_status_and_history(coordinator_factory, session_factory):
    with session_factory() as db:
        for status in ("completed", "failed", None):
            run = crud.create_sync_run(db)
            if status:
                crud.update_sync_run(db, run.id, status=status, error_message="boom" if status == "failed" else None)

    coordinator = coordinator_factory(BlockingEngine())
    last = coordinator.last_status()
    assert last.status == "failed"
    assert last.error_message == "boom"

    history = coordinator.history(2)
    assert [r.status for r in history] == ["running", "failed"]
