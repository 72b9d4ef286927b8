# tests/test_services.py
from datetime import datetime, timedelta, timezone
import pytest
from prahestate import crud, services
from prahestate.catalog import CatalogClient
from prahestate.errors import RepositoryError, TransportError
from prahestate.models import Estate, SyncLog
from prahestate.services import SyncEngine
from factories import FakeSession, catalog_page, raw_estate

T0 = datetime(2026, 10, 1, 6, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=6)


class StubCatalog:
    def __init__(self, estates=None, error=None):
        self.estates = estates or []
        self.error = error

    def fetch_all_pages(self):
        if self.error:
            raise self.error
        return list(self.estates)


def _naive(dt):
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


def _estate(session_factory, sreality_id):
    with session_factory() as s:
        return s.query(Estate).filter(Estate.sreality_id == sreality_id).one()


def _runs(session_factory):
    with session_factory() as s:
        return s.query(SyncLog).order_by(SyncLog.id).all()


def test_two_cycles_deactivate_delisted_estate(settings, session_factory):
    a, b, c = raw_estate(1), raw_estate(2), raw_estate(3)
    session = FakeSession({
        1: catalog_page([a, b], result_size=3, page_count=2),
        2: catalog_page([c], result_size=3, page_count=2),
    })
    client = CatalogClient(settings, session=session, sleep=lambda s: None)
    clock = iter([T0] * 3 + [T1] * 2)
    engine = SyncEngine(client, session_factory, batch_size=2, clock=lambda: next(clock))

    first = engine.run_cycle()
    assert (first.total_items, first.new_items, first.updated_items, first.deleted_items) == (3, 3, 0, 0)

    session.pages = {1: catalog_page([a, b], result_size=2, page_count=1)}
    second = engine.run_cycle()
    assert (second.total_items, second.new_items, second.updated_items, second.deleted_items) == (2, 0, 2, 1)

    for sreality_id in (1, 2):
        row = _estate(session_factory, sreality_id)
        assert row.is_active is True
        assert _naive(row.last_seen) == _naive(T1)
        assert _naive(row.first_seen) == _naive(T0)
    delisted = _estate(session_factory, 3)
    assert delisted.is_active is False
    assert _naive(delisted.last_seen) == _naive(T0)

    runs = _runs(session_factory)
    assert [r.status for r in runs] == ["completed", "completed"]
    assert runs[1].deleted_items == 1
    assert runs[1].completed_at is not None


def test_malformed_item_does_not_block_the_rest(session_factory):
    estates = [raw_estate(1), {"name": "no id at all"}, raw_estate(2), raw_estate(3)]
    engine = SyncEngine(StubCatalog(estates), session_factory, batch_size=3)

    result = engine.run_cycle()

    assert result.total_items == 4
    assert result.new_items == 3
    assert result.skipped_items == 1
    assert _runs(session_factory)[0].status == "completed"
    assert _runs(session_factory)[0].skipped_items == 1


def test_normalization_failure_is_isolated(session_factory, monkeypatch):
    real_normalize = services.normalize

    def flaky_normalize(raw):
        if raw["hash_id"] == 2:
            raise KeyError("price_czk")
        return real_normalize(raw)

    monkeypatch.setattr(services, "normalize", flaky_normalize)
    engine = SyncEngine(StubCatalog([raw_estate(1), raw_estate(2), raw_estate(3)]), session_factory)

    result = engine.run_cycle()

    assert (result.new_items, result.skipped_items) == (2, 1)
    assert _runs(session_factory)[0].status == "completed"


def test_listed_but_unparseable_estate_stays_active(session_factory, monkeypatch):
    SyncEngine(StubCatalog([raw_estate(1), raw_estate(2)]), session_factory).run_cycle()

    def broken(raw):
        raise ValueError("unexpected shape")

    monkeypatch.setattr(services, "normalize", broken)
    result = SyncEngine(StubCatalog([raw_estate(1)]), session_factory).run_cycle()

    assert result.deleted_items == 1
    assert _estate(session_factory, 1).is_active is True
    assert _estate(session_factory, 2).is_active is False


def test_transport_failure_marks_run_failed_without_touching_rows(session_factory):
    SyncEngine(StubCatalog([raw_estate(1)]), session_factory).run_cycle()
    engine = SyncEngine(StubCatalog(error=TransportError("page 3 timed out", page=3)), session_factory)

    with pytest.raises(TransportError):
        engine.run_cycle()

    runs = _runs(session_factory)
    assert runs[-1].status == "failed"
    assert runs[-1].error_message == "page 3 timed out"
    assert runs[-1].completed_at is not None
    assert _estate(session_factory, 1).is_active is True


def test_repository_failure_is_fatal_but_keeps_committed_rows(session_factory, monkeypatch):
    def broken_mark_inactive(db, seen_ids):
        raise RepositoryError("database went away")

    monkeypatch.setattr(crud, "mark_inactive_estates", broken_mark_inactive)
    engine = SyncEngine(StubCatalog([raw_estate(1), raw_estate(2)]), session_factory)

    with pytest.raises(RepositoryError):
        engine.run_cycle()

    assert _runs(session_factory)[0].status == "failed"
    assert _estate(session_factory, 1).is_active is True
    assert _estate(session_factory, 2).is_active is True


def test_failure_to_record_completion_marks_run_failed(session_factory, monkeypatch):
    real_update = crud.update_sync_run

    def update_failing_on_completion(db, run_id, **fields):
        if fields.get("status") == "completed":
            raise RepositoryError("lost connection while closing the run")
        return real_update(db, run_id, **fields)

    monkeypatch.setattr(crud, "update_sync_run", update_failing_on_completion)
    engine = SyncEngine(StubCatalog([raw_estate(1)]), session_factory)

    with pytest.raises(RepositoryError):
        engine.run_cycle()

    runs = _runs(session_factory)
    assert [r.status for r in runs] == ["failed"]
    assert runs[0].error_message == "lost connection while closing the run"
