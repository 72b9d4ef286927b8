"""Shared pytest fixtures."""
import os

# must be set before prahestate reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SYNC_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from prahestate import models  # noqa: F401
from prahestate.config import Settings
from prahestate.db import Base, make_engine, make_session_factory


@pytest.fixture
def engine():
    # fresh in-memory database per test
    eng = make_engine("sqlite://")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        api_base_url="https://catalog.test/api/en/v2/estates",
        api_per_page=2,
        api_max_pages=10,
        api_request_delay_ms=0,
        api_detail_delay_ms=0,
    )
