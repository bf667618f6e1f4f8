from __future__ import annotations

import pytest

from burhan.application.api import load_default_rubric
from burhan.infrastructure.config import reset_settings
from burhan.infrastructure.db import make_engine_and_session
from burhan.utils.seed import initialise_database


@pytest.fixture(autouse=True)
def fresh_settings():
    """Environment changes made by a test must not leak through the settings cache."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def session_factory():
    engine, SessionLocal = make_engine_and_session("sqlite:///:memory:")
    initialise_database(engine)
    yield SessionLocal
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def default_rubric():
    return load_default_rubric()
