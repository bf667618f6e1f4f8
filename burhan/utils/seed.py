from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from burhan.domain.models import Rubric
from burhan.infrastructure.logging import get_logger
from burhan.infrastructure.models import Base
from burhan.infrastructure.repositories import RubricRepo, RubricVersion

logger = get_logger(__name__)


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    already_exists = all(table in existing_tables for table in expected_tables)
    Base.metadata.create_all(engine)
    if not already_exists:
        logger.info("Created missing tables", extra={"tables": expected_tables})
    return already_exists


def seed_rubric(session: Session, rubric: Rubric, *, force: bool = False) -> RubricVersion | None:
    """
    Store ``rubric`` as the first version.

    Does nothing when a version already exists unless ``force`` is set, in
    which case a new version is appended on top of the history.
    """
    repo = RubricRepo(session)
    if repo.latest() is not None and not force:
        logger.info("Rubric already seeded; skipping")
        return None
    version = repo.save(rubric, note="seed")
    logger.info(f"Seeded rubric version {version.version}")
    return version
