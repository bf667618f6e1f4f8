"""
Database connection and session management with centralized configuration.

This module provides database connectivity using the centralized configuration
system, with proper error handling and logging integration.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DatabaseConfig, get_settings
from .exceptions import ConnectionError
from .logging import get_logger

logger = get_logger(__name__)


def _is_in_memory(connection_url: str) -> bool:
    return connection_url in ("sqlite://", "sqlite:///:memory:")


def _engine_options_for(connection_url: str, options: dict) -> dict:
    """An in-memory SQLite database lives in one connection; share it across threads."""
    if _is_in_memory(connection_url):
        options = dict(options)
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    return options


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper configuration.

    Args:
        config: Database configuration (uses default if None)

    Returns:
        Configured SQLAlchemy engine

    Raises:
        ConnectionError: If the engine cannot be created

    Example:
        >>> engine = create_database_engine()
        >>> # Uses configuration from environment/settings
    """
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    engine_options = _engine_options_for(connection_url, config.get_engine_options())

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[-1]}")  # drop credentials

    try:
        engine = create_engine(connection_url, **engine_options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise ConnectionError(f"Failed to create database engine: {e}") from e
    logger.info("Database engine created successfully")
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create SQLAlchemy session factory.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    logger.debug("Creating session factory")
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def make_engine_and_session(connection_url: str | None = None) -> tuple[Engine, sessionmaker]:
    """
    Create engine and session factory.

    Args:
        connection_url: Explicit database URL; the configured one is used if None

    Example:
        >>> engine, SessionLocal = make_engine_and_session("sqlite:///:memory:")
    """
    if connection_url:
        logger.info("Creating engine from explicit connection URL")
        options = _engine_options_for(
            connection_url, {"echo": False, "future": True, "pool_pre_ping": True}
        )
        engine = create_engine(connection_url, **options)
    else:
        engine = create_database_engine()
    return engine, create_session_factory(engine)


def get_database_url() -> str:
    """
    Example:
        >>> get_database_url()
        'sqlite:///./burhan.db'
    """
    return get_settings().database.get_connection_url()


def is_database_configured() -> bool:
    try:
        get_settings().database.get_connection_url()
        return True
    except Exception as e:
        logger.warning(f"Database configuration invalid: {str(e)}")
        return False
