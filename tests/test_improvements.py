"""
Tests for the ambient infrastructure: error handling, logging, configuration
and the repository layer.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError as SQLIntegrityError
from sqlalchemy.exc import OperationalError

from burhan.domain import errors as domain_errors
from burhan.domain.editor import add_domain, update_question_text
from burhan.domain.records import build_record
from burhan.infrastructure import exceptions
from burhan.infrastructure.config import (
    ApplicationConfig,
    DatabaseConfig,
    LoggingConfig,
    Settings,
    get_settings,
    load_settings_from_file,
    override_settings,
)
from burhan.infrastructure.db import is_database_configured, make_engine_and_session
from burhan.infrastructure.exceptions import (
    BurhanError,
    ConnectionError,
    DatabaseError,
    IncompleteAssessmentError,
    IntegrityError,
    RecordNotFoundError,
    ValidationError,
    create_user_friendly_error_message,
    handle_database_error,
    log_error_details,
)
from burhan.infrastructure.logging import (
    LogContext,
    StructuredFormatter,
    clear_context,
    configure_from_settings,
    context_filter,
    get_logger,
    set_context,
    setup_logging,
)
from burhan.infrastructure.repositories import RecordRepo, RubricRepo
from burhan.infrastructure.uow import UnitOfWork
from burhan.utils.seed import initialise_database, seed_rubric
from tests.helpers import full_answers, make_rubric, sample_project_info


class TestErrorHandling:
    """Test error hierarchy and user-friendly messages."""

    def test_validation_error_creation(self):
        error = ValidationError("weight", "must be greater than 0", -1)

        assert error.field == "weight"
        assert "must be greater than 0" in str(error)
        assert error.user_message == "Invalid weight: must be greater than 0"
        assert error.details == {"field": "weight", "value": -1}

    def test_incomplete_assessment_error_details(self):
        error = IncompleteAssessmentError(answered=17, total=19)

        assert isinstance(error, BurhanError)
        assert error.details["missing"] == 2
        assert "answer every question" in error.user_message

    def test_database_error_handling(self):
        original_error = SQLIntegrityError("statement", {}, Exception("UNIQUE constraint failed"))
        db_error = handle_database_error(original_error, "record.add")

        assert isinstance(db_error, IntegrityError)
        assert db_error.constraint == "unique"

    def test_connection_errors_are_recognised(self):
        original_error = OperationalError("connect", {}, Exception("connection refused"))
        assert isinstance(handle_database_error(original_error), ConnectionError)

    def test_unknown_database_errors_keep_operation(self):
        db_error = handle_database_error(Exception("disk I/O error"), "rubric.save")
        assert type(db_error) is DatabaseError
        assert db_error.operation == "rubric.save"

    def test_user_friendly_error_messages(self):
        assert "weight" in create_user_friendly_error_message(ValidationError("weight", "bad"))
        assert "try again" in create_user_friendly_error_message(ValueError("boom")).lower()
        assert "try again" in create_user_friendly_error_message(RuntimeError("boom")).lower()

    def test_log_error_details(self):
        details = log_error_details(RecordNotFoundError("abc"), {"route": "get"})

        assert details["error_type"] == "RecordNotFoundError"
        assert details["context"] == {"route": "get"}
        assert details["error_details"] == {"record_id": "abc"}


class TestLogging:
    """Test logging setup and context tracking."""

    def test_logger_is_namespaced(self):
        assert get_logger("scoring").name == "burhan.scoring"
        assert get_logger("burhan.web").name == "burhan.web"

    def test_logging_configuration_writes_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, "test.log")
            setup_logging(level="DEBUG", log_file=log_file, structured=True, enable_console=False)

            get_logger("test").info("Test message")
            for handler in logging.getLogger("burhan").handlers:
                handler.flush()

            with open(log_file, encoding="utf-8") as fh:
                lines = [json.loads(line) for line in fh if line.strip()]
            assert any(entry["message"] == "Test message" for entry in lines)

            setup_logging(level="WARNING", enable_console=False)

    def test_configure_from_settings(self, tmp_path):
        log_file = tmp_path / "burhan.log"
        config = LoggingConfig(level="DEBUG", file_path=str(log_file), console_enabled=False, max_bytes=2048)

        configure_from_settings(config)
        get_logger("settings").debug("configured from settings")
        file_handlers = [h for h in logging.getLogger("burhan").handlers if hasattr(h, "maxBytes")]
        for handler in file_handlers:
            handler.flush()

        assert file_handlers[0].maxBytes == 2048
        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines() if line]
        assert any(entry["message"] == "configured from settings" for entry in entries)

        setup_logging(level="WARNING", enable_console=False)

    def test_log_level_env_wins_over_environment_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_FILE_PATH", str(tmp_path / "burhan.log"))
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert Settings().logging.level == "WARNING"

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert Settings().logging.level == "DEBUG"

    def test_structured_formatter_includes_context(self):
        record = logging.LogRecord("burhan.test", logging.INFO, __file__, 1, "hello", None, None)
        record.record_id = "rec-1"

        entry = json.loads(StructuredFormatter().format(record))
        assert entry["message"] == "hello"
        assert entry["record_id"] == "rec-1"

    def test_context_logging(self):
        clear_context()
        set_context(user_name="sara", rubric_version=2)
        assert context_filter.context == {"user_name": "sara", "rubric_version": 2}

        with LogContext(record_id="abc"):
            assert context_filter.context["record_id"] == "abc"
        assert "record_id" not in context_filter.context

        clear_context()
        assert context_filter.context == {}


class TestConfiguration:
    """Test centralized configuration management."""

    def test_database_config_sqlite(self):
        config = DatabaseConfig(backend="sqlite", sqlite_path=":memory:")
        assert config.get_connection_url() == "sqlite:///:memory:"

    def test_database_config_mysql(self):
        config = DatabaseConfig(
            backend="mysql",
            mysql_host="localhost",
            mysql_user="test",
            mysql_password="pass",
            mysql_database="testdb",
        )

        url = config.get_connection_url()
        assert url.startswith("mysql+pymysql://")
        assert "test:pass@localhost" in url
        assert config.get_engine_options()["pool_recycle"] == 3600

    def test_database_configuration_validation(self):
        with pytest.raises(ValueError):
            DatabaseConfig(backend="invalid")
        with pytest.raises(ValueError):
            DatabaseConfig(backend="mysql", mysql_host="localhost", mysql_user="")

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "testing")
        monkeypatch.setenv("APP_ENABLE_DATA_EXPORT", "false")
        settings = override_settings()

        assert settings.app.environment == "testing"
        assert settings.is_testing()
        assert settings.get_environment_info()["features"]["data_export"] is False

    def test_debug_is_rejected_in_production(self):
        with pytest.raises(ValueError):
            ApplicationConfig(environment="production", debug=True)

    def test_missing_rubric_file_is_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            ApplicationConfig(rubric_path=str(tmp_path / "missing.json"))

    def test_load_settings_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("APP_TITLE", raising=False)
        config_file = tmp_path / "settings.json"
        config_file.write_text(json.dumps({"app": {"title": "Burhan QA"}}), encoding="utf-8")

        settings = load_settings_from_file(str(config_file))
        try:
            assert settings.app.title == "Burhan QA"
        finally:
            os.environ.pop("APP_TITLE", None)

    def test_database_is_configured(self):
        assert is_database_configured()
        assert get_settings().database.backend in ("sqlite", "mysql")


class TestRepositoryPatterns:
    """Test rubric and record repositories against in-memory SQLite."""

    def test_initialise_database_reports_existing_tables(self):
        engine, _ = make_engine_and_session("sqlite:///:memory:")
        assert initialise_database(engine) is False
        assert initialise_database(engine) is True

    def test_rubric_versions_append(self, db_session):
        repo = RubricRepo(db_session)
        assert repo.latest() is None

        first = repo.save(make_rubric({"a": [1.0]}), note="initial")
        second = repo.save(add_domain(make_rubric({"a": [1.0]}), "Extra"))

        assert second.version > first.version
        assert repo.latest().version == second.version
        assert len(repo.latest().rubric) == 2
        assert [v.version for v in repo.history()] == [second.version, first.version]
        assert repo.get_version(first.version).note == "initial"
        assert repo.latest().created_at.tzinfo is not None

    def test_rubric_clear(self, db_session):
        repo = RubricRepo(db_session)
        repo.save(make_rubric({"a": [1.0]}))
        repo.save(make_rubric({"b": [1.0]}))

        assert repo.clear() == 2
        assert repo.latest() is None

    def test_seed_rubric_is_idempotent(self, db_session):
        rubric = make_rubric({"a": [1.0]})

        assert seed_rubric(db_session, rubric) is not None
        assert seed_rubric(db_session, rubric) is None
        assert seed_rubric(db_session, rubric, force=True) is not None
        assert len(RubricRepo(db_session).history()) == 2

    def test_record_round_trip(self, db_session):
        rubric = make_rubric({"a": [1.0, 2.0], "b": [1.5]})
        record = build_record(sample_project_info(), rubric, {"a": [3, 0], "b": [5]}, rubric_version=4)

        repo = RecordRepo(db_session)
        repo.add(record)
        db_session.commit()

        loaded = repo.get_required(record.id)
        assert loaded.id == record.id
        assert loaded.project_info == record.project_info
        assert loaded.score == record.score
        assert loaded.percentage == record.percentage
        assert loaded.classification == record.classification
        assert dict(loaded.detailed_answers) == {"a": (3, 0), "b": (5,)}
        assert loaded.rubric_snapshot == rubric
        assert loaded.rubric_version == 4
        assert loaded.date == record.date

    def test_rubric_text_is_stored_verbatim(self, db_session):
        text = "Latency p99 < 200ms and errors > 0.1% trigger <alerts> &amp; pages"
        rubric = update_question_text(make_rubric({"ops": [1.0]}), 0, 0, text)
        record = build_record(sample_project_info(), rubric, {"ops": [4]})

        RecordRepo(db_session).add(record)
        saved = RubricRepo(db_session).save(rubric)
        db_session.commit()

        stored = RecordRepo(db_session).get_required(record.id)
        assert stored.rubric_snapshot == record.rubric_snapshot
        assert stored.rubric_snapshot.domains[0].questions[0].text == text
        assert RubricRepo(db_session).get_version(saved.version).rubric == rubric

    def test_rubric_versions_are_not_reused_after_clear(self, db_session):
        repo = RubricRepo(db_session)
        first = repo.save(make_rubric({"a": [1.0]}))
        repo.clear()
        db_session.commit()

        second = repo.save(make_rubric({"b": [1.0]}))
        assert second.version > first.version
        assert repo.get_version(first.version) is None

    def test_domain_errors_are_shared(self):
        assert exceptions.ValidationError is domain_errors.ValidationError
        assert issubclass(exceptions.DatabaseError, domain_errors.BurhanError)

    def test_record_not_found(self, db_session):
        repo = RecordRepo(db_session)

        assert repo.find("missing") is None
        with pytest.raises(RecordNotFoundError):
            repo.get_required("missing")
        with pytest.raises(RecordNotFoundError):
            repo.remove("missing")

    def test_records_list_newest_first_with_filter(self, db_session):
        rubric = make_rubric({"a": [1.0]})
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        repo = RecordRepo(db_session)
        for offset, user in enumerate(["sara", "omar", "sara"]):
            repo.add(
                build_record(
                    sample_project_info(user_name=user),
                    rubric,
                    full_answers(rubric, 3),
                    record_id=f"r{offset}",
                    now=start + timedelta(days=offset),
                )
            )

        assert [r.id for r in repo.list_records()] == ["r2", "r1", "r0"]
        assert [r.id for r in repo.list_records(user_name="sara")] == ["r2", "r0"]
        assert [r.id for r in repo.list_records(limit=1)] == ["r2"]

        assert repo.remove_all(user_name="sara") == 2
        assert [r.id for r in repo.list_records()] == ["r1"]
        assert repo.remove_all() == 1

    def test_duplicate_record_id_is_an_integrity_error(self, db_session):
        rubric = make_rubric({"a": [1.0]})
        repo = RecordRepo(db_session)
        repo.add(build_record(sample_project_info(), rubric, {"a": [1]}, record_id="same"))

        with pytest.raises(DatabaseError):
            repo.add(build_record(sample_project_info(), rubric, {"a": [2]}, record_id="same"))

    def test_unit_of_work_rolls_back_on_error(self, session_factory):
        rubric = make_rubric({"a": [1.0]})
        uow = UnitOfWork(session_factory)

        with pytest.raises(RuntimeError):
            with uow.begin() as session:
                RecordRepo(session).add(build_record(sample_project_info(), rubric, {"a": [1]}))
                raise RuntimeError("abort")

        with uow.begin() as session:
            assert RecordRepo(session).list_records() == []

    def test_unit_of_work_commits(self, session_factory):
        uow = UnitOfWork(session_factory)
        with uow.begin() as session:
            RubricRepo(session).save(make_rubric({"a": [1.0]}))

        with uow.begin() as session:
            assert RubricRepo(session).latest() is not None

    def test_repository_error_handling(self, db_session):
        repo = RecordRepo(db_session)
        with (
            patch.object(db_session, "flush", side_effect=OperationalError("flush", {}, Exception("disk full"))),
            pytest.raises(DatabaseError),
        ):
            repo.add(build_record(sample_project_info(), make_rubric({"a": [1.0]}), {"a": [1]}))
