from __future__ import annotations

import json

import pytest

from burhan.application.api import (
    RubricEditSession,
    assessment_plan,
    delete_all_assessments,
    delete_assessment,
    evaluate,
    export_assessments,
    get_active_rubric,
    get_active_rubric_version,
    get_assessment,
    list_assessments,
    load_default_rubric,
    record_answer,
    reset_rubric_to_defaults,
    save_rubric,
    start_assessment,
    submit_assessment,
)
from burhan.domain.editor import add_domain, move_domain, update_question_weight
from burhan.domain.models import Domain, Rubric
from burhan.infrastructure.config import reset_settings
from burhan.infrastructure.exceptions import (
    ConfigurationError,
    ExportError,
    IncompleteAssessmentError,
    MultipleValidationError,
    RecordNotFoundError,
    RubricError,
    ValidationError,
)
from tests.helpers import full_answers, make_rubric, sample_project_info


def test_load_default_rubric_from_configured_path(tmp_path, monkeypatch):
    path = tmp_path / "rubric.json"
    path.write_text(
        json.dumps(
            {
                "domains": [
                    {
                        "key": "gov",
                        "title": "Governance",
                        "questions": [
                            {"id": "gov_1", "text": "t", "weight": 1.5, "levels": ["1", "2", "3", "4", "5"]}
                        ],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("APP_RUBRIC_PATH", str(path))
    reset_settings()

    rubric = load_default_rubric()
    assert [d.key for d in rubric] == ["gov"]


def test_load_default_rubric_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        load_default_rubric(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text(json.dumps({"domains": [{"key": "a"}]}), encoding="utf-8")
    with pytest.raises(RubricError):
        load_default_rubric(broken)


def test_active_rubric_falls_back_to_defaults(db_session, default_rubric):
    rubric, version = get_active_rubric_version(db_session)

    assert version is None
    assert rubric == default_rubric


def test_save_rubric_creates_new_live_version(db_session):
    first = save_rubric(db_session, make_rubric({"a": [1.0]}))
    second = save_rubric(db_session, make_rubric({"a": [1.0], "b": [2.0]}), note="added b")

    assert second.version > first.version
    rubric, version = get_active_rubric_version(db_session)
    assert version == second.version
    assert [d.key for d in rubric] == ["a", "b"]


def test_save_rubric_rejects_invalid(db_session):
    bad = Rubric(domains=(Domain(key="a", title="A"), Domain(key="a", title="again")))
    with pytest.raises(ValidationError):
        save_rubric(db_session, bad)
    assert get_active_rubric_version(db_session)[1] is None


def test_reset_rubric_to_defaults(db_session, default_rubric):
    save_rubric(db_session, make_rubric({"a": [1.0]}))

    assert reset_rubric_to_defaults(db_session) == default_rubric
    assert get_active_rubric(db_session) == default_rubric


def test_reset_never_reissues_a_recorded_version(db_session):
    rubric = make_rubric({"a": [1.0, 2.0]})
    first = save_rubric(db_session, rubric)
    record = submit_assessment(db_session, sample_project_info(), {"a": [3, 5]})
    db_session.commit()

    reset_rubric_to_defaults(db_session)
    db_session.commit()
    edited = save_rubric(db_session, update_question_weight(rubric, 0, 1, 1.0))

    assert record.rubric_version == first.version
    assert edited.version != record.rubric_version
    assert get_assessment(db_session, record.id).rubric_snapshot == rubric


def test_rubric_edit_session_tracks_changes(db_session):
    saved = make_rubric({"a": [1.0], "b": [1.0]})
    edit = RubricEditSession(saved)
    assert edit.dirty is False

    # out-of-range move returns the same rubric
    edit.apply(move_domain, 0, 5)
    assert edit.dirty is False

    edit.apply(add_domain, "Cloud")
    assert edit.dirty is True
    assert len(edit.working) == 3
    assert len(edit.saved) == 2

    assert edit.discard() == saved
    assert edit.dirty is False

    edit.apply(update_question_weight, 0, 0, 2.0)
    version = edit.save(db_session, note="heavier")
    assert edit.dirty is False
    assert edit.saved == edit.working
    assert get_active_rubric(db_session).domains[0].questions[0].weight == 2.0
    assert version.note == "heavier"


def test_session_flow_updates_score_and_completion():
    rubric = make_rubric({"gov": [1.0, 2.0]})
    sheet = start_assessment(rubric)

    evaluation = evaluate(rubric, sheet)
    assert evaluation.score.raw_score == 0
    assert evaluation.completion.answered == 0

    sheet = record_answer(rubric, sheet, "gov_q1", 3)
    sheet = record_answer(rubric, sheet, "gov_q2", 5)
    evaluation = evaluate(rubric, sheet)

    assert evaluation.score.raw_score == 22.5
    assert evaluation.score.percentage == 90
    assert evaluation.completion.pct == 100


def test_submit_rejects_single_invalid_field(db_session):
    rubric = make_rubric({"a": [1.0]})
    with pytest.raises(ValidationError) as exc_info:
        submit_assessment(db_session, sample_project_info(email="not-an-email"), {"a": [3]}, rubric)
    assert exc_info.value.field == "email"


def test_submit_rejects_several_invalid_fields(db_session):
    rubric = make_rubric({"a": [1.0]})
    info = {"user_name": "", "project_name": "", "organization": "Org", "email": "x@y.io", "phone": "+966501234567"}

    with pytest.raises(MultipleValidationError) as exc_info:
        submit_assessment(db_session, info, {"a": [3]}, rubric)
    assert {e.field for e in exc_info.value.validation_errors} == {"user_name", "project_name"}


def test_submit_rejects_incomplete(db_session):
    rubric = make_rubric({"a": [1.0, 1.0]})
    with pytest.raises(IncompleteAssessmentError):
        submit_assessment(db_session, sample_project_info(), {"a": [3]}, rubric)
    assert list_assessments(db_session) == []


def test_submit_uses_live_rubric_version(db_session):
    saved = save_rubric(db_session, make_rubric({"a": [1.0, 2.0]}))

    record = submit_assessment(db_session, sample_project_info(), {"a": [3, 5]})
    db_session.commit()

    assert record.rubric_version == saved.version
    assert record.score == 22.5
    stored = get_assessment(db_session, record.id)
    assert stored.rubric_snapshot == saved.rubric
    assert [r.id for r in list_assessments(db_session)] == [record.id]


def test_plan_uses_stored_snapshot_after_rubric_edit(db_session):
    rubric = make_rubric({"gov": [1.0, 2.0]})
    save_rubric(db_session, rubric)
    record = submit_assessment(db_session, sample_project_info(), {"gov": [3, 5]})

    save_rubric(db_session, update_question_weight(rubric, 0, 1, 1.0))
    report = assessment_plan(db_session, record.id)

    assert report.score.raw_score == 22.5
    assert [item.domain_key for item in report.plan.strengths] == ["gov"]
    assert report.plan.urgent == ()


def test_delete_assessments(db_session):
    rubric = make_rubric({"a": [1.0]})
    first = submit_assessment(db_session, sample_project_info(), {"a": [1]}, rubric)
    submit_assessment(db_session, sample_project_info(user_name="Omar"), {"a": [2]}, rubric)
    submit_assessment(db_session, sample_project_info(user_name="Omar"), {"a": [4]}, rubric)

    delete_assessment(db_session, first.id)
    with pytest.raises(RecordNotFoundError):
        get_assessment(db_session, first.id)
    with pytest.raises(RecordNotFoundError):
        delete_assessment(db_session, first.id)

    assert delete_all_assessments(db_session, user_name="Omar") == 2
    assert list_assessments(db_session) == []


def test_json_export(db_session):
    rubric = make_rubric({"a": [1.0]})
    record = submit_assessment(db_session, sample_project_info(), {"a": [0]}, rubric)

    payload = json.loads(export_assessments(db_session, "json", exported_by="auditor"))

    assert payload["meta"]["exported_by"] == "auditor"
    assert payload["assessment"]["id"] == record.id

    submit_assessment(db_session, sample_project_info(), full_answers(rubric, 2), rubric)
    payload = json.loads(export_assessments(db_session, "json", exported_by="auditor"))
    assert len(payload["assessments"]) == 2


def test_xlsx_export(db_session):
    rubric = make_rubric({"a": [1.0, 1.0]})
    submit_assessment(db_session, sample_project_info(), {"a": [5, 0]}, rubric)

    data = export_assessments(db_session, "xlsx", exported_by="auditor")
    assert isinstance(data, bytes)
    assert data[:2] == b"PK"


def test_export_can_be_disabled(db_session, monkeypatch):
    monkeypatch.setenv("APP_ENABLE_DATA_EXPORT", "false")
    reset_settings()

    with pytest.raises(ExportError):
        export_assessments(db_session, "json", exported_by="auditor")


def test_export_rejects_unknown_format(db_session):
    with pytest.raises(ExportError):
        export_assessments(db_session, "csv", exported_by="auditor")  # type: ignore[arg-type]
