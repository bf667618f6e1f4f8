from __future__ import annotations

import io
import json
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from burhan.domain.models import AnswerValue, AssessmentRecord, Rubric
from burhan.domain.schemas import RubricDocument
from burhan.infrastructure.exceptions import ExportError

UNANSWERED_TEXT = "لم يتم الإجابة"
UNKNOWN_TEXT = "غير معروف"

SUMMARY_COLUMNS = [
    "RecordID",
    "Date",
    "User",
    "Project",
    "Organization",
    "Email",
    "Phone",
    "Score",
    "MaxScore",
    "Percentage",
    "Classification",
    "RubricVersion",
]
ANSWER_COLUMNS = ["RecordID", "Domain", "DomainTitle", "Question", "QuestionText", "Answer", "AnswerText"]


def _to_iso(val):
    if hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except Exception:
            return str(val)
    return val


def answer_text(rubric: Rubric | None, domain_key: str, question_index: int, value: AnswerValue) -> str:
    """Level description for a stored answer; 0 and None read as unanswered."""
    if value is None or value == 0:
        return UNANSWERED_TEXT
    domain = rubric.domain(domain_key) if rubric is not None else None
    if domain is None or not 0 <= question_index < len(domain.questions):
        return UNKNOWN_TEXT
    levels = domain.questions[question_index].levels
    return levels[value - 1] if 0 < value <= len(levels) else UNKNOWN_TEXT


def record_to_dict(record: AssessmentRecord) -> dict[str, Any]:
    info = record.project_info
    return {
        "id": record.id,
        "date": _to_iso(record.date),
        "project_info": {
            "user_name": info.user_name,
            "project_name": info.project_name,
            "organization": info.organization,
            "email": info.email,
            "phone": info.phone,
        },
        "score": record.score,
        "max_score": record.max_score,
        "percentage": record.percentage,
        "classification": record.classification,
        "detailed_answers": {k: list(v) for k, v in record.detailed_answers.items()},
        "rubric_version": record.rubric_version,
        "rubric_snapshot": (
            RubricDocument.from_rubric(record.rubric_snapshot).model_dump(mode="json")
            if record.rubric_snapshot is not None
            else None
        ),
    }


def records_to_frame(records: Sequence[AssessmentRecord]) -> pd.DataFrame:
    """One summary row per record, in the order given."""
    rows = [
        {
            "RecordID": r.id,
            "Date": r.date,
            "User": r.project_info.user_name,
            "Project": r.project_info.project_name,
            "Organization": r.project_info.organization,
            "Email": r.project_info.email,
            "Phone": r.project_info.phone,
            "Score": r.score,
            "MaxScore": r.max_score,
            "Percentage": r.percentage,
            "Classification": r.classification,
            "RubricVersion": r.rubric_version,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def answers_to_frame(records: Sequence[AssessmentRecord]) -> pd.DataFrame:
    """One row per answered slot, resolved against each record's own rubric snapshot."""
    rows = []
    for record in records:
        snapshot = record.rubric_snapshot
        for domain_key, values in record.detailed_answers.items():
            domain = snapshot.domain(domain_key) if snapshot is not None else None
            for index, value in enumerate(values):
                question = (
                    domain.questions[index]
                    if domain is not None and index < len(domain.questions)
                    else None
                )
                rows.append(
                    {
                        "RecordID": record.id,
                        "Domain": domain_key,
                        "DomainTitle": domain.title if domain is not None else "",
                        "Question": question.id if question is not None else "",
                        "QuestionText": question.text if question is not None else "",
                        "Answer": value,
                        "AnswerText": answer_text(snapshot, domain_key, index, value),
                    }
                )
    return pd.DataFrame(rows, columns=ANSWER_COLUMNS)


def make_json_export_payload(
    records: Sequence[AssessmentRecord],
    exported_by: str,
    exported_at: datetime | None = None,
) -> str:
    """Serialise history with export metadata; a single record goes under ``assessment``."""
    meta = {
        "exported_by": exported_by,
        "exported_at": _to_iso(exported_at or datetime.now(timezone.utc)),
    }
    if len(records) == 1:
        payload: dict[str, Any] = {"meta": meta, "assessment": record_to_dict(records[0])}
    else:
        payload = {"meta": meta, "assessments": [record_to_dict(r) for r in records]}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def make_xlsx_export_bytes(records: Sequence[AssessmentRecord]) -> bytes:
    """Two-sheet workbook: record summaries and the answer detail behind them."""
    summary = records_to_frame(records)
    # Excel cannot store timezone-aware datetimes
    summary["Date"] = summary["Date"].map(
        lambda d: d.astimezone(timezone.utc).replace(tzinfo=None) if hasattr(d, "astimezone") else d
    )
    detail = answers_to_frame(records)

    bio = io.BytesIO()
    try:
        with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
            summary.to_excel(writer, index=False, sheet_name="Assessments")
            detail.to_excel(writer, index=False, sheet_name="Answers")
    except Exception as e:
        raise ExportError(f"Failed to build XLSX export: {e}", export_format="xlsx") from e
    return bio.getvalue()
