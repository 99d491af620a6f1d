"""Workbook loading and validation of assessment definitions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .errors import ValidationError
from .models import DEFAULT_SCALE_MAX, Assignment, AssignmentStatus, CompetencyRef, Question, RelationshipType

logger = logging.getLogger("multirater.loader")

QUESTIONS_SHEET = "Questions"
RESPONSES_SHEET = "Responses"
ASSIGNMENTS_SHEET = "Assignments"

RESPONSE_COLUMNS = ("assignment_id", "question_id", "rating", "respondent_id")
ASSIGNMENT_COLUMNS = ("assignment_id", "subject_id", "reviewer_id", "relationship_type")


@dataclass(frozen=True)
class WorkbookData:
    """Container for the collaborator-supplied inputs."""

    questions: Tuple[Question, ...]
    responses: pd.DataFrame
    assignments: Tuple[Assignment, ...]


def load_data(path: str | Path, default_scale_max: int = DEFAULT_SCALE_MAX) -> WorkbookData:
    """Load an Excel workbook, or a directory of ``questions.csv`` /
    ``responses.csv`` / ``assignments.csv``, and validate its structure.

    Individual response rows are not validated here; that is the
    normalizer's job.
    """

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Workbook not found: {source}")

    if source.is_dir():
        frames = _read_csv_dir(source)
    else:
        frames = _read_excel(source)

    questions_df, responses_df, assignments_df = frames
    for column in RESPONSE_COLUMNS:
        if column not in responses_df:
            raise ValidationError(f"{RESPONSES_SHEET} sheet must contain '{column}' column")

    questions = parse_questions(questions_df, default_scale_max)
    assignments = parse_assignments(assignments_df) if assignments_df is not None else ()
    logger.debug(
        "Loaded %d questions, %d responses, %d assignments from %s",
        len(questions),
        len(responses_df),
        len(assignments),
        source,
    )
    return WorkbookData(questions=questions, responses=responses_df, assignments=assignments)


def _read_excel(path: Path) -> Tuple[pd.DataFrame, pd.DataFrame, Optional[pd.DataFrame]]:
    xl = pd.ExcelFile(path)
    try:
        questions = xl.parse(QUESTIONS_SHEET)
        responses = xl.parse(RESPONSES_SHEET)
    except ValueError as exc:
        raise ValidationError(
            f"Workbook must contain {QUESTIONS_SHEET} and {RESPONSES_SHEET} sheets"
        ) from exc
    assignments = xl.parse(ASSIGNMENTS_SHEET) if ASSIGNMENTS_SHEET in xl.sheet_names else None
    return questions, responses, assignments


def _read_csv_dir(path: Path) -> Tuple[pd.DataFrame, pd.DataFrame, Optional[pd.DataFrame]]:
    questions_csv = path / "questions.csv"
    responses_csv = path / "responses.csv"
    assignments_csv = path / "assignments.csv"
    for required in (questions_csv, responses_csv):
        if not required.exists():
            raise ValidationError(f"Missing {required.name} in {path}")
    questions = pd.read_csv(questions_csv, dtype=str)
    responses = pd.read_csv(responses_csv, dtype={"assignment_id": str, "question_id": str, "respondent_id": str})
    assignments = pd.read_csv(assignments_csv, dtype=str) if assignments_csv.exists() else None
    return questions, responses, assignments


def _text(value: Any) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _parse_competencies(value: Any) -> List[CompetencyRef]:
    """``"c1:Listening; c2:Delegation"`` -> refs. Names are optional."""
    text = _text(value)
    if not text:
        return []
    refs = []
    for part in text.split(";"):
        part = part.strip()
        if not part:
            continue
        competency_id, _, name = part.partition(":")
        refs.append(CompetencyRef(id=competency_id.strip(), name=name.strip()))
    return refs


def parse_questions(frame: pd.DataFrame, default_scale_max: int = DEFAULT_SCALE_MAX) -> Tuple[Question, ...]:
    if "id" not in frame:
        raise ValidationError(f"{QUESTIONS_SHEET} sheet must contain 'id' column")
    ids = frame["id"].map(_text)
    if ids.isna().any():
        raise ValidationError(f"{QUESTIONS_SHEET} sheet has rows without an id")
    if ids.duplicated().any():
        duplicates = sorted(ids[ids.duplicated()].unique())
        raise ValidationError(f"Duplicate question ids: {duplicates}")

    questions: List[Question] = []
    for index, row in frame.iterrows():
        raw_scale = row.get("scale_max")
        try:
            scale_max = default_scale_max
            if _text(raw_scale) is not None:
                scale_value = float(raw_scale)
                if not scale_value.is_integer():
                    raise ValueError(f"scale_max {raw_scale!r} is not a whole number")
                scale_max = int(scale_value)
            question = Question(
                id=_text(row["id"]),
                text=_text(row.get("text")) or "",
                section_id=_text(row.get("section_id")) or "default",
                section_title=_text(row.get("section_title")),
                scale_max=scale_max,
                competencies=tuple(_parse_competencies(row.get("competencies"))),
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid question definition at row {index}: {exc}") from exc
        questions.append(question)
    return tuple(questions)


def parse_assignments(frame: pd.DataFrame) -> Tuple[Assignment, ...]:
    for column in ASSIGNMENT_COLUMNS:
        if column not in frame:
            raise ValidationError(f"{ASSIGNMENTS_SHEET} sheet must contain '{column}' column")

    assignments: Dict[str, Assignment] = {}
    for index, row in frame.iterrows():
        assignment_id = _text(row["assignment_id"])
        if assignment_id is None:
            raise ValidationError(f"Assignment at row {index} has no assignment_id")
        try:
            relationship = RelationshipType.parse(row["relationship_type"])
            status = AssignmentStatus((_text(row.get("status")) or AssignmentStatus.PENDING.value).lower())
        except ValueError as exc:
            raise ValidationError(f"Invalid assignment {assignment_id}: {exc}") from exc
        if assignment_id in assignments:
            logger.warning("Duplicate assignment %s; keeping the last row", assignment_id)
        assignments[assignment_id] = Assignment(
            assignment_id=assignment_id,
            subject_id=_text(row["subject_id"]) or "",
            reviewer_id=_text(row["reviewer_id"]) or "",
            relationship_type=relationship,
            status=status,
            department_id=_text(row.get("department_id")),
            assessment_id=_text(row.get("assessment_id")),
        )
    return tuple(assignments.values())


__all__ = [
    "ASSIGNMENTS_SHEET",
    "QUESTIONS_SHEET",
    "RESPONSES_SHEET",
    "WorkbookData",
    "load_data",
    "parse_assignments",
    "parse_questions",
]
