"""Validation and coercion of raw response rows into :class:`RatingRecord` values."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .errors import ConfigurationError, ValidationError
from .models import SCALE_MIN, Diagnostic, Question, RatingRecord, RejectReason, RelationshipType

logger = logging.getLogger("multirater.normalizer")

# canonical field -> accepted input keys
FIELD_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "assignment_id": ("assignment_id", "assignmentId"),
    "question_id": ("question_id", "questionId"),
    "competency_id": ("competency_id", "competencyId"),
    "relationship_type": ("relationship_type", "relationshipType"),
    "rating": ("rating",),
    "respondent_id": ("respondent_id", "respondentId"),
    "subject_id": ("subject_id", "subjectId", "employee_id", "employeeId"),
    "comment": ("comment",),
}

RawRows = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class NormalizationResult:
    records: Tuple[RatingRecord, ...]
    rejected: Tuple[Diagnostic, ...]

    @property
    def ok(self) -> bool:
        return not self.rejected


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _field(row: Mapping[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        if key in row and not _is_missing(row[key]):
            return row[key]
    return None


def _clean_id(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # spreadsheets turn integer ids into floats when a column has blanks
        value = int(value)
    return str(value).strip()


def _coerce_rating(value: Any, scale_max: int) -> int:
    if _is_missing(value):
        raise ValidationError("rating is missing", RejectReason.MISSING_RATING)
    if isinstance(value, bool):
        raise ValidationError(f"rating {value!r} is not numeric", RejectReason.INVALID_RATING)
    number = pd.to_numeric(str(value).strip() if isinstance(value, str) else value, errors="coerce")
    if pd.isna(number):
        raise ValidationError(f"rating {value!r} is not numeric", RejectReason.INVALID_RATING)
    number = float(number)
    if not number.is_integer():
        raise ValidationError(f"rating {value!r} is not a whole number", RejectReason.INVALID_RATING)
    rating = int(number)
    if not SCALE_MIN <= rating <= scale_max:
        raise ValidationError(
            f"rating {rating} outside scale {SCALE_MIN}-{scale_max}", RejectReason.OUT_OF_RANGE
        )
    return rating


def _resolve_relationship(row: Mapping[str, Any], respondent_id: str) -> RelationshipType:
    raw = _field(row, "relationship_type")
    if raw is not None:
        try:
            return RelationshipType.parse(raw)
        except ValueError as exc:
            raise ValidationError(
                f"unknown relationship type {raw!r}", RejectReason.UNKNOWN_RELATIONSHIP
            ) from exc
    subject_id = _clean_id(_field(row, "subject_id"))
    if subject_id is not None and subject_id == respondent_id:
        return RelationshipType.SELF
    raise ValidationError("relationship type is missing", RejectReason.UNKNOWN_RELATIONSHIP)


def _normalize_row(
    row: Mapping[str, Any],
    questions: Mapping[str, Question],
    competency_ids: frozenset,
) -> RatingRecord:
    assignment_id = _clean_id(_field(row, "assignment_id"))
    question_id = _clean_id(_field(row, "question_id"))
    respondent_id = _clean_id(_field(row, "respondent_id"))
    missing = [
        name
        for name, value in (
            ("assignment_id", assignment_id),
            ("question_id", question_id),
            ("respondent_id", respondent_id),
        )
        if value is None
    ]
    if missing:
        raise ValidationError(f"missing {', '.join(missing)}", RejectReason.MISSING_FIELD)

    question = questions.get(question_id)
    if question is None:
        raise ConfigurationError(f"unknown question {question_id}", RejectReason.UNKNOWN_QUESTION)

    competency_id = _clean_id(_field(row, "competency_id"))
    if competency_id is not None and competency_id not in competency_ids:
        raise ConfigurationError(
            f"unknown competency {competency_id}", RejectReason.UNKNOWN_COMPETENCY
        )

    relationship = _resolve_relationship(row, respondent_id)
    rating = _coerce_rating(_field(row, "rating"), question.scale_max)

    comment = _field(row, "comment")
    return RatingRecord(
        assignment_id=assignment_id,
        question_id=question_id,
        relationship_type=relationship,
        rating=rating,
        respondent_id=respondent_id,
        competency_id=competency_id,
        comment=str(comment).strip() if comment is not None else None,
        subject_id=_clean_id(_field(row, "subject_id")),
    )


def _iter_rows(rows: RawRows) -> Iterable[Mapping[str, Any]]:
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict(orient="records")
    return rows


def normalize_rows(rows: RawRows, questions: Sequence[Question]) -> NormalizationResult:
    """Validate *rows* against *questions*.

    Bad rows never abort the run: each one is dropped and reported as a
    :class:`Diagnostic`. Valid rows keep their input order.
    """

    question_map: Dict[str, Question] = {question.id: question for question in questions}
    competency_ids = frozenset(ref.id for question in questions for ref in question.competencies)

    records: List[RatingRecord] = []
    rejected: List[Diagnostic] = []
    for index, row in enumerate(_iter_rows(rows)):
        try:
            records.append(_normalize_row(row, question_map, competency_ids))
        except (ValidationError, ConfigurationError) as exc:
            reason = exc.reason if isinstance(exc.reason, RejectReason) else RejectReason.MISSING_FIELD
            logger.debug("Row %d rejected (%s): %s", index, reason.value, exc)
            rejected.append(Diagnostic(row_index=index, reason=reason, message=str(exc), row=dict(row)))

    if rejected:
        logger.warning("%d of %d rows rejected during normalization", len(rejected), len(records) + len(rejected))
    logger.info("Normalized %d rating records", len(records))
    return NormalizationResult(records=tuple(records), rejected=tuple(rejected))


__all__ = ["FIELD_ALIASES", "NormalizationResult", "normalize_rows"]
