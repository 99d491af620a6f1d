"""Typed records and result containers for the analytics engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InsufficientDataError

SCALE_MIN = 1
DEFAULT_SCALE_MAX = 7


class RelationshipType(str, Enum):
    SELF = "self"
    PEER = "peer"
    SUPERVISOR = "supervisor"
    SUBORDINATE = "subordinate"
    CLIENT = "client"

    @property
    def is_reviewer(self) -> bool:
        return self is not RelationshipType.SELF

    @classmethod
    def parse(cls, value: object) -> "RelationshipType":
        """Return the member named by *value* (case and whitespace insensitive)."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class AlignmentLabel(str, Enum):
    ALIGNED = "aligned"
    BLIND_SPOT = "blind_spot"
    HIDDEN_STRENGTH = "hidden_strength"
    INSUFFICIENT_DATA = "insufficient_data"


class ScoreLabel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RejectReason(str, Enum):
    OUT_OF_RANGE = "out_of_range"
    MISSING_RATING = "missing_rating"
    INVALID_RATING = "invalid_rating"
    UNKNOWN_QUESTION = "unknown_question"
    UNKNOWN_COMPETENCY = "unknown_competency"
    UNKNOWN_RELATIONSHIP = "unknown_relationship"
    MISSING_FIELD = "missing_field"


# Relationship types in display/iteration order.
RELATIONSHIP_ORDER: Tuple[RelationshipType, ...] = tuple(RelationshipType)


@dataclass(frozen=True)
class CompetencyRef:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Question:
    """Static question definition supplied with the assessment."""

    id: str
    text: str = ""
    section_id: str = "default"
    section_title: Optional[str] = None
    scale_max: int = DEFAULT_SCALE_MAX
    competencies: Tuple[CompetencyRef, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.scale_max, bool) or not isinstance(self.scale_max, int):
            raise ValueError(f"scale_max must be an integer, got {self.scale_max!r}")
        if self.scale_max <= SCALE_MIN:
            raise ValueError(f"scale_max must be > {SCALE_MIN} for question {self.id}")
        if not isinstance(self.competencies, tuple):
            object.__setattr__(self, "competencies", tuple(self.competencies))

    @property
    def competency_ids(self) -> Tuple[str, ...]:
        return tuple(ref.id for ref in self.competencies)


@dataclass(frozen=True)
class RatingRecord:
    """A single validated rating. Created only by the normalizer."""

    assignment_id: str
    question_id: str
    relationship_type: RelationshipType
    rating: int
    respondent_id: str
    competency_id: Optional[str] = None
    comment: Optional[str] = None
    subject_id: Optional[str] = None

    @property
    def is_self(self) -> bool:
        return self.relationship_type is RelationshipType.SELF


@dataclass(frozen=True)
class Assignment:
    """A reviewer-to-subject assignment as tracked by the response store."""

    assignment_id: str
    subject_id: str
    reviewer_id: str
    relationship_type: RelationshipType
    status: AssignmentStatus = AssignmentStatus.PENDING
    department_id: Optional[str] = None
    assessment_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status is AssignmentStatus.COMPLETED


@dataclass(frozen=True)
class Diagnostic:
    """A rejected input row and the reason it was dropped."""

    row_index: int
    reason: RejectReason
    message: str
    row: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowIndex": self.row_index,
            "reason": self.reason.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class BucketStats:
    """Mean and counts for one group of ratings."""

    average: Optional[float]
    count: int
    respondent_count: int


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    question_text: str
    section_id: str
    scale_max: int
    self_rating: Optional[float]
    self_count: int
    avg_reviewer_rating: Optional[float]
    reviewer_count: int
    response_count: int
    gap: Optional[float]
    alignment: AlignmentLabel
    comments: Tuple[str, ...] = ()
    relationship_breakdown: Mapping[RelationshipType, BucketStats] = field(default_factory=dict)

    def require_reviewer_average(self) -> float:
        if self.avg_reviewer_rating is None:
            raise InsufficientDataError(f"No reviewer ratings for question {self.question_id}")
        return self.avg_reviewer_rating


@dataclass(frozen=True)
class CompetencyResult:
    competency_id: str
    competency_name: str
    scale_max: int
    self_rating: Optional[float]
    self_count: int
    avg_reviewer_rating: Optional[float]
    reviewer_count: int
    response_count: int
    gap: Optional[float]
    alignment: AlignmentLabel
    question_ids: Tuple[str, ...] = ()
    comments: Tuple[str, ...] = ()
    relationship_breakdown: Mapping[RelationshipType, BucketStats] = field(default_factory=dict)

    def require_reviewer_average(self) -> float:
        if self.avg_reviewer_rating is None:
            raise InsufficientDataError(f"No reviewer ratings for competency {self.competency_id}")
        return self.avg_reviewer_rating


@dataclass(frozen=True)
class SectionResult:
    section_id: str
    section_title: str
    self_average: Optional[float]
    reviewer_average: Optional[float]
    reviewer_count: int
    overall_gap: Optional[float]
    overall_alignment: AlignmentLabel
    questions: Tuple[QuestionResult, ...] = ()
    competency_results: Tuple[CompetencyResult, ...] = ()


@dataclass(frozen=True)
class SubjectResult:
    """Question, competency and section results about one subject.

    ``subject_id`` is ``None`` for ratings whose subject could not be resolved.
    """

    subject_id: Optional[str]
    questions: Tuple[QuestionResult, ...] = ()
    competencies: Tuple[CompetencyResult, ...] = ()
    sections: Tuple[SectionResult, ...] = ()
    record_count: int = 0


@dataclass(frozen=True)
class ComparisonResult:
    question_id: str
    question_text: str
    average_score: Optional[float]
    total_responses: int
    reviewer_count: int
    score_distribution: Mapping[int, int] = field(default_factory=dict)
    relationship_breakdown: Mapping[RelationshipType, BucketStats] = field(default_factory=dict)

    @property
    def relationship_type_averages(self) -> Dict[RelationshipType, Optional[float]]:
        return {rel: stats.average for rel, stats in self.relationship_breakdown.items()}


@dataclass(frozen=True)
class OrganizationAnalytics:
    total_assessments: int
    completed_assessments: int
    total_assignments: int
    average_score: Optional[float]
    section_averages: Mapping[str, float]
    question_averages: Mapping[str, float]
    relationship_type_breakdown: Mapping[RelationshipType, int]
    completion_rate: float
    response_rate: float
    top_strengths: Tuple[str, ...] = ()
    areas_for_improvement: Tuple[str, ...] = ()
    question_relationship_stats: Mapping[str, Mapping[RelationshipType, BucketStats]] = field(
        default_factory=dict
    )
    question_reviewer_counts: Mapping[str, int] = field(default_factory=dict)
    section_reviewer_counts: Mapping[str, int] = field(default_factory=dict)
    reviewer_count: int = 0


__all__ = [
    "AlignmentLabel",
    "Assignment",
    "AssignmentStatus",
    "BucketStats",
    "CompetencyRef",
    "CompetencyResult",
    "ComparisonResult",
    "DEFAULT_SCALE_MAX",
    "Diagnostic",
    "OrganizationAnalytics",
    "Question",
    "QuestionResult",
    "RELATIONSHIP_ORDER",
    "RatingRecord",
    "RejectReason",
    "RelationshipType",
    "SCALE_MIN",
    "ScoreLabel",
    "SectionResult",
    "SubjectResult",
]
