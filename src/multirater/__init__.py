"""multirater: aggregation and alignment analytics for multi-rater feedback."""

from .aggregator import aggregate, aggregate_competencies
from .alignment import classify_alignment, score_label
from .cache import AnalyticsCache, make_key
from .comparison import compare_questions
from .config import load_config
from .engine import AnalyticsEngine, EngineResult
from .errors import ConfigurationError, InsufficientDataError, MultiraterError, ValidationError
from .export import flatten_analytics, flatten_results, reaggregate_rows
from .loader import load_data
from .logging_utils import log_rejections, setup_logging
from .models import (
    AlignmentLabel,
    Assignment,
    AssignmentStatus,
    CompetencyRef,
    Question,
    RatingRecord,
    RelationshipType,
    ScoreLabel,
    SubjectResult,
)
from .normalizer import normalize_rows
from .privacy import PrivacyGuard
from .report import export_report
from .rollup import build_department_analytics, build_organization_analytics, build_sections
from .thresholds import Thresholds

__all__ = [
    "AlignmentLabel",
    "AnalyticsCache",
    "AnalyticsEngine",
    "Assignment",
    "AssignmentStatus",
    "CompetencyRef",
    "ConfigurationError",
    "EngineResult",
    "InsufficientDataError",
    "MultiraterError",
    "PrivacyGuard",
    "Question",
    "RatingRecord",
    "RelationshipType",
    "ScoreLabel",
    "SubjectResult",
    "Thresholds",
    "ValidationError",
    "aggregate",
    "aggregate_competencies",
    "build_department_analytics",
    "build_organization_analytics",
    "build_sections",
    "classify_alignment",
    "compare_questions",
    "export_report",
    "flatten_analytics",
    "flatten_results",
    "load_config",
    "load_data",
    "log_rejections",
    "make_key",
    "normalize_rows",
    "reaggregate_rows",
    "score_label",
    "setup_logging",
]
