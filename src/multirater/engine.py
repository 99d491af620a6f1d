"""Pipeline facade: normalize, aggregate, classify, roll up, compare."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .aggregator import aggregate, aggregate_competencies, group_by_subject
from .cache import AnalyticsCache, CacheKey
from .comparison import compare_questions
from .config import AppConfig
from .models import (
    Assignment,
    ComparisonResult,
    Diagnostic,
    OrganizationAnalytics,
    Question,
    RatingRecord,
    SubjectResult,
)
from .normalizer import NormalizationResult, RawRows, normalize_rows
from .privacy import DEFAULT_MIN_REVIEWERS, PrivacyGuard
from .rollup import DEFAULT_TOP_N, build_department_analytics, build_organization_analytics, build_sections
from .thresholds import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger("multirater.engine")


@dataclass(frozen=True)
class EngineResult:
    """Everything computed for one scope, plus the normalizer's diagnostics.

    ``subjects`` holds per-subject question, competency and section results;
    comparisons and organization/department analytics span the whole scope.
    """

    subjects: Tuple[SubjectResult, ...]
    comparisons: Tuple[ComparisonResult, ...]
    analytics: OrganizationAnalytics
    departments: Mapping[str, OrganizationAnalytics] = field(default_factory=dict)
    diagnostics: Tuple[Diagnostic, ...] = ()
    record_count: int = 0

    def subject(self, subject_id: Optional[str]) -> SubjectResult:
        for result in self.subjects:
            if result.subject_id == subject_id:
                return result
        raise KeyError(subject_id)


class AnalyticsEngine:
    """Stateless computation plus an optional :class:`AnalyticsCache`."""

    def __init__(
        self,
        *,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        min_reviewers: int = DEFAULT_MIN_REVIEWERS,
        top_n: int = DEFAULT_TOP_N,
        max_workers: int = 1,
        cache: Optional[AnalyticsCache] = None,
    ) -> None:
        self.thresholds = thresholds
        self.guard = PrivacyGuard(min_reviewers=min_reviewers, thresholds=thresholds)
        self.top_n = top_n
        self.max_workers = max_workers
        self.cache = cache

    @classmethod
    def from_config(cls, config: AppConfig, cache: Optional[AnalyticsCache] = None) -> "AnalyticsEngine":
        return cls(
            thresholds=config.thresholds,
            min_reviewers=config.min_reviewers,
            top_n=config.top_n,
            max_workers=config.max_workers,
            cache=cache,
        )

    def normalize(self, rows: RawRows, questions: Sequence[Question]) -> NormalizationResult:
        return normalize_rows(rows, questions)

    def summarize_subject(
        self,
        subject_id: Optional[str],
        records: Sequence[RatingRecord],
        questions: Sequence[Question],
    ) -> SubjectResult:
        """Question, competency and section results for one subject's ratings."""

        question_results = aggregate(
            records, questions, thresholds=self.thresholds, max_workers=self.max_workers
        )
        competency_results = aggregate_competencies(
            records, questions, thresholds=self.thresholds, max_workers=self.max_workers
        )
        sections = build_sections(
            records, question_results, competency_results, questions, thresholds=self.thresholds
        )
        return SubjectResult(
            subject_id=subject_id,
            questions=tuple(question_results),
            competencies=tuple(competency_results),
            sections=tuple(sections),
            record_count=len(records),
        )

    def compute(
        self,
        rows: RawRows,
        questions: Sequence[Question],
        assignments: Sequence[Assignment] = (),
        *,
        comparison_question_ids: Optional[Sequence[str]] = None,
    ) -> EngineResult:
        """Run the full pipeline over raw response *rows*.

        A self rating is only ever compared with reviewer ratings about the
        same subject, resolved from the row or from its assignment.
        """

        normalized = self.normalize(rows, questions)
        records = normalized.records

        subjects = tuple(
            self.summarize_subject(subject_id, subject_records, questions)
            for subject_id, subject_records in group_by_subject(records, assignments).items()
        )
        if comparison_question_ids is None:
            comparison_question_ids = [question.id for question in questions]
        comparisons = compare_questions(
            comparison_question_ids, records, questions, max_workers=self.max_workers
        )
        analytics = build_organization_analytics(
            records, assignments, questions, min_reviewers=self.guard.min_reviewers, top_n=self.top_n
        )
        departments = build_department_analytics(
            records, assignments, questions, min_reviewers=self.guard.min_reviewers, top_n=self.top_n
        )

        logger.info("Computed results for %d subjects from %d records", len(subjects), len(records))
        return EngineResult(
            subjects=subjects,
            comparisons=tuple(comparisons),
            analytics=analytics,
            departments=departments,
            diagnostics=normalized.rejected,
            record_count=len(records),
        )

    def compute_cached(
        self,
        key: CacheKey,
        rows: RawRows,
        questions: Sequence[Question],
        assignments: Sequence[Assignment] = (),
        **kwargs: Any,
    ) -> EngineResult:
        if self.cache is None:
            return self.compute(rows, questions, assignments, **kwargs)
        return self.cache.get_or_compute(key, lambda: self.compute(rows, questions, assignments, **kwargs))

    def records_ingested(self, organization_id: str, assessment_id: Optional[str] = None) -> int:
        """Signal new ratings for a scope; cached results for it are discarded."""
        if self.cache is None:
            return 0
        return self.cache.invalidate(organization_id, assessment_id)

    def disclose(self, result: EngineResult) -> Dict[str, Any]:
        """JSON-ready view of *result* with the privacy floor applied."""

        guard = self.guard
        return {
            "minReviewers": guard.min_reviewers,
            "recordCount": result.record_count,
            "subjects": [guard.subject(item) for item in result.subjects],
            "comparisons": [guard.comparison(item) for item in result.comparisons],
            "analytics": guard.organization(result.analytics),
            "departments": {
                department_id: guard.organization(analytics)
                for department_id, analytics in result.departments.items()
            },
            "diagnostics": [diagnostic.to_dict() for diagnostic in result.diagnostics],
        }


__all__ = ["AnalyticsEngine", "EngineResult"]
