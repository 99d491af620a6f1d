"""Minimum-reviewer disclosure policy applied at the output boundary.

Results are always computed from true values. The guard only decides what a
serialized view may show: a reviewer-derived number backed by fewer distinct
reviewers than the floor is replaced by ``None`` and flagged ``suppressed``,
and the matching comments are withheld. Counts stay visible.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .alignment import score_label
from .models import (
    AlignmentLabel,
    BucketStats,
    CompetencyResult,
    ComparisonResult,
    OrganizationAnalytics,
    QuestionResult,
    RelationshipType,
    ScoreLabel,
    SectionResult,
    SubjectResult,
)
from .thresholds import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger("multirater.privacy")

DEFAULT_MIN_REVIEWERS = 3


def _round(value: Optional[float], digits: int = 4) -> Optional[float]:
    return None if value is None else round(value, digits)


@dataclass(frozen=True)
class PrivacyGuard:
    min_reviewers: int = DEFAULT_MIN_REVIEWERS
    thresholds: Thresholds = DEFAULT_THRESHOLDS

    def __post_init__(self) -> None:
        if isinstance(self.min_reviewers, bool) or not isinstance(self.min_reviewers, int):
            raise ValueError("min_reviewers must be an integer")
        if self.min_reviewers < 1:
            raise ValueError("min_reviewers must be >= 1")

    def allows(self, respondent_count: int) -> bool:
        """True when *respondent_count* distinct reviewers meet the floor."""
        return respondent_count >= self.min_reviewers

    def bucket_suppressed(self, relationship: RelationshipType, stats: BucketStats) -> bool:
        if not relationship.is_reviewer:
            return False
        return not self.allows(stats.respondent_count)

    # ------------------------------------------------------------------
    # Serialized views
    # ------------------------------------------------------------------
    def bucket(self, relationship: RelationshipType, stats: BucketStats) -> Dict[str, Any]:
        suppressed = self.bucket_suppressed(relationship, stats)
        return {
            "average": None if suppressed else _round(stats.average),
            "count": stats.count,
            "respondentCount": stats.respondent_count,
            "suppressed": suppressed,
        }

    def breakdown(self, breakdown: Mapping[RelationshipType, BucketStats]) -> Dict[str, Dict[str, Any]]:
        return {rel.value: self.bucket(rel, stats) for rel, stats in breakdown.items()}

    def _rated(self, result: QuestionResult | CompetencyResult, scale_max: int) -> Dict[str, Any]:
        suppressed = not self.allows(result.reviewer_count)
        alignment = AlignmentLabel.INSUFFICIENT_DATA if suppressed else result.alignment
        reviewer_average = None if suppressed else result.avg_reviewer_rating
        return {
            "selfRating": _round(result.self_rating),
            "avgReviewerRating": _round(reviewer_average),
            "reviewerCount": result.reviewer_count,
            "responseCount": result.response_count,
            "gap": None if suppressed else _round(result.gap),
            "alignment": alignment.value,
            "scoreLabel": _label_value(score_label(reviewer_average, scale_max, thresholds=self.thresholds)),
            "comments": [] if suppressed else list(result.comments),
            "suppressed": suppressed,
            "relationshipBreakdown": self.breakdown(result.relationship_breakdown),
        }

    def question(self, result: QuestionResult) -> Dict[str, Any]:
        view = {
            "questionId": result.question_id,
            "questionText": result.question_text,
            "sectionId": result.section_id,
        }
        view.update(self._rated(result, result.scale_max))
        return view

    def competency(self, result: CompetencyResult) -> Dict[str, Any]:
        view = {
            "competencyId": result.competency_id,
            "competencyName": result.competency_name,
            "questionIds": list(result.question_ids),
        }
        view.update(self._rated(result, result.scale_max))
        return view

    def section(self, result: SectionResult) -> Dict[str, Any]:
        suppressed = not self.allows(result.reviewer_count)
        return {
            "sectionId": result.section_id,
            "sectionTitle": result.section_title,
            "selfAverage": _round(result.self_average),
            "reviewerAverage": None if suppressed else _round(result.reviewer_average),
            "reviewerCount": result.reviewer_count,
            "overallGap": None if suppressed else _round(result.overall_gap),
            "overallAlignment": (
                AlignmentLabel.INSUFFICIENT_DATA if suppressed else result.overall_alignment
            ).value,
            "suppressed": suppressed,
            "questions": [self.question(question) for question in result.questions],
            "competencyResults": [self.competency(competency) for competency in result.competency_results],
        }

    def subject(self, result: SubjectResult) -> Dict[str, Any]:
        return {
            "subjectId": result.subject_id,
            "recordCount": result.record_count,
            "questions": [self.question(item) for item in result.questions],
            "competencies": [self.competency(item) for item in result.competencies],
            "sections": [self.section(item) for item in result.sections],
        }

    def comparison(self, result: ComparisonResult) -> Dict[str, Any]:
        suppressed = not self.allows(result.reviewer_count)
        return {
            "questionId": result.question_id,
            "questionText": result.question_text,
            "averageScore": None if suppressed else _round(result.average_score),
            "totalResponses": result.total_responses,
            "reviewerCount": result.reviewer_count,
            "scoreDistribution": {} if suppressed else {str(k): v for k, v in result.score_distribution.items()},
            "relationshipTypeAverages": {
                rel.value: None if self.bucket_suppressed(rel, stats) else _round(stats.average)
                for rel, stats in result.relationship_breakdown.items()
            },
            "relationshipBreakdown": self.breakdown(result.relationship_breakdown),
            "suppressed": suppressed,
        }

    def _gated(
        self, averages: Mapping[str, Optional[float]], reviewer_counts: Mapping[str, int]
    ) -> Tuple[Dict[str, Optional[float]], List[str]]:
        disclosed: Dict[str, Optional[float]] = {}
        suppressed: List[str] = []
        for key, average in averages.items():
            if self.allows(reviewer_counts.get(key, 0)):
                disclosed[key] = _round(average)
            else:
                disclosed[key] = None
                suppressed.append(key)
        return disclosed, suppressed

    def organization(self, analytics: OrganizationAnalytics) -> Dict[str, Any]:
        """Disclose organization (or department) analytics.

        Question averages, section averages and the overall average are each
        gated on the distinct reviewers behind them. Counts and rates are not.
        """

        question_averages, suppressed_questions = self._gated(
            analytics.question_averages, analytics.question_reviewer_counts
        )
        section_averages, suppressed_sections = self._gated(
            analytics.section_averages, analytics.section_reviewer_counts
        )
        average_suppressed = not self.allows(analytics.reviewer_count)
        if suppressed_questions or suppressed_sections or average_suppressed:
            logger.debug(
                "Suppressed organization averages: questions=%s sections=%s overall=%s",
                suppressed_questions,
                suppressed_sections,
                average_suppressed,
            )
        return {
            "totalAssessments": analytics.total_assessments,
            "completedAssessments": analytics.completed_assessments,
            "totalAssignments": analytics.total_assignments,
            "reviewerCount": analytics.reviewer_count,
            "averageScore": None if average_suppressed else _round(analytics.average_score),
            "averageScoreSuppressed": average_suppressed,
            "sectionAverages": section_averages,
            "suppressedSections": suppressed_sections,
            "questionAverages": question_averages,
            "suppressedQuestions": suppressed_questions,
            "relationshipTypeBreakdown": {
                rel.value: count for rel, count in analytics.relationship_type_breakdown.items()
            },
            "completionRate": analytics.completion_rate,
            "responseRate": analytics.response_rate,
            "topStrengths": list(analytics.top_strengths),
            "areasForImprovement": list(analytics.areas_for_improvement),
        }


def _label_value(label: Optional[ScoreLabel]) -> Optional[str]:
    return None if label is None else label.value


__all__ = ["DEFAULT_MIN_REVIEWERS", "PrivacyGuard"]
