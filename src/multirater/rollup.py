"""Section, organization and department roll-ups."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from .aggregator import group_by_question, mean, relationship_breakdown, split_self
from .alignment import classify_alignment, compute_gap
from .models import (
    RELATIONSHIP_ORDER,
    Assignment,
    CompetencyResult,
    OrganizationAnalytics,
    Question,
    QuestionResult,
    RatingRecord,
    RelationshipType,
    SectionResult,
)
from .privacy import DEFAULT_MIN_REVIEWERS
from .thresholds import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger("multirater.rollup")

DEFAULT_TOP_N = 3


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def build_sections(
    records: Sequence[RatingRecord],
    question_results: Sequence[QuestionResult],
    competency_results: Sequence[CompetencyResult],
    questions: Sequence[Question],
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> List[SectionResult]:
    """Group question and competency results into sections, in question order."""

    by_question = group_by_question(records)
    result_by_id = {result.question_id: result for result in question_results}

    section_questions: Dict[str, List[Question]] = {}
    for question in questions:
        section_questions.setdefault(question.section_id, []).append(question)

    sections: List[SectionResult] = []
    for section_id, members in section_questions.items():
        member_ids = {question.id for question in members}
        section_records = [record for question in members for record in by_question.get(question.id, [])]
        self_records, reviewer_records = split_self(section_records)
        self_average = mean(record.rating for record in self_records)
        reviewer_average = mean(record.rating for record in reviewer_records)
        reviewer_count = len({record.respondent_id for record in reviewer_records})
        gap = compute_gap(self_average, reviewer_average)
        title = next((question.section_title for question in members if question.section_title), section_id)
        sections.append(
            SectionResult(
                section_id=section_id,
                section_title=title,
                self_average=self_average,
                reviewer_average=reviewer_average,
                reviewer_count=reviewer_count,
                overall_gap=gap,
                overall_alignment=classify_alignment(
                    self_average,
                    reviewer_average,
                    gap,
                    members[0].scale_max,
                    reviewer_count=reviewer_count,
                    thresholds=thresholds,
                ),
                questions=tuple(result_by_id[question.id] for question in members if question.id in result_by_id),
                competency_results=tuple(
                    competency
                    for competency in competency_results
                    if member_ids.intersection(competency.question_ids)
                ),
            )
        )
    return sections


def rank_questions(
    question_averages: Dict[str, float],
    eligible: Iterable[str],
    top_n: int = DEFAULT_TOP_N,
) -> tuple:
    """Return ``(top_strengths, areas_for_improvement)``.

    Ties on score are broken by question id ascending in both lists.
    """

    candidates = [(question_averages[qid], qid) for qid in eligible if qid in question_averages]
    strengths = sorted(candidates, key=lambda item: (-item[0], item[1]))[:top_n]
    weaknesses = sorted(candidates, key=lambda item: (item[0], item[1]))[:top_n]
    return tuple(qid for _, qid in strengths), tuple(qid for _, qid in weaknesses)


def build_organization_analytics(
    records: Sequence[RatingRecord],
    assignments: Sequence[Assignment],
    questions: Sequence[Question] = (),
    *,
    min_reviewers: int = DEFAULT_MIN_REVIEWERS,
    top_n: int = DEFAULT_TOP_N,
) -> OrganizationAnalytics:
    """Summarize every assignment and rating in scope.

    ``relationship_type_breakdown`` counts assignments, not ratings, so it
    reflects workload whether or not reviewers have responded.
    """

    assignment_ids = list(dict.fromkeys(assignment.assignment_id for assignment in assignments))
    unique_assignments = {assignment.assignment_id: assignment for assignment in assignments}
    total_assignments = len(assignment_ids)
    completed = sum(1 for assignment in unique_assignments.values() if assignment.is_completed)

    by_assignment: Dict[str, List[RatingRecord]] = {}
    for record in records:
        by_assignment.setdefault(record.assignment_id, []).append(record)
    responded = sum(1 for assignment_id in assignment_ids if assignment_id in by_assignment)

    assignment_means = [mean(record.rating for record in group) for group in by_assignment.values()]
    average_score = mean(value for value in assignment_means if value is not None)

    by_question = group_by_question(records)
    defined = [question.id for question in questions]
    known = set(defined)
    question_order = defined + [question_id for question_id in by_question if question_id not in known]

    question_averages: Dict[str, float] = {}
    question_stats = {}
    reviewer_counts: Dict[str, int] = {}
    for question_id in question_order:
        group = by_question.get(question_id)
        if not group:
            continue
        question_averages[question_id] = mean(record.rating for record in group)
        question_stats[question_id] = relationship_breakdown(group)
        reviewer_counts[question_id] = len({record.respondent_id for record in group if not record.is_self})

    section_by_question = {question.id: question.section_id for question in questions}
    section_ratings: Dict[str, List[int]] = {}
    section_reviewers: Dict[str, set] = {}
    for question_id in question_order:
        section_id = section_by_question.get(question_id)
        if section_id is None:
            continue
        group = by_question.get(question_id, [])
        section_ratings.setdefault(section_id, []).extend(record.rating for record in group)
        section_reviewers.setdefault(section_id, set()).update(
            record.respondent_id for record in group if not record.is_self
        )
    section_averages = {
        section_id: mean(ratings) for section_id, ratings in section_ratings.items() if ratings
    }

    relationship_counts: Dict[RelationshipType, int] = {}
    for assignment in unique_assignments.values():
        relationship_counts[assignment.relationship_type] = relationship_counts.get(assignment.relationship_type, 0) + 1
    breakdown = {rel: relationship_counts[rel] for rel in RELATIONSHIP_ORDER if rel in relationship_counts}

    eligible = [qid for qid in question_averages if reviewer_counts.get(qid, 0) >= min_reviewers]
    top_strengths, areas_for_improvement = rank_questions(question_averages, eligible, top_n)

    return OrganizationAnalytics(
        total_assessments=len(by_assignment),
        completed_assessments=completed,
        total_assignments=total_assignments,
        average_score=average_score,
        section_averages=section_averages,
        question_averages=question_averages,
        relationship_type_breakdown=breakdown,
        completion_rate=_ratio(completed, total_assignments),
        response_rate=_ratio(responded, total_assignments),
        top_strengths=top_strengths,
        areas_for_improvement=areas_for_improvement,
        question_relationship_stats=question_stats,
        question_reviewer_counts=reviewer_counts,
        section_reviewer_counts={
            section_id: len(section_reviewers[section_id]) for section_id in section_averages
        },
        reviewer_count=len({record.respondent_id for record in records if not record.is_self}),
    )


def build_department_analytics(
    records: Sequence[RatingRecord],
    assignments: Sequence[Assignment],
    questions: Sequence[Question] = (),
    *,
    min_reviewers: int = DEFAULT_MIN_REVIEWERS,
    top_n: int = DEFAULT_TOP_N,
) -> Dict[str, OrganizationAnalytics]:
    """Organization analytics per department, keyed by department id (sorted)."""

    departments: Dict[str, List[Assignment]] = {}
    for assignment in assignments:
        if assignment.department_id is None:
            continue
        departments.setdefault(assignment.department_id, []).append(assignment)

    undepartmented = sum(1 for assignment in assignments if assignment.department_id is None)
    if undepartmented:
        logger.debug("%d assignments without department skipped", undepartmented)

    result: Dict[str, OrganizationAnalytics] = {}
    for department_id in sorted(departments):
        members = departments[department_id]
        ids = {assignment.assignment_id for assignment in members}
        result[department_id] = build_organization_analytics(
            [record for record in records if record.assignment_id in ids],
            members,
            questions,
            min_reviewers=min_reviewers,
            top_n=top_n,
        )
    return result


__all__ = [
    "DEFAULT_TOP_N",
    "build_department_analytics",
    "build_organization_analytics",
    "build_sections",
    "rank_questions",
]
