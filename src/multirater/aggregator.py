"""Per-question and per-competency aggregation of rating records."""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .alignment import classify_alignment, compute_gap
from .models import (
    RELATIONSHIP_ORDER,
    Assignment,
    BucketStats,
    CompetencyResult,
    Question,
    QuestionResult,
    RatingRecord,
    RelationshipType,
)
from .thresholds import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger("multirater.aggregator")

T = TypeVar("T")
R = TypeVar("R")


def mean(values: Iterable[float]) -> Optional[float]:
    """Arithmetic mean, or ``None`` for an empty group.

    ``math.fsum`` keeps the result independent of input order.
    """

    values = list(values)
    if not values:
        return None
    return math.fsum(values) / len(values)


def bucket(records: Sequence[RatingRecord]) -> BucketStats:
    return BucketStats(
        average=mean(record.rating for record in records),
        count=len(records),
        respondent_count=len({record.respondent_id for record in records}),
    )


def relationship_breakdown(records: Iterable[RatingRecord]) -> Dict[RelationshipType, BucketStats]:
    """Group *records* by relationship type, in :data:`RELATIONSHIP_ORDER`."""

    grouped: Dict[RelationshipType, List[RatingRecord]] = {}
    for record in records:
        grouped.setdefault(record.relationship_type, []).append(record)
    return {rel: bucket(grouped[rel]) for rel in RELATIONSHIP_ORDER if rel in grouped}


def split_self(records: Iterable[RatingRecord]) -> Tuple[List[RatingRecord], List[RatingRecord]]:
    self_records: List[RatingRecord] = []
    reviewer_records: List[RatingRecord] = []
    for record in records:
        (self_records if record.is_self else reviewer_records).append(record)
    return self_records, reviewer_records


def reviewer_comments(records: Iterable[RatingRecord]) -> Tuple[str, ...]:
    comments = (record.comment.strip() for record in records if not record.is_self and record.comment)
    return tuple(comment for comment in comments if comment)


def group_by_question(records: Iterable[RatingRecord]) -> Dict[str, List[RatingRecord]]:
    grouped: Dict[str, List[RatingRecord]] = {}
    for record in records:
        grouped.setdefault(record.question_id, []).append(record)
    return grouped


def group_by_subject(
    records: Iterable[RatingRecord],
    assignments: Iterable[Assignment] = (),
) -> Dict[Optional[str], List[RatingRecord]]:
    """Split *records* by the subject being rated, subjects sorted by id.

    A record's own ``subject_id`` wins; otherwise the subject of its
    assignment is used. Records with neither are grouped under ``None``,
    which sorts first.
    """

    subject_by_assignment = {
        assignment.assignment_id: assignment.subject_id for assignment in assignments if assignment.subject_id
    }
    grouped: Dict[Optional[str], List[RatingRecord]] = {}
    for record in records:
        subject_id = record.subject_id or subject_by_assignment.get(record.assignment_id)
        grouped.setdefault(subject_id, []).append(record)
    if None in grouped and len(grouped) > 1:
        logger.warning("%d ratings have no resolvable subject", len(grouped[None]))
    order = sorted(grouped, key=lambda subject_id: (subject_id is not None, subject_id or ""))
    return {subject_id: grouped[subject_id] for subject_id in order}


def fan_out(func: Callable[[T], R], items: Sequence[T], max_workers: int = 1) -> List[R]:
    """Apply *func* to every item, optionally on a thread pool. Output order matches input."""

    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(func, items))


def _summarize(records: Sequence[RatingRecord], scale_max: int, thresholds: Thresholds) -> dict:
    self_records, reviewer_records = split_self(records)
    self_rating = mean(record.rating for record in self_records)
    reviewers = bucket(reviewer_records)
    gap = compute_gap(self_rating, reviewers.average)
    return {
        "self_rating": self_rating,
        "self_count": len(self_records),
        "avg_reviewer_rating": reviewers.average,
        "reviewer_count": reviewers.respondent_count,
        "response_count": reviewers.count,
        "gap": gap,
        "alignment": classify_alignment(
            self_rating,
            reviewers.average,
            gap,
            scale_max,
            reviewer_count=reviewers.respondent_count,
            thresholds=thresholds,
        ),
        "comments": reviewer_comments(records),
        "relationship_breakdown": relationship_breakdown(records),
    }


def aggregate(
    records: Sequence[RatingRecord],
    questions: Sequence[Question],
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    max_workers: int = 1,
) -> List[QuestionResult]:
    """Return one :class:`QuestionResult` per question, in question order.

    Questions without ratings are still returned, with ``insufficient_data``.
    """

    grouped = group_by_question(records)
    known = {question.id for question in questions}
    orphaned = [question_id for question_id in grouped if question_id not in known]
    if orphaned:
        logger.warning("Ignoring ratings for undefined questions: %s", sorted(orphaned))

    def _one(question: Question) -> QuestionResult:
        return QuestionResult(
            question_id=question.id,
            question_text=question.text,
            section_id=question.section_id,
            scale_max=question.scale_max,
            **_summarize(grouped.get(question.id, []), question.scale_max, thresholds),
        )

    return fan_out(_one, list(questions), max_workers)


def aggregate_competencies(
    records: Sequence[RatingRecord],
    questions: Sequence[Question],
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    max_workers: int = 1,
) -> List[CompetencyResult]:
    """Return one :class:`CompetencyResult` per competency, in first-seen order.

    A question mapped to several competencies contributes its ratings to each
    of them. A record's own ``competency_id`` adds one more membership.
    """

    grouped = group_by_question(records)
    names: Dict[str, str] = {}
    members: Dict[str, List[Question]] = {}
    for question in questions:
        for ref in question.competencies:
            members.setdefault(ref.id, [])
            if question not in members[ref.id]:
                members[ref.id].append(question)
            if ref.name and not names.get(ref.id):
                names[ref.id] = ref.name

    scoped: Dict[str, List[RatingRecord]] = {competency_id: [] for competency_id in members}
    for question in questions:
        for record in grouped.get(question.id, []):
            targets = set(question.competency_ids)
            if record.competency_id and record.competency_id in scoped:
                targets.add(record.competency_id)
            for competency_id in targets:
                scoped[competency_id].append(record)

    scale_by_question = {question.id: question.scale_max for question in questions}

    def _one(competency_id: str) -> CompetencyResult:
        member_questions = members[competency_id]
        competency_records = scoped[competency_id]
        question_ids = tuple(
            dict.fromkeys(
                [question.id for question in member_questions]
                + [record.question_id for record in competency_records]
            )
        )
        scales = {scale_by_question[question_id] for question_id in question_ids}
        scale_max = scale_by_question[question_ids[0]]
        if len(scales) > 1:
            logger.warning(
                "Competency %s mixes scales %s; classifying on 1-%d",
                competency_id,
                sorted(scales),
                scale_max,
            )
        return CompetencyResult(
            competency_id=competency_id,
            competency_name=names.get(competency_id, ""),
            scale_max=scale_max,
            question_ids=question_ids,
            **_summarize(competency_records, scale_max, thresholds),
        )

    return fan_out(_one, list(members), max_workers)


__all__ = [
    "aggregate",
    "aggregate_competencies",
    "bucket",
    "fan_out",
    "group_by_question",
    "group_by_subject",
    "mean",
    "relationship_breakdown",
    "reviewer_comments",
    "split_self",
]
