"""Cross-question comparison: global mean, histogram and per-relationship means."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Sequence

from .aggregator import fan_out, group_by_question, mean, relationship_breakdown
from .models import ComparisonResult, Question, RatingRecord

logger = logging.getLogger("multirater.comparison")


def score_distribution(records: Sequence[RatingRecord]) -> Dict[int, int]:
    """Histogram of raw ratings; only observed ratings appear, keys ascending."""
    counts = Counter(record.rating for record in records)
    return {rating: counts[rating] for rating in sorted(counts)}


def compare_questions(
    question_ids: Sequence[str],
    records: Sequence[RatingRecord],
    questions: Sequence[Question] = (),
    *,
    max_workers: int = 1,
) -> List[ComparisonResult]:
    """Build a :class:`ComparisonResult` for each requested question id.

    Self and reviewer ratings both count toward the global average and the
    distribution. Requested ids without ratings yield ``average_score=None``.
    """

    grouped = group_by_question(records)
    text_by_id = {question.id: question.text for question in questions}
    missing = [question_id for question_id in question_ids if question_id not in grouped]
    if missing:
        logger.debug("No ratings in scope for questions %s", missing)

    def _one(question_id: str) -> ComparisonResult:
        question_records = grouped.get(question_id, [])
        return ComparisonResult(
            question_id=question_id,
            question_text=text_by_id.get(question_id, ""),
            average_score=mean(record.rating for record in question_records),
            total_responses=len(question_records),
            reviewer_count=len(
                {record.respondent_id for record in question_records if not record.is_self}
            ),
            score_distribution=score_distribution(question_records),
            relationship_breakdown=relationship_breakdown(question_records),
        )

    return fan_out(_one, list(dict.fromkeys(question_ids)), max_workers)


__all__ = ["compare_questions", "score_distribution"]
