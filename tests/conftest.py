from __future__ import annotations

from typing import List

import pytest

from multirater.models import CompetencyRef, Question, RatingRecord, RelationshipType


def rating(
    question_id: str,
    value: int,
    relationship: str = "peer",
    respondent: str = "r1",
    assignment: str | None = None,
    comment: str | None = None,
) -> RatingRecord:
    """Shortcut for building a validated record in tests."""
    return RatingRecord(
        assignment_id=assignment or f"a-{respondent}",
        question_id=question_id,
        relationship_type=RelationshipType(relationship),
        rating=value,
        respondent_id=respondent,
        comment=comment,
    )


def reviewers(question_id: str, values: List[int], relationship: str = "peer", prefix: str = "p") -> List[RatingRecord]:
    return [
        rating(question_id, value, relationship, respondent=f"{prefix}{index}")
        for index, value in enumerate(values)
    ]


@pytest.fixture
def questions() -> List[Question]:
    return [
        Question(
            id="q1",
            text="Listens before responding",
            section_id="s1",
            section_title="Communication",
            competencies=(CompetencyRef("c-comm", "Communication"),),
        ),
        Question(
            id="q2",
            text="Gives clear direction",
            section_id="s1",
            section_title="Communication",
            competencies=(CompetencyRef("c-comm", "Communication"), CompetencyRef("c-lead", "Leadership")),
        ),
        Question(
            id="q3",
            text="Delegates effectively",
            section_id="s2",
            section_title="Delivery",
            competencies=(CompetencyRef("c-lead", "Leadership"),),
        ),
    ]
