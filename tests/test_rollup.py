from __future__ import annotations

import pytest

from conftest import rating, reviewers
from multirater.aggregator import aggregate, aggregate_competencies
from multirater.models import AlignmentLabel, Assignment, AssignmentStatus, RelationshipType
from multirater.rollup import (
    build_department_analytics,
    build_organization_analytics,
    build_sections,
    rank_questions,
)


def _assignment(assignment_id, relationship, status="completed", department=None):
    return Assignment(
        assignment_id=assignment_id,
        subject_id="subject",
        reviewer_id=f"reviewer-{assignment_id}",
        relationship_type=RelationshipType(relationship),
        status=AssignmentStatus(status),
        department_id=department,
    )


@pytest.fixture
def assignments():
    return [
        _assignment("a1", "peer", department="d1"),
        _assignment("a2", "peer", department="d1"),
        _assignment("a3", "supervisor", status="in_progress", department="d2"),
        _assignment("a4", "self", status="pending"),
    ]


@pytest.fixture
def records():
    return [
        rating("q1", 6, respondent="p1", assignment="a1"),
        rating("q2", 4, respondent="p1", assignment="a1"),
        rating("q1", 4, respondent="p2", assignment="a2"),
        rating("q2", 4, respondent="p2", assignment="a2"),
        rating("q1", 5, "self", respondent="subject", assignment="a4"),
    ]


def test_organization_summary(records, assignments, questions):
    analytics = build_organization_analytics(records, assignments, questions, min_reviewers=2)

    assert analytics.total_assignments == 4
    assert analytics.total_assessments == 3
    assert analytics.completed_assessments == 2
    assert analytics.completion_rate == 0.5
    assert analytics.response_rate == 0.75
    assert analytics.average_score == pytest.approx(14 / 3)
    assert analytics.question_averages == {"q1": 5, "q2": 4}
    assert analytics.question_reviewer_counts == {"q1": 2, "q2": 2}
    assert analytics.section_averages == {"s1": pytest.approx(4.6)}
    assert analytics.section_reviewer_counts == {"s1": 2}
    assert analytics.reviewer_count == 2
    assert analytics.top_strengths == ("q1", "q2")
    assert analytics.areas_for_improvement == ("q2", "q1")


def test_breakdown_counts_assignments_in_fixed_order(records, assignments, questions):
    analytics = build_organization_analytics(records, assignments, questions)

    assert list(analytics.relationship_type_breakdown.items()) == [
        (RelationshipType.SELF, 1),
        (RelationshipType.PEER, 2),
        (RelationshipType.SUPERVISOR, 1),
    ]


def test_questions_below_floor_are_not_ranked(records, assignments, questions):
    analytics = build_organization_analytics(records, assignments, questions, min_reviewers=3)

    assert analytics.top_strengths == ()
    assert analytics.areas_for_improvement == ()
    assert analytics.question_averages["q1"] == 5


def test_no_assignments_gives_zero_rates():
    analytics = build_organization_analytics([], [])

    assert analytics.completion_rate == 0.0
    assert analytics.response_rate == 0.0
    assert analytics.average_score is None
    assert analytics.relationship_type_breakdown == {}


def test_rank_ties_broken_by_question_id():
    strengths, weaknesses = rank_questions({"b": 4.0, "a": 4.0, "c": 5.0}, ["a", "b", "c"], top_n=2)

    assert strengths == ("c", "a")
    assert weaknesses == ("a", "b")


def test_departments_sorted_and_scoped(records, assignments, questions):
    departments = build_department_analytics(records, assignments, questions, min_reviewers=1)

    assert list(departments) == ["d1", "d2"]
    assert departments["d1"].total_assignments == 2
    assert departments["d1"].completion_rate == 1.0
    assert departments["d1"].average_score == pytest.approx(4.5)
    assert departments["d2"].total_assessments == 0
    assert departments["d2"].response_rate == 0.0


def test_sections_group_questions_and_competencies(questions):
    records = [rating("q1", 6, "self", respondent="subject")] + reviewers("q1", [4, 5, 6]) + reviewers("q2", [4, 4, 4])
    question_results = aggregate(records, questions)
    competency_results = aggregate_competencies(records, questions)

    communication, delivery = build_sections(records, question_results, competency_results, questions)

    assert communication.section_title == "Communication"
    assert communication.self_average == 6
    assert communication.reviewer_average == 4.5
    assert communication.reviewer_count == 3
    assert communication.overall_gap == 1.5
    assert communication.overall_alignment is AlignmentLabel.BLIND_SPOT
    assert [question.question_id for question in communication.questions] == ["q1", "q2"]
    assert [item.competency_id for item in communication.competency_results] == ["c-comm", "c-lead"]

    assert delivery.section_id == "s2"
    assert delivery.reviewer_average is None
    assert delivery.overall_alignment is AlignmentLabel.INSUFFICIENT_DATA
    assert [item.competency_id for item in delivery.competency_results] == ["c-lead"]
