from __future__ import annotations

import random

import pytest

from conftest import rating, reviewers
from multirater.aggregator import aggregate, aggregate_competencies, group_by_subject, mean
from multirater.errors import InsufficientDataError
from multirater.models import AlignmentLabel, Assignment, RatingRecord, RelationshipType


def test_blind_spot_example(questions):
    records = [rating("q1", 6, "self", respondent="subject")] + reviewers("q1", [4, 5, 6])
    result = aggregate(records, questions)[0]

    assert result.self_rating == 6
    assert result.avg_reviewer_rating == 5
    assert result.reviewer_count == 3
    assert result.gap == 1
    assert result.alignment is AlignmentLabel.BLIND_SPOT


def test_self_ratings_never_enter_reviewer_average(questions):
    records = [rating("q1", 1, "self", respondent="subject")] + reviewers("q1", [7, 7, 7])
    result = aggregate(records, questions)[0]

    assert result.avg_reviewer_rating == 7
    assert result.response_count == 3
    assert result.self_count == 1


def test_no_reviewers_is_insufficient(questions):
    result = aggregate([rating("q1", 5, "self", respondent="subject")], questions)[0]

    assert result.avg_reviewer_rating is None
    assert result.reviewer_count == 0
    assert result.gap is None
    assert result.alignment is AlignmentLabel.INSUFFICIENT_DATA
    with pytest.raises(InsufficientDataError):
        result.require_reviewer_average()


def test_no_self_rating_leaves_gap_absent(questions):
    result = aggregate(reviewers("q1", [3, 4, 5]), questions)[0]

    assert result.self_rating is None
    assert result.gap is None
    assert result.alignment is AlignmentLabel.INSUFFICIENT_DATA


def test_questions_without_ratings_still_reported(questions):
    results = aggregate(reviewers("q1", [3, 4, 5]), questions)

    assert [result.question_id for result in results] == ["q1", "q2", "q3"]
    assert results[2].response_count == 0


def test_reviewer_count_is_distinct_respondents(questions):
    records = [
        rating("q1", 4, respondent="p1", assignment="a1"),
        rating("q1", 6, respondent="p1", assignment="a2"),
        rating("q1", 5, respondent="p2"),
    ]
    result = aggregate(records, questions)[0]

    assert result.reviewer_count == 2
    assert result.response_count == 3


def test_relationship_breakdown_and_comments(questions):
    records = (
        reviewers("q1", [6, 6, 6], "peer")
        + reviewers("q1", [3], "supervisor", prefix="boss")
        + [
            rating("q1", 5, "self", respondent="subject", comment="I listen well"),
            rating("q1", 4, "client", respondent="c1", comment=" "),
            rating("q1", 4, "client", respondent="c2", comment="Responsive"),
        ]
    )
    result = aggregate(records, questions)[0]

    assert list(result.relationship_breakdown) == [
        RelationshipType.SELF,
        RelationshipType.PEER,
        RelationshipType.SUPERVISOR,
        RelationshipType.CLIENT,
    ]
    assert result.relationship_breakdown[RelationshipType.PEER].average == 6
    assert result.relationship_breakdown[RelationshipType.SUPERVISOR].respondent_count == 1
    assert result.comments == ("Responsive",)


def test_competency_fan_out(questions):
    records = (
        [rating("q1", 6, "self", respondent="subject"), rating("q2", 4, "self", respondent="subject")]
        + reviewers("q1", [4, 4, 4])
        + reviewers("q2", [6, 6, 6])
        + reviewers("q3", [2, 2, 2])
    )
    competencies = {result.competency_id: result for result in aggregate_competencies(records, questions)}

    communication = competencies["c-comm"]
    assert communication.competency_name == "Communication"
    assert communication.question_ids == ("q1", "q2")
    assert communication.avg_reviewer_rating == 5
    assert communication.self_rating == 5
    assert communication.alignment is AlignmentLabel.ALIGNED

    leadership = competencies["c-lead"]
    assert leadership.question_ids == ("q2", "q3")
    assert leadership.avg_reviewer_rating == 4
    assert leadership.response_count == 6
    assert leadership.reviewer_count == 3


def test_deterministic_regardless_of_order_and_workers(questions):
    records = (
        [rating("q1", 5, "self", respondent="subject"), rating("q3", 2, "self", respondent="subject")]
        + reviewers("q1", [1, 2, 3, 4, 5, 6, 7])
        + reviewers("q2", [3, 3, 4], "subordinate")
        + reviewers("q3", [7, 6, 7, 5], "client")
    )
    shuffled = list(records)
    random.Random(7).shuffle(shuffled)

    serial = aggregate(records, questions)
    assert aggregate(records, questions) == serial
    assert aggregate(shuffled, questions, max_workers=4) == serial
    assert aggregate_competencies(shuffled, questions, max_workers=3) == aggregate_competencies(records, questions)


def test_mean_empty_is_none():
    assert mean([]) is None
    assert mean([1, 2]) == 1.5


def test_group_by_subject_resolves_from_row_then_assignment():
    own = RatingRecord("a-1", "q1", RelationshipType.PEER, 4, "p1", subject_id="emp-b")
    via_assignment = rating("q1", 5, respondent="p2", assignment="a-2")
    overridden = RatingRecord("a-2", "q1", RelationshipType.PEER, 6, "p3", subject_id="emp-c")
    unresolved = rating("q1", 3, respondent="p4", assignment="a-9")
    assignments = [
        Assignment("a-1", "emp-z", "p1", RelationshipType.PEER),
        Assignment("a-2", "emp-a", "p2", RelationshipType.PEER),
    ]

    grouped = group_by_subject([own, via_assignment, overridden, unresolved], assignments)

    assert list(grouped) == [None, "emp-a", "emp-b", "emp-c"]
    assert grouped["emp-a"] == [via_assignment]
    assert grouped["emp-b"] == [own]
    assert grouped["emp-c"] == [overridden]
    assert grouped[None] == [unresolved]


def test_group_by_subject_without_subjects_is_one_group():
    records = reviewers("q1", [4, 5])
    assert group_by_subject(records) == {None: records}
