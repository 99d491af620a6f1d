from __future__ import annotations

import pytest

from multirater.alignment import classify_alignment, compute_gap, score_label
from multirater.models import AlignmentLabel, ScoreLabel
from multirater.thresholds import Thresholds


def test_gap_at_positive_threshold_is_blind_spot():
    assert classify_alignment(6, 5.0, 1.0, 7, reviewer_count=3) is AlignmentLabel.BLIND_SPOT


def test_gap_at_negative_threshold_is_hidden_strength():
    assert classify_alignment(4, 5.0, -1.0, 7, reviewer_count=3) is AlignmentLabel.HIDDEN_STRENGTH


def test_zero_gap_is_aligned():
    assert classify_alignment(5, 5.0, 0.0, 7, reviewer_count=3) is AlignmentLabel.ALIGNED


def test_gap_just_inside_threshold_is_aligned():
    assert classify_alignment(5.9, 5.0, 0.9, 7, reviewer_count=3) is AlignmentLabel.ALIGNED
    assert classify_alignment(4.1, 5.0, -0.9, 7, reviewer_count=3) is AlignmentLabel.ALIGNED


@pytest.mark.parametrize(
    "self_rating, reviewer_avg, count",
    [(None, 5.0, 3), (5.0, None, 0), (5.0, 5.0, 0)],
)
def test_missing_inputs_are_insufficient(self_rating, reviewer_avg, count):
    gap = compute_gap(self_rating, reviewer_avg)
    assert classify_alignment(self_rating, reviewer_avg, gap, 7, reviewer_count=count) is (
        AlignmentLabel.INSUFFICIENT_DATA
    )


def test_gap_is_none_without_self_rating():
    assert compute_gap(None, 4.0) is None
    assert compute_gap(6, 4.5) == 1.5


def test_threshold_scales_with_range():
    # 1-5 scale: threshold is 4/6 of a point
    assert classify_alignment(4, 3.4, 0.6, 5, reviewer_count=3) is AlignmentLabel.ALIGNED
    assert classify_alignment(4, 3.3, 0.7, 5, reviewer_count=3) is AlignmentLabel.BLIND_SPOT
    # 1-10 scale: threshold is 1.5 points
    assert classify_alignment(8, 7.0, 1.0, 10, reviewer_count=3) is AlignmentLabel.ALIGNED
    assert classify_alignment(8, 6.5, 1.5, 10, reviewer_count=3) is AlignmentLabel.BLIND_SPOT


def test_custom_threshold_fraction():
    strict = Thresholds(alignment_fraction=0.5)
    assert strict.alignment_threshold(7) == 3.0
    assert classify_alignment(7, 5.0, 2.0, 7, thresholds=strict) is AlignmentLabel.ALIGNED


@pytest.mark.parametrize(
    "score, expected",
    [
        (6.0, ScoreLabel.EXCELLENT),
        (5.99, ScoreLabel.GOOD),
        (4.0, ScoreLabel.GOOD),
        (2.0, ScoreLabel.FAIR),
        (1.5, ScoreLabel.NEEDS_IMPROVEMENT),
    ],
)
def test_score_labels_on_seven_point_scale(score, expected):
    assert score_label(score, 7) is expected


def test_score_labels_follow_scale():
    # 1-5 scale: excellent starts at 1 + 5/6 * 4
    assert score_label(4.3, 5) is ScoreLabel.GOOD
    assert score_label(4.5, 5) is ScoreLabel.EXCELLENT
    assert score_label(None, 5) is None


def test_invalid_thresholds_rejected():
    with pytest.raises(ValueError):
        Thresholds(alignment_fraction=0)
    with pytest.raises(ValueError):
        Thresholds(score_bands={ScoreLabel.EXCELLENT: 0.2, ScoreLabel.GOOD: 0.5, ScoreLabel.FAIR: 0.1})
    with pytest.raises(ValueError):
        Thresholds(score_bands={"excellent": 0.9, "good": 0.5, "fair": 0.1})
    with pytest.raises(ValueError):
        Thresholds().alignment_threshold(1)
