"""Self-vs-reviewer alignment classification and score labelling."""
from __future__ import annotations

from typing import Optional

from .models import DEFAULT_SCALE_MAX, AlignmentLabel, ScoreLabel
from .thresholds import BANDED_LABELS, DEFAULT_THRESHOLDS, Thresholds, at_or_above


def compute_gap(self_rating: Optional[float], avg_reviewer_rating: Optional[float]) -> Optional[float]:
    if self_rating is None or avg_reviewer_rating is None:
        return None
    return self_rating - avg_reviewer_rating


def classify_alignment(
    self_rating: Optional[float],
    avg_reviewer_rating: Optional[float],
    gap: Optional[float],
    scale_max: int = DEFAULT_SCALE_MAX,
    *,
    reviewer_count: Optional[int] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> AlignmentLabel:
    """Map a (self, reviewer average, gap) triple to an :class:`AlignmentLabel`.

    A gap exactly at the threshold is flagged (``blind_spot`` at ``+threshold``,
    ``hidden_strength`` at ``-threshold``) rather than treated as aligned.
    """

    if self_rating is None or avg_reviewer_rating is None or gap is None:
        return AlignmentLabel.INSUFFICIENT_DATA
    if reviewer_count is not None and reviewer_count <= 0:
        return AlignmentLabel.INSUFFICIENT_DATA

    threshold = thresholds.alignment_threshold(scale_max)
    if at_or_above(gap, threshold):
        return AlignmentLabel.BLIND_SPOT
    if at_or_above(-gap, threshold):
        return AlignmentLabel.HIDDEN_STRENGTH
    return AlignmentLabel.ALIGNED


def score_label(
    score: Optional[float],
    scale_max: int = DEFAULT_SCALE_MAX,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Optional[ScoreLabel]:
    """Return the qualitative band for *score*, or ``None`` when there is no score."""

    if score is None:
        return None
    for label in BANDED_LABELS:
        if at_or_above(score, thresholds.band_floor(label, scale_max)):
            return label
    return ScoreLabel.NEEDS_IMPROVEMENT


__all__ = ["classify_alignment", "compute_gap", "score_label"]
