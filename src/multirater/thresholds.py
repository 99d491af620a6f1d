"""Scale-relative thresholds shared by alignment classification and score labels."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping

from .models import SCALE_MIN, ScoreLabel

# One rating point on a 1-7 scale.
DEFAULT_ALIGNMENT_FRACTION = 1 / 6

# 6 / 4 / 2 on a 1-7 scale.
DEFAULT_SCORE_BANDS: Mapping[ScoreLabel, float] = {
    ScoreLabel.EXCELLENT: 5 / 6,
    ScoreLabel.GOOD: 3 / 6,
    ScoreLabel.FAIR: 1 / 6,
}

BANDED_LABELS = (ScoreLabel.EXCELLENT, ScoreLabel.GOOD, ScoreLabel.FAIR)

# Absolute tolerance for boundary comparisons; gaps exactly at a threshold
# must land on the flagged side even after float rounding.
_BOUNDARY_TOLERANCE = 1e-9


def _check_fraction(name: str, value: float) -> float:
    value = float(value)
    if not 0 < value <= 1:
        raise ValueError(f"{name} must be within (0, 1], got {value}")
    return value


@dataclass(frozen=True)
class Thresholds:
    """Thresholds expressed as fractions of a scale's span (``scale_max - 1``)."""

    alignment_fraction: float = DEFAULT_ALIGNMENT_FRACTION
    score_bands: Mapping[ScoreLabel, float] = field(default_factory=lambda: dict(DEFAULT_SCORE_BANDS))

    def __post_init__(self) -> None:
        _check_fraction("alignment_threshold", self.alignment_fraction)
        bands: Dict[ScoreLabel, float] = {}
        for label in BANDED_LABELS:
            if label not in self.score_bands:
                raise ValueError(f"score_bands missing {label!r}")
            bands[label] = _check_fraction(f"score_bands.{label.value}", self.score_bands[label])
        if not bands[ScoreLabel.EXCELLENT] >= bands[ScoreLabel.GOOD] >= bands[ScoreLabel.FAIR]:
            raise ValueError("score_bands must satisfy excellent >= good >= fair")
        object.__setattr__(self, "score_bands", bands)

    @staticmethod
    def span(scale_max: int) -> int:
        if scale_max <= SCALE_MIN:
            raise ValueError(f"scale_max must be > {SCALE_MIN}, got {scale_max}")
        return scale_max - SCALE_MIN

    def alignment_threshold(self, scale_max: int) -> float:
        """Return the gap, in rating points, at which self-perception is flagged."""
        return self.alignment_fraction * self.span(scale_max)

    def band_floor(self, label: ScoreLabel, scale_max: int) -> float:
        return SCALE_MIN + self.score_bands[label] * self.span(scale_max)


def at_or_above(value: float, bound: float) -> bool:
    """``value >= bound`` treating values within float noise of *bound* as equal."""
    return value >= bound or math.isclose(value, bound, rel_tol=0.0, abs_tol=_BOUNDARY_TOLERANCE)


DEFAULT_THRESHOLDS = Thresholds()


__all__ = [
    "BANDED_LABELS",
    "DEFAULT_ALIGNMENT_FRACTION",
    "DEFAULT_SCORE_BANDS",
    "DEFAULT_THRESHOLDS",
    "Thresholds",
    "at_or_above",
]
