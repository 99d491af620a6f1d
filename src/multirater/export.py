"""Flat-row and JSON serialization of analytics results."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from .models import (
    BucketStats,
    CompetencyResult,
    OrganizationAnalytics,
    QuestionResult,
    RelationshipType,
)
from .privacy import PrivacyGuard

logger = logging.getLogger("multirater.export")

FLAT_COLUMNS: Sequence[str] = ("questionId", "relationshipType", "average", "count", "suppressed")


def _bucket_rows(
    question_id: str,
    breakdown: Mapping[RelationshipType, BucketStats],
    guard: PrivacyGuard,
    redact: bool,
) -> Iterable[Dict[str, Any]]:
    for relationship, stats in breakdown.items():
        suppressed = guard.bucket_suppressed(relationship, stats)
        yield {
            "questionId": question_id,
            "relationshipType": relationship.value,
            "average": None if (suppressed and redact) else stats.average,
            "count": stats.count,
            "suppressed": suppressed,
        }


def _frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    frame = pd.DataFrame(rows, columns=list(FLAT_COLUMNS))
    return frame.astype({"count": "int64", "suppressed": "bool", "average": "float64"})


def flatten_analytics(
    analytics: OrganizationAnalytics,
    guard: PrivacyGuard | None = None,
    *,
    redact: bool = True,
) -> pd.DataFrame:
    """One row per question x relationship type.

    ``suppressed`` always reflects the guard's floor. Suppressed averages are
    blanked unless *redact* is turned off for internal use.
    """

    guard = guard or PrivacyGuard()
    rows: List[Dict[str, Any]] = []
    for question_id, breakdown in analytics.question_relationship_stats.items():
        rows.extend(_bucket_rows(question_id, breakdown, guard, redact))
    return _frame(rows)


def flatten_results(
    results: Sequence[QuestionResult | CompetencyResult],
    guard: PrivacyGuard | None = None,
    *,
    redact: bool = True,
) -> pd.DataFrame:
    """Flat rows for a single subject's question or competency results."""

    guard = guard or PrivacyGuard()
    rows: List[Dict[str, Any]] = []
    for result in results:
        key = result.question_id if isinstance(result, QuestionResult) else result.competency_id
        rows.extend(_bucket_rows(key, result.relationship_breakdown, guard, redact))
    return _frame(rows)


def reaggregate_rows(rows: pd.DataFrame) -> Dict[str, float]:
    """Rebuild question averages from flat rows (count-weighted mean).

    Rows whose average was redacted are ignored.
    """

    usable = rows.dropna(subset=["average"])
    if usable.empty:
        return {}
    weighted = usable.assign(total=usable["average"] * usable["count"])
    grouped = weighted.groupby("questionId", sort=False)[["total", "count"]].sum()
    return {str(question_id): float(row["total"] / row["count"]) for question_id, row in grouped.iterrows()}


def write_csv(frame: pd.DataFrame, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False, encoding="utf-8-sig")
    logger.info("CSV written to %s", path)
    return path


def write_json(payload: Any, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("JSON written to %s", path)
    return path


__all__ = [
    "FLAT_COLUMNS",
    "flatten_analytics",
    "flatten_results",
    "reaggregate_rows",
    "write_csv",
    "write_json",
]
