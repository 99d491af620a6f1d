"""Report generation: load inputs, run the engine, write disclosed outputs."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd
from filelock import FileLock, Timeout

from .config import AppConfig
from .engine import AnalyticsEngine, EngineResult
from .export import flatten_analytics, write_csv, write_json
from .loader import WorkbookData, load_data
from .logging_utils import log_rejections

logger = logging.getLogger("multirater.report")


@dataclass(frozen=True)
class ReportResult:
    result: EngineResult
    disclosed: Dict[str, Any]
    files: List[Path] = field(default_factory=list)


def load_locked(workbook_path: str | Path, config: AppConfig) -> WorkbookData:
    """Load the workbook while holding its ``.lock`` file."""

    workbook_path = Path(workbook_path)
    lock = FileLock(str(workbook_path) + ".lock", timeout=config.lock_timeout)
    try:
        with lock:
            workbook = load_data(workbook_path, default_scale_max=config.scale_max)
    except Timeout as exc:
        raise TimeoutError(
            f"Unable to acquire lock for workbook {workbook_path} within {config.lock_timeout} seconds"
        ) from exc
    logger.info("Workbook %s loaded for reporting", workbook_path)
    return workbook


def _subject_items(disclosed: Dict[str, Any], key: str) -> Iterator[Tuple[Optional[str], Dict[str, Any]]]:
    for subject in disclosed["subjects"]:
        for item in subject[key]:
            yield subject["subjectId"], item


def _question_rows(disclosed: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for subject_id, item in _subject_items(disclosed, "questions"):
        row = {"subjectId": subject_id}
        row.update((key, value) for key, value in item.items() if key not in {"relationshipBreakdown", "comments"})
        row["comments"] = " | ".join(item["comments"])
        rows.append(row)
    return rows


def _competency_rows(disclosed: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for subject_id, item in _subject_items(disclosed, "competencies"):
        row = {"subjectId": subject_id}
        row.update((key, value) for key, value in item.items() if key not in {"relationshipBreakdown", "comments"})
        row["questionIds"] = ", ".join(item["questionIds"])
        rows.append(row)
    return rows


def _section_rows(disclosed: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for subject_id, item in _subject_items(disclosed, "sections"):
        row = {"subjectId": subject_id}
        row.update((key, value) for key, value in item.items() if key not in {"questions", "competencyResults"})
        rows.append(row)
    return rows


def _comparison_rows(disclosed: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for item in disclosed["comparisons"]:
        row = {
            "questionId": item["questionId"],
            "questionText": item["questionText"],
            "averageScore": item["averageScore"],
            "totalResponses": item["totalResponses"],
            "reviewerCount": item["reviewerCount"],
            "suppressed": item["suppressed"],
        }
        for rating, count in item["scoreDistribution"].items():
            row[f"rating_{rating}"] = count
        for relationship, average in item["relationshipTypeAverages"].items():
            row[f"avg_{relationship}"] = average
        rows.append(row)
    return rows


def _analytics_rows(disclosed: Dict[str, Any]) -> List[Dict[str, Any]]:
    analytics = disclosed["analytics"]
    scalars = (
        "totalAssessments",
        "completedAssessments",
        "totalAssignments",
        "reviewerCount",
        "averageScore",
        "completionRate",
        "responseRate",
    )
    rows = [{"metric": key, "value": analytics[key]} for key in scalars]
    rows.append({"metric": "topStrengths", "value": ", ".join(analytics["topStrengths"])})
    rows.append({"metric": "areasForImprovement", "value": ", ".join(analytics["areasForImprovement"])})
    for relationship, count in analytics["relationshipTypeBreakdown"].items():
        rows.append({"metric": f"assignments_{relationship}", "value": count})
    for section_id, average in analytics["sectionAverages"].items():
        rows.append({"metric": f"section_{section_id}", "value": average})
    return rows


def export_report(
    workbook_path: str | Path,
    output_path: str | Path,
    config: AppConfig,
    engine: Optional[AnalyticsEngine] = None,
    asof: datetime | None = None,
) -> ReportResult:
    """Load inputs, compute analytics and write the Excel report (plus CSV/JSON)."""

    workbook = load_locked(workbook_path, config)
    engine = engine or AnalyticsEngine.from_config(config)
    result = engine.compute(workbook.responses, workbook.questions, workbook.assignments)
    disclosed = engine.disclose(result)

    report_dir = Path(output_path)
    report_dir.mkdir(parents=True, exist_ok=True)
    stamp = _normalize_asof(asof, config).strftime("%Y-%m-%d")
    report_file = report_dir / f"report_{stamp}.xlsx"

    with pd.ExcelWriter(report_file, engine="openpyxl") as writer:
        pd.DataFrame(_question_rows(disclosed)).to_excel(writer, sheet_name="Questions", index=False)
        pd.DataFrame(_competency_rows(disclosed)).to_excel(writer, sheet_name="Competencies", index=False)
        pd.DataFrame(_section_rows(disclosed)).to_excel(writer, sheet_name="Sections", index=False)
        pd.DataFrame(_comparison_rows(disclosed)).to_excel(writer, sheet_name="Comparison", index=False)
        pd.DataFrame(_analytics_rows(disclosed)).to_excel(writer, sheet_name="Analytics", index=False)
        pd.DataFrame(disclosed["diagnostics"], columns=["rowIndex", "reason", "message"]).to_excel(
            writer, sheet_name="Diagnostics", index=False
        )
    logger.info("Excel report written to %s", report_file)
    files = [report_file]

    if config.csv_export:
        flat = flatten_analytics(result.analytics, engine.guard, redact=True)
        files.append(write_csv(flat, report_dir / f"report_{stamp}_rows.csv"))
    if config.json_export:
        files.append(write_json(disclosed, report_dir / f"report_{stamp}.json"))

    log_rejections(logger, result.diagnostics)
    return ReportResult(result=result, disclosed=disclosed, files=files)


def _normalize_asof(asof: datetime | None, config: AppConfig) -> datetime:
    if asof is None:
        asof = datetime.now(tz=config.timezone)
    elif asof.tzinfo is None:
        asof = asof.replace(tzinfo=config.timezone)
    else:
        asof = asof.astimezone(config.timezone)
    return asof


__all__ = ["ReportResult", "export_report", "load_locked"]
