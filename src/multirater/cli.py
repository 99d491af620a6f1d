"""Command line interface for the multirater analytics engine."""
from __future__ import annotations

import argparse
import json
from datetime import datetime

from .config import load_config
from .engine import AnalyticsEngine
from .logging_utils import log_rejections, setup_logging
from .report import export_report, load_locked


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multi-rater feedback analytics")
    parser.add_argument(
        "--workbook",
        help="Excel workbook or CSV directory with responses (defaults to config input_path)",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        help="Path to config file (YAML or JSON)",
    )
    parser.add_argument(
        "--asof",
        help="Report date in YYYY-MM-DD format (defaults to now)",
    )
    parser.add_argument(
        "--min-reviewers",
        type=int,
        help="Privacy floor: distinct reviewers needed before reviewer data is shown",
    )

    subparsers = parser.add_subparsers(dest="command")

    summarize = subparsers.add_parser("summarize", help="Write the full analytics report")
    summarize.add_argument(
        "--output",
        dest="output_path",
        default=None,
        help="Directory for report files. Defaults to config report_path.",
    )

    compare = subparsers.add_parser("compare", help="Print comparison data for questions")
    compare.add_argument("question_ids", nargs="+", metavar="QUESTION_ID")

    subparsers.add_parser("validate", help="List response rows rejected by the normalizer")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"min_reviewers": args.min_reviewers} if args.min_reviewers is not None else None
    config = load_config(args.config_path, overrides)
    logger = setup_logging(config)

    workbook_path = args.workbook or config.input_path

    if args.command in {"compare", "validate"}:
        workbook = load_locked(workbook_path, config)
        engine = AnalyticsEngine.from_config(config)
        if args.command == "validate":
            normalized = engine.normalize(workbook.responses, workbook.questions)
            for diagnostic in normalized.rejected:
                print(f"row {diagnostic.row_index}: {diagnostic.reason.value} - {diagnostic.message}")
            log_rejections(logger, normalized.rejected)
            logger.info("%d valid rows, %d rejected", len(normalized.records), len(normalized.rejected))
            return 1 if normalized.rejected else 0

        result = engine.compute(
            workbook.responses,
            workbook.questions,
            workbook.assignments,
            comparison_question_ids=args.question_ids,
        )
        payload = [engine.guard.comparison(item) for item in result.comparisons]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    # default or summarize
    asof_dt = datetime.fromisoformat(args.asof) if args.asof else None
    output_path = getattr(args, "output_path", None) or config.report_path
    report = export_report(workbook_path, output_path, config, asof=asof_dt)

    analytics = report.disclosed["analytics"]
    logger.info(
        "Report covers %d subjects, %d assignments", len(report.result.subjects), analytics["totalAssignments"]
    )
    for path in report.files:
        print(path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
