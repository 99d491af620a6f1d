"""Configuration loading utilities for multirater."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

import yaml

from .models import ScoreLabel
from .thresholds import DEFAULT_ALIGNMENT_FRACTION, DEFAULT_SCORE_BANDS, Thresholds

DEFAULT_CONFIG = {
    "scale_max": 7,
    "min_reviewers": 3,
    "alignment_threshold": DEFAULT_ALIGNMENT_FRACTION,
    "score_bands": {label.value: fraction for label, fraction in DEFAULT_SCORE_BANDS.items()},
    "top_n": 3,
    "max_workers": 1,
    "timezone": "UTC",
    "input_path": "data/responses.xlsx",
    "report_path": "reports",
    "log_path": "logs/multirater.log",
    "log_level": "INFO",
    "lock_timeout": 30,
    "csv_export": False,
    "json_export": True,
}


@dataclass(frozen=True)
class AppConfig:
    """Typed configuration container with default fallbacks."""

    scale_max: int
    min_reviewers: int
    thresholds: Thresholds
    top_n: int
    max_workers: int
    timezone: tzinfo
    input_path: Path
    report_path: Path
    log_path: Path
    log_level: str
    lock_timeout: float = 30.0
    csv_export: bool = False
    json_export: bool = True

    extra: Mapping[str, object] = field(default_factory=dict)


def _parse_timezone(name: str) -> tzinfo:
    try:
        from zoneinfo import ZoneInfo

        return ZoneInfo(name)
    except Exception as exc:  # pragma: no cover - ZoneInfo may be missing
        raise ValueError(f"Unknown timezone '{name}'") from exc


def _load_file(path: Path) -> MutableMapping[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config format: {path.suffix}")
    if not isinstance(data, MutableMapping):
        raise ValueError("Config root must be a mapping")
    return data


def _score_label(key: object) -> ScoreLabel:
    if isinstance(key, ScoreLabel):
        return key
    return ScoreLabel(str(key).strip().lower())


def _int_at_least(merged: Mapping[str, object], key: str, minimum: int) -> int:
    value = merged.get(key, DEFAULT_CONFIG[key])
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer") from exc
    if number != value and not isinstance(value, str):
        raise ValueError(f"{key} must be an integer")
    if number < minimum:
        raise ValueError(f"{key} must be >= {minimum}")
    return number


def _path(merged: Mapping[str, object], key: str) -> Path:
    return Path(str(merged.get(key, DEFAULT_CONFIG[key]))).expanduser()


def load_config(path: Optional[str | Path] = None, overrides: Optional[Mapping[str, object]] = None) -> AppConfig:
    """Load application configuration merging defaults, a config file and overrides."""

    merged: MutableMapping[str, object] = dict(DEFAULT_CONFIG)
    if path:
        merged.update(_load_file(Path(path)))
    if overrides:
        merged.update(overrides)

    tz = _parse_timezone(str(merged.get("timezone", DEFAULT_CONFIG["timezone"])))

    bands = merged.get("score_bands") or DEFAULT_CONFIG["score_bands"]
    if not isinstance(bands, Mapping):
        raise ValueError("score_bands must be a mapping")
    try:
        thresholds = Thresholds(
            alignment_fraction=float(merged.get("alignment_threshold", DEFAULT_CONFIG["alignment_threshold"])),
            score_bands={_score_label(k): float(v) for k, v in bands.items()},
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid thresholds: {exc}") from exc

    lock_timeout_value = merged.get("lock_timeout", DEFAULT_CONFIG["lock_timeout"])
    try:
        lock_timeout = float(lock_timeout_value)
    except (TypeError, ValueError) as exc:
        raise ValueError("lock_timeout must be numeric") from exc

    config = AppConfig(
        scale_max=_int_at_least(merged, "scale_max", 2),
        min_reviewers=_int_at_least(merged, "min_reviewers", 1),
        thresholds=thresholds,
        top_n=_int_at_least(merged, "top_n", 0),
        max_workers=_int_at_least(merged, "max_workers", 1),
        timezone=tz,
        input_path=_path(merged, "input_path"),
        report_path=_path(merged, "report_path"),
        log_path=_path(merged, "log_path"),
        log_level=str(merged.get("log_level", DEFAULT_CONFIG["log_level"])).upper(),
        lock_timeout=lock_timeout,
        csv_export=bool(merged.get("csv_export", DEFAULT_CONFIG["csv_export"])),
        json_export=bool(merged.get("json_export", DEFAULT_CONFIG["json_export"])),
        extra={k: v for k, v in merged.items() if k not in DEFAULT_CONFIG},
    )
    return config


__all__ = ["AppConfig", "DEFAULT_CONFIG", "load_config"]
