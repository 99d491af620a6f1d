from __future__ import annotations

import json
from pathlib import Path

import pytest

from multirater.config import DEFAULT_CONFIG, load_config
from multirater.models import ScoreLabel


def test_defaults():
    config = load_config()

    assert config.scale_max == 7
    assert config.min_reviewers == 3
    assert config.thresholds.alignment_threshold(7) == pytest.approx(1.0)
    assert config.top_n == 3
    assert config.max_workers == 1
    assert config.report_path == Path("reports")
    assert config.json_export is True
    assert config.csv_export is False


def test_yaml_file_and_overrides(tmp_path):
    path = tmp_path / "multirater.yaml"
    path.write_text(
        "min_reviewers: 5\n"
        "alignment_threshold: 0.25\n"
        "log_level: debug\n"
        "timezone: Europe/Istanbul\n"
        "score_bands:\n"
        "  Excellent: 0.9\n"
        "  good: 0.6\n"
        "  fair: 0.2\n"
        "organization: acme\n",
        encoding="utf-8",
    )
    config = load_config(path, overrides={"min_reviewers": 4})

    assert config.min_reviewers == 4
    assert config.thresholds.alignment_threshold(5) == 1.0
    assert config.log_level == "DEBUG"
    assert str(config.timezone) == "Europe/Istanbul"
    assert config.extra == {"organization": "acme"}
    assert config.thresholds.score_bands == {ScoreLabel.EXCELLENT: 0.9, ScoreLabel.GOOD: 0.6, ScoreLabel.FAIR: 0.2}


def test_json_file(tmp_path):
    path = tmp_path / "multirater.json"
    path.write_text(json.dumps({"max_workers": 4, "csv_export": True}), encoding="utf-8")
    config = load_config(path)

    assert config.max_workers == 4
    assert config.csv_export is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_reviewers": 0},
        {"min_reviewers": 2.5},
        {"min_reviewers": True},
        {"scale_max": 1},
        {"alignment_threshold": 0},
        {"alignment_threshold": "wide"},
        {"score_bands": {"excellent": 0.1, "good": 0.5, "fair": 0.2}},
        {"score_bands": {"excellent": 0.9, "good": 0.5}},
        {"score_bands": {"superb": 0.9, "good": 0.5, "fair": 0.2}},
        {"timezone": "Mars/Olympus"},
        {"lock_timeout": "soon"},
    ],
)
def test_bad_values_rejected(overrides):
    with pytest.raises(ValueError):
        load_config(overrides=overrides)


def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")
    path = tmp_path / "config.toml"
    path.write_text("scale_max = 7", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_default_config_not_mutated():
    load_config(overrides={"top_n": 10})
    assert DEFAULT_CONFIG["top_n"] == 3
