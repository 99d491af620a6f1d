from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from multirater.config import load_config
from multirater.logging_utils import log_rejections, setup_logging
from multirater.models import Diagnostic, RejectReason


def test_setup_is_idempotent(tmp_path):
    config = load_config(overrides={"log_path": str(tmp_path / "logs" / "run.log"), "log_level": "debug"})

    logger = setup_logging(config)
    handlers = list(logger.handlers)
    assert setup_logging(config).handlers == handlers

    assert logger.level == logging.DEBUG
    assert sum(isinstance(handler, RotatingFileHandler) for handler in handlers) == 1
    assert sum(type(handler) is logging.StreamHandler for handler in handlers) <= 1


def test_unknown_level_falls_back_to_info(tmp_path):
    config = load_config(overrides={"log_path": str(tmp_path / "run.log"), "log_level": "chatty"})
    assert setup_logging(config).level == logging.INFO


def test_rejections_logged_per_reason(caplog):
    diagnostics = [
        Diagnostic(0, RejectReason.OUT_OF_RANGE, "rating 9 outside scale 1-7"),
        Diagnostic(3, RejectReason.MISSING_RATING, "rating is missing"),
        Diagnostic(5, RejectReason.OUT_OF_RANGE, "rating 0 outside scale 1-7"),
    ]
    logger = logging.getLogger("tests.rejections")

    with caplog.at_level(logging.WARNING, logger="tests.rejections"):
        counts = log_rejections(logger, diagnostics)

    assert counts == {"out_of_range": 2, "missing_rating": 1}
    assert [record.getMessage() for record in caplog.records] == [
        "1 response rows rejected as missing_rating",
        "2 response rows rejected as out_of_range",
    ]
