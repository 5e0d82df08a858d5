"""Tests for logging setup and small helpers."""

import sys

from loguru import logger

from searchable.utils import LOG_FILE_NAME, relevance_label, setup_logging


def test_relevance_label():
    assert relevance_label("name", "_relevance") == "name_relevance"
    assert relevance_label("users.email", "_score") == "users_email_score"


def test_setup_logging_to_file(tmp_path):
    try:
        setup_logging(log_level="DEBUG", log_to_file=True, log_dir=tmp_path)
        logger.info("search predicate built")
        logger.complete()
        logger.remove()

        log_file = tmp_path / LOG_FILE_NAME
        assert log_file.exists()
        assert "search predicate built" in log_file.read_text()
    finally:
        logger.remove()
        logger.add(sys.stderr)


def test_setup_logging_to_stdout(capsys):
    try:
        setup_logging(log_level="INFO", log_to_stdout=True)
        logger.debug("hidden")
        logger.info("shown")

        out = capsys.readouterr().out
        assert "shown" in out
        assert "hidden" not in out
    finally:
        logger.remove()
        logger.add(sys.stderr)
