"""Tests for config defaults and logging setup."""

import logging

from rich.logging import RichHandler

from config import SUCCESS, miniconda_prefix, setup_logging


def test_success_level_registered_on_import():
    assert logging.getLevelName(SUCCESS) == "SUCCESS"


def test_success_records_carry_level_name(caplog):
    caplog.set_level(logging.INFO)
    logging.getLogger("openvoice_deploy").log(SUCCESS, "done")

    assert caplog.records[-1].levelname == "SUCCESS"


def test_setup_logging_replaces_rich_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging()
        setup_logging(verbose=True)
        rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert root.level == logging.DEBUG
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)


def test_miniconda_prefix(tmp_path):
    assert miniconda_prefix(tmp_path) == tmp_path / "miniconda3"
