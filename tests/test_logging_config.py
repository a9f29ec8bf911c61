import logging

from applymate.logging_config import setup_logging


def test_setup_logging_installs_single_handler_and_quiets_libraries():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("debug")
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("pdfminer").level == logging.WARNING

        setup_logging("not-a-level")
        assert root.level == logging.INFO
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
