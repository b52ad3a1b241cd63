import logging

import pytest

from rwms.core.logging import LOG_FORMAT, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    names = ["rwms", "sqlalchemy.engine", "aiosqlite", "uvicorn.access", "alembic"]
    levels = {n: logging.getLogger(n).level for n in names}
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    for n, lvl in levels.items():
        logging.getLogger(n).setLevel(lvl)


def test_repeated_setup_keeps_single_handler(restore_logging):
    setup_logging("INFO")
    app_logger = setup_logging("debug")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.handlers[0].formatter._fmt == LOG_FORMAT
    assert root.level == logging.DEBUG
    assert app_logger.name == "rwms"
    assert app_logger.level == logging.DEBUG


def test_sql_echo_controls_engine_logger(restore_logging):
    setup_logging("DEBUG")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging("WARNING", sql_echo=True)
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    assert logging.getLogger("aiosqlite").level == logging.WARNING


def test_unknown_level_rejected(restore_logging):
    with pytest.raises(ValueError):
        setup_logging("LOUD")
