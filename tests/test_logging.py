from __future__ import annotations

import logging

import pytest

from crew_calendar.bootstrap import logging as bootstrap_logging


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_configure_logging_writes_day_stamped_file(tmp_path, monkeypatch, root_handlers):
    monkeypatch.setattr(bootstrap_logging, "_INITIALIZED", False)

    log_path = bootstrap_logging.configure_logging("debug", log_dir=tmp_path / "logs")
    logging.getLogger("crew_calendar.tests").warning("hello from the calendar")

    assert log_path.parent == tmp_path / "logs"
    assert log_path.name.startswith("crew-calendar-")
    assert logging.getLogger().level == logging.DEBUG
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello from the calendar" in log_path.read_text(encoding="utf-8")


def test_configure_logging_runs_once(tmp_path, monkeypatch, root_handlers):
    monkeypatch.setattr(bootstrap_logging, "_INITIALIZED", False)
    bootstrap_logging.configure_logging("INFO", log_dir=tmp_path)
    count = len(logging.getLogger().handlers)

    bootstrap_logging.configure_logging("DEBUG", log_dir=tmp_path)

    assert len(logging.getLogger().handlers) == count
    assert logging.getLogger().level == logging.INFO
