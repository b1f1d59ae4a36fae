from __future__ import annotations

import orjson
import pytest

from crew_calendar import cli
from crew_calendar.config import get_settings


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("crew_calendar.bootstrap.logging._INITIALIZED", True)


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    path = tmp_path / "availability.json"
    monkeypatch.setenv("CREW_STORAGE_BACKEND", "local")
    monkeypatch.setenv("CREW_DATA_FILE", str(path))
    monkeypatch.setenv("CREW_FALLBACK_FILE", str(tmp_path / "fallback.json"))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_block_and_show(data_file, capsys):
    assert cli.main(["block", "2025-06-10", "2025-06-11", "--reason", "Holiday"]) == 0

    stored = orjson.loads(data_file.read_bytes())
    assert stored["blockedDates"] == {"2025-06-10": "Holiday", "2025-06-11": "Holiday"}

    assert cli.main(["show"]) == 0
    output = capsys.readouterr().out
    assert "2025-06-10 Holiday" in output


def test_book_conflict_exits_with_error(data_file, capsys):
    assert cli.main(["block", "2025-06-11"]) == 0
    assert cli.main(["book", "2025-06-10", "2025-06-12", "--client", "Acme"]) == 2
    assert "2025-06-11" in capsys.readouterr().err


def test_book_then_cancel(data_file, capsys):
    assert cli.main(["book", "2025-06-10", "2025-06-10", "--client", "Acme", "--project", "Launch"]) == 0
    booking_id = capsys.readouterr().out.split()[1].rstrip(":")

    assert cli.main(["paid", booking_id]) == 0
    assert cli.main(["cancel", booking_id]) == 0
    assert cli.main(["cancel", booking_id]) == 1
    assert orjson.loads(data_file.read_bytes())["events"] == {}


def test_export_json_to_file(data_file, tmp_path):
    target = tmp_path / "export.json"
    assert cli.main(["add-event", "2025-06-10", "--title", "Call", "--start", "09:00", "--end", "09:30"]) == 0

    assert cli.main(["export", "--format", "json", "--output", str(target)]) == 0

    document = orjson.loads(target.read_bytes())
    assert "exportedAt" in document
    assert document["events"]["2025-06-10"][0]["title"] == "Call"


def test_sweep_reports_repairs(data_file, capsys):
    data_file.write_bytes(orjson.dumps({"blockedDates": {"bad": "x"}, "events": {}}))

    assert cli.main(["sweep"]) == 0

    assert "1 repairs applied" in capsys.readouterr().out
    assert orjson.loads(data_file.read_bytes())["blockedDates"] == {}
