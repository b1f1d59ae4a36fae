from __future__ import annotations

import orjson

from crew_calendar.core.integrity import sweep


def _messy_document():
    return {
        "blockedDates": {"2025-06-01": "Holiday", "junk": "x", "2025-06-02": 42},
        "events": {
            "2025-06-10": orjson.dumps(
                [{"id": "a", "title": "Call", "type": "regular", "fullDay": False, "startTime": "09:00", "endTime": "09:30"}]
            ).decode(),
            "2025-06-11": [
                {"title": "", "type": "party", "startTime": "14:00", "endTime": "13:00", "date": "2025-06-12"},
                "not an event",
            ],
            "2025-06-12": [],
            "2025-06-13": "{{broken",
            "13/06/2025": [{"id": "x"}],
        },
    }


def test_clean_document_needs_no_repairs():
    document = {
        "blockedDates": {"2025-06-01": "Holiday"},
        "events": {
            "2025-06-10": [
                {
                    "id": "evt_1",
                    "date": "2025-06-10",
                    "title": "Call",
                    "description": "",
                    "type": "regular",
                    "fullDay": False,
                    "startTime": "09:00",
                    "endTime": "09:30",
                }
            ]
        },
    }

    report = sweep(document)

    assert report.repaired is False
    assert report.data == document


def test_sweep_repairs_messy_document(caplog):
    report = sweep(_messy_document())
    data = report.data

    assert data["blockedDates"] == {"2025-06-01": "Holiday", "2025-06-02": "Unavailable"}
    assert sorted(data["events"]) == ["2025-06-10", "2025-06-11"]
    assert data["events"]["2025-06-10"][0]["id"] == "a"

    fixed = data["events"]["2025-06-11"]
    assert len(fixed) == 1
    event = fixed[0]
    assert event["id"].startswith("evt_")
    assert event["title"] == "Untitled Event"
    assert event["type"] == "regular"
    assert event["fullDay"] is False
    assert (event["startTime"], event["endTime"]) == ("14:00", "15:00")
    assert event["date"] == "2025-06-11"
    assert "Integrity sweep" in caplog.text


def test_sweep_is_idempotent():
    first = sweep(_messy_document())
    second = sweep(first.data)

    assert first.repaired is True
    assert second.repairs == []
    assert second.data == first.data


def test_sweep_does_not_mutate_input():
    document = _messy_document()
    snapshot = orjson.dumps(document)

    sweep(document)

    assert orjson.dumps(document) == snapshot


def test_end_time_correction_is_capped_at_end_of_day():
    late = {
        "events": {
            "2025-06-10": [
                {"id": "a", "title": "Wrap", "type": "regular", "fullDay": False, "startTime": "23:30", "endTime": "23:00"},
                {"id": "b", "title": "Late", "type": "regular", "fullDay": False, "startTime": "23:59", "endTime": "23:59"},
            ]
        }
    }

    events = sweep(late).data["events"]["2025-06-10"]

    assert (events[0]["startTime"], events[0]["endTime"]) == ("23:30", "23:59")
    assert (events[1]["startTime"], events[1]["endTime"]) == ("22:59", "23:59")


def test_missing_times_use_configured_defaults():
    document = {"events": {"2025-06-10": [{"id": "a", "title": "Call", "type": "regular"}]}}

    event = sweep(document, default_start="08:00", default_end="08:45").data["events"]["2025-06-10"][0]

    assert (event["startTime"], event["endTime"]) == ("08:00", "08:45")
    assert event["fullDay"] is False


def test_booked_event_without_client_becomes_regular():
    document = {
        "events": {
            "2025-06-10": [
                {"id": "a", "title": "Shoot", "type": "booked", "fullDay": True},
                {"id": "b", "title": "Shoot", "type": "booked", "fullDay": True, "clientData": {"clientName": ""}},
            ]
        }
    }

    first, second = sweep(document).data["events"]["2025-06-10"]

    assert first["type"] == "regular"
    assert "clientData" not in first
    assert second["clientData"]["clientName"] == "Unnamed Client"


def test_duplicate_ids_are_renamed():
    document = {
        "events": {
            "2025-06-10": [{"id": "dup", "title": "One", "type": "regular", "fullDay": True}],
            "2025-06-11": [{"id": "dup", "title": "Two", "type": "regular", "fullDay": True}],
        }
    }

    data = sweep(document).data

    assert data["events"]["2025-06-10"][0]["id"] == "dup"
    assert data["events"]["2025-06-11"][0]["id"] != "dup"


def test_legacy_booked_dates_are_migrated():
    legacy = {
        "blockedDates": {},
        "bookedDates": {
            "2025-06-10": {"clientName": "Acme", "projectName": "Launch", "projectStartDate": "2025-06-10"},
            "2025-06-11": {"clientName": "Acme", "projectName": "Launch", "projectStartDate": "2025-06-10"},
            "2025-07-01": {"clientName": "Other", "projectName": "Promo"},
        },
    }

    report = sweep(legacy)
    events = report.data["events"]

    assert report.repaired is True
    assert "bookedDates" not in report.data
    assert sorted(events) == ["2025-06-10", "2025-06-11", "2025-07-01"]
    june = [events["2025-06-10"][0], events["2025-06-11"][0]]
    assert all(event["type"] == "booked" and event["fullDay"] for event in june)
    assert june[0]["clientData"]["bookingSetId"] == june[1]["clientData"]["bookingSetId"]
    assert events["2025-07-01"][0]["clientData"]["bookingSetId"] != june[0]["clientData"]["bookingSetId"]
    assert sweep(report.data).repairs == []


def test_non_dict_document_resets():
    report = sweep(["nope"])

    assert report.data == {"blockedDates": {}, "events": {}}
    assert report.repaired is True
    assert sweep(None).repaired is False
