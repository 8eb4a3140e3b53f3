import datetime as dt
from pathlib import Path

import pytest

from gantt_timeline.parse_timeline import load_timeline, parse_breakdown, parse_timeline_data, parse_view_config
from gantt_timeline.timeline_models import WBSItem
from gantt_timeline.validation import TimelineValidationError

SAMPLE = Path(__file__).resolve().parent.parent / "sample" / "product_plan.yaml"


def _raw(**overrides):
    raw = {
        "title": "Plan",
        "startDate": "2024-07-01",
        "endDate": "2025-12-31",
        "rows": [{"id": "r1", "label": "Phase", "height": 80}],
        "items": [
            {"id": "i1", "rowId": "r1", "label": "Go", "date": "2024-07-22", "type": "milestone"},
            {"id": "i2", "rowId": "r1", "label": "Build", "date": "2025-03-01", "endDate": "2025-04-16", "type": "range"},
        ],
    }
    raw.update(overrides)
    return raw


def test_sample_plan_loads_with_view_settings():
    data, view = load_timeline(str(SAMPLE))

    assert data.title == "XX Product Development Plan"
    assert data.start_date == dt.date(2024, 7, 1)
    assert [row.id for row in data.rows] == ["milestones", "dev_plan", "sample_plan", "verify_plan"]
    assert len(data.items) == 17
    assert view.pixels_per_day == 3
    assert view.granularities == {"year", "month"}

    wbs = data.rows[2].wbs
    assert [node.id for node in wbs] == ["wbs-a1", "wbs-b"]
    assert [node.id for node in wbs[0].sub_tasks] == ["wbs-a1-tooling", "wbs-a1-assembly"]
    assert wbs[1].status == "In Progress"

    ppap = next(item for item in data.items if item.id == "m6")
    assert ppap.is_critical


def test_unquoted_yaml_dates_are_accepted(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(
        "title: Plan\n"
        "startDate: 2024-07-01\n"
        "endDate: 2024-12-31\n"
        "rows:\n  - {id: r1, label: Phase}\n"
        "items:\n  - {id: i1, rowId: r1, label: Go, date: 2024-08-01}\n",
        encoding="utf-8",
    )

    data, view = load_timeline(str(path))

    assert data.items[0].date == dt.date(2024, 8, 1)
    assert data.items[0].kind == "milestone"
    assert data.rows[0].height == 100
    assert view is None


def test_range_without_end_date_is_rejected():
    raw = _raw()
    del raw["items"][1]["endDate"]
    with pytest.raises(TimelineValidationError, match=r"items\[1\]"):
        parse_timeline_data(raw)


def test_reversed_range_is_rejected():
    raw = _raw()
    raw["items"][1]["endDate"] = "2025-02-01"
    with pytest.raises(TimelineValidationError, match="i2"):
        parse_timeline_data(raw)


def test_unknown_row_reference_is_rejected():
    raw = _raw()
    raw["items"][0]["rowId"] = "ghost"
    with pytest.raises(TimelineValidationError, match="ghost"):
        parse_timeline_data(raw)


def test_unexpected_fields_are_rejected():
    raw = _raw()
    raw["items"][0]["colour"] = "red"
    with pytest.raises(TimelineValidationError, match="unexpected fields"):
        parse_timeline_data(raw)


def test_bad_date_reports_path():
    raw = _raw()
    raw["items"][0]["date"] = "22/07/2024"
    with pytest.raises(TimelineValidationError, match=r"items\[0\]\.date"):
        parse_timeline_data(raw)


def test_duplicate_wbs_ids_in_a_row_are_rejected():
    node = {"id": "w", "taskName": "T", "startDate": "2024-08-01", "endDate": "2024-08-05"}
    raw = _raw(rows=[{"id": "r1", "label": "Phase", "wbs": [dict(node, subTasks=[node])]}])
    with pytest.raises(TimelineValidationError, match="duplicate WBS id"):
        parse_timeline_data(raw)


def test_view_config_validation():
    view = parse_view_config({"pixelsPerDay": 12, "granularities": ["week", "day"]})
    assert view.pixels_per_day == 12.0
    assert view.ordered_granularities() == ["week", "day"]

    with pytest.raises(TimelineValidationError):
        parse_view_config({"pixelsPerDay": 0})
    with pytest.raises(TimelineValidationError):
        parse_view_config({"granularities": ["quarter"]})


def test_parse_breakdown_accepts_models_and_mappings():
    existing = WBSItem(id="x", task_name="X", start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 2))

    nodes = parse_breakdown(
        [existing, {"id": "y", "taskName": "Y", "startDate": "2024-08-03", "endDate": "2024-08-04", "status": "Done"}]
    )

    assert nodes[0] is existing
    assert nodes[1].status == "Done"
    assert parse_breakdown(None) == ()
    with pytest.raises(TimelineValidationError):
        parse_breakdown([{"id": "z", "taskName": "Z", "startDate": "2024-08-03", "endDate": "2024-08-04", "status": "Blocked"}])
