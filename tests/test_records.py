import pytest

from things_bridge.records import (
    ChecklistItemRecord,
    ItemState,
    MalformedRowError,
    TagRecord,
    TaskRecord,
    select_columns,
)


def test_task_record_maps_codes():
    record = TaskRecord.from_fields(
        ["t1", "Write", "", "1", "3", "1", "1700000000", "", "132659072", "",
         "1700001000", "a1", "", "4", "2"]
    )

    assert record.kind == "project"
    assert record.status == "completed"
    assert record.trashed is True
    assert record.notes is None
    assert record.start_date == "132659072"
    assert record.completion_date == "1700001000"
    assert record.area_id == "a1"
    assert record.project_id is None
    assert (record.checklist_total, record.checklist_open) == (4, 2)


def test_task_record_rejects_short_rows():
    with pytest.raises(MalformedRowError):
        TaskRecord.from_fields(["t1", "Only a title"])


def test_tag_and_checklist_records():
    assert TagRecord.from_fields(["g1", "urgent", ""]).shortcut is None
    item = ChecklistItemRecord.from_fields(["c1", "Step", "3", "1700000000", "t1"])
    assert item.status == "completed"
    assert item.task_id == "t1"


def test_item_state_to_dict():
    state = ItemState.from_fields(["t1", "Write", "0", "2", "0", "", "p1"])

    assert state.to_dict() == {
        "id": "t1",
        "title": "Write",
        "type": "task",
        "status": "canceled",
        "trashed": False,
        "areaId": None,
        "projectId": "p1",
    }


def test_select_columns_follows_record_order():
    columns = select_columns(TaskRecord).split(", ")

    assert columns[0] == "uuid"
    assert columns[3:5] == ["type", "status"]
    assert columns[1].startswith("replace(replace(title, '|', char(30))")
    assert "notes" in columns[2]
    assert "stopDate" in select_columns(TaskRecord)


def test_select_columns_masks_free_text():
    columns = select_columns(TagRecord)

    assert columns == (
        "uuid, replace(replace(title, '|', char(30)), char(10), char(31)), "
        "replace(replace(shortcut, '|', char(30)), char(10), char(31))"
    )


def test_task_record_rejects_wide_rows():
    fields = "T1|A|B|note|0|0|0|1700000000|1700000000|||||0|0".split("|")

    with pytest.raises(MalformedRowError):
        TaskRecord.from_fields(fields)


def test_task_record_restores_masked_text():
    record = TaskRecord.from_fields(
        ["t1", "A\x1eB", "line one\x1fline two", "0", "0", "0", "1700000000", "",
         "", "", "", "", "", "0", "0"]
    )

    assert record.title == "A|B"
    assert record.notes == "line one\nline two"
    assert record.kind == "task"
