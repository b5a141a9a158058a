from things_bridge.compress import compress


def test_compress_drops_empty_values():
    value = {
        "id": "t1",
        "notes": "",
        "tags": [],
        "area": None,
        "checklistItems": {"total": 0, "open": 0},
        "count": 0,
        "flag": False,
    }

    assert compress(value) == {"id": "t1", "count": 0, "flag": False}


def test_compress_keeps_nonzero_checklist():
    value = {"checklistItems": {"total": 3, "open": 0}}

    assert compress(value) == {"checklistItems": {"total": 3, "open": 0}}


def test_compress_recurses_and_collapses():
    value = {
        "areas": [{"name": "", "tasks": []}, {"name": "Work", "tasks": [{"notes": ""}]}],
        "inbox": [None, ""],
        "nested": {"inner": {"empty": ""}},
    }

    assert compress(value) == {"areas": [{"name": "Work"}]}


def test_compress_returns_none_when_nothing_left():
    assert compress({}) is None
    assert compress([]) is None
    assert compress({"a": {"b": [None]}}) is None


def test_compress_is_idempotent():
    value = {
        "summary": {"totalOpenTasks": 0, "lastUpdated": "now"},
        "tasks": [{"id": "t1", "tags": [], "checklistItems": {"total": 0, "open": 0}}],
    }

    once = compress(value)
    assert compress(once) == once
