import pytest

from tools.mcp_tools import ToolSchemaError, load_tool_definitions


def tool_names(tools):
    return [tool["function"]["name"] for tool in tools]


def test_load_tool_definitions_rejects_missing_file(tmp_path):
    missing = tmp_path / "missing.json"
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(missing)


def test_load_tool_definitions_rejects_invalid_json(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text("{not valid json", encoding="utf-8")
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_non_list(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text('{"type":"function"}', encoding="utf-8")
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_duplicates(tmp_path):
    path = tmp_path / "tools.json"
    tool = '{"type":"function","function":{"name":"show","parameters":{}}}'
    path.write_text(f"[{tool},{tool}]", encoding="utf-8")
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_undeclared_required(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text(
        '[{"type":"function","function":{"name":"search",'
        '"parameters":{"properties":{},"required":["query"]}}}]',
        encoding="utf-8",
    )
    with pytest.raises(ToolSchemaError) as excinfo:
        load_tool_definitions(path)
    assert "query" in str(excinfo.value)


def test_load_tool_definitions_validates_schema(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text(
        '[{"type":"function","function":{"name":"ping","parameters":{}}}]',
        encoding="utf-8",
    )
    tools = load_tool_definitions(path)
    assert tool_names(tools) == ["ping"]


def test_bundled_definitions_load():
    names = tool_names(load_tool_definitions())

    assert "things_summary" in names
    assert "verify_item" in names
