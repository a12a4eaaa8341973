"""Tests for the MCP tool layer (called directly, without a transport)."""

import json

import pytest
from fastmcp import FastMCP

from mcp_server import TOOL_NAMES, WorkspaceTools, build_server


@pytest.fixture
def tools(session) -> WorkspaceTools:
    return WorkspaceTools(session)


def test_every_tool_name_is_a_method(tools) -> None:
    for name in TOOL_NAMES:
        assert callable(getattr(tools, name))
    assert len(set(TOOL_NAMES)) == len(TOOL_NAMES)


def test_build_server(session) -> None:
    server = build_server(session)
    assert isinstance(server, FastMCP)
    assert server.name == "Fretboard Canvas"


def test_create_grid_and_click(tools) -> None:
    created = tools.create_grid({"start_fret": 3, "end_fret": 7, "string_count": 4})
    assert created["success"]
    assert created["gridId"] == "grid_1"
    assert created["action"]["kind"] == "grid_create"
    assert created["state"]["canUndo"]

    clicked = tools.click_note("grid_1", 0, 5)
    assert clicked["noteId"] == "grid_1_0_5"
    assert clicked["action"]["payload"]["note_name"] == "G"

    again = tools.click_note("grid_1", 0, 5)
    assert again["action"]["kind"] == "note_group_change"


def test_invalid_config_reports_error(tools) -> None:
    result = tools.create_grid({"start_fret": "three"})
    assert not result["success"]
    assert result["status"] == "invalid"
    assert result["error"]["field"] == "config.start_fret"


def test_get_workspace(tools) -> None:
    tools.create_grid()
    tools.place_note("grid_1", 2, 5)

    workspace = tools.get_workspace()
    assert workspace["document"]["version"] == "1.0"
    layout = workspace["layouts"]["grid_1"]
    assert layout["width"] == 8 * 48 + 32
    assert layout["fret_numbers"] == list(range(8))
    assert layout["cells"] == [{"note_id": "grid_1_2_5", "row": 3, "column": 6}]
    assert [m["fret"] for m in layout["markers"]] == [3, 5, 7]
    assert workspace["state"]["gridCount"] == 1


def test_root_note_and_intervals(tools) -> None:
    tools.create_grid()
    tools.place_note("grid_1", 0, 5)
    tools.place_note("grid_1", 1, 5)

    result = tools.set_root_note("grid_1", "grid_1_0_5")
    assert result["success"]
    intervals = tools.get_workspace()["document"]["intervals"]
    assert intervals == {"grid_1_1_5": {"type": "perfect-4th", "distance": 5}}

    assert tools.set_root_note("grid_1", "grid_1_3_3")["status"] == "not_found"
    assert tools.clear_root_note()["success"]
    assert tools.clear_root_note()["status"] == "no_op"


def test_lock_blocks_edits(tools) -> None:
    tools.create_grid()
    assert tools.toggle_lock()["state"]["locked"]
    assert tools.move_grid("grid_1", 100, 100)["status"] == "locked"
    assert tools.remove_grid("grid_1")["status"] == "locked"
    assert not tools.toggle_lock()["state"]["locked"]


def test_clear_canvas_and_bad_move(tools) -> None:
    tools.create_grid()
    assert tools.move_grid("grid_1", float("nan"), 10)["status"] == "invalid"

    cleared = tools.clear_canvas()
    assert cleared["success"]
    assert cleared["action"]["kind"] == "canvas_clear"
    assert cleared["state"]["gridCount"] == 0
    assert tools.clear_canvas()["status"] == "no_op"

    assert tools.undo()["success"]
    assert tools.get_workspace()["document"]["grids"][0]["id"] == "grid_1"


def test_undo_redo(tools) -> None:
    tools.create_grid()
    tools.toggle_grid_orientation("grid_1")

    undone = tools.undo()
    assert undone["success"]
    assert undone["state"]["canRedo"]
    assert tools.get_workspace()["document"]["grids"][0]["config"]["orientation"] == "vertical"

    assert tools.redo()["success"]
    assert tools.redo()["status"] == "no_op"


def test_save_and_load_document(tools, tmp_path) -> None:
    tools.create_grid()
    tools.set_string_tuning("grid_1", 0, "D")
    tools.place_note("grid_1", 0, 0)

    saved = tools.save_document()
    assert saved["success"]
    document = json.loads(saved["content"])
    assert document["grids"][0]["notes"]["grid_1_0_0"]["name"] == "D"

    tools.remove_grid("grid_1")
    loaded = tools.load_document(document=saved["content"])
    assert loaded["success"]
    assert loaded["state"]["gridCount"] == 1
    assert not loaded["state"]["canUndo"]

    path = tmp_path / "tools.json"
    assert tools.save_document(path=str(path))["filename"] == "tools.json"
    assert tools.load_document(path=str(path))["filename"] == "tools.json"


def test_load_document_requires_input(tools) -> None:
    result = tools.load_document()
    assert not result["success"]
    assert result["error"]["message"] == "Provide either document or path"


def test_load_document_rejects_bad_json(tools) -> None:
    tools.create_grid()
    result = tools.load_document(document="{")
    assert not result["success"]
    assert result["error"]["errorType"] == "json_error"
    assert result["state"]["gridCount"] == 1


def test_document_schema(tools) -> None:
    schema = tools.get_document_schema()
    assert schema["version"] == "1.0"
    assert "grids" in schema["schema"]["properties"]
