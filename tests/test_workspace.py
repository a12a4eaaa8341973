"""Tests for WorkspaceModel mutators and queries."""

from fretboard_actions import (
    GridConfigChangeAction, NoteGroupChangeAction, NotePlaceAction,
    NoteRemoveAction, ResultStatus
)
from fretboard_constants import (
    CanvasOrientation, GridOrientation, GroupState, IntervalKind, MarkerType
)
from fretboard_models import GridConfig, NoteRef, Position
from workspace import WorkspaceModel, grid_size


def _grid_with_notes(model: WorkspaceModel, *coords):
    grid_id = model.create_grid().grid_id
    for string_index, fret in coords:
        assert model.place_note(grid_id, string_index, fret).success
    return grid_id


# ============================================================================
# Grid creation and configuration
# ============================================================================

def test_create_grid_defaults(model) -> None:
    result = model.create_grid()
    assert result.status == ResultStatus.OK
    assert result.grid_id == "grid_1"

    grid = model.get_grid("grid_1")
    assert (grid.fret_range.start, grid.fret_range.end) == (0, 7)
    assert grid.string_count == 6
    assert [t.note_name for t in grid.tuning] == ["E", "A", "D", "G", "B", "E"]
    assert grid.orientation == GridOrientation.VERTICAL
    assert grid.position == Position(x=0, y=0)
    assert grid.notes == {}


def test_new_grids_are_staggered(model) -> None:
    for _ in range(4):
        model.create_grid()
    positions = [(g.position.x, g.position.y) for g in model.list_grids()]
    assert positions == [(0, 0), (20, 0), (40, 0), (0, 20)]


def test_create_grid_clamps_config(model) -> None:
    result = model.create_grid({"start_fret": -3, "end_fret": 40, "string_count": 20})
    assert result.success
    grid = model.get_grid(result.grid_id)
    assert (grid.fret_range.start, grid.fret_range.end) == (0, 24)
    assert grid.string_count == 12
    assert len(grid.tuning) == 12


def test_create_grid_crossed_bounds_snap_end_to_start(model) -> None:
    grid = model.get_grid(model.create_grid({"start_fret": 9, "end_fret": 4}).grid_id)
    assert (grid.fret_range.start, grid.fret_range.end) == (9, 9)


def test_create_grid_rejects_malformed_config(model) -> None:
    result = model.create_grid({"start_fret": "three"})
    assert result.status == ResultStatus.INVALID
    assert result.error["isError"]
    assert result.error["field"] == "config.start_fret"
    assert model.list_grids() == []

    result = model.create_grid({"orientation": "diagonal"})
    assert result.status == ResultStatus.INVALID

    result = model.create_grid({"string_count": 4, "tuning": ["E", "A", "D"]})
    assert result.status == ResultStatus.INVALID
    assert "3 entries for 4 strings" in result.message
    assert model.list_grids() == []


def test_create_grid_with_explicit_tuning(model) -> None:
    config = GridConfig(string_count=6, tuning=["D", "A", "D", "G", "A", "D"])
    grid = model.get_grid(model.create_grid(config).grid_id)
    assert [t.semitone for t in grid.tuning] == [2, 9, 2, 7, 9, 2]


def test_create_grid_string_count_follows_tuning(model) -> None:
    grid = model.get_grid(model.create_grid({"tuning": ["D", "G", "B", "E"]}).grid_id)
    assert grid.string_count == 4
    assert [t.note_name for t in grid.tuning] == ["D", "G", "B", "E"]

    result = model.create_grid({"string_count": 5, "tuning": ["D", "G", "B", "E"]})
    assert result.status == ResultStatus.INVALID
    assert "4 entries for 5 strings" in result.message


def test_update_grid_config_crossed_bounds(model) -> None:
    grid_id = model.create_grid({"start_fret": 3, "end_fret": 7}).grid_id

    model.update_grid_config(grid_id, {"start_fret": 10})
    grid = model.get_grid(grid_id)
    assert (grid.fret_range.start, grid.fret_range.end) == (10, 10)

    model.update_grid_config(grid_id, {"end_fret": 2})
    grid = model.get_grid(grid_id)
    assert (grid.fret_range.start, grid.fret_range.end) == (2, 2)

    model.update_grid_config(grid_id, {"start_fret": 8, "end_fret": 5})
    grid = model.get_grid(grid_id)
    assert (grid.fret_range.start, grid.fret_range.end) == (8, 8)


def test_update_grid_config_string_count_regenerates_tuning(model) -> None:
    grid_id = model.create_grid().grid_id
    model.set_string_tuning(grid_id, 0, "D")

    result = model.update_grid_config(grid_id, {"string_count": 7})
    assert result.success
    grid = model.get_grid(grid_id)
    assert [t.note_name for t in grid.tuning] == ["B", "E", "A", "D", "G", "B", "E"]


def test_update_grid_config_drops_notes_and_clears_root(model) -> None:
    grid_id = _grid_with_notes(model, (0, 7), (5, 2), (1, 3))
    model.set_root_note(NoteRef(grid_id=grid_id, note_id=f"{grid_id}_0_7"))

    result = model.update_grid_config(grid_id, {"end_fret": 5})
    assert result.success
    assert isinstance(result.action, GridConfigChangeAction)
    assert result.action.dropped_notes == [f"{grid_id}_0_7"]
    assert model.root_note is None
    assert model.intervals == {}
    assert set(n.fret for n in model.list_notes(grid_id)) == {2, 3}


def test_update_grid_config_repitches_remaining_notes(model) -> None:
    grid_id = _grid_with_notes(model, (1, 3))
    assert model.list_notes(grid_id)[0].pitch_class.name == "C"

    model.update_grid_config(grid_id, {"string_count": 4})
    notes = model.list_notes(grid_id)
    assert len(notes) == 1
    assert notes[0].pitch_class.name == "A#"


def test_update_grid_config_unchanged_is_no_op(model) -> None:
    grid_id = model.create_grid().grid_id
    result = model.update_grid_config(grid_id, {"start_fret": 0, "end_fret": 7})
    assert result.status == ResultStatus.NO_OP


def test_update_grid_config_unknown_grid(model) -> None:
    assert model.update_grid_config("nope", {"end_fret": 3}).status == ResultStatus.NOT_FOUND


def test_set_string_tuning_repitches_string(model) -> None:
    grid_id = _grid_with_notes(model, (0, 2), (1, 2))
    result = model.set_string_tuning(grid_id, 0, "D")
    assert result.success

    notes = {n.string_index: n for n in model.list_notes(grid_id)}
    assert notes[0].pitch_class.name == "E"
    assert notes[1].pitch_class.name == "B"
    assert model.get_grid(grid_id).tuning[0].note_name == "D"


def test_set_string_tuning_errors(model) -> None:
    grid_id = model.create_grid().grid_id
    assert model.set_string_tuning(grid_id, 6, "D").status == ResultStatus.NOT_FOUND
    assert model.set_string_tuning(grid_id, 0, "H").status == ResultStatus.INVALID
    assert model.set_string_tuning(grid_id, 0, "E").status == ResultStatus.NO_OP


# ============================================================================
# Notes
# ============================================================================

def test_place_note_pitch_and_id(model) -> None:
    grid_id = model.create_grid().grid_id
    result = model.place_note(grid_id, 0, 3)
    assert result.success
    assert result.note_id == f"{grid_id}_0_3"
    assert isinstance(result.action, NotePlaceAction)

    note = model.all_notes()[result.note_id]
    assert note.pitch_class.name == "G"
    assert note.group_state == GroupState.CHROMATIC


def test_place_note_occupied(model) -> None:
    grid_id = _grid_with_notes(model, (2, 2))
    before = model.snapshot()
    result = model.place_note(grid_id, 2, 2)
    assert result.status == ResultStatus.COORDINATE_OCCUPIED
    assert model.snapshot() == before


def test_place_note_outside_grid(model) -> None:
    grid_id = model.create_grid().grid_id
    assert model.place_note(grid_id, 6, 0).status == ResultStatus.NOT_FOUND
    assert model.place_note(grid_id, 0, 8).status == ResultStatus.NOT_FOUND
    assert model.place_note("missing", 0, 0).status == ResultStatus.NOT_FOUND


def test_cycle_note_group_then_remove(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    note_id = f"{grid_id}_0_0"

    states = []
    for _ in range(4):
        result = model.cycle_note_group(note_id)
        assert isinstance(result.action, NoteGroupChangeAction)
        states.append(model.all_notes()[note_id].group_state)
    assert states == [GroupState.GROUP_1, GroupState.GROUP_2, GroupState.GROUP_3, GroupState.GROUP_4]

    result = model.cycle_note_group(note_id)
    assert isinstance(result.action, NoteRemoveAction)
    assert note_id not in model.all_notes()


def test_click_places_then_cycles(model) -> None:
    grid_id = model.create_grid().grid_id
    assert isinstance(model.click(grid_id, 1, 1).action, NotePlaceAction)
    assert isinstance(model.click(grid_id, 1, 1).action, NoteGroupChangeAction)
    assert model.all_notes()[f"{grid_id}_1_1"].group_state == GroupState.GROUP_1


def test_remove_note_clears_root(model) -> None:
    grid_id = _grid_with_notes(model, (0, 3), (1, 5))
    model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_3"})
    assert model.intervals

    assert model.remove_note(f"{grid_id}_0_3").success
    assert model.root_note is None
    assert model.intervals == {}
    assert model.remove_note(f"{grid_id}_0_3").status == ResultStatus.NOT_FOUND


def test_remove_grid_cascades(model) -> None:
    grid_id = _grid_with_notes(model, (0, 3))
    other_id = _grid_with_notes(model, (0, 5))
    model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_3"})

    result = model.remove_grid(grid_id)
    assert result.success
    assert result.action.removed_notes == 1
    assert model.root_note is None
    assert model.intervals == {}
    assert [g.id for g in model.list_grids()] == [other_id]
    assert model.remove_grid(grid_id).status == ResultStatus.NOT_FOUND


# ============================================================================
# Root note and intervals
# ============================================================================

def test_intervals_across_grids(model) -> None:
    first = _grid_with_notes(model, (0, 3), (1, 5), (1, 2), (0, 4))
    second = _grid_with_notes(model, (2, 5), (3, 0))

    model.set_root_note({"grid_id": first, "note_id": f"{first}_0_3"})
    intervals = model.intervals

    assert f"{first}_0_3" not in intervals
    assert intervals[f"{first}_1_5"].kind == IntervalKind.PERFECT_FIFTH
    assert intervals[f"{first}_1_2"].kind == IntervalKind.MAJOR_THIRD
    assert f"{first}_0_4" not in intervals
    assert intervals[f"{second}_2_5"].kind == IntervalKind.OCTAVE
    assert intervals[f"{second}_2_5"].semitone_distance == 12
    assert intervals[f"{second}_3_0"].kind == IntervalKind.OCTAVE


def test_intervals_follow_new_notes(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_0"})
    assert model.intervals == {}

    model.place_note(grid_id, 1, 0)
    assert model.intervals[f"{grid_id}_1_0"].kind == IntervalKind.PERFECT_FOURTH


def test_set_root_note_unresolvable_keeps_current(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_0"})

    result = model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_5_5"})
    assert result.status == ResultStatus.NOT_FOUND
    assert model.root_note.note_id == f"{grid_id}_0_0"


def test_set_root_note_same_and_clear(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    ref = NoteRef(grid_id=grid_id, note_id=f"{grid_id}_0_0")
    assert model.set_root_note(ref).success
    assert model.set_root_note(ref).status == ResultStatus.NO_OP
    assert model.clear_root_note().success
    assert model.root_note is None
    assert model.clear_root_note().status == ResultStatus.NO_OP


def test_set_root_note_malformed_ref(model) -> None:
    result = model.set_root_note({"grid_id": "grid_1"})
    assert result.status == ResultStatus.INVALID


# ============================================================================
# Canvas, lock, movement
# ============================================================================

def test_locked_canvas_refuses_edits(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    assert model.toggle_lock().success
    assert model.is_locked
    before = model.snapshot()

    results = [
        model.create_grid(),
        model.update_grid_config(grid_id, {"end_fret": 3}),
        model.set_string_tuning(grid_id, 0, "D"),
        model.move_grid(grid_id, {"x": 50, "y": 50}),
        model.remove_grid(grid_id),
        model.toggle_grid_orientation(grid_id),
        model.place_note(grid_id, 1, 1),
        model.remove_note(f"{grid_id}_0_0"),
        model.cycle_note_group(f"{grid_id}_0_0"),
        model.click(grid_id, 0, 0),
        model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_0"}),
        model.toggle_orientation(),
        model.clear_all(),
    ]
    assert all(r.status == ResultStatus.LOCKED for r in results)
    assert model.snapshot() == before

    assert model.toggle_lock().success
    assert not model.is_locked
    assert model.place_note(grid_id, 1, 1).success


def test_move_grid_is_clamped(model) -> None:
    grid_id = model.create_grid().grid_id
    width, height = grid_size(model.get_grid(grid_id).fret_range, 6, GridOrientation.VERTICAL)
    assert (width, height) == (416, 216)

    model.move_grid(grid_id, Position(x=10_000, y=10_000))
    grid = model.get_grid(grid_id)
    assert (grid.position.x, grid.position.y) == (816 - 416, 1056 - 216)

    model.move_grid(grid_id, {"x": -5, "y": 100})
    grid = model.get_grid(grid_id)
    assert (grid.position.x, grid.position.y) == (0, 100)

    assert model.move_grid(grid_id, {"x": 0, "y": 100}).status == ResultStatus.NO_OP


def test_move_grid_rejects_malformed_position(model) -> None:
    grid_id = model.create_grid().grid_id
    model.move_grid(grid_id, {"x": 20, "y": 30})

    result = model.move_grid(grid_id, {"x": "left", "y": 0})
    assert result.status == ResultStatus.INVALID
    assert result.grid_id == grid_id
    assert result.error["field"] == "position.x"

    for bad in ({"x": float("nan"), "y": 0}, {"x": 0, "y": float("inf")}):
        assert model.move_grid(grid_id, bad).status == ResultStatus.INVALID

    assert model.get_grid(grid_id).position == Position(x=20, y=30)


def test_toggle_orientation_swaps_and_reclamps(model) -> None:
    grid_id = model.create_grid().grid_id
    model.move_grid(grid_id, {"x": 0, "y": 800})

    assert model.toggle_orientation().success
    canvas = model.canvas
    assert canvas.orientation == CanvasOrientation.LANDSCAPE
    assert (canvas.dimensions.width, canvas.dimensions.height) == (1056, 816)
    assert model.get_grid(grid_id).position.y == 816 - 216

    model.toggle_orientation()
    assert model.canvas.orientation == CanvasOrientation.PORTRAIT
    assert model.canvas.dimensions.width == 816


def test_toggle_grid_orientation(model) -> None:
    grid_id = model.create_grid().grid_id
    result = model.toggle_grid_orientation(grid_id)
    assert result.success
    assert model.get_grid(grid_id).orientation == GridOrientation.HORIZONTAL


# ============================================================================
# Layout and snapshots
# ============================================================================

def test_grid_layout_vertical(model) -> None:
    grid_id = _grid_with_notes(model, (0, 3))
    layout = model.grid_layout(grid_id)
    assert (layout.width, layout.height) == (416, 216)
    assert layout.fret_numbers == list(range(8))
    assert layout.string_labels == ["E", "A", "D", "G", "B", "E"]
    assert [m.fret for m in layout.markers] == [3, 5, 7]
    assert (layout.cells[0].row, layout.cells[0].column) == (1, 4)


def test_grid_layout_horizontal(model) -> None:
    grid_id = model.create_grid({"start_fret": 10, "end_fret": 14, "orientation": "horizontal"}).grid_id
    model.place_note(grid_id, 2, 12)
    layout = model.grid_layout(grid_id)
    assert (layout.width, layout.height) == (6 * 24 + 32, 5 * 48 + 32 + 40)
    assert (layout.cells[0].row, layout.cells[0].column) == (3, 3)
    assert layout.markers[0].type == MarkerType.DOUBLE
    assert model.grid_layout("missing") is None


def test_snapshot_is_independent(model) -> None:
    grid_id = _grid_with_notes(model, (0, 0))
    snap = model.snapshot()
    model.place_note(grid_id, 1, 1)
    assert len(snap.grids[grid_id].notes) == 1

    model.replace_all(snap)
    assert len(model.all_notes()) == 1
    snap.grids[grid_id].notes.clear()
    assert len(model.all_notes()) == 1


def test_clear_all_removes_grids_and_root(model) -> None:
    grid_id = _grid_with_notes(model, (0, 3), (1, 5))
    _grid_with_notes(model, (0, 5))
    model.set_root_note({"grid_id": grid_id, "note_id": f"{grid_id}_0_3"})
    model.toggle_orientation()
    assert model.intervals

    result = model.clear_all()
    assert result.success
    assert (result.action.removed_grids, result.action.removed_notes) == (2, 3)
    assert result.action.description == "Clear all grids"
    assert model.list_grids() == []
    assert model.root_note is None
    assert model.intervals == {}
    assert model.canvas.orientation == CanvasOrientation.LANDSCAPE

    assert model.clear_all().status == ResultStatus.NO_OP
