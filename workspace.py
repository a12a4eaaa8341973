#!/usr/bin/env python3
"""
Fretboard Canvas - Workspace Model
==================================

The canonical entity graph (canvas, grids, notes, root note) with its
mutators and queries.

Mutators never raise for editing problems. Out-of-range numbers are
clamped, and every other refusal comes back as an ActionResult status
(coordinate occupied, not found, locked, no-op, invalid) with the
workspace left untouched.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from fretboard_constants import (
    GROUP_CYCLE, OCTAVE_DISTANCE, IntervalKind, CanvasOrientation,
    GridOrientation, MIN_FRET, MAX_FRET, MIN_STRINGS, MAX_STRINGS,
    DEFAULT_STRING_COUNT, FRET_SPACING_PX, STRING_SPACING_PX, GRID_PADDING_PX,
    CONTROLLER_HEIGHT_PX, GRID_STAGGER_PX, GRID_STAGGER_COLUMNS
)
from fretboard_models import (
    Workspace, CanvasConfig, Grid, GridConfig, FretRange, Note, NoteRef,
    Interval, Position, Dimensions, GridLayout, CellPosition, StringTuning,
    make_note_id
)
from fretboard_actions import (
    ActionResult, ResultStatus, GridCreateAction, GridDeleteAction,
    GridMoveAction, GridConfigChangeAction, GridOrientationChangeAction,
    StringTuningChangeAction, NotePlaceAction, NoteRemoveAction,
    NoteGroupChangeAction, RootNoteSetAction, RootNoteClearAction,
    CanvasOrientationChangeAction, CanvasLockToggleAction, CanvasClearAction
)
from music_theory import (
    pitch_at, parse_note, standard_tuning, tuning_from_names, interval,
    fret_markers
)
from validation import make_error, validation_error_to_dict

logger = logging.getLogger(__name__)

ConfigInput = Union[GridConfig, Dict[str, Any], None]


def default_grid_id() -> str:
    return f"grid_{uuid.uuid4().hex}"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def clamp_fret(value: int) -> int:
    return clamp(value, MIN_FRET, MAX_FRET)


def clamp_string_count(value: int) -> int:
    return clamp(value, MIN_STRINGS, MAX_STRINGS)


def grid_size(fret_range: FretRange, string_count: int,
              orientation: GridOrientation) -> Tuple[float, float]:
    """Bounding box (width, height) of a grid in pixels."""
    fret_extent = fret_range.fret_count * FRET_SPACING_PX + 2 * GRID_PADDING_PX
    string_extent = string_count * STRING_SPACING_PX + 2 * GRID_PADDING_PX
    if orientation == GridOrientation.VERTICAL:
        return fret_extent, string_extent + CONTROLLER_HEIGHT_PX
    return string_extent, fret_extent + CONTROLLER_HEIGHT_PX


class WorkspaceModel:
    """
    Owns one Workspace and keeps its derived interval map current.

    Args:
        workspace: Initial state (deep-copied); a fresh empty workspace if None
        id_factory: Callable producing new grid ids
    """

    def __init__(self, workspace: Optional[Workspace] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self._workspace = workspace.copy_deep() if workspace is not None else Workspace()
        self._id_factory = id_factory or default_grid_id
        self._intervals: Dict[str, Interval] = {}
        self.recompute_intervals()

    # ========================================================================
    # Queries
    # ========================================================================

    @property
    def canvas(self) -> CanvasConfig:
        return self._workspace.canvas.model_copy(deep=True)

    @property
    def is_locked(self) -> bool:
        return self._workspace.canvas.locked

    @property
    def root_note(self) -> Optional[NoteRef]:
        root = self._workspace.root_note
        return root.model_copy() if root is not None else None

    @property
    def intervals(self) -> Dict[str, Interval]:
        return dict(self._intervals)

    def list_grids(self) -> List[Grid]:
        """Grids in creation order."""
        return [grid.model_copy(deep=True) for grid in self._workspace.grids.values()]

    def get_grid(self, grid_id: str) -> Optional[Grid]:
        grid = self._workspace.grids.get(grid_id)
        return grid.model_copy(deep=True) if grid is not None else None

    def list_notes(self, grid_id: str) -> List[Note]:
        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return []
        return [note.model_copy(deep=True) for note in grid.notes.values()]

    def all_notes(self) -> Dict[str, Note]:
        """Every note in the workspace, keyed by note id."""
        notes = {}
        for grid in self._workspace.grids.values():
            for note_id, note in grid.notes.items():
                notes[note_id] = note.model_copy(deep=True)
        return notes

    def snapshot(self) -> Workspace:
        """Deep copy of the full state, safe to keep in history."""
        return self._workspace.copy_deep()

    def grid_layout(self, grid_id: str) -> Optional[GridLayout]:
        """Geometry of a grid, recomputed from its configuration."""
        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return None

        start, end = grid.fret_range.start, grid.fret_range.end
        width, height = grid_size(grid.fret_range, grid.string_count, grid.orientation)

        cells = []
        for note_id, note in grid.notes.items():
            string_axis = note.string_index + 1
            fret_axis = note.fret - start + 1
            if grid.orientation == GridOrientation.VERTICAL:
                row, column = string_axis, fret_axis
            else:
                row, column = fret_axis, string_axis
            cells.append(CellPosition(note_id=note_id, row=row, column=column))

        return GridLayout(
            grid_id=grid.id,
            width=width,
            height=height,
            fret_numbers=list(range(start, end + 1)),
            string_labels=[t.note_name for t in grid.tuning],
            markers=fret_markers(start, end),
            cells=cells,
        )

    def replace_all(self, workspace: Workspace) -> None:
        """Swap in a whole new state (load, undo, redo)."""
        self._workspace = workspace.copy_deep()
        self.recompute_intervals()
        logger.debug(f"Workspace replaced ({len(self._workspace.grids)} grids)")

    # ========================================================================
    # Intervals
    # ========================================================================

    def _resolve_root(self) -> Optional[Note]:
        root = self._workspace.root_note
        if root is None:
            return None
        grid = self._workspace.grids.get(root.grid_id)
        if grid is None:
            return None
        return grid.notes.get(root.note_id)

    def recompute_intervals(self) -> Dict[str, Interval]:
        """
        Rebuild the note-id to Interval map relative to the root note.

        The root itself gets no entry. Another note with the root's pitch
        class is an octave (distance 12); notes at unrecognized distances
        get no entry.
        """
        self._intervals = {}
        root = self._resolve_root()
        if root is None:
            return self.intervals

        root_id = self._workspace.root_note.note_id
        for grid in self._workspace.grids.values():
            for note_id, note in grid.notes.items():
                if note_id == root_id:
                    continue
                if note.pitch_class.semitone == root.pitch_class.semitone:
                    self._intervals[note_id] = Interval(
                        note_id=note_id, kind=IntervalKind.OCTAVE,
                        semitone_distance=OCTAVE_DISTANCE)
                    continue
                classified = interval(root.pitch_class, note.pitch_class)
                if classified is not None:
                    kind, distance = classified
                    self._intervals[note_id] = Interval(
                        note_id=note_id, kind=kind, semitone_distance=distance)
        return self.intervals

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _locked(self, operation: str, **kwargs) -> ActionResult:
        logger.warning(f"Canvas is locked; refusing {operation}")
        return ActionResult.fail(ResultStatus.LOCKED, "Canvas is locked", **kwargs)

    def _grid_not_found(self, grid_id: str) -> ActionResult:
        logger.debug(f"Grid not found: {grid_id}")
        return ActionResult.fail(ResultStatus.NOT_FOUND, f"Grid '{grid_id}' not found",
                                 grid_id=grid_id)

    def _locate_note(self, note_id: str) -> Tuple[Optional[Grid], Optional[Note]]:
        for grid in self._workspace.grids.values():
            note = grid.notes.get(note_id)
            if note is not None:
                return grid, note
        return None, None

    def _clear_root_if(self, grid_id: str, note_ids: Optional[List[str]] = None) -> bool:
        """Clear the root reference if it points into the grid (or one of note_ids)."""
        root = self._workspace.root_note
        if root is None or root.grid_id != grid_id:
            return False
        if note_ids is not None and root.note_id not in note_ids:
            return False
        self._workspace.root_note = None
        logger.info(f"Root note {root.note_id} cleared")
        return True

    def _clamp_position(self, position: Position, grid: Grid) -> Position:
        """Keep a grid's bounding box inside the canvas."""
        width, height = grid_size(grid.fret_range, grid.string_count, grid.orientation)
        dims = self._workspace.canvas.dimensions
        max_x = max(0.0, dims.width - width)
        max_y = max(0.0, dims.height - height)
        return Position(
            x=min(max(position.x, 0.0), max_x),
            y=min(max(position.y, 0.0), max_y),
        )

    def _parse_config(self, config: ConfigInput) -> Tuple[Optional[GridConfig], Optional[ActionResult]]:
        if config is None:
            return GridConfig(), None
        if isinstance(config, GridConfig):
            return config, None
        try:
            return GridConfig.model_validate(config), None
        except ValidationError as e:
            error = validation_error_to_dict(e, prefix="config")
            logger.warning(f"Invalid grid config: {error['message']}")
            return None, ActionResult.fail(ResultStatus.INVALID, error["message"], error=error)

    # ========================================================================
    # Grid Mutators
    # ========================================================================

    def create_grid(self, config: ConfigInput = None) -> ActionResult:
        """
        Add a grid. Defaults: frets 0-7, six strings in standard tuning,
        vertical, staggered below and to the right of earlier grids.
        """
        if self.is_locked:
            return self._locked("create_grid")

        cfg, failure = self._parse_config(config)
        if failure is not None:
            return failure

        fret_range = FretRange()
        if cfg.start_fret is not None:
            fret_range.start = clamp_fret(cfg.start_fret)
        if cfg.end_fret is not None:
            fret_range.end = clamp_fret(cfg.end_fret)
        if fret_range.start > fret_range.end:
            if cfg.start_fret is not None:
                fret_range.end = fret_range.start
            else:
                fret_range.start = fret_range.end

        string_count = DEFAULT_STRING_COUNT
        if cfg.string_count is not None:
            string_count = clamp_string_count(cfg.string_count)
        elif cfg.tuning is not None:
            string_count = clamp_string_count(len(cfg.tuning))

        if cfg.tuning is not None:
            if len(cfg.tuning) != string_count:
                error = make_error(
                    f"Tuning has {len(cfg.tuning)} entries for {string_count} strings",
                    field="config.tuning",
                    suggestion="Provide one note name per string, low string first",
                )
                return ActionResult.fail(ResultStatus.INVALID, error["message"], error=error)
            tuning = tuning_from_names(cfg.tuning)
        else:
            tuning = standard_tuning(string_count)

        grid_id = self._id_factory()
        if grid_id in self._workspace.grids:
            error = make_error(f"Grid id '{grid_id}' already exists", field="id")
            return ActionResult.fail(ResultStatus.INVALID, error["message"], error=error)

        count = len(self._workspace.grids)
        grid = Grid(
            id=grid_id,
            fret_range=fret_range,
            string_count=string_count,
            tuning=tuning,
            orientation=cfg.orientation or GridOrientation.VERTICAL,
        )
        requested = cfg.position or Position(
            x=(count % GRID_STAGGER_COLUMNS) * GRID_STAGGER_PX,
            y=(count // GRID_STAGGER_COLUMNS) * GRID_STAGGER_PX,
        )
        grid.position = self._clamp_position(requested, grid)

        self._workspace.grids[grid_id] = grid
        logger.info(f"Created grid {grid_id} (frets {fret_range.start}-{fret_range.end}, "
                    f"{string_count} strings)")
        return ActionResult.ok(GridCreateAction(grid_id=grid_id), grid_id=grid_id)

    def update_grid_config(self, grid_id: str, partial: ConfigInput) -> ActionResult:
        """
        Apply a partial configuration to a grid and re-layout its notes.

        Values are clamped. If the new bounds cross, the bound that was not
        changed snaps to the one that was (end snaps to start when both
        changed). A string count change regenerates standard tuning unless
        an explicit tuning is supplied. Notes that no longer fit are dropped,
        along with the root reference if it pointed at one of them.
        """
        if self.is_locked:
            return self._locked("update_grid_config", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        cfg, failure = self._parse_config(partial)
        if failure is not None:
            failure.grid_id = grid_id
            return failure

        start = clamp_fret(cfg.start_fret) if cfg.start_fret is not None else grid.fret_range.start
        end = clamp_fret(cfg.end_fret) if cfg.end_fret is not None else grid.fret_range.end
        if start > end:
            if cfg.start_fret is not None:
                end = start
            else:
                start = end

        string_count = grid.string_count
        if cfg.string_count is not None:
            string_count = clamp_string_count(cfg.string_count)

        if cfg.tuning is not None:
            if len(cfg.tuning) != string_count:
                error = make_error(
                    f"Tuning has {len(cfg.tuning)} entries for {string_count} strings",
                    field="config.tuning",
                    suggestion="Provide one note name per string, low string first",
                )
                return ActionResult.fail(ResultStatus.INVALID, error["message"],
                                         grid_id=grid_id, error=error)
            tuning = tuning_from_names(cfg.tuning)
        elif string_count != grid.string_count:
            tuning = standard_tuning(string_count)
        else:
            tuning = [t.model_copy() for t in grid.tuning]

        orientation = cfg.orientation or grid.orientation
        position = cfg.position or grid.position

        updated = Grid(
            id=grid.id,
            position=position,
            fret_range=FretRange(start=start, end=end),
            string_count=string_count,
            tuning=tuning,
            orientation=orientation,
        )

        dropped = []
        for note_id, note in grid.notes.items():
            if not updated.has_coordinate(note.string_index, note.fret):
                dropped.append(note_id)
                continue
            relaid = note.model_copy(deep=True)
            relaid.pitch_class = pitch_at(tuning[note.string_index], note.fret)
            updated.notes[note_id] = relaid

        updated.position = self._clamp_position(position, updated)

        if updated == grid:
            logger.debug(f"Grid {grid_id} configuration unchanged")
            return ActionResult.fail(ResultStatus.NO_OP, "Configuration unchanged", grid_id=grid_id)

        self._workspace.grids[grid_id] = updated
        if dropped:
            logger.info(f"Grid {grid_id} re-layout dropped {len(dropped)} notes")
            self._clear_root_if(grid_id, dropped)
        self.recompute_intervals()

        logger.info(f"Updated grid {grid_id}: frets {start}-{end}, {string_count} strings")
        action = GridConfigChangeAction(
            grid_id=grid_id, start_fret=start, end_fret=end,
            string_count=string_count, dropped_notes=dropped,
        )
        return ActionResult.ok(action, grid_id=grid_id)

    def set_string_tuning(self, grid_id: str, string_index: int, note_name: str) -> ActionResult:
        """Retune one string and re-derive the pitches of its notes."""
        if self.is_locked:
            return self._locked("set_string_tuning", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        if not 0 <= string_index < grid.string_count:
            return ActionResult.fail(
                ResultStatus.NOT_FOUND,
                f"String {string_index} does not exist on grid '{grid_id}'",
                grid_id=grid_id,
            )

        parsed = parse_note(note_name)
        if parsed is None:
            error = make_error(f"Unknown note name '{note_name}'", field="note_name",
                               suggestion="Use one of C, C#, D, D#, E, F, F#, G, G#, A, A#, B")
            return ActionResult.fail(ResultStatus.INVALID, error["message"],
                                     grid_id=grid_id, error=error)

        if grid.tuning[string_index].semitone == parsed.semitone:
            return ActionResult.fail(ResultStatus.NO_OP, "String already has that tuning",
                                     grid_id=grid_id)

        new_tuning = StringTuning(note_name=parsed.name, semitone=parsed.semitone)
        grid.tuning[string_index] = new_tuning
        for note in grid.notes.values():
            if note.string_index == string_index:
                note.pitch_class = pitch_at(new_tuning, note.fret)
        self.recompute_intervals()

        logger.info(f"Grid {grid_id} string {string_index + 1} tuned to {parsed.name}")
        action = StringTuningChangeAction(grid_id=grid_id, string_index=string_index,
                                          note_name=parsed.name)
        return ActionResult.ok(action, grid_id=grid_id)

    def move_grid(self, grid_id: str, position: Union[Position, Dict[str, float]]) -> ActionResult:
        """Move a grid; the position is clamped so the grid stays on the page."""
        if self.is_locked:
            return self._locked("move_grid", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        if isinstance(position, dict):
            try:
                position = Position(**position)
            except ValidationError as e:
                error = validation_error_to_dict(e, prefix="position")
                logger.warning(f"Invalid position for grid {grid_id}: {error['message']}")
                return ActionResult.fail(ResultStatus.INVALID, error["message"],
                                         grid_id=grid_id, error=error)
        clamped = self._clamp_position(position, grid)
        if clamped == grid.position:
            return ActionResult.fail(ResultStatus.NO_OP, "Grid already at that position",
                                     grid_id=grid_id)

        grid.position = clamped
        logger.info(f"Moved grid {grid_id} to ({clamped.x:g}, {clamped.y:g})")
        return ActionResult.ok(GridMoveAction(grid_id=grid_id, position=clamped), grid_id=grid_id)

    def remove_grid(self, grid_id: str) -> ActionResult:
        """Delete a grid with its notes; clears the root if it lived there."""
        if self.is_locked:
            return self._locked("remove_grid", grid_id=grid_id)

        grid = self._workspace.grids.pop(grid_id, None)
        if grid is None:
            return self._grid_not_found(grid_id)

        self._clear_root_if(grid_id)
        self.recompute_intervals()

        logger.info(f"Removed grid {grid_id} ({len(grid.notes)} notes)")
        action = GridDeleteAction(grid_id=grid_id, removed_notes=len(grid.notes))
        return ActionResult.ok(action, grid_id=grid_id)

    def toggle_grid_orientation(self, grid_id: str) -> ActionResult:
        if self.is_locked:
            return self._locked("toggle_grid_orientation", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        if grid.orientation == GridOrientation.VERTICAL:
            grid.orientation = GridOrientation.HORIZONTAL
        else:
            grid.orientation = GridOrientation.VERTICAL
        grid.position = self._clamp_position(grid.position, grid)

        logger.info(f"Grid {grid_id} orientation is now {grid.orientation.value}")
        action = GridOrientationChangeAction(grid_id=grid_id, orientation=grid.orientation)
        return ActionResult.ok(action, grid_id=grid_id)

    # ========================================================================
    # Note Mutators
    # ========================================================================

    def place_note(self, grid_id: str, string_index: int, fret: int) -> ActionResult:
        """Insert a chromatic note at an empty coordinate."""
        if self.is_locked:
            return self._locked("place_note", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        if not grid.has_coordinate(string_index, fret):
            return ActionResult.fail(
                ResultStatus.NOT_FOUND,
                f"String {string_index}, fret {fret} is outside grid '{grid_id}'",
                grid_id=grid_id,
            )

        note_id = make_note_id(grid_id, string_index, fret)
        if note_id in grid.notes:
            logger.debug(f"Coordinate occupied: {note_id}")
            return ActionResult.fail(ResultStatus.COORDINATE_OCCUPIED,
                                     f"A note already exists at {note_id}",
                                     grid_id=grid_id, note_id=note_id)

        pitch = pitch_at(grid.tuning[string_index], fret)
        grid.notes[note_id] = Note(pitch_class=pitch, string_index=string_index, fret=fret)
        self.recompute_intervals()

        logger.info(f"Placed {pitch.name} at {note_id}")
        action = NotePlaceAction(grid_id=grid_id, note_id=note_id, string_index=string_index,
                                 fret=fret, note_name=pitch.name)
        return ActionResult.ok(action, grid_id=grid_id, note_id=note_id)

    def remove_note(self, note_id: str) -> ActionResult:
        if self.is_locked:
            return self._locked("remove_note", note_id=note_id)

        grid, note = self._locate_note(note_id)
        if note is None:
            return ActionResult.fail(ResultStatus.NOT_FOUND, f"Note '{note_id}' not found",
                                     note_id=note_id)

        del grid.notes[note_id]
        self._clear_root_if(grid.id, [note_id])
        self.recompute_intervals()

        logger.info(f"Removed note {note_id}")
        action = NoteRemoveAction(grid_id=grid.id, note_id=note_id, note_name=note.pitch_class.name)
        return ActionResult.ok(action, grid_id=grid.id, note_id=note_id)

    def cycle_note_group(self, note_id: str) -> ActionResult:
        """chromatic -> group-1 -> ... -> group-4 -> removed."""
        if self.is_locked:
            return self._locked("cycle_note_group", note_id=note_id)

        grid, note = self._locate_note(note_id)
        if note is None:
            return ActionResult.fail(ResultStatus.NOT_FOUND, f"Note '{note_id}' not found",
                                     note_id=note_id)

        position = GROUP_CYCLE.index(note.group_state)
        if position == len(GROUP_CYCLE) - 1:
            return self.remove_note(note_id)

        note.group_state = GROUP_CYCLE[position + 1]
        logger.info(f"Note {note_id} moved to {note.group_state.value}")
        action = NoteGroupChangeAction(grid_id=grid.id, note_id=note_id, group_state=note.group_state)
        return ActionResult.ok(action, grid_id=grid.id, note_id=note_id)

    def click(self, grid_id: str, string_index: int, fret: int) -> ActionResult:
        """Empty coordinate places a note; an occupied one cycles its group."""
        if self.is_locked:
            return self._locked("click", grid_id=grid_id)

        grid = self._workspace.grids.get(grid_id)
        if grid is None:
            return self._grid_not_found(grid_id)

        existing = grid.note_at(string_index, fret)
        if existing is None:
            return self.place_note(grid_id, string_index, fret)
        return self.cycle_note_group(make_note_id(grid_id, string_index, fret))

    # ========================================================================
    # Root Note
    # ========================================================================

    def set_root_note(self, ref: Union[NoteRef, Dict[str, str], None]) -> ActionResult:
        """
        Point the root at an existing note, or clear it with None.

        An unresolvable reference leaves the current root in place.
        """
        if self.is_locked:
            return self._locked("set_root_note")

        if ref is None:
            if self._workspace.root_note is None:
                self.recompute_intervals()
                return ActionResult.fail(ResultStatus.NO_OP, "No root note to clear")
            self._workspace.root_note = None
            self.recompute_intervals()
            logger.info("Root note cleared")
            return ActionResult.ok(RootNoteClearAction())

        if isinstance(ref, dict):
            try:
                ref = NoteRef(grid_id=ref.get("grid_id", ref.get("gridId")),
                              note_id=ref.get("note_id", ref.get("noteId")))
            except ValidationError as e:
                error = validation_error_to_dict(e, prefix="rootNote")
                return ActionResult.fail(ResultStatus.INVALID, error["message"], error=error)

        grid = self._workspace.grids.get(ref.grid_id)
        if grid is None or ref.note_id not in grid.notes:
            self.recompute_intervals()
            return ActionResult.fail(ResultStatus.NOT_FOUND,
                                     f"Note '{ref.note_id}' not found on grid '{ref.grid_id}'",
                                     grid_id=ref.grid_id, note_id=ref.note_id)

        if self._workspace.root_note == ref:
            self.recompute_intervals()
            return ActionResult.fail(ResultStatus.NO_OP, "Note is already the root",
                                     grid_id=ref.grid_id, note_id=ref.note_id)

        self._workspace.root_note = None
        self._workspace.root_note = NoteRef(grid_id=ref.grid_id, note_id=ref.note_id)
        self.recompute_intervals()

        logger.info(f"Root note set to {ref.note_id} ({len(self._intervals)} intervals)")
        action = RootNoteSetAction(grid_id=ref.grid_id, note_id=ref.note_id)
        return ActionResult.ok(action, grid_id=ref.grid_id, note_id=ref.note_id)

    def clear_root_note(self) -> ActionResult:
        return self.set_root_note(None)

    # ========================================================================
    # Canvas Mutators
    # ========================================================================

    def toggle_lock(self) -> ActionResult:
        """Always allowed, even while locked."""
        canvas = self._workspace.canvas
        canvas.locked = not canvas.locked
        logger.info(f"Canvas {'locked' if canvas.locked else 'unlocked'}")
        return ActionResult.ok(CanvasLockToggleAction(locked=canvas.locked))

    def toggle_orientation(self) -> ActionResult:
        """Swap portrait/landscape and its dimensions, then re-clamp grids."""
        if self.is_locked:
            return self._locked("toggle_orientation")

        canvas = self._workspace.canvas
        if canvas.orientation == CanvasOrientation.PORTRAIT:
            canvas.orientation = CanvasOrientation.LANDSCAPE
        else:
            canvas.orientation = CanvasOrientation.PORTRAIT
        canvas.dimensions = Dimensions(width=canvas.dimensions.height,
                                       height=canvas.dimensions.width)

        for grid in self._workspace.grids.values():
            grid.position = self._clamp_position(grid.position, grid)

        logger.info(f"Canvas orientation is now {canvas.orientation.value}")
        return ActionResult.ok(CanvasOrientationChangeAction(orientation=canvas.orientation))

    def clear_all(self) -> ActionResult:
        """Remove every grid and the root note; canvas settings are kept."""
        if self.is_locked:
            return self._locked("clear_all")

        grids = self._workspace.grids
        if not grids and self._workspace.root_note is None:
            return ActionResult.fail(ResultStatus.NO_OP, "Canvas is already empty")

        removed_notes = sum(len(grid.notes) for grid in grids.values())
        action = CanvasClearAction(removed_grids=len(grids), removed_notes=removed_notes)
        grids.clear()
        self._workspace.root_note = None
        self.recompute_intervals()

        logger.info(f"Cleared canvas ({action.removed_grids} grids, {removed_notes} notes)")
        return ActionResult.ok(action)
