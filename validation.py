#!/usr/bin/env python3
"""
Fretboard Canvas - Validation Pipeline
======================================

Two pipelines, both answering with structured error dicts:

- validate_workspace: structural invariants of the in-memory model,
  checked before a save is allowed to produce a document.
- validate_document_structure: strict shape checks of a raw, parsed JSON
  document, run before any model is built from it.

A passing stage returns {"isError": False}. A failing stage returns
{"isError": True, "errorType", "message", "field", "suggestion"} and, for
workspace checks, the name of the violated "invariant".
"""

import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from fretboard_constants import (
    MIN_FRET, MAX_FRET, MIN_STRINGS, MAX_STRINGS, SEMITONES_PER_OCTAVE,
    is_valid_group_state
)
from fretboard_models import Workspace, make_note_id
from music_theory import is_valid_tuning, parse_note, pitch_at

logger = logging.getLogger(__name__)

VALID = {"isError": False}


def make_error(message: str, field: Optional[str] = None, suggestion: str = "",
               error_type: str = "validation_error", **extra: Any) -> Dict[str, Any]:
    """Build a structured error dict."""
    error = {
        "isError": True,
        "errorType": error_type,
        "message": message,
        "suggestion": suggestion,
    }
    if field is not None:
        error["field"] = field
    error.update(extra)
    return error


def validation_error_to_dict(exc: ValidationError, prefix: str = "") -> Dict[str, Any]:
    """Convert the first pydantic error into a structured error dict."""
    errors = exc.errors()
    if not errors:
        return make_error(str(exc), field=prefix or None)

    first = errors[0]
    path = ".".join(str(part) for part in first.get("loc", ()))
    if prefix:
        path = f"{prefix}.{path}" if path else prefix
    return make_error(
        f"Invalid value at '{path}': {first.get('msg', 'invalid')}",
        field=path or None,
        suggestion="Check the type and allowed values of this field",
        errorCount=len(errors),
    )


# ============================================================================
# Workspace Invariants
# ============================================================================

def validate_canvas(workspace: Workspace) -> Dict[str, Any]:
    """Canvas dimensions must be finite and positive."""
    dims = workspace.canvas.dimensions
    if not (math.isfinite(dims.width) and math.isfinite(dims.height)) \
            or dims.width <= 0 or dims.height <= 0:
        return make_error(
            f"Canvas dimensions must be finite and positive, got {dims.width}x{dims.height}",
            field="canvas.dimensions",
            invariant="canvas_dimensions",
        )
    return VALID


def validate_grid_bounds(workspace: Workspace) -> Dict[str, Any]:
    """0 <= start <= end <= 24 and 4 <= stringCount <= 12 for every grid."""
    for grid_id, grid in workspace.grids.items():
        if grid.id != grid_id:
            return make_error(
                f"Grid stored under '{grid_id}' carries id '{grid.id}'",
                field=f"grids.{grid_id}.id",
                invariant="grid_identity",
            )

        position = grid.position
        if not (math.isfinite(position.x) and math.isfinite(position.y)):
            return make_error(
                f"Grid '{grid_id}' position ({position.x}, {position.y}) is not finite",
                field=f"grids.{grid_id}.position",
                suggestion="Positions must be real pixel coordinates",
                invariant="grid_position",
            )

        start, end = grid.fret_range.start, grid.fret_range.end
        if not MIN_FRET <= start <= end <= MAX_FRET:
            return make_error(
                f"Grid '{grid_id}' fret range {start}-{end} is outside {MIN_FRET}-{MAX_FRET} or crossed",
                field=f"grids.{grid_id}.fretRange",
                suggestion=f"Use {MIN_FRET} <= startFret <= endFret <= {MAX_FRET}",
                invariant="fret_range",
            )

        if not MIN_STRINGS <= grid.string_count <= MAX_STRINGS:
            return make_error(
                f"Grid '{grid_id}' has {grid.string_count} strings",
                field=f"grids.{grid_id}.stringCount",
                suggestion=f"Use between {MIN_STRINGS} and {MAX_STRINGS} strings",
                invariant="string_count",
            )
    return VALID


def validate_tunings(workspace: Workspace) -> Dict[str, Any]:
    """One open-string pitch class per string, each in [0, 11]."""
    for grid_id, grid in workspace.grids.items():
        if len(grid.tuning) != grid.string_count:
            return make_error(
                f"Grid '{grid_id}' tuning has {len(grid.tuning)} entries for {grid.string_count} strings",
                field=f"grids.{grid_id}.tuning",
                suggestion="Provide exactly one tuning entry per string",
                invariant="tuning_length",
            )
        for index, string_tuning in enumerate(grid.tuning):
            if not 0 <= string_tuning.semitone < SEMITONES_PER_OCTAVE:
                return make_error(
                    f"Grid '{grid_id}' string {index + 1} semitone {string_tuning.semitone} is out of range",
                    field=f"grids.{grid_id}.tuning.{index}",
                    invariant="tuning_semitone",
                )
            named = parse_note(string_tuning.note_name)
            if named is None or named.semitone != string_tuning.semitone:
                return make_error(
                    f"Grid '{grid_id}' string {index + 1} is named {string_tuning.note_name!r} "
                    f"but has semitone {string_tuning.semitone}",
                    field=f"grids.{grid_id}.tuning.{index}",
                    invariant="tuning_name",
                )
    return VALID


def validate_note_coordinates(workspace: Workspace) -> Dict[str, Any]:
    """
    Note ids match their coordinates, coordinates lie inside the grid, and
    stored pitch classes agree with the tuning.
    """
    for grid_id, grid in workspace.grids.items():
        seen = set()
        for note_id, note in grid.notes.items():
            expected_id = make_note_id(grid_id, note.string_index, note.fret)
            if note_id != expected_id:
                return make_error(
                    f"Note '{note_id}' does not match its coordinate (expected '{expected_id}')",
                    field=f"grids.{grid_id}.notes.{note_id}",
                    invariant="note_identity",
                )

            coordinate = (note.string_index, note.fret)
            if coordinate in seen:
                return make_error(
                    f"Grid '{grid_id}' has two notes at string {note.string_index}, fret {note.fret}",
                    field=f"grids.{grid_id}.notes",
                    invariant="coordinate_uniqueness",
                )
            seen.add(coordinate)

            if not grid.has_coordinate(note.string_index, note.fret):
                return make_error(
                    f"Note '{note_id}' lies outside grid '{grid_id}'",
                    field=f"grids.{grid_id}.notes.{note_id}",
                    suggestion="Notes must sit within the grid's strings and fret range",
                    invariant="note_in_grid",
                )

            expected_pitch = pitch_at(grid.tuning[note.string_index], note.fret)
            if note.pitch_class != expected_pitch:
                return make_error(
                    f"Note '{note_id}' pitch {note.pitch_class.name} disagrees with tuning ({expected_pitch.name})",
                    field=f"grids.{grid_id}.notes.{note_id}.pitchClass",
                    invariant="note_pitch",
                )
    return VALID


def validate_root_note(workspace: Workspace) -> Dict[str, Any]:
    """A root note reference, if present, resolves to an existing note."""
    root = workspace.root_note
    if root is None:
        return VALID

    grid = workspace.grids.get(root.grid_id)
    if grid is None or root.note_id not in grid.notes:
        return make_error(
            f"Root note '{root.note_id}' on grid '{root.grid_id}' does not exist",
            field="rootNote",
            suggestion="Clear the root note or point it at a placed note",
            invariant="root_note_resolves",
        )
    return VALID


def validate_workspace(workspace: Workspace) -> Dict[str, Any]:
    """Invariant pipeline; the first failing stage wins."""
    stages = [
        validate_canvas,
        validate_grid_bounds,
        validate_tunings,
        validate_note_coordinates,
        validate_root_note,
    ]
    for stage in stages:
        result = stage(workspace)
        if result["isError"]:
            logger.warning(f"Workspace invariant failed: {result['message']}")
            return result

    logger.debug("All workspace invariants hold")
    return VALID


# ============================================================================
# Document Structure
# ============================================================================

def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_document_canvas(canvas: Any) -> Dict[str, Any]:
    if not isinstance(canvas, dict):
        return make_error(
            "Missing or invalid canvas configuration",
            field="canvas",
            suggestion="canvas must be an object with orientation, locked and dimensions",
        )

    for key in ["orientation", "locked", "dimensions"]:
        if key not in canvas:
            return make_error(
                f"Canvas missing required field: {key}",
                field=f"canvas.{key}",
                suggestion=f"Add '{key}' to the canvas object",
            )

    if not isinstance(canvas["locked"], bool):
        return make_error("canvas.locked must be a boolean", field="canvas.locked")

    dims = canvas["dimensions"]
    if not isinstance(dims, dict) or not _is_number(dims.get("width")) or not _is_number(dims.get("height")):
        return make_error(
            "canvas.dimensions must have numeric width and height",
            field="canvas.dimensions",
        )
    return VALID


def validate_document_grid(grid: Any, index: int) -> Dict[str, Any]:
    """Required keys and types of one grid entry."""
    where = f"grids[{index}]"
    if not isinstance(grid, dict):
        return make_error(f"Invalid grid structure at index {index}", field=where,
                          suggestion="Each grid must be an object")

    for key in ["id", "position", "config"]:
        if key not in grid:
            return make_error(
                f"Grid at index {index} missing required field: {key}",
                field=f"{where}.{key}",
                suggestion=f"Add '{key}' to the grid object",
            )

    if not isinstance(grid["id"], str) or not grid["id"]:
        return make_error(f"Grid at index {index} id must be a non-empty string", field=f"{where}.id")

    position = grid["position"]
    if not isinstance(position, dict) or not _is_number(position.get("x")) or not _is_number(position.get("y")):
        return make_error(
            f"Grid at index {index} position must have numeric x and y coordinates",
            field=f"{where}.position",
        )

    config = grid["config"]
    if not isinstance(config, dict):
        return make_error(f"Grid at index {index} config must be an object", field=f"{where}.config")

    for key in ["startFret", "endFret", "stringCount", "tuning", "orientation"]:
        if key not in config:
            return make_error(
                f"Grid at index {index} config missing required field: {key}",
                field=f"{where}.config.{key}",
                suggestion=f"Add '{key}' to the grid config",
            )

    for key in ["startFret", "endFret", "stringCount"]:
        if not _is_integer(config[key]):
            return make_error(
                f"Grid at index {index} config.{key} must be an integer",
                field=f"{where}.config.{key}",
            )

    if not isinstance(config["tuning"], list):
        return make_error(
            f"Grid at index {index} tuning must be an array",
            field=f"{where}.config.tuning",
            suggestion="tuning is a list like [{\"note\": \"E\", \"semitone\": 4}, ...]",
        )

    if not is_valid_tuning(config["tuning"]):
        return make_error(
            f"Grid at index {index} tuning entries need a note name and a semitone from 0 to 11",
            field=f"{where}.config.tuning",
        )

    notes = grid.get("notes", {})
    if not isinstance(notes, dict):
        return make_error(
            f"Grid at index {index} notes must be an object keyed by note id",
            field=f"{where}.notes",
        )

    for note_id, note in notes.items():
        if isinstance(note, dict) and not is_valid_group_state(note.get("groupState")):
            return make_error(
                f"Note '{note_id}' has unknown groupState {note.get('groupState')!r}",
                field=f"{where}.notes.{note_id}.groupState",
                suggestion="Use chromatic, group-1, group-2, group-3 or group-4",
            )
    return VALID


def validate_document_structure(data: Any) -> Dict[str, Any]:
    """
    Strict structural validation of a parsed document.

    Checks required top-level keys, per-grid required keys, numeric types,
    array types for tuning, unique grid ids and the root note shape.
    """
    if not isinstance(data, dict):
        return make_error("File must contain a JSON object", suggestion="Wrap the document in {...}")

    for key in ["version", "canvas", "grids"]:
        if key not in data:
            return make_error(
                f"Missing required field: {key}",
                field=key,
                suggestion=f"Add '{key}' property to root object",
            )

    if not isinstance(data["version"], str) or not data["version"]:
        return make_error("Missing version information", field="version",
                          suggestion="version must be a string such as \"1.0\"")

    if "timestamp" in data and not _is_number(data["timestamp"]):
        return make_error("timestamp must be a number", field="timestamp")

    canvas_result = validate_document_canvas(data["canvas"])
    if canvas_result["isError"]:
        return canvas_result

    grids = data["grids"]
    if not isinstance(grids, list):
        return make_error("Missing or invalid grids array", field="grids",
                          suggestion="grids must be an array (it can be empty)")

    seen_ids: List[str] = []
    for index, grid in enumerate(grids):
        grid_result = validate_document_grid(grid, index)
        if grid_result["isError"]:
            return grid_result
        if grid["id"] in seen_ids:
            return make_error(f"Duplicate grid id '{grid['id']}'", field=f"grids[{index}].id")
        seen_ids.append(grid["id"])

    root = data.get("rootNote")
    if root is not None:
        if not isinstance(root, dict) or not isinstance(root.get("gridId"), str) \
                or not isinstance(root.get("noteId"), str):
            return make_error(
                "rootNote must be null or an object with string gridId and noteId",
                field="rootNote",
            )

    if "intervals" in data and not isinstance(data["intervals"], dict):
        return make_error("intervals must be an object", field="intervals")

    logger.debug(f"Document structure valid ({len(grids)} grids)")
    return VALID
