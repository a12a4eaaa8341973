#!/usr/bin/env python3
"""
Fretboard Canvas - Document Serializer
======================================

Converts between the in-memory Workspace and the versioned JSON document.

Saving checks the workspace invariants first and produces nothing if one is
violated. Loading parses, checks structure, validates the typed document
model, rebuilds a Workspace and checks its invariants. Any failure raises
DocumentValidationError (parse_and_validate) or comes back as a failed
LoadResult (load). The live workspace is never touched here.
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from fretboard_constants import (
    SCHEMA_VERSION, DOCUMENT_FILENAME_PREFIX, BACKUP_FILENAME_PREFIX, DOCUMENT_EXTENSION,
    CanvasOrientation, GridOrientation, GroupState
)
from fretboard_models import (
    Workspace, CanvasConfig, Dimensions, Grid, Position, FretRange,
    StringTuning, Note, PitchClass, NoteRef, FretboardDocument,
    DocumentResponse, LoadResult
)
from validation import (
    make_error, validation_error_to_dict, validate_document_structure,
    validate_workspace
)
from workspace import WorkspaceModel

logger = logging.getLogger(__name__)


class DocumentValidationError(ValueError):
    """A document could not become a workspace; `error` holds the details."""

    def __init__(self, error: Dict[str, Any]):
        self.error = error
        super().__init__(error.get("message", "Invalid document"))


class WorkspaceInvariantError(ValueError):
    """The in-memory workspace violates a structural invariant."""

    def __init__(self, error: Dict[str, Any]):
        self.error = error
        self.invariant = error.get("invariant")
        super().__init__(error.get("message", "Workspace invariant violated"))


def _now_ms() -> int:
    return int(time.time() * 1000)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not allowed")


class Serializer:
    """
    Document codec for one schema version.

    Args:
        schema_version: Version written to, and expected from, documents
        clock: Returns the current time in epoch milliseconds
    """

    def __init__(self, schema_version: str = SCHEMA_VERSION,
                 clock: Optional[Callable[[], int]] = None):
        self.schema_version = schema_version
        self._clock = clock or _now_ms

    # ========================================================================
    # Workspace -> document
    # ========================================================================

    def to_document(self, workspace: Workspace) -> Dict[str, Any]:
        """Build the JSON-ready document dict, derived intervals included."""
        timestamp = self._clock()
        intervals = WorkspaceModel(workspace).intervals

        grids = []
        for grid in workspace.grids.values():
            notes = {}
            for note_id, note in grid.notes.items():
                notes[note_id] = {
                    "name": note.pitch_class.name,
                    "semitone": note.pitch_class.semitone,
                    "isNatural": note.pitch_class.is_natural,
                    "stringIndex": note.string_index,
                    "fret": note.fret,
                    "groupState": note.group_state.value,
                }
            grids.append({
                "id": grid.id,
                "position": {"x": grid.position.x, "y": grid.position.y},
                "config": {
                    "startFret": grid.fret_range.start,
                    "endFret": grid.fret_range.end,
                    "stringCount": grid.string_count,
                    "tuning": [{"note": t.note_name, "semitone": t.semitone} for t in grid.tuning],
                    "orientation": grid.orientation.value,
                },
                "notes": notes,
            })

        root = workspace.root_note
        canvas = workspace.canvas
        return {
            "version": self.schema_version,
            "timestamp": timestamp,
            "canvas": {
                "orientation": canvas.orientation.value,
                "locked": canvas.locked,
                "dimensions": {
                    "width": canvas.dimensions.width,
                    "height": canvas.dimensions.height,
                },
            },
            "grids": grids,
            "rootNote": {"gridId": root.grid_id, "noteId": root.note_id} if root else None,
            "intervals": {
                note_id: {"type": iv.kind.value, "distance": iv.semitone_distance}
                for note_id, iv in intervals.items()
            },
            "settings": {
                "version": self.schema_version,
                "timestamp": timestamp,
            },
        }

    def save(self, workspace: Workspace) -> DocumentResponse:
        """Serialize a workspace; an invariant violation yields no content."""
        result = validate_workspace(workspace)
        if result["isError"]:
            logger.error(f"Refusing to save: {result['message']}")
            return DocumentResponse(success=False, error=result)

        content = json.dumps(self.to_document(workspace), indent=2, allow_nan=False)
        logger.info(f"Serialized workspace ({len(workspace.grids)} grids, {len(content)} bytes)")
        return DocumentResponse(success=True, content=content)

    def to_json(self, workspace: Workspace) -> str:
        """Like save(), but raises WorkspaceInvariantError on a violation."""
        response = self.save(workspace)
        if not response.success:
            raise WorkspaceInvariantError(response.error)
        return response.content

    # ========================================================================
    # Document -> workspace
    # ========================================================================

    def parse_and_validate(self, raw: Union[str, bytes, Dict[str, Any]]) -> Tuple[Workspace, List[Dict[str, Any]]]:
        """
        Turn raw document bytes (or an already-parsed dict) into a Workspace.

        Returns:
            (workspace, warnings)

        Raises:
            DocumentValidationError: on malformed JSON, structure, types or
                invariants
        """
        if isinstance(raw, (str, bytes)):
            data = self._parse_json(raw)
        else:
            data = raw

        structure = validate_document_structure(data)
        if structure["isError"]:
            raise DocumentValidationError(structure)

        try:
            document = FretboardDocument.model_validate(data)
        except ValidationError as e:
            raise DocumentValidationError(validation_error_to_dict(e))

        workspace = self._build_workspace(document)

        invariants = validate_workspace(workspace)
        if invariants["isError"]:
            raise DocumentValidationError(invariants)

        warnings = []
        if document.version != self.schema_version:
            message = (f"Document version {document.version} may not be fully compatible "
                       f"with {self.schema_version}")
            logger.warning(message)
            warnings.append({"warningType": "version_warning", "message": message})

        return workspace, warnings

    def load(self, raw: Union[str, bytes, Dict[str, Any]]) -> LoadResult:
        try:
            workspace, warnings = self.parse_and_validate(raw)
        except DocumentValidationError as e:
            logger.error(f"Document rejected: {e.error['message']}")
            return LoadResult(success=False, error=e.error)

        logger.info(f"Loaded document with {len(workspace.grids)} grids")
        return LoadResult(success=True, workspace=workspace, warnings=warnings)

    def _parse_json(self, raw: Union[str, bytes]) -> Any:
        try:
            return json.loads(raw, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise DocumentValidationError(make_error(
                f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}",
                suggestion="Check for missing commas, quotes or brackets",
                error_type="json_error",
            ))
        except UnicodeDecodeError as e:
            raise DocumentValidationError(make_error(
                f"Document is not valid UTF-8: {e}",
                error_type="json_error",
            ))
        except ValueError as e:
            raise DocumentValidationError(make_error(
                f"Invalid JSON: {e}",
                suggestion="Use finite numbers only; NaN and Infinity have no JSON form",
                error_type="json_error",
            ))

    def _build_workspace(self, document: FretboardDocument) -> Workspace:
        canvas = CanvasConfig(
            orientation=CanvasOrientation(document.canvas.orientation),
            locked=document.canvas.locked,
            dimensions=Dimensions(
                width=document.canvas.dimensions.width,
                height=document.canvas.dimensions.height,
            ),
        )

        grids = {}
        for doc_grid in document.grids:
            config = doc_grid.config
            notes = {}
            for note_id, doc_note in doc_grid.notes.items():
                notes[note_id] = Note(
                    pitch_class=PitchClass(
                        name=doc_note.name,
                        semitone=doc_note.semitone,
                        is_natural=doc_note.isNatural,
                    ),
                    string_index=doc_note.stringIndex,
                    fret=doc_note.fret,
                    group_state=GroupState(doc_note.groupState),
                )
            grids[doc_grid.id] = Grid(
                id=doc_grid.id,
                position=Position(x=doc_grid.position.x, y=doc_grid.position.y),
                fret_range=FretRange(start=config.startFret, end=config.endFret),
                string_count=config.stringCount,
                tuning=[StringTuning(note_name=t.note, semitone=t.semitone) for t in config.tuning],
                orientation=GridOrientation(config.orientation),
                notes=notes,
            )

        root = None
        if document.rootNote is not None:
            root = NoteRef(grid_id=document.rootNote.gridId, note_id=document.rootNote.noteId)

        return Workspace(canvas=canvas, grids=grids, root_note=root)

    # ========================================================================
    # Files
    # ========================================================================

    def default_filename(self, now: Optional[datetime] = None) -> str:
        """fretboard-YYYY-MM-DDTHH-MM-SS.json"""
        now = now or datetime.now()
        return f"{DOCUMENT_FILENAME_PREFIX}-{now.strftime('%Y-%m-%dT%H-%M-%S')}{DOCUMENT_EXTENSION}"

    def backup_filename(self, now: Optional[datetime] = None) -> str:
        """fretboard-backup-YYYY-MM-DDTHH-MM-SS.json"""
        now = now or datetime.now()
        return f"{BACKUP_FILENAME_PREFIX}-{now.strftime('%Y-%m-%dT%H-%M-%S')}{DOCUMENT_EXTENSION}"

    def _check_extension(self, path: Path) -> Optional[Dict[str, Any]]:
        if path.suffix.lower() != DOCUMENT_EXTENSION:
            return make_error(
                f"'{path.name}' is not a {DOCUMENT_EXTENSION} file",
                field="path",
                suggestion=f"Use a file name ending in {DOCUMENT_EXTENSION}",
                error_type="file_error",
            )
        return None

    def save_to_path(self, workspace: Workspace,
                     path: Union[str, Path, None] = None) -> DocumentResponse:
        """Write the document to `path` (default: a timestamped name in the cwd)."""
        target = Path(path) if path is not None else Path(self.default_filename())
        bad_extension = self._check_extension(target)
        if bad_extension:
            return DocumentResponse(success=False, error=bad_extension)

        response = self.save(workspace)
        if not response.success:
            return response

        try:
            with open(target, 'w', encoding='utf-8') as f:
                f.write(response.content)
        except OSError as e:
            logger.error(f"Cannot write {target}: {e}")
            return DocumentResponse(success=False, error=make_error(
                f"Cannot write '{target}': {e}",
                field="path",
                suggestion="Check that the directory exists and is writable",
                error_type="file_error",
            ))

        logger.info(f"Saved document to {target}")
        response.filename = target.name
        return response

    def load_from_path(self, path: Union[str, Path]) -> LoadResult:
        source = Path(path)
        bad_extension = self._check_extension(source)
        if bad_extension:
            return LoadResult(success=False, error=bad_extension)

        try:
            with open(source, 'r', encoding='utf-8') as f:
                raw = f.read()
        except FileNotFoundError:
            return LoadResult(success=False, error=make_error(
                f"File not found: {source}",
                field="path",
                suggestion="Check the file path and try again",
                error_type="file_error",
            ))
        except (OSError, UnicodeDecodeError) as e:
            return LoadResult(success=False, error=make_error(
                f"Cannot read '{source}': {e}",
                field="path",
                error_type="file_error",
            ))

        result = self.load(raw)
        result.filename = source.name
        return result

    def create_backup(self, workspace: Workspace, directory: Union[str, Path, None] = None,
                      now: Optional[datetime] = None) -> DocumentResponse:
        """Save a timestamped backup copy into `directory` (default: the cwd)."""
        target = Path(directory or ".") / self.backup_filename(now)
        logger.info(f"Creating backup {target.name}")
        return self.save_to_path(workspace, target)
