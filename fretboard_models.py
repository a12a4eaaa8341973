#!/usr/bin/env python3
"""
Pydantic V2 Data Models for the Fretboard Canvas
================================================

Two families of models live here:

- Workspace models: the canonical in-memory entity graph (canvas, grids,
  notes, root note reference) plus derived intervals and grid layouts.
- Document models: the versioned JSON document used for save/load, with
  camelCase field names matching the wire format and strict typing.
"""

import logging
import time
from typing import Dict, List, Any, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from fretboard_constants import (
    CHROMATIC_SCALE, CanvasOrientation, GridOrientation, GroupState, IntervalKind,
    MarkerType, DEFAULT_START_FRET, DEFAULT_END_FRET, LETTER_WIDTH_PX, LETTER_HEIGHT_PX,
    SCHEMA_VERSION
)

logger = logging.getLogger(__name__)


# ============================================================================
# Workspace Models
# ============================================================================

class PitchClass(BaseModel):
    """One of the 12 chromatic identities, independent of octave."""
    name: str
    semitone: int
    is_natural: bool

    @property
    def display_text(self) -> str:
        """Natural notes show their letter; accidentals show nothing."""
        return self.name if self.is_natural else ""


class StringTuning(BaseModel):
    """Open-string pitch class of a single string."""
    note_name: str
    semitone: int


class Position(BaseModel):
    """Top-left corner of a grid on the canvas, in pixels."""
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0


class Dimensions(BaseModel):
    """Canvas size in pixels."""
    model_config = ConfigDict(allow_inf_nan=False)

    width: float = LETTER_WIDTH_PX
    height: float = LETTER_HEIGHT_PX


class CanvasConfig(BaseModel):
    """Page-level settings of the workspace."""
    orientation: CanvasOrientation = CanvasOrientation.PORTRAIT
    locked: bool = False
    dimensions: Dimensions = Field(default_factory=Dimensions)


class FretRange(BaseModel):
    """Inclusive range of frets shown by a grid."""
    start: int = DEFAULT_START_FRET
    end: int = DEFAULT_END_FRET

    @property
    def fret_count(self) -> int:
        return self.end - self.start + 1

    def contains(self, fret: int) -> bool:
        return self.start <= fret <= self.end


class Note(BaseModel):
    """A pitch marker placed at one (string, fret) coordinate of a grid."""
    pitch_class: PitchClass
    string_index: int
    fret: int
    group_state: GroupState = GroupState.CHROMATIC


class Grid(BaseModel):
    """A configurable fretboard chart placed on the canvas."""
    id: str
    position: Position = Field(default_factory=Position)
    fret_range: FretRange = Field(default_factory=FretRange)
    string_count: int
    tuning: List[StringTuning]
    orientation: GridOrientation = GridOrientation.VERTICAL
    notes: Dict[str, Note] = Field(default_factory=dict)

    def note_at(self, string_index: int, fret: int) -> Optional[Note]:
        return self.notes.get(make_note_id(self.id, string_index, fret))

    def has_coordinate(self, string_index: int, fret: int) -> bool:
        return 0 <= string_index < self.string_count and self.fret_range.contains(fret)


class NoteRef(BaseModel):
    """Non-owning, id-based reference to the root note."""
    grid_id: str
    note_id: str


class Interval(BaseModel):
    """Derived relationship between one note and the root note."""
    note_id: str
    kind: IntervalKind
    semitone_distance: int


class Workspace(BaseModel):
    """Root aggregate: canvas, ordered grids, and the optional root note."""
    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    grids: Dict[str, Grid] = Field(default_factory=dict)
    root_note: Optional[NoteRef] = None

    def copy_deep(self) -> "Workspace":
        """Full deep copy, used for history snapshots."""
        return self.model_copy(deep=True)


def make_note_id(grid_id: str, string_index: int, fret: int) -> str:
    """Note ids are derived from their coordinate so each maps to one note."""
    return f"{grid_id}_{string_index}_{fret}"


# ============================================================================
# Grid Configuration Input
# ============================================================================

class GridConfig(BaseModel):
    """
    Explicit configuration for creating or updating a grid.

    Every field is optional; absent fields keep defaults (on create) or the
    current value (on update). Numeric values are clamped by the workspace,
    never rejected here, but they must be integers.
    """
    start_fret: Optional[StrictInt] = None
    end_fret: Optional[StrictInt] = None
    string_count: Optional[StrictInt] = None
    tuning: Optional[List[str]] = Field(None, description="Note names, low string first")
    orientation: Optional[GridOrientation] = None
    position: Optional[Position] = None

    @field_validator('tuning')
    @classmethod
    def validate_tuning_names(cls, v):
        if v is None:
            return v
        valid = [entry["name"] for entry in CHROMATIC_SCALE]
        for name in v:
            if name not in valid:
                raise ValueError(f"Unknown note name '{name}'. Valid names: {valid}")
        return v


# ============================================================================
# Layout Models
# ============================================================================

class FretMarker(BaseModel):
    """Inlay marker on a fret within a grid's range."""
    fret: int
    type: MarkerType
    offset_percent: float = 0.0


class CellPosition(BaseModel):
    """1-based row/column of a note cell, depending on grid orientation."""
    note_id: str
    row: int
    column: int


class GridLayout(BaseModel):
    """Recomputed geometry of a grid; never stored."""
    grid_id: str
    width: float
    height: float
    fret_numbers: List[int]
    string_labels: List[str]
    markers: List[FretMarker]
    cells: List[CellPosition]


# ============================================================================
# Document Models (wire format)
# ============================================================================

class DocumentModel(BaseModel):
    """Base for document models: strict types, unknown keys ignored."""
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)


class DocumentDimensions(DocumentModel):
    width: float
    height: float


class DocumentCanvas(DocumentModel):
    orientation: Literal["portrait", "landscape"]
    locked: bool
    dimensions: DocumentDimensions


class DocumentPosition(DocumentModel):
    x: float
    y: float


class DocumentTuning(DocumentModel):
    note: str
    semitone: int = Field(..., ge=0, le=11)


class DocumentGridConfig(DocumentModel):
    startFret: int
    endFret: int
    stringCount: int
    tuning: List[DocumentTuning]
    orientation: Literal["vertical", "horizontal"]


class DocumentNote(DocumentModel):
    name: str
    semitone: int = Field(..., ge=0, le=11)
    isNatural: bool
    stringIndex: int
    fret: int
    groupState: Literal["chromatic", "group-1", "group-2", "group-3", "group-4"]


class DocumentGrid(DocumentModel):
    id: str
    position: DocumentPosition
    config: DocumentGridConfig
    notes: Dict[str, DocumentNote] = Field(default_factory=dict)


class DocumentNoteRef(DocumentModel):
    gridId: str
    noteId: str


class DocumentInterval(DocumentModel):
    type: str
    distance: int


class DocumentSettings(DocumentModel):
    version: str = SCHEMA_VERSION
    timestamp: float = 0


class FretboardDocument(DocumentModel):
    """
    Versioned JSON representation of a workspace.

    `intervals` is derived data written for consumers of the file; it is
    recomputed rather than trusted on load.
    """
    version: str
    timestamp: float = Field(default_factory=lambda: time.time() * 1000)
    canvas: DocumentCanvas
    grids: List[DocumentGrid]
    rootNote: Optional[DocumentNoteRef] = None
    intervals: Dict[str, DocumentInterval] = Field(default_factory=dict)
    settings: DocumentSettings = Field(default_factory=DocumentSettings)

    model_config = ConfigDict(
        strict=True,
        extra="ignore",
        allow_inf_nan=False,
        title="Fretboard Canvas Document",
        json_schema_extra={
            "$schema": "https://json-schema.org/draft/2020-12/schema",
        },
    )


# ============================================================================
# Response Models
# ============================================================================

class DocumentResponse(BaseModel):
    """Outcome of a save, with the serialized document on success."""
    success: bool
    content: str = ""
    filename: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    warnings: List[Dict[str, Any]] = []

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": True,
                "content": "{\"version\": \"1.0\", ...}",
                "filename": "fretboard-2024-05-01T12-30-00.json",
                "warnings": []
            }
        }
    }


class LoadResult(BaseModel):
    """Outcome of a load; the live workspace is untouched either way."""
    success: bool
    workspace: Optional[Workspace] = None
    filename: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    warnings: List[Dict[str, Any]] = []


def create_schema() -> Dict[str, Any]:
    """Generate JSON Schema for the document format."""
    return FretboardDocument.model_json_schema()
