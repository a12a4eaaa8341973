#!/usr/bin/env python3
"""
Fretboard Canvas - Constants and Definitions
============================================

Enums, limits and fixed musical tables shared by the workspace engine:
the chromatic table, group and interval identifiers, canvas and grid
orientations, history action kinds, and the layout metrics used to size
grids on the page.
"""

from enum import Enum
from typing import Dict, List, Any


# ============================================================================
# Chromatic Table
# ============================================================================

# Pitch classes from C, carrying name and naturalness.
CHROMATIC_SCALE: List[Dict[str, Any]] = [
    {"name": "C", "semitone": 0, "isNatural": True},
    {"name": "C#", "semitone": 1, "isNatural": False},
    {"name": "D", "semitone": 2, "isNatural": True},
    {"name": "D#", "semitone": 3, "isNatural": False},
    {"name": "E", "semitone": 4, "isNatural": True},
    {"name": "F", "semitone": 5, "isNatural": True},
    {"name": "F#", "semitone": 6, "isNatural": False},
    {"name": "G", "semitone": 7, "isNatural": True},
    {"name": "G#", "semitone": 8, "isNatural": False},
    {"name": "A", "semitone": 9, "isNatural": True},
    {"name": "A#", "semitone": 10, "isNatural": False},
    {"name": "B", "semitone": 11, "isNatural": True},
]

SEMITONES_PER_OCTAVE = 12


# ============================================================================
# Tunings
# ============================================================================

# Six-string reference tuning, low to high.
STANDARD_TUNING: List[Dict[str, Any]] = [
    {"note": "E", "semitone": 4},
    {"note": "A", "semitone": 9},
    {"note": "D", "semitone": 2},
    {"note": "G", "semitone": 7},
    {"note": "B", "semitone": 11},
    {"note": "E", "semitone": 4},
]

# Lower strings added below the low E for 7-12 string instruments, in order.
EXTENDED_LOW_STRINGS: List[Dict[str, Any]] = [
    {"note": "B", "semitone": 11},   # 7th string
    {"note": "F#", "semitone": 6},   # 8th string
    {"note": "C#", "semitone": 1},   # 9th string
    {"note": "G#", "semitone": 8},   # 10th string
    {"note": "D#", "semitone": 3},   # 11th string
    {"note": "A#", "semitone": 10},  # 12th string
]


# ============================================================================
# Note Groups and Intervals
# ============================================================================

class GroupState(Enum):
    """User-assigned colour group of a placed note, in click-cycle order."""
    CHROMATIC = "chromatic"
    GROUP_1 = "group-1"
    GROUP_2 = "group-2"
    GROUP_3 = "group-3"
    GROUP_4 = "group-4"

    def __str__(self):
        return self.value

GROUP_CYCLE: List[GroupState] = [
    GroupState.CHROMATIC,
    GroupState.GROUP_1,
    GroupState.GROUP_2,
    GroupState.GROUP_3,
    GroupState.GROUP_4,
]


class IntervalKind(Enum):
    """Recognized intervals relative to the root note."""
    MINOR_THIRD = "minor-3rd"
    MAJOR_THIRD = "major-3rd"
    PERFECT_FOURTH = "perfect-4th"
    PERFECT_FIFTH = "perfect-5th"
    MINOR_SEVENTH = "minor-7th"
    MAJOR_SEVENTH = "major-7th"
    OCTAVE = "octave"

    def __str__(self):
        return self.value

# Semitone distance -> interval. Distances 0, 1, 2, 6, 8, 9 are not highlighted.
INTERVAL_BY_DISTANCE: Dict[int, IntervalKind] = {
    3: IntervalKind.MINOR_THIRD,
    4: IntervalKind.MAJOR_THIRD,
    5: IntervalKind.PERFECT_FOURTH,
    7: IntervalKind.PERFECT_FIFTH,
    10: IntervalKind.MINOR_SEVENTH,
    11: IntervalKind.MAJOR_SEVENTH,
}

OCTAVE_DISTANCE = 12

INTERVAL_LABELS: Dict[IntervalKind, str] = {
    IntervalKind.MINOR_THIRD: "Minor 3rd",
    IntervalKind.MAJOR_THIRD: "Major 3rd",
    IntervalKind.PERFECT_FOURTH: "Perfect 4th",
    IntervalKind.PERFECT_FIFTH: "Perfect 5th",
    IntervalKind.MINOR_SEVENTH: "Minor 7th",
    IntervalKind.MAJOR_SEVENTH: "Major 7th",
    IntervalKind.OCTAVE: "Octave",
}


# ============================================================================
# Fret Markers
# ============================================================================

class MarkerType(Enum):
    """Inlay marker drawn on a fret."""
    SINGLE = "single"
    DOUBLE = "double"

    def __str__(self):
        return self.value

SINGLE_DOT_FRETS = (3, 5, 7, 9, 15, 17, 19, 21)
DOUBLE_DOT_FRETS = (12,)


# ============================================================================
# Canvas and Grid Orientation
# ============================================================================

class CanvasOrientation(Enum):
    """Page orientation of the canvas."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    def __str__(self):
        return self.value

class GridOrientation(Enum):
    """Direction the strings run in a grid."""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"

    def __str__(self):
        return self.value


# ============================================================================
# History Action Kinds
# ============================================================================

class ActionKind(Enum):
    """Every kind of user action the history can record."""
    GRID_CREATE = "grid_create"
    GRID_DELETE = "grid_delete"
    GRID_MOVE = "grid_move"
    GRID_CONFIG_CHANGE = "grid_config_change"
    GRID_ORIENTATION_CHANGE = "grid_orientation_change"
    STRING_TUNING_CHANGE = "string_tuning_change"
    NOTE_PLACE = "note_place"
    NOTE_REMOVE = "note_remove"
    NOTE_GROUP_CHANGE = "note_group_change"
    ROOT_NOTE_SET = "root_note_set"
    ROOT_NOTE_CLEAR = "root_note_clear"
    CANVAS_ORIENTATION_CHANGE = "canvas_orientation_change"
    CANVAS_LOCK_TOGGLE = "canvas_lock_toggle"
    CANVAS_CLEAR = "canvas_clear"
    BULK_OPERATION = "bulk_operation"

    def __str__(self):
        return self.value


# ============================================================================
# Validation Constants
# ============================================================================

MIN_FRET = 0
MAX_FRET = 24
MIN_STRINGS = 4
MAX_STRINGS = 12

DEFAULT_START_FRET = 0
DEFAULT_END_FRET = 7
DEFAULT_STRING_COUNT = 6

SCHEMA_VERSION = "1.0"
DEFAULT_MAX_HISTORY = 100

DOCUMENT_FILENAME_PREFIX = "fretboard"
BACKUP_FILENAME_PREFIX = "fretboard-backup"
DOCUMENT_EXTENSION = ".json"


# ============================================================================
# Page and Layout Constants
# ============================================================================

# US Letter at 96 px/in, portrait.
LETTER_WIDTH_PX = 816
LETTER_HEIGHT_PX = 1056

FRET_SPACING_PX = 48
STRING_SPACING_PX = 24
GRID_PADDING_PX = 16
CONTROLLER_HEIGHT_PX = 40

# New grids are staggered in rows of three.
GRID_STAGGER_PX = 20
GRID_STAGGER_COLUMNS = 3


def is_valid_group_state(value: str) -> bool:
    """Check if a wire value names a group state."""
    return value in [g.value for g in GroupState]
