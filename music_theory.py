#!/usr/bin/env python3
"""
Fretboard Canvas - Music Theory
===============================

Pure pitch and interval computation for fretboard grids:

- Pitch class resolution from a string tuning plus a fret offset
- Interval classification between two pitch classes
- Standard tuning generation for 4-12 strings
- Fret marker (inlay) layout for a fret range

Nothing in this module holds state.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fretboard_constants import (
    CHROMATIC_SCALE, STANDARD_TUNING, EXTENDED_LOW_STRINGS,
    INTERVAL_BY_DISTANCE, INTERVAL_LABELS, IntervalKind, MarkerType,
    SINGLE_DOT_FRETS, DOUBLE_DOT_FRETS, SEMITONES_PER_OCTAVE
)
from fretboard_models import PitchClass, StringTuning, FretMarker

logger = logging.getLogger(__name__)


# ============================================================================
# Pitch Classes
# ============================================================================

def pitch_class(semitone: int) -> PitchClass:
    """Resolve any integer against the chromatic table (mod 12)."""
    entry = CHROMATIC_SCALE[semitone % SEMITONES_PER_OCTAVE]
    return PitchClass(
        name=entry["name"],
        semitone=entry["semitone"],
        is_natural=entry["isNatural"],
    )


def pitch_at(tuning: StringTuning, fret: int) -> PitchClass:
    """
    Pitch class sounded at a fret of a string.

    Args:
        tuning: Open-string pitch class
        fret: Fret offset in semitones

    Returns:
        PitchClass for (tuning.semitone + fret) mod 12
    """
    return pitch_class(tuning.semitone + fret)


def parse_note(name: str) -> Optional[PitchClass]:
    """Look up a pitch class by its chromatic name ("C", "F#", ...)."""
    for entry in CHROMATIC_SCALE:
        if entry["name"] == name:
            return pitch_class(entry["semitone"])
    return None


def all_note_names() -> List[str]:
    """All chromatic names in table order, for tuning selectors."""
    return [entry["name"] for entry in CHROMATIC_SCALE]


# ============================================================================
# Tunings
# ============================================================================

def _to_string_tuning(entry: Dict[str, Any]) -> StringTuning:
    return StringTuning(note_name=entry["note"], semitone=entry["semitone"])


def standard_tuning(string_count: int) -> List[StringTuning]:
    """
    Standard tuning for a string count, low string first.

    Six or fewer strings keep the highest strings of E-A-D-G-B-E. More
    than six prepend lower strings in the order B, F#, C#, G#, D#, A#.
    Counts outside 4-12 must be rejected or clamped by the caller.
    """
    if string_count <= 6:
        return [_to_string_tuning(e) for e in STANDARD_TUNING[6 - string_count:]]

    tuning = [_to_string_tuning(e) for e in STANDARD_TUNING]
    additional = min(string_count - 6, len(EXTENDED_LOW_STRINGS))
    for entry in EXTENDED_LOW_STRINGS[:additional]:
        tuning.insert(0, _to_string_tuning(entry))
    return tuning


def tuning_from_names(names: List[str]) -> List[StringTuning]:
    """Build a tuning from note names; unknown names raise ValueError."""
    tuning = []
    for name in names:
        parsed = parse_note(name)
        if parsed is None:
            raise ValueError(f"Unknown note name '{name}'. Valid names: {all_note_names()}")
        tuning.append(StringTuning(note_name=parsed.name, semitone=parsed.semitone))
    return tuning


def is_valid_tuning(tuning: Any) -> bool:
    """
    Check a raw tuning list: [{"note": str, "semitone": 0-11}, ...].

    Each note name must be a chromatic name that agrees with its semitone.
    """
    if not isinstance(tuning, list):
        return False

    for entry in tuning:
        if not isinstance(entry, dict):
            return False
        if not isinstance(entry.get("note"), str):
            return False
        semitone = entry.get("semitone")
        if isinstance(semitone, bool) or not isinstance(semitone, int):
            return False
        if not 0 <= semitone <= 11:
            return False
        named = parse_note(entry["note"])
        if named is None or named.semitone != semitone:
            return False
    return True


# ============================================================================
# Intervals
# ============================================================================

def _semitone_of(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, dict):
        return value["semitone"]
    return value.semitone


def semitone_distance(root: Any, target: Any) -> int:
    """Upward distance from root to target, normalized into [0, 11]."""
    return (_semitone_of(target) - _semitone_of(root)) % SEMITONES_PER_OCTAVE


def interval(root: Any, target: Any) -> Optional[Tuple[IntervalKind, int]]:
    """
    Classify the interval from root to target.

    Accepts PitchClass/StringTuning objects, {"semitone": n} dicts or bare
    semitone ints.

    Returns:
        (IntervalKind, distance) for 3, 4, 5, 7, 10 and 11 semitones,
        None for every other distance (which must not be highlighted)
    """
    distance = semitone_distance(root, target)
    kind = INTERVAL_BY_DISTANCE.get(distance)
    if kind is None:
        return None
    return kind, distance


def interval_label(kind: IntervalKind) -> str:
    """Human-readable interval name, e.g. "Perfect 5th"."""
    return INTERVAL_LABELS[kind]


# ============================================================================
# Fret Markers
# ============================================================================

def fret_markers(start: int, end: int) -> List[FretMarker]:
    """
    Inlay markers within [start, end].

    Single dots at 3, 5, 7, 9, 15, 17, 19, 21 and a double dot at 12.
    Each marker carries its offset along the fret axis as a percentage.
    """
    markers = []
    span = end - start
    for fret in range(start, end + 1):
        if fret in SINGLE_DOT_FRETS:
            marker_type = MarkerType.SINGLE
        elif fret in DOUBLE_DOT_FRETS:
            marker_type = MarkerType.DOUBLE
        else:
            continue
        offset = ((fret - start) / span) * 100 if span > 0 else 0.0
        markers.append(FretMarker(fret=fret, type=marker_type, offset_percent=offset))
    return markers
