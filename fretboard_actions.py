#!/usr/bin/env python3
"""
Fretboard Canvas - Action Descriptors and Results
=================================================

Every user action that changes the workspace is described by one Action
subclass. The set is closed: each ActionKind has exactly one registered
subclass with its own typed payload, so history entries never carry
loosely-typed bags of data.

Mutators answer with an ActionResult whose status names the outcome
(ok, coordinate occupied, not found, locked, no-op, invalid).
"""

import logging
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, Field

from fretboard_constants import (
    ActionKind, CanvasOrientation, GridOrientation, GroupState
)
from fretboard_models import Position

logger = logging.getLogger(__name__)


# ============================================================================
# Base Action with registry
# ============================================================================

class Action(BaseModel):
    """Base class for all recorded actions."""
    description: str = ""

    _registry: ClassVar[Dict[ActionKind, Type["Action"]]] = {}
    _kind: ClassVar[Optional[ActionKind]] = None

    def __init_subclass__(cls, action_kind: Optional[ActionKind] = None, **kwargs):
        """Register each concrete action under its kind."""
        super().__init_subclass__(**kwargs)
        if action_kind is not None:
            if action_kind in Action._registry:
                raise TypeError(f"Action kind {action_kind} registered twice")
            Action._registry[action_kind] = cls
            cls._kind = action_kind

    def model_post_init(self, __context: Any) -> None:
        if not self.description:
            self.description = self.describe()

    @property
    def kind(self) -> ActionKind:
        return self._kind

    def describe(self) -> str:
        """Default human-readable description; subclasses override."""
        return self._kind.value if self._kind else "Action"

    def payload(self) -> Dict[str, Any]:
        """Kind-specific data, without kind and description."""
        return self.model_dump(mode="json", exclude={"description"})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "payload": self.payload(),
        }

    @classmethod
    def registered_kinds(cls) -> List[ActionKind]:
        return list(cls._registry.keys())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """
        Factory method: build the right Action subclass from a dict
        shaped like `to_dict()` output.
        """
        try:
            kind = ActionKind(data.get("kind"))
        except ValueError:
            raise ValueError(f"Unknown action kind: {data.get('kind')}")
        subclass = cls._registry.get(kind)
        if subclass is None:
            raise ValueError(f"No action registered for kind: {kind}")
        return subclass(description=data.get("description", ""), **data.get("payload", {}))


# ============================================================================
# Grid Actions
# ============================================================================

class GridCreateAction(Action, action_kind=ActionKind.GRID_CREATE):
    grid_id: str

    def describe(self) -> str:
        return f"Create new grid {self.grid_id}"


class GridDeleteAction(Action, action_kind=ActionKind.GRID_DELETE):
    grid_id: str
    removed_notes: int = 0

    def describe(self) -> str:
        return f"Delete grid {self.grid_id}"


class GridMoveAction(Action, action_kind=ActionKind.GRID_MOVE):
    grid_id: str
    position: Position

    def describe(self) -> str:
        return f"Move grid {self.grid_id} to ({self.position.x:g}, {self.position.y:g})"


class GridConfigChangeAction(Action, action_kind=ActionKind.GRID_CONFIG_CHANGE):
    grid_id: str
    start_fret: int
    end_fret: int
    string_count: int
    dropped_notes: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        return f"Update grid {self.grid_id} configuration"


class GridOrientationChangeAction(Action, action_kind=ActionKind.GRID_ORIENTATION_CHANGE):
    grid_id: str
    orientation: GridOrientation

    def describe(self) -> str:
        return f"Change grid {self.grid_id} orientation to {self.orientation.value}"


class StringTuningChangeAction(Action, action_kind=ActionKind.STRING_TUNING_CHANGE):
    grid_id: str
    string_index: int
    note_name: str

    def describe(self) -> str:
        return f"Tune string {self.string_index + 1} of grid {self.grid_id} to {self.note_name}"


# ============================================================================
# Note Actions
# ============================================================================

class NotePlaceAction(Action, action_kind=ActionKind.NOTE_PLACE):
    grid_id: str
    note_id: str
    string_index: int
    fret: int
    note_name: str

    def describe(self) -> str:
        return f"Place {self.note_name} note at fret {self.fret}, string {self.string_index + 1}"


class NoteRemoveAction(Action, action_kind=ActionKind.NOTE_REMOVE):
    grid_id: str
    note_id: str
    note_name: str = ""

    def describe(self) -> str:
        if not self.note_name:
            return f"Remove note {self.note_id}"
        return f"Remove {self.note_name} note"


class NoteGroupChangeAction(Action, action_kind=ActionKind.NOTE_GROUP_CHANGE):
    grid_id: str
    note_id: str
    group_state: GroupState

    def describe(self) -> str:
        return f"Change note {self.note_id} group to {self.group_state.value}"


class RootNoteSetAction(Action, action_kind=ActionKind.ROOT_NOTE_SET):
    grid_id: str
    note_id: str

    def describe(self) -> str:
        return f"Set root note {self.note_id}"


class RootNoteClearAction(Action, action_kind=ActionKind.ROOT_NOTE_CLEAR):

    def describe(self) -> str:
        return "Clear root note"


# ============================================================================
# Canvas Actions
# ============================================================================

class CanvasOrientationChangeAction(Action, action_kind=ActionKind.CANVAS_ORIENTATION_CHANGE):
    orientation: CanvasOrientation

    def describe(self) -> str:
        return f"Change orientation to {self.orientation.value}"


class CanvasLockToggleAction(Action, action_kind=ActionKind.CANVAS_LOCK_TOGGLE):
    locked: bool

    def describe(self) -> str:
        return f"Canvas {'locked' if self.locked else 'unlocked'}"


class CanvasClearAction(Action, action_kind=ActionKind.CANVAS_CLEAR):
    removed_grids: int = 0
    removed_notes: int = 0

    def describe(self) -> str:
        return "Clear all grids"


class BulkOperationAction(Action, action_kind=ActionKind.BULK_OPERATION):
    """Several actions recorded as one history entry."""
    operations: List[Dict[str, Any]] = Field(default_factory=list)

    def describe(self) -> str:
        return f"Bulk operation ({len(self.operations)} actions)"


# ============================================================================
# Results
# ============================================================================

class ResultStatus(Enum):
    """Outcome of a mutator call. Only OK changes the workspace."""
    OK = "ok"
    COORDINATE_OCCUPIED = "coordinate_occupied"
    NOT_FOUND = "not_found"
    LOCKED = "locked"
    NO_OP = "no_op"
    INVALID = "invalid"

    def __str__(self):
        return self.value


class ActionResult(BaseModel):
    """What a mutator did, or the named condition that stopped it."""
    status: ResultStatus
    message: str = ""
    action: Optional[Action] = None
    grid_id: Optional[str] = None
    note_id: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.OK

    @classmethod
    def ok(cls, action: Action, **kwargs) -> "ActionResult":
        return cls(status=ResultStatus.OK, action=action, message=action.description, **kwargs)

    @classmethod
    def fail(cls, status: ResultStatus, message: str, **kwargs) -> "ActionResult":
        return cls(status=status, message=message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "status": self.status.value,
            "message": self.message,
        }
        if self.action is not None:
            result["action"] = self.action.to_dict()
        if self.grid_id is not None:
            result["gridId"] = self.grid_id
        if self.note_id is not None:
            result["noteId"] = self.note_id
        if self.error is not None:
            result["error"] = self.error
        return result
