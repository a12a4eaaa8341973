#!/usr/bin/env python3
"""
Fretboard Canvas - Undo/Redo History
====================================

A linear, bounded log of full workspace snapshots with a current pointer.

- record() truncates anything redoable, appends, and evicts the oldest
  entry once the cap is exceeded.
- undo() and redo() hand back the snapshot to restore; at the ends of the
  log they return a no-op step instead of failing.
- Every record/undo/redo/clear/import notifies subscribers. A subscriber that
  raises is logged and skipped.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, SerializeAsAny

from fretboard_constants import DEFAULT_MAX_HISTORY, SCHEMA_VERSION
from fretboard_actions import Action, ResultStatus
from fretboard_models import Workspace

logger = logging.getLogger(__name__)


class HistoryEntry(BaseModel):
    """One recorded action with the state before and after it."""
    id: str
    timestamp: float
    action: SerializeAsAny[Action]
    previous_snapshot: Workspace
    new_snapshot: Workspace

    @property
    def description(self) -> str:
        return self.action.description


class HistoryStep(BaseModel):
    """Result of undo/redo: the snapshot to restore, or a no-op."""
    status: ResultStatus
    snapshot: Optional[Workspace] = None
    entry: Optional[HistoryEntry] = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.OK


class HistoryEvent(BaseModel):
    """Payload delivered to subscribers."""
    type: str  # record, undo, redo, clear, import
    entry: Optional[HistoryEntry] = None
    can_undo: bool = False
    can_redo: bool = False
    has_unsaved_changes: bool = False


Subscriber = Callable[[HistoryEvent], Any]

ENTRY_ID_PATTERN = re.compile(r"^action_(\d+)$")


class HistoryManager:
    """
    Manages the undo/redo log.

    Args:
        max_history: Maximum number of entries kept (oldest evicted first)
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self.max_history = max_history
        self._entries: List[HistoryEntry] = []
        self._pointer = -1
        self._saved_pointer = -1
        self._next_id = 1
        self._subscribers: List[Subscriber] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    # ========================================================================
    # Recording and navigation
    # ========================================================================

    def record(self, action: Action, previous: Workspace, new: Workspace) -> HistoryEntry:
        """Append an entry after the pointer, dropping any redo branch."""
        entry = HistoryEntry(
            id=f"action_{self._next_id}",
            timestamp=time.time() * 1000,
            action=action,
            previous_snapshot=previous.copy_deep(),
            new_snapshot=new.copy_deep(),
        )
        self._next_id += 1

        if self._pointer < len(self._entries) - 1:
            dropped = len(self._entries) - 1 - self._pointer
            del self._entries[self._pointer + 1:]
            if self._saved_pointer > self._pointer:
                # The saved state was on the discarded branch.
                self._saved_pointer = -2
            logger.debug(f"Discarded {dropped} redoable entries")

        self._entries.append(entry)
        self._pointer = len(self._entries) - 1

        if len(self._entries) > self.max_history:
            evicted = self._entries.pop(0)
            self._pointer -= 1
            if self._saved_pointer >= -1:
                self._saved_pointer -= 1
            logger.debug(f"History cap reached; evicted {evicted.id}")

        logger.info(f"Recorded: {entry.description}")
        self._notify("record", entry)
        return entry

    def undo(self) -> HistoryStep:
        if not self.can_undo():
            return HistoryStep(status=ResultStatus.NO_OP, message="Nothing to undo")

        entry = self._entries[self._pointer]
        self._pointer -= 1
        logger.info(f"Undo: {entry.description}")
        self._notify("undo", entry)
        return HistoryStep(
            status=ResultStatus.OK,
            snapshot=entry.previous_snapshot.copy_deep(),
            entry=entry,
            message=f"Undid: {entry.description}",
        )

    def redo(self) -> HistoryStep:
        if not self.can_redo():
            return HistoryStep(status=ResultStatus.NO_OP, message="Nothing to redo")

        self._pointer += 1
        entry = self._entries[self._pointer]
        logger.info(f"Redo: {entry.description}")
        self._notify("redo", entry)
        return HistoryStep(
            status=ResultStatus.OK,
            snapshot=entry.new_snapshot.copy_deep(),
            entry=entry,
            message=f"Redid: {entry.description}",
        )

    def clear(self) -> None:
        """Empty the log; the resulting state counts as saved."""
        self._entries = []
        self._pointer = -1
        self._saved_pointer = -1
        logger.info("History cleared")
        self._notify("clear")

    def can_undo(self) -> bool:
        return self._pointer >= 0

    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    def undo_description(self) -> Optional[str]:
        if self.can_undo():
            return self._entries[self._pointer].description
        return None

    def redo_description(self) -> Optional[str]:
        if self.can_redo():
            return self._entries[self._pointer + 1].description
        return None

    # ========================================================================
    # Unsaved changes
    # ========================================================================

    def has_unsaved_changes(self) -> bool:
        return self._pointer != self._saved_pointer

    def mark_saved(self) -> None:
        self._saved_pointer = self._pointer
        logger.debug(f"Marked saved at pointer {self._pointer}")

    # ========================================================================
    # Subscribers
    # ========================================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            return True
        return False

    def _notify(self, event_type: str, entry: Optional[HistoryEntry] = None) -> None:
        event = HistoryEvent(
            type=event_type,
            entry=entry,
            can_undo=self.can_undo(),
            can_redo=self.can_redo(),
            has_unsaved_changes=self.has_unsaved_changes(),
        )
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"History subscriber {callback!r} failed on '{event_type}'")

    # ========================================================================
    # Introspection
    # ========================================================================

    def state_info(self) -> Dict[str, Any]:
        return {
            "canUndo": self.can_undo(),
            "canRedo": self.can_redo(),
            "undoDescription": self.undo_description(),
            "redoDescription": self.redo_description(),
            "historyLength": len(self._entries),
            "historyIndex": self._pointer,
            "hasUnsavedChanges": self.has_unsaved_changes(),
        }

    def action_history(self) -> List[Dict[str, Any]]:
        """Entries oldest first; `undoable` marks those at or before the pointer."""
        return [
            {
                "id": entry.id,
                "timestamp": entry.timestamp,
                "kind": entry.action.kind.value,
                "description": entry.description,
                "undoable": index <= self._pointer,
            }
            for index, entry in enumerate(self._entries)
        ]

    def memory_stats(self) -> Dict[str, Any]:
        """Approximate size of the log as serialized JSON."""
        total = 0
        for entry in self._entries:
            total += len(entry.previous_snapshot.model_dump_json())
            total += len(entry.new_snapshot.model_dump_json())
            total += len(json.dumps(entry.action.to_dict()))
        count = len(self._entries)
        return {
            "entries": count,
            "totalBytes": total,
            "averageBytes": total // count if count else 0,
            "maxHistory": self.max_history,
            "pointer": self._pointer,
        }

    # ========================================================================
    # Export / import
    # ========================================================================

    def export_history(self) -> Dict[str, Any]:
        """JSON-ready dump of the whole log, for debugging or replay."""
        return {
            "version": SCHEMA_VERSION,
            "timestamp": time.time() * 1000,
            "currentIndex": self._pointer,
            "maxHistory": self.max_history,
            "history": [
                {
                    "id": entry.id,
                    "timestamp": entry.timestamp,
                    "action": entry.action.to_dict(),
                    "previousSnapshot": entry.previous_snapshot.model_dump(mode="json"),
                    "newSnapshot": entry.new_snapshot.model_dump(mode="json"),
                }
                for entry in self._entries
            ],
        }

    def import_history(self, data: Dict[str, Any]) -> bool:
        """
        Replace the log with an export_history() dump.

        Nothing changes unless the whole dump is readable: the version must
        match, every entry must rebuild, and currentIndex must point inside
        the log. The imported state counts as unsaved.
        """
        try:
            if data.get("version") != SCHEMA_VERSION:
                raise ValueError(f"Unsupported history version: {data.get('version')!r}")

            entries = [
                HistoryEntry(
                    id=raw["id"],
                    timestamp=raw["timestamp"],
                    action=Action.from_dict(raw["action"]),
                    previous_snapshot=Workspace.model_validate(raw["previousSnapshot"]),
                    new_snapshot=Workspace.model_validate(raw["newSnapshot"]),
                )
                for raw in data.get("history", [])
            ]
            pointer = data.get("currentIndex", len(entries) - 1)
            if isinstance(pointer, bool) or not isinstance(pointer, int) \
                    or not -1 <= pointer < len(entries):
                raise ValueError(f"currentIndex {pointer!r} is outside the imported log")
            if len(entries) > self.max_history:
                raise ValueError(f"{len(entries)} entries exceed the cap of {self.max_history}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Cannot import history: {e}")
            return False

        self._entries = entries
        self._pointer = pointer
        self._saved_pointer = -2
        numbers = [int(m.group(1)) for m in (ENTRY_ID_PATTERN.match(e.id) for e in entries) if m]
        self._next_id = max(numbers + [self._next_id - 1]) + 1
        logger.info(f"Imported {len(entries)} history entries (pointer {pointer})")
        self._notify("import")
        return True

    def current_snapshot(self) -> Optional[Workspace]:
        """Workspace state the pointer stands on, or None for an empty log."""
        if not self._entries:
            return None
        if self._pointer < 0:
            return self._entries[0].previous_snapshot.copy_deep()
        return self._entries[self._pointer].new_snapshot.copy_deep()
