#!/usr/bin/env python3
"""
Fretboard Canvas - Session
==========================

FretboardSession is the one object a presentation layer talks to. It owns
a WorkspaceModel, a HistoryManager and a Serializer, and runs each mutator
as a single atomic action:

    snapshot -> mutate -> (ok and changed) -> record {action, before, after}

Undo and redo restore snapshots through replace_all. Loading replaces the
workspace only after the document fully validates, then clears history.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from fretboard_constants import DEFAULT_MAX_HISTORY
from fretboard_models import Workspace, NoteRef, Position, DocumentResponse, LoadResult
from fretboard_actions import Action, ActionResult, BulkOperationAction
from history import HistoryManager, HistoryStep, Subscriber
from serializer import Serializer
from workspace import WorkspaceModel, ConfigInput

logger = logging.getLogger(__name__)

MAX_HISTORY_ENV = "FRETBOARD_MAX_HISTORY"


def history_cap_from_env(environ: Optional[Mapping[str, str]] = None) -> int:
    """History cap from FRETBOARD_MAX_HISTORY, falling back to the default."""
    environ = os.environ if environ is None else environ
    raw = environ.get(MAX_HISTORY_ENV)
    if not raw:
        return DEFAULT_MAX_HISTORY
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {MAX_HISTORY_ENV}={raw!r}: not an integer")
        return DEFAULT_MAX_HISTORY
    if value < 1:
        logger.warning(f"Ignoring {MAX_HISTORY_ENV}={value}: must be at least 1")
        return DEFAULT_MAX_HISTORY
    return value


class FretboardSession:
    """
    Workspace + history + serializer, wired together.

    Args:
        max_history: Undo log cap
        id_factory: Grid id generator passed to the workspace
        serializer: Document codec (a default Serializer if None)
        workspace: Initial workspace state
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY,
                 id_factory: Optional[Callable[[], str]] = None,
                 serializer: Optional[Serializer] = None,
                 workspace: Optional[Workspace] = None):
        self.workspace = WorkspaceModel(workspace, id_factory=id_factory)
        self.history = HistoryManager(max_history)
        self.serializer = serializer or Serializer()
        self._batch: Optional[List[Action]] = None

    # ========================================================================
    # Action pipeline
    # ========================================================================

    def _run(self, mutate: Callable[[], ActionResult]) -> ActionResult:
        previous = self.workspace.snapshot()
        result = mutate()
        if not result.success:
            return result

        new = self.workspace.snapshot()
        if new == previous:
            logger.debug(f"'{result.message}' left the workspace unchanged; not recorded")
            return result

        if self._batch is not None:
            self._batch.append(result.action)
        else:
            self.history.record(result.action, previous, new)
        return result

    @contextmanager
    def batch(self, description: str = "") -> Iterator["FretboardSession"]:
        """
        Group the mutations made inside the block into one history entry.

        If the block raises, the workspace is rolled back and nothing is
        recorded.
        """
        if self._batch is not None:
            raise RuntimeError("Batches cannot be nested")

        previous = self.workspace.snapshot()
        self._batch = []
        try:
            yield self
        except Exception:
            self._batch = None
            self.workspace.replace_all(previous)
            logger.warning("Batch aborted; workspace rolled back")
            raise

        actions = self._batch
        self._batch = None
        new = self.workspace.snapshot()
        if not actions or new == previous:
            logger.debug("Batch made no changes; not recorded")
            return

        bulk = BulkOperationAction(
            description=description,
            operations=[action.to_dict() for action in actions],
        )
        self.history.record(bulk, previous, new)

    # ========================================================================
    # Mutators
    # ========================================================================

    def create_grid(self, config: ConfigInput = None) -> ActionResult:
        return self._run(lambda: self.workspace.create_grid(config))

    def update_grid_config(self, grid_id: str, partial: ConfigInput) -> ActionResult:
        return self._run(lambda: self.workspace.update_grid_config(grid_id, partial))

    def set_string_tuning(self, grid_id: str, string_index: int, note_name: str) -> ActionResult:
        return self._run(lambda: self.workspace.set_string_tuning(grid_id, string_index, note_name))

    def move_grid(self, grid_id: str, position: Union[Position, Dict[str, float]]) -> ActionResult:
        return self._run(lambda: self.workspace.move_grid(grid_id, position))

    def remove_grid(self, grid_id: str) -> ActionResult:
        return self._run(lambda: self.workspace.remove_grid(grid_id))

    def toggle_grid_orientation(self, grid_id: str) -> ActionResult:
        return self._run(lambda: self.workspace.toggle_grid_orientation(grid_id))

    def place_note(self, grid_id: str, string_index: int, fret: int) -> ActionResult:
        return self._run(lambda: self.workspace.place_note(grid_id, string_index, fret))

    def remove_note(self, note_id: str) -> ActionResult:
        return self._run(lambda: self.workspace.remove_note(note_id))

    def cycle_note_group(self, note_id: str) -> ActionResult:
        return self._run(lambda: self.workspace.cycle_note_group(note_id))

    def click(self, grid_id: str, string_index: int, fret: int) -> ActionResult:
        return self._run(lambda: self.workspace.click(grid_id, string_index, fret))

    def set_root_note(self, ref: Union[NoteRef, Dict[str, str], None]) -> ActionResult:
        return self._run(lambda: self.workspace.set_root_note(ref))

    def clear_root_note(self) -> ActionResult:
        return self._run(self.workspace.clear_root_note)

    def toggle_lock(self) -> ActionResult:
        return self._run(self.workspace.toggle_lock)

    def toggle_orientation(self) -> ActionResult:
        return self._run(self.workspace.toggle_orientation)

    def clear_all(self) -> ActionResult:
        return self._run(self.workspace.clear_all)

    # ========================================================================
    # History
    # ========================================================================

    def undo(self) -> HistoryStep:
        step = self.history.undo()
        if step.success:
            self.workspace.replace_all(step.snapshot)
        return step

    def redo(self) -> HistoryStep:
        step = self.history.redo()
        if step.success:
            self.workspace.replace_all(step.snapshot)
        return step

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.history.subscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        return self.history.unsubscribe(callback)

    def state_info(self) -> Dict[str, Any]:
        info = self.history.state_info()
        info["locked"] = self.workspace.is_locked
        info["gridCount"] = len(self.workspace.list_grids())
        return info

    def export_history(self) -> Dict[str, Any]:
        return self.history.export_history()

    def import_history(self, data: Dict[str, Any]) -> bool:
        """Replace the undo log and move the workspace to its current state."""
        if not self.history.import_history(data):
            return False
        snapshot = self.history.current_snapshot()
        if snapshot is not None:
            self.workspace.replace_all(snapshot)
        return True

    # ========================================================================
    # Save / Load
    # ========================================================================

    def to_document(self) -> Dict[str, Any]:
        return self.serializer.to_document(self.workspace.snapshot())

    def save(self) -> DocumentResponse:
        response = self.serializer.save(self.workspace.snapshot())
        if response.success:
            self.history.mark_saved()
        return response

    def save_to_path(self, path: Union[str, Path, None] = None) -> DocumentResponse:
        response = self.serializer.save_to_path(self.workspace.snapshot(), path)
        if response.success:
            self.history.mark_saved()
        return response

    def _apply_load(self, result: LoadResult) -> LoadResult:
        if result.success:
            self.workspace.replace_all(result.workspace)
            self.history.clear()
        return result

    def load(self, raw: Union[str, bytes, Dict[str, Any]]) -> LoadResult:
        """Replace the workspace with a document; on failure nothing changes."""
        return self._apply_load(self.serializer.load(raw))

    def load_from_path(self, path: Union[str, Path]) -> LoadResult:
        return self._apply_load(self.serializer.load_from_path(path))

    def create_backup(self, directory: Union[str, Path, None] = None) -> DocumentResponse:
        """Write a timestamped copy; unlike save, the session stays unsaved."""
        return self.serializer.create_backup(self.workspace.snapshot(), directory)
