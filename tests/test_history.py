"""Tests for the bounded undo/redo log."""

import json
import logging

import pytest

from fretboard_actions import GridCreateAction, NotePlaceAction, ResultStatus
from fretboard_models import Workspace
from history import HistoryEvent, HistoryManager


def _states(count: int):
    """Distinct workspaces: the i-th one is unlocked iff i is even."""
    states = []
    for i in range(count):
        ws = Workspace()
        ws.canvas.locked = bool(i % 2)
        ws.canvas.dimensions.width = 100 + i
        states.append(ws)
    return states


def _record_chain(history: HistoryManager, count: int):
    states = _states(count + 1)
    for i in range(count):
        history.record(GridCreateAction(grid_id=f"grid_{i}"), states[i], states[i + 1])
    return states


def test_empty_history_boundaries() -> None:
    history = HistoryManager()
    assert not history.can_undo()
    assert not history.can_redo()
    assert history.undo().status == ResultStatus.NO_OP
    assert history.redo().status == ResultStatus.NO_OP
    assert history.undo_description() is None
    assert history.redo_description() is None


def test_undo_redo_return_snapshots() -> None:
    history = HistoryManager()
    states = _record_chain(history, 2)

    step = history.undo()
    assert step.success
    assert step.snapshot == states[1]
    assert history.redo_description() == "Create new grid grid_1"

    step = history.undo()
    assert step.snapshot == states[0]
    assert not history.can_undo()

    step = history.redo()
    assert step.snapshot == states[1]
    step = history.redo()
    assert step.snapshot == states[2]
    assert history.redo().status == ResultStatus.NO_OP


def test_snapshots_are_copied() -> None:
    history = HistoryManager()
    before, after = Workspace(), Workspace()
    after.canvas.locked = True
    history.record(GridCreateAction(grid_id="g"), before, after)
    after.canvas.locked = False

    step = history.undo()
    assert history.redo().snapshot.canvas.locked
    step.snapshot.canvas.locked = True
    assert not history.entries[0].previous_snapshot.canvas.locked


def test_record_truncates_redo_branch() -> None:
    history = HistoryManager()
    states = _record_chain(history, 3)
    history.undo()
    history.undo()
    assert len(history) == 3

    history.record(NotePlaceAction(grid_id="g", note_id="g_0_0", string_index=0, fret=0, note_name="E"),
                   states[1], states[0])
    assert len(history) == 2
    assert not history.can_redo()
    assert history.pointer == 1
    assert history.undo_description() == "Place E note at fret 0, string 1"


def test_cap_evicts_oldest() -> None:
    history = HistoryManager(max_history=3)
    states = _record_chain(history, 5)

    assert len(history) == 3
    assert history.pointer == 2
    assert [e.action.grid_id for e in history.entries] == ["grid_2", "grid_3", "grid_4"]

    undone = 0
    while history.can_undo():
        history.undo()
        undone += 1
    assert undone == 3
    assert history.redo().snapshot == states[3]


def test_invalid_cap() -> None:
    with pytest.raises(ValueError):
        HistoryManager(max_history=0)


def test_clear() -> None:
    history = HistoryManager()
    _record_chain(history, 2)
    history.clear()
    assert len(history) == 0
    assert history.pointer == -1
    assert not history.can_undo()
    assert not history.has_unsaved_changes()


def test_subscribers_receive_every_event() -> None:
    history = HistoryManager()
    events = []
    history.subscribe(events.append)

    _record_chain(history, 1)
    history.undo()
    history.redo()
    history.clear()

    assert [e.type for e in events] == ["record", "undo", "redo", "clear"]
    assert all(isinstance(e, HistoryEvent) for e in events)
    assert events[0].can_undo and not events[0].can_redo
    assert events[1].can_redo


def test_failing_subscriber_is_isolated(caplog) -> None:
    history = HistoryManager()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    history.subscribe(broken)
    history.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="history"):
        _record_chain(history, 1)

    assert len(received) == 1
    assert len(history) == 1
    assert "subscriber" in caplog.text


def test_unsubscribe() -> None:
    history = HistoryManager()
    events = []
    remove = history.subscribe(events.append)
    remove()
    assert not history.unsubscribe(events.append)
    _record_chain(history, 1)
    assert events == []


def test_unsaved_changes_tracking() -> None:
    history = HistoryManager()
    assert not history.has_unsaved_changes()

    _record_chain(history, 2)
    assert history.has_unsaved_changes()

    history.mark_saved()
    assert not history.has_unsaved_changes()

    history.undo()
    assert history.has_unsaved_changes()
    history.redo()
    assert not history.has_unsaved_changes()


def test_unsaved_after_saved_branch_discarded() -> None:
    history = HistoryManager()
    states = _record_chain(history, 2)
    history.mark_saved()
    history.undo()
    history.record(GridCreateAction(grid_id="other"), states[1], states[0])
    assert history.has_unsaved_changes()
    history.undo()
    history.redo()
    assert history.has_unsaved_changes()


def test_state_info_and_action_history() -> None:
    history = HistoryManager()
    _record_chain(history, 2)
    history.undo()

    info = history.state_info()
    assert info["canUndo"] and info["canRedo"]
    assert info["historyLength"] == 2
    assert info["historyIndex"] == 0
    assert info["undoDescription"] == "Create new grid grid_0"

    actions = history.action_history()
    assert [a["kind"] for a in actions] == ["grid_create", "grid_create"]
    assert [a["undoable"] for a in actions] == [True, False]
    assert actions[0]["id"] != actions[1]["id"]


def test_memory_stats() -> None:
    history = HistoryManager(max_history=10)
    assert history.memory_stats()["averageBytes"] == 0

    _record_chain(history, 3)
    stats = history.memory_stats()
    assert stats["entries"] == 3
    assert stats["maxHistory"] == 10
    assert stats["totalBytes"] > 0
    assert stats["averageBytes"] == stats["totalBytes"] // 3


def test_export_and_import_history() -> None:
    history = HistoryManager()
    states = _record_chain(history, 3)
    history.undo()

    dump = json.loads(json.dumps(history.export_history()))
    assert dump["version"] == "1.0"
    assert dump["currentIndex"] == 1
    assert dump["maxHistory"] == 100
    assert [e["action"]["kind"] for e in dump["history"]] == ["grid_create"] * 3

    restored = HistoryManager()
    events = []
    restored.subscribe(events.append)
    assert restored.import_history(dump)
    assert [e.type for e in events] == ["import"]
    assert events[0].can_undo and events[0].can_redo

    assert restored.pointer == 1
    assert restored.has_unsaved_changes()
    assert restored.current_snapshot() == states[2]
    assert restored.redo_description() == "Create new grid grid_2"
    assert restored.redo().snapshot == states[3]
    assert restored.undo().snapshot == states[2]

    action = NotePlaceAction(grid_id="grid_0", note_id="grid_0_0_0", string_index=0,
                             fret=0, note_name="E")
    entry = restored.record(action, states[2], states[0])
    assert entry.id == "action_4"


def test_import_history_rejects_bad_dumps() -> None:
    source = HistoryManager()
    _record_chain(source, 2)
    dump = source.export_history()

    history = HistoryManager()
    states = _record_chain(history, 1)
    events = []
    history.subscribe(events.append)

    assert not history.import_history({**dump, "version": "2.0"})
    assert not history.import_history({**dump, "currentIndex": 2})
    broken = json.loads(json.dumps(dump))
    broken["history"][1]["action"]["kind"] = "paint_fret"
    assert not history.import_history(broken)
    assert not HistoryManager(max_history=1).import_history(dump)

    assert events == []
    assert len(history) == 1
    assert history.undo().snapshot == states[0]
