#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fretboard Canvas - MCP Server Implementation
============================================

FastMCP server exposing a live fretboard workspace: create and configure
grids, place and cycle notes, pick a root note to see its intervals,
undo/redo, and save or load documents.

Every tool answers with a plain dict. Mutators include `success`, `status`
(ok, coordinate_occupied, not_found, locked, no_op, invalid), a message,
and the history state so a client can enable or disable undo/redo.

Usage:
    python mcp_server.py

For Claude Desktop integration, add to config:
{
  "mcpServers": {
    "fretboard-canvas": {
      "command": "python",
      "args": ["/path/to/mcp_server.py"]
    }
  }
}

Set PORT (or RENDER) to serve over SSE instead of stdio.
"""

import sys
import os
import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from fretboard_constants import SCHEMA_VERSION
from fretboard_models import create_schema
from fretboard_actions import ActionResult
from history import HistoryStep
from session import FretboardSession, history_cap_from_env

logger = logging.getLogger(__name__)

TOOL_NAMES = [
    "get_workspace",
    "create_grid",
    "update_grid_config",
    "set_string_tuning",
    "move_grid",
    "remove_grid",
    "click_note",
    "place_note",
    "remove_note",
    "set_root_note",
    "clear_root_note",
    "toggle_lock",
    "toggle_canvas_orientation",
    "clear_canvas",
    "toggle_grid_orientation",
    "undo",
    "redo",
    "save_document",
    "load_document",
    "get_document_schema",
]


class WorkspaceTools:
    """Tool implementations bound to one FretboardSession."""

    def __init__(self, session: FretboardSession):
        self.session = session

    def _result(self, result: ActionResult) -> Dict[str, Any]:
        response = result.to_dict()
        response["state"] = self.session.state_info()
        return response

    def _step(self, step: HistoryStep) -> Dict[str, Any]:
        return {
            "success": step.success,
            "status": step.status.value,
            "message": step.message,
            "state": self.session.state_info(),
        }

    # ========================================================================
    # Queries
    # ========================================================================

    def get_workspace(self) -> Dict[str, Any]:
        """
        Return the whole workspace as a document, plus layouts and history state.

        The `document` has the same shape as a saved file. `layouts` maps each
        grid id to its size, fret numbers, string labels, fret markers and the
        row/column of every note cell.
        """
        model = self.session.workspace
        layouts = {}
        for grid in model.list_grids():
            layouts[grid.id] = model.grid_layout(grid.id).model_dump(mode="json")
        return {
            "document": self.session.to_document(),
            "layouts": layouts,
            "state": self.session.state_info(),
        }

    def get_document_schema(self) -> Dict[str, Any]:
        """Get the JSON Schema of saved fretboard documents."""
        return {
            "schema": create_schema(),
            "version": SCHEMA_VERSION,
        }

    # ========================================================================
    # Grids
    # ========================================================================

    def create_grid(self, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Add a fretboard grid to the canvas.

        Args:
            config: Optional settings, all keys optional:
                start_fret (0-24), end_fret (0-24), string_count (4-12),
                tuning (note names low string first, e.g. ["E","A","D","G","B","E"]),
                orientation ("vertical" | "horizontal"), position ({"x": .., "y": ..}).
                Out-of-range numbers are clamped. Defaults: frets 0-7, 6 strings,
                standard tuning, vertical.

        Returns:
            Result with the new `gridId` on success
        """
        return self._result(self.session.create_grid(config))

    def update_grid_config(self, grid_id: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Change a grid's fret range, string count, tuning or orientation.

        Notes that fall outside the new range are removed. Changing the string
        count resets the tuning to standard unless a tuning is supplied.
        """
        return self._result(self.session.update_grid_config(grid_id, config))

    def set_string_tuning(self, grid_id: str, string_index: int, note_name: str) -> Dict[str, Any]:
        """Retune one string (0 = lowest string) to a note name such as "D" or "F#"."""
        return self._result(self.session.set_string_tuning(grid_id, string_index, note_name))

    def move_grid(self, grid_id: str, x: float, y: float) -> Dict[str, Any]:
        """Move a grid; the position is clamped to keep it on the page."""
        return self._result(self.session.move_grid(grid_id, {"x": x, "y": y}))

    def remove_grid(self, grid_id: str) -> Dict[str, Any]:
        """Delete a grid and all of its notes."""
        return self._result(self.session.remove_grid(grid_id))

    def toggle_grid_orientation(self, grid_id: str) -> Dict[str, Any]:
        """Switch a grid between vertical and horizontal."""
        return self._result(self.session.toggle_grid_orientation(grid_id))

    # ========================================================================
    # Notes
    # ========================================================================

    def click_note(self, grid_id: str, string_index: int, fret: int) -> Dict[str, Any]:
        """
        Click a fretboard cell.

        An empty cell gets a chromatic note. Clicking an existing note cycles
        its colour group: chromatic -> group-1 -> group-2 -> group-3 -> group-4,
        and one more click removes it.
        """
        return self._result(self.session.click(grid_id, string_index, fret))

    def place_note(self, grid_id: str, string_index: int, fret: int) -> Dict[str, Any]:
        """Place a note at an empty (string, fret) cell; string 0 is the lowest."""
        return self._result(self.session.place_note(grid_id, string_index, fret))

    def remove_note(self, note_id: str) -> Dict[str, Any]:
        """Remove a note by id ("<gridId>_<stringIndex>_<fret>")."""
        return self._result(self.session.remove_note(note_id))

    def set_root_note(self, grid_id: str, note_id: str) -> Dict[str, Any]:
        """Make a placed note the root; every other note gets its interval computed."""
        return self._result(self.session.set_root_note({"grid_id": grid_id, "note_id": note_id}))

    def clear_root_note(self) -> Dict[str, Any]:
        """Remove the root note designation and its interval highlights."""
        return self._result(self.session.clear_root_note())

    # ========================================================================
    # Canvas
    # ========================================================================

    def toggle_lock(self) -> Dict[str, Any]:
        """Lock or unlock the canvas. While locked, every other edit is refused."""
        return self._result(self.session.toggle_lock())

    def toggle_canvas_orientation(self) -> Dict[str, Any]:
        """Switch the page between portrait and landscape."""
        return self._result(self.session.toggle_orientation())

    def clear_canvas(self) -> Dict[str, Any]:
        """Remove every grid and the root note. Undoable like any other edit."""
        return self._result(self.session.clear_all())

    # ========================================================================
    # History and documents
    # ========================================================================

    def undo(self) -> Dict[str, Any]:
        """Undo the most recent change."""
        return self._step(self.session.undo())

    def redo(self) -> Dict[str, Any]:
        """Redo the most recently undone change."""
        return self._step(self.session.redo())

    def save_document(self, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Serialize the workspace.

        Args:
            path: Optional .json file to write; without it the document is
                only returned in `content`
        """
        if path:
            response = self.session.save_to_path(path)
        else:
            response = self.session.save()
        return response.model_dump(mode="json")

    def load_document(self, document: Optional[str] = None, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace the workspace with a saved document (JSON text or a .json path).

        Nothing changes if the document is invalid. A successful load clears
        the undo history.
        """
        if document is None and not path:
            return {
                "success": False,
                "error": {
                    "isError": True,
                    "errorType": "validation_error",
                    "message": "Provide either document or path",
                    "suggestion": "Pass the JSON text of a saved document, or the path to one",
                },
            }

        if path:
            result = self.session.load_from_path(path)
        else:
            result = self.session.load(document)

        return {
            "success": result.success,
            "filename": result.filename,
            "error": result.error,
            "warnings": result.warnings,
            "state": self.session.state_info(),
        }


# ============================================================================
#  MCP Server Setup
# ============================================================================

def build_server(session: Optional[FretboardSession] = None) -> FastMCP:
    """Create a FastMCP server whose tools operate on one session."""
    session = session or FretboardSession(max_history=history_cap_from_env())
    tools = WorkspaceTools(session)

    mcp = FastMCP("Fretboard Canvas")
    for name in TOOL_NAMES:
        mcp.tool(getattr(tools, name))
    logger.debug(f"Registered {len(TOOL_NAMES)} tools")
    return mcp


def main():
    """Start the MCP server in appropriate mode based on environment."""
    # stdout is reserved for the MCP JSON-RPC protocol
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )

    mcp = build_server()

    is_production = any([
        os.getenv('RENDER'),
        os.getenv('PORT'),
    ])

    try:
        if is_production:
            port = int(os.environ.get("PORT", 8001))
            logger.info(f"Starting Fretboard Canvas MCP server in SSE mode on port {port}")
            mcp.run(transport='sse', host="0.0.0.0", port=port)
        else:
            logger.info("Starting Fretboard Canvas MCP server in stdio mode")
            mcp.run()
    except KeyboardInterrupt:
        logger.info("MCP server stopped by user")


if __name__ == "__main__":
    main()
