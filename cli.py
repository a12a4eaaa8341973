#!/usr/bin/env python3
"""
Fretboard Canvas - Standalone Command Line Interface
====================================================

Command-line tool for fretboard documents. It loads a saved document,
runs the full validation pipeline, prints a summary of what it contains,
and writes the document back out in normalized form (derived intervals
recomputed, current schema version, fresh timestamps).

Usage Examples:
    python cli.py diagram.json                  # Normalized document to stdout
    python cli.py diagram.json clean.json       # Normalized document to file
    python cli.py --validate diagram.json       # Validation only
    python cli.py --verbose diagram.json        # Detailed logging
    python cli.py --help                        # Show help
"""

import sys
import json
import argparse
import logging
from pathlib import Path
from typing import Optional

from fretboard_constants import SCHEMA_VERSION
from music_theory import interval_label
from session import FretboardSession, history_cap_from_env

# ============================================================================
# Cross-Platform Compatibility Setup
# ============================================================================

def setup_cross_platform_environment():
    """Force UTF-8 console streams on Windows."""
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')

def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for CLI usage.

    Logs go to stderr; stdout is reserved for the normalized document.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Fretboard CLI starting (verbose={'on' if verbose else 'off'})")
    return logger

# ============================================================================
# File I/O Operations
# ============================================================================

def load_json_file(file_path: Path, logger: logging.Logger) -> Optional[dict]:
    """
    Load and parse a JSON file, pointing at the offending line on a
    syntax error.
    """
    logger.debug(f"Loading JSON file: {file_path}")

    if not file_path.exists():
        logger.error(f"Input file not found: {file_path}")
        print(f"Error: Input file '{file_path}' does not exist.", file=sys.stderr)
        return None

    if not file_path.is_file():
        logger.error(f"Path is not a file: {file_path}")
        print(f"Error: '{file_path}' is not a regular file.", file=sys.stderr)
        return None

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            text = f.read()
    except UnicodeDecodeError as e:
        logger.error(f"Unicode decoding failed: {e}")
        print(f"Error: Cannot read '{file_path}' - file encoding issue.", file=sys.stderr)
        print("  Try saving the file as UTF-8 encoding.", file=sys.stderr)
        return None
    except OSError as e:
        logger.error(f"Cannot read file: {e}")
        print(f"Error: Cannot read '{file_path}': {e}", file=sys.stderr)
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing failed: {e}")
        print(f"Error: Invalid JSON in '{file_path}':", file=sys.stderr)
        print(f"  Line {e.lineno}, Column {e.colno}: {e.msg}", file=sys.stderr)

        lines = text.splitlines()
        if 0 < e.lineno <= len(lines):
            print(f"  >>> {lines[e.lineno - 1].rstrip()}", file=sys.stderr)
            if e.colno > 0:
                print(" " * (e.colno - 1 + 6) + "^", file=sys.stderr)
        return None

    if isinstance(data, dict):
        logger.debug(f"Successfully loaded JSON with {len(data)} top-level keys")
    return data

def save_output_file(content: str, file_path: Path, logger: logging.Logger) -> bool:
    """Write content to a file, creating parent directories as needed."""
    logger.debug(f"Saving output to: {file_path}")

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.info(f"Document saved to: {file_path}")
        return True

    except PermissionError:
        logger.error(f"Permission denied writing to: {file_path}")
        print(f"Error: Permission denied writing to '{file_path}'.", file=sys.stderr)
        print("  Check file permissions and try again.", file=sys.stderr)
        return False

    except OSError as e:
        logger.error(f"OS error writing file: {e}")
        print(f"Error: Cannot write to '{file_path}': {e}", file=sys.stderr)
        return False

# ============================================================================
# Document Processing Pipeline
# ============================================================================

def print_error(error: dict) -> None:
    """Human-readable rendering of a structured error dict."""
    print("Validation Error:", file=sys.stderr)
    print(f"  Type: {error.get('errorType', 'unknown')}", file=sys.stderr)
    if error.get('field'):
        print(f"  Field: {error['field']}", file=sys.stderr)
    if error.get('invariant'):
        print(f"  Invariant: {error['invariant']}", file=sys.stderr)
    print(f"  Problem: {error['message']}", file=sys.stderr)
    if error.get('suggestion'):
        print(f"  Solution: {error['suggestion']}", file=sys.stderr)

def summarize(session: FretboardSession) -> str:
    """Short description of a loaded workspace."""
    model = session.workspace
    canvas = model.canvas
    lines = [
        f"Canvas: {canvas.orientation.value}, {canvas.dimensions.width:g}x{canvas.dimensions.height:g}"
        f"{' (locked)' if canvas.locked else ''}",
        f"Grids: {len(model.list_grids())}",
    ]

    for grid in model.list_grids():
        tuning = " ".join(t.note_name for t in grid.tuning)
        lines.append(
            f"  {grid.id}: frets {grid.fret_range.start}-{grid.fret_range.end}, "
            f"{grid.string_count} strings [{tuning}], {grid.orientation.value}, {len(grid.notes)} notes"
        )

    root = model.root_note
    if root is None:
        lines.append("Root note: none")
    else:
        root_note = model.all_notes()[root.note_id]
        lines.append(f"Root note: {root_note.pitch_class.name} ({root.note_id})")
        counts = {}
        for iv in model.intervals.values():
            label = interval_label(iv.kind)
            counts[label] = counts.get(label, 0) + 1
        for label, count in sorted(counts.items()):
            lines.append(f"  {label}: {count}")

    return "\n".join(lines)

def process_document(data: dict, logger: logging.Logger,
                     validate_only: bool = False) -> Optional[str]:
    """
    Validate a document and produce its normalized JSON.

    Returns:
        None on validation failure, "" in validate-only mode, else the
        normalized document
    """
    logger.debug("Running validation pipeline")
    session = FretboardSession(max_history=history_cap_from_env())
    result = session.load(data)

    if not result.success:
        logger.error("Validation failed")
        print_error(result.error)
        return None

    for warning in result.warnings:
        print(f"Warning: {warning['message']}", file=sys.stderr)

    logger.info("Validation passed successfully")
    print(summarize(session), file=sys.stderr)

    if validate_only:
        print("✓ Validation successful - document is valid", file=sys.stderr)
        return ""

    response = session.save()
    if not response.success:
        print_error(response.error)
        return None
    return response.content

# ============================================================================
# Command Line Interface
# ============================================================================

def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate, summarize and normalize fretboard canvas documents",
        epilog=f"""
Examples:
  %(prog)s diagram.json                  # Print normalized document
  %(prog)s diagram.json clean.json       # Save normalized document
  %(prog)s --validate diagram.json       # Check document validity only
  %(prog)s --verbose diagram.json        # Show detailed logging

Documents are written with schema version {SCHEMA_VERSION}.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'input_file',
        type=Path,
        help='Fretboard canvas document (.json)'
    )

    parser.add_argument(
        'output_file',
        type=Path,
        nargs='?',
        help='Output file for the normalized document (default: print to console)'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='Validate the document without writing output'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging for debugging'
    )

    parser.add_argument(
        '--version',
        action='version',
        version='Fretboard Canvas 0.1.0'
    )

    return parser

def main(argv=None):
    """
    Main CLI entry point.

    Exit codes:
    - 0: Success
    - 1: Input/output errors
    - 2: Validation errors
    """
    setup_cross_platform_environment()

    parser = create_argument_parser()
    args = parser.parse_args(argv)

    logger = setup_logging(args.verbose)

    logger.info(f"Loading input file: {args.input_file}")
    data = load_json_file(args.input_file, logger)
    if data is None:
        sys.exit(1)

    output = process_document(data, logger, args.validate)
    if output is None:
        sys.exit(2)

    if args.validate:
        logger.info("Validation completed successfully")
        sys.exit(0)

    elif args.output_file:
        if not save_output_file(output, args.output_file, logger):
            sys.exit(1)
        print(f"✓ Document written: {args.output_file}")
        sys.exit(0)

    else:
        print(output)
        logger.info("Document sent to console")
        sys.exit(0)

# ============================================================================
# Entry Point
# ============================================================================

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(3)
