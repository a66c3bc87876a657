#!/usr/bin/env python3
"""
Remediation policy for binary keys

Collapses the --dry / --remove flags into a single run mode and maps each
key classification to the action the scanner takes for it.
"""

from enum import Enum

from key_analyzer import Classification


class Mode(Enum):
    """Remediation mode, fixed for a whole run"""

    REPORT_ONLY = "report-only"
    DRY_RUN = "dry-run"
    DELETE = "delete"


class Action(Enum):
    """What the scanner does with a single key"""

    SKIP = "skip"
    REPORT_ONLY = "report-only"
    SIMULATE_DELETE = "simulate-delete"
    DELETE = "delete"


DRY_RUN_OVERRIDE_NOTE = "Note: --dry overrides --remove; performing dry-run only"

_BINARY_ACTIONS = {
    Mode.REPORT_ONLY: Action.REPORT_ONLY,
    Mode.DRY_RUN: Action.SIMULATE_DELETE,
    Mode.DELETE: Action.DELETE,
}


def resolve_mode(dry_run_requested: bool, delete_requested: bool) -> Mode:
    """Resolve the effective mode; a dry run always wins over delete."""
    if dry_run_requested:
        return Mode.DRY_RUN
    if delete_requested:
        return Mode.DELETE
    return Mode.REPORT_ONLY


def needs_override_note(dry_run_requested: bool, delete_requested: bool) -> bool:
    """True when both flags were given and the operator should be told which won."""
    return dry_run_requested and delete_requested


def decide(mode: Mode, classification: Classification) -> Action:
    """Decide the action for a key of the given classification under *mode*."""
    if classification is Classification.TEXT:
        return Action.SKIP
    return _BINARY_ACTIONS[mode]
