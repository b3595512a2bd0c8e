"""Provisioning step records and the small helpers used to run them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

_LABEL_MAX_CHARS = 40


class Phase(Enum):
    """The first-boot phase a VM is in, used to resume a failed run."""

    SSH_WAIT = "ssh_wait"
    FILES = "files"
    SETUP = "setup"
    PROVISION = "provision"


@dataclass
class ProvisionState:
    """Where first-boot provisioning currently is, or where it stopped."""

    phase: Phase
    index: int = 0
    total: int = 0
    error: str | None = None


@dataclass
class ProvisionStep:
    """One setup or provision step: an inline script or a script file."""

    source: str | None = None
    script: str | None = None
    run: str | None = None


@dataclass
class FileEntry:
    """A host file to copy into the VM."""

    source: str
    dest: str
    optional: bool = False


def step_label(step: ProvisionStep) -> str:
    """Return a short human-readable label for a step.

    The include source wins, then the script path, then the first line of
    the inline script, cut to 40 characters with a trailing ``...``.
    """
    if step.source is not None:
        return step.source
    if step.script is not None:
        return step.script
    if step.run is not None:
        first_line = step.run.split("\n", 1)[0].strip()
        if len(first_line) > _LABEL_MAX_CHARS:
            return first_line[:_LABEL_MAX_CHARS] + "..."
        return first_line
    return "unknown"


def shell_escape(s: str) -> str:
    """Single-quote a string for a POSIX shell, escaping embedded quotes."""
    escaped = s.replace("'", "'\\''")
    return f"'{escaped}'"


def parent_dir_of(path: str) -> str:
    """Return the part before the last ``/``, or ``"."`` if there is none."""
    head, sep, _ = path.rpartition("/")
    return head if sep else "."