"""Exceptions raised while scaffolding a project."""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for every fatal scaffolding failure."""


class ProjectExistsError(ScaffoldError):
    """Raised when the target project directory already exists."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Project directory already exists: {path}")


class CommandError(ScaffoldError):
    """Raised when a fatal external command fails."""

    def __init__(self, message: str, command: str = "", returncode: int = 1, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class InvalidSelectionError(ScaffoldError):
    """Raised when a database kind or combination has no generator."""


class PhaseOrderError(ScaffoldError):
    """Raised when an assembly phase is entered twice or out of order."""
