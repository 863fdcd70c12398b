"""Exceptions shared by the pgcall modules.

Every error raised on purpose derives from PgcallError so the CLI can
report it with a single handler. I/O failures are left as OSError.
"""

from __future__ import annotations

from typing import Sequence


class PgcallError(Exception):
    """Base exception for pgcall operations."""


class SchemaError(PgcallError):
    """Raised when a schema cannot be emitted for a function."""


class MissingTableOfError(SchemaError):
    """Raised when a TABLE argument carries no element type."""

    def __init__(self, message: str, argument: str, direction: str | None = None):
        self.message = message
        self.argument = argument
        self.direction = direction
        text = f"no table of data for {message}.{argument}"
        if direction:
            text = f"{direction}: {text}"
        super().__init__(text)

    def with_direction(self, direction: str) -> MissingTableOfError:
        """Return a copy that records which direction failed."""
        return MissingTableOfError(self.message, self.argument, direction)


class HarvestError(PgcallError):
    """Raised when function signatures cannot be read."""


class CompilerError(PgcallError):
    """Raised when the schema compiler fails."""

    def __init__(self, args: Sequence[str], returncode: int | None, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        cmd = " ".join(self.args_list)
        message = f"{cmd!r} exited with {returncode}"
        if returncode is None:
            message = f"{cmd!r} could not be started"
        if stderr:
            message += f"\n{stderr.rstrip()}"
        super().__init__(message)
