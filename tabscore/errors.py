"""Exception hierarchy raised while compiling a score."""

from __future__ import annotations


class TabScoreError(ValueError):
    """
    Base class for every compilation error.

    Errors carry the source line/column of the directive that triggered them
    when the compiler knows it. A compilation pass that raises is aborted and
    the artist must be reset before it is reused.
    """

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def locate(self, line: int | None, column: int | None) -> None:
        """Attach a source location unless one is already known."""
        if self.line is None and line is not None:
            self.line = line
            self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} in line {self.line} column {self.column}"


class ConfigurationError(TabScoreError):
    """Unknown option key or invalid option value."""


class StructureError(TabScoreError):
    """Unknown directive kind, unknown command or misplaced element."""


class ResolutionError(TabScoreError):
    """A note position or duration that cannot be resolved."""


class ArityError(TabScoreError):
    """Not enough notes for a tuplet, annotation or fingering."""


class MiniLanguageError(TabScoreError):
    """Malformed fingering, stroke or text token."""
