# Exception hierarchy. Style violations and rule crashes are diagnostics
# (see findings/models.py), not exceptions; these are raised for input the
# engine cannot work with at all.

from __future__ import annotations

from pathlib import Path
from typing import Optional


class StyleCheckError(Exception):
    """Base class for all stylecheck errors."""


class SourceSyntaxError(StyleCheckError):
    """
    The file could not be tokenized into balanced, well-formed declarations.

    Fatal for that file only: the runner reports it and moves on.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Path] = None,
        line: int = 1,
        column: int = 1,
        offset: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        self.offset = offset

    def __str__(self) -> str:
        where = f"{self.path}:" if self.path is not None else ""
        return f"{where}{self.line}:{self.column}: {self.message}"


class ConfigError(StyleCheckError):
    """Invalid configuration; raised before any file is processed."""
