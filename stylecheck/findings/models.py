# Pydantic data models for diagnostics: Violation, RuleFailure, TextEdit,
# UnresolvedConflict, per-file reports and the run's exit status.

from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from stylecheck.model import Span


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.SUGGESTION: 1, Severity.WARNING: 2, Severity.ERROR: 3}


class ExitStatus(IntEnum):
    OK = 0
    VIOLATIONS = 1
    RULE_FAILURE = 2
    CANCELLED = 130


class Location(BaseModel):
    """Where in the source a diagnostic was reported (file, line, column)."""

    path: Path
    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(..., ge=1, description="1-based column number")
    end_line: Optional[int] = Field(None, ge=1)
    end_column: Optional[int] = Field(None, ge=1)
    snippet: Optional[str] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class TextEdit(BaseModel):
    """Replace the bytes in span with replacement (an empty span inserts)."""

    span: Span
    replacement: str

    model_config = ConfigDict(frozen=True)


class Violation(BaseModel):
    """A single instance of a rule being broken."""

    rule_id: str
    message: str
    location: Location
    span: Span
    severity: Severity = Severity.WARNING
    # The node the rule fired on; fix functions start from it. Never serialised.
    node: Any = Field(default=None, exclude=True, repr=False)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def path(self) -> Path:
        return self.location.path

    def key(self) -> tuple[str, str, Span, str]:
        """Identity used for deduplication: (rule id, file, span, message)."""
        return self.rule_id, str(self.path), self.span, self.message


class RuleFailure(BaseModel):
    """A rule's check or fix function raised; distinct from a style violation."""

    rule_id: str
    phase: str = Field(..., description="'check' or 'fix'")
    message: str
    location: Location
    span: Span

    model_config = ConfigDict(frozen=True)


class UnresolvedConflict(BaseModel):
    """An edit dropped because it overlaps an edit accepted earlier in the same pass."""

    violation: Violation
    edit: TextEdit
    blocked_by: TextEdit

    model_config = ConfigDict(frozen=True)


class FileError(BaseModel):
    """The file could not be read or parsed; it was excluded from evaluation."""

    message: str
    location: Location

    model_config = ConfigDict(frozen=True)


class FileReport(BaseModel):
    """Everything the run learned about one file."""

    path: Path
    violations: list[Violation] = Field(default_factory=list)
    failures: list[RuleFailure] = Field(default_factory=list)
    conflicts: list[UnresolvedConflict] = Field(default_factory=list)
    error: Optional[FileError] = None
    fixes_applied: int = 0
