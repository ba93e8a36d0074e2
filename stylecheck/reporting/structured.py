# Structured output: one JSON object per line, with a fixed field order so
# downstream tooling can diff runs.

from __future__ import annotations

from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from stylecheck.findings.models import (
    FileError,
    Location,
    RuleFailure,
    Severity,
    UnresolvedConflict,
    Violation,
)

SYNTAX_ERROR_ID = "syntax-error"
RULE_FAILURE_ID = "rule-failure"
CONFLICT_ID = "unresolved-conflict"


class StructuredRecord(BaseModel):
    """One diagnostic; serialised as file, startLine, startCol, endLine, endCol, ruleId, severity, message."""

    file: str
    start_line: int = Field(alias="startLine")
    start_col: int = Field(alias="startCol")
    end_line: int = Field(alias="endLine")
    end_col: int = Field(alias="endCol")
    rule_id: str = Field(alias="ruleId")
    severity: str
    message: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def sort_key(self) -> tuple:
        return (
            self.file,
            self.start_line,
            self.start_col,
            self.end_line,
            self.end_col,
            self.rule_id,
            self.message,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def _record(location: Location, rule_id: str, severity: str, message: str) -> StructuredRecord:
    return StructuredRecord(
        file=str(location.path),
        start_line=location.line,
        start_col=location.column,
        end_line=location.end_line or location.line,
        end_col=location.end_column or location.column,
        rule_id=rule_id,
        severity=severity,
        message=message,
    )


def violation_record(v: Violation) -> StructuredRecord:
    return _record(v.location, v.rule_id, v.severity.value, v.message)


def failure_record(f: RuleFailure) -> StructuredRecord:
    return _record(
        f.location,
        RULE_FAILURE_ID,
        Severity.ERROR.value,
        f"rule '{f.rule_id}' failed during {f.phase}: {f.message}",
    )


def error_record(e: FileError) -> StructuredRecord:
    return _record(e.location, SYNTAX_ERROR_ID, Severity.ERROR.value, e.message)


def conflict_record(c: UnresolvedConflict) -> StructuredRecord:
    return _record(
        c.violation.location,
        CONFLICT_ID,
        Severity.WARNING.value,
        f"fix for '{c.violation.rule_id}' was not applied: it overlaps another edit "
        f"at bytes {c.blocked_by.span.start}-{c.blocked_by.span.end}",
    )


def build_records(
    violations: Iterable[Violation],
    failures: Iterable[RuleFailure] = (),
    errors: Iterable[FileError] = (),
    conflicts: Iterable[UnresolvedConflict] = (),
) -> list[StructuredRecord]:
    """All diagnostics as records, grouped by file and ordered by position."""
    records = [violation_record(v) for v in violations]
    records += [failure_record(f) for f in failures]
    records += [error_record(e) for e in errors]
    records += [conflict_record(c) for c in conflicts]
    records.sort(key=StructuredRecord.sort_key)
    return records


def render_structured(records: Sequence[StructuredRecord]) -> str:
    """JSON Lines text for records (empty string when there are none)."""
    return "".join(record.to_json() + "\n" for record in records)
