from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class DetectorKind(str, Enum):
    MUST_NOT_CONTAIN = "must-not-contain"
    MUST_CONTAIN = "must-contain"
    REGEX_FLAG = "regex-flag"


# Finding kinds. Violations come from detectors, the others from failures
# isolated to a single (rule, file) pair.
VIOLATION = "violation"
DETECTOR_ERROR = "DetectorError"
READ_ERROR = "ReadError"

# Load issue kinds.
MALFORMED_RULE = "MalformedRule"
DUPLICATE_RULE_ID = "DuplicateRuleId"
LOAD_ERROR = "LoadError"


@dataclass(frozen=True)
class Rule:
    id: str
    title: str
    detector: DetectorKind
    pattern: str
    message: str
    scope: tuple[str, ...] = ("*",)
    language: str | None = None
    severity: Severity = Severity.ERROR
    ignore_case: bool = False
    source: str | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "scope": list(self.scope),
            "language": self.language,
            "detector": self.detector.value,
            "pattern": self.pattern,
            "severity": self.severity.value,
            "message": self.message,
            "ignore_case": self.ignore_case,
        }


@dataclass(frozen=True)
class TargetFile:
    path: str
    language: str | None
    content: str


@dataclass(frozen=True)
class Finding:
    rule_id: str
    file_path: str
    line: int | None
    message: str
    severity: Severity
    kind: str = VIOLATION
    column: int | None = None
    evidence: str = ""

    def sort_key(self) -> tuple:
        return (
            self.file_path,
            self.rule_id,
            self.line or 0,
            self.column or 0,
            self.kind,
            self.message,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "filePath": self.file_path,
            "line": self.line,
            "column": self.column,
            "severity": self.severity.value,
            "kind": self.kind,
            "message": self.message,
            "evidence": self.evidence,
        }


@dataclass(frozen=True)
class LoadIssue:
    kind: str
    path: str
    message: str
    other_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "path": self.path, "message": self.message}
        if self.other_path is not None:
            payload["otherPath"] = self.other_path
        return payload


@dataclass(frozen=True)
class Report:
    findings: tuple[Finding, ...]
    errors: int
    warnings: int
    exit_code: int
    load_issues: tuple[LoadIssue, ...] = ()
    files_scanned: int = 0
    rules_loaded: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "findings": [item.to_dict() for item in self.findings],
            "summary": {"errors": self.errors, "warnings": self.warnings},
            "exitCode": self.exit_code,
        }
        if self.load_issues:
            payload["loadErrors"] = [item.to_dict() for item in self.load_issues]
        return payload
