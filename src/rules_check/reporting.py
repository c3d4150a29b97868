from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from rules_check.models import VIOLATION, Finding, LoadIssue, Report, Severity


EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG_ERROR = 2
EXIT_ABORTED = 130

_SEVERITY_RANK = {Severity.WARNING: 0, Severity.ERROR: 1}


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


def build_report(
    findings: list[Finding],
    *,
    threshold: Severity = Severity.WARNING,
    load_issues: list[LoadIssue] | tuple[LoadIssue, ...] = (),
    files_scanned: int = 0,
    rules_loaded: int = 0,
) -> Report:
    if load_issues:
        return Report(
            findings=(),
            errors=0,
            warnings=0,
            exit_code=EXIT_CONFIG_ERROR,
            load_issues=tuple(load_issues),
            files_scanned=0,
            rules_loaded=0,
        )

    minimum = _SEVERITY_RANK[Severity(threshold)]
    kept = sorted(
        (item for item in findings if _SEVERITY_RANK[item.severity] >= minimum),
        key=Finding.sort_key,
    )
    errors = sum(1 for item in kept if item.severity is Severity.ERROR)
    warnings = sum(1 for item in kept if item.severity is Severity.WARNING)

    return Report(
        findings=tuple(kept),
        errors=errors,
        warnings=warnings,
        exit_code=EXIT_VIOLATIONS if errors else EXIT_OK,
        files_scanned=files_scanned,
        rules_loaded=rules_loaded,
    )


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=True) + "\n"


def render_text(report: Report) -> str:
    lines: list[str] = []

    if report.load_issues:
        lines.append(f"Rule set failed to load ({len(report.load_issues)} issue(s)):")
        for issue in report.load_issues:
            detail = f"  {issue.kind}: {issue.path}: {issue.message}"
            lines.append(detail)
        lines.append("No files were checked.")
        return "\n".join(lines) + "\n"

    current_file: str | None = None
    for item in report.findings:
        if item.file_path != current_file:
            if current_file is not None:
                lines.append("")
            lines.append(item.file_path)
            current_file = item.file_path
        lines.append(_finding_line(item))

    if report.findings:
        lines.append("")

    lines.append(
        f"{report.errors} error(s), {report.warnings} warning(s) "
        f"in {report.files_scanned} file(s) checked against {report.rules_loaded} rule(s)."
    )
    return "\n".join(lines) + "\n"


FORMATTERS: dict[OutputFormat, Callable[[Report], str]] = {
    OutputFormat.TEXT: render_text,
    OutputFormat.JSON: render_json,
}


def render(report: Report, output_format: OutputFormat) -> str:
    return FORMATTERS[OutputFormat(output_format)](report)


def write_report(path: str | Path, rendered: str) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        handle.write(rendered)


def _finding_line(item: Finding) -> str:
    location = ""
    if item.line is not None:
        location = f"{item.line}:{item.column}" if item.column is not None else str(item.line)
    prefix = f"  {location:<9} " if location else "  " + " " * 10
    label = item.severity.value if item.kind == VIOLATION else f"{item.severity.value} ({item.kind})"
    text = f"{prefix}{label:<7} {item.rule_id}  {item.message}"
    if item.evidence:
        text += f"\n{' ' * 12}> {item.evidence}"
    return text
