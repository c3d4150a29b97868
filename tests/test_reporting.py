import json

from rules_check.models import Finding, LoadIssue, Severity
from rules_check.reporting import OutputFormat, build_report, render, render_json, render_text


def _finding(path, rule_id, line=None, severity=Severity.ERROR, kind="violation") -> Finding:
    return Finding(
        rule_id=rule_id,
        file_path=path,
        line=line,
        column=1 if line else None,
        message=f"{rule_id} message",
        severity=severity,
        kind=kind,
    )


def test_findings_are_sorted_by_file_then_rule():
    findings = [
        _finding("src/b.js", "a-rule", 3),
        _finding("src/a.js", "z-rule", 1),
        _finding("src/a.js", "a-rule", 9),
        _finding("src/a.js", "a-rule", 2),
    ]

    report = build_report(findings)

    assert [(item.file_path, item.rule_id, item.line) for item in report.findings] == [
        ("src/a.js", "a-rule", 2),
        ("src/a.js", "a-rule", 9),
        ("src/a.js", "z-rule", 1),
        ("src/b.js", "a-rule", 3),
    ]


def test_exit_code_ignores_warnings():
    warnings_only = build_report([_finding("a.py", "w", 1, Severity.WARNING)])
    with_error = build_report([_finding("a.py", "w", 1, Severity.WARNING), _finding("a.py", "e", 2)])

    assert (warnings_only.errors, warnings_only.warnings, warnings_only.exit_code) == (0, 1, 0)
    assert (with_error.errors, with_error.warnings, with_error.exit_code) == (1, 1, 1)


def test_empty_run_is_clean():
    report = build_report([])

    assert report.findings == ()
    assert report.exit_code == 0
    assert json.loads(render_json(report)) == {
        "findings": [],
        "summary": {"errors": 0, "warnings": 0},
        "exitCode": 0,
    }


def test_error_threshold_drops_warnings():
    findings = [_finding("a.py", "w", 1, Severity.WARNING), _finding("a.py", "e", 2)]

    report = build_report(findings, threshold=Severity.ERROR)

    assert [item.rule_id for item in report.findings] == ["e"]
    assert (report.errors, report.warnings) == (1, 0)


def test_json_output_shape():
    report = build_report([_finding("CHANGELOG.md", "require-changelog-entry")], rules_loaded=1, files_scanned=1)

    payload = json.loads(render(report, OutputFormat.JSON))

    assert payload["exitCode"] == 1
    assert payload["summary"] == {"errors": 1, "warnings": 0}
    assert payload["findings"] == [
        {
            "ruleId": "require-changelog-entry",
            "filePath": "CHANGELOG.md",
            "line": None,
            "column": None,
            "severity": "error",
            "kind": "violation",
            "message": "require-changelog-entry message",
            "evidence": "",
        }
    ]
    assert "loadErrors" not in payload


def test_load_issues_replace_findings_and_exit_with_two():
    issue = LoadIssue(
        kind="DuplicateRuleId",
        path="rules/b.md",
        message="rule id 'same' is already defined in rules/a.md",
        other_path="rules/a.md",
    )

    report = build_report([_finding("a.py", "e", 1)], load_issues=[issue])

    assert report.findings == ()
    assert report.exit_code == 2
    text = render_text(report)
    assert "Rule set failed to load" in text
    assert "DuplicateRuleId: rules/b.md" in text
    payload = json.loads(render_json(report))
    assert payload["loadErrors"][0]["otherPath"] == "rules/a.md"
    assert payload["findings"] == []


def test_text_output_groups_by_file():
    report = build_report(
        [_finding("b.js", "r1", 4), _finding("a.js", "r2", 1, Severity.WARNING), _finding("a.js", "r3", kind="ReadError")],
        files_scanned=2,
        rules_loaded=3,
    )

    text = render_text(report)

    assert text.index("a.js") < text.index("b.js")
    assert "error (ReadError) r3" in text
    assert text.rstrip().endswith("2 error(s), 1 warning(s) in 2 file(s) checked against 3 rule(s).")


def test_rendering_is_deterministic():
    findings = [_finding(f"f{index % 4}.js", f"r{index % 3}", index) for index in range(12)]

    first = render_json(build_report(findings))
    second = render_json(build_report(list(reversed(findings))))

    assert first == second
