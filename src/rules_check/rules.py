from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from rules_check.errors import ConfigError, RuleLoadError
from rules_check.files import DEFAULT_READ_TIMEOUT_SECONDS, FileReadError, TimedReader
from rules_check.models import (
    DUPLICATE_RULE_ID,
    LOAD_ERROR,
    MALFORMED_RULE,
    DetectorKind,
    LoadIssue,
    Rule,
    Severity,
)
from rules_check.scope import normalize_language


logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}
YAML_SUFFIXES = {".yml", ".yaml"}
FRONT_MATTER_DELIMITER = "---"


class MalformedRuleError(ValueError):
    pass


def discover_rule_documents(root: str | Path) -> list[Path]:
    """Return rule documents under ``root`` in discovery order.

    Discovery order is lexicographic by POSIX path relative to ``root``;
    hidden directories are skipped.
    """
    base = Path(root)
    found: list[tuple[str, Path]] = []
    for path in base.rglob("*"):
        relative = path.relative_to(base)
        if any(part.startswith(".") for part in relative.parts[:-1]):
            continue
        if not path.is_file():
            continue
        if path.suffix.lower() not in MARKDOWN_SUFFIXES | YAML_SUFFIXES:
            continue
        found.append((relative.as_posix(), path))

    found.sort(key=lambda item: item[0])
    return [path for _, path in found]


def split_front_matter(text: str) -> tuple[str | None, str]:
    lines = text.lstrip("\ufeff").splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() in (FRONT_MATTER_DELIMITER, "..."):
            return "".join(lines[1:index]), "".join(lines[index + 1 :])

    raise MalformedRuleError("front-matter is not terminated by '---'")


def parse_rule_document(text: str, source: str, *, yaml_only: bool = False) -> Rule | None:
    """Parse one rule document.

    Returns None for Markdown prose without a front-matter header. Raises
    MalformedRuleError when the header exists but cannot form a Rule.
    """
    if yaml_only:
        header, body = text, ""
    else:
        header, body = split_front_matter(text)
        if header is None:
            return None

    try:
        raw = yaml.safe_load(header)
    except yaml.YAMLError as exc:
        raise MalformedRuleError(f"invalid YAML header: {exc}") from exc

    if not isinstance(raw, dict):
        raise MalformedRuleError("rule header must be a mapping")

    return _rule_from_mapping(raw, body, source)


def dump_rule_document(rule: Rule, body: str = "") -> str:
    header: dict[str, Any] = {
        "id": rule.id,
        "title": rule.title,
        "scope": rule.scope[0] if len(rule.scope) == 1 else list(rule.scope),
        "detector": rule.detector.value,
        "pattern": rule.pattern,
        "severity": rule.severity.value,
        "message": rule.message,
    }
    if rule.language is not None:
        header["language"] = rule.language
    if rule.ignore_case:
        header["ignore_case"] = True

    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True)
    text = f"{FRONT_MATTER_DELIMITER}\n{dumped}{FRONT_MATTER_DELIMITER}\n"
    if body:
        text += "\n" + body.rstrip("\n") + "\n"
    return text


def load_rules(
    root: str | Path,
    *,
    timeout: float = DEFAULT_READ_TIMEOUT_SECONDS,
) -> list[Rule]:
    rules_root = Path(root)
    if not rules_root.is_dir():
        raise ConfigError(f"Rules directory not found: {rules_root}")

    rules: list[Rule] = []
    issues: list[LoadIssue] = []
    seen: dict[str, str] = {}

    with TimedReader(timeout=timeout) as reader:
        for path in discover_rule_documents(rules_root):
            source = path.as_posix()
            try:
                text = reader.read_bytes(path).decode("utf-8-sig")
            except FileReadError as exc:
                issues.append(LoadIssue(kind=LOAD_ERROR, path=source, message=exc.reason))
                continue
            except UnicodeDecodeError as exc:
                issues.append(LoadIssue(kind=LOAD_ERROR, path=source, message=f"not valid UTF-8: {exc.reason}"))
                continue

            try:
                rule = parse_rule_document(
                    text,
                    source,
                    yaml_only=path.suffix.lower() in YAML_SUFFIXES,
                )
            except MalformedRuleError as exc:
                issues.append(LoadIssue(kind=MALFORMED_RULE, path=source, message=str(exc)))
                continue

            if rule is None:
                logger.debug("Skipping %s: no front-matter header", source)
                continue

            if rule.id in seen:
                issues.append(
                    LoadIssue(
                        kind=DUPLICATE_RULE_ID,
                        path=source,
                        message=f"rule id '{rule.id}' is already defined in {seen[rule.id]}",
                        other_path=seen[rule.id],
                    )
                )
                continue

            seen[rule.id] = source
            rules.append(rule)

    if issues:
        for issue in issues:
            logger.error("%s in %s: %s", issue.kind, issue.path, issue.message)
        raise RuleLoadError(issues)

    logger.debug("Loaded %d rule(s) from %s", len(rules), rules_root)
    return rules


def _rule_from_mapping(raw: dict, body: str, source: str) -> Rule:
    rule_id = _optional_str(raw.get("id"))
    if rule_id is None:
        raise MalformedRuleError("rule is missing 'id'")

    pattern = raw.get("pattern")
    if pattern is None or (isinstance(pattern, str) and not pattern):
        raise MalformedRuleError(f"rule '{rule_id}' is missing 'pattern'")
    if not isinstance(pattern, (str, int, float)):
        raise MalformedRuleError(f"rule '{rule_id}' has a non-scalar 'pattern'")

    detector_raw = str(raw.get("detector", DetectorKind.MUST_NOT_CONTAIN.value)).strip().lower()
    try:
        detector = DetectorKind(detector_raw)
    except ValueError as exc:
        choices = ", ".join(kind.value for kind in DetectorKind)
        raise MalformedRuleError(f"rule '{rule_id}' has unknown detector '{detector_raw}' (expected one of: {choices})") from exc

    severity_raw = str(raw.get("severity", Severity.ERROR.value)).strip().lower()
    try:
        severity = Severity(severity_raw)
    except ValueError as exc:
        raise MalformedRuleError(f"rule '{rule_id}' has unknown severity '{severity_raw}'") from exc

    scope = _scope_tuple(raw.get("scope"), rule_id)
    language = _optional_str(raw.get("language"))
    title = _optional_str(raw.get("title")) or _first_heading(body) or rule_id
    message = _optional_str(raw.get("message")) or _first_paragraph_line(body) or title

    return Rule(
        id=rule_id,
        title=title,
        detector=detector,
        pattern=str(pattern),
        message=message,
        scope=scope,
        language=normalize_language(language) if language else None,
        severity=severity,
        ignore_case=_ignore_case(raw.get("ignore_case", False), rule_id),
        source=source,
    )


def _scope_tuple(value: object, rule_id: str) -> tuple[str, ...]:
    if value is None:
        return ("*",)
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, list):
        items = [str(item) for item in value]
    else:
        raise MalformedRuleError(f"rule '{rule_id}' scope must be a string or a list of strings")

    cleaned = tuple(item.strip() for item in items if item.strip())
    if not cleaned:
        raise MalformedRuleError(f"rule '{rule_id}' has an empty scope")
    return cleaned


def _ignore_case(value: object, rule_id: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedRuleError(f"rule '{rule_id}' ignore_case must be true or false, got {value!r}")
    return value


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_heading(body: str) -> str | None:
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            return stripped.lstrip("#").strip() or None
    return None


def _first_paragraph_line(body: str) -> str | None:
    in_fence = False
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence or not stripped or stripped.startswith("#"):
            continue
        return stripped
    return None
