from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

from rules_check.models import Rule


EXTENSION_LANGUAGE_MAP = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "javascript",
    ".tsx": "javascript",
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".sh": "shell",
    ".bash": "shell",
    ".sql": "sql",
    ".md": "markdown",
    ".markdown": "markdown",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
}

LANGUAGE_ALIASES = {
    "js": "javascript",
    "ts": "javascript",
    "typescript": "javascript",
    "node": "javascript",
    "py": "python",
    "md": "markdown",
    "yml": "yaml",
    "bash": "shell",
    "sh": "shell",
    "c#": "csharp",
}

DEFAULT_EXCLUDE_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    "build",
    "dist",
}


def normalize_language(tag: str) -> str:
    value = tag.strip().lower()
    return LANGUAGE_ALIASES.get(value, value)


def detect_language(path: str) -> str | None:
    return EXTENSION_LANGUAGE_MAP.get(PurePosixPath(path).suffix.lower())


def glob_matches(path: str, pattern: str) -> bool:
    if "/" not in pattern:
        return fnmatchcase(PurePosixPath(path).name, pattern) or fnmatchcase(path, pattern)

    anchored = pattern.lstrip("/")
    if fnmatchcase(path, anchored):
        return True
    # "**/x" should also match "x" at the root.
    while anchored.startswith("**/"):
        anchored = anchored[3:]
        if fnmatchcase(path, anchored):
            return True
    return False


def rule_applies(rule: Rule, path: str, language: str | None) -> bool:
    if not any(glob_matches(path, pattern) for pattern in rule.scope):
        return False
    if rule.language is not None and rule.language != language:
        return False
    return True


def applicable_rules(rules: list[Rule], path: str) -> list[Rule]:
    language = detect_language(path)
    return [rule for rule in rules if rule_applies(rule, path, language)]


def iter_target_files(root: str | Path, *, exclude_dirs: set[str] | None = None) -> list[str]:
    base = Path(root)
    exclude = DEFAULT_EXCLUDE_DIRS if exclude_dirs is None else exclude_dirs

    paths: list[str] = []
    for path in base.rglob("*"):
        relative = path.relative_to(base)
        if any(part in exclude for part in relative.parts[:-1]):
            continue
        if not path.is_file():
            continue
        paths.append(relative.as_posix())

    paths.sort()
    return paths
