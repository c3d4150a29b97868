from pathlib import Path

from rules_check.models import DetectorKind, Rule
from rules_check.scope import applicable_rules, detect_language, glob_matches, iter_target_files


def _rule(rule_id: str, scope=("*",), language=None) -> Rule:
    return Rule(
        id=rule_id,
        title=rule_id,
        detector=DetectorKind.MUST_NOT_CONTAIN,
        pattern="x",
        message=rule_id,
        scope=tuple(scope),
        language=language,
    )


def test_detect_language_by_extension():
    assert detect_language("src/app.js") == "javascript"
    assert detect_language("src/app.tsx") == "javascript"
    assert detect_language("backend/models.py") == "python"
    assert detect_language("Main.java") == "java"
    assert detect_language("Makefile") is None
    assert detect_language("notes.unknownext") is None


def test_glob_without_slash_matches_file_name_anywhere():
    assert glob_matches("src/models/order.js", "*.js")
    assert glob_matches("CHANGELOG.md", "CHANGELOG.md")
    assert not glob_matches("docs/CHANGELOG.md.bak", "CHANGELOG.md")
    assert not glob_matches("src/order.ts", "*.js")


def test_glob_with_slash_matches_relative_path():
    assert glob_matches("migrations/0001_init.py", "migrations/*.py")
    assert glob_matches("app/migrations/0001_init.py", "**/migrations/*.py")
    assert glob_matches("migrations/0001_init.py", "**/migrations/*.py")
    assert not glob_matches("app/migrations/0001_init.py", "migrations/*.py")


def test_language_tag_gates_rules():
    python_only = _rule("py-only", language="python")
    any_language = _rule("anything")

    assert applicable_rules([python_only, any_language], "backend/views.py") == [python_only, any_language]
    assert applicable_rules([python_only, any_language], "frontend/app.js") == [any_language]
    assert applicable_rules([python_only], "README") == []


def test_scope_is_a_hard_filter():
    js_rule = _rule("js", scope=("*.js",))
    backend_rule = _rule("backend", scope=("backend/*",))

    assert applicable_rules([js_rule, backend_rule], "backend/server.js") == [js_rule, backend_rule]
    assert applicable_rules([js_rule, backend_rule], "frontend/server.py") == []


def test_iter_target_files_is_sorted_and_skips_excluded_dirs(tmp_path: Path):
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "z.py").write_text("", encoding="utf-8")
    (tmp_path / "a.js").write_text("", encoding="utf-8")
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("", encoding="utf-8")

    assert iter_target_files(tmp_path) == ["a.js", "b/z.py"]
    assert iter_target_files(tmp_path, exclude_dirs=set()) == [
        ".git/HEAD",
        "a.js",
        "b/z.py",
        "node_modules/pkg/index.js",
    ]
