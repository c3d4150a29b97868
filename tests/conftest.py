from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml


class RuleWriter:
    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def write(self, name: str, body: str = "", **fields) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        header = yaml.safe_dump(fields, sort_keys=False)
        path.write_text(f"---\n{header}---\n{body}", encoding="utf-8")
        return path


@pytest.fixture
def rules_dir(tmp_path: Path) -> RuleWriter:
    return RuleWriter(tmp_path / "rules")


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    path = tmp_path / "target"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def reset_root_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
