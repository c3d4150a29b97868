from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from rules_check.models import Rule, TargetFile


@dataclass(frozen=True)
class Match:
    start: int
    end: int


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detector over one file.

    ``violations`` are the offsets that break the rule; ``file_level`` marks a
    violation that belongs to the whole file (an absent required pattern).
    ``error`` is set instead when the detector could not run.
    """

    violations: tuple[Match, ...] = ()
    file_level: bool = False
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and not self.violations and not self.file_level


class Detector(ABC):
    @abstractmethod
    def detect(self, rule: Rule, target: TargetFile) -> DetectionResult:
        raise NotImplementedError
