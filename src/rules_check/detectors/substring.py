from __future__ import annotations

import re

from rules_check.detectors.base import DetectionResult, Detector, Match
from rules_check.models import Rule, TargetFile


def find_occurrences(content: str, needle: str, *, ignore_case: bool = False) -> list[Match]:
    if not needle:
        return []

    if ignore_case:
        pattern = re.compile(re.escape(needle), re.IGNORECASE)
        return [Match(start=item.start(), end=item.end()) for item in pattern.finditer(content)]

    matches: list[Match] = []
    start = content.find(needle)
    while start != -1:
        end = start + len(needle)
        matches.append(Match(start=start, end=end))
        start = content.find(needle, end)
    return matches


class MustNotContainDetector(Detector):
    def detect(self, rule: Rule, target: TargetFile) -> DetectionResult:
        found = find_occurrences(target.content, rule.pattern, ignore_case=rule.ignore_case)
        return DetectionResult(violations=tuple(found))


class MustContainDetector(Detector):
    def detect(self, rule: Rule, target: TargetFile) -> DetectionResult:
        found = find_occurrences(target.content, rule.pattern, ignore_case=rule.ignore_case)
        return DetectionResult(file_level=not found)
