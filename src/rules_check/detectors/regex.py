from __future__ import annotations

import re

from rules_check.detectors.base import DetectionResult, Detector, Match
from rules_check.models import Rule, TargetFile


class RegexFlagDetector(Detector):
    def detect(self, rule: Rule, target: TargetFile) -> DetectionResult:
        flags = re.MULTILINE | (re.IGNORECASE if rule.ignore_case else 0)
        try:
            pattern = re.compile(rule.pattern, flags)
        except re.error as exc:
            return DetectionResult(error=f"invalid regular expression {rule.pattern!r}: {exc}")

        found: list[Match] = []
        for match in pattern.finditer(target.content):
            # Zero-width matches carry no offending text.
            if match.start() == match.end():
                continue
            found.append(Match(start=match.start(), end=match.end()))
        return DetectionResult(violations=tuple(found))
