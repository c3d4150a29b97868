from __future__ import annotations

from rules_check.detectors.base import DetectionResult, Detector, Match
from rules_check.detectors.regex import RegexFlagDetector
from rules_check.detectors.substring import MustContainDetector, MustNotContainDetector
from rules_check.models import DetectorKind


DETECTORS: dict[DetectorKind, type[Detector]] = {
    DetectorKind.MUST_NOT_CONTAIN: MustNotContainDetector,
    DetectorKind.MUST_CONTAIN: MustContainDetector,
    DetectorKind.REGEX_FLAG: RegexFlagDetector,
}


def build_detector(kind: DetectorKind) -> Detector:
    try:
        detector_cls = DETECTORS[DetectorKind(kind)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported detector kind: {kind}") from exc
    return detector_cls()


__all__ = ["DETECTORS", "DetectionResult", "Detector", "Match", "build_detector"]
