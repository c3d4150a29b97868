from __future__ import annotations

from rules_check.models import LoadIssue


class ConfigError(ValueError):
    pass


class RuleLoadError(ValueError):
    """Raised once per load when any rule document was unusable.

    Carries every issue found during the pass, not just the first one.
    """

    def __init__(self, issues: list[LoadIssue]):
        self.issues = tuple(issues)
        kinds = sorted({issue.kind for issue in self.issues})
        super().__init__(f"{len(self.issues)} rule load issue(s): {', '.join(kinds)}")


class AbortedError(RuntimeError):
    pass
