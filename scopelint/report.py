"""Aggregate findings across files and render the unsuppressed ones."""

import threading
from collections.abc import Iterable

from scopelint import suppression
from scopelint.rules import base

# Findings about the directives themselves cannot be silenced by directives.
_UNSUPPRESSIBLE: frozenset[base.RuleKind] = frozenset({base.RuleKind.DIRECTIVE})


def _sort_key(finding: base.Finding) -> tuple[str, int, int, str, str]:
    return (
        finding.path,
        finding.loc.start,
        finding.loc.end,
        finding.rule.value,
        finding.message,
    )


class Report:
    """An append-only collection of findings for one run.

    Each finding is resolved against the SuppressionSet attached for its
    path. Suppression is decided when the report is queried, never stored
    on the finding. Insertion and suppression lookups take a lock so worker
    threads may share one report.
    """

    def __init__(self) -> None:
        self._findings: list[base.Finding] = []
        self._suppressions: dict[str, suppression.SuppressionSet] = {}
        self._lock = threading.Lock()

    def attach(self, path: str, suppressions: suppression.SuppressionSet) -> None:
        """Register the suppression set that findings for *path* resolve against."""
        with self._lock:
            self._suppressions[path] = suppressions

    def add(self, finding: base.Finding) -> None:
        """Append a single finding."""
        with self._lock:
            self._findings.append(finding)

    def add_many(self, findings: Iterable[base.Finding]) -> None:
        """Append every finding in *findings*."""
        with self._lock:
            self._findings.extend(findings)

    def merge(self, other: "Report") -> None:
        """Fold another report's findings and suppression sets into this one."""
        with other._lock:
            findings = list(other._findings)
            suppressions = dict(other._suppressions)
        with self._lock:
            self._findings.extend(findings)
            self._suppressions.update(suppressions)

    @property
    def findings(self) -> tuple[base.Finding, ...]:
        """All findings, suppressed or not, in insertion order."""
        with self._lock:
            return tuple(self._findings)

    def _suppressions_for(self, path: str) -> suppression.SuppressionSet | None:
        with self._lock:
            return self._suppressions.get(path)

    def is_disabled(self, finding: base.Finding) -> bool:
        """Return True if *finding* sits in a format-disabled range of its file."""
        suppressions = self._suppressions_for(finding.path)
        return suppressions is not None and suppressions.is_format_disabled(
            finding.loc
        )

    def is_ignored(self, finding: base.Finding) -> bool:
        """Return True if a lint or rule-specific range of its file covers *finding*."""
        suppressions = self._suppressions_for(finding.path)
        if suppressions is None:
            return False
        loc = finding.loc
        return suppressions.is_lint_ignored(loc) or suppressions.is_rule_ignored(
            loc, finding.rule
        )

    def is_suppressed(self, finding: base.Finding) -> bool:
        """Return True if the mechanism that applies to the finding's rule covers it."""
        if finding.rule in _UNSUPPRESSIBLE:
            return False
        if finding.rule is base.RuleKind.FORMATTING:
            return self.is_disabled(finding)
        return self.is_ignored(finding)

    def unsuppressed(self) -> list[base.Finding]:
        """Return the findings to surface, in deterministic order."""
        return sorted(
            (finding for finding in self.findings if not self.is_suppressed(finding)),
            key=_sort_key,
        )

    def is_valid(self) -> bool:
        """Return True if every finding is suppressed."""
        return all(self.is_suppressed(finding) for finding in self.findings)

    def render(self) -> str:
        """Return one line per unsuppressed finding, newline terminated."""
        return "".join(f"{finding.description()}\n" for finding in self.unsuppressed())

    def __str__(self) -> str:
        return self.render()
