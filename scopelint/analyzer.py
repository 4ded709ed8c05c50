"""Orchestrates rule execution and suppression for Solidity files."""

import concurrent.futures
import dataclasses
import logging
import pathlib
import typing

from scopelint import config as scopelint_config
from scopelint import directives, parser, source, suppression
from scopelint import report as scopelint_report
from scopelint.rules import base

if typing.TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class FileResult:
    """Raw findings for one file, with the suppressions they resolve against."""

    path: str
    findings: tuple[base.Finding, ...]
    suppressions: suppression.SuppressionSet

    def to_report(self) -> scopelint_report.Report:
        """Return a single-file Report holding this result."""
        file_report = scopelint_report.Report()
        file_report.attach(self.path, self.suppressions)
        file_report.add_many(self.findings)
        return file_report


class Analyzer:
    """Runs a set of rules against a source file."""

    def __init__(self, rules: "Sequence[base.Rule]") -> None:
        """Initialize with a list of rule instances.

        Args:
            rules: Rule instances to run on every analysis request. Rules
                that do not apply to a file's kind are skipped for that file.
        """
        self.rules = rules

    def check(self, text: str, path: str, kind: base.FileKind) -> FileResult:
        """Parse *text*, collect directives and run every applicable rule.

        Invalid directives become ``directive`` findings at their comment.
        Nothing is filtered here; suppression is decided by the Report.

        Args:
            text: Complete source text.
            path: Path used in findings and for suppression lookup.
            kind: Logical kind of the file.

        Returns:
            The file's findings and suppression set.

        Raises:
            parser.ParseError: If the source cannot be outlined.
        """
        unit = parser.parse_source(text)
        scan = directives.scan_directives(text)
        suppressions = suppression.SuppressionSet.build(scan.tokens, text)
        parsed = base.ParsedFile(path=path, kind=kind, source=text, unit=unit)

        findings = [
            finding
            for rule in self.rules
            if rule.is_applicable(kind)
            for finding in rule.check(parsed)
        ]
        findings.extend(
            parsed.finding(base.RuleKind.DIRECTIVE, loc, str(exc))
            for loc, exc in scan.invalid
        )
        return FileResult(
            path=path, findings=tuple(findings), suppressions=suppressions
        )

    def analyze(self, text: str, path: str, kind: base.FileKind) -> list[base.Finding]:
        """Return the unsuppressed findings for *text*, in report order.

        Returns an empty list if the source cannot be parsed.
        """
        try:
            result = self.check(text, path, kind)
        except parser.ParseError as exc:
            logger.debug("cannot outline %s: %s", path, exc)
            return []
        return result.to_report().unsuppressed()


@dataclasses.dataclass(frozen=True)
class FileFailure:
    """A file that could not be read or parsed."""

    path: str
    reason: str


@dataclasses.dataclass
class RunResult:
    """Outcome of checking a batch of files."""

    report: scopelint_report.Report = dataclasses.field(
        default_factory=scopelint_report.Report
    )
    failures: list[FileFailure] = dataclasses.field(default_factory=list)
    checked: int = 0

    def is_valid(self) -> bool:
        """Return True if no file failed and every finding is suppressed."""
        return not self.failures and self.report.is_valid()


def check_file(
    file_path: pathlib.Path,
    cfg: scopelint_config.Config,
    all_rules: "Sequence[base.Rule]",
) -> FileResult | FileFailure | None:
    """Check one file from disk.

    Args:
        file_path: The file to check.
        cfg: The active configuration.
        all_rules: Every available rule; per-file overrides are applied here.

    Returns:
        A FileResult, a FileFailure when the file cannot be read or parsed,
        or None when the file is ignored or unclassified.
    """
    if cfg.is_file_ignored(file_path):
        logger.debug("skipping ignored file %s", file_path)
        return None
    kind = cfg.classify(file_path)
    if kind is None:
        logger.debug("skipping unclassified file %s", file_path)
        return None

    display = cfg.display_path(file_path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return FileFailure(path=display, reason=str(exc))

    rules = scopelint_config.filter_rules(all_rules, cfg, file_path, kind)
    try:
        return Analyzer(rules).check(text, display, kind)
    except parser.ParseError as exc:
        line = source.line_of(text, exc.loc.start)
        return FileFailure(path=display, reason=f"line {line}: {exc}")


def run(
    files: "Sequence[pathlib.Path]",
    cfg: scopelint_config.Config,
    all_rules: "Sequence[base.Rule]",
    jobs: int = 1,
) -> RunResult:
    """Check *files* and fold every per-file report into one.

    Files are checked on a thread pool when *jobs* is greater than one. A
    file that fails is recorded and the remaining files are still checked.

    Args:
        files: Files to check.
        cfg: The active configuration.
        all_rules: Every available rule.
        jobs: Number of worker threads.

    Returns:
        The merged report plus any per-file failures.
    """
    result = RunResult()

    def _check(file_path: pathlib.Path) -> FileResult | FileFailure | None:
        return check_file(file_path, cfg, all_rules)

    if jobs > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
            outcomes = list(executor.map(_check, files))
    else:
        outcomes = [_check(file_path) for file_path in files]

    for outcome in outcomes:
        if outcome is None:
            continue
        if isinstance(outcome, FileFailure):
            result.failures.append(outcome)
            continue
        result.checked += 1
        result.report.merge(outcome.to_report())
    logger.debug("checked %d files, %d failed", result.checked, len(result.failures))
    return result
