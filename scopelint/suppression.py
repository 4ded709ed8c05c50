"""Turn inline directives into byte-range suppression sets.

Three universes are tracked independently for each file: formatting
(``disable-*``), generic linting (``ignore-*``) and per-rule linting
(``ignore-<rule>-*``). Each universe keeps its own region depth, so nested
``start``/``start``/``end``/``end`` pairs collapse into one outer region, and
a region left open at the end of the file runs to end-of-file.
"""

import dataclasses
import enum
import logging
import types
from collections.abc import Iterable, Mapping

from scopelint import directives, source
from scopelint.rules import base

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    """How a range decides whether it covers a location.

    LOOSE covers any location that starts inside ``[start, end)``.
    STRICT covers a location only when it lies entirely within the range.
    """

    LOOSE = "loose"
    STRICT = "strict"


@dataclasses.dataclass(frozen=True)
class SuppressionRange:
    """An immutable span of offsets in which findings are suppressed."""

    start: int
    end: int
    mode: Mode

    def __post_init__(self) -> None:
        if self.start > self.end:
            msg = f"range start {self.start} is after end {self.end}"
            raise ValueError(msg)

    def includes(self, loc: source.Loc) -> bool:
        """Return True if this range covers *loc*."""
        if loc.start < self.start:
            return False
        if self.mode is Mode.LOOSE:
            return loc.start < self.end
        return loc.end <= self.end


def _next_item_range(text: str, offset: int) -> SuppressionRange | None:
    """Cover the next code item after *offset*, through its balanced body.

    Returns None when only whitespace and comments follow *offset*.
    """
    start: int | None = None
    for state, idx, char in source.comment_state_chars(text[offset:]):
        if state is source.CommentState.NONE and not char.isspace():
            start = offset + idx
            break
    if start is None:
        return None

    # Raw scan: braces inside comments and strings still count.
    depth = 0
    found_body = False
    end = len(text)
    for idx in range(start, len(text)):
        char = text[idx]
        if char == "{":
            depth += 1
            found_body = True
        elif char == "}":
            depth -= 1
            if found_body and depth == 0:
                end = idx + 1
                break
    return SuppressionRange(start, end, Mode.LOOSE)


def _line_range(text: str, loc: source.Loc) -> SuppressionRange:
    """Cover the line the directive sits on, excluding its newline."""
    start = text.rfind("\n", 0, loc.start) + 1
    end = text.find("\n", loc.end)
    if end == -1:
        end = len(text)
    return SuppressionRange(start, end, Mode.STRICT)


def _next_line_range(
    text: str, loc: source.Loc, mode: Mode
) -> SuppressionRange | None:
    """Cover the line after the directive, including its newline."""
    newline = text.find("\n", loc.end)
    if newline == -1 or newline + 1 >= len(text):
        return None
    start = newline + 1
    end = text.find("\n", start)
    end = len(text) if end == -1 else end + 1
    return SuppressionRange(start, end, mode)


@dataclasses.dataclass
class _Universe:
    """Mutable build state for one suppression universe."""

    rule_scoped: bool
    ranges: list[SuppressionRange] = dataclasses.field(default_factory=list)
    depth: int = 0
    pending_start: int | None = None

    def apply(self, scope: directives.Scope, loc: source.Loc, text: str) -> None:
        """Fold one directive into this universe."""
        new_range: SuppressionRange | None = None
        if scope is directives.Scope.NEXT_ITEM:
            new_range = _next_item_range(text, loc.end)
        elif scope is directives.Scope.LINE:
            new_range = _line_range(text, loc)
        elif scope is directives.Scope.NEXT_LINE:
            # Rule directives use LOOSE so findings that spill past the
            # line break are still covered.
            mode = Mode.LOOSE if self.rule_scoped else Mode.STRICT
            new_range = _next_line_range(text, loc, mode)
        elif scope is directives.Scope.REGION_START:
            if self.depth == 0:
                self.pending_start = loc.end
            self.depth += 1
        elif scope is directives.Scope.REGION_END:
            self.depth = max(self.depth - 1, 0)
            if self.depth == 0 and self.pending_start is not None:
                # Rule regions include the closing comment; generic ones stop before it.
                end = loc.end if self.rule_scoped else loc.start
                new_range = SuppressionRange(self.pending_start, end, Mode.STRICT)
                self.pending_start = None
        elif scope is directives.Scope.WHOLE_FILE:
            # One past the end so LOOSE still covers a location starting at len(text).
            new_range = SuppressionRange(0, len(text) + 1, Mode.LOOSE)
        if new_range is not None:
            self.ranges.append(new_range)

    def finish(self, text: str) -> tuple[SuppressionRange, ...]:
        """Close any unterminated region at end-of-file and freeze the ranges."""
        if self.pending_start is not None:
            self.ranges.append(
                SuppressionRange(self.pending_start, len(text), Mode.STRICT)
            )
            self.pending_start = None
        return tuple(self.ranges)


@dataclasses.dataclass(frozen=True)
class SuppressionSet:
    """Finished suppression ranges for one file.

    Attributes:
        format_ranges: Ranges from ``disable-*`` directives.
        lint_ranges: Ranges from generic ``ignore-*`` directives.
        rule_ranges: Ranges from ``ignore-<rule>-*`` directives, by rule.
    """

    format_ranges: tuple[SuppressionRange, ...] = ()
    lint_ranges: tuple[SuppressionRange, ...] = ()
    rule_ranges: Mapping[base.RuleKind, tuple[SuppressionRange, ...]] = (
        dataclasses.field(default_factory=dict)
    )

    def __post_init__(self) -> None:
        # frozen=True only blocks attribute assignment, not dict mutation.
        object.__setattr__(
            self, "rule_ranges", types.MappingProxyType(dict(self.rule_ranges))
        )

    @classmethod
    def build(
        cls, tokens: Iterable[directives.DirectiveToken], text: str
    ) -> "SuppressionSet":
        """Build the suppression set for *text* from its directive tokens.

        Tokens are processed in ascending order of their start offset; ties
        keep discovery order.

        Args:
            tokens: Every directive found in the file, in any order.
            text: The complete source text of the file.

        Returns:
            A SuppressionSet answering queries for this file.
        """
        format_universe = _Universe(rule_scoped=False)
        lint_universe = _Universe(rule_scoped=False)
        rule_universes: dict[base.RuleKind, _Universe] = {}

        for token in sorted(tokens, key=lambda token: token.loc.start):
            directive = token.directive
            if isinstance(directive, directives.RuleDirective):
                universe = rule_universes.setdefault(
                    directive.rule, _Universe(rule_scoped=True)
                )
            elif directive.universe is directives.Universe.FORMAT:
                universe = format_universe
            else:
                universe = lint_universe
            universe.apply(directive.scope, token.loc, text)

        suppressions = cls(
            format_ranges=format_universe.finish(text),
            lint_ranges=lint_universe.finish(text),
            rule_ranges={
                rule: ranges
                for rule, universe in rule_universes.items()
                if (ranges := universe.finish(text))
            },
        )
        logger.debug(
            "built %d format, %d lint and %d rule ranges",
            len(suppressions.format_ranges),
            len(suppressions.lint_ranges),
            sum(len(ranges) for ranges in suppressions.rule_ranges.values()),
        )
        return suppressions

    def is_format_disabled(self, loc: source.Loc) -> bool:
        """Return True if formatting is disabled at *loc*."""
        return any(rng.includes(loc) for rng in self.format_ranges)

    def is_lint_ignored(self, loc: source.Loc) -> bool:
        """Return True if every lint rule is ignored at *loc*."""
        return any(rng.includes(loc) for rng in self.lint_ranges)

    def is_rule_ignored(self, loc: source.Loc, rule: base.RuleKind) -> bool:
        """Return True if *rule* is ignored at *loc*."""
        return any(rng.includes(loc) for rng in self.rule_ranges.get(rule, ()))
