"""Inline `scopelint:` directives and their parsing.

Directives live in ordinary comments::

    // scopelint: disable-next-line        (formatting)
    // scopelint: ignore-start             (every lint rule)
    /* scopelint: ignore-error-next-line */ (one lint rule)

``disable-*`` directives feed the formatting universe, ``ignore-*`` the
lint universe, and ``ignore-<rule>-*`` the per-rule universe of ``<rule>``.
"""

import dataclasses
import enum
import logging

from scopelint import source
from scopelint.rules import base

logger = logging.getLogger(__name__)

DIRECTIVE_PREFIX = "scopelint:"


class Scope(enum.Enum):
    """The span shape a directive asks for, keyed by its text suffix."""

    NEXT_ITEM = "next-item"
    LINE = "line"
    NEXT_LINE = "next-line"
    REGION_START = "start"
    REGION_END = "end"
    WHOLE_FILE = "file"


class Universe(enum.Enum):
    """Which generic suppression universe a directive feeds, keyed by verb."""

    FORMAT = "disable"
    LINT = "ignore"


_GENERIC_SCOPES: frozenset[Scope] = frozenset(
    {
        Scope.NEXT_ITEM,
        Scope.LINE,
        Scope.NEXT_LINE,
        Scope.REGION_START,
        Scope.REGION_END,
    }
)

_SCOPES_BY_SUFFIX: dict[str, Scope] = {scope.value: scope for scope in Scope}


@dataclasses.dataclass(frozen=True)
class GenericDirective:
    """A directive that applies to every rule of its universe."""

    universe: Universe
    scope: Scope

    def to_text(self) -> str:
        return f"{self.universe.value}-{self.scope.value}"


@dataclasses.dataclass(frozen=True)
class RuleDirective:
    """A directive that ignores a single lint rule."""

    rule: base.RuleKind
    scope: Scope

    def to_text(self) -> str:
        return f"{Universe.LINT.value}-{self.rule.value}-{self.scope.value}"


Directive = GenericDirective | RuleDirective


@dataclasses.dataclass(frozen=True)
class DirectiveToken:
    """A parsed directive together with the location of its comment."""

    loc: source.Loc
    directive: Directive


class InvalidDirectiveError(ValueError):
    """Raised for directive text outside the known vocabulary."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid inline config item: {text}")


def parse_directive(text: str) -> Directive:
    """Classify the text that follows ``scopelint:`` in a comment.

    Args:
        text: Directive text such as ``ignore-error-next-line``.

    Returns:
        The matching GenericDirective or RuleDirective. A rule directive
        with no scope suffix (``ignore-error``) defaults to ``next-item``.

    Raises:
        InvalidDirectiveError: If the verb, rule name or scope is unknown.
    """
    text = text.strip()
    verb, _, rest = text.partition("-")
    try:
        universe = Universe(verb)
    except ValueError:
        raise InvalidDirectiveError(text) from None

    scope = _SCOPES_BY_SUFFIX.get(rest)
    if scope in _GENERIC_SCOPES:
        return GenericDirective(universe=universe, scope=scope)

    if universe is Universe.LINT:
        for rule in base.DIRECTIVE_RULES:
            if rest == rule.value:
                return RuleDirective(rule=rule, scope=Scope.NEXT_ITEM)
            suffix = rest.removeprefix(f"{rule.value}-")
            if suffix != rest and suffix in _SCOPES_BY_SUFFIX:
                return RuleDirective(rule=rule, scope=_SCOPES_BY_SUFFIX[suffix])
    raise InvalidDirectiveError(text)


@dataclasses.dataclass(frozen=True)
class DirectiveScan:
    """Directives found in one file, plus the ones that failed to parse."""

    tokens: tuple[DirectiveToken, ...]
    invalid: tuple[tuple[source.Loc, InvalidDirectiveError], ...]


def scan_directives(text: str) -> DirectiveScan:
    """Collect every ``scopelint:`` directive from the comments in *text*.

    Comments that do not start with the prefix are ignored. Unparseable
    directives are returned separately so the caller can report them
    without abandoning the rest of the file.
    """
    tokens: list[DirectiveToken] = []
    invalid: list[tuple[source.Loc, InvalidDirectiveError]] = []
    for comment in source.iter_comments(text):
        contents = comment.contents.strip()
        if not contents.startswith(DIRECTIVE_PREFIX):
            continue
        raw = contents.removeprefix(DIRECTIVE_PREFIX)
        try:
            directive = parse_directive(raw)
        except InvalidDirectiveError as exc:
            logger.debug("invalid directive at %s: %s", comment.loc, exc.text)
            invalid.append((comment.loc, exc))
            continue
        tokens.append(DirectiveToken(loc=comment.loc, directive=directive))
    return DirectiveScan(tokens=tuple(tokens), invalid=tuple(invalid))
