"""Tests for directive parsing, canonical rendering and extraction."""

import pytest

from scopelint import directives, source
from scopelint.rules import base

_ALL_SCOPES = list(directives.Scope)
_GENERIC_SCOPES = [scope for scope in _ALL_SCOPES if scope is not directives.Scope.WHOLE_FILE]


# ---------------------------------------------------------------------------
# parse_directive
# ---------------------------------------------------------------------------


class TestParseGeneric:
    @pytest.mark.parametrize(
        ("text", "universe", "scope"),
        [
            ("disable-next-item", directives.Universe.FORMAT, directives.Scope.NEXT_ITEM),
            ("disable-line", directives.Universe.FORMAT, directives.Scope.LINE),
            ("disable-next-line", directives.Universe.FORMAT, directives.Scope.NEXT_LINE),
            ("disable-start", directives.Universe.FORMAT, directives.Scope.REGION_START),
            ("disable-end", directives.Universe.FORMAT, directives.Scope.REGION_END),
            ("ignore-next-item", directives.Universe.LINT, directives.Scope.NEXT_ITEM),
            ("ignore-line", directives.Universe.LINT, directives.Scope.LINE),
            ("ignore-next-line", directives.Universe.LINT, directives.Scope.NEXT_LINE),
            ("ignore-start", directives.Universe.LINT, directives.Scope.REGION_START),
            ("ignore-end", directives.Universe.LINT, directives.Scope.REGION_END),
        ],
    )
    def test_generic_vocabulary(
        self, text: str, universe: directives.Universe, scope: directives.Scope
    ) -> None:
        assert directives.parse_directive(text) == directives.GenericDirective(
            universe=universe, scope=scope
        )

    def test_surrounding_whitespace_ignored(self) -> None:
        assert directives.parse_directive("  ignore-line \n") == (
            directives.GenericDirective(
                universe=directives.Universe.LINT, scope=directives.Scope.LINE
            )
        )


class TestParseRuleScoped:
    def test_rule_with_scope(self) -> None:
        assert directives.parse_directive("ignore-error-next-line") == (
            directives.RuleDirective(
                rule=base.RuleKind.ERROR, scope=directives.Scope.NEXT_LINE
            )
        )

    def test_rule_whole_file(self) -> None:
        assert directives.parse_directive("ignore-constant-file") == (
            directives.RuleDirective(
                rule=base.RuleKind.CONSTANT, scope=directives.Scope.WHOLE_FILE
            )
        )

    def test_bare_rule_defaults_to_next_item(self) -> None:
        assert directives.parse_directive("ignore-eip712") == directives.RuleDirective(
            rule=base.RuleKind.EIP712, scope=directives.Scope.NEXT_ITEM
        )

    @pytest.mark.parametrize("rule", base.DIRECTIVE_RULES)
    def test_every_rule_addressable(self, rule: base.RuleKind) -> None:
        parsed = directives.parse_directive(f"ignore-{rule.value}-start")
        assert parsed == directives.RuleDirective(
            rule=rule, scope=directives.Scope.REGION_START
        )


class TestParseInvalid:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "ignore",
            "ignore-",
            "ignore-everything",
            "ignore-file",
            "disable-file",
            "disable-error-line",
            "ignore-directive-line",
            "ignore-formatting-line",
            "ignore-error-sometimes",
            "skip-line",
            "IGNORE-LINE",
        ],
    )
    def test_rejected(self, text: str) -> None:
        with pytest.raises(directives.InvalidDirectiveError):
            directives.parse_directive(text)

    def test_error_message_carries_text(self) -> None:
        with pytest.raises(directives.InvalidDirectiveError) as exc_info:
            directives.parse_directive("ignore-everything")
        assert str(exc_info.value) == "Invalid inline config item: ignore-everything"
        assert exc_info.value.text == "ignore-everything"


# ---------------------------------------------------------------------------
# Canonical text
# ---------------------------------------------------------------------------


class TestToText:
    def test_generic(self) -> None:
        directive = directives.GenericDirective(
            universe=directives.Universe.FORMAT, scope=directives.Scope.NEXT_LINE
        )
        assert directive.to_text() == "disable-next-line"

    def test_rule_next_item_is_explicit(self) -> None:
        directive = directives.RuleDirective(
            rule=base.RuleKind.SRC, scope=directives.Scope.NEXT_ITEM
        )
        assert directive.to_text() == "ignore-src-next-item"

    def test_every_directive_reparses_to_itself(self) -> None:
        every: list[directives.Directive] = [
            directives.GenericDirective(universe=universe, scope=scope)
            for universe in directives.Universe
            for scope in _GENERIC_SCOPES
        ]
        every.extend(
            directives.RuleDirective(rule=rule, scope=scope)
            for rule in base.DIRECTIVE_RULES
            for scope in _ALL_SCOPES
        )
        for directive in every:
            assert directives.parse_directive(directive.to_text()) == directive


# ---------------------------------------------------------------------------
# scan_directives
# ---------------------------------------------------------------------------


class TestScanDirectives:
    def test_line_and_block_comments(self) -> None:
        text = (
            "// scopelint: ignore-start\n"
            "uint a;\n"
            "/* scopelint: ignore-end */\n"
        )
        scan = directives.scan_directives(text)
        assert [token.directive.to_text() for token in scan.tokens] == [
            "ignore-start",
            "ignore-end",
        ]
        assert scan.invalid == ()

    def test_token_loc_is_whole_comment(self) -> None:
        text = "uint a; // scopelint: ignore-line\n"
        (token,) = directives.scan_directives(text).tokens
        start = text.index("//")
        assert token.loc == source.Loc(start, start + len("// scopelint: ignore-line"))

    def test_ordinary_comments_skipped(self) -> None:
        text = "// just a note about scopelint: nothing\n/* TODO */\n"
        scan = directives.scan_directives(text)
        assert scan.tokens == ()
        assert scan.invalid == ()

    def test_invalid_directive_reported_at_comment(self) -> None:
        text = "uint a;\n// scopelint: ignore-everything\n"
        scan = directives.scan_directives(text)
        assert scan.tokens == ()
        ((loc, exc),) = scan.invalid
        assert loc.start == text.index("//")
        assert exc.text == "ignore-everything"

    def test_invalid_directive_does_not_hide_valid_ones(self) -> None:
        text = "// scopelint: bogus\n// scopelint: ignore-next-line\nuint a;\n"
        scan = directives.scan_directives(text)
        assert len(scan.invalid) == 1
        assert [token.directive.to_text() for token in scan.tokens] == [
            "ignore-next-line"
        ]

    def test_directive_inside_string_is_not_a_comment(self) -> None:
        text = 'string s = "// scopelint: ignore-file";\n'
        assert directives.scan_directives(text).tokens == ()
