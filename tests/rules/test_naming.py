"""Tests for the error, constant, src, test and variable naming rules."""

import textwrap

from scopelint import parser
from scopelint.rules import base, naming


def _check(
    rule: base.Rule,
    source: str,
    kind: base.FileKind = base.FileKind.SRC,
    path: str = "./src/Vault.sol",
) -> list[base.Finding]:
    text = textwrap.dedent(source)
    parsed = base.ParsedFile(
        path=path, kind=kind, source=text, unit=parser.parse_source(text)
    )
    return rule.check(parsed)


def _messages(rule: base.Rule, source: str, **kwargs: base.FileKind) -> list[str]:
    return [finding.message for finding in _check(rule, source, **kwargs)]


# ---------------------------------------------------------------------------
# error: custom errors are prefixed with their contract's name
# ---------------------------------------------------------------------------


class TestErrorPrefix:
    def test_prefixed_ok(self) -> None:
        assert _messages(naming.ErrorPrefix(), "contract Vault { error Vault_Bad(); }") == []

    def test_unprefixed_flagged(self) -> None:
        assert _messages(naming.ErrorPrefix(), "contract Vault { error Bad(); }") == [
            "Error 'Bad' should be prefixed with 'Vault_'"
        ]

    def test_top_level_error_exempt(self) -> None:
        assert _messages(naming.ErrorPrefix(), "error Bad();\ncontract Vault {}") == []

    def test_finding_points_at_name_line(self) -> None:
        (finding,) = _check(
            naming.ErrorPrefix(),
            """\
            contract Vault {

                error Bad();
            }
            """,
        )
        assert finding.rule is base.RuleKind.ERROR
        assert finding.line == 3
        assert finding.path == "./src/Vault.sol"

    def test_not_applicable_to_scripts(self) -> None:
        rule = naming.ErrorPrefix()
        assert rule.is_applicable(base.FileKind.HANDLER)
        assert not rule.is_applicable(base.FileKind.SCRIPT)


# ---------------------------------------------------------------------------
# constant: constants and immutables are ALL_CAPS
# ---------------------------------------------------------------------------


class TestConstantNames:
    def test_caps_ok(self) -> None:
        source = """\
            contract C {
                uint256 constant MAX_SUPPLY_2 = 1;
                address immutable OWNER;
            }
            """
        assert _messages(naming.ConstantNames(), source) == []

    def test_camel_case_flagged(self) -> None:
        source = """\
            contract C {
                uint256 constant maxSupply = 1;
                address public immutable owner;
                uint256 notConstant;
            }
            """
        assert _messages(naming.ConstantNames(), source) == ["maxSupply", "owner"]

    def test_file_level_constant_checked(self) -> None:
        assert _messages(naming.ConstantNames(), "uint256 constant fee = 1;") == ["fee"]

    def test_applies_everywhere(self) -> None:
        rule = naming.ConstantNames()
        assert all(rule.is_applicable(kind) for kind in base.FileKind)


# ---------------------------------------------------------------------------
# src: internal and private functions start with an underscore
# ---------------------------------------------------------------------------


class TestSrcInternalNames:
    def test_underscored_ok(self) -> None:
        source = """\
            contract C {
                function _a() internal {}
                function _b() private {}
                function c() public {}
            }
            """
        assert _messages(naming.SrcInternalNames(), source) == []

    def test_missing_underscore_flagged(self) -> None:
        source = """\
            contract C {
                function a() internal {}
                function b() private {}
            }
            """
        findings = _check(naming.SrcInternalNames(), source)
        assert [f.message for f in findings] == ["a", "b"]
        assert {f.rule for f in findings} == {base.RuleKind.SRC}

    def test_only_src_files(self) -> None:
        rule = naming.SrcInternalNames()
        assert rule.is_applicable(base.FileKind.SRC)
        assert not rule.is_applicable(base.FileKind.TEST)


# ---------------------------------------------------------------------------
# test: test function naming scheme
# ---------------------------------------------------------------------------


class TestTestNames:
    def _run(self, *names: str) -> list[str]:
        body = "\n".join(f"    function {name}() public {{}}" for name in names)
        return _messages(
            naming.TestNames(),
            f"contract T {{\n{body}\n}}",
            kind=base.FileKind.TEST,
        )

    def test_valid_names(self) -> None:
        assert (
            self._run(
                "test_Increments",
                "testFuzz_Increments",
                "testFork_Increments",
                "testForkFuzz_Increments",
                "test_RevertIf_NotOwner",
                "testFuzz_RevertWhen_Paused",
                "test_RevertOn_Overflow",
            )
            == []
        )

    def test_invalid_names(self) -> None:
        assert self._run("testIncrement", "test_Revert_NotOwner", "testFuzzIncrement") == [
            "testIncrement",
            "testFuzzIncrement",
        ]

    def test_non_test_functions_ignored(self) -> None:
        assert self._run("setUp", "helper") == []

    def test_internal_helpers_ignored(self) -> None:
        source = "contract T { function testHelper() internal {} }"
        assert _messages(naming.TestNames(), source, kind=base.FileKind.TEST) == []


# ---------------------------------------------------------------------------
# variable: underscore prefixes follow storage
# ---------------------------------------------------------------------------


class TestVariableNames:
    def test_well_formed(self) -> None:
        source = """\
            contract C {
                uint256 internal count;
                function set(uint256 _value, Data storage data) external {
                    uint256 _old = count;
                    Data storage item = data;
                }
            }
            """
        assert _messages(naming.VariableNames(), source) == []

    def test_parameter_without_underscore(self) -> None:
        source = "contract C { function set(uint256 value) external {} }"
        assert _messages(naming.VariableNames(), source) == [
            "Parameter 'value' should have underscore prefix"
        ]

    def test_storage_parameter_with_underscore(self) -> None:
        source = "contract C { function grow(Data storage _data) internal {} }"
        assert _messages(naming.VariableNames(), source) == [
            "Storage parameter '_data' should NOT have underscore prefix"
        ]

    def test_locals(self) -> None:
        source = """\
            contract C {
                function f() external {
                    uint256 old = 1;
                    Data storage _item = items[0];
                }
            }
            """
        assert _messages(naming.VariableNames(), source) == [
            "Local variable 'old' should have underscore prefix",
            "Storage variable '_item' should NOT have underscore prefix",
        ]

    def test_state_variable_with_underscore(self) -> None:
        source = "contract C { uint256 internal _count; }"
        assert _messages(naming.VariableNames(), source) == [
            "State variable '_count' should NOT have underscore prefix"
        ]

    def test_unnamed_parameters_ignored(self) -> None:
        source = "contract C { function f(uint256) external returns (bool) {} }"
        assert _messages(naming.VariableNames(), source) == []

    def test_parameter_finding_covers_declaration(self) -> None:
        source = "contract C { function set(uint256 value) external {} }"
        (finding,) = _check(naming.VariableNames(), source)
        text = textwrap.dedent(source)
        assert text[finding.loc.start : finding.loc.end] == "uint256 value"
