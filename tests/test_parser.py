"""Tests for the Solidity outline parser."""

import textwrap

import pytest

from scopelint import parser

_VAULT = textwrap.dedent("""\
    // SPDX-License-Identifier: MIT
    pragma solidity ^0.8.20;

    import {IERC20} from "./IERC20.sol";

    error TopLevel();

    uint256 constant FEE = 3;

    contract Vault is Ownable(msg.sender) {
        using SafeERC20 for IERC20;

        struct Position { uint256 size; address owner; }
        enum Status { Open, Closed }

        error Vault_Unauthorized();
        event Deposited(address indexed who, uint256 amount);

        uint256 public constant MAX_SUPPLY = 1e24;
        address public immutable OWNER;
        mapping(address => uint256) internal balances;
        IERC20 public token;

        modifier onlyOwner() {
            _;
        }

        constructor(address _owner) {
            OWNER = _owner;
        }

        function deposit(uint256 _amount) external returns (bool ok) {
            uint256 _before = balances[msg.sender];
            Position storage position = positions[msg.sender];
            balances[msg.sender] = _before + _amount;
            for (uint256 i = 0; i < 3; i++) {
                emit Deposited(msg.sender, i);
            }
            assembly {
                let x := 1
            }
            return true;
        }

        function _grow(Position storage _position, bytes memory data) internal pure {}

        receive() external payable {}
    }

    interface IVault {
        function deposit(uint256 amount) external returns (bool);
    }
    """)


@pytest.fixture(scope="module")
def unit() -> parser.SourceUnit:
    return parser.parse_source(_VAULT)


def _contract(unit: parser.SourceUnit, name: str) -> parser.ContractDefinition:
    return next(c for c in unit.contracts() if c.name is not None and c.name.name == name)


def _function(
    contract: parser.ContractDefinition, name: str
) -> parser.FunctionDefinition:
    return next(
        f for f in contract.functions() if f.name is not None and f.name.name == name
    )


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_drops_whitespace_and_comments(self) -> None:
        tokens = parser.tokenize("uint a; // note\n/* block */ b")
        assert [tok.text for tok in tokens] == ["uint", "a", ";", "b"]

    def test_string_with_braces_is_one_token(self) -> None:
        tokens = parser.tokenize('s = "{ not a brace }";')
        assert [tok.kind for tok in tokens] == ["ident", "op", "string", "op"]

    def test_token_locs_index_source(self) -> None:
        text = "  foo  "
        (tok,) = parser.tokenize(text)
        assert text[tok.loc.start : tok.loc.end] == "foo"


# ---------------------------------------------------------------------------
# File-level structure
# ---------------------------------------------------------------------------


class TestSourceUnit:
    def test_contract_kinds(self, unit: parser.SourceUnit) -> None:
        assert [(c.kind, c.name.name) for c in unit.contracts()] == [
            ("contract", "Vault"),
            ("interface", "IVault"),
        ]

    def test_file_level_parts(self, unit: parser.SourceUnit) -> None:
        kinds = [type(part).__name__ for part in unit.parts]
        assert kinds == [
            "ErrorDefinition",
            "VariableDefinition",
            "ContractDefinition",
            "ContractDefinition",
        ]

    def test_free_constant_listed_first(self, unit: parser.SourceUnit) -> None:
        names = [var.name.name for var in unit.variables()]
        assert names[0] == "FEE"
        assert names[1:] == ["MAX_SUPPLY", "OWNER", "balances", "token"]

    def test_contract_loc_spans_body(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        assert _VAULT[vault.loc.start :].startswith("contract Vault")
        assert _VAULT[vault.loc.end - 1] == "}"

    def test_abstract_contract(self) -> None:
        (contract,) = parser.parse_source("abstract contract Base {}").contracts()
        assert contract.kind == "abstract"
        assert contract.name.name == "Base"


# ---------------------------------------------------------------------------
# Contract members
# ---------------------------------------------------------------------------


class TestContractMembers:
    def test_errors(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        assert [e.name.name for e in vault.errors()] == ["Vault_Unauthorized"]

    def test_state_variable_attributes(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        by_name = {var.name.name: var for var in vault.variables()}
        assert by_name["MAX_SUPPLY"].is_constant
        assert by_name["OWNER"].is_immutable
        assert not by_name["token"].is_constant
        assert by_name["balances"].type_name == "mapping(address => uint256)"
        assert by_name["token"].type_name == "IERC20"

    def test_initializer_loc(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        (max_supply,) = [v for v in vault.variables() if v.name.name == "MAX_SUPPLY"]
        init = max_supply.initializer
        assert init is not None
        assert _VAULT[init.start : init.end] == "1e24"

    def test_function_kinds(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        assert [f.kind for f in vault.functions()] == [
            "modifier",
            "constructor",
            "function",
            "function",
            "receive",
        ]

    def test_visibility(self, unit: parser.SourceUnit) -> None:
        vault = _contract(unit, "Vault")
        grow = _function(vault, "_grow")
        assert grow.visibility == "internal"
        deposit = _function(vault, "deposit")
        assert deposit.visibility == "external"

    def test_interface_function_ends_at_semicolon(
        self, unit: parser.SourceUnit
    ) -> None:
        deposit = _function(_contract(unit, "IVault"), "deposit")
        assert [p.name.name for p in deposit.params] == ["amount"]
        assert deposit.locals == ()
        assert _VAULT[deposit.loc.end - 1] == ";"


# ---------------------------------------------------------------------------
# Parameters and locals
# ---------------------------------------------------------------------------


class TestParameters:
    def test_return_parameters_are_not_params(self, unit: parser.SourceUnit) -> None:
        deposit = _function(_contract(unit, "Vault"), "deposit")
        assert [(p.type_name, p.name.name) for p in deposit.params] == [
            ("uint256", "_amount")
        ]

    def test_storage_locations(self, unit: parser.SourceUnit) -> None:
        grow = _function(_contract(unit, "Vault"), "_grow")
        position, data = grow.params
        assert position.storage == "storage"
        assert position.is_storage
        assert data.storage == "memory"
        assert not data.is_storage
        assert data.type_name == "bytes"

    def test_param_loc_covers_declaration(self, unit: parser.SourceUnit) -> None:
        grow = _function(_contract(unit, "Vault"), "_grow")
        loc = grow.params[0].loc
        assert _VAULT[loc.start : loc.end] == "Position storage _position"


class TestLocals:
    def test_locals_found(self, unit: parser.SourceUnit) -> None:
        deposit = _function(_contract(unit, "Vault"), "deposit")
        assert [(v.name.name, v.storage) for v in deposit.locals] == [
            ("_before", None),
            ("position", "storage"),
            ("i", None),
        ]

    def test_local_loc_covers_declaration(self, unit: parser.SourceUnit) -> None:
        deposit = _function(_contract(unit, "Vault"), "deposit")
        loc = deposit.locals[0].loc
        assert _VAULT[loc.start : loc.end] == "uint256 _before = balances[msg.sender]"

    def test_assignments_are_not_declarations(self) -> None:
        text = "function f() { x = 1; a[i] = 2; y.z(); return x; }"
        (func,) = parser.parse_source(text).functions()
        assert func.locals == ()

    def test_assembly_skipped(self) -> None:
        text = "function f() { assembly { let x := 1 } uint _y; }"
        (func,) = parser.parse_source(text).functions()
        assert [v.name.name for v in func.locals] == ["_y"]

    def test_qualified_and_array_types(self) -> None:
        text = "function f() { Lib.Data memory _d = g(); uint[] memory _xs; }"
        (func,) = parser.parse_source(text).functions()
        assert [(v.type_name, v.name.name) for v in func.locals] == [
            ("Lib.Data", "_d"),
            ("uint[]", "_xs"),
        ]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_unclosed_brace(self) -> None:
        text = "contract C {\n function f() {\n}\n"
        with pytest.raises(parser.ParseError, match="unclosed") as exc_info:
            parser.parse_source(text)
        assert exc_info.value.loc.start == text.index("{")

    def test_unexpected_closer(self) -> None:
        with pytest.raises(parser.ParseError, match="unexpected"):
            parser.parse_source("contract C { ) }")

    def test_braces_in_strings_and_comments_ignored(self) -> None:
        text = 'contract C { string s = "{"; /* } */ }'
        (contract,) = parser.parse_source(text).contracts()
        assert contract.name.name == "C"
