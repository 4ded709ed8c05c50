"""Naming rules: error prefixes, constants, internal methods, tests, variables."""

import re

from scopelint.rules import base

_CONSTANT_NAME_PAT = re.compile(r"^[A-Z0-9_]+$")

# test[Fork][Fuzz][_Revert(If|When|On)]_Description
TEST_NAME_PAT = re.compile(r"^test(Fork)?(Fuzz)?(_Revert(If|When|On))?_(\w+)*$")

_PUBLIC_VISIBILITY: frozenset[str] = frozenset({"public", "external"})
_INTERNAL_VISIBILITY: frozenset[str] = frozenset({"internal", "private"})


class ErrorPrefix(base.Rule):
    """Flag custom errors that are not prefixed with their contract's name.

    Top-level errors and errors in unnamed contracts are exempt.

    Allowed:
        contract Vault { error Vault_Unauthorized(); }

    Flagged:
        contract Vault { error Unauthorized(); }
    """

    kind = base.RuleKind.ERROR
    file_kinds = frozenset(
        {base.FileKind.SRC, base.FileKind.TEST, base.FileKind.HANDLER}
    )

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag errors whose names lack the ``<Contract>_`` prefix."""
        findings: list[base.Finding] = []
        for contract in parsed.unit.contracts():
            if contract.name is None:
                continue
            prefix = f"{contract.name.name}_"
            for error in contract.errors():
                if error.name is None or error.name.name.startswith(prefix):
                    continue
                findings.append(
                    parsed.finding(
                        self.kind,
                        error.name.loc,
                        f"Error '{error.name.name}' should be prefixed with '{prefix}'",
                    )
                )
        return findings


class ConstantNames(base.Rule):
    """Flag `constant` and `immutable` variables whose names are not ALL_CAPS.

    Allowed:
        uint256 constant MAX_SUPPLY = 1e24;
        address immutable OWNER;

    Flagged:
        uint256 constant maxSupply = 1e24;
    """

    kind = base.RuleKind.CONSTANT

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag constants and immutables with lowercase characters in the name."""
        return [
            parsed.finding(self.kind, var.name.loc, var.name.name)
            for var in parsed.unit.variables()
            if (var.is_constant or var.is_immutable)
            and not _CONSTANT_NAME_PAT.match(var.name.name)
        ]


class SrcInternalNames(base.Rule):
    """Flag internal and private functions that lack a leading underscore."""

    kind = base.RuleKind.SRC
    file_kinds = frozenset({base.FileKind.SRC})

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag internal/private functions whose names do not start with `_`."""
        return [
            parsed.finding(self.kind, func.name.loc, func.name.name)
            for func in parsed.unit.functions()
            if func.name is not None
            and func.visibility in _INTERNAL_VISIBILITY
            and not func.name.name.startswith("_")
        ]


class TestNames(base.Rule):
    """Flag public test functions that do not follow the naming scheme.

    Public and external functions whose names start with ``test`` must match
    ``test[Fork][Fuzz][_Revert(If|When|On)]_Description``.

    Allowed:
        function test_IncrementsCounter() public
        function testFuzz_RevertIf_CallerIsNotOwner(address) public

    Flagged:
        function testIncrement() public
    """

    kind = base.RuleKind.TEST
    file_kinds = frozenset({base.FileKind.TEST})

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag public ``test*`` functions that do not match the naming pattern."""
        findings: list[base.Finding] = []
        for func in parsed.unit.functions():
            if func.name is None or func.visibility not in _PUBLIC_VISIBILITY:
                continue
            name = func.name.name
            if name.startswith("test") and not TEST_NAME_PAT.match(name):
                findings.append(parsed.finding(self.kind, func.name.loc, name))
        return findings


class VariableNames(base.Rule):
    """Flag variables whose underscore prefix does not match their storage.

    Parameters and local variables take a leading underscore unless they
    point at storage. State variables never take one.

    Allowed:
        function set(uint256 _value) external { uint256 _old = value; }
        function _grow(Data storage data) internal

    Flagged:
        function set(uint256 value) external
        uint256 internal _count;
    """

    kind = base.RuleKind.VARIABLE

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag parameters, locals and state variables with the wrong prefix."""
        findings: list[base.Finding] = []
        for func in parsed.unit.functions():
            for param in func.params:
                if param.name is None:
                    continue
                message = _underscore_message(
                    "Parameter", param.name.name, is_storage=param.is_storage
                )
                if message is not None:
                    findings.append(parsed.finding(self.kind, param.loc, message))
            for local in func.locals:
                label = "Storage variable" if local.is_storage else "Local variable"
                message = _underscore_message(
                    label, local.name.name, is_storage=local.is_storage
                )
                if message is not None:
                    findings.append(parsed.finding(self.kind, local.loc, message))
        for contract in parsed.unit.contracts():
            for var in contract.variables():
                if var.name.name.startswith("_"):
                    findings.append(
                        parsed.finding(
                            self.kind,
                            var.name.loc,
                            f"State variable '{var.name.name}' should NOT have"
                            " underscore prefix",
                        )
                    )
        return findings


def _underscore_message(label: str, name: str, *, is_storage: bool) -> str | None:
    """Return the violation message for *name*, or None when it is well formed."""
    has_underscore = name.startswith("_")
    if is_storage and has_underscore:
        if label == "Parameter":
            label = "Storage parameter"
        return f"{label} '{name}' should NOT have underscore prefix"
    if not is_storage and not has_underscore:
        return f"{label} '{name}' should have underscore prefix"
    return None
