"""EIP-712 rules: typehash strings must agree with their ``abi.encode`` usage."""

import re

from scopelint import parser
from scopelint.rules import base

_STRING_PAT = re.compile(r"""["']([^"']+)["']""")
_PARAMS_PAT = re.compile(r"\(([^)]+)\)")


def _typehash_struct(name: str) -> str | None:
    """Return the struct a typehash variable names, or None if it is not one."""
    if name.endswith("_TYPEHASH"):
        return name.removesuffix("_TYPEHASH")
    if name.startswith("TYPEHASH_"):
        return name.removeprefix("TYPEHASH_")
    return None


def _parameter_count(type_string: str) -> int:
    """Count the members in ``Struct(type a,type b)``; 0 when there are none."""
    match = _PARAMS_PAT.search(type_string)
    if match is None:
        return 0
    return len(match.group(1).split(","))


def _usage_counts(text: str, name: str) -> list[int]:
    """Return the number of encoded values for each ``abi.encode(NAME, ...)`` call."""
    usage_pat = re.compile(rf"abi\.encode\s*\(\s*{re.escape(name)}\s*,\s*([^)]+)\)")
    return [match.group(1).count(",") + 1 for match in usage_pat.finditer(text)]


class TypehashMismatch(base.Rule):
    """Flag EIP-712 typehashes whose definition disagrees with how they are encoded.

    A variable named ``*_TYPEHASH`` or ``TYPEHASH_*`` must be initialised from
    a type string, and every ``abi.encode(TYPEHASH, ...)`` must pass as many
    values as the type string declares members. ``abi.encodePacked`` calls are
    not inspected.
    """

    kind = base.RuleKind.EIP712
    file_kinds = frozenset({base.FileKind.SRC})

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Compare each typehash's declared member count with its usages."""
        findings: list[base.Finding] = []
        for contract in parsed.unit.contracts():
            for var in contract.variables():
                struct_name = _typehash_struct(var.name.name)
                if struct_name is None:
                    continue
                findings.extend(self._check_typehash(parsed, var, struct_name))
        return findings

    def _check_typehash(
        self,
        parsed: base.ParsedFile,
        var: parser.VariableDefinition,
        struct_name: str,
    ) -> list[base.Finding]:
        name = var.name.name
        type_string = None
        if var.initializer is not None:
            initializer = parsed.source[var.initializer.start : var.initializer.end]
            match = _STRING_PAT.search(initializer)
            type_string = match.group(1) if match else None
        if type_string is None:
            return [
                parsed.finding(
                    self.kind,
                    var.name.loc,
                    f"Typehash '{name}' for struct '{struct_name}' has no keccak256"
                    " string - this will cause signature mismatches",
                )
            ]
        expected = _parameter_count(type_string)
        return [
            parsed.finding(
                self.kind,
                var.name.loc,
                f"EIP712 typehash '{name}' parameter mismatch: typehash defines"
                f" {expected} parameters but abi.encode usage uses {used} parameters",
            )
            for used in _usage_counts(parsed.source, name)
            if used != expected
        ]
