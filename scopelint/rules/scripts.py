"""Script rules."""

from scopelint.rules import base

_PUBLIC_VISIBILITY: frozenset[str] = frozenset({"public", "external"})


class ScriptRunMethod(base.Rule):
    """Flag deployable script contracts without a single public ``run`` method.

    ``setUp`` is ignored so scripts can share Forge's test-style setup hook.
    Abstract contracts, interfaces and libraries are helpers and are exempt,
    as is any file in the script directory not ending in ``.s.sol``.

    Allowed:
        contract Deploy is Script {
            function setUp() public {}
            function run() public {}
        }

    Flagged:
        contract Deploy is Script {
            function deploy() public {}
        }
    """

    kind = base.RuleKind.SCRIPT
    file_kinds = frozenset({base.FileKind.SCRIPT})

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag contracts whose public interface is anything other than ``run``."""
        findings: list[base.Finding] = []
        if not parsed.path.endswith(".s.sol"):
            return findings
        for contract in parsed.unit.contracts():
            if contract.kind != "contract" or contract.name is None:
                continue
            public_names = [
                func.name.name
                for func in contract.functions()
                if func.kind == "function"
                and func.name is not None
                and func.visibility in _PUBLIC_VISIBILITY
                and func.name.name != "setUp"
            ]
            if public_names == ["run"]:
                continue
            findings.append(
                parsed.finding(
                    self.kind,
                    contract.name.loc,
                    "Scripts must have a single public method named `run`"
                    " (excluding `setUp`)",
                )
            )
        return findings
