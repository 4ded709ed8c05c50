"""All scopelint rules."""

from scopelint.rules import base, eip712, headers, imports, naming, scripts

ALL_RULES: list[base.Rule] = [
    naming.ConstantNames(),
    naming.ErrorPrefix(),
    naming.SrcInternalNames(),
    naming.TestNames(),
    naming.VariableNames(),
    headers.SpdxHeader(),
    scripts.ScriptRunMethod(),
    imports.UnusedImports(),
    eip712.TypehashMismatch(),
]

__all__ = ["ALL_RULES"]
