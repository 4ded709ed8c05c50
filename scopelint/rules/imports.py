"""Import rules: unused named and aliased imports."""

import re

from scopelint import source
from scopelint.rules import base

# import {Symbol, Other as Alias} from "path";
_SYMBOL_LIST_PAT = re.compile(r"""import\s*\{([^}]+)\}\s*from\s*["'][^"']+["']\s*;""")

# import "path" as Alias;
_ALIAS_PAT = re.compile(r"""import\s+["'][^"']+["']\s+as\s+(\w+)\s*;""")


def _in_any(offset: int, spans: list[source.Loc]) -> bool:
    return any(span.start <= offset < span.end for span in spans)


def _imported_names(
    text: str, comments: list[source.Loc]
) -> list[tuple[str, source.Loc]]:
    """Return ``(local name, import statement loc)`` for every named or aliased import.

    Plain ``import "path";`` statements are skipped because the symbols they
    bring in cannot be known without resolving the file.
    """
    imported: list[tuple[str, source.Loc]] = []
    for match in _SYMBOL_LIST_PAT.finditer(text):
        if _in_any(match.start(), comments):
            continue
        statement = source.Loc(*match.span())
        for part in match.group(1).split(","):
            symbol, _, alias = part.strip().partition(" as ")
            name = (alias or symbol).strip()
            if name:
                imported.append((name, statement))
    for match in _ALIAS_PAT.finditer(text):
        if _in_any(match.start(), comments):
            continue
        imported.append((match.group(1), source.Loc(*match.span())))
    return imported


class UnusedImports(base.Rule):
    """Flag imported symbols that are never referenced outside import statements.

    References inside comments do not count as uses.

    Allowed:
        import {IERC20} from "./IERC20.sol";
        contract Vault { IERC20 token; }

    Flagged:
        import {IERC20, SafeERC20} from "./Tokens.sol";
        contract Vault { IERC20 token; }   // SafeERC20 is unused
    """

    kind = base.RuleKind.IMPORT

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag each imported name that has no reference in code."""
        text = parsed.source
        comments = [comment.loc for comment in source.iter_comments(text)]
        imported = _imported_names(text, comments)
        statements = [statement for _, statement in imported]

        findings: list[base.Finding] = []
        for name, statement in imported:
            word_pat = re.compile(rf"\b{re.escape(name)}\b")
            is_used = any(
                not _in_any(match.start(), statements)
                and not _in_any(match.start(), comments)
                for match in word_pat.finditer(text)
            )
            if is_used:
                continue
            # Point at the name inside the import statement itself.
            occurrence = word_pat.search(text, statement.start, statement.end)
            loc = (
                source.Loc(*occurrence.span()) if occurrence is not None else statement
            )
            findings.append(
                parsed.finding(self.kind, loc, f"Unused import: '{name}'")
            )
        return findings
