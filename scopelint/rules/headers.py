"""File header rules."""

from scopelint import source
from scopelint.rules import base

_SPDX_PREFIX = "// SPDX-License-Identifier:"


def _is_comment_line(line: str) -> bool:
    return line.startswith(("//", "/*"))


def has_spdx_header(text: str) -> bool:
    """Return True if an SPDX identifier appears among the leading comment lines.

    Blank lines are skipped; the search stops at the first line of code.
    """
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if not _is_comment_line(line):
            return False
        if line.startswith(_SPDX_PREFIX):
            return True
    return False


class SpdxHeader(base.Rule):
    """Flag source files without an ``SPDX-License-Identifier`` header comment.

    Allowed:
        // SPDX-License-Identifier: MIT
        pragma solidity ^0.8.20;

    Flagged:
        pragma solidity ^0.8.20;
        // SPDX-License-Identifier: MIT
    """

    kind = base.RuleKind.SRC
    file_kinds = frozenset({base.FileKind.SRC})

    def check(self, parsed: base.ParsedFile) -> list[base.Finding]:
        """Flag the file once when its header lacks an SPDX identifier."""
        if has_spdx_header(parsed.source):
            return []
        return [
            parsed.finding(
                self.kind,
                source.Loc(0, 0),
                "Missing SPDX-License-Identifier header",
            )
        ]
