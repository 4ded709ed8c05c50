"""Base abstractions for scopelint rules."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from scopelint import source as scopelint_source

if TYPE_CHECKING:
    from scopelint import parser


class RuleKind(Enum):
    """Identifier of the check a finding belongs to.

    The first eight members form the closed vocabulary accepted by
    ``ignore-<rule>`` directives and ``.scopelint`` overrides.
    """

    ERROR = "error"
    IMPORT = "import"
    VARIABLE = "variable"
    CONSTANT = "constant"
    TEST = "test"
    SCRIPT = "script"
    SRC = "src"
    EIP712 = "eip712"
    DIRECTIVE = "directive"
    FORMATTING = "formatting"

    @property
    def description(self) -> str:
        """Human readable label used when rendering a finding."""
        return _DESCRIPTIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "RuleKind | None":
        """Return the directive-addressable rule called *name*, if any."""
        try:
            kind = cls(name)
        except ValueError:
            return None
        return kind if kind in DIRECTIVE_RULES else None


_DESCRIPTIONS: dict[RuleKind, str] = {
    RuleKind.ERROR: "error name",
    RuleKind.IMPORT: "import",
    RuleKind.VARIABLE: "variable name",
    RuleKind.CONSTANT: "constant or immutable name",
    RuleKind.TEST: "test name",
    RuleKind.SCRIPT: "script interface",
    RuleKind.SRC: "src method name",
    RuleKind.EIP712: "EIP712 typehash",
    RuleKind.DIRECTIVE: "directive",
    RuleKind.FORMATTING: "formatting",
}

# Rules that can be named in directives and in `.scopelint` overrides.
DIRECTIVE_RULES: tuple[RuleKind, ...] = (
    RuleKind.ERROR,
    RuleKind.IMPORT,
    RuleKind.VARIABLE,
    RuleKind.CONSTANT,
    RuleKind.TEST,
    RuleKind.SCRIPT,
    RuleKind.SRC,
    RuleKind.EIP712,
)


class FileKind(Enum):
    """Logical role of a Solidity file within a Foundry project."""

    SRC = "src"
    TEST = "test"
    SCRIPT = "script"
    HANDLER = "handler"


ALL_FILE_KINDS: frozenset[FileKind] = frozenset(FileKind)


@dataclass(frozen=True)
class Finding:
    """A single violation emitted by a rule."""

    rule: RuleKind
    path: str
    loc: scopelint_source.Loc
    line: int      # 1-indexed
    message: str

    def description(self) -> str:
        """Render the finding the way the CLI prints it."""
        return (
            f"Invalid {self.rule.description} in {self.path}"
            f" on line {self.line}: {self.message}"
        )


@dataclass(frozen=True)
class ParsedFile:
    """Everything a rule may look at for one file."""

    path: str
    kind: FileKind
    source: str
    unit: "parser.SourceUnit"

    def finding(
        self, rule: RuleKind, loc: scopelint_source.Loc, message: str
    ) -> Finding:
        """Build a Finding for this file, resolving the line of *loc*."""
        return Finding(
            rule=rule,
            path=self.path,
            loc=loc,
            line=scopelint_source.line_of(self.source, loc.start),
            message=message,
        )


class Rule(ABC):
    """Abstract base class for all scopelint rules."""

    kind: ClassVar[RuleKind]
    file_kinds: ClassVar[frozenset[FileKind]] = ALL_FILE_KINDS

    def is_applicable(self, file_kind: FileKind) -> bool:
        """Return True if the rule runs on files of *file_kind*."""
        return file_kind in self.file_kinds

    @abstractmethod
    def check(self, parsed: ParsedFile) -> list[Finding]:
        """Analyze the parsed file and return any findings.

        Args:
            parsed: The outline tree, raw source, path and kind of the file.

        Returns:
            A list of Finding instances. Returns an empty list if no issues
            are found.
        """
