"""A tolerant outline parser for Solidity.

Only the declarations the rules inspect are modelled: contracts, functions
with their parameters and local variable declarations, state variables
and errors. Everything else is skipped. Offsets in every
``Loc`` index into the original source text, so locations stay aligned with
comments and directives.
"""

import dataclasses
import re

from scopelint import source

_TOKEN_PAT = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))
    |(?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    |(?P<number>0[xX][0-9a-fA-F_]+|\d[\d_]*(?:\.\d+)?(?:[eE]-?\d+)?)
    |(?P<ident>[A-Za-z_$][A-Za-z0-9_$]*)
    |(?P<op>==|!=|<=|>=|=>|->|:=|&&|\|\||\+\+|--|\*\*|<<=?|>>>?=?|[-+*/%|&^]=|.)
    """,
    re.VERBOSE | re.DOTALL,
)

_OPENERS: dict[str, str] = {"(": ")", "[": "]", "{": "}"}
_CLOSERS: frozenset[str] = frozenset(_OPENERS.values())

_CONTRACT_KEYWORDS: frozenset[str] = frozenset(
    {"abstract", "contract", "interface", "library"}
)
_FUNCTION_KEYWORDS: frozenset[str] = frozenset(
    {"function", "constructor", "modifier", "fallback", "receive"}
)
_VISIBILITY: frozenset[str] = frozenset({"public", "private", "internal", "external"})
_STORAGE: frozenset[str] = frozenset({"memory", "storage", "calldata"})
_VARIABLE_ATTRIBUTES: frozenset[str] = _VISIBILITY | frozenset(
    {"constant", "immutable", "override", "transient"}
)
# Words that can end a parameter's type list but are never its name.
_NOT_A_NAME: frozenset[str] = _STORAGE | frozenset({"payable", "indexed"})
# Statement-leading words that cannot begin a local declaration.
_STATEMENT_KEYWORDS: frozenset[str] = frozenset(
    {
        "assembly",
        "break",
        "continue",
        "delete",
        "do",
        "else",
        "emit",
        "for",
        "if",
        "new",
        "return",
        "revert",
        "throw",
        "try",
        "catch",
        "unchecked",
        "while",
    }
)


class ParseError(Exception):
    """Raised when the source cannot be outlined, e.g. an unclosed brace."""

    def __init__(self, message: str, loc: source.Loc) -> None:
        self.loc = loc
        super().__init__(message)


@dataclasses.dataclass(frozen=True)
class Token:
    kind: str
    text: str
    loc: source.Loc


@dataclasses.dataclass(frozen=True)
class Identifier:
    name: str
    loc: source.Loc


@dataclasses.dataclass(frozen=True)
class Parameter:
    """A function or modifier parameter."""

    type_name: str
    storage: str | None
    name: Identifier | None
    loc: source.Loc

    @property
    def is_storage(self) -> bool:
        return self.storage == "storage"


@dataclasses.dataclass(frozen=True)
class VariableDeclaration:
    """A local variable declared inside a function body."""

    type_name: str
    storage: str | None
    name: Identifier
    loc: source.Loc

    @property
    def is_storage(self) -> bool:
        return self.storage == "storage"


@dataclasses.dataclass(frozen=True)
class FunctionDefinition:
    """A function, constructor, modifier, fallback or receive definition."""

    kind: str
    name: Identifier | None
    params: tuple[Parameter, ...]
    visibility: str | None
    locals: tuple[VariableDeclaration, ...]
    loc: source.Loc


@dataclasses.dataclass(frozen=True)
class VariableDefinition:
    """A state variable, or a constant declared at file level."""

    type_name: str
    attributes: frozenset[str]
    name: Identifier
    initializer: source.Loc | None
    loc: source.Loc

    @property
    def is_constant(self) -> bool:
        return "constant" in self.attributes

    @property
    def is_immutable(self) -> bool:
        return "immutable" in self.attributes


@dataclasses.dataclass(frozen=True)
class ErrorDefinition:
    name: Identifier | None
    loc: source.Loc


Part = FunctionDefinition | VariableDefinition | ErrorDefinition


@dataclasses.dataclass(frozen=True)
class ContractDefinition:
    """A contract, abstract contract, interface or library."""

    kind: str
    name: Identifier | None
    parts: tuple[Part, ...]
    loc: source.Loc

    def functions(self) -> list[FunctionDefinition]:
        return [part for part in self.parts if isinstance(part, FunctionDefinition)]

    def variables(self) -> list[VariableDefinition]:
        return [part for part in self.parts if isinstance(part, VariableDefinition)]

    def errors(self) -> list[ErrorDefinition]:
        return [part for part in self.parts if isinstance(part, ErrorDefinition)]


@dataclasses.dataclass(frozen=True)
class SourceUnit:
    """The outline of one Solidity file."""

    parts: tuple[ContractDefinition | Part, ...]

    def contracts(self) -> list[ContractDefinition]:
        return [part for part in self.parts if isinstance(part, ContractDefinition)]

    def functions(self) -> list[FunctionDefinition]:
        """Every function in the file, free functions first."""
        free = [part for part in self.parts if isinstance(part, FunctionDefinition)]
        return free + [
            func for contract in self.contracts() for func in contract.functions()
        ]

    def variables(self) -> list[VariableDefinition]:
        """Every file-level constant and state variable in the file."""
        free = [part for part in self.parts if isinstance(part, VariableDefinition)]
        return free + [
            var for contract in self.contracts() for var in contract.variables()
        ]


def tokenize(text: str) -> list[Token]:
    """Split *text* into tokens, dropping whitespace and comments."""
    tokens: list[Token] = []
    for match in _TOKEN_PAT.finditer(text):
        kind = match.lastgroup
        if kind in ("space", "comment"):
            continue
        tokens.append(
            Token(kind=kind, text=match.group(), loc=source.Loc(*match.span()))
        )
    return tokens


class _Parser:
    """Recursive outline parser over a token list with precomputed bracket pairs."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.partner = self._pair_brackets()
        self.pos = 0

    def _pair_brackets(self) -> dict[int, int]:
        partner: dict[int, int] = {}
        stack: list[int] = []
        for idx, tok in enumerate(self.tokens):
            if tok.kind != "op":
                continue
            if tok.text in _OPENERS:
                stack.append(idx)
            elif tok.text in _CLOSERS:
                if not stack or _OPENERS[self.tokens[stack[-1]].text] != tok.text:
                    msg = f"unexpected `{tok.text}`"
                    raise ParseError(msg, tok.loc)
                partner[stack.pop()] = idx
        if stack:
            tok = self.tokens[stack[-1]]
            msg = f"unclosed `{tok.text}`"
            raise ParseError(msg, tok.loc)
        return partner

    def _peek(self, end: int) -> Token | None:
        return self.tokens[self.pos] if self.pos < end else None

    def _is_opener(self, idx: int) -> bool:
        return idx in self.partner

    def _span(self, first: int, last: int) -> source.Loc:
        return source.Loc(self.tokens[first].loc.start, self.tokens[last].loc.end)

    def _skip_statement(self, end: int) -> int:
        """Advance past the next `;` at this depth; return the last token consumed."""
        last = self.pos
        while self.pos < end:
            tok = self.tokens[self.pos]
            if self._is_opener(self.pos):
                last = self.partner[self.pos]
                self.pos = last + 1
                continue
            if tok.text == "}":
                break
            last = self.pos
            self.pos += 1
            if tok.text == ";":
                break
        return last

    def _skip_block_declaration(self, end: int) -> None:
        """Skip a `struct`/`enum` declaration including its braces."""
        while self.pos < end:
            tok = self.tokens[self.pos]
            if tok.text == "{":
                self.pos = self.partner[self.pos] + 1
                return
            if tok.text in (";", "}"):
                return
            self.pos += 1

    def parse(self) -> SourceUnit:
        end = len(self.tokens)
        parts: list[ContractDefinition | Part] = []
        while self.pos < end:
            tok = self.tokens[self.pos]
            if tok.text in _CONTRACT_KEYWORDS:
                contract = self._contract(end)
                if contract is not None:
                    parts.append(contract)
            elif tok.text == "}":
                self.pos += 1
            else:
                part = self._part(end)
                if part is not None:
                    parts.append(part)
        return SourceUnit(parts=tuple(parts))

    def _part(self, end: int) -> Part | None:
        """Parse one declaration at file or contract level."""
        tok = self.tokens[self.pos]
        if tok.text in _FUNCTION_KEYWORDS:
            return self._function(end)
        if tok.text == "error":
            first = self.pos
            self.pos += 1
            name_tok = self._peek(end)
            name = (
                Identifier(name_tok.text, name_tok.loc)
                if name_tok is not None and name_tok.kind == "ident"
                else None
            )
            last = self._skip_statement(end)
            return ErrorDefinition(name=name, loc=self._span(first, last))
        if tok.text in ("struct", "enum"):
            self._skip_block_declaration(end)
            return None
        if tok.text in ("event", "import", "pragma", "using", "type"):
            self._skip_statement(end)
            return None
        if tok.kind == "ident":
            return self._variable(end)
        self.pos += 1
        return None

    def _contract(self, end: int) -> ContractDefinition | None:
        first = self.pos
        kind = self.tokens[self.pos].text
        self.pos += 1
        if kind == "abstract":
            self.pos += 1
        name_tok = self._peek(end)
        name = None
        if name_tok is not None and name_tok.kind == "ident":
            name = Identifier(name_tok.text, name_tok.loc)
            self.pos += 1
        # Skip inheritance specifiers up to the body.
        while self.pos < end and self.tokens[self.pos].text != "{":
            if self.tokens[self.pos].text == ";":
                self.pos += 1
                return None
            if self._is_opener(self.pos):
                self.pos = self.partner[self.pos]
            self.pos += 1
        if self.pos >= end:
            return None
        close = self.partner[self.pos]
        self.pos += 1
        parts: list[Part] = []
        while self.pos < close:
            part = self._part(close)
            if part is not None:
                parts.append(part)
        self.pos = close + 1
        return ContractDefinition(
            kind=kind, name=name, parts=tuple(parts), loc=self._span(first, close)
        )

    def _function(self, end: int) -> FunctionDefinition:
        first = self.pos
        kind = self.tokens[self.pos].text
        self.pos += 1
        name = None
        name_tok = self._peek(end)
        if kind in ("function", "modifier") and name_tok and name_tok.kind == "ident":
            name = Identifier(name_tok.text, name_tok.loc)
            self.pos += 1

        params: tuple[Parameter, ...] = ()
        if self.pos < end and self.tokens[self.pos].text == "(":
            params = self._parameters(self.pos)
            self.pos = self.partner[self.pos] + 1

        # Modifiers, mutability and `returns (...)` are skipped.
        visibility = None
        while self.pos < end and self.tokens[self.pos].text not in ("{", ";", "}"):
            if self.tokens[self.pos].text in _VISIBILITY:
                visibility = self.tokens[self.pos].text
            if self._is_opener(self.pos):
                self.pos = self.partner[self.pos]
            self.pos += 1

        local_vars: tuple[VariableDeclaration, ...] = ()
        last = max(self.pos - 1, first)
        if self.pos < end and self.tokens[self.pos].text == "{":
            close = self.partner[self.pos]
            local_vars = self._locals(self.pos + 1, close)
            last = close
            self.pos = close + 1
        elif self.pos < end and self.tokens[self.pos].text == ";":
            last = self.pos
            self.pos += 1

        return FunctionDefinition(
            kind=kind,
            name=name,
            params=params,
            visibility=visibility,
            locals=local_vars,
            loc=self._span(first, last),
        )

    def _parameters(self, open_idx: int) -> tuple[Parameter, ...]:
        """Split the parenthesised list at *open_idx* into parameters."""
        close = self.partner[open_idx]
        groups: list[list[Token]] = [[]]
        idx = open_idx + 1
        while idx < close:
            tok = self.tokens[idx]
            if tok.text == ",":
                groups.append([])
                idx += 1
                continue
            groups[-1].append(tok)
            if self._is_opener(idx):
                idx = self.partner[idx]
                groups[-1].append(self.tokens[idx])
            idx += 1
        return tuple(self._parameter(group) for group in groups if group)

    def _parameter(self, group: list[Token]) -> Parameter:
        last = group[-1]
        name = None
        type_end = len(group)
        if len(group) >= 2 and last.kind == "ident" and last.text not in _NOT_A_NAME:
            name = Identifier(last.text, last.loc)
            type_end -= 1
        storage = next((tok.text for tok in group if tok.text in _STORAGE), None)
        type_tokens = [tok for tok in group[:type_end] if tok.text not in _NOT_A_NAME]
        type_name = (
            self.text[type_tokens[0].loc.start : type_tokens[-1].loc.end]
            if type_tokens
            else ""
        )
        return Parameter(
            type_name=type_name,
            storage=storage,
            name=name,
            loc=source.Loc(group[0].loc.start, last.loc.end),
        )

    def _variable(self, end: int) -> VariableDefinition | None:
        """Parse a state variable or file-level constant declaration."""
        first = self.pos
        head: list[Token] = []
        initializer_start: int | None = None
        while self.pos < end:
            tok = self.tokens[self.pos]
            if tok.text in (";", "}"):
                break
            if tok.text == "=" and initializer_start is None:
                initializer_start = self.pos + 1
            elif initializer_start is None:
                head.append(tok)
            if self._is_opener(self.pos):
                self.pos = self.partner[self.pos]
                if initializer_start is None:
                    head.append(self.tokens[self.pos])
            self.pos += 1
        last = max(self.pos - 1, first)
        if self.pos < end and self.tokens[self.pos].text == ";":
            self.pos += 1

        names = [
            idx
            for idx, tok in enumerate(head)
            if tok.kind == "ident" and tok.text not in _VARIABLE_ATTRIBUTES
        ]
        if len(head) < 2 or not names or names[-1] == 0:
            return None
        name_tok = head[names[-1]]
        attributes = frozenset(
            tok.text for tok in head if tok.text in _VARIABLE_ATTRIBUTES
        )
        type_tokens = [
            tok for tok in head[: names[-1]] if tok.text not in _VARIABLE_ATTRIBUTES
        ]
        if not type_tokens:
            return None
        initializer = None
        if initializer_start is not None and initializer_start <= last:
            initializer = self._span(initializer_start, last)
        return VariableDefinition(
            type_name=self.text[type_tokens[0].loc.start : type_tokens[-1].loc.end],
            attributes=attributes,
            name=Identifier(name_tok.text, name_tok.loc),
            initializer=initializer,
            loc=self._span(first, last),
        )

    def _locals(self, start: int, stop: int) -> tuple[VariableDeclaration, ...]:
        """Find local variable declarations between token indices *start* and *stop*."""
        found: list[VariableDeclaration] = []
        idx = start
        at_statement = True
        while idx < stop:
            tok = self.tokens[idx]
            if tok.text == "assembly":
                idx += 1
                while idx < stop and self.tokens[idx].text != "{":
                    idx += 1
                if idx < stop:
                    idx = self.partner[idx] + 1
                at_statement = True
                continue
            if (
                at_statement
                and tok.kind == "ident"
                and tok.text not in _STATEMENT_KEYWORDS
            ):
                declaration, resume = self._local_declaration(idx, stop)
                if declaration is not None:
                    found.append(declaration)
                    idx = resume
                    at_statement = False
                    continue
            at_statement = tok.text in (";", "{", "}") or (
                tok.text == "(" and idx > start and self.tokens[idx - 1].text == "for"
            )
            idx += 1
        return tuple(found)

    def _local_declaration(
        self, idx: int, stop: int
    ) -> tuple[VariableDeclaration | None, int]:
        """Try to read ``Type [storage] name (=|;)`` starting at token *idx*."""
        tokens = self.tokens
        first = tokens[idx]
        pos = idx + 1
        if first.text == "mapping":
            if pos >= stop or tokens[pos].text != "(":
                return None, idx
            pos = self.partner[pos] + 1
        else:
            while (
                pos + 1 < stop
                and tokens[pos].text == "."
                and tokens[pos + 1].kind == "ident"
            ):
                pos += 2
            if first.text == "address" and tokens[pos].text == "payable":
                pos += 1
        while pos < stop and tokens[pos].text == "[":
            pos = self.partner[pos] + 1
        type_end = tokens[pos - 1].loc.end

        storage = None
        if pos < stop and tokens[pos].text in _STORAGE:
            storage = tokens[pos].text
            pos += 1
        if (
            pos >= stop
            or tokens[pos].kind != "ident"
            or tokens[pos].text in _NOT_A_NAME
        ):
            return None, idx
        name_tok = tokens[pos]
        pos += 1
        if pos >= stop or tokens[pos].text not in ("=", ";"):
            return None, idx

        last = pos
        while last < stop and tokens[last].text != ";":
            last = self.partner[last] + 1 if self._is_opener(last) else last + 1
        declaration = VariableDeclaration(
            type_name=self.text[first.loc.start : type_end],
            storage=storage,
            name=Identifier(name_tok.text, name_tok.loc),
            loc=source.Loc(first.loc.start, tokens[last - 1].loc.end),
        )
        return declaration, pos


def parse_source(text: str) -> SourceUnit:
    """Outline a Solidity file.

    Args:
        text: Complete source text.

    Returns:
        The SourceUnit describing the file's declarations.

    Raises:
        ParseError: If brackets are unbalanced.
    """
    return _Parser(text).parse()
