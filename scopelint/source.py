"""Source locations and comment scanning for Solidity text."""

import dataclasses
import enum
from collections.abc import Iterator


@dataclasses.dataclass(frozen=True, order=True)
class Loc:
    """A ``[start, end)`` span of string offsets into one file's source."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            msg = f"Loc start {self.start} is after end {self.end}"
            raise ValueError(msg)


class CommentState(enum.Enum):
    """Classification of a single source character."""

    NONE = "none"
    LINE = "line"
    BLOCK = "block"


@dataclasses.dataclass(frozen=True)
class Comment:
    """A `//` or `/* */` comment and where it sits in the file."""

    kind: CommentState
    loc: Loc
    text: str

    @property
    def contents(self) -> str:
        """The comment text without its `//`, `///`, `/*`, `/**` or `*/` markers."""
        body = self.text[2:]
        if self.kind is CommentState.LINE:
            return body.removeprefix("/")
        body = body.removesuffix("*/")
        return body.removeprefix("*")


def _comment_spans(text: str) -> Iterator[tuple[CommentState, int, int]]:
    """Yield ``(kind, start, end)`` for each comment, skipping string literals."""
    length = len(text)
    idx = 0
    quote: str | None = None
    while idx < length:
        char = text[idx]
        if quote is not None:
            if char == "\\":
                idx += 2
                continue
            if char in (quote, "\n"):
                quote = None
            idx += 1
            continue
        if char in "\"'":
            quote = char
            idx += 1
            continue
        if text.startswith("//", idx):
            end = text.find("\n", idx)
            end = length if end == -1 else end
            yield CommentState.LINE, idx, end
            idx = end
            continue
        if text.startswith("/*", idx):
            close = text.find("*/", idx + 2)
            end = length if close == -1 else close + 2
            yield CommentState.BLOCK, idx, end
            idx = end
            continue
        idx += 1


def comment_state_chars(text: str) -> Iterator[tuple[CommentState, int, str]]:
    """Yield ``(state, index, char)`` for every character of *text*.

    Comment markers belong to their comment. The newline ending a line
    comment is code. String literals are code, and comment markers inside
    them do not open a comment.
    """
    spans = _comment_spans(text)
    span = next(spans, None)
    for idx, char in enumerate(text):
        while span is not None and idx >= span[2]:
            span = next(spans, None)
        if span is not None and span[1] <= idx:
            yield span[0], idx, char
        else:
            yield CommentState.NONE, idx, char


def iter_comments(text: str) -> Iterator[Comment]:
    """Yield every comment in *text* in source order."""
    for kind, start, end in _comment_spans(text):
        yield Comment(kind=kind, loc=Loc(start, end), text=text[start:end])


def line_of(text: str, offset: int) -> int:
    """Return the 1-based line number containing *offset*."""
    return text.count("\n", 0, offset) + 1


def column_of(text: str, offset: int) -> int:
    """Return the 0-based column of *offset* within its line."""
    return offset - (text.rfind("\n", 0, offset) + 1)
