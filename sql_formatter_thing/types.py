from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    WHITESPACE = "whitespace"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return 2 if self is Severity.ERROR else 1

    @classmethod
    def parse(cls, value: str) -> "Severity":
        return cls(value.lower())


_QUOTES = {'"': '"', "`": "`"}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int
    offset: int

    @property
    def end_line(self) -> int:
        return self.line + _count_breaks(self.text)

    @property
    def end_column(self) -> int:
        """Column just past the token's last character."""
        breaks = _count_breaks(self.text)
        if not breaks:
            return self.column + len(self.text)
        tail = self.text.replace("\r\n", "\n").replace("\r", "\n").rsplit("\n", 1)[1]
        return len(tail) + 1

    @property
    def is_quoted(self) -> bool:
        return self.kind is TokenKind.IDENTIFIER and self.text[:1] in _QUOTES

    @property
    def value(self) -> str:
        """Identifier name with quotes removed and doubled quotes collapsed."""
        if not self.is_quoted:
            return self.text
        q = self.text[0]
        return self.text[1:-1].replace(q + q, q)

    @property
    def is_line_break(self) -> bool:
        return self.kind is TokenKind.WHITESPACE and self.text in ("\n", "\r\n", "\r")

    def matches(self, *words: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.text.upper() in words


def _count_breaks(text: str) -> int:
    return text.count("\n") + text.count("\r") - text.count("\r\n")


@dataclass(frozen=True)
class Finding:
    """What a rule check yields; the engine turns it into a Violation."""

    token: Token
    message: str
    suggested_fix: str | None = None
    fix_safe: bool = False
    # Fix target when it is not the token itself.
    offset: int | None = None
    length: int | None = None


@dataclass(frozen=True)
class Violation:
    rule_id: str
    message: str
    path: str
    line: int
    col: int
    severity: str
    end_line: int = 0
    end_col: int = 0
    suggested_fix: str | None = None
    fix_safe: bool = False
    offset: int = 0
    length: int = 0
    # Source text at offset:offset+length when the fix was suggested.
    fix_target: str | None = None


@dataclass(frozen=True)
class FileError:
    path: str
    kind: str
    message: str
    line: int | None = None
    col: int | None = None


class SqlStyleError(Exception):
    """Base class for errors raised by sql-formatter-thing."""
