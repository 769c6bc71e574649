"""
SQL tokenizer.

Splits text into keyword, identifier, literal, punctuation, comment and
whitespace tokens. Nothing is dropped: joining the text of every token gives
back the input, so whitespace rules can look at the exact formatting.
"""

from __future__ import annotations

import re
from typing import Iterator

from .keywords import is_reserved
from .types import SqlStyleError, Token, TokenKind


class LexError(SqlStyleError):
    """Unterminated string, quoted identifier or comment."""

    def __init__(self, message: str, line: int, column: int, offset: int) -> None:
        super().__init__(f"{message} (line {line}, column {column})")
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset


_RE_HSPACE = re.compile(r"[ \t\f\v]+")
_RE_BREAK = re.compile(r"\r\n|\r|\n")
_RE_NUMBER = re.compile(r"0[xX][0-9A-Fa-f]+|(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_RE_WORD = re.compile(r"[^\W\d][\w$]*")
_RE_NAMED_PARAM = re.compile(r"[:@][^\W\d]\w*")
_RE_POSITIONAL_PARAM = re.compile(r"\$\d+")
_RE_DOLLAR_TAG = re.compile(r"\$(?:[^\W\d]\w*)?\$")
_RE_LINE_COMMENT = re.compile(r"--[^\r\n]*")

# Longest first so multi-character operators are never split.
_OPERATORS = ("->>", "#>>", "<>", "!=", "<=", ">=", "||", "::", ":=", "=>", "->", "#>", "<<", ">>", "**")

_STRING_PREFIXES = "NnEeXxBb"
_DIGITS = "0123456789"


def _scan_quoted(src: str, start: int, quote: str, backslash: bool = False) -> int:
    """Return the index just past the closing quote, or -1 if there is none."""
    j = start + 1
    n = len(src)
    while j < n:
        c = src[j]
        if backslash and c == "\\":
            j += 2
            continue
        if c == quote:
            if j + 1 < n and src[j + 1] == quote:
                j += 2
                continue
            return j + 1
        j += 1
    return -1


def iter_tokens(source: str) -> Iterator[Token]:
    """
    Lazily tokenize `source`.

    Positions are 1-based line/column plus a 0-based character offset.
    Raises LexError, pointing at the opening delimiter, when a string,
    quoted identifier, dollar-quoted body or block comment never closes.
    """
    i = 0
    n = len(source)
    line = 1
    col = 1

    while i < n:
        c = source[i]
        kind: TokenKind
        end: int

        m = _RE_BREAK.match(source, i) if c in "\r\n" else None
        if m:
            kind, end = TokenKind.WHITESPACE, m.end()
        elif c in " \t\f\v":
            kind, end = TokenKind.WHITESPACE, _RE_HSPACE.match(source, i).end()  # type: ignore[union-attr]
        elif source.startswith("--", i):
            kind, end = TokenKind.COMMENT, _RE_LINE_COMMENT.match(source, i).end()  # type: ignore[union-attr]
        elif source.startswith("/*", i):
            close = source.find("*/", i + 2)
            if close < 0:
                raise LexError("unterminated block comment", line, col, i)
            kind, end = TokenKind.COMMENT, close + 2
        elif c == "'" or (c in _STRING_PREFIXES and source.startswith("'", i + 1)):
            quote_at = i if c == "'" else i + 1
            end = _scan_quoted(source, quote_at, "'", backslash=c in "Ee")
            if end < 0:
                raise LexError("unterminated string literal", line, col, i)
            kind = TokenKind.LITERAL
        elif c in "\"`":
            end = _scan_quoted(source, i, c)
            if end < 0:
                raise LexError("unterminated quoted identifier", line, col, i)
            kind = TokenKind.IDENTIFIER
        elif c == "$" and _RE_DOLLAR_TAG.match(source, i):
            tag = _RE_DOLLAR_TAG.match(source, i).group(0)  # type: ignore[union-attr]
            close = source.find(tag, i + len(tag))
            if close < 0:
                raise LexError("unterminated dollar-quoted string", line, col, i)
            kind, end = TokenKind.LITERAL, close + len(tag)
        elif c == "$" and _RE_POSITIONAL_PARAM.match(source, i):
            kind, end = TokenKind.LITERAL, _RE_POSITIONAL_PARAM.match(source, i).end()  # type: ignore[union-attr]
        elif c in _DIGITS or (c == "." and i + 1 < n and source[i + 1] in _DIGITS):
            kind, end = TokenKind.LITERAL, _RE_NUMBER.match(source, i).end()  # type: ignore[union-attr]
        elif _RE_WORD.match(source, i):
            end = _RE_WORD.match(source, i).end()  # type: ignore[union-attr]
            kind = TokenKind.KEYWORD if is_reserved(source[i:end]) else TokenKind.IDENTIFIER
        else:
            op = next((o for o in _OPERATORS if source.startswith(o, i)), None)
            if op is not None:
                kind, end = TokenKind.PUNCTUATION, i + len(op)
            elif c in ":@" and _RE_NAMED_PARAM.match(source, i):
                kind, end = TokenKind.LITERAL, _RE_NAMED_PARAM.match(source, i).end()  # type: ignore[union-attr]
            elif c == "?":
                kind, end = TokenKind.LITERAL, i + 1
            else:
                kind, end = TokenKind.PUNCTUATION, i + 1

        tok = Token(kind=kind, text=source[i:end], line=line, column=col, offset=i)
        yield tok
        line, col = tok.end_line, tok.end_column
        i = end


def tokenize(source: str) -> tuple[Token, ...]:
    return tuple(iter_tokens(source))
