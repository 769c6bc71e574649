from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .keywords import CLAUSE_STARTERS, DEPENDENT_KEYWORDS
from .types import Token, TokenKind


@dataclass(frozen=True)
class TokenContext:
    depth: int
    clause: str | None
    first_on_line: bool
    clause_head: bool = False
    # Index of the keyword a dependent keyword (ON, AND, OR, SET) aligns to.
    governor: int | None = None
    in_between: bool = False


@dataclass(frozen=True)
class TokenStream:
    """An immutable token tuple plus the clause context of every token."""

    tokens: tuple[Token, ...]
    contexts: tuple[TokenContext, ...]

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[tuple[int, Token, TokenContext]]:
        for i, t in enumerate(self.tokens):
            yield i, t, self.contexts[i]

    def next_significant(self, i: int) -> int | None:
        for j in range(i + 1, len(self.tokens)):
            if _is_significant(self.tokens[j]):
                return j
        return None

    def prev_significant(self, i: int) -> int | None:
        for j in range(i - 1, -1, -1):
            if _is_significant(self.tokens[j]):
                return j
        return None

    def leading_whitespace(self, i: int) -> Token | None:
        """Indentation token in front of token `i`, if `i` starts its line."""
        if not self.contexts[i].first_on_line or i == 0:
            return None
        prev = self.tokens[i - 1]
        if prev.kind is TokenKind.WHITESPACE and not prev.is_line_break:
            return prev
        return None


def _is_significant(t: Token) -> bool:
    return t.kind not in (TokenKind.WHITESPACE, TokenKind.COMMENT)


@dataclass
class _Frame:
    clause: str | None = None
    head: int | None = None
    between_pending: bool = False
    phrase_left: int = 0


def _match_phrase(tokens: tuple[Token, ...], i: int) -> tuple[str, ...] | None:
    for phrase in CLAUSE_STARTERS:
        j = i
        ok = True
        for k, word in enumerate(phrase):
            if k:
                j += 1
                while j < len(tokens) and not _is_significant(tokens[j]):
                    j += 1
            if j >= len(tokens) or not tokens[j].matches(word):
                ok = False
                break
        if ok:
            return phrase
    return None


def analyze(tokens: tuple[Token, ...]) -> TokenStream:
    """
    Attach clause context to every token.

    Parentheses open a new frame so a subquery tracks its own clause; `;` at
    the outermost level starts a fresh statement.
    """
    frames: list[_Frame] = [_Frame()]
    contexts: list[TokenContext] = []
    at_line_start = True

    for i, t in enumerate(tokens):
        first = at_line_start and t.kind is not TokenKind.WHITESPACE
        if t.is_line_break:
            at_line_start = True
        elif t.kind is not TokenKind.WHITESPACE:
            at_line_start = False

        if t.kind is TokenKind.PUNCTUATION and t.text == ")" and len(frames) > 1:
            frames.pop()
        frame = frames[-1]
        depth = len(frames) - 1

        head = False
        governor: int | None = None
        in_between = False

        if t.kind is TokenKind.KEYWORD:
            word = t.text.upper()
            phrase = _match_phrase(tokens, i) if frame.phrase_left == 0 else None
            if frame.phrase_left:
                frame.phrase_left -= 1
            if phrase is not None:
                name = " ".join(phrase)
                if name == "SET" and frame.clause == "UPDATE":
                    governor = frame.head
                frame.clause = name
                frame.head = i
                frame.between_pending = False
                frame.phrase_left = len(phrase) - 1
                head = True
            elif word == "JOIN":
                frame.clause = "JOIN"
                frame.head = i
                head = True
            elif word == "BETWEEN":
                frame.between_pending = True
            elif word == "AND" and frame.between_pending:
                frame.between_pending = False
                in_between = True
            elif word in DEPENDENT_KEYWORDS and frame.clause in DEPENDENT_KEYWORDS[word]:
                governor = frame.head

        contexts.append(
            TokenContext(
                depth=depth,
                clause=frame.clause,
                first_on_line=first,
                clause_head=head,
                governor=governor,
                in_between=in_between,
            )
        )

        if t.kind is TokenKind.PUNCTUATION:
            if t.text == "(":
                frames.append(_Frame())
            elif t.text == ";" and len(frames) == 1:
                frames[0] = _Frame()

    return TokenStream(tokens=tokens, contexts=tuple(contexts))

