"""
Built-in style rules.

Each check reads the token stream and its parameters and yields Findings;
no check looks at another check's output.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, Mapping

from .config import ConfigError
from .keywords import TOP_LEVEL_CLAUSES, is_reserved, parse_clause
from .registry import RuleRegistry
from .token_context import TokenStream
from .types import Finding, Severity, Token, TokenKind

_builtins = RuleRegistry()


# ---------------------------------------------------------------- keyword case


@_builtins.rule(
    "SQL001",
    name="keyword-case",
    category="keyword-case",
    severity=Severity.WARNING,
    description="Reserved keywords use the configured case.",
    choices={"case": ("upper", "lower")},
    case="upper",
)
def keyword_case(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    want = params["case"]
    for _i, t, _ctx in stream:
        if t.kind is not TokenKind.KEYWORD:
            continue
        fixed = t.text.upper() if want == "upper" else t.text.lower()
        if t.text != fixed:
            yield Finding(
                token=t,
                message=f"keyword '{t.text}' should be {want}case '{fixed}'",
                suggested_fix=fixed,
                fix_safe=True,
            )


# ---------------------------------------------------------------- identifiers


def _identifiers(stream: TokenStream) -> Iterator[Token]:
    for _i, t, _ctx in stream:
        if t.kind is TokenKind.IDENTIFIER:
            yield t


@_builtins.rule(
    "SQL002",
    name="identifier-length",
    category="naming",
    severity=Severity.ERROR,
    description="Identifiers are at most max_length bytes long.",
    max_length=30,
)
def identifier_length(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    limit = params["max_length"]
    for t in _identifiers(stream):
        size = len(t.value.encode("utf-8"))
        if size > limit:
            yield Finding(token=t, message=f"identifier '{t.value}' is {size} bytes long (max {limit})")


def _validate_pattern(params: Mapping[str, Any]) -> None:
    try:
        re.compile(params["pattern"])
    except re.error as e:
        raise ConfigError(f"invalid regex: {e}", key="SQL003.parameters.pattern") from e


@_builtins.rule(
    "SQL003",
    name="identifier-charset",
    category="naming",
    severity=Severity.ERROR,
    description="Identifiers only use letters, digits and underscores.",
    validate=_validate_pattern,
    pattern=r"^[A-Za-z0-9_]+$",
)
def identifier_charset(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    rx = re.compile(params["pattern"])
    for t in _identifiers(stream):
        if not rx.search(t.value):
            yield Finding(token=t, message=f"identifier '{t.value}' contains characters outside {params['pattern']}")


@_builtins.rule(
    "SQL004",
    name="identifier-leading-digit",
    category="naming",
    severity=Severity.ERROR,
    description="Identifiers begin with a letter, not a digit.",
)
def identifier_leading_digit(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    for t in _identifiers(stream):
        if t.value[:1].isdigit():
            yield Finding(token=t, message=f"identifier '{t.value}' starts with a digit")


@_builtins.rule(
    "SQL005",
    name="identifier-trailing-underscore",
    category="naming",
    severity=Severity.WARNING,
    description="Identifiers do not end with an underscore.",
)
def identifier_trailing_underscore(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    for t in _identifiers(stream):
        if t.value.endswith("_"):
            yield Finding(token=t, message=f"identifier '{t.value}' ends with an underscore")


@_builtins.rule(
    "SQL006",
    name="identifier-reserved",
    category="naming",
    severity=Severity.ERROR,
    description="Identifiers are not reserved words.",
    reserved_words=(),
    include_keywords=True,
)
def identifier_reserved(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    words = {w.upper() for w in params["reserved_words"]}
    for t in _identifiers(stream):
        name = t.value.upper()
        # Unquoted keywords never reach here; the tokenizer classifies them.
        if name in words or (params["include_keywords"] and is_reserved(name)):
            yield Finding(token=t, message=f"identifier '{t.value}' is a reserved word")


@_builtins.rule(
    "SQL007",
    name="identifier-affix",
    category="naming",
    severity=Severity.WARNING,
    description="Identifiers avoid forbidden prefixes and suffixes such as tbl_.",
    forbidden_prefixes=("tbl_", "sp_"),
    forbidden_suffixes=(),
)
def identifier_affix(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    prefixes = tuple(p.lower() for p in params["forbidden_prefixes"] if p)
    suffixes = tuple(s.lower() for s in params["forbidden_suffixes"] if s)
    for t in _identifiers(stream):
        name = t.value.lower()
        hit = next((p for p in prefixes if name.startswith(p)), None)
        if hit is not None:
            yield Finding(token=t, message=f"identifier '{t.value}' uses forbidden prefix '{hit}'")
        hit = next((s for s in suffixes if name.endswith(s)), None)
        if hit is not None:
            yield Finding(token=t, message=f"identifier '{t.value}' uses forbidden suffix '{hit}'")


# ---------------------------------------------------------------- layout


@_builtins.rule(
    "SQL010",
    name="clause-indentation",
    category="whitespace",
    severity=Severity.WARNING,
    description="Top-level clause keywords that start a line are not indented.",
    clauses=tuple(" ".join(c) for c in TOP_LEVEL_CLAUSES),
)
def clause_indentation(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    clauses = {" ".join(parse_clause(c)) for c in params["clauses"]}
    for i, t, ctx in stream:
        if not (ctx.clause_head and ctx.first_on_line and ctx.depth == 0 and ctx.clause in clauses):
            continue
        ws = stream.leading_whitespace(i)
        if ws is None:
            continue
        yield Finding(
            token=t,
            message=f"clause keyword {ctx.clause} is indented {len(ws.text)} column(s); expected none",
            suggested_fix="",
            offset=ws.offset,
            length=len(ws.text),
        )


@_builtins.rule(
    "SQL011",
    name="dependent-alignment",
    category="structure",
    severity=Severity.WARNING,
    description="ON, AND/OR and SET are right-aligned with the clause keyword they belong to.",
    tolerance=0,
)
def dependent_alignment(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    tolerance = params["tolerance"]
    for i, t, ctx in stream:
        if ctx.governor is None or not ctx.first_on_line or ctx.in_between:
            continue
        gov = stream.tokens[ctx.governor]
        off_by = t.end_column - gov.end_column
        if abs(off_by) <= tolerance:
            continue
        indent = gov.end_column - len(t.text) - 1
        ws = stream.leading_whitespace(i)
        fix: str | None = None
        offset = length = None
        if indent >= 0:
            fix = " " * indent
            if ws is not None:
                offset, length = ws.offset, len(ws.text)
            else:
                offset, length = t.offset, 0
        yield Finding(
            token=t,
            message=(
                f"{t.text.upper()} should end in column {gov.end_column - 1} "
                f"to align with {gov.text.upper()} (off by {off_by})"
            ),
            suggested_fix=fix,
            offset=offset,
            length=length,
        )


_ALIAS_CLAUSES = {"SELECT", "FROM", "JOIN"}


@_builtins.rule(
    "SQL012",
    name="implicit-alias",
    category="structure",
    severity=Severity.WARNING,
    description="Aliases are introduced with an explicit AS.",
)
def implicit_alias(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    toks = stream.tokens
    for i, t, ctx in stream:
        if t.kind is not TokenKind.IDENTIFIER or ctx.clause not in _ALIAS_CLAUSES:
            continue
        p = stream.prev_significant(i)
        if p is None or any(x.kind is not TokenKind.WHITESPACE for x in toks[p + 1 : i]):
            continue
        prev = toks[p]
        is_reference = prev.kind is TokenKind.IDENTIFIER or (
            prev.kind is TokenKind.PUNCTUATION and prev.text == ")"
        )
        if not is_reference or stream.contexts[p].depth != ctx.depth:
            continue
        nxt = stream.next_significant(i)
        if nxt is not None and toks[nxt].text in ("(", "."):
            continue
        yield Finding(
            token=t,
            message=f"alias '{t.text}' should be introduced with AS",
            suggested_fix=f"AS {t.text}",
        )


# ---------------------------------------------------------------- whitespace


@_builtins.rule(
    "SQL013",
    name="trailing-whitespace",
    category="whitespace",
    severity=Severity.WARNING,
    description="Lines do not end in whitespace.",
)
def trailing_whitespace(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    toks = stream.tokens
    for i, t, _ctx in stream:
        if t.kind is TokenKind.COMMENT and t.text.startswith("--"):
            # Line comments run to end of line and carry their trailing blanks.
            body = t.text.rstrip(" \t")
            if body != t.text:
                tail = Token(
                    kind=TokenKind.WHITESPACE,
                    text=t.text[len(body) :],
                    line=t.line,
                    column=t.column + len(body),
                    offset=t.offset + len(body),
                )
                yield Finding(token=tail, message="trailing whitespace", suggested_fix="")
            continue
        if t.kind is not TokenKind.WHITESPACE or t.is_line_break:
            continue
        if i + 1 == len(toks) or toks[i + 1].is_line_break:
            yield Finding(token=t, message="trailing whitespace", suggested_fix="")


def _validate_tab_width(params: Mapping[str, Any]) -> None:
    if params["tab_width"] < 1:
        raise ConfigError("must be at least 1", key="SQL014.parameters.tab_width")


@_builtins.rule(
    "SQL014",
    name="tab-indentation",
    category="whitespace",
    severity=Severity.WARNING,
    description="Indentation uses spaces, not tabs.",
    validate=_validate_tab_width,
    tab_width=4,
)
def tab_indentation(stream: TokenStream, params: Mapping[str, Any]) -> Iterator[Finding]:
    spaces = " " * params["tab_width"]
    toks = stream.tokens
    for i, t, _ctx in stream:
        if t.kind is not TokenKind.WHITESPACE or t.is_line_break or "\t" not in t.text:
            continue
        if i == 0 or toks[i - 1].is_line_break:
            yield Finding(
                token=t,
                message="tab used for indentation",
                suggested_fix=t.text.replace("\t", spaces),
                fix_safe=True,
            )


BUILTIN_RULES = tuple(_builtins)
