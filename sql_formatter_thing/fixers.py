from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from typing import Iterable

from .tokenizer import LexError, tokenize
from .types import Violation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Edit:
    offset: int
    length: int
    text: str
    rule_id: str


def _targets_match(source: str, v: Violation) -> bool:
    if v.offset + v.length > len(source):
        return False
    return v.fix_target is None or source[v.offset : v.offset + v.length] == v.fix_target


def _collect_edits(violations: Iterable[Violation], source: str, *, safe_only: bool) -> list[_Edit]:
    edits: list[_Edit] = []
    for v in violations:
        if v.suggested_fix is None or (safe_only and not v.fix_safe):
            continue
        if not _targets_match(source, v):
            logger.debug("dropping %s fix at offset %d: source text changed", v.rule_id, v.offset)
            continue
        edits.append(_Edit(offset=v.offset, length=v.length, text=v.suggested_fix, rule_id=v.rule_id))
    edits.sort(key=lambda e: (e.offset, e.rule_id))
    return edits


def _splice(source: str, edits: list[_Edit]) -> tuple[str, int]:
    """
    Apply edits left to right. An edit that starts inside, or at the same
    offset as, an edit already applied is dropped.
    """
    parts: list[str] = []
    cursor = 0
    last_start = -1
    applied = 0
    for e in edits:
        if e.offset < cursor or e.offset == last_start:
            logger.debug("dropping %s fix at offset %d: overlaps an earlier fix", e.rule_id, e.offset)
            continue
        parts.append(source[cursor : e.offset])
        parts.append(e.text)
        cursor = e.offset + e.length
        last_start = e.offset
        applied += 1
    parts.append(source[cursor:])
    return "".join(parts), applied


def apply_fixes(source: str, violations: Iterable[Violation]) -> str:
    """
    Apply the safe fixes among `violations` to `source`.

    The token kinds of the result must line up one for one with the input;
    otherwise the input is returned untouched.
    """
    edits = _collect_edits(violations, source, safe_only=True)
    if not edits:
        return source
    out, applied = _splice(source, edits)
    if out == source:
        return source

    try:
        before = [t.kind for t in tokenize(source)]
        after = [t.kind for t in tokenize(out)]
    except LexError as e:
        logger.warning("not applying fixes: result does not tokenize (%s)", e)
        return source
    if before != after:
        logger.warning("not applying fixes: they would change the token structure")
        return source

    logger.debug("applied %d safe fix(es)", applied)
    return out


def suggest_diff(source: str, violations: Iterable[Violation], path: str) -> str:
    """Unified diff of every suggested fix, safe or not. Never written to disk."""
    edits = _collect_edits(violations, source, safe_only=False)
    if not edits:
        return ""
    out, _applied = _splice(source, edits)
    if out == source:
        return ""
    name = path.lstrip("/")
    return "".join(
        difflib.unified_diff(
            source.splitlines(keepends=True),
            out.splitlines(keepends=True),
            fromfile=f"a/{name}",
            tofile=f"b/{name}",
        )
    )
