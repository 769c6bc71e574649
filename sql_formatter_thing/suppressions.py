"""
Inline suppression directives.

    SELECT * FROM t  -- noqa: SQL012
    -- sqlstyle: disable-next-line=SQL002
    /* sqlstyle: disable=SQL010,SQL011 */ ... /* sqlstyle: enable=SQL010,SQL011 */

Without a rule list a directive covers every rule. `enable=IDS` only closes
ranges opened for those ids; a bare `enable` closes all of them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from .types import Token, TokenKind

ALL = "*"

_IDS = r"[A-Za-z0-9_]+(?:\s*,\s*[A-Za-z0-9_]+)*"
_RE_DIRECTIVE = re.compile(
    rf"\bsqlstyle:\s*(disable-next-line|disable-line|disable|enable)\b(?:\s*=\s*({_IDS}))?",
    re.IGNORECASE,
)
_RE_NOQA = re.compile(rf"\bnoqa\b(?:\s*:\s*({_IDS}))?", re.IGNORECASE)


@dataclass(frozen=True)
class SuppressedRange:
    start: int
    end: int | None
    rule_id: str

    def covers(self, line: int) -> bool:
        return self.start <= line and (self.end is None or line <= self.end)


@dataclass(frozen=True)
class Suppressions:
    lines: dict[int, frozenset[str]] = field(default_factory=dict)
    ranges: tuple[SuppressedRange, ...] = ()

    def is_suppressed(self, rule_id: str, line: int) -> bool:
        ids = self.lines.get(line)
        if ids is not None and (ALL in ids or rule_id in ids):
            return True
        return any(r.covers(line) and r.rule_id in (ALL, rule_id) for r in self.ranges)

    def __bool__(self) -> bool:
        return bool(self.lines or self.ranges)


def _parse_ids(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset({ALL})
    return frozenset(p.strip().upper() for p in raw.split(",") if p.strip())


def collect_suppressions(tokens: Iterable[Token]) -> Suppressions:
    lines: dict[int, set[str]] = {}
    ranges: list[SuppressedRange] = []
    open_ranges: dict[str, int] = {}

    def mark(line: int, ids: frozenset[str]) -> None:
        lines.setdefault(line, set()).update(ids)

    for t in tokens:
        if t.kind is not TokenKind.COMMENT:
            continue
        for m in _RE_NOQA.finditer(t.text):
            for ln in range(t.line, t.end_line + 1):
                mark(ln, _parse_ids(m.group(1)))
        for m in _RE_DIRECTIVE.finditer(t.text):
            action = m.group(1).lower()
            ids = _parse_ids(m.group(2))
            if action == "disable-line":
                for ln in range(t.line, t.end_line + 1):
                    mark(ln, ids)
            elif action == "disable-next-line":
                mark(t.end_line + 1, ids)
            elif action == "disable":
                for rid in ids:
                    open_ranges.setdefault(rid, t.line)
            else:
                closing = list(open_ranges) if ALL in ids else [rid for rid in ids if rid in open_ranges]
                for rid in closing:
                    ranges.append(SuppressedRange(start=open_ranges.pop(rid), end=t.end_line, rule_id=rid))

    for rid, start in open_ranges.items():
        ranges.append(SuppressedRange(start=start, end=None, rule_id=rid))

    return Suppressions(
        lines={ln: frozenset(ids) for ln, ids in lines.items()},
        ranges=tuple(ranges),
    )
