from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Iterable, Mapping

from .types import FileError, Severity, Violation

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_ERRORS = 2
EXIT_FAILURE = 3

GROUP_MODES = ("none", "rule", "file")


def sort_violations(violations: Iterable[Violation]) -> list[Violation]:
    """Position order within a file; rule id breaks ties."""
    return sorted(violations, key=lambda v: (v.path, v.line, v.col, v.rule_id))


@dataclass(frozen=True)
class Report:
    violations: tuple[Violation, ...]
    errors: tuple[FileError, ...] = ()
    files_checked: int = 0

    @classmethod
    def build(
        cls,
        violations: Iterable[Violation],
        errors: Iterable[FileError] = (),
        files_checked: int = 0,
    ) -> "Report":
        return cls(
            violations=tuple(sort_violations(violations)),
            errors=tuple(sorted(errors, key=lambda e: (e.path, e.line or 0, e.col or 0))),
            files_checked=files_checked,
        )

    def count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity == severity.value)

    def worst_severity(self) -> Severity | None:
        worst: Severity | None = None
        for v in self.violations:
            sev = Severity.parse(v.severity)
            if worst is None or sev.rank > worst.rank:
                worst = sev
        return worst

    def exit_code(self) -> int:
        if self.errors:
            return EXIT_FAILURE
        worst = self.worst_severity()
        if worst is Severity.ERROR:
            return EXIT_ERRORS
        if worst is Severity.WARNING:
            return EXIT_WARNINGS
        return EXIT_OK


def _error_line(e: FileError) -> str:
    if e.line is None:
        return f"{e.path}: {e.kind} {e.message}"
    return f"{e.path}:{e.line}:{e.col}: {e.kind} {e.message}"


def render_text(report: Report, *, group: str = "none") -> str:
    out: list[str] = []
    if group == "none":
        for v in report.violations:
            out.append(f"{v.path}:{v.line}:{v.col}: {v.rule_id} {v.message}")
    else:
        out.extend(_render_grouped(report.violations, group=group))
    for e in report.errors:
        out.append(_error_line(e))

    if report.violations:
        out.append("")
        out.append(
            f"{len(report.violations)} violation(s) "
            f"({report.count(Severity.ERROR)} error(s), {report.count(Severity.WARNING)} warning(s))"
        )
    if report.errors:
        out.append(f"{len(report.errors)} file(s) could not be checked")
    return "\n".join(out) + ("\n" if out else "")


def _render_grouped(violations: tuple[Violation, ...], *, group: str) -> list[str]:
    out: list[str] = []
    if group == "file":
        by_file: dict[str, list[Violation]] = {}
        for v in violations:
            by_file.setdefault(v.path, []).append(v)
        for path in sorted(by_file):
            out.append(path)
            for v in by_file[path]:
                out.append(f"  {v.line}:{v.col} {v.rule_id} {v.message}")
        return out

    by_rule: dict[str, list[Violation]] = {}
    for v in violations:
        by_rule.setdefault(v.rule_id, []).append(v)
    for rid in sorted(by_rule):
        rv = by_rule[rid]
        out.append(f"{rid} ({rv[0].severity}) {len(rv)} occurrence(s)")
        for v in rv:
            out.append(f"  {v.path}:{v.line}:{v.col} {v.message}")
    return out


def _error_payload(kind: str, message: str, **extra: object) -> dict[str, object]:
    return {"type": kind, "message": message, **extra}


def render_json(
    report: Report,
    *,
    cwd: str | None = None,
    config_file: str | None = None,
    diffs: Mapping[str, str] | None = None,
) -> str:
    payload: dict[str, object] = {
        "cwd": cwd,
        "config_file": config_file,
        "files_checked": report.files_checked,
        "violations": [asdict(v) for v in report.violations],
        "errors": [
            _error_payload(e.kind, e.message, path=e.path, line=e.line, col=e.col) for e in report.errors
        ],
        "exit_code": report.exit_code(),
    }
    if diffs is not None:
        payload["diffs"] = dict(sorted(diffs.items()))
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


def render_config_error(message: str, key: str | None, *, fmt: str) -> str:
    if fmt == "json":
        payload = {
            "errors": [_error_payload("ConfigError", message, key=key)],
            "exit_code": EXIT_FAILURE,
        }
        return json.dumps(payload, indent=2, sort_keys=True) + "\n"
    where = f"{key}: " if key else ""
    return f"config error: {where}{message}\n"
