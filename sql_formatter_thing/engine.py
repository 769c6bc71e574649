from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .fixers import apply_fixes, suggest_diff
from .registry import ActiveRule
from .report import Report, sort_violations
from .suppressions import collect_suppressions
from .token_context import analyze
from .tokenizer import LexError, tokenize
from .types import FileError, Finding, Violation

logger = logging.getLogger(__name__)

STDIN_PATH = "<stdin>"

DEFAULT_EXTENSIONS = (".sql",)

DEFAULT_EXCLUDE_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
    ".venv",
    "venv",
    "__pycache__",
    "node_modules",
    "dist",
    "build",
}


@dataclass(frozen=True)
class FileResult:
    path: str
    violations: tuple[Violation, ...] = ()
    error: FileError | None = None
    # Source after safe fixes, when fixing was requested.
    output: str | None = None
    diff: str = ""

    @property
    def changed(self) -> bool:
        return self.output is not None


def _to_violation(f: Finding, rule: ActiveRule, path: str, source: str) -> Violation:
    t = f.token
    offset = t.offset if f.offset is None else f.offset
    length = len(t.text) if f.length is None else f.length
    return Violation(
        rule_id=rule.id,
        message=f.message,
        path=path,
        line=t.line,
        col=t.column,
        severity=rule.severity.value,
        end_line=t.end_line,
        end_col=t.end_column,
        suggested_fix=f.suggested_fix,
        fix_safe=f.fix_safe,
        offset=offset,
        length=length,
        fix_target=None if f.suggested_fix is None else source[offset : offset + length],
    )


def check_source(source: str, active_rules: Sequence[ActiveRule], path: str = STDIN_PATH) -> list[Violation]:
    """Run every active rule over `source`. Raises LexError."""
    tokens = tokenize(source)
    stream = analyze(tokens)
    suppressions = collect_suppressions(tokens)

    violations: list[Violation] = []
    for rule in active_rules:
        for finding in rule.run(stream):
            v = _to_violation(finding, rule, path, source)
            if suppressions and suppressions.is_suppressed(v.rule_id, v.line):
                continue
            violations.append(v)
    return sort_violations(violations)


def fix_source(
    source: str, active_rules: Sequence[ActiveRule], path: str = STDIN_PATH
) -> tuple[str, list[Violation]]:
    """Apply safe fixes; return the new source and what is left to report."""
    violations = check_source(source, active_rules, path)
    fixed = apply_fixes(source, violations)
    if fixed == source:
        return source, violations
    return fixed, check_source(fixed, active_rules, path)


def check_text(
    source: str,
    active_rules: Sequence[ActiveRule],
    *,
    path: str = STDIN_PATH,
    fix: bool = False,
    diff: bool = False,
) -> FileResult:
    try:
        if fix:
            fixed, violations = fix_source(source, active_rules, path)
            output = fixed if fixed != source else None
        else:
            violations, output = check_source(source, active_rules, path), None
    except LexError as e:
        return FileResult(
            path=path,
            error=FileError(path=path, kind="LexError", message=e.message, line=e.line, col=e.column),
        )
    text_diff = suggest_diff(output or source, violations, path) if diff else ""
    return FileResult(path=path, violations=tuple(violations), output=output, diff=text_diff)


def check_file(
    fp: Path, active_rules: Sequence[ActiveRule], *, fix: bool = False, diff: bool = False
) -> FileResult:
    path = str(fp)
    try:
        src = fp.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return FileResult(path=path, error=FileError(path=path, kind="ReadError", message=str(e)))

    result = check_text(src, active_rules, path=path, fix=fix, diff=diff)
    if result.output is not None:
        fp.write_bytes(result.output.encode("utf-8"))
        logger.debug("wrote fixes to %s", path)
    return result


def _iter_files(paths: Iterable[Path], exts: tuple[str, ...]) -> Iterable[Path]:
    seen: set[Path] = set()
    for p in paths:
        if p.is_dir():
            found = (
                fp
                for fp in p.rglob("*")
                if fp.is_file()
                and fp.suffix in exts
                and not any(part in DEFAULT_EXCLUDE_DIRS for part in fp.parts)
            )
            candidates = sorted(found)
        else:
            # Missing files are passed through and reported as read errors.
            candidates = [p]
        for fp in candidates:
            if fp not in seen:
                seen.add(fp)
                yield fp


def run_paths(
    paths: list[Path],
    active_rules: Sequence[ActiveRule],
    *,
    exts: tuple[str, ...] = DEFAULT_EXTENSIONS,
    jobs: int | None = None,
    fix: bool = False,
    diff: bool = False,
) -> list[FileResult]:
    """
    Analyze every file under `paths`, one token stream per file.

    Files are independent, so they run on a thread pool; results come back
    ordered by path whatever order the workers finish in.
    """
    files = list(_iter_files(paths, exts))
    logger.debug("checking %d file(s) with %d rule(s)", len(files), len(active_rules))

    def work(fp: Path) -> FileResult:
        return check_file(fp, active_rules, fix=fix, diff=diff)

    if jobs == 1 or len(files) <= 1:
        results = [work(fp) for fp in files]
    else:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            results = list(pool.map(work, files))
    return sorted(results, key=lambda r: r.path)


def build_report(results: Iterable[FileResult]) -> Report:
    violations: list[Violation] = []
    errors: list[FileError] = []
    checked = 0
    for r in results:
        if r.error is not None:
            errors.append(r.error)
            continue
        checked += 1
        violations.extend(r.violations)
    return Report.build(violations, errors, files_checked=checked)


def check_paths(
    paths: list[Path],
    active_rules: Sequence[ActiveRule],
    *,
    exts: tuple[str, ...] = DEFAULT_EXTENSIONS,
    jobs: int | None = None,
    fix: bool = False,
) -> Report:
    return build_report(run_paths(paths, active_rules, exts=exts, jobs=jobs, fix=fix))
