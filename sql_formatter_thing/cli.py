from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import ConfigError, Configuration, find_config, load_config
from .engine import DEFAULT_EXTENSIONS, STDIN_PATH, FileResult, build_report, check_text, run_paths
from .registry import ActiveRule, RuleRegistry, default_registry
from .report import EXIT_FAILURE, EXIT_OK, GROUP_MODES, render_config_error, render_json, render_text


def _split_ids(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [p.strip().upper() for p in value.split(",") if p.strip()]


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sql-formatter-thing",
        description="Check SQL files against a style guide and fix what can be fixed safely.",
    )
    p.add_argument(
        "paths",
        nargs="*",
        help="Files or directories to check (directories are scanned recursively). "
        "Use '-' or nothing to read standard input.",
    )
    p.add_argument(
        "--config",
        help="Path to a YAML or JSON configuration file "
        "(default: .sqlstyle.yaml, .sqlstyle.yml or .sqlstyle.json in the working directory).",
    )
    p.add_argument(
        "--fix",
        action="store_true",
        help="Apply safe fixes in place (stdin: print the fixed SQL), then report what is left.",
    )
    p.add_argument(
        "--diff",
        action="store_true",
        help="Print a unified diff of every suggested fix, including ones --fix will not apply.",
    )
    p.add_argument(
        "--format",
        dest="fmt",
        default="text",
        choices=("text", "json"),
        help="Report format (default: text).",
    )
    p.add_argument(
        "--group",
        default="none",
        choices=GROUP_MODES,
        help="Text output grouping (ignored with --format json). Default: none.",
    )
    p.add_argument(
        "--extensions",
        default=",".join(DEFAULT_EXTENSIONS),
        help="Comma-separated extensions to scan in directories (default: .sql).",
    )
    p.add_argument("--select", help="Comma-separated rule ids to run; all others are disabled.")
    p.add_argument("--ignore", help="Comma-separated rule ids to disable.")
    p.add_argument("--jobs", type=int, default=None, help="Worker threads (default: executor default).")
    p.add_argument("--list-rules", action="store_true", help="List the available rules and exit.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    return p


def _list_rules(registry: RuleRegistry) -> None:
    for r in registry:
        params = ", ".join(f"{k}={v!r}" for k, v in r.parameters.items())
        sys.stdout.write(f"{r.id} {r.name} [{r.category}, {r.severity.value}] {r.description}\n")
        if params:
            sys.stdout.write(f"    {params}\n")


def _resolve_rules(args: argparse.Namespace, registry: RuleRegistry) -> tuple[list[ActiveRule], str | None]:
    config_path = Path(args.config) if args.config else find_config(Path.cwd())
    configuration = load_config(config_path) if config_path is not None else Configuration()
    configuration = configuration.with_overrides(
        select=_split_ids(args.select),
        ignore=_split_ids(args.ignore),
    )
    return registry.resolve(configuration), str(config_path) if config_path else None


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    registry = default_registry()
    if args.list_rules:
        _list_rules(registry)
        return EXIT_OK

    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    # Configuration problems stop the run before any file is read.
    try:
        active, config_file = _resolve_rules(args, registry)
    except ConfigError as e:
        stream = sys.stdout if args.fmt == "json" else sys.stderr
        stream.write(render_config_error(e.message, e.key, fmt=args.fmt))
        return EXIT_FAILURE

    exts = tuple(
        e.strip() if e.strip().startswith(".") else f".{e.strip()}"
        for e in str(args.extensions).split(",")
        if e.strip()
    )

    use_stdin = not args.paths or "-" in args.paths
    file_paths = [Path(p) for p in args.paths if p != "-"]

    results: list[FileResult] = run_paths(
        file_paths, active, exts=exts, jobs=args.jobs, fix=args.fix, diff=args.diff
    )
    stdin_result: FileResult | None = None
    if use_stdin:
        stdin_text = sys.stdin.read()
        stdin_result = check_text(stdin_text, active, path=STDIN_PATH, fix=args.fix, diff=args.diff)
        results.append(stdin_result)

    # With stdin --fix, stdout carries the fixed SQL, so the report moves to stderr.
    out = sys.stdout
    if stdin_result is not None and args.fix:
        sys.stdout.write(stdin_result.output if stdin_result.output is not None else stdin_text)
        out = sys.stderr

    report = build_report(results)
    if args.fmt == "json":
        # JSON output stays a single document; diffs go inside it.
        diffs = {r.path: r.diff for r in results if r.diff} if args.diff else None
        out.write(render_json(report, cwd=os.getcwd(), config_file=config_file, diffs=diffs))
        return report.exit_code()

    if args.diff:
        for r in results:
            if r.diff:
                out.write(r.diff)
    out.write(render_text(report, group=args.group))

    return report.exit_code()


if __name__ == "__main__":
    raise SystemExit(main())
