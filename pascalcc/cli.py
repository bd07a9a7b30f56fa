#!/usr/bin/env python3
"""
pascalcc command line
=====================

    pascalcc check FILE... [--symbols] [--ast] [-v]
    pascalcc verify [--clean DIR] [--errors DIR] [-v]

`check` prints the diagnostics of each file. `verify` runs a directory
of programs expected to be error-free and/or a directory of programs
expected to contain errors, and prints OK / FAIL / CRASH per file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .pipeline import AnalysisResult, PascalFrontend
from .tree.nodes import to_lark_tree

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(format="{levelname:<7} {name}: {message}", style="{")
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.WARNING)


def collect_sources(directory: str | Path) -> list[Path]:
    """All .pas files under `directory`, sorted"""
    return sorted(Path(directory).rglob('*.pas'))


def _make_frontend(args) -> PascalFrontend | None:
    frontend = PascalFrontend()
    if args.builtins:
        frontend.load_builtins_from_file(args.builtins)
        if frontend.load_errors:
            for err in frontend.load_errors:
                print(f"❌ {err}", file=sys.stderr)
            return None
    return frontend


# ─── check ───────────────────────────────────────────────────────────────────

def print_result(result: AnalysisResult, show_symbols: bool = False, show_ast: bool = False):
    print(f"── {result.source_name} ({result.token_count} tokens)")
    if show_ast and result.ast is not None:
        print(to_lark_tree(result.ast).pretty())
    if show_symbols and result.symbol_table is not None:
        rows = result.symbols
        print(f"{'name':<16} {'type':<10} {'scope':<18} {'line':>4}  {'init':<5} {'category':<13} uses")
        for row in rows:
            print(f"{row['name']:<16} {row['type']:<10} {row['scope']:<18} {row['line']:>4}  "
                  f"{'yes' if row['initialized'] else 'no':<5} {row['category']:<13} {row['useCount']}")
        print()
    print(result.diags.report())
    if result.has_critical_errors:
        print("✗ compilation failed")
    elif result.diags.has_any:
        print("△ compiled with warnings")
    else:
        print("✓ compiled successfully")
    print()


def cmd_check(args) -> int:
    frontend = _make_frontend(args)
    if frontend is None:
        return 2

    failed = 0
    for path in args.files:
        result = frontend.process_file(path)
        print_result(result, show_symbols=args.symbols, show_ast=args.ast)
        if result.has_critical_errors:
            failed += 1
    return 1 if failed else 0


# ─── verify ──────────────────────────────────────────────────────────────────

def verify_file(frontend: PascalFrontend, path: Path, expect_errors: bool) -> tuple[str, str]:
    """
    Returns (status, detail) with status one of OK / FAIL / CRASH.
    A clean program must produce no diagnostics at all; an erroneous one
    at least one.
    """
    try:
        result = frontend.process_file(path)
    except Exception as e:   # any exception here is a bug in the front end
        logger.debug("crash while analyzing %s", path, exc_info=True)
        return 'CRASH', f"{type(e).__name__}: {e}"

    found = result.diags.has_any
    if found == expect_errors:
        return 'OK', ''
    if expect_errors:
        return 'FAIL', "expected at least one diagnostic, found none"
    details = '\n'.join(f"    [line {d['line']}] {d['message']}" for d in result.diagnostics)
    return 'FAIL', f"found {result.error_count} unexpected diagnostic(s):\n{details}"


def cmd_verify(args) -> int:
    frontend = _make_frontend(args)
    if frontend is None:
        return 2

    groups = []
    if args.clean:
        groups.append(("clean programs (expected: no diagnostics)", args.clean, False))
    if args.errors:
        groups.append(("erroneous programs (expected: diagnostics)", args.errors, True))
    if not groups:
        print("❌ nothing to verify: pass --clean DIR and/or --errors DIR", file=sys.stderr)
        return 2

    counts = {'OK': 0, 'FAIL': 0, 'CRASH': 0}
    for title, directory, expect_errors in groups:
        if not Path(directory).is_dir():
            print(f"❌ directory not found: {directory}", file=sys.stderr)
            return 2
        print(f"--- {title}: {directory}")
        for path in collect_sources(directory):
            status, detail = verify_file(frontend, path, expect_errors)
            counts[status] += 1
            print(f"[{status}] {path.name}")
            if detail:
                print(f"    {detail}")
        print()

    total = sum(counts.values())
    print(f"{total} file(s): {counts['OK']} passed, {counts['FAIL']} failed, "
          f"{counts['CRASH']} crashed")
    return 0 if counts['FAIL'] + counts['CRASH'] == 0 else 1


# ─── entry point ─────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    common.add_argument('--builtins', metavar='FILE',
                        help='extra built-in routine declarations')

    parser = argparse.ArgumentParser(
        prog='pascalcc', description='Pascal front end: lexical, syntactic and semantic checks')
    sub = parser.add_subparsers(dest='command', required=True)

    check = sub.add_parser('check', parents=[common], help='analyze source files')
    check.add_argument('files', nargs='+', help='Pascal source files')
    check.add_argument('--symbols', action='store_true', help='print the symbol table')
    check.add_argument('--ast', action='store_true', help='print the syntax tree')
    check.set_defaults(func=cmd_check)

    verify = sub.add_parser('verify', parents=[common], help='batch-verify example directories')
    verify.add_argument('--clean', metavar='DIR', help='programs that must analyze cleanly')
    verify.add_argument('--errors', metavar='DIR', help='programs that must produce diagnostics')
    verify.set_defaults(func=cmd_verify)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
