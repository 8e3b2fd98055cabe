# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line entry point for the kernel inventory."""

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

import Levenshtein
from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from kinv.correlator import CodeCorrelator, CorrelationResult
from kinv.ignore import IgnoreMatcher
from kinv.kconfig import KconfigError, KconfigResolver, find_kernel_root
from kinv.line_counter import FileStat, FileType, LineCounter, sorted_stats, total_stats
from kinv.model import ComponentRecord, ComponentTable, KconfigIssue
from kinv.version import VersionError, fetch_kernel_version

logger = logging.getLogger(__name__)

DEFAULT_KERNEL_PATH = "/opt/linux-6.9.5"
DEFAULT_ARCH = "riscv"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
QUIT_TOKEN = "q"
PROMPT = "Enter a component name to view its details (or 'q' to quit)>> "
SUGGESTION_LIMIT = 3
SUGGESTION_CUTOFF = 0.6


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(
        prog="kinv", description="Inventory a Linux kernel tree."
    )
    parser.add_argument(
        "--kernel-path",
        "-k",
        default=DEFAULT_KERNEL_PATH,
        help="Kernel source tree to inspect.",
    )
    parser.add_argument(
        "--arch",
        "-a",
        default=DEFAULT_ARCH,
        help="Comma-separated architectures under arch/.",
    )
    parser.add_argument(
        "--lines",
        action="store_true",
        help="Count blank, comment and code lines per file type.",
    )
    parser.add_argument(
        "--kconfig", action="store_true", help="Resolve and parse Kconfig files."
    )
    parser.add_argument(
        "--kconfig-code",
        action="store_true",
        help="Attach #ifdef CONFIG_ blocks to components (requires --kconfig).",
    )
    parser.add_argument(
        "--all",
        dest="include_all",
        action="store_true",
        help="Follow every source directive, not only those under arch/.",
    )
    parser.add_argument(
        "--skip-help",
        action="store_true",
        help="Ignore Kconfig help text while parsing.",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Gitignore-style pattern to skip, relative to --kernel-path; repeatable.",
    )
    parser.add_argument(
        "--no-query",
        action="store_true",
        help="Skip the interactive component lookup.",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging threshold.",
    )
    return parser


def parse_arches(arch_arg: str) -> list[str]:
    """Parse the comma-separated architecture argument.

    Args:
        arch_arg: Value of ``--arch``.

    Returns:
        Architecture names in the given order, without duplicates.

    Raises:
        ValueError: If no architecture is named.
    """
    arches: list[str] = []
    for part in arch_arg.split(","):
        token = part.strip()
        if token and token not in arches:
            arches.append(token)
    if not arches:
        raise ValueError("At least one architecture is required")
    return arches


def run(
    argv: list[str],
    stdout: TextIO,
    stderr: TextIO,
    stdin: TextIO | None = None,
) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.
        stdin: Input stream for component lookups; defaults to ``sys.stdin``.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    logging.getLogger().setLevel(args.log_level)

    if args.kconfig_code and not args.kconfig:
        logger.warning("Usage error (--kconfig-code given without --kconfig)")
        stderr.write("--kconfig-code requires --kconfig\n")
        return 2
    try:
        arches = parse_arches(args.arch)
    except ValueError as exc:
        logger.warning(f"Invalid arch argument (arch={args.arch} error={exc})")
        stderr.write(f"Invalid arch: {args.arch}\n")
        return 2

    kernel_path = Path(args.kernel_path)
    if not kernel_path.is_dir():
        logger.warning(f"Kernel path does not exist (path={kernel_path})")
        stderr.write(f"Kernel path does not exist: {kernel_path}\n")
        return 2
    try:
        version = fetch_kernel_version(kernel_path / "Makefile")
    except VersionError as exc:
        logger.warning(f"Kernel version lookup failed (error={exc})")
        stderr.write(f"{exc}\n")
        return 2

    matcher = IgnoreMatcher.from_patterns(args.exclude) if args.exclude else None
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    count_lines = args.lines or not args.kconfig

    for arch in arches:
        arch_dir = kernel_path / "arch" / arch
        logger.info(f"Inspecting architecture (arch={arch} path={arch_dir})")
        if not arch_dir.is_dir():
            logger.warning(f"Architecture directory missing (path={arch_dir})")
            stderr.write(f"Architecture directory does not exist: {arch_dir}\n")
            return 2
        title = f"Linux-{version} Arch {arch.upper()}"

        if count_lines:
            stats = LineCounter(matcher=matcher, base=kernel_path).count(arch_dir)
            _write_line_table(console=console, title=title, stats=stats)

        if args.kconfig:
            exit_code = _run_kconfig(
                args=args,
                kernel_path=kernel_path,
                arch_dir=arch_dir,
                version=version,
                title=title,
                matcher=matcher,
                console=console,
                stdout=stdout,
                stderr=stderr,
                stdin=stdin if stdin is not None else sys.stdin,
            )
            if exit_code != 0:
                return exit_code
    return 0


def _run_kconfig(
    args: argparse.Namespace,
    kernel_path: Path,
    arch_dir: Path,
    version: str,
    title: str,
    matcher: IgnoreMatcher | None,
    console: Console,
    stdout: TextIO,
    stderr: TextIO,
    stdin: TextIO,
) -> int:
    """Resolve, optionally correlate, report and query one architecture.

    Returns:
        Exit code.
    """
    entry_file = arch_dir / "Kconfig"
    kernel_root = find_kernel_root(entry_file, version) or kernel_path
    resolver = KconfigResolver(
        version=version,
        include_all=args.include_all,
        kernel_root=kernel_root,
        skip_help=args.skip_help,
    )
    try:
        resolved = resolver.resolve(entry_file)
    except KconfigError as exc:
        logger.warning(f"Kconfig resolution failed (error={exc})")
        stderr.write(f"{exc}\n")
        return 2
    _write_issues(issues=resolved.issues, stderr=stderr)

    correlation: CorrelationResult | None = None
    if args.kconfig_code:
        correlator = CodeCorrelator(resolved.table, matcher=matcher, base=kernel_path)
        correlation = correlator.correlate(resolved.source_dirs)
        _write_issues(issues=correlation.issues, stderr=stderr)

    _write_component_table(
        console=console, title=title, table=resolved.table, correlation=correlation
    )
    if not args.no_query:
        query_loop(table=resolved.table, stdin=stdin, stdout=stdout, stderr=stderr)
    return 0


def query_loop(
    table: ComponentTable, stdin: TextIO, stdout: TextIO, stderr: TextIO
) -> None:
    """Look up component names read from ``stdin`` until quit or EOF.

    Args:
        table: Finished component table.
        stdin: Input stream with one name per line.
        stdout: Output stream for prompts and record details.
        stderr: Output stream for lookup misses.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    while True:
        stdout.write(PROMPT)
        stdout.flush()
        raw = stdin.readline()
        if not raw:
            stdout.write("\n")
            break
        name = raw.strip()
        if not name:
            continue
        if name.lower() == QUIT_TOKEN:
            break
        record = table.get(name)
        if record is None:
            logger.debug(f"Component lookup missed (name={name})")
            stderr.write(f"Component '{name}' not found.\n")
            suggestions = suggest_names(name, table.names())
            if suggestions:
                stderr.write(f"Did you mean: {', '.join(suggestions)}?\n")
            continue
        _write_record(console=console, record=record)


def suggest_names(name: str, candidates: list[str]) -> list[str]:
    """Return the closest component names by Levenshtein ratio.

    Args:
        name: Name that was not found.
        candidates: Known component names.

    Returns:
        At most ``SUGGESTION_LIMIT`` names scoring at least
        ``SUGGESTION_CUTOFF``, best first.
    """
    needle = name.upper()
    scored = [
        (Levenshtein.ratio(needle, candidate.upper()), candidate)
        for candidate in candidates
    ]
    ranked = sorted(
        (item for item in scored if item[0] >= SUGGESTION_CUTOFF),
        key=lambda item: (-item[0], item[1]),
    )
    return [candidate for _, candidate in ranked[:SUGGESTION_LIMIT]]


def _write_issues(issues: list[KconfigIssue], stderr: TextIO) -> None:
    """Write recoverable issues to stderr.

    Args:
        issues: Recoverable resolution or correlation issues.
        stderr: Standard error stream.
    """
    for issue in issues:
        stderr.write(f"kconfig_issue: {issue.file_path}: {issue.message}\n")


def _write_line_table(
    console: Console, title: str, stats: dict[FileType, FileStat]
) -> None:
    """Write per file type line counts with a SUM row.

    Args:
        console: Target console.
        title: Section title.
        stats: Counters keyed by file type.
    """
    console.rule(title, style=Style(color="cyan"), characters="-")
    table = Table(show_header=True, expand=True)
    table.add_column("Language", ratio=3)
    for column in ("files", "blank", "comment", "code"):
        table.add_column(column, ratio=1, justify="right")
    for file_type, stat in sorted_stats(stats):
        table.add_row(
            file_type.value,
            str(stat.files),
            str(stat.blank),
            str(stat.comment),
            str(stat.code),
        )
    total = total_stats(stats)
    table.add_section()
    table.add_row(
        "SUM:", str(total.files), str(total.blank), str(total.comment), str(total.code)
    )
    console.print(table)


def _write_component_table(
    console: Console,
    title: str,
    table: ComponentTable,
    correlation: CorrelationResult | None,
) -> None:
    """Write component names in two columns followed by summary lines.

    Args:
        console: Target console.
        title: Section title.
        table: Finished component table.
        correlation: Correlation summary when code correlation ran.
    """
    console.rule(title, style=Style(color="cyan"), characters="-")
    names = table.names()
    grid = Table(show_header=True, expand=True)
    grid.add_column("Component", ratio=1, justify="center", overflow="fold")
    grid.add_column("Component", ratio=1, justify="center", overflow="fold")
    for index in range(0, len(names), 2):
        right = names[index + 1] if index + 1 < len(names) else ""
        grid.add_row(names[index], right)
    console.print(grid)
    console.print(f"SUM: {len(table)} Components", markup=False, highlight=False)
    if correlation is not None:
        console.print(
            f"CODE: {table.total_code_lines()} Lines in {correlation.snippet_count} "
            f"Snippets ({correlation.files_scanned} Files)",
            markup=False,
            highlight=False,
        )


def _write_record(console: Console, record: ComponentRecord) -> None:
    """Write the full detail of one component.

    Args:
        console: Target console.
        record: Component to describe.
    """
    lines = [
        f"Component: {record.name}",
        f"  Value Type: {record.value_kind.value}",
        f"  Occurrences: {record.occurrence_count}",
        f"  Depends on: {record.depends}",
        f"  Default value: {record.defaults}",
        f"  Select: {record.selects}",
        f"  Declared in: {record.source_files}",
        f"  Code snippets: {len(record.code_snippets)}",
    ]
    console.print("\n".join(lines), markup=False, highlight=False, soft_wrap=True)
    for index, snippet in enumerate(record.code_snippets, start=1):
        console.rule(f"snippet {index}", characters="-")
        console.print(snippet, markup=False, highlight=False, soft_wrap=True)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr, stdin=sys.stdin)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
