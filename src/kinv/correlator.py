# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Correlate Kconfig components with the C code their guards enclose."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from kinv.ignore import IgnoreMatcher, walk_files
from kinv.model import ComponentTable, KconfigIssue, snippet_line_count

logger = logging.getLogger(__name__)

CODE_SUFFIXES = {".c", ".h"}

_GUARD_OPEN = re.compile(r"#ifdef\s+CONFIG_([A-Za-z0-9_]+)")
_GUARD_CLOSE = "#endif"


@dataclass(frozen=True)
class CorrelationResult:
    """Summarize one correlation pass.

    Attributes:
        files_scanned: Number of C sources and headers read.
        snippet_count: Number of snippets attached to components.
        total_lines: Lines across all attached snippets.
        issues: Unreadable files and unterminated guards.
    """

    files_scanned: int
    snippet_count: int
    total_lines: int
    issues: list[KconfigIssue] = field(default_factory=list)


@dataclass
class _OpenSnippet:
    owner: str
    lines: list[str]


class CodeCorrelator:
    """Attach ``#ifdef CONFIG_<NAME>`` blocks to known components."""

    def __init__(
        self,
        table: ComponentTable,
        matcher: IgnoreMatcher | None = None,
        base: Path | None = None,
    ) -> None:
        """Initialize correlator.

        Args:
            table: Component table to read names from and append snippets to.
            matcher: Optional exclusion matcher.
            base: Directory that ``matcher`` patterns are relative to; each
                candidate directory when omitted.
        """
        self._table = table
        self._matcher = matcher
        self._base = base

    def correlate(self, source_dirs: set[Path]) -> CorrelationResult:
        """Scan C files under every candidate directory.

        Files reachable from more than one candidate directory are read once.

        Args:
            source_dirs: Candidate source directories from Kconfig resolution.

        Returns:
            Correlation counters and recoverable issues.
        """
        seen: set[Path] = set()
        issues: list[KconfigIssue] = []
        files_scanned = 0
        snippet_count = 0
        total_lines = 0

        for directory in sorted(source_dirs):
            for file_path in walk_files(directory, self._matcher, self._base):
                if file_path.suffix not in CODE_SUFFIXES:
                    continue
                canonical = file_path.resolve()
                if canonical in seen:
                    continue
                seen.add(canonical)
                try:
                    snippets = self._scan_file(file_path, issues)
                except OSError as exc:
                    logger.warning(
                        f"Skipping unreadable source (file_path={file_path} error={exc})"
                    )
                    issues.append(KconfigIssue(file_path=str(file_path), message=str(exc)))
                    continue
                files_scanned += 1
                for owner, lines in snippets:
                    record = self._table.get(owner)
                    if record is None:
                        continue
                    text = "\n".join(lines)
                    record.code_snippets.append(text)
                    snippet_count += 1
                    total_lines += snippet_line_count(text)

        logger.info(
            f"Code correlation completed (dirs={len(source_dirs)} files={files_scanned} "
            f"snippets={snippet_count} lines={total_lines})"
        )
        return CorrelationResult(
            files_scanned=files_scanned,
            snippet_count=snippet_count,
            total_lines=total_lines,
            issues=issues,
        )

    def _scan_file(
        self, file_path: Path, issues: list[KconfigIssue]
    ) -> list[tuple[str, list[str]]]:
        stack: list[str] = []
        snippet: _OpenSnippet | None = None
        finished: list[tuple[str, list[str]]] = []

        with file_path.open(encoding="utf-8", errors="replace") as handle:
            for raw_line in handle:
                line = raw_line.rstrip("\r\n")
                match = _GUARD_OPEN.search(line)
                if match:
                    name = match.group(1)
                    if not stack and name in self._table:
                        snippet = _OpenSnippet(owner=name, lines=[])
                    stack.append(name)
                    if snippet is not None:
                        snippet.lines.append(line)
                    continue
                if _GUARD_CLOSE in line:
                    if not stack:
                        continue
                    stack.pop()
                    if snippet is not None:
                        snippet.lines.append(line)
                        if not stack:
                            finished.append((snippet.owner, snippet.lines))
                            snippet = None
                    continue
                if snippet is not None:
                    snippet.lines.append(line)

        if snippet is not None:
            message = (
                f"unterminated guard CONFIG_{snippet.owner} "
                f"(depth={len(stack)}); snippet dropped"
            )
            logger.warning(f"Dropping unterminated snippet (file_path={file_path} {message})")
            issues.append(KconfigIssue(file_path=str(file_path), message=message))
        return finished
