# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Blank, comment and code line counts per file type."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from kinv.ignore import IgnoreMatcher, walk_files

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("//", "/*", "*", "#", ";")


class FileType(Enum):
    """Source file categories, valued by their report label."""

    C = "C"
    HEADER = "C/C++ Header"
    MAKEFILE = "Makefile"
    KCONFIG = "Kconfig"
    RUST = "Rust"
    ASSEMBLY = "Assembly"
    PYTHON = "Python"
    OTHER = "Other"

    @classmethod
    def from_path(cls, path: Path) -> "FileType":
        """Classify a file by its name, then by its extension."""
        if path.name == "Makefile":
            return cls.MAKEFILE
        if path.name == "Kconfig":
            return cls.KCONFIG
        return _SUFFIX_TYPES.get(path.suffix.lstrip("."), cls.OTHER)


_SUFFIX_TYPES: dict[str, FileType] = {
    "c": FileType.C,
    "cpp": FileType.C,
    "cc": FileType.C,
    "h": FileType.HEADER,
    "hpp": FileType.HEADER,
    "rs": FileType.RUST,
    "S": FileType.ASSEMBLY,
    "s": FileType.ASSEMBLY,
    "asm": FileType.ASSEMBLY,
    "py": FileType.PYTHON,
}


@dataclass
class FileStat:
    """Accumulated counters for one file type."""

    files: int = 0
    blank: int = 0
    comment: int = 0
    code: int = 0

    def add(self, other: "FileStat") -> None:
        self.files += other.files
        self.blank += other.blank
        self.comment += other.comment
        self.code += other.code


def count_lines(path: Path) -> FileStat:
    """Classify every line of one file.

    Args:
        path: File to read.

    Returns:
        Counters for the file, with ``files`` set to 1.

    Raises:
        OSError: If the file cannot be read.
    """
    stat = FileStat(files=1)
    with path.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            trimmed = line.strip()
            if not trimmed:
                stat.blank += 1
            elif trimmed.startswith(COMMENT_PREFIXES):
                stat.comment += 1
            else:
                stat.code += 1
    return stat


class LineCounter:
    """Walk a directory tree and count lines by file type."""

    def __init__(
        self, matcher: IgnoreMatcher | None = None, base: Path | None = None
    ) -> None:
        self._matcher = matcher
        self._base = base

    def count(self, root: Path) -> dict[FileType, FileStat]:
        """Count lines for every file beneath ``root``.

        Unreadable files and directories are logged and skipped.

        Args:
            root: Directory to walk.

        Returns:
            Counters keyed by file type.
        """
        stats: dict[FileType, FileStat] = {}
        for file_path in walk_files(root, self._matcher, self._base):
            try:
                file_stat = count_lines(file_path)
            except OSError as exc:
                logger.error(f"Cannot read file (path={file_path} error={exc})")
                continue
            stats.setdefault(FileType.from_path(file_path), FileStat()).add(file_stat)
        logger.info(
            f"Line count completed (root={root} files={sum(s.files for s in stats.values())})"
        )
        return stats


def sorted_stats(stats: dict[FileType, FileStat]) -> list[tuple[FileType, FileStat]]:
    """Order file types by code lines, largest first."""
    return sorted(stats.items(), key=lambda item: item[1].code, reverse=True)


def total_stats(stats: dict[FileType, FileStat]) -> FileStat:
    total = FileStat()
    for stat in stats.values():
        total.add(stat)
    return total
