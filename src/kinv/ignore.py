# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Path exclusion and tree walking shared by the line counter and correlator."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)


class IgnoreMatcher:
    """Match root-relative paths against gitignore-style patterns."""

    def __init__(self, spec: pathspec.GitIgnoreSpec) -> None:
        """Initialize matcher.

        Args:
            spec: Compiled gitignore matcher.
        """
        self._spec = spec

    @classmethod
    def from_patterns(cls, patterns: list[str]) -> "IgnoreMatcher":
        """Build matcher from gitignore pattern lines.

        Args:
            patterns: Pattern lines such as ``Documentation/`` or ``*.rs``.

        Returns:
            Configured ignore matcher.
        """
        return cls(spec=pathspec.GitIgnoreSpec.from_lines(patterns))

    def matches(self, relative_path: str, is_dir: bool) -> bool:
        """Check whether a path should be skipped.

        Args:
            relative_path: Root-relative POSIX path.
            is_dir: Whether the path is a directory.

        Returns:
            True when path should be skipped.
        """
        normalized = relative_path.replace(os.sep, "/").strip("/")
        if not normalized:
            return False
        if self._spec.match_file(normalized):
            return True
        if is_dir and self._spec.match_file(f"{normalized}/"):
            return True
        return False


def walk_files(
    root: Path, matcher: IgnoreMatcher | None = None, base: Path | None = None
) -> Iterator[Path]:
    """Yield regular files beneath ``root`` in sorted breadth-first order.

    Unreadable directories are logged and skipped; the walk continues with
    their siblings. Symlinked directories are not followed.

    Args:
        root: Directory to walk.
        matcher: Optional exclusion matcher.
        base: Directory that ``matcher`` patterns are relative to; ``root``
            when omitted or when ``root`` lies outside it.

    Yields:
        Paths of regular files not excluded by ``matcher``.
    """
    prefix = _relative_prefix(root, base)
    queue: list[Path] = [root]
    while queue:
        current = queue.pop(0)
        try:
            children = sorted(current.iterdir(), key=lambda item: item.name)
        except OSError as exc:
            logger.error(f"Cannot read directory (path={current} error={exc})")
            continue
        for child in children:
            is_dir = child.is_dir() and not child.is_symlink()
            if matcher is not None and matcher.matches(
                relative_path=(prefix / child.relative_to(root)).as_posix(),
                is_dir=is_dir,
            ):
                continue
            if is_dir:
                queue.append(child)
            elif child.is_file():
                yield child


def _relative_prefix(root: Path, base: Path | None) -> Path:
    if base is None:
        return Path()
    try:
        return root.resolve().relative_to(base.resolve())
    except (OSError, ValueError):
        logger.warning(f"Walk root outside match base (root={root} base={base})")
        return Path()
