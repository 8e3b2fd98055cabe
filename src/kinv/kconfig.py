# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Kconfig ``source`` resolution and stanza parsing."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from kinv.fields import get_field, get_quoted_field
from kinv.model import ComponentTable, KconfigIssue, ValueKind

logger = logging.getLogger(__name__)

ARCH_MARKER = "/arch/"

_HELP_LINE = re.compile(r"^(help|---help---)$")


class KconfigError(RuntimeError):
    """Represent a fatal failure reading the entry Kconfig file."""


@dataclass
class StanzaState:
    """Line-to-line parser context for one Kconfig file.

    Attributes:
        current: Name of the most recent ``config`` stanza, if any.
        after_blank: One-shot flag set by a blank line.
        help_indent: Indentation of the open ``help`` keyword, if any.
        help_text_indent: Indentation of the open help block's text.
    """

    current: str | None = None
    after_blank: bool = False
    help_indent: int | None = None
    help_text_indent: int | None = None


@dataclass(frozen=True)
class ResolveResult:
    """Represent the outcome of one recursive Kconfig resolution.

    Attributes:
        table: Components accumulated across every resolved file.
        source_dirs: Parent directories of resolved ``source`` targets.
        files: Kconfig files parsed, in resolution order.
        issues: Recoverable problems, one per skipped branch.
    """

    table: ComponentTable
    source_dirs: set[Path] = field(default_factory=set)
    files: list[Path] = field(default_factory=list)
    issues: list[KconfigIssue] = field(default_factory=list)


def parse_stanza_line(
    line: str,
    state: StanzaState,
    table: ComponentTable,
    source_file: str | None = None,
) -> None:
    """Apply one stripped, non-comment, non-blank Kconfig line.

    Prefix checks are not exclusive; every matching prefix takes effect.
    Attribute lines are ignored while no component is active.

    Args:
        line: Stripped Kconfig line.
        state: Parser context, updated in place.
        table: Component table receiving the parsed attributes.
        source_file: File the line came from, recorded on stanza headers.
    """
    after_blank = state.after_blank
    state.after_blank = False

    if line.startswith("config "):
        _open_component(line, state, table, source_file)
    elif after_blank and line.startswith("config"):
        _open_component(line, state, table, source_file)

    if state.current is None:
        return
    record = table.get(state.current)
    if record is None:
        return

    if line.startswith("depends on"):
        record.depends.append(get_field(line, "depends on"))
    if line.startswith("bool"):
        record.value_kind = ValueKind.BOOLEAN
    if line.startswith("default"):
        record.defaults.append(get_field(line, "default"))
    if line.startswith("def_bool"):
        record.defaults.clear()
        record.defaults.append(get_field(line, "def_bool"))
        record.value_kind = ValueKind.BOOLEAN
    if line.startswith("select"):
        record.selects.append(get_field(line, "select"))


def _open_component(
    line: str,
    state: StanzaState,
    table: ComponentTable,
    source_file: str | None,
) -> None:
    tokens = get_field(line, "config").split()
    if not tokens:
        logger.warning(f"Ignoring config header without a name (line={line!r})")
        return
    record, created = table.get_or_create(tokens[0])
    if created:
        logger.debug(f"New component (name={record.name} file={source_file})")
    record.occurrence_count += 1
    if source_file is not None:
        record.add_source_file(source_file)
    state.current = record.name


def skip_help_line(raw_line: str, state: StanzaState) -> bool:
    """Track help blocks and report whether ``raw_line`` belongs to one.

    Help text starts after a ``help`` (or ``---help---``) line. Its
    indentation is fixed by the first text line, and the block ends at the
    first non-blank line indented less than that.

    Args:
        raw_line: Unstripped, non-blank Kconfig line.
        state: Parser context, updated in place.

    Returns:
        ``True`` when the line is help text and must not be parsed.
    """
    expanded = raw_line.rstrip("\r\n").expandtabs(8)
    stripped = expanded.lstrip()
    indent = len(expanded) - len(stripped)
    if state.help_indent is not None:
        if state.help_text_indent is None and indent > state.help_indent:
            state.help_text_indent = indent
            return True
        if state.help_text_indent is not None and indent >= state.help_text_indent:
            return True
        state.help_indent = None
        state.help_text_indent = None
    if _HELP_LINE.match(stripped.rstrip()):
        state.help_indent = indent
        return True
    return False


def find_kernel_root(entry_file: Path, version: str) -> Path | None:
    """Find the nearest ``linux-<version>`` ancestor of ``entry_file``.

    Args:
        entry_file: Kconfig entry file.
        version: Kernel version such as ``6.9.5``.

    Returns:
        The kernel root directory, or ``None`` when no ancestor matches.
    """
    target = f"linux-{version}"
    for parent in entry_file.absolute().parents:
        if parent.name == target:
            return parent
    return None


class KconfigResolver:
    """Resolve ``source`` directives recursively and parse every stanza."""

    def __init__(
        self,
        version: str,
        include_all: bool = False,
        kernel_root: Path | None = None,
        skip_help: bool = False,
        arch_marker: str = ARCH_MARKER,
    ) -> None:
        """Initialize resolver.

        Args:
            version: Kernel version used to locate the ``linux-<version>`` root.
            include_all: Descend into every ``source`` target, not only
                architecture ones.
            kernel_root: Explicit root for ``source`` paths; found from the
                entry file when omitted.
            skip_help: Ignore the contents of help blocks.
            arch_marker: Path segment that marks an architecture Kconfig.
        """
        self._version = version
        self._include_all = include_all
        self._kernel_root = kernel_root
        self._skip_help = skip_help
        self._arch_marker = arch_marker

    def resolve(self, entry_file: Path) -> ResolveResult:
        """Resolve ``entry_file`` and everything it sources.

        Args:
            entry_file: Architecture Kconfig entry file.

        Returns:
            Accumulated components, candidate directories and issues.

        Raises:
            KconfigError: If the entry file cannot be read.
        """
        root = self._kernel_root or find_kernel_root(entry_file, self._version)
        if root is None:
            root = entry_file.absolute().parent
            logger.warning(
                f"Kernel root not found; resolving sources from entry directory "
                f"(entry_file={entry_file} version={self._version} root={root})"
            )
        result = ResolveResult(table=ComponentTable())
        try:
            entry = entry_file.resolve(strict=True)
            self._resolve_file(entry, root, result, chain={entry})
        except OSError as exc:
            raise KconfigError(f"Cannot read Kconfig file {entry_file}: {exc}") from exc
        logger.info(
            f"Kconfig resolution completed (entry_file={entry_file} "
            f"files={len(result.files)} components={len(result.table)} "
            f"source_dirs={len(result.source_dirs)} issues={len(result.issues)})"
        )
        return result

    def _resolve_file(
        self, file_path: Path, root: Path, result: ResolveResult, chain: set[Path]
    ) -> None:
        state = StanzaState()
        with file_path.open(encoding="utf-8", errors="replace") as handle:
            result.files.append(file_path)
            for raw_line in handle:
                line = raw_line.strip()
                if line.startswith("#"):
                    continue
                if not line:
                    state.after_blank = True
                    continue
                if self._skip_help and skip_help_line(raw_line, state):
                    continue
                if line.startswith("source"):
                    state.after_blank = False
                    self._resolve_source(line, file_path, root, result, chain)
                    continue
                parse_stanza_line(line, state, result.table, str(file_path))

    def _resolve_source(
        self,
        line: str,
        file_path: Path,
        root: Path,
        result: ResolveResult,
        chain: set[Path],
    ) -> None:
        target = get_quoted_field(line, "source")
        try:
            source_path = (root / target).resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            self._skip(result, file_path, f"cannot resolve source {target!r}: {exc}")
            return

        if not (self._include_all or self._arch_marker in source_path.as_posix()):
            logger.debug(f"Skipping non-arch source (path={source_path})")
            return
        if source_path in chain:
            self._skip(result, file_path, f"source cycle through {source_path}")
            return

        logger.info(f"Entering Kconfig (path={source_path} from={file_path})")
        try:
            self._resolve_file(source_path, root, result, chain | {source_path})
        except OSError as exc:
            self._skip(result, file_path, f"cannot read {source_path}: {exc}")
            return
        result.source_dirs.add(source_path.parent)

    def _skip(self, result: ResolveResult, file_path: Path, message: str) -> None:
        logger.warning(f"Skipping Kconfig branch (file_path={file_path} error={message})")
        result.issues.append(KconfigIssue(file_path=str(file_path), message=message))


def resolve(
    entry_file: Path,
    version: str,
    include_all: bool = False,
    arch_marker: str = ARCH_MARKER,
) -> ResolveResult:
    """Resolve ``entry_file`` with default resolver settings."""
    resolver = KconfigResolver(
        version=version, include_all=include_all, arch_marker=arch_marker
    )
    return resolver.resolve(entry_file)
