# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for Kconfig components."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class ValueKind(Enum):
    """Typing of a Kconfig component value."""

    UNKNOWN = "Unknown"
    BOOLEAN = "Bool"
    VALUE = "Value"


@dataclass
class ComponentRecord:
    """Accumulated state of one Kconfig component.

    Attributes:
        name: Component name as written after ``config``.
        value_kind: Value typing; set to ``BOOLEAN`` by ``bool``/``def_bool``.
        defaults: Raw default expressions in encounter order.
        depends: Raw ``depends on`` expressions in encounter order.
        selects: Raw ``select`` expressions in encounter order.
        occurrence_count: Number of ``config`` headers naming this component.
        code_snippets: Verbatim C blocks guarded by ``CONFIG_<name>``.
        source_files: Kconfig files declaring the component, deduplicated.
    """

    name: str
    value_kind: ValueKind = ValueKind.VALUE
    defaults: list[str] = field(default_factory=list)
    depends: list[str] = field(default_factory=list)
    selects: list[str] = field(default_factory=list)
    occurrence_count: int = 0
    code_snippets: list[str] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)

    def add_source_file(self, file_path: str) -> None:
        if file_path not in self.source_files:
            self.source_files.append(file_path)


@dataclass(frozen=True)
class KconfigIssue:
    """Represent a recoverable problem met while resolving or correlating."""

    file_path: str
    message: str


class ComponentTable:
    """Keyed store of component records, in first-sighting order."""

    def __init__(self) -> None:
        self._records: dict[str, ComponentRecord] = {}

    def get_or_create(self, name: str) -> tuple[ComponentRecord, bool]:
        """Return the record for ``name``, creating it on first sighting.

        Args:
            name: Component name.

        Returns:
            The record and whether it was created by this call.
        """
        record = self._records.get(name)
        if record is not None:
            return record, False
        record = ComponentRecord(name=name)
        self._records[name] = record
        return record, True

    def get(self, name: str) -> ComponentRecord | None:
        return self._records.get(name)

    def names(self) -> list[str]:
        return list(self._records)

    def total_code_lines(self) -> int:
        """Count lines across every recorded code snippet."""
        return sum(
            snippet_line_count(snippet)
            for record in self._records.values()
            for snippet in record.code_snippets
        )

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)


def snippet_line_count(snippet: str) -> int:
    """Count source lines in a snippet joined with ``\\n``.

    Only ``\\n`` separates lines; form feeds and other characters that
    ``str.splitlines`` treats as breaks stay inside their source line.
    """
    return snippet.count("\n") + 1
