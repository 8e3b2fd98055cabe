# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for Kconfig resolution and stanza parsing."""

from pathlib import Path

import pytest

from kinv.fields import get_field, get_quoted_field
from kinv.kconfig import (
    KconfigError,
    KconfigResolver,
    StanzaState,
    find_kernel_root,
    parse_stanza_line,
    resolve,
)
from kinv.model import ComponentTable, ValueKind

VERSION = "6.9.5"


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _kernel(tmp_path: Path) -> Path:
    kernel = tmp_path / f"linux-{VERSION}"
    kernel.mkdir(parents=True, exist_ok=True)
    return kernel


def test_kc_fld_001_field_extractor_strips_prefix_and_whitespace() -> None:
    assert get_field("depends on  MMU && !XIP ", "depends on") == "MMU && !XIP"
    assert get_field("bool", "bool") == ""
    assert get_field("select FOO", "default") == ""
    assert get_quoted_field('source "arch/riscv/Kconfig"', "source") == (
        "arch/riscv/Kconfig"
    )


def test_kc_res_001_single_file_yields_boolean_component(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, "config FOO\n\tbool\n\tdefault y\n")

    result = resolve(entry, VERSION)

    assert len(result.table) == 1
    record = result.table.get("FOO")
    assert record is not None
    assert record.value_kind == ValueKind.BOOLEAN
    assert record.defaults == ["y"]
    assert record.occurrence_count == 1
    assert result.source_dirs == set()
    assert result.issues == []


def test_kc_res_002_component_accumulates_across_sourced_files(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(
        entry,
        "\n".join(
            [
                "config BAR",
                "\tdepends on BAZ",
                "",
                'source "arch/riscv/kvm/Kconfig"',
            ]
        ),
    )
    _write_file(kernel / "arch" / "riscv" / "kvm" / "Kconfig", "config BAR\n\tselect QUX\n")

    result = resolve(entry, VERSION)

    record = result.table.get("BAR")
    assert record is not None
    assert record.depends == ["BAZ"]
    assert record.selects == ["QUX"]
    assert record.occurrence_count == 2
    assert len(record.source_files) == 2
    assert len(result.table) == 1
    assert result.source_dirs == {(kernel / "arch" / "riscv" / "kvm").resolve()}
    assert len(result.files) == 2


def test_kc_res_003_source_paths_are_relative_to_kernel_root(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, 'source "arch/riscv/kvm/Kconfig"\n')
    _write_file(
        kernel / "arch" / "riscv" / "kvm" / "Kconfig",
        'source "arch/riscv/mm/Kconfig"\n',
    )
    _write_file(kernel / "arch" / "riscv" / "mm" / "Kconfig", "config MM_THING\n")

    result = resolve(entry, VERSION)

    assert "MM_THING" in result.table
    assert result.source_dirs == {
        (kernel / "arch" / "riscv" / "kvm").resolve(),
        (kernel / "arch" / "riscv" / "mm").resolve(),
    }


def test_kc_res_004_non_arch_sources_are_skipped_unless_include_all(
    tmp_path: Path,
) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, 'config FOO\n\nsource "drivers/Kconfig"\n')
    _write_file(kernel / "drivers" / "Kconfig", "config DRIVER\n\tbool\n")

    filtered = resolve(entry, VERSION)
    everything = resolve(entry, VERSION, include_all=True)

    assert "DRIVER" not in filtered.table
    assert filtered.source_dirs == set()
    assert filtered.issues == []
    assert "DRIVER" in everything.table
    assert everything.source_dirs == {(kernel / "drivers").resolve()}


def test_kc_res_005_missing_source_target_skips_only_that_branch(
    tmp_path: Path,
) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(
        entry,
        'config BEFORE\n\nsource "arch/riscv/missing/Kconfig"\n\nconfig AFTER\n',
    )

    result = resolve(entry, VERSION)

    assert result.table.names() == ["BEFORE", "AFTER"]
    assert len(result.issues) == 1
    assert "arch/riscv/missing/Kconfig" in result.issues[0].message
    assert result.source_dirs == set()


def test_kc_res_006_source_cycle_terminates(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, 'config LOOP\n\nsource "arch/riscv/Kconfig"\n')

    result = resolve(entry, VERSION)

    record = result.table.get("LOOP")
    assert record is not None
    assert record.occurrence_count == 1
    assert len(result.issues) == 1
    assert "cycle" in result.issues[0].message


def test_kc_res_007_missing_entry_file_is_fatal(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)

    with pytest.raises(KconfigError):
        resolve(kernel / "arch" / "riscv" / "Kconfig", VERSION)


def test_kc_res_008_comment_lines_have_no_effect(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(
        entry,
        "\n".join(
            [
                "# config HIDDEN",
                'config FOO',
                '\t# source "arch/riscv/other/Kconfig"',
                "\tdefault n",
            ]
        ),
    )
    _write_file(kernel / "arch" / "riscv" / "other" / "Kconfig", "config OTHER\n")

    result = resolve(entry, VERSION)

    assert result.table.names() == ["FOO"]
    assert result.table.get("FOO").defaults == ["n"]


def test_kc_res_009_kernel_root_is_found_from_entry_file(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"

    assert find_kernel_root(entry, VERSION) == kernel.absolute()
    assert find_kernel_root(entry, "5.10.0") is None


def test_kc_res_010_explicit_kernel_root_is_used(tmp_path: Path) -> None:
    kernel = tmp_path / "checkout"
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, 'source "arch/riscv/kvm/Kconfig"\n')
    _write_file(kernel / "arch" / "riscv" / "kvm" / "Kconfig", "config KVM\n")

    result = KconfigResolver(version=VERSION, kernel_root=kernel).resolve(entry)

    assert "KVM" in result.table
    assert result.issues == []


def test_kc_res_011_skip_help_ignores_keywords_in_help_text(tmp_path: Path) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(
        entry,
        "\n".join(
            [
                "config FOO",
                "\tbool \"Foo support\"",
                "\thelp",
                "\t  select this when unsure.",
                "",
                "\t  default behaviour is unchanged.",
                "",
                "config BAR",
                "\tdefault y",
            ]
        ),
    )

    plain = resolve(entry, VERSION)
    skipping = KconfigResolver(version=VERSION, skip_help=True).resolve(entry)

    assert plain.table.get("FOO").selects == ["this when unsure."]
    assert skipping.table.get("FOO").selects == []
    assert skipping.table.get("FOO").defaults == []
    assert skipping.table.get("BAR").defaults == ["y"]


def test_kc_stz_001_def_bool_replaces_prior_defaults() -> None:
    table = ComponentTable()
    state = StanzaState()
    for line in ["config FOO", "default n", "default y if BAR", "def_bool y"]:
        parse_stanza_line(line, state, table)

    record = table.get("FOO")
    assert record.defaults == ["y"]
    assert record.value_kind == ValueKind.BOOLEAN


def test_kc_stz_002_attribute_lines_without_component_are_noops() -> None:
    table = ComponentTable()
    state = StanzaState()
    for line in ["bool", "default y", "depends on BAR", "select BAZ", "config X"]:
        parse_stanza_line(line, state, table)

    assert table.names() == ["X"]
    record = table.get("X")
    assert record.value_kind == ValueKind.VALUE
    assert record.defaults == []
    assert record.depends == []
    assert record.selects == []


def test_kc_stz_003_bare_config_header_only_counts_after_blank_line() -> None:
    table = ComponentTable()
    state = StanzaState()
    parse_stanza_line("config A", state, table)
    parse_stanza_line("config\tIGNORED", state, table)
    parse_stanza_line("bool", state, table)
    state.after_blank = True
    parse_stanza_line("config\tB", state, table)
    parse_stanza_line("select C", state, table)

    assert table.names() == ["A", "B"]
    assert table.get("A").value_kind == ValueKind.BOOLEAN
    assert table.get("B").occurrence_count == 1
    assert table.get("B").selects == ["C"]
    assert state.after_blank is False


def test_kc_stz_004_header_after_blank_counts_once() -> None:
    table = ComponentTable()
    state = StanzaState(after_blank=True)

    parse_stanza_line("config FOO", state, table)

    assert table.get("FOO").occurrence_count == 1


def test_kc_stz_005_header_switches_current_component() -> None:
    table = ComponentTable()
    state = StanzaState()
    for line in [
        "config A",
        "depends on X",
        "config B",
        "depends on Y",
        "config A",
        "select Z",
    ]:
        parse_stanza_line(line, state, table)

    assert table.get("A").depends == ["X"]
    assert table.get("A").selects == ["Z"]
    assert table.get("A").occurrence_count == 2
    assert table.get("B").depends == ["Y"]


def test_kc_res_012_custom_arch_marker_selects_descended_sources(
    tmp_path: Path,
) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(
        entry,
        'source "drivers/Kconfig"\nsource "arch/riscv/kvm/Kconfig"\n',
    )
    _write_file(kernel / "drivers" / "Kconfig", "config DRIVER\n")
    _write_file(kernel / "arch" / "riscv" / "kvm" / "Kconfig", "config KVM\n")

    result = resolve(entry, VERSION, arch_marker="/drivers/")

    assert result.table.names() == ["DRIVER"]
    assert result.source_dirs == {(kernel / "drivers").resolve()}


def test_kc_res_013_unreadable_sourced_file_skips_only_that_branch(
    tmp_path: Path,
) -> None:
    kernel = _kernel(tmp_path)
    entry = kernel / "arch" / "riscv" / "Kconfig"
    _write_file(entry, 'config A\n\nsource "arch/riscv/dir"\n\nconfig B\n')
    (kernel / "arch" / "riscv" / "dir").mkdir()

    result = resolve(entry, VERSION)

    assert result.table.names() == ["A", "B"]
    assert len(result.issues) == 1
    assert "cannot read" in result.issues[0].message
    assert result.source_dirs == set()
