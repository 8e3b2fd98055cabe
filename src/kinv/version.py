# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Kernel version lookup from the top-level Makefile."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_VERSION_KEYS = ("VERSION", "PATCHLEVEL", "SUBLEVEL")


class VersionError(RuntimeError):
    """Represent a missing or unreadable kernel version."""


def fetch_kernel_version(makefile: Path) -> str:
    """Read ``VERSION.PATCHLEVEL.SUBLEVEL`` from a kernel Makefile.

    Args:
        makefile: Path to the kernel's top-level ``Makefile``.

    Returns:
        Version string such as ``6.9.5``.

    Raises:
        VersionError: If the file cannot be read or a field is missing.
    """
    values: dict[str, str] = {}
    try:
        with makefile.open(encoding="utf-8", errors="replace") as handle:
            for line in handle:
                stripped = line.strip()
                if stripped.startswith("#"):
                    continue
                for key in _VERSION_KEYS:
                    prefix = f"{key} = "
                    if stripped.startswith(prefix):
                        values[key] = stripped[len(prefix) :].strip()
    except OSError as exc:
        raise VersionError(f"Cannot read {makefile}: {exc}") from exc

    missing = [key for key in _VERSION_KEYS if key not in values]
    if missing:
        raise VersionError(
            f"Failed to read version information from {makefile} (missing={', '.join(missing)})"
        )
    version = ".".join(values[key] for key in _VERSION_KEYS)
    logger.info(f"Kernel version found (makefile={makefile} version={version})")
    return version
