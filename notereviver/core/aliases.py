"""Alias normalization and common-root inference."""

import os
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

LEADING_DOT_PATTERN = re.compile(r"^(?:\.[\\/])+")
SEPARATOR_RUN_PATTERN = re.compile(r"[\\/]+")


def normalize_alias(alias: str, sep: str = os.sep) -> str:
    """
    Normalize a declared alias into a relative path string.

    Trims whitespace, strips leading ``./`` or ``.\\`` (repeated), and
    collapses every run of ``/`` or ``\\`` into ``sep``.

    Args:
        alias: Alias exactly as declared in front matter
        sep: Separator to emit (default: platform separator)

    Returns:
        Normalized alias string

    Examples:
        >>> normalize_alias("  ./notes//a\\\\b.md ", sep="/")
        'notes/a/b.md'
    """
    alias = alias.strip()
    alias = LEADING_DOT_PATTERN.sub("", alias)
    return SEPARATOR_RUN_PATTERN.sub(lambda _: sep, alias)


def is_directory_alias(alias_raw: str) -> bool:
    """True when the declared alias ends with a path separator."""
    return alias_raw.strip().endswith(("/", "\\"))


def _segments(alias: str) -> list[str]:
    return [part for part in SEPARATOR_RUN_PATTERN.split(normalize_alias(alias)) if part]


def infer_common_root(aliases: Iterable[str]) -> Optional[str]:
    """
    Infer the single top-level folder shared by all aliases.

    Args:
        aliases: First-declared alias of every page

    Returns:
        The common first segment, or None when the aliases disagree, when an
        alias has no directory part, or when there are no aliases at all.
    """
    roots = set()
    for alias in aliases:
        segments = _segments(alias)
        if len(segments) < 2 and not (segments and is_directory_alias(alias)):
            return None
        roots.add(segments[0])

    if len(roots) != 1:
        return None
    return roots.pop()


def strip_root_prefix(alias_norm: str, prefix: Optional[str], sep: str = os.sep) -> str:
    """
    Remove ``prefix`` from the start of a normalized alias.

    The prefix only matches whole leading segments, so ``proj`` is stripped
    from ``proj/readme.md`` but not from ``project/readme.md``.
    """
    if not prefix:
        return alias_norm

    prefix_norm = normalize_alias(prefix, sep=sep).strip(sep)
    if not prefix_norm:
        return alias_norm

    if alias_norm == prefix_norm:
        return ""
    if alias_norm.startswith(prefix_norm + sep):
        return alias_norm[len(prefix_norm) + len(sep) :]
    return alias_norm


def prefix_folder_name(prefix: str) -> str:
    """Last segment of a root prefix, used as an output directory name."""
    segments = _segments(prefix)
    return segments[-1] if segments else ""


def resolve_target(output_root: Path, relative: str) -> Optional[Path]:
    """
    Join a stripped alias onto the output root.

    Leading separators are dropped so aliases cannot be absolute.

    Returns:
        Target path, or None if the alias climbs out of the output root
    """
    relative = relative.lstrip("/\\")
    parts = [part for part in SEPARATOR_RUN_PATTERN.split(relative) if part]
    if any(part == ".." for part in parts):
        return None
    target = output_root.joinpath(*parts) if parts else output_root
    return target
