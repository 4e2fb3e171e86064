"""Document scanner for exported note trees."""

import fnmatch
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from .models import Document

logger = logging.getLogger(__name__)

# Default suffixes of exported note documents
DEFAULT_SUFFIXES = (".md",)


def matches_suffix(name: str, suffixes: tuple[str, ...]) -> bool:
    """Case-insensitive suffix match on a file name."""
    lowered = name.lower()
    return any(lowered.endswith(suffix.lower()) for suffix in suffixes)


class DocumentScanner:
    """
    Walks a directory tree and yields matching documents.

    Returns documents in deterministic lexicographic order so that runs over
    the same export always process pages in the same sequence.
    """

    def __init__(
        self,
        source_root: Path,
        suffixes: Optional[list[str]] = None,
        exclude_patterns: Optional[list[str]] = None,
    ):
        """
        Initialize document scanner.

        Args:
            source_root: Root directory to scan
            suffixes: File suffixes to treat as documents (default: [".md"])
            exclude_patterns: Glob patterns to skip (matched on relative path and name)
        """
        self.source_root = Path(source_root).resolve()
        self.suffixes = tuple(suffixes) if suffixes else DEFAULT_SUFFIXES
        self.exclude_patterns = exclude_patterns or []
        self.undecodable: list[Path] = []

    def _should_exclude(self, path: Path) -> bool:
        rel_path_str = path.relative_to(self.source_root).as_posix()
        for pattern in self.exclude_patterns:
            if fnmatch.fnmatch(rel_path_str, pattern):
                return True
            if fnmatch.fnmatch(path.name, pattern):
                return True
        return False

    def scan(self) -> Iterator[Path]:
        """
        Yield absolute paths of matching documents in deterministic order.

        Raises:
            FileNotFoundError: If the source root does not exist
            NotADirectoryError: If the source root is not a directory
        """
        if not self.source_root.exists():
            raise FileNotFoundError(f"Source root does not exist: {self.source_root}")

        if not self.source_root.is_dir():
            msg = f"Source root is not a directory: {self.source_root}"
            raise NotADirectoryError(msg)

        found: list[Path] = []
        for root_str, dirs, files in os.walk(self.source_root, topdown=True):
            root = Path(root_str)
            dirs[:] = sorted(d for d in dirs if not self._should_exclude(root / d))

            for filename in sorted(files):
                if not matches_suffix(filename, self.suffixes):
                    continue
                file_path = root / filename
                if not self._should_exclude(file_path):
                    found.append(file_path)

        found.sort(key=lambda p: p.relative_to(self.source_root).as_posix())
        yield from found

    def read_documents(self) -> Iterator[Document]:
        """Yield each matching document with its text decoded as UTF-8.

        Line endings are kept exactly as stored. Files that are not valid
        UTF-8 are logged, recorded in ``self.undecodable`` and skipped.
        """
        for path in self.scan():
            try:
                # utf-8-sig drops a leading byte-order mark written by some exporters
                with open(path, encoding="utf-8-sig", newline="") as f:
                    text = f.read()
            except UnicodeDecodeError as e:
                logger.warning("Skipping %s: not valid UTF-8 (%s)", path, e.reason)
                self.undecodable.append(path)
                continue
            yield Document(source_path=path, raw_text=text)
