"""Archive staging: classify inputs, extract archives, pick the content root."""

import logging
import shutil
import subprocess
import tarfile
import zipfile
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import (
    ExtractionError,
    InputPathError,
    ToolNotFoundError,
    UnsupportedArchiveError,
)
from ..utils.formatters import format_size
from .models import ListingSnapshot, ProcessResult
from .scanner import DEFAULT_SUFFIXES, matches_suffix

logger = logging.getLogger(__name__)

# Longest suffixes first so ".tar.gz" wins over ".gz"
NATIVE_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar", ".zip")
EXTERNAL_ARCHIVE_SUFFIXES = (".7z", ".rar")
ARCHIVE_SUFFIXES = NATIVE_ARCHIVE_SUFFIXES + EXTERNAL_ARCHIVE_SUFFIXES

# Command names tried before the fixed install locations
SEVENZIP_COMMANDS = ("7z", "7za", "7zz")


class InputKind(str, Enum):
    """Kind of input given to the reviver."""

    DIRECTORY = "directory"
    ARCHIVE = "archive"


def archive_suffix(path: Path) -> Optional[str]:
    """Return the recognized archive suffix of path, or None."""
    name = path.name.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            return suffix
    return None


def archive_stem(path: Path) -> str:
    """Archive file name without its (possibly compound) archive suffix."""
    suffix = archive_suffix(path)
    if suffix is None:
        return path.stem
    return path.name[: -len(suffix)]


def classify_input(path: Path) -> InputKind:
    """
    Classify an input path as a directory or a supported archive.

    Raises:
        InputPathError: If the path does not exist
        UnsupportedArchiveError: If it is a file without a recognized extension
    """
    path = Path(path)
    if not path.exists():
        raise InputPathError(f"Input path not found: {path}")

    if path.is_dir():
        return InputKind.DIRECTORY

    if archive_suffix(path) is None:
        supported = ", ".join(ARCHIVE_SUFFIXES)
        raise UnsupportedArchiveError(
            f"Unsupported input file: {path.name} (expected a directory or {supported})"
        )

    return InputKind.ARCHIVE


def default_staging_dir(archive_path: Path, staging_suffix: str) -> Path:
    """Staging directory placed next to the archive."""
    return archive_path.parent / f"{archive_stem(archive_path)}{staging_suffix}"


def prepare_staging_dir(staging_dir: Path) -> Path:
    """Create an empty staging directory, clearing leftovers from earlier runs."""
    staging_dir = Path(staging_dir)
    if staging_dir.exists():
        logger.info("Clearing existing staging directory: %s", staging_dir)
        if staging_dir.is_dir():
            shutil.rmtree(staging_dir)
        else:
            staging_dir.unlink()
    staging_dir.mkdir(parents=True)
    return staging_dir


def find_sevenzip(candidates: Optional[list[str]] = None) -> Optional[Path]:
    """
    Locate a 7-Zip executable.

    Searches the command lookup first, then the fixed install locations.

    Args:
        candidates: Fixed install locations to try after the command lookup

    Returns:
        Path to the executable, or None if not found
    """
    for command in SEVENZIP_COMMANDS:
        found = shutil.which(command)
        if found:
            return Path(found)

    for candidate in candidates or []:
        candidate_path = Path(candidate)
        if candidate_path.is_file():
            return candidate_path

    return None


def run_process(cmd: list[str]) -> ProcessResult:
    """Run an external command to completion and capture its output."""
    logger.debug("Running: %s", " ".join(cmd))
    completed = subprocess.run(cmd, capture_output=True, text=True)
    return ProcessResult(
        args=[str(arg) for arg in cmd],
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def _extract_native(archive_path: Path, destination: Path, suffix: str) -> None:
    try:
        if suffix == ".zip":
            with zipfile.ZipFile(archive_path) as zf:
                zf.extractall(destination)
            return

        with tarfile.open(archive_path, "r:*") as tar:
            # "data" filter rejects absolute members, links out of tree and devices
            tar.extractall(destination, filter="data")
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise ExtractionError(f"Cannot extract {archive_path.name}: {e}") from e


def _extract_external(
    archive_path: Path, destination: Path, candidates: Optional[list[str]]
) -> None:
    tool = find_sevenzip(candidates)
    if tool is None:
        raise ToolNotFoundError(
            f"No 7-Zip executable found to extract {archive_path.name}. "
            "Install 7-Zip (7z/7za/7zz) or add its location to "
            "'sevenzip_candidates' in the config file."
        )

    cmd = [str(tool), "x", "-y", f"-o{destination}", str(archive_path)]
    result = run_process(cmd)
    if not result.ok:
        detail = result.stderr.strip() or result.stdout.strip()
        message = f"7-Zip failed to extract {archive_path.name} (exit code {result.returncode})"
        if detail:
            message = f"{message}: {detail}"
        raise ExtractionError(message, exit_code=result.returncode)


def extract_archive(
    archive_path: Path,
    destination: Path,
    sevenzip_candidates: Optional[list[str]] = None,
) -> Path:
    """
    Extract an archive into an (already prepared) destination directory.

    Args:
        archive_path: Archive to extract
        destination: Empty directory receiving the contents
        sevenzip_candidates: Fixed 7-Zip install locations

    Returns:
        The destination directory

    Raises:
        UnsupportedArchiveError: If the extension is not recognized
        ToolNotFoundError: If 7-Zip is required but missing
        ExtractionError: If 7-Zip exits with a non-zero status
    """
    archive_path = Path(archive_path)
    suffix = archive_suffix(archive_path)
    if suffix is None:
        raise UnsupportedArchiveError(f"Unsupported archive: {archive_path.name}")

    size = format_size(archive_path.stat().st_size)
    logger.info("Extracting %s (%s) to %s", archive_path.name, size, destination)

    if suffix in NATIVE_ARCHIVE_SUFFIXES:
        _extract_native(archive_path, destination, suffix)
    else:
        _extract_external(archive_path, destination, sevenzip_candidates)

    return destination


def take_snapshot(root: Path, suffixes: Optional[list[str]] = None) -> ListingSnapshot:
    """
    Record how many matching documents sit at and below the extraction root.

    Args:
        root: Extraction directory
        suffixes: Document suffixes to count

    Returns:
        ListingSnapshot of the top level of root
    """
    suffix_tuple = tuple(suffixes) if suffixes else DEFAULT_SUFFIXES
    root = Path(root)

    root_documents = 0
    subdirectories: dict[str, int] = {}

    for entry in sorted(root.iterdir()):
        if entry.is_dir():
            subdirectories[entry.name] = sum(
                1
                for p in entry.rglob("*")
                if p.is_file() and matches_suffix(p.name, suffix_tuple)
            )
        elif entry.is_file() and matches_suffix(entry.name, suffix_tuple):
            root_documents += 1

    return ListingSnapshot(root_documents=root_documents, subdirectories=subdirectories)


def choose_content_root(root: Path, snapshot: ListingSnapshot) -> Path:
    """
    Pick the directory that actually holds the extracted document set.

    Documents directly under root keep root. Otherwise a single top-level
    subdirectory containing documents is descended into. Anything else falls
    back to root and lets later stages report missing documents.
    """
    if snapshot.root_documents > 0:
        return root

    if len(snapshot.subdirectories) == 1:
        [(name, count)] = snapshot.subdirectories.items()
        if count > 0:
            return root / name

    return root


def stage_archive(
    archive_path: Path,
    staging_dir: Path,
    suffixes: Optional[list[str]] = None,
    sevenzip_candidates: Optional[list[str]] = None,
) -> Path:
    """
    Extract an archive into a fresh staging directory and locate its content.

    Returns:
        Content root inside the staging directory
    """
    archive_path = Path(archive_path)

    # Fail before touching the staging directory if the tool is missing
    if archive_suffix(archive_path) in EXTERNAL_ARCHIVE_SUFFIXES:
        if find_sevenzip(sevenzip_candidates) is None:
            raise ToolNotFoundError(
                f"No 7-Zip executable found to extract {archive_path.name}"
            )

    staging_dir = prepare_staging_dir(staging_dir)
    extract_archive(archive_path, staging_dir, sevenzip_candidates)

    content_root = choose_content_root(staging_dir, take_snapshot(staging_dir, suffixes))
    if content_root != staging_dir:
        logger.info("Using single top-level folder as content root: %s", content_root.name)
    return content_root
