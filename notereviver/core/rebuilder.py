"""Rebuild a real file tree from a flat export of aliased notes."""

import logging
import shutil
import tempfile
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from ..config import ReviverConfig
from ..errors import InputPathError, NoDocumentsError, NoPagesError
from .aliases import (
    infer_common_root,
    is_directory_alias,
    normalize_alias,
    prefix_folder_name,
    resolve_target,
    strip_root_prefix,
)
from .frontmatter import extract_code_block, parse_front_matter
from .models import ActionKind, Document, Page, PlannedAction, RebuildResult
from .scanner import DocumentScanner
from .staging import InputKind, classify_input, default_staging_dir, stage_archive

logger = logging.getLogger(__name__)


def build_pages(documents: Iterable[Document]) -> list[Page]:
    """
    Parse documents and keep those that declare at least one alias.

    Documents without an alias are dropped silently.
    """
    pages = []
    for document in documents:
        parsed = parse_front_matter(document.raw_text)
        alias = parsed.first_alias
        if alias is None:
            logger.debug("No alias, skipping: %s", document.source_path)
            continue

        pages.append(
            Page(
                source_path=document.source_path,
                alias_raw=alias,
                alias_norm=normalize_alias(alias),
                title=parsed.title,
                body=parsed.body,
            )
        )
    return pages


def page_content(page: Page) -> str:
    """File content for a page: its first code block if any, else the body."""
    code = extract_code_block(page.body)
    return code if code is not None else page.body


def resolve_output_root(
    pages: list[Page],
    out_dir: Optional[Path],
    strip_prefix: Optional[str],
    base_dir: Path,
    default_output_dir: str,
) -> tuple[Path, Optional[str]]:
    """
    Decide where the tree is written and which alias prefix is removed.

    Args:
        pages: Pages of the run
        out_dir: Explicit output directory, if the caller gave one
        strip_prefix: Explicit prefix to strip from every alias
        base_dir: Directory that relative output names are created in
        default_output_dir: Folder name used when no root can be inferred

    Returns:
        Tuple of (output_root, prefix_to_strip)
    """
    if strip_prefix:
        folder = prefix_folder_name(strip_prefix) or default_output_dir
        output_root = Path(out_dir) if out_dir else base_dir / folder
        return output_root, strip_prefix

    if out_dir is None:
        inferred = infer_common_root(page.alias_raw for page in pages)
        if inferred:
            logger.info("Inferred common root folder: %s", inferred)
            return base_dir / inferred, inferred

        logger.info(
            "No common root folder, writing to default: %s", default_output_dir
        )
        return base_dir / default_output_dir, None

    return Path(out_dir), None


class TreeRebuilder:
    """
    Materializes pages as directories and files under an output root.

    Pages are processed one at a time in the order given. Existing files are
    skipped unless overwrite is requested; under dry-run nothing is written
    and every action is only reported.
    """

    def __init__(
        self,
        output_root: Path,
        root_prefix: Optional[str] = None,
        overwrite: bool = False,
        dry_run: bool = False,
    ):
        """
        Initialize tree rebuilder.

        Args:
            output_root: Directory receiving the rebuilt tree
            root_prefix: Prefix removed from each normalized alias
            overwrite: Replace files that already exist (default: False)
            dry_run: Report actions without touching the filesystem (default: False)
        """
        self.output_root = Path(output_root)
        self.root_prefix = root_prefix
        self.overwrite = overwrite
        self.dry_run = dry_run
        # Paths a dry run would have created, so later pages see them as existing
        self._planned_files: set[Path] = set()
        self._planned_dirs: set[Path] = set()

    def _report(self, message: str, *args) -> None:
        if self.dry_run:
            logger.info("[dry-run] " + message, *args)
        else:
            logger.info(message, *args)

    def _is_file(self, path: Path) -> bool:
        return path.is_file() or path in self._planned_files

    def _is_dir(self, path: Path) -> bool:
        return path.is_dir() or path in self._planned_dirs

    def _file_in_parents(self, target: Path) -> Optional[Path]:
        """First ancestor of target that is (or will be) a regular file."""
        for parent in target.parents:
            if self._is_file(parent):
                return parent
            if parent == self.output_root:
                break
        return None

    def _plan_directory(self, target: Path) -> None:
        self._planned_dirs.add(target)
        self._planned_dirs.update(target.parents)

    def _make_directory(self, page: Page, target: Path, result: RebuildResult) -> None:
        blocker = self._file_in_parents(target)
        if blocker is not None:
            self._skip(page, result, f"parent path is a file: {blocker}", target)
            return
        if self._is_file(target):
            self._skip(page, result, "a file exists at this path", target)
            return
        if self._is_dir(target):
            logger.debug("Directory exists: %s", target)
            return

        self._report("Create directory: %s", target)
        if not self.dry_run:
            target.mkdir(parents=True, exist_ok=True)
        self._plan_directory(target)
        result.dirs_created += 1
        result.actions.append(
            PlannedAction(kind=ActionKind.MKDIR, target=target, source_path=page.source_path)
        )

    def _write_file(self, page: Page, target: Path, result: RebuildResult) -> None:
        blocker = self._file_in_parents(target)
        if blocker is not None:
            self._skip(page, result, f"parent path is a file: {blocker}", target)
            return
        if self._is_dir(target):
            self._skip(page, result, "a directory exists at this path", target)
            return

        if self._is_file(target) and not self.overwrite:
            logger.info("Exists, skipping: %s", target)
            result.files_skipped += 1
            result.actions.append(
                PlannedAction(
                    kind=ActionKind.SKIP,
                    target=target,
                    source_path=page.source_path,
                    reason="exists",
                )
            )
            return

        self._report("Write file: %s (from %s)", target, page.source_path.name)
        if not self.dry_run:
            target.parent.mkdir(parents=True, exist_ok=True)
            # newline="" writes the text exactly as parsed, utf-8 has no BOM
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(page_content(page))
        self._planned_files.add(target)
        self._plan_directory(target.parent)

        result.files_written += 1
        result.actions.append(
            PlannedAction(kind=ActionKind.WRITE, target=target, source_path=page.source_path)
        )

    def _skip(
        self,
        page: Page,
        result: RebuildResult,
        reason: str,
        target: Optional[Path] = None,
    ) -> None:
        logger.warning("Skipping %s (alias %r): %s", page.source_path.name, page.alias_raw, reason)
        result.files_skipped += 1
        result.actions.append(
            PlannedAction(
                kind=ActionKind.SKIP,
                target=target or self.output_root,
                source_path=page.source_path,
                reason=reason,
            )
        )

    def rebuild(self, pages: list[Page]) -> RebuildResult:
        """
        Create the directories and files described by pages.

        Returns:
            RebuildResult with aggregate counts and the actions taken
        """
        result = RebuildResult(
            output_root=self.output_root,
            dry_run=self.dry_run,
            pages_total=len(pages),
            root_prefix=self.root_prefix,
        )

        for page in pages:
            relative = strip_root_prefix(page.alias_norm, self.root_prefix)
            target = resolve_target(self.output_root, relative)
            if target is None:
                self._skip(page, result, "alias leaves the output root")
                continue

            if is_directory_alias(page.alias_raw):
                self._make_directory(page, target, result)
                continue

            if target == self.output_root:
                self._skip(page, result, "alias names the output root itself")
                continue

            self._write_file(page, target, result)

        return result


def scan_excludes(
    input_dir: Path,
    out_dir: Optional[Path],
    config: ReviverConfig,
    extra: Optional[list[str]] = None,
) -> list[str]:
    """
    Glob patterns the document scan ignores.

    Combines configured and caller patterns with leftover staging folders
    and an explicit output directory nested inside the input directory.
    """
    patterns = list(config.exclude_patterns) + list(extra or [])
    patterns.append(f"*{config.staging_suffix}")

    if out_dir is not None:
        try:
            nested = Path(out_dir).resolve().relative_to(input_dir.resolve())
        except ValueError:
            nested = None
        if nested is not None and nested.parts:
            patterns.append(nested.as_posix())

    return patterns


def revive(
    input_dir: Path,
    out_dir: Optional[Path] = None,
    overwrite: bool = False,
    dry_run: bool = False,
    strip_root_prefix: Optional[str] = None,
    suffixes: Optional[list[str]] = None,
    exclude_patterns: Optional[list[str]] = None,
    base_dir: Optional[Path] = None,
    config: Optional[ReviverConfig] = None,
) -> RebuildResult:
    """Rebuild a file tree from a directory of exported notes.

    Args:
        input_dir: Directory holding the exported documents
        out_dir: Output directory (default: inferred root or default folder)
        overwrite: Replace existing files
        dry_run: Report actions without writing
        strip_root_prefix: Prefix to remove from every alias
        suffixes: Document suffixes (default: from config)
        exclude_patterns: Extra glob patterns of files or folders to ignore
        base_dir: Where inferred/default output folders are created (default: cwd)
        config: Configuration (default: built-in defaults)

    Returns:
        RebuildResult with counts and the final output root

    Raises:
        InputPathError: If input_dir is missing or not a directory
        NoDocumentsError: If no matching documents are found
        NoPagesError: If no document declares an alias
    """
    started = time.monotonic()
    config = config or ReviverConfig()
    suffixes = suffixes or config.suffixes

    input_dir = Path(input_dir).expanduser()
    if not input_dir.exists():
        raise InputPathError(f"Input directory not found: {input_dir}")
    if not input_dir.is_dir():
        raise InputPathError(f"Input path is not a directory: {input_dir}")

    scanner = DocumentScanner(
        input_dir,
        suffixes=suffixes,
        exclude_patterns=scan_excludes(input_dir, out_dir, config, exclude_patterns),
    )
    documents = list(scanner.read_documents())
    if not documents:
        raise NoDocumentsError(
            f"No documents matching {', '.join(scanner.suffixes)} under {input_dir}"
        )
    logger.info("Found %d documents under %s", len(documents), input_dir)

    pages = build_pages(documents)
    if not pages:
        raise NoPagesError(
            f"None of the {len(documents)} documents under {input_dir} declares an alias"
        )
    logger.info("%d of %d documents declare an alias", len(pages), len(documents))

    base_dir = Path(base_dir) if base_dir else Path.cwd()
    output_root, prefix = resolve_output_root(
        pages, out_dir, strip_root_prefix, base_dir, config.default_output_dir
    )

    rebuilder = TreeRebuilder(
        output_root=output_root,
        root_prefix=prefix,
        overwrite=overwrite,
        dry_run=dry_run,
    )
    result = rebuilder.rebuild(pages)
    result.documents_total = len(documents)
    result.elapsed_seconds = time.monotonic() - started

    logger.info(
        "Done: %d dirs created, %d files written, %d skipped -> %s",
        result.dirs_created,
        result.files_written,
        result.files_skipped,
        result.output_root,
    )
    return result


def cleanup_source(archive_path: Path, staging_dir: Path, dry_run: bool) -> bool:
    """Delete the staging directory and the original archive.

    Returns:
        True if both were deleted, False under dry-run
    """
    if dry_run:
        logger.info("[dry-run] Delete staging directory: %s", staging_dir)
        logger.info("[dry-run] Delete archive: %s", archive_path)
        return False

    if staging_dir.exists():
        shutil.rmtree(staging_dir)
        logger.info("Deleted staging directory: %s", staging_dir)
    if archive_path.exists():
        archive_path.unlink()
        logger.info("Deleted archive: %s", archive_path)
    return True


def revive_auto(
    input_path: Path,
    out_dir: Optional[Path] = None,
    overwrite: bool = False,
    dry_run: bool = False,
    delete_source: Optional[bool] = None,
    strip_root_prefix: Optional[str] = None,
    suffixes: Optional[list[str]] = None,
    exclude_patterns: Optional[list[str]] = None,
    base_dir: Optional[Path] = None,
    staging_dir: Optional[Path] = None,
    config: Optional[ReviverConfig] = None,
) -> RebuildResult:
    """Rebuild a file tree from a directory or a supported archive.

    Archives are extracted into a staging directory first. After a successful
    run the staging directory and the archive are deleted when delete_source
    is set; dry runs only report the deletion.

    Args:
        input_path: Directory or archive (.zip, .tar, .tar.gz, .tgz, .7z, .rar)
        out_dir: Output directory (default: inferred root or default folder)
        overwrite: Replace existing files
        dry_run: Report actions without writing the output tree
        delete_source: Delete staging dir and archive afterwards
            (default: config.delete_source)
        strip_root_prefix: Prefix to remove from every alias
        suffixes: Document suffixes (default: from config)
        exclude_patterns: Extra glob patterns of files or folders to ignore
        base_dir: Where inferred/default output folders are created (default: cwd)
        staging_dir: Extraction directory (default: next to the archive)
        config: Configuration (default: built-in defaults)

    Returns:
        RebuildResult; staging_dir and source_deleted are set for archives
    """
    started = time.monotonic()
    config = config or ReviverConfig()
    if delete_source is None:
        delete_source = config.delete_source

    input_path = Path(input_path).expanduser()
    kind = classify_input(input_path)

    options = dict(
        out_dir=out_dir,
        overwrite=overwrite,
        dry_run=dry_run,
        strip_root_prefix=strip_root_prefix,
        suffixes=suffixes,
        exclude_patterns=exclude_patterns,
        base_dir=base_dir,
        config=config,
    )

    if kind == InputKind.DIRECTORY:
        return revive(input_path, **options)

    staging = (
        Path(staging_dir)
        if staging_dir
        else default_staging_dir(input_path, config.staging_suffix)
    )
    stage_options = dict(
        suffixes=suffixes or config.suffixes,
        sevenzip_candidates=config.sevenzip_candidates,
    )

    if dry_run:
        # Extract to a throwaway directory so nothing appears next to the archive
        with tempfile.TemporaryDirectory() as tmpdir:
            scratch = Path(tmpdir) / staging.name
            content_root = stage_archive(input_path, scratch, **stage_options)
            result = revive(content_root, **options)
    else:
        content_root = stage_archive(input_path, staging, **stage_options)
        result = revive(content_root, **options)
    result.staging_dir = staging

    if delete_source:
        result.source_deleted = cleanup_source(input_path, staging, dry_run)

    result.elapsed_seconds = time.monotonic() - started
    return result
