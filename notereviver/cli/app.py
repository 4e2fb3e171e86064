"""Typer-based CLI application for notereviver."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from notereviver import __version__
from notereviver.config import ReviverConfig, load_config
from notereviver.core.aliases import is_directory_alias, normalize_alias
from notereviver.core.frontmatter import extract_code_block, parse_front_matter
from notereviver.core.models import RebuildResult
from notereviver.core.rebuilder import revive as revive_directory
from notereviver.core.rebuilder import revive_auto
from notereviver.errors import ReviverError
from notereviver.utils.file_ops import get_file_tree
from notereviver.utils.formatters import format_count, format_time

app = typer.Typer(
    name="notereviver",
    help="Rebuild real file trees from exported note archives",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def version_callback(value: bool):
    """Display version and exit."""
    if value:
        typer.echo(f"notereviver v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
):
    """Notereviver - turn a flat note export back into a file tree.

    Each note may declare where it belongs through the `aliases` field of its
    front matter. Notes are written to that path, preferring the first fenced
    code block over the full markdown body.
    """
    pass


def configure_logging(log_level: str, quiet: bool = False) -> None:
    """Configure logging from a CLI level name.

    Args:
        log_level: Level name (debug, info, warn, error)
        quiet: Raise the default info level to warning (used for JSON output)

    Raises:
        typer.Exit: If the level name is not recognized
    """
    if quiet and log_level.lower() == "info":
        log_level = "warning"
    log_level_upper = log_level.upper()
    if log_level_upper not in ["DEBUG", "INFO", "WARN", "WARNING", "ERROR"]:
        typer.echo(
            f"❌ Invalid log level: {log_level}. "
            "Must be debug, info, warn, or error.",
            err=True,
        )
        raise typer.Exit(1)

    # Map WARN to WARNING for Python logging
    if log_level_upper == "WARN":
        log_level_upper = "WARNING"

    logging.basicConfig(
        level=getattr(logging, log_level_upper),
        format="%(message)s",
    )


def load_config_or_exit(config_path: Optional[Path]) -> ReviverConfig:
    try:
        return load_config(config_path)
    except ReviverError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from None


def display_header(title: str, input_path: Path, dry_run: bool) -> None:
    typer.echo("=" * 60)
    typer.echo(f"📂 Notereviver - {title}")
    typer.echo("=" * 60)
    typer.echo(f"Input:       {input_path}")
    if dry_run:
        typer.echo("Mode:        DRY RUN (no files will be written)")
    typer.echo("=" * 60)
    typer.echo("")


def display_result(result: RebuildResult, show_tree: bool) -> None:
    """Print the end-of-run summary."""
    typer.echo("")
    typer.echo("=" * 60)
    if result.dry_run:
        typer.echo("🔍 Dry run complete (nothing was written)")
    else:
        typer.echo("✅ Tree rebuilt successfully!")
    typer.echo("=" * 60)
    typer.echo(f"Output:      {result.output_root}")
    typer.echo(
        f"Documents:   {result.documents_total} found, "
        f"{result.pages_total} with aliases"
    )
    typer.echo(f"Directories: {result.dirs_created} created")
    typer.echo(f"Files:       {result.files_written} written")
    typer.echo(f"Skipped:     {result.files_skipped}")
    if result.root_prefix:
        typer.echo(f"Stripped:    {result.root_prefix}")
    if result.staging_dir:
        state = "deleted" if result.source_deleted else "kept"
        typer.echo(f"Staging:     {result.staging_dir} ({state})")
    typer.echo(f"Dry run:     {'yes' if result.dry_run else 'no'}")
    typer.echo(f"Duration:    {format_time(result.elapsed_seconds)}")
    typer.echo("=" * 60)

    if result.dry_run and result.actions:
        typer.echo("")
        typer.echo("📝 Planned actions:")
        for action in result.actions:
            suffix = f" ({action.reason})" if action.reason else ""
            typer.echo(f"   • {action.kind.value:<5} {action.target}{suffix}")

    if show_tree and not result.dry_run and result.output_root.is_dir():
        typer.echo("")
        typer.echo(get_file_tree(result.output_root))


def run_and_report(func, input_path: Path, json_output: bool, show_tree: bool, **kwargs):
    """Run a revive function, mapping reviver errors to exit code 1."""
    try:
        result = func(input_path, **kwargs)
    except KeyboardInterrupt:
        typer.echo("\n❌ Operation cancelled by user", err=True)
        raise typer.Exit(130) from None
    except ReviverError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from None
    except OSError as e:
        typer.echo(f"❌ Filesystem error: {e}", err=True)
        logger.debug("Revive failed", exc_info=True)
        raise typer.Exit(1) from e

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display_result(result, show_tree)
    return result


@app.command()
def revive(
    input_dir: Annotated[
        Path, typer.Argument(help="Directory of exported note documents")
    ],
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Output directory (default: inferred root)"),
    ] = None,
    overwrite: Annotated[
        bool, typer.Option("--overwrite", help="Replace files that already exist")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show actions without writing files")
    ] = False,
    strip_prefix: Annotated[
        Optional[str],
        typer.Option("--strip-prefix", help="Alias prefix to remove (e.g. 'proj/')"),
    ] = None,
    suffix: Annotated[
        Optional[list[str]],
        typer.Option("--suffix", help="Document suffix (repeatable, default: .md)"),
    ] = None,
    exclude: Annotated[
        Optional[list[str]],
        typer.Option("--exclude", help="Glob pattern of files or folders to skip (repeatable)"),
    ] = None,
    config: Annotated[
        Optional[Path], typer.Option("--config", help="Path to YAML config file")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output summary as JSON")
    ] = False,
    tree: Annotated[
        bool, typer.Option("--tree", help="Print the rebuilt tree afterwards")
    ] = False,
    log_level: Annotated[
        str,
        typer.Option(
            help="Logging level (debug, info, warn, error)",
            case_sensitive=False,
            hidden=True,
        ),
    ] = "info",
):
    """Rebuild a file tree from a directory of exported notes."""
    configure_logging(log_level, quiet=json_output)
    settings = load_config_or_exit(config)

    if not json_output:
        display_header("Reviving Directory", input_dir, dry_run)

    run_and_report(
        revive_directory,
        input_dir,
        json_output,
        tree,
        out_dir=out,
        overwrite=overwrite,
        dry_run=dry_run,
        strip_root_prefix=strip_prefix,
        suffixes=list(suffix) if suffix else None,
        exclude_patterns=list(exclude) if exclude else None,
        config=settings,
    )


@app.command()
def auto(
    input_path: Annotated[
        Path, typer.Argument(help="Directory or archive (.zip, .tar.gz, .7z, .rar)")
    ],
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Output directory (default: inferred root)"),
    ] = None,
    overwrite: Annotated[
        bool, typer.Option("--overwrite", help="Replace files that already exist")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show actions without writing files")
    ] = False,
    keep_source: Annotated[
        bool,
        typer.Option(
            "--keep-source", help="Keep the archive and staging directory afterwards"
        ),
    ] = False,
    staging_dir: Annotated[
        Optional[Path],
        typer.Option("--staging-dir", help="Extraction directory for archives"),
    ] = None,
    strip_prefix: Annotated[
        Optional[str],
        typer.Option("--strip-prefix", help="Alias prefix to remove (e.g. 'proj/')"),
    ] = None,
    suffix: Annotated[
        Optional[list[str]],
        typer.Option("--suffix", help="Document suffix (repeatable, default: .md)"),
    ] = None,
    exclude: Annotated[
        Optional[list[str]],
        typer.Option("--exclude", help="Glob pattern of files or folders to skip (repeatable)"),
    ] = None,
    config: Annotated[
        Optional[Path], typer.Option("--config", help="Path to YAML config file")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output summary as JSON")
    ] = False,
    tree: Annotated[
        bool, typer.Option("--tree", help="Print the rebuilt tree afterwards")
    ] = False,
    log_level: Annotated[
        str,
        typer.Option(
            help="Logging level (debug, info, warn, error)",
            case_sensitive=False,
            hidden=True,
        ),
    ] = "info",
):
    """Rebuild a file tree from a directory or a note archive.

    Archives are extracted to a staging directory first. Unless --keep-source
    is given, the staging directory and the archive are deleted after a
    successful run.
    """
    configure_logging(log_level, quiet=json_output)
    settings = load_config_or_exit(config)

    if not json_output:
        display_header("Reviving", input_path, dry_run)

    run_and_report(
        revive_auto,
        input_path,
        json_output,
        tree,
        out_dir=out,
        overwrite=overwrite,
        dry_run=dry_run,
        delete_source=False if keep_source else None,
        staging_dir=staging_dir,
        strip_root_prefix=strip_prefix,
        suffixes=list(suffix) if suffix else None,
        exclude_patterns=list(exclude) if exclude else None,
        config=settings,
    )


@app.command()
def inspect(
    document: Annotated[Path, typer.Argument(help="Note document to inspect")],
    json_output: Annotated[
        bool, typer.Option("--json", help="Output parsed fields as JSON")
    ] = False,
):
    """Show the front matter parsed from a single note."""
    document = document.expanduser()
    if not document.is_file():
        typer.echo(f"❌ Document not found: {document}", err=True)
        raise typer.Exit(1)

    try:
        text = document.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        typer.echo(f"❌ Document is not valid UTF-8: {document} ({e.reason})", err=True)
        raise typer.Exit(1) from None

    parsed = parse_front_matter(text)
    code = extract_code_block(parsed.body)
    alias = parsed.first_alias

    info = {
        "document": str(document),
        "has_front_matter": parsed.has_front_matter,
        "title": parsed.title,
        "aliases": parsed.aliases,
        "target": normalize_alias(alias, sep="/") if alias else None,
        "is_directory": is_directory_alias(alias) if alias else False,
        "has_code_block": code is not None,
    }

    if json_output:
        typer.echo(json.dumps(info, indent=2))
        return

    typer.echo(f"Document:     {document.name}")
    typer.echo(f"Front matter: {'yes' if parsed.has_front_matter else 'no'}")
    typer.echo(f"Title:        {parsed.title or '-'}")
    if parsed.aliases:
        typer.echo(f"Aliases:      {format_count(len(parsed.aliases), 'alias')}")
        for entry in parsed.aliases:
            typer.echo(f"              - {entry}")
        kind = "directory" if info["is_directory"] else "file"
        typer.echo(f"Target:       {info['target']} ({kind})")
    else:
        typer.echo("Aliases:      - (document would be skipped)")
    typer.echo(f"Code block:   {'yes' if code is not None else 'no'}")


if __name__ == "__main__":
    app()
