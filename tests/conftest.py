"""Pytest configuration and shared fixtures for notereviver tests."""

import tarfile
import zipfile
from pathlib import Path

import pytest


def make_note(aliases=None, body="", title=None) -> str:
    """Build note text with an optional front-matter block."""
    if aliases is None and title is None:
        return body

    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if aliases is not None:
        lines.append("aliases:")
        lines.extend(f"  - {alias}" for alias in aliases)
    lines.append("---")
    return "\n".join(lines) + "\n" + body


@pytest.fixture
def note_factory():
    """Return a helper that writes a note into a directory."""

    def write(directory: Path, name: str, aliases=None, body="", title=None) -> Path:
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(make_note(aliases, body, title), encoding="utf-8")
        return path

    return write


@pytest.fixture
def project_export(tmp_path, note_factory):
    """
    Flat export of two notes belonging to a project called "proj".

    One note holds plain markdown, the other a fenced code block.
    """
    export = tmp_path / "export"
    export.mkdir()
    note_factory(export, "Readme.md", aliases=["proj/readme.md"], body="# Hi")
    note_factory(
        export,
        "a.ts.md",
        aliases=["proj/src/a.ts"],
        body="```\nconsole.log(1)\n```",
    )
    return export


@pytest.fixture
def out_base(tmp_path):
    """Empty base directory receiving inferred output folders."""
    base = tmp_path / "out"
    base.mkdir()
    return base


@pytest.fixture
def zipped_export(tmp_path, project_export):
    """Zip archive whose only top-level entry is a folder of notes."""
    archive = tmp_path / "notes.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        for path in sorted(project_export.iterdir()):
            zf.write(path, arcname=f"export/{path.name}")
    return archive


@pytest.fixture
def tarred_export(tmp_path, project_export):
    """tar.gz archive with notes directly at the archive root."""
    archive = tmp_path / "notes.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        for path in sorted(project_export.iterdir()):
            tar.add(path, arcname=path.name)
    return archive


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map relative path -> content (b"<dir>" for directories)."""
    if not root.exists():
        return {}
    result = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        result[rel] = b"<dir>" if path.is_dir() else path.read_bytes()
    return result
