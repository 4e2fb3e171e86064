"""Tests for archive staging."""

import io
import tarfile
import zipfile
from pathlib import Path

import pytest

from notereviver.core import staging
from notereviver.core.models import ListingSnapshot, ProcessResult
from notereviver.core.staging import (
    InputKind,
    archive_stem,
    archive_suffix,
    choose_content_root,
    classify_input,
    default_staging_dir,
    extract_archive,
    find_sevenzip,
    prepare_staging_dir,
    stage_archive,
    take_snapshot,
)
from notereviver.errors import (
    ExtractionError,
    InputPathError,
    ToolNotFoundError,
    UnsupportedArchiveError,
)


class TestClassifyInput:
    def test_directory(self, tmp_path):
        assert classify_input(tmp_path) == InputKind.DIRECTORY

    @pytest.mark.parametrize(
        "name", ["a.zip", "a.tar", "a.tar.gz", "a.TGZ", "a.7z", "a.rar"]
    )
    def test_archives(self, tmp_path, name):
        path = tmp_path / name
        path.write_bytes(b"")
        assert classify_input(path) == InputKind.ARCHIVE

    def test_missing_path(self, tmp_path):
        with pytest.raises(InputPathError, match="not found"):
            classify_input(tmp_path / "missing.zip")

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "notes.pdf"
        path.write_bytes(b"")
        with pytest.raises(UnsupportedArchiveError):
            classify_input(path)


class TestArchiveNames:
    def test_compound_suffix(self):
        assert archive_suffix(Path("x.tar.gz")) == ".tar.gz"
        assert archive_stem(Path("export.tar.gz")) == "export"
        assert archive_stem(Path("export.zip")) == "export"

    def test_default_staging_dir_is_sibling(self, tmp_path):
        archive = tmp_path / "export.tar.gz"
        assert default_staging_dir(archive, "_stage") == tmp_path / "export_stage"


class TestChooseContentRoot:
    """Content root selection is a pure function of the snapshot."""

    root = Path("/staging")

    def test_documents_at_root(self):
        snapshot = ListingSnapshot(root_documents=2, subdirectories={"only": 5})
        assert choose_content_root(self.root, snapshot) == self.root

    def test_single_subdirectory_with_documents(self):
        snapshot = ListingSnapshot(root_documents=0, subdirectories={"export": 3})
        assert choose_content_root(self.root, snapshot) == self.root / "export"

    def test_single_subdirectory_without_documents(self):
        snapshot = ListingSnapshot(root_documents=0, subdirectories={"images": 0})
        assert choose_content_root(self.root, snapshot) == self.root

    def test_several_subdirectories(self):
        snapshot = ListingSnapshot(subdirectories={"a": 1, "b": 1})
        assert choose_content_root(self.root, snapshot) == self.root

    def test_empty_listing(self):
        assert choose_content_root(self.root, ListingSnapshot()) == self.root


class TestTakeSnapshot:
    def test_counts_documents(self, tmp_path):
        (tmp_path / "top.md").write_text("x")
        (tmp_path / "top.png").write_bytes(b"")
        (tmp_path / "sub" / "deep").mkdir(parents=True)
        (tmp_path / "sub" / "deep" / "n.md").write_text("x")
        (tmp_path / "assets").mkdir()

        snapshot = take_snapshot(tmp_path)

        assert snapshot.root_documents == 1
        assert snapshot.subdirectories == {"assets": 0, "sub": 1}


class TestPrepareStagingDir:
    def test_creates_directory(self, tmp_path):
        staging_dir = prepare_staging_dir(tmp_path / "stage")
        assert staging_dir.is_dir()
        assert list(staging_dir.iterdir()) == []

    def test_clears_previous_run(self, tmp_path):
        stage = tmp_path / "stage"
        (stage / "old").mkdir(parents=True)
        (stage / "old" / "left.md").write_text("x")

        prepare_staging_dir(stage)

        assert stage.is_dir()
        assert list(stage.iterdir()) == []


class TestNativeExtraction:
    def test_zip_single_folder_becomes_content_root(self, tmp_path, zipped_export):
        content_root = stage_archive(zipped_export, tmp_path / "stage")

        assert content_root == tmp_path / "stage" / "export"
        assert (content_root / "Readme.md").is_file()

    def test_tar_gz_root_documents(self, tmp_path, tarred_export):
        content_root = stage_archive(tarred_export, tmp_path / "stage")

        assert content_root == tmp_path / "stage"
        assert (content_root / "a.ts.md").is_file()

    def test_unsupported_archive(self, tmp_path):
        path = tmp_path / "notes.pdf"
        path.write_bytes(b"")
        with pytest.raises(UnsupportedArchiveError):
            extract_archive(path, tmp_path)


@pytest.fixture
def no_sevenzip(monkeypatch):
    """Hide every 7-Zip executable from the lookup."""
    monkeypatch.setattr(staging.shutil, "which", lambda name: None)


@pytest.fixture
def fake_sevenzip(monkeypatch, tmp_path):
    """Pretend 7z is installed and record invocations."""
    tool = tmp_path / "bin" / "7z"
    tool.parent.mkdir()
    tool.write_text("")
    monkeypatch.setattr(
        staging.shutil, "which", lambda name: str(tool) if name == "7z" else None
    )
    return tool


class TestExternalExtraction:
    def test_lookup_prefers_command(self, fake_sevenzip):
        assert find_sevenzip([]) == fake_sevenzip

    def test_lookup_falls_back_to_candidates(self, no_sevenzip, tmp_path):
        candidate = tmp_path / "7-Zip" / "7z.exe"
        candidate.parent.mkdir()
        candidate.write_text("")

        missing = str(tmp_path / "nowhere" / "7z")
        assert find_sevenzip([missing, str(candidate)]) == candidate

    def test_lookup_finds_nothing(self, no_sevenzip, tmp_path):
        assert find_sevenzip([str(tmp_path / "nope")]) is None

    def test_missing_tool_fails_before_staging(self, no_sevenzip, tmp_path):
        archive = tmp_path / "notes.7z"
        archive.write_bytes(b"7z")
        stage = tmp_path / "stage"
        stage.mkdir()
        (stage / "keep.md").write_text("from an earlier run")

        with pytest.raises(ToolNotFoundError):
            stage_archive(archive, stage, sevenzip_candidates=[])

        assert (stage / "keep.md").exists()

    def test_non_zero_exit_raises_with_code(self, fake_sevenzip, monkeypatch, tmp_path):
        archive = tmp_path / "notes.rar"
        archive.write_bytes(b"rar")

        def fake_run(cmd):
            return ProcessResult(args=cmd, returncode=2, stderr="Fatal error")

        monkeypatch.setattr(staging, "run_process", fake_run)

        with pytest.raises(ExtractionError, match="exit code 2") as exc_info:
            stage_archive(archive, tmp_path / "stage")

        assert exc_info.value.exit_code == 2
        assert "Fatal error" in str(exc_info.value)

    def test_successful_external_extraction(self, fake_sevenzip, monkeypatch, tmp_path):
        archive = tmp_path / "notes.7z"
        archive.write_bytes(b"7z")
        calls = []

        def fake_run(cmd):
            calls.append(cmd)
            out_dir = Path(next(arg[2:] for arg in cmd if arg.startswith("-o")))
            (out_dir / "vault").mkdir()
            (out_dir / "vault" / "n.md").write_text("---\naliases: a/b.md\n---\n")
            return ProcessResult(args=cmd, returncode=0)

        monkeypatch.setattr(staging, "run_process", fake_run)

        content_root = stage_archive(archive, tmp_path / "stage")

        assert content_root == tmp_path / "stage" / "vault"
        assert calls[0][0] == str(fake_sevenzip)
        assert calls[0][1] == "x"
        assert calls[0][-1] == str(archive)


def test_run_process_captures_output(monkeypatch):
    class Completed:
        returncode = 3
        stdout = "out"
        stderr = "err"

    monkeypatch.setattr(staging.subprocess, "run", lambda cmd, **kwargs: Completed())

    result = staging.run_process(["tool", "arg"])

    assert result.returncode == 3
    assert result.ok is False
    assert result.stdout == "out"
    assert result.stderr == "err"


def test_zip_extraction_keeps_nested_paths(tmp_path):
    archive = tmp_path / "nested.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("a/b/c.md", "x")

    extract_archive(archive, prepare_staging_dir(tmp_path / "stage"))

    assert (tmp_path / "stage" / "a" / "b" / "c.md").read_text() == "x"


def test_tar_member_outside_stage_is_rejected(tmp_path):
    archive = tmp_path / "evil.tar"
    payload = b"escaped"
    with tarfile.open(archive, "w") as tar:
        info = tarfile.TarInfo("../escaped.md")
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))
    stage = prepare_staging_dir(tmp_path / "stage")

    with pytest.raises(ExtractionError) as exc_info:
        extract_archive(archive, stage)

    assert exc_info.value.exit_code is None
    assert not (tmp_path / "escaped.md").exists()


def test_corrupt_zip_raises_extraction_error(tmp_path):
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"not a zip")

    with pytest.raises(ExtractionError):
        extract_archive(archive, prepare_staging_dir(tmp_path / "stage"))
