"""Tests for FileSelector and ArchiveBuilder."""
import io
import shutil
import subprocess
import tarfile
from pathlib import Path

import pytest

from publisher.errors import FileSystemError
from publisher.models import FileList
from publisher.services.archive import ArchiveBuilder
from publisher.services.file_selector import FileSelector, filter_reserved


def _make_tree(root: Path) -> None:
    (root / "lib" / "src").mkdir(parents=True)
    (root / "pubspec.yaml").write_text("name: foo\nversion: 1.0.0\n")
    (root / "lib" / "foo.dart").write_text("library foo;")
    (root / "lib" / "src" / "bar.dart").write_text("part of foo;")
    (root / ".hidden").write_text("secret")
    (root / "packages").mkdir()
    (root / "packages" / "dep.dart").write_text("dep")
    (root / "lib" / "packages").write_text("not a dir but reserved")


def test_filter_reserved():
    assert filter_reserved(
        ["packages", "packages/dep.dart", "lib/packages", "lib/packages.dart", "a"]
    ) == [
        "lib/packages.dart",
        "a",
    ]


class TestFileSelectorWalk:
    @pytest.fixture(autouse=True)
    def no_git(self, monkeypatch):
        monkeypatch.setattr("publisher.services.file_selector.git_available", lambda: False)

    @pytest.mark.asyncio
    async def test_collects_all_regular_files(self, tmp_path):
        _make_tree(tmp_path)

        files = await FileSelector(tmp_path).select()

        assert isinstance(files, FileList)
        assert files.root == tmp_path
        assert sorted(files) == [".hidden", "lib/foo.dart", "lib/src/bar.dart", "pubspec.yaml"]

    @pytest.mark.asyncio
    async def test_never_includes_directories_or_packages(self, tmp_path):
        _make_tree(tmp_path)

        files = await FileSelector(tmp_path).select()

        for entry in files:
            assert not (tmp_path / entry).is_dir()
            assert entry.split("/")[-1] != "packages"
            assert not entry.startswith("packages/")
        assert len(set(files)) == len(files)

    @pytest.mark.asyncio
    async def test_git_dir_without_git_tool_walks(self, tmp_path):
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main")
        (tmp_path / "a.txt").write_text("a")

        selector = FileSelector(tmp_path)
        files = await selector.select()

        assert selector.uses_git() is False
        assert sorted(files) == [".git/HEAD", "a.txt"]

    @pytest.mark.asyncio
    async def test_missing_root_raises(self, tmp_path):
        with pytest.raises(FileSystemError):
            await FileSelector(tmp_path / "missing").select()


class TestFileSelectorGit:
    @pytest.mark.asyncio
    async def test_uses_git_ls_files(self, tmp_path, monkeypatch):
        _make_tree(tmp_path)
        (tmp_path / ".git").mkdir()
        calls = []

        def fake_run(command, **kwargs):
            calls.append((command, kwargs))
            stdout = b"pubspec.yaml\0lib/foo.dart\0lib/packages\0packages\0lib/foo.dart\0deleted.dart\0"
            return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr=b"")

        monkeypatch.setattr("publisher.services.file_selector.git_available", lambda: True)
        monkeypatch.setattr("publisher.services.file_selector.subprocess.run", fake_run)

        files = await FileSelector(tmp_path).select()

        assert list(files) == ["pubspec.yaml", "lib/foo.dart"]
        command, kwargs = calls[0]
        assert command[:4] == ["git", "ls-files", "--cached", "--others"]
        assert "--exclude-standard" in command
        assert kwargs["cwd"] == str(tmp_path)

    @pytest.mark.asyncio
    async def test_git_failure_raises(self, tmp_path, monkeypatch):
        (tmp_path / ".git").mkdir()

        def fake_run(command, **kwargs):
            return subprocess.CompletedProcess(command, 128, stdout=b"", stderr=b"fatal: bad repo")

        monkeypatch.setattr("publisher.services.file_selector.git_available", lambda: True)
        monkeypatch.setattr("publisher.services.file_selector.subprocess.run", fake_run)

        with pytest.raises(FileSystemError, match="fatal: bad repo"):
            await FileSelector(tmp_path).select()

    @pytest.mark.asyncio
    async def test_git_not_startable_raises(self, tmp_path, monkeypatch):
        (tmp_path / ".git").mkdir()

        def fake_run(command, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr("publisher.services.file_selector.git_available", lambda: True)
        monkeypatch.setattr("publisher.services.file_selector.subprocess.run", fake_run)

        with pytest.raises(FileSystemError, match="could not run git"):
            await FileSelector(tmp_path).select()

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    async def test_real_git_respects_gitignore(self, tmp_path):
        subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
        (tmp_path / ".gitignore").write_text("build/\n*.log\n")
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "foo.dart").write_text("library foo;")
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "out.js").write_text("js")
        (tmp_path / "debug.log").write_text("log")
        (tmp_path / "packages").write_text("reserved")

        files = await FileSelector(tmp_path).select()

        assert sorted(files) == [".gitignore", "lib/foo.dart"]

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    async def test_real_git_skips_top_level_packages_dir(self, tmp_path):
        subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
        (tmp_path / "pubspec.yaml").write_text("name: foo\n")
        (tmp_path / "packages").mkdir()
        (tmp_path / "packages" / "dep.dart").write_text("dep")
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "foo.dart").write_text("library foo;")

        files = await FileSelector(tmp_path).select()

        assert sorted(files) == ["lib/foo.dart", "pubspec.yaml"]


class TestArchiveBuilder:
    @pytest.mark.asyncio
    async def test_archives_exactly_the_file_list(self, tmp_path):
        _make_tree(tmp_path)
        file_list = FileList(root=tmp_path, entries=("pubspec.yaml", "lib/src/bar.dart"))

        data = await ArchiveBuilder().build(file_list)

        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            assert tar.getnames() == ["pubspec.yaml", "lib/src/bar.dart"]
            content = tar.extractfile("lib/src/bar.dart").read()
        assert content == b"part of foo;"

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        file_list = FileList(root=tmp_path, entries=("gone.dart",))
        with pytest.raises(FileSystemError):
            await ArchiveBuilder().build(file_list)
