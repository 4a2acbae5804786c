"""
Tests for passthrough copying and the temporary .export-ignore.
"""
import os

import pytest
from obsidianzola import copyfile
from obsidianzola.copyfile import (
    copy_passthrough_files,
    ensure_dir,
    find_passthrough_files,
    temporary_ignore_file,
)


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    (root / "raw").mkdir(parents=True)
    (root / "boards").mkdir()
    (root / ".trash").mkdir()
    (root / "index.md").write_text("# Home\n", encoding="utf-8")
    (root / "raw" / "keep.md").write_text("[[untouched]]\n", encoding="utf-8")
    (root / "boards" / "plan.canvas").write_text("{}", encoding="utf-8")
    (root / ".trash" / "old.canvas").write_text("{}", encoding="utf-8")
    return root


def test_find_passthrough_files(vault):
    found = find_passthrough_files(str(vault), ["*.canvas", "raw/**"])
    assert found == ["boards/plan.canvas", "raw/keep.md"]
    assert find_passthrough_files(str(vault), []) == []


def test_copy_passthrough_files(vault, tmp_path):
    dest = tmp_path / "content"
    copied = copy_passthrough_files(str(vault), str(dest), ["raw/**"])
    assert copied == [os.path.join(str(dest), "raw", "keep.md")]
    assert (dest / "raw" / "keep.md").read_text(encoding="utf-8") == "[[untouched]]\n"


def test_temporary_ignore_file_is_removed(vault):
    ignore = vault / ".export-ignore"
    with temporary_ignore_file(str(vault), ["raw/**"]):
        assert "raw/**" in ignore.read_text(encoding="utf-8").splitlines()
    assert not ignore.exists()


def test_temporary_ignore_file_restores_existing(vault):
    ignore = vault / ".export-ignore"
    ignore.write_text("drafts/\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        with temporary_ignore_file(str(vault), ["*.canvas"]):
            lines = ignore.read_text(encoding="utf-8").splitlines()
            assert lines[0] == "drafts/"
            assert "*.canvas" in lines
            raise RuntimeError("export failed")
    assert ignore.read_text(encoding="utf-8") == "drafts/\n"
    assert not (vault / ".export-ignore.bak").exists()


def test_temporary_ignore_file_restores_when_write_fails(vault, monkeypatch):
    ignore = vault / ".export-ignore"
    ignore.write_text("drafts/\n", encoding="utf-8")
    real_open = open

    def read_only_open(path, mode='r', *args, **kwargs):
        if 'w' in mode:
            raise OSError("disk full")
        return real_open(path, mode, *args, **kwargs)

    monkeypatch.setattr(copyfile, "open", read_only_open, raising=False)
    with pytest.raises(OSError, match="disk full"):
        with temporary_ignore_file(str(vault), ["*.canvas"]):
            pass
    assert ignore.read_text(encoding="utf-8") == "drafts/\n"
    assert not (vault / ".export-ignore.bak").exists()


def test_temporary_ignore_file_without_patterns(vault):
    with temporary_ignore_file(str(vault), []):
        assert not (vault / ".export-ignore").exists()


def test_ensure_dir(tmp_path):
    target = tmp_path / "a" / "b"
    ensure_dir(str(target))
    ensure_dir(str(target))
    assert target.is_dir()
