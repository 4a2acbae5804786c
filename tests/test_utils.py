"""Unit tests for the obsidianzola.utils module."""

import pytest
from obsidianzola import utils


def test_validate_directory_exists(tmp_path):
    utils.validate_directory(tmp_path, "Test directory")


def test_validate_directory_not_exists():
    with pytest.raises(utils.ValidationError, match="does not exist"):
        utils.validate_directory("/nonexistent/path", "Test directory")


def test_validate_directory_is_file(tmp_path):
    file_path = tmp_path / "test.txt"
    file_path.write_text("test")
    with pytest.raises(utils.ValidationError, match="is not a directory"):
        utils.validate_directory(file_path, "Test directory")


def test_is_markdown_file():
    assert utils.is_markdown_file("test.md")
    assert utils.is_markdown_file("test.markdown")
    assert utils.is_markdown_file("TEST.MD")
    assert utils.is_markdown_file("path/to/file.md")

    assert not utils.is_markdown_file("test.txt")
    assert not utils.is_markdown_file("test.html")
    assert not utils.is_markdown_file("test")
    assert not utils.is_markdown_file("test.md.backup")


def test_normalize_path():
    assert utils.normalize_path("folder/file.md") == "folder/file.md"
    assert utils.normalize_path("folder/../other/file.md") == "folder/../other/file.md"


def test_slugify():
    assert utils.slugify("Hello World!") == "hello-world"
    assert utils.slugify("A  B  C") == "a-b-c"
    assert utils.slugify("Intro") == "intro"


def test_slugify_transliterates_accents():
    assert utils.slugify("Résumé Été") == "resume-ete"
    assert utils.slugify("Über uns") == "uber-uns"
