"""
utils.py
--------

Small helpers shared by the exporter and the command line.
"""

import os
import re
from pathlib import Path

from unidecode import unidecode

__all__ = [
    "ValidationError",
    "validate_directory",
    "is_markdown_file",
    "normalize_path",
    "slugify",
]


class ValidationError(Exception):
    """Raised when an input or output path is unusable."""


def validate_directory(path, description):
    """
    Check that a path exists and is a directory.
    Raises ValidationError naming the path otherwise.
    """
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"{description} does not exist: {path}")
    if not path.is_dir():
        raise ValidationError(f"{description} is not a directory: {path}")


def is_markdown_file(path):
    """
    Return True for .md and .markdown files (any case).
    """
    ext = os.path.splitext(str(path))[1].lower()
    return ext in ('.md', '.markdown')


def normalize_path(path):
    """
    Join the components of a path with forward slashes.
    Does not resolve '.' or '..'; see postprocess.resolve_relative_path for that.
    """
    return '/'.join(Path(path).parts)


def slugify(value):
    """
    Convert a string to a URL-friendly slug (lowercase, hyphens, alphanum only).
    Accented and non-Latin characters are transliterated first, as Zola does for anchors.
    """
    value = unidecode(value)
    value = re.sub(r'[^a-zA-Z0-9]+', '-', value)
    return value.strip('-').lower()
