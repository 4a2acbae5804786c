"""
Copy helpers for the export: directory creation, plain file copies, and
"passthrough" files that go to the Zola tree untouched.

Features:
- Copies files matching passthrough glob patterns from the vault to the destination
- Keeps the vault-relative directory layout
- Writes a temporary .export-ignore so the exporter skips passthrough files,
  restoring any existing .export-ignore afterwards

Usage:
    from obsidianzola.copyfile import copy_passthrough_files, temporary_ignore_file
    with temporary_ignore_file(vault, patterns):
        exporter.run()
    copy_passthrough_files(vault, content, patterns)
"""

import os
import shutil
import logging
from contextlib import contextmanager

from obsidianzola.export import IGNORE_FILENAME, iter_vault_files, matches_patterns

__all__ = [
    "ensure_dir",
    "copy_file",
    "find_passthrough_files",
    "copy_passthrough_files",
    "temporary_ignore_file",
]


def ensure_dir(path):
    """
    Ensure that a directory exists.
    """
    if not os.path.exists(path):
        logging.debug(f"Creating directory: {path}")
    os.makedirs(path, exist_ok=True)


def copy_file(src_path, dst_path):
    """
    Copy a single file, creating the destination directory if needed.
    Returns the destination path.
    """
    ensure_dir(os.path.dirname(dst_path))
    shutil.copy2(src_path, dst_path)
    logging.debug(f"[COPY] {src_path} -> {dst_path}")
    return dst_path


def find_passthrough_files(source_dir, patterns):
    """
    Return vault-relative POSIX paths of every file matching one of the patterns.
    Hidden files and directories are never matched.
    """
    if not patterns:
        return []
    return [rel for rel in iter_vault_files(source_dir) if matches_patterns(rel, patterns)]


def copy_passthrough_files(source_dir, destination_dir, patterns):
    """
    Copy passthrough files unmodified from the vault into the destination tree.
    Returns the list of destination paths written.
    """
    copied = []
    for rel in find_passthrough_files(source_dir, patterns):
        src = os.path.join(source_dir, *rel.split('/'))
        dst = os.path.join(destination_dir, *rel.split('/'))
        copied.append(copy_file(src, dst))
    logging.info(f"[COPY] Copied {len(copied)} passthrough file(s) to {destination_dir}")
    return copied


@contextmanager
def temporary_ignore_file(source_dir, patterns):
    """
    Temporarily add the passthrough patterns to the vault's .export-ignore.

    An existing .export-ignore is backed up and its patterns are kept; the
    original file (or its absence) is restored on exit, even if the export fails.
    """
    ignore_path = os.path.join(source_dir, IGNORE_FILENAME)
    if not patterns:
        yield ignore_path
        return

    backup_path = ignore_path + '.bak'
    had_ignore = os.path.exists(ignore_path)
    existing = ''
    if had_ignore:
        with open(ignore_path, 'r', encoding='utf-8') as f:
            existing = f.read()
        shutil.copy2(ignore_path, backup_path)
        logging.debug(f"[COPY] Backed up {ignore_path} to {backup_path}")

    lines = [existing.rstrip('\n')] if existing.strip() else []
    lines.append('# passthrough patterns (temporary)')
    lines.extend(patterns)
    try:
        with open(ignore_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines) + '\n')
        yield ignore_path
    finally:
        if had_ignore:
            shutil.move(backup_path, ignore_path)
            logging.debug(f"[COPY] Restored {ignore_path}")
        elif os.path.exists(ignore_path):
            os.remove(ignore_path)
            logging.debug(f"[COPY] Removed temporary {ignore_path}")
