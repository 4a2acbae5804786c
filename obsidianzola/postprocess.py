"""
postprocess.py
==============

Postprocessors that turn exported Obsidian notes into Zola content.

Links to other notes become Zola internal links (``@/path/to/note.md``),
images under ``static/`` become root-relative URLs, and everything else is
left as the author wrote it. Paths are resolved against the note's location
inside the vault with plain segment arithmetic; nothing here touches the
filesystem.

Usage:
    from obsidianzola.export import Exporter
    from obsidianzola.postprocess import create_zola_link_postprocessor

    exporter = Exporter(vault_path, content_path)
    exporter.add_postprocessor(create_zola_link_postprocessor(vault_path))
    exporter.run()
"""

import logging
from pathlib import Path, PurePath
from typing import Callable, List, Union

from markdown_it.token import Token

from obsidianzola.export import Context, PostprocessorResult

ZOLA_LINK_PREFIX = '@/'
STATIC_PREFIX = 'static/'
MARKDOWN_EXTENSION = '.md'

__all__ = [
    "create_zola_link_postprocessor",
    "convert_to_zola_link",
    "convert_to_zola_image",
    "resolve_relative_path",
]


def create_zola_link_postprocessor(source_dir: Union[str, Path]) -> Callable[[Context, List[Token]], PostprocessorResult]:
    """
    Create a postprocessor that rewrites link and image destinations for Zola.

    The returned callable takes the note's Context and its markdown-it token
    list, rewrites ``href`` on every ``link_open`` token and ``src`` on every
    ``image`` token in place, and always lets the pipeline continue.
    """
    source_dir = Path(source_dir)

    def postprocessor(context: Context, tokens: List[Token]) -> PostprocessorResult:
        _rewrite_tokens(tokens, context, source_dir)
        return PostprocessorResult.CONTINUE

    return postprocessor


def _rewrite_tokens(tokens, context, source_dir):
    for token in tokens:
        if token.type == 'link_open':
            href = token.attrGet('href')
            if href is not None:
                new_href = convert_to_zola_link(str(href), context, source_dir)
                if new_href != href:
                    logging.debug(f"[LINK] {context.current_file}: {href} -> {new_href}")
                token.attrSet('href', new_href)
        elif token.type == 'image':
            src = token.attrGet('src')
            if src is not None:
                new_src = convert_to_zola_image(str(src), context, source_dir)
                if new_src != src:
                    logging.debug(f"[IMAGE] {context.current_file}: {src} -> {new_src}")
                token.attrSet('src', new_src)
        if token.children:
            _rewrite_tokens(token.children, context, source_dir)


def convert_to_zola_link(url: str, context: Context, source_dir: Path) -> str:
    """
    Convert a Markdown link destination to Zola's internal link format.

    External URLs and links to anything other than a ``.md`` file are returned
    unchanged. Note links are resolved relative to the current note and
    prefixed with ``@/``; a ``#fragment`` is carried over exactly as given.
    """
    if '://' in url or url.startswith('mailto:'):
        return url

    path_part, sep, fragment = url.partition('#')
    if not path_part.endswith(MARKDOWN_EXTENSION):
        return url

    current_dir = _current_dir(context, source_dir)
    resolved_path = resolve_relative_path(current_dir, path_part)
    return f"{ZOLA_LINK_PREFIX}{resolved_path}{sep}{fragment}"


def convert_to_zola_image(url: str, context: Context, source_dir: Path) -> str:
    """
    Convert an image source to a path Zola can serve.

    Anything resolving under ``static/`` is served from the site root, so the
    prefix is swapped for a leading ``/``. Other images keep their
    content-relative path.
    """
    if '://' in url or url.startswith('mailto:') or url.startswith('data:'):
        return url

    current_dir = _current_dir(context, source_dir)
    resolved_path = resolve_relative_path(current_dir, url)

    if resolved_path.startswith(STATIC_PREFIX):
        return '/' + resolved_path[len(STATIC_PREFIX):]
    return resolved_path


def _current_dir(context, source_dir):
    """Directory of the current note relative to the vault root."""
    current_file = Path(context.current_file)
    try:
        relative_file = current_file.relative_to(source_dir)
    except ValueError:
        # Note lives outside the vault root; fall back to its own location.
        relative_file = current_file
    return relative_file.parent


def resolve_relative_path(current_dir: Union[str, PurePath], relative_path: str) -> str:
    """
    Resolve ``relative_path`` against ``current_dir`` without touching the disk.

    ``.`` segments are dropped and ``..`` removes the previous segment; a
    ``..`` with nothing left to remove is ignored, so the result never climbs
    above the vault root. Returns the segments joined with ``/``.
    """
    joined = PurePath(current_dir).joinpath(relative_path)

    components = []
    for part in joined.parts:
        if part == '..':
            if components:
                components.pop()
        elif part == '.':
            continue
        else:
            # root and drive anchors are kept as they are
            components.append(part)

    return '/'.join(components)
