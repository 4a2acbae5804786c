"""
export.py
=========

Obsidian vault exporter.

Walks a vault, turns every note into plain CommonMark (wikilinks and embeds
become regular links and images), runs the registered postprocessors over the
parsed markdown-it token stream, and writes the result to the destination
tree. Files that are not notes are copied as they are.

Postprocessors are plain callables::

    def postprocessor(context: Context, tokens: List[Token]) -> PostprocessorResult

They may mutate the tokens in place. Hidden files and anything matched by the
vault's .export-ignore are skipped.
"""

import os
import re
import shutil
import logging
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import yaml
from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat._util import build_mdit
from mdformat.renderer import MDRenderer

from obsidianzola.utils import ValidationError, is_markdown_file, normalize_path, slugify, validate_directory

IGNORE_FILENAME = '.export-ignore'

FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)', re.DOTALL)
WIKILINK_RE = re.compile(r'(!?)\[\[([^\[\]|\n]*)(?:\|([^\[\]\n]*))?\]\]')
FENCE_RE = re.compile(r'^[ \t]{0,3}(`{3,}|~{3,})')
INLINE_CODE_RE = re.compile(r'(`+[^`\n]*?`+)')


class FrontmatterStrategy(Enum):
    ALWAYS = 'always'
    NEVER = 'never'
    AUTO = 'auto'


class PostprocessorResult(Enum):
    CONTINUE = 'continue'
    STOP_HERE = 'stop_here'
    STOP_AND_SKIP_NOTE = 'stop_and_skip_note'


class ExportError(Exception):
    """Raised when the vault cannot be exported."""


@dataclass
class Context:
    """Per-note information handed to postprocessors."""
    current_file: Path
    destination: Path
    frontmatter: Dict[str, Any] = field(default_factory=dict)


Postprocessor = Callable[[Context, List[Token]], PostprocessorResult]


def build_markdown_parser() -> MarkdownIt:
    """
    Build a markdown-it parser whose renderer writes Markdown (mdformat) instead of HTML.
    GFM tables, strikethrough, task lists and footnotes survive the round trip.
    Link destinations are left as authored instead of being percent-encoded.
    """
    parser = build_mdit(MDRenderer, mdformat_opts={'wrap': 'keep', 'number': False},
                        extensions=['gfm', 'footnote'])
    parser.normalizeLink = lambda url: url
    return parser


def iter_vault_files(root) -> Iterator[str]:
    """
    Yield vault-relative POSIX paths of all non-hidden files under root, sorted.
    """
    root = str(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith('.'))
        rel_dir = os.path.relpath(dirpath, root)
        for name in sorted(filenames):
            if name.startswith('.'):
                continue
            yield normalize_path(os.path.join(rel_dir, name))


def load_ignore_patterns(root) -> List[str]:
    """
    Read glob patterns from <root>/.export-ignore (blank lines and # comments skipped).
    """
    path = os.path.join(str(root), IGNORE_FILENAME)
    if not os.path.exists(path):
        return []
    patterns = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if line.startswith('!'):
                logging.warning(f"[EXPORT] Negated ignore patterns are not supported: {line}")
                continue
            patterns.append(line)
    return patterns


def matches_patterns(rel_path: str, patterns: List[str]) -> bool:
    """
    Check a vault-relative POSIX path against gitignore-style glob patterns.

    A pattern containing '/' is matched against the path from the vault root,
    anything else against a single file or directory name. A trailing '/'
    restricts the pattern to directories.
    """
    parts = rel_path.split('/')
    for pattern in patterns:
        dir_only = pattern.endswith('/')
        pat = pattern.strip('/')
        if not pat:
            continue
        anchored = '/' in pat
        for i in range(1, len(parts) + 1):
            if dir_only and i == len(parts):
                continue
            candidate = '/'.join(parts[:i]) if anchored else parts[i - 1]
            if fnmatchcase(candidate, pat):
                return True
    return False


def split_frontmatter(text: str, path=None) -> Tuple[Dict[str, Any], str]:
    """
    Split a note into its YAML frontmatter (as a dict) and the body.
    Notes without frontmatter give an empty dict and the text unchanged.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1) or '')
    except yaml.YAMLError as e:
        raise ExportError(f"Invalid frontmatter in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ExportError(f"Frontmatter in {path} is not a mapping")
    return data, text[match.end():]


def render_frontmatter(data: Dict[str, Any], strategy: FrontmatterStrategy) -> str:
    if strategy == FrontmatterStrategy.NEVER:
        return ''
    if strategy == FrontmatterStrategy.AUTO and not data:
        return ''
    if not data:
        return '---\n---\n'
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{dumped}---\n"


def replace_outside_code(text: str, pattern: re.Pattern, repl: Callable[[re.Match], str]) -> str:
    """
    Apply pattern.sub(repl) to text, leaving fenced code blocks and inline code alone.
    """
    out = []
    fence = None
    for line in text.splitlines(keepends=True):
        match = FENCE_RE.match(line)
        if fence:
            out.append(line)
            if match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence):
                fence = None
            continue
        if match:
            fence = match.group(1)
            out.append(line)
            continue
        pieces = INLINE_CODE_RE.split(line)
        for i, piece in enumerate(pieces):
            # odd indices are the captured code spans
            out.append(piece if i % 2 else pattern.sub(repl, piece))
    return ''.join(out)


def _link_destination(dest: str) -> str:
    if re.search(r'[\s()<>]', dest):
        return f"<{dest}>"
    return dest


def _unlabel_references(tokens: List[Token]):
    """Render reference-style links inline so rewritten destinations are kept."""
    for token in tokens:
        if token.type in ('link_open', 'image'):
            token.meta.pop('label', None)
        if token.children:
            _unlabel_references(token.children)


class Exporter:
    """
    Export an Obsidian vault at ``root`` into ``destination``.

    Usage:
        exporter = Exporter(vault, content_dir)
        exporter.frontmatter_strategy(FrontmatterStrategy.ALWAYS)
        exporter.add_postprocessor(create_zola_link_postprocessor(vault))
        exporter.run()
    """

    def __init__(self, root, destination):
        self.root = Path(root)
        self.destination = Path(destination)
        self._frontmatter_strategy = FrontmatterStrategy.AUTO
        self._postprocessors: List[Postprocessor] = []
        self._parser = build_markdown_parser()
        self._files = set()
        self._by_name: Dict[str, List[str]] = {}

    def frontmatter_strategy(self, strategy: FrontmatterStrategy) -> 'Exporter':
        self._frontmatter_strategy = strategy
        return self

    def add_postprocessor(self, postprocessor: Postprocessor) -> 'Exporter':
        self._postprocessors.append(postprocessor)
        return self

    def run(self):
        """
        Export every file in the vault. Raises ExportError on the first failure.
        """
        try:
            validate_directory(self.root, "Source vault")
            validate_directory(self.destination, "Destination directory")
        except ValidationError as e:
            raise ExportError(str(e)) from e

        all_files = list(iter_vault_files(self.root))
        self._build_index(all_files)
        ignore_patterns = load_ignore_patterns(self.root)
        if ignore_patterns:
            logging.debug(f"[EXPORT] Ignore patterns: {ignore_patterns}")

        written, skipped, copied, ignored = 0, 0, 0, 0
        for rel in all_files:
            if matches_patterns(rel, ignore_patterns):
                logging.debug(f"[EXPORT] Ignored: {rel}")
                ignored += 1
                continue
            src = self.root.joinpath(*rel.split('/'))
            dst = self.destination.joinpath(*rel.split('/'))
            if is_markdown_file(rel):
                if self.export_note(rel, src, dst):
                    written += 1
                else:
                    skipped += 1
            else:
                try:
                    dst.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(src, dst)
                except OSError as e:
                    raise ExportError(f"Failed to copy {src} to {dst}: {e}") from e
                logging.debug(f"[EXPORT] Copied: {rel}")
                copied += 1

        logging.info(f"[SUMMARY] Notes written: {written}, skipped: {skipped}, "
                     f"files copied: {copied}, ignored: {ignored}")

    def export_note(self, rel: str, src: Path, dst: Path) -> bool:
        """
        Convert a single note and write it to dst.
        Returns False when a postprocessor asked for the note to be skipped.
        """
        try:
            text = src.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ExportError(f"Failed to read note {src}: {e}") from e

        frontmatter, body = split_frontmatter(text, src)
        body = replace_outside_code(body, WIKILINK_RE, lambda m: self._convert_wikilink(m, rel))

        env: Dict[str, Any] = {}
        tokens = self._parser.parse(body, env)
        context = Context(current_file=src, destination=dst, frontmatter=frontmatter)
        for postprocessor in self._postprocessors:
            result = postprocessor(context, tokens)
            if result == PostprocessorResult.STOP_HERE:
                break
            if result == PostprocessorResult.STOP_AND_SKIP_NOTE:
                logging.info(f"[EXPORT] Skipped by postprocessor: {rel}")
                return False

        _unlabel_references(tokens)
        rendered = self._parser.renderer.render(tokens, self._parser.options, env)
        header = render_frontmatter(context.frontmatter, self._frontmatter_strategy)
        output = header + '\n' + rendered if header and rendered else header + rendered

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            dst.write_text(output, encoding='utf-8')
        except OSError as e:
            raise ExportError(f"Failed to write {dst}: {e}") from e
        logging.debug(f"[EXPORT] Wrote note: {rel}")
        return True

    def _build_index(self, files: List[str]):
        self._files = set(files)
        self._by_name = {}
        for rel in files:
            self._by_name.setdefault(posixpath.basename(rel).lower(), []).append(rel)

    def lookup(self, target: str, note_rel: str) -> Optional[str]:
        """
        Find the vault file a wikilink target refers to.

        Bare names match by file name anywhere in the vault ('.md' is implied
        when missing); targets with a '/' match a path from the vault root, from
        the note's directory, or as a path suffix. Ties go to the note's own
        directory, then the shallowest path.
        """
        target = target.replace('\\', '/').lstrip('/')
        note_dir = posixpath.dirname(note_rel)
        for candidate in (target, target + '.md'):
            if '/' in candidate:
                if candidate in self._files:
                    return candidate
                nearby = posixpath.normpath(posixpath.join(note_dir, candidate))
                if nearby in self._files:
                    return nearby
                suffix = '/' + candidate.lower()
                matches = [f for f in self._files if f.lower().endswith(suffix)]
            else:
                matches = self._by_name.get(candidate.lower(), [])
            if matches:
                return sorted(matches, key=lambda m: (posixpath.dirname(m) != note_dir, m.count('/'), m))[0]
        return None

    def _convert_wikilink(self, match: re.Match, note_rel: str) -> str:
        embed = match.group(1) == '!'
        target = match.group(2).strip()
        label = (match.group(3) or '').strip()
        note_part, _, heading = target.partition('#')
        note_part = note_part.strip()
        heading = heading.strip()

        if note_part:
            resolved = self.lookup(note_part, note_rel)
            if resolved is None:
                logging.warning(f"[EXPORT] {note_rel}: could not resolve wikilink [[{target}]]")
                return label or target
        else:
            resolved = note_rel

        dest = posixpath.relpath(resolved, posixpath.dirname(note_rel) or '.')
        if heading:
            dest += '#' + slugify(heading.split('#')[-1])

        if embed and not is_markdown_file(resolved):
            alt = label if label and not label.isdigit() else posixpath.basename(note_part)
            return f"![{alt}]({_link_destination(dest)})"
        if embed:
            logging.info(f"[EXPORT] {note_rel}: note embed ![[{target}]] exported as a link")

        if not label:
            if note_part and heading:
                label = f"{note_part} > {heading}"
            else:
                label = note_part or heading
        return f"[{label}]({_link_destination(dest)})"
