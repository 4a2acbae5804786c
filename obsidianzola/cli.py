"""
cli.py
======

Command-line interface for obsidianzola.

Exports an Obsidian vault into a Zola content directory, converting
wikilinks and note links to Zola's ``@/`` internal link format.

Debug mode and logging level are controlled via environment variables:
    DEBUG=1 enables debug logging.
    LOG_LEVEL sets the logging level (default: INFO).

Usage:
    obsidianzola export --source vault --destination site/content
"""

import os
import sys
import logging
import argparse
from pathlib import Path

from obsidianzola.config import ConfigError, load_config
from obsidianzola.copyfile import copy_passthrough_files, temporary_ignore_file
from obsidianzola.export import Exporter, ExportError, FrontmatterStrategy
from obsidianzola.postprocess import create_zola_link_postprocessor
from obsidianzola.utils import ValidationError, validate_directory

DEBUG_MODE = os.environ.get("DEBUG", "0") == "1"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging(verbose=False, log_file=None):
    """
    Configure logging to the console and, optionally, to a file.
    """
    if DEBUG_MODE or verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, LOG_LEVEL, logging.INFO)
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    handlers = [stream_handler]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(message)s',
        handlers=handlers
    )


def export_vault(source, destination, skip_frontmatter=False, verbose=False, passthrough=()):
    """
    Export the vault at source into the Zola content directory at destination.
    Creates the destination if it does not exist.
    """
    source = Path(source)
    destination = Path(destination)
    passthrough = list(passthrough)
    logging.info(f"[EXPORT] Source: {source}")
    logging.info(f"[EXPORT] Destination: {destination}")

    validate_directory(source, "Source vault")
    if not destination.exists():
        logging.info(f"[EXPORT] Creating destination directory: {destination}")
        try:
            destination.mkdir(parents=True)
        except OSError as e:
            raise ExportError(f"Failed to create destination directory {destination}: {e}") from e
    else:
        validate_directory(destination, "Destination directory")

    exporter = Exporter(source, destination)
    if skip_frontmatter:
        exporter.frontmatter_strategy(FrontmatterStrategy.NEVER)
        logging.info("[EXPORT] Skipping frontmatter processing")
    else:
        exporter.frontmatter_strategy(FrontmatterStrategy.ALWAYS)
    exporter.add_postprocessor(create_zola_link_postprocessor(source))

    with temporary_ignore_file(source, passthrough):
        exporter.run()
    if passthrough:
        copy_passthrough_files(source, destination, passthrough)

    if verbose:
        logging.info("[EXPORT] Internal markdown links now use Zola's @/ format")
    print("Export completed successfully!")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="obsidianzola",
        description="Export Obsidian notes to Zola static site generator format."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export = subparsers.add_parser("export", help="Export Obsidian vault to Zola format")
    export.add_argument("-s", "--source", help="Path to the Obsidian vault to export")
    export.add_argument("-d", "--destination", help="Path to the Zola content directory to export to")
    export.add_argument("--skip-frontmatter", action="store_true", default=None,
                        help="Skip processing frontmatter")
    export.add_argument("-p", "--passthrough", action="append", default=[], metavar="GLOB",
                        help="Copy files matching GLOB unmodified (repeatable)")
    export.add_argument("-c", "--config", help="YAML file with default options")
    export.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    export.add_argument("--log-file", help="Also write the full debug log to this file")
    return parser


def main(argv=None):
    """
    Entrypoint for the obsidianzola command.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        config = load_config(args.config)
        source = args.source or config['source']
        destination = args.destination or config['destination']
        if not source or not destination:
            parser.error("--source and --destination are required (on the command line or in --config)")
        skip_frontmatter = config['skip_frontmatter'] if args.skip_frontmatter is None else args.skip_frontmatter
        export_vault(
            source,
            destination,
            skip_frontmatter=skip_frontmatter,
            verbose=args.verbose,
            passthrough=config['passthrough'] + args.passthrough,
        )
    except (ConfigError, ValidationError, ExportError) as e:
        logging.error(f"[EXPORT] {e}")
        raise SystemExit(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
