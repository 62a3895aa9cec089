"""Command-line interface for kdbxenvelope.

Prints the decoded envelope of a KDBX file without decrypting it.

Exit codes:
    0 - Success
    1 - File is not a decodable KDBX envelope
    2 - File missing or unreadable
    3 - Invalid arguments
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from kdbxenvelope.common import KDBXError
from kdbxenvelope.kdbx import decode_file
from kdbxenvelope.render import to_json, to_text
from kdbxenvelope.version import __version__


def build_parser():
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="kdbx-envelope",
        description="Show the unencrypted header envelope of a KDBX file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Path to the .kdbx file (default: $KEEPASS_DATABASE_PATH)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Indentation for json output",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log decoding steps to stderr",
    )
    return parser


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = args.path or os.environ.get("KEEPASS_DATABASE_PATH")
    if not path:
        print(
            "error: no file given and KEEPASS_DATABASE_PATH is not set",
            file=sys.stderr,
        )
        return 3

    resolved = Path(path).expanduser()
    if not resolved.is_file():
        print("error: file not found: {}".format(resolved), file=sys.stderr)
        return 2

    try:
        envelope = decode_file(resolved)
    except OSError as exc:
        print("error: cannot read {}: {}".format(resolved, exc.strerror), file=sys.stderr)
        return 2
    except KDBXError as exc:
        print("error: {}: {}".format(resolved, exc), file=sys.stderr)
        return 1

    if args.format == "json":
        sys.stdout.write(to_json(envelope, indent=args.indent) + "\n")
    else:
        sys.stdout.write(to_text(envelope))
    return 0
