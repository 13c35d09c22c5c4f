"""
Command-line helpers for inspecting emails without running the server.

Both commands read a raw RFC 5322 message from stdin:

  mailfeed extract-part [--mime text/html]
      Write the decoded body of the first matching MIME part to stdout.

  mailfeed extract-item [--source journalclub]
      Run the source's extractor and print the item as JSON.
"""

import argparse
import logging
import sys
import textwrap

from mailfeed.errors import BodyReadError, FeedError
from mailfeed.services.mime_part import locate_part, parse_message
from mailfeed.services.registry import get_extractor


def _extract_part(args, stdin, stdout) -> int:
    message = parse_message(stdin.read())
    stream = locate_part(message, args.mime)
    try:
        data = stream.read()
    except (OSError, ValueError) as e:
        raise BodyReadError(f"read {args.mime} part: {e}") from e
    stdout.write(data)
    return 0


def _extract_item(args, stdin, stdout) -> int:
    message = parse_message(stdin.read())
    item = get_extractor(args.source).from_message(message)
    stdout.write(item.to_json())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailfeed",
        description="Inspect how mailfeed reads an email (message on stdin).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              mailfeed extract-part < newsletter.eml > body.html
              mailfeed extract-part --mime text/plain < newsletter.eml
              mailfeed extract-item --source journalclub < newsletter.eml
        """),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    part = sub.add_parser("extract-part", help="Print one decoded MIME part")
    part.add_argument(
        "--mime",
        default="text/html",
        help="MIME type to extract (default: text/html)",
    )
    part.set_defaults(handler=_extract_part)

    item = sub.add_parser("extract-item", help="Print the extracted item as JSON")
    item.add_argument(
        "--source",
        default="journalclub",
        help="Feed whose extractor to use (default: journalclub)",
    )
    item.set_defaults(handler=_extract_item)

    return parser


def main(argv=None, stdin=None, stdout=None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    try:
        return args.handler(args, stdin, stdout)
    except FeedError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
