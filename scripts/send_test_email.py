#!/usr/bin/env python3
"""
Dev helper: send a raw email to the local mailfeed backend.

POSTs an .eml file (or a generated sample newsletter) to the
/email2rss/{feed}/email endpoint, the same way the mail-to-HTTP bridge does.

Usage
-----
# Basic: generated sample email into the "test" feed on localhost:8000
python scripts/send_test_email.py

# Send a real message
python scripts/send_test_email.py --file path/to/newsletter.eml --feed journalclub

# Replace an item that already exists for the same Date
python scripts/send_test_email.py --file newsletter.eml --overwrite

# Target a different backend URL
python scripts/send_test_email.py --url http://staging.example.com

Environment / .env
------------------
MAILFEED_URL   Backend base URL (default: http://localhost:8000).
               Overridden by --url flag.

The script reads these from a .env file in the project root if present,
without requiring python-dotenv to be installed (it parses the file directly).
"""

import argparse
import base64
import os
import sys
import textwrap
from email.utils import formatdate
from pathlib import Path

import httpx


# ---------------------------------------------------------------------------
# .env loader (no dependencies required)
# ---------------------------------------------------------------------------

def _load_dotenv(path: Path) -> None:
    """
    Parse a .env file and set variables in os.environ.

    Only sets variables that are not already in the environment, the same
    behavior as python-dotenv's load_dotenv(override=False).
    """
    if not path.exists():
        return
    with path.open() as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            os.environ.setdefault(key, value)


# ---------------------------------------------------------------------------
# Sample email generator
# ---------------------------------------------------------------------------

_SAMPLE_HTML = """\
<html><body>
<p>Hi Connor, today's episode looks at a sample paper.</p>
<img src="https://example.com/cover.png" alt="cover">
<a href="https://doi.org/10.1000/sample">Read the paper</a>
</body></html>
"""


def _make_sample_email(subject: str) -> bytes:
    """Return a minimal multipart/alternative email with a base64 HTML part."""
    html_b64 = base64.encodebytes(_SAMPLE_HTML.encode()).decode().splitlines()
    lines = [
        f"Date: {formatdate(usegmt=True)}",
        f"Subject: {subject}",
        "From: newsletter@example.com",
        "To: feeds@example.com",
        "MIME-Version: 1.0",
        'Content-Type: multipart/alternative; boundary="sample-boundary"',
        "",
        "--sample-boundary",
        "Content-Type: text/plain; charset=utf-8",
        "",
        "Plain text version.",
        "--sample-boundary",
        "Content-Type: text/html; charset=utf-8",
        "Content-Transfer-Encoding: base64",
        "",
        *html_b64,
        "--sample-boundary--",
        "",
    ]
    return "\r\n".join(lines).encode()


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response) -> None:
    status = response.status_code
    symbol = "OK" if status == 201 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # Locate project root (scripts/ lives one level below the root)
    script_dir = Path(__file__).resolve().parent
    project_root = script_dir.parent
    _load_dotenv(project_root / ".env")
    _load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_email.py",
        description="Send a raw email to the mailfeed backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_email.py
              python scripts/send_test_email.py --file newsletter.eml --feed journalclub
              python scripts/send_test_email.py --overwrite
              python scripts/send_test_email.py --url http://localhost:8000
        """),
    )
    parser.add_argument(
        "--url",
        default=os.getenv("MAILFEED_URL", "http://localhost:8000"),
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--feed",
        default="test",
        help="Feed to ingest into (default: test)",
    )
    parser.add_argument(
        "--file",
        default=None,
        metavar="PATH",
        help="Path to an .eml file. A sample email is generated if omitted.",
    )
    parser.add_argument(
        "--subject",
        default="Test newsletter",
        help='Subject of the generated sample (default: "Test newsletter")',
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace an existing item with the same Date.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the email without sending it.",
    )

    args = parser.parse_args()

    if args.file:
        file_path = Path(args.file)
        if not file_path.exists():
            print(f"ERROR: File not found: {file_path}", file=sys.stderr)
            return 1
        raw = file_path.read_bytes()
        print(f"Sending file: {file_path} ({len(raw):,} bytes)")
    else:
        raw = _make_sample_email(args.subject)
        print(f"No --file specified; using generated sample email ({len(raw)} bytes)")

    endpoint = f"{args.url.rstrip('/')}/email2rss/{args.feed}/email"
    params = {"overwrite": "1"} if args.overwrite else {}

    print(f"\nEndpoint  : {endpoint}")
    print(f"Feed      : {args.feed}")
    print(f"Overwrite : {args.overwrite}")

    if args.dry_run:
        print("\n[DRY RUN] Email:")
        print(raw.decode("utf-8", errors="replace"))
        return 0

    try:
        response = httpx.post(
            endpoint,
            content=raw,
            params=params,
            headers={"Content-Type": "message/rfc822"},
            timeout=30,
        )
        _print_response(response)
        return 0 if response.status_code == 201 else 1
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn mailfeed.main:app --reload",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
