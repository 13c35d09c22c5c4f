"""
Item extraction from inbound emails.

An extractor turns a parsed email into a typed item and decodes stored
records back into items. Each extractor exposes:

  name             feed name, used as the storage prefix
  template_name    feed template rendered by the synthesizer
  from_message(message) -> item
  decode(data: bytes) -> item

GenericExtractor keeps the subject, date and raw HTML body of any email.
The envelope helpers here are shared with the journalclub extractor.
"""

import os
from datetime import datetime, timezone
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import parsedate_to_datetime

from pydantic import ValidationError

from mailfeed.errors import (
    BodyNotFound,
    BodyReadError,
    MalformedHeader,
    MalformedSubject,
    MissingDate,
    NotMultipart,
    PartNotFound,
    StoreReadError,
)
from mailfeed.models.item import GenericItem
from mailfeed.services.mime_part import locate_part

DEFAULT_IDENTITY_HEADER = "X-Apple-UUID"


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------

def read_date(message: Message) -> datetime:
    """
    Parse the Date header.

    A "-0000" offset (no zone information) is read as UTC.
    Raises MissingDate when the header is absent or unparsable.
    """
    value = message.get("Date")
    if value is None:
        raise MissingDate("retrieve date header: mail: header not in message")
    try:
        parsed = parsedate_to_datetime(str(value))
    except (TypeError, ValueError, IndexError) as e:
        raise MissingDate(f"retrieve date header: {e}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_subject(message: Message) -> str:
    """Decode RFC 2047 encoded-words in the Subject header."""
    raw = message.get("Subject")
    if raw is None:
        return ""
    try:
        return str(make_header(decode_header(raw)))
    except (HeaderParseError, LookupError, ValueError) as e:
        raise MalformedSubject(f"decode Subject of message using RFC 2047: {e}") from e


def read_identity(message: Message) -> str:
    """Copy the identity header verbatim; empty when absent."""
    header = os.getenv("IDENTITY_HEADER", DEFAULT_IDENTITY_HEADER)
    return str(message.get(header, ""))


def read_html_body(message: Message) -> str:
    """Locate the text/html part and drain it into a string."""
    try:
        stream = locate_part(message, "text/html")
    except (MalformedHeader, NotMultipart, PartNotFound) as e:
        raise BodyNotFound(f"find HTML MIME portion of message body: {e}") from e

    try:
        data = stream.read()
    except (OSError, ValueError) as e:
        raise BodyReadError(f"read HTML as string: {e}") from e
    return data.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Generic extractor
# ---------------------------------------------------------------------------

class GenericExtractor:
    """Keeps subject, date and the raw HTML body; used for unregistered feeds."""

    template_name = "generic.xml"

    def __init__(self, name: str):
        self.name = name

    def from_message(self, message: Message) -> GenericItem:
        date = read_date(message)
        subject = decode_subject(message)
        body = read_html_body(message)
        return GenericItem(
            identity=read_identity(message),
            subject=subject,
            date=date,
            body=body,
        )

    def decode(self, data: bytes) -> GenericItem:
        try:
            return GenericItem.model_validate_json(data)
        except ValidationError as e:
            raise StoreReadError(f"parse item from JSON file: {e}") from e

    def __repr__(self) -> str:
        return f"GenericExtractor(name={self.name!r})"
