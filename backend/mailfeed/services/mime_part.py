"""
Locate and decode one body part of a multipart email.

Public API:
  parse_message(raw: bytes) -> Message
  locate_part(message, wanted_type: str) -> BinaryIO

locate_part walks the direct children of the top-level multipart container
in document order and returns the first part whose media type equals
wanted_type exactly. The returned stream undoes the part's
Content-Transfer-Encoding (base64 / quoted-printable) when it is first read;
any other encoding is returned as-is.
"""

import base64
import io
import quopri
import re
from email import message_from_bytes
from email.message import Message
from typing import BinaryIO, Callable, Optional

from mailfeed.errors import MalformedHeader, NotMultipart, PartNotFound

# RFC 2045 token: any CHAR except SPACE, CTLs, and tspecials
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_QUOTED_STRING = r'"(?:[^"\\]|\\.)*"'
# type/subtype, then zero or more "; attribute=value" pairs and an optional trailing ";"
_MEDIA_TYPE_RE = re.compile(
    rf"^\s*({_TOKEN})/({_TOKEN})\s*"
    rf"(?:;\s*{_TOKEN}\s*=\s*(?:{_TOKEN}|{_QUOTED_STRING})\s*)*"
    rf"(?:;\s*)?$",
    re.DOTALL,
)


def _decode_base64(data: bytes) -> bytes:
    # Line breaks are allowed between encoded lines; any other stray byte is an error
    return base64.b64decode(data.replace(b"\r", b"").replace(b"\n", b""), validate=True)


_DECODERS: dict[str, Callable[[bytes], bytes]] = {
    "base64": _decode_base64,
    "quoted-printable": quopri.decodestring,
}


def parse_message(raw: bytes) -> Message:
    """Parse raw RFC 5322 bytes into a Message."""
    return message_from_bytes(raw)


def parse_media_type(value: Optional[str]) -> str:
    """
    Return the lower-cased "type/subtype" of a Content-Type header value.

    Raises MalformedHeader when the value is missing or not of the form
    type/subtype[; params].
    """
    if value is None:
        raise MalformedHeader("no media type")
    m = _MEDIA_TYPE_RE.match(str(value))
    if not m:
        raise MalformedHeader(f"invalid media type {str(value)!r}")
    return f"{m.group(1)}/{m.group(2)}".lower()


class _DecodingStream(io.RawIOBase):
    """Read-only stream that decodes the wrapped bytes on first read."""

    def __init__(self, raw: bytes, decoder: Callable[[bytes], bytes]):
        super().__init__()
        self._raw = raw
        self._decoder = decoder
        self._buffer: Optional[io.BytesIO] = None

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self._buffer is None:
            # binascii.Error (a ValueError) propagates to the reader
            self._buffer = io.BytesIO(self._decoder(self._raw))
            self._raw = b""
        return self._buffer.readinto(b)


def _part_bytes(part: Message) -> bytes:
    """Return the still-encoded payload of a leaf part."""
    payload = part.get_payload(decode=False)
    if isinstance(payload, list):
        # A nested multipart; its serialised body is what a reader would see
        return part.as_bytes().split(b"\n\n", 1)[-1]
    if isinstance(payload, bytes):
        return payload
    # message_from_bytes keeps non-ASCII bytes as surrogate escapes
    return (payload or "").encode("ascii", "surrogateescape")


def locate_part(message: Message, wanted_type: str) -> BinaryIO:
    """
    Find the first part of message whose media type is wanted_type.

    Raises:
        MalformedHeader: the top-level or a part Content-Type is unparsable
        NotMultipart:    the message is not multipart/*
        PartNotFound:    no part matches
    """
    media_type = parse_media_type(message.get("Content-Type"))
    if not media_type.startswith("multipart/"):
        raise NotMultipart(f"expected multipart message but found {media_type}")

    parts = message.get_payload()
    if not isinstance(parts, list):
        # Declared multipart but the boundary never matched
        raise PartNotFound(f"could not find {wanted_type} part of message: no parts")

    for part in parts:
        part_type = parse_media_type(part.get("Content-Type"))
        if part_type != wanted_type:
            continue

        encoding = str(part.get("Content-Transfer-Encoding", "")).strip().lower()
        decoder = _DECODERS.get(encoding)
        if decoder is None:
            return io.BytesIO(_part_bytes(part))
        return io.BufferedReader(_DecodingStream(_part_bytes(part), decoder))

    raise PartNotFound(f"could not find {wanted_type} part of message")
