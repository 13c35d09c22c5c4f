"""
Journal Club extractor.

Journal Club newsletters carry a podcast episode: the HTML body links the
episode audio (mp3), a cover image, the paper's DOI and opens with a short
greeting paragraph that doubles as the episode description.

The scraped fields are optional: a missing match leaves the field empty.
The audio size is not in the email: it is read from the Content-Length of
a HEAD request against the audio URL, and that lookup failing is fatal.
"""

import logging
import os
import re
from email.message import Message
from typing import Optional

import httpx
from pydantic import ValidationError

from mailfeed.errors import AudioSizeUnavailable, StoreReadError
from mailfeed.models.item import JournalClubItem
from mailfeed.services.extractor import (
    decode_subject,
    read_date,
    read_html_body,
    read_identity,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# First quoted http(s) URL ending in .mp3
AUDIO_PATTERN = re.compile(r'"(https?://[^ ]+\.mp3)"')

# First <img> pointing at an http(s) URL
IMAGE_PATTERN = re.compile(r'<img src="(https?://[^ ]*)"')

# Greeting paragraph: "Hi Connor, <description></p>"
DESCRIPTION_PATTERN = re.compile(r"Hi[ ]+Connor, (.*)</p>")

# First anchor linking to a DOI resolver (doi.org, dx.doi.org, ...)
PAPER_PATTERN = re.compile(r'<a [^>]*href="(https?://(\w+\.)?doi.org[^"]*)"[^>]*>')

_CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")

DEFAULT_HEAD_TIMEOUT = 10.0


def _first_group(pattern: re.Pattern, text: str) -> str:
    m = pattern.search(text)
    return m.group(1) if m else ""


def capitalize_first(text: str) -> str:
    """Trim surrounding whitespace and upper-case only the first character."""
    text = text.strip()
    return text[:1].upper() + text[1:]


def fetch_audio_size(url: str, timeout: Optional[float] = None) -> int:
    """
    HEAD the audio URL and return its declared Content-Length.

    Raises AudioSizeUnavailable when the request fails, answers with an
    error status, or the length header is missing or not a number.
    """
    if timeout is None:
        timeout = float(os.getenv("AUDIO_HEAD_TIMEOUT", DEFAULT_HEAD_TIMEOUT))

    try:
        response = httpx.head(url, follow_redirects=True, timeout=timeout)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        # InvalidURL is raised for scraped links with control characters
        raise AudioSizeUnavailable(f"HEAD audio url {url!r}: {e}") from e

    length = response.headers.get("Content-Length")
    # Unsigned ASCII digits only
    if length is None or not _CONTENT_LENGTH_PATTERN.fullmatch(length):
        raise AudioSizeUnavailable(
            f"fetch size of audio {url!r}: Content-Length is {length!r}"
        )
    return int(length)


class JournalClubExtractor:
    """Podcast-style feed built from Journal Club newsletters."""

    name = "journalclub"
    template_name = "journalclub.xml"

    def from_message(self, message: Message) -> JournalClubItem:
        date = read_date(message)
        subject = decode_subject(message)
        body = read_html_body(message)

        audio_url = _first_group(AUDIO_PATTERN, body)
        image_url = _first_group(IMAGE_PATTERN, body)
        paper_url = _first_group(PAPER_PATTERN, body)

        description = ""
        m = DESCRIPTION_PATTERN.search(body)
        if m:
            description = capitalize_first(m.group(1))

        # No audio link, nothing to measure: the size stays 0
        audio_size = 0
        if audio_url:
            audio_size = fetch_audio_size(audio_url)
        else:
            logger.info(f"No audio URL in Journal Club email dated {date.isoformat()}")

        return JournalClubItem(
            identity=read_identity(message),
            subject=subject,
            description=description,
            date=date,
            image_url=image_url,
            audio_url=audio_url,
            audio_size=audio_size,
            paper_url=paper_url,
        )

    def decode(self, data: bytes) -> JournalClubItem:
        try:
            return JournalClubItem.model_validate_json(data)
        except ValidationError as e:
            raise StoreReadError(f"parse item from JSON file: {e}") from e

    def __repr__(self) -> str:
        return "JournalClubExtractor()"
