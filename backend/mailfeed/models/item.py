"""
Pydantic models for feed items.

An item is one extracted, persisted record derived from a single email.
Records are stored as JSON using the field aliases below, one object per
file, keyed by the RFC 3339 form of the email's Date header.

Models:
  GenericItem      : subject, date and the raw HTML body
  JournalClubItem  : subject, date plus links scraped from the HTML body
                     and the audio file size fetched over HTTP
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def rfc3339(value: datetime) -> str:
    """
    Format a datetime as RFC 3339 to the second.

    A zero UTC offset is written as "Z", any other offset as ±hh:mm.
    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    offset = value.utcoffset()
    if not offset:
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
    stamp = value.strftime("%Y-%m-%dT%H:%M:%S%z")
    # %z gives +hhmm; RFC 3339 wants +hh:mm
    return f"{stamp[:-2]}:{stamp[-2:]}"


class _ItemBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identity: str = Field(default="", alias="uuid")
    subject: str = ""
    date: datetime

    @field_serializer("date")
    def _serialize_date(self, value: datetime) -> str:
        return rfc3339(value)

    @property
    def key(self) -> str:
        """Storage key suffix and feed ordering key."""
        return rfc3339(self.date)

    def to_json(self) -> bytes:
        """Serialize to the persisted record form (newline-terminated)."""
        return self.model_dump_json(by_alias=True).encode("utf-8") + b"\n"


class GenericItem(_ItemBase):
    body: str = ""


class JournalClubItem(_ItemBase):
    description: str = ""
    image_url: str = Field(default="", alias="imageURL")
    audio_url: str = Field(default="", alias="audioURL")
    audio_size: int = Field(default=0, alias="audioSize")
    paper_url: str = Field(default="", alias="paperURL")

