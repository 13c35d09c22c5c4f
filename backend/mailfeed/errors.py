"""
Error taxonomy for the ingestion and feed pipeline.

Every failure raised by the pipeline derives from FeedError. The four
families tell the caller who is at fault:

  InputError       : the submitted message is malformed (client input)
  DependencyError  : an external resource needed for enrichment failed
  DuplicateItem    : conflict; retry with overwrite or a different Date
  ServerError      : storage or template rendering failed

NotFound is only raised by the read surface (feed / item lookups).
"""


class FeedError(Exception):
    """Base class for all pipeline failures."""


# ---------------------------------------------------------------------------
# Client input
# ---------------------------------------------------------------------------

class InputError(FeedError):
    """The ingested message could not be processed as submitted."""


class MalformedHeader(InputError):
    """A Content-Type header could not be parsed."""


class NotMultipart(InputError):
    """The top-level message is not a multipart/* container."""


class PartNotFound(InputError):
    """No part of the wanted media type exists in the message."""


class MissingDate(InputError):
    """The Date header is absent or unparsable."""


class MalformedSubject(InputError):
    """The Subject header could not be decoded (RFC 2047)."""


class BodyNotFound(InputError):
    """The HTML body part could not be located."""


class BodyReadError(InputError):
    """The located body part could not be read or decoded."""


# ---------------------------------------------------------------------------
# External dependencies
# ---------------------------------------------------------------------------

class DependencyError(FeedError):
    """An external resource required for ingestion failed."""


class AudioSizeUnavailable(DependencyError):
    """The audio file's Content-Length could not be fetched."""


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class DuplicateItem(FeedError):
    """An item already exists for this feed and timestamp."""

    def __init__(self, storage_key: str):
        super().__init__(f"An item already exists at {storage_key!r}")
        self.storage_key = storage_key


# ---------------------------------------------------------------------------
# Server side
# ---------------------------------------------------------------------------

class ServerError(FeedError):
    """Storage or rendering failed; the published feed is left untouched."""


class StoreWriteError(ServerError):
    pass


class StoreReadError(ServerError):
    pass


class RenderError(ServerError):
    pass


class NotFound(FeedError):
    """A requested feed document or item record does not exist."""
