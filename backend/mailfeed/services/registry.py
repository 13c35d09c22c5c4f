"""
Feed name → extractor registry.

Registered feeds get a dedicated extractor; any other name falls back to a
GenericExtractor for that name, so new feeds need no setup.

Adding a new extractor:
  1. Write a class with name, template_name, from_message() and decode().
  2. Add a template named after template_name to the templates directory.
  3. Register an instance in _EXTRACTORS.
"""

from mailfeed.services.extractor import GenericExtractor
from mailfeed.services.journalclub import JournalClubExtractor

_EXTRACTORS = {
    "journalclub": JournalClubExtractor(),
}


def get_extractor(feed: str):
    """Return the registered extractor for feed, or a generic one."""
    extractor = _EXTRACTORS.get(feed)
    if extractor is None:
        return GenericExtractor(feed)
    return extractor


def registered_feeds() -> list[str]:
    return sorted(_EXTRACTORS)
