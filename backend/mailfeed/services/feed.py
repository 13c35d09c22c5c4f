"""
Feed synthesis: rebuild {feed}/feed.xml from every stored item record.

Ordering is positional: each item read from storage is inserted at the
front of the list, so the feed is the reverse of the storage listing
order. With ISO-8601 keys listed by name that is newest first. Item dates
are never compared.

The document is rendered fully in memory and written with a single put,
so a failed regeneration leaves the previously published feed in place.
"""

import logging

from mailfeed.services.item_store import list_items

logger = logging.getLogger(__name__)

FEED_CONTENT_TYPE = "application/rss+xml; charset=utf-8"


def feed_key(feed: str) -> str:
    return f"{feed}/feed.xml"


def collect_items(store, extractor) -> list:
    items: list = []
    for item in list_items(store, extractor):
        items.insert(0, item)
    return items


def regenerate_feed(store, renderer, extractor) -> int:
    """
    Re-render and publish the feed for extractor.name.

    Returns the number of items in the published feed.
    Raises StoreReadError, RenderError or StoreWriteError; nothing is
    written unless every item was read and the template rendered.
    """
    items = collect_items(store, extractor)
    document = renderer.render(extractor.template_name, extractor.name, items)
    store.put(feed_key(extractor.name), document, FEED_CONTENT_TYPE)
    logger.info(f"Regenerated feed {extractor.name!r} with {len(items)} items")
    return len(items)
