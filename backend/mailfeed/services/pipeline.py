"""
Ingestion pipeline: email → item record → regenerated feed.

FeedPipeline ties together the extractor registry, the object store and
the feed renderer. It is the surface used by the HTTP router and the CLI:

  ingest(feed, raw_email, allow_overwrite) -> item
  regenerate(feed) -> item count
  get_feed_bytes(feed) -> bytes
  get_item_bytes(feed, key) -> bytes
  get_item(feed, key) -> item

Concurrent ingests for the same feed are not coordinated: each item lands
at its own key, and the last regeneration to finish wins the feed document.
"""

import logging

from mailfeed.errors import DuplicateItem, FeedError
from mailfeed.models.item import rfc3339
from mailfeed.services.extractor import read_date
from mailfeed.services.feed import feed_key, regenerate_feed
from mailfeed.services.item_store import item_exists, item_key, put_item
from mailfeed.services.mime_part import parse_message
from mailfeed.services.registry import get_extractor

logger = logging.getLogger(__name__)


class FeedPipeline:
    def __init__(self, store, renderer):
        self.store = store
        self.renderer = renderer

    def ingest(self, feed: str, raw_email: bytes, allow_overwrite: bool = False):
        """
        Extract an item from raw_email, store it and regenerate the feed.

        Steps:
        1. Resolve the feed's extractor (generic when unregistered).
        2. Parse the Date header to compute the item's storage key.
        3. Unless allow_overwrite, reject when that key already exists.
        4. Extract the item.
        5. Store the item record.
        6. Regenerate the feed document.

        Raises DuplicateItem on conflict; any other FeedError propagates.
        """
        extractor = get_extractor(feed)
        message = parse_message(raw_email)

        key = rfc3339(read_date(message))
        if not allow_overwrite and item_exists(self.store, feed, key):
            logger.warning(f"Rejected duplicate item {key} for feed {feed!r}")
            raise DuplicateItem(item_key(feed, key))

        try:
            item = extractor.from_message(message)
        except FeedError as e:
            logger.warning(f"Could not extract item for feed {feed!r}: {e}")
            raise

        put_item(self.store, feed, item)
        self.regenerate(feed)

        logger.info(f"Ingested item {item.key} into feed {feed!r}")
        return item

    def regenerate(self, feed: str) -> int:
        extractor = get_extractor(feed)
        try:
            return regenerate_feed(self.store, self.renderer, extractor)
        except FeedError as e:
            logger.error(f"Failed to regenerate feed {feed!r}: {e}")
            raise

    def get_feed_bytes(self, feed: str) -> bytes:
        return self.store.get(feed_key(feed))

    def get_item_bytes(self, feed: str, key: str) -> bytes:
        return self.store.get(item_key(feed, key))

    def decode_item(self, feed: str, data: bytes):
        return get_extractor(feed).decode(data)

    def get_item(self, feed: str, key: str):
        return self.decode_item(feed, self.get_item_bytes(feed, key))
