"""
Item records in object storage.

Layout:
  {feed}/items/{key}.json   one JSON record per item, key = RFC 3339 Date
  {feed}/feed.xml           rendered feed document (see feed.py)
"""

import logging
from typing import Iterator

from mailfeed.errors import NotFound, StoreReadError

logger = logging.getLogger(__name__)

ITEM_CONTENT_TYPE = "application/json; charset=utf-8"


def items_prefix(feed: str) -> str:
    return f"{feed}/items/"


def item_key(feed: str, key: str) -> str:
    return f"{items_prefix(feed)}{key}.json"


def item_exists(store, feed: str, key: str) -> bool:
    return store.exists(item_key(feed, key))


def put_item(store, feed: str, item) -> str:
    """
    Write item as a JSON record and return its storage key.

    No overwrite protection here; callers check item_exists first.
    Raises StoreWriteError when the write fails.
    """
    storage_key = item_key(feed, item.key)
    store.put(storage_key, item.to_json(), ITEM_CONTENT_TYPE)
    logger.info(f"Stored item {storage_key}")
    return storage_key


def list_items(store, extractor) -> Iterator:
    """
    Yield every stored item for the extractor's feed, in storage order.

    Records are read and decoded one at a time. A record that disappears
    between listing and reading, or fails to decode, raises StoreReadError.
    """
    for storage_key in store.list(items_prefix(extractor.name)):
        try:
            data = store.get(storage_key)
        except NotFound as e:
            raise StoreReadError(f"read item file {storage_key!r}: {e}") from e
        yield extractor.decode(data)
