"""
Unit tests for the blob stores.
Covers the in-memory store and the Supabase Storage store with a mocked client.
"""

import pytest
from unittest.mock import MagicMock

from mailfeed.errors import NotFound, StoreReadError, StoreWriteError
from mailfeed.services.storage import MemoryBlobStore, SupabaseBlobStore, _split_key


def _entry(name: str, folder: bool = False) -> dict:
    """Shape of one entry returned by storage.from_(bucket).list()."""
    return {"name": name, "id": None if folder else f"id-{name}"}


def _supabase_store(list_pages=None):
    client = MagicMock()
    bucket = client.storage.from_.return_value
    if list_pages is not None:
        bucket.list.side_effect = list_pages
    return SupabaseBlobStore(client, "feeds"), client, bucket


class TestSplitKey:

    def test_nested_key(self):
        assert _split_key("journalclub/items/a.json") == ("journalclub/items", "a.json")

    def test_top_level_key(self):
        assert _split_key("feed.xml") == ("", "feed.xml")

    def test_trailing_slash_prefix(self):
        assert _split_key("journalclub/items/") == ("journalclub/items", "")


class TestMemoryBlobStore:

    def test_put_then_get_returns_same_bytes(self):
        store = MemoryBlobStore()
        store.put("f/feed.xml", b"<rss/>", "application/rss+xml")

        assert store.get("f/feed.xml") == b"<rss/>"
        assert store.content_type("f/feed.xml") == "application/rss+xml"

    def test_get_missing_key_raises_not_found(self):
        with pytest.raises(NotFound):
            MemoryBlobStore().get("nope")

    def test_put_replaces_whole_object(self):
        store = MemoryBlobStore()
        store.put("k", b"first version", "text/plain")
        store.put("k", b"2nd", "application/json")

        assert store.get("k") == b"2nd"
        assert store.content_type("k") == "application/json"

    def test_exists(self):
        store = MemoryBlobStore()
        store.put("a/b", b"", "text/plain")

        assert store.exists("a/b") is True
        assert store.exists("a") is False

    def test_list_returns_sorted_keys_under_prefix(self):
        store = MemoryBlobStore()
        for key in ["f/items/2024-10-22.json", "f/feed.xml", "f/items/2024-10-21.json", "g/items/x.json"]:
            store.put(key, b"{}", "application/json")

        assert store.list("f/items/") == ["f/items/2024-10-21.json", "f/items/2024-10-22.json"]

    def test_list_empty_prefix_returns_nothing(self):
        assert MemoryBlobStore().list("f/items/") == []


class TestSupabaseBlobStore:

    def test_missing_client_raises_value_error(self):
        """Storage operations need the service-role client."""
        with pytest.raises(ValueError, match="SUPABASE_SERVICE_KEY"):
            SupabaseBlobStore(None, "feeds")

    def test_put_uploads_with_upsert_and_content_type(self):
        store, client, bucket = _supabase_store()

        store.put("journalclub/feed.xml", b"<rss/>", "application/rss+xml; charset=utf-8")

        client.storage.from_.assert_called_with("feeds")
        bucket.upload.assert_called_once_with(
            "journalclub/feed.xml",
            b"<rss/>",
            {"content-type": "application/rss+xml; charset=utf-8", "upsert": "true"},
        )

    def test_put_failure_raises_store_write_error(self):
        store, _, bucket = _supabase_store()
        bucket.upload.side_effect = Exception("Storage quota exceeded")

        with pytest.raises(StoreWriteError, match="Storage quota exceeded"):
            store.put("k.json", b"{}", "application/json")

    def test_exists_searches_parent_folder(self):
        store, _, bucket = _supabase_store([[_entry("2024-10-21T12:45:12Z.json")]])

        assert store.exists("journalclub/items/2024-10-21T12:45:12Z.json") is True
        folder, options = bucket.list.call_args[0]
        assert folder == "journalclub/items"
        assert options["search"] == "2024-10-21T12:45:12Z.json"

    def test_exists_requires_exact_name(self):
        """Search is a prefix match on the server; exists must compare names."""
        store, _, _ = _supabase_store([[_entry("2024-10-21T12:45:12Z.json.bak")]])

        assert store.exists("journalclub/items/2024-10-21T12:45:12Z.json") is False

    def test_get_downloads_existing_object(self):
        store, _, bucket = _supabase_store([[_entry("feed.xml")]])
        bucket.download.return_value = b"<rss/>"

        assert store.get("journalclub/feed.xml") == b"<rss/>"
        bucket.download.assert_called_once_with("journalclub/feed.xml")

    def test_get_missing_object_raises_not_found(self):
        store, _, bucket = _supabase_store([[]])

        with pytest.raises(NotFound):
            store.get("journalclub/feed.xml")
        bucket.download.assert_not_called()

    def test_get_download_failure_raises_store_read_error(self):
        store, _, bucket = _supabase_store([[_entry("feed.xml")]])
        bucket.download.side_effect = Exception("connection reset")

        with pytest.raises(StoreReadError, match="connection reset"):
            store.get("journalclub/feed.xml")

    def test_list_skips_folders_and_returns_full_sorted_keys(self):
        store, _, _ = _supabase_store([[
            _entry("b.json"),
            _entry("nested", folder=True),
            _entry("a.json"),
        ]])

        assert store.list("journalclub/items/") == [
            "journalclub/items/a.json",
            "journalclub/items/b.json",
        ]

    def test_list_follows_pagination(self):
        first_page = [_entry(f"{i:03d}.json") for i in range(100)]
        second_page = [_entry("100.json")]
        store, _, bucket = _supabase_store([first_page, second_page])

        keys = store.list("f/items/")

        assert len(keys) == 101
        assert keys[-1] == "f/items/100.json"
        offsets = [c[0][1]["offset"] for c in bucket.list.call_args_list]
        assert offsets == [0, 100]

    def test_list_failure_raises_store_read_error(self):
        store, _, bucket = _supabase_store()
        bucket.list.side_effect = Exception("bucket not found")

        with pytest.raises(StoreReadError, match="bucket not found"):
            store.list("f/items/")
