"""
Object storage for feed documents and item records.

Two interchangeable backends expose the same four operations:

  get(key) -> bytes              raises NotFound when the key is absent
  put(key, data, content_type)   whole-object write; readers never see partial data
  exists(key) -> bool
  list(prefix) -> list[str]      full keys under prefix, sorted by name

SupabaseBlobStore talks to a Supabase Storage bucket. MemoryBlobStore keeps
objects in a dict and is used for local development and tests.

Failures are wrapped in StoreReadError / StoreWriteError with the original
exception chained.
"""

import threading

from supabase import Client

from mailfeed.errors import NotFound, StoreReadError, StoreWriteError

# Supabase Storage returns at most this many entries per list call
_LIST_PAGE_SIZE = 100


def _split_key(key: str) -> tuple[str, str]:
    """Split "a/b/c.json" into ("a/b", "c.json")."""
    folder, _, name = key.rpartition("/")
    return folder, name


class SupabaseBlobStore:
    """Supabase Storage bucket used as a flat key/value blob store."""

    def __init__(self, client: Client, bucket: str):
        if client is None:
            raise ValueError("SUPABASE_SERVICE_KEY is required for storage operations")
        self._client = client
        self.bucket = bucket

    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    def _list_folder(self, folder: str, search: str = "") -> list[dict]:
        """Return every entry in a folder, following pagination."""
        entries: list[dict] = []
        offset = 0
        while True:
            options = {
                "limit": _LIST_PAGE_SIZE,
                "offset": offset,
                "sortBy": {"column": "name", "order": "asc"},
            }
            if search:
                options["search"] = search
            page = self._bucket().list(folder, options) or []
            entries.extend(page)
            if len(page) < _LIST_PAGE_SIZE:
                return entries
            offset += _LIST_PAGE_SIZE

    def get(self, key: str) -> bytes:
        if not self.exists(key):
            raise NotFound(f"No object at {key!r}")
        try:
            return self._bucket().download(key)
        except Exception as e:
            raise StoreReadError(f"Failed to download {key!r} from storage: {str(e)}") from e

    def put(self, key: str, data: bytes, content_type: str) -> None:
        # upsert so regenerated feeds and overwritten items replace the old object
        try:
            self._bucket().upload(
                key,
                data,
                {
                    "content-type": content_type,
                    "upsert": "true",
                },
            )
        except Exception as e:
            raise StoreWriteError(f"Failed to upload {key!r} to storage: {str(e)}") from e

    def exists(self, key: str) -> bool:
        folder, name = _split_key(key)
        try:
            entries = self._list_folder(folder, search=name)
        except Exception as e:
            raise StoreReadError(f"Failed to check {key!r} in storage: {str(e)}") from e
        return any(entry.get("name") == name for entry in entries)

    def list(self, prefix: str) -> list[str]:
        folder, partial = _split_key(prefix)
        try:
            entries = self._list_folder(folder, search=partial)
        except Exception as e:
            raise StoreReadError(f"Failed to list {prefix!r} in storage: {str(e)}") from e

        keys = []
        for entry in entries:
            # Folder placeholders come back without an id
            if entry.get("id") is None:
                continue
            name = entry.get("name", "")
            if name.startswith(partial):
                keys.append(f"{folder}/{name}" if folder else name)
        return sorted(keys)


class MemoryBlobStore:
    """In-process blob store. Objects are replaced atomically under a lock."""

    def __init__(self):
        self._objects: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes:
        with self._lock:
            entry = self._objects.get(key)
        if entry is None:
            raise NotFound(f"No object at {key!r}")
        return entry[0]

    def put(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self._objects[key] = (bytes(data), content_type)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def list(self, prefix: str) -> list[str]:
        with self._lock:
            return sorted(k for k in self._objects if k.startswith(prefix))

    def content_type(self, key: str) -> str:
        """Return the content type recorded for key."""
        with self._lock:
            entry = self._objects.get(key)
        if entry is None:
            raise NotFound(f"No object at {key!r}")
        return entry[1]
