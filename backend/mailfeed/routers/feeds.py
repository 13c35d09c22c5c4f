"""
Feed API endpoints.

Endpoints:
  POST /email2rss/{feed}/email          : ingest a raw RFC 5322 email
                                          (?overwrite=1 replaces an existing item)
  POST /email2rss/{feed}/refresh        : regenerate the feed document
  GET  /email2rss/{feed}                : feed document (RSS)
  GET  /email2rss/{feed}/items/{key}    : one item (HTML body or JSON record)
  GET  /journalclub/feed.xml            : legacy path for the journalclub feed

Pipeline errors map to status codes:
  InputError → 400, DependencyError → 502, DuplicateItem → 409,
  NotFound → 404, ServerError → 500
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from mailfeed import db
from mailfeed.errors import (
    DependencyError,
    DuplicateItem,
    FeedError,
    InputError,
    NotFound,
)
from mailfeed.models.item import GenericItem
from mailfeed.services.pipeline import FeedPipeline
from mailfeed.services.renderer import FeedRenderer
from mailfeed.services.storage import MemoryBlobStore, SupabaseBlobStore

logger = logging.getLogger(__name__)

router = APIRouter()

_NO_CACHE = {"Cache-Control": "no-cache", "Content-Disposition": "inline"}


# ---------------------------------------------------------------------------
# Pipeline dependency
# ---------------------------------------------------------------------------

def build_store():
    """Create the blob store selected by STORAGE_BACKEND."""
    backend = db.get_storage_backend()
    if backend == "supabase":
        return SupabaseBlobStore(db.supabase_admin, db.STORAGE_BUCKET)
    if backend == "memory":
        return MemoryBlobStore()
    raise ValueError(
        f"Unknown storage backend {backend!r}. Supported backends: ['memory', 'supabase']"
    )


@lru_cache(maxsize=1)
def get_pipeline() -> FeedPipeline:
    """Build the pipeline once; templates are loaded on first use."""
    return FeedPipeline(
        store=build_store(),
        renderer=FeedRenderer(db.TEMPLATES_DIR, base_url=db.PUBLIC_BASE_URL),
    )


def _http_error(e: FeedError) -> HTTPException:
    if isinstance(e, DuplicateItem):
        status = 409
    elif isinstance(e, InputError):
        status = 400
    elif isinstance(e, DependencyError):
        status = 502
    elif isinstance(e, NotFound):
        status = 404
    else:
        status = 500
        logger.error(f"Request failed with server error: {e}")
    return HTTPException(status_code=status, detail=str(e))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/email2rss/{feed}/email", status_code=201)
async def add_email(
    feed: str,
    request: Request,
    overwrite: Optional[str] = Query(None),
    pipeline: FeedPipeline = Depends(get_pipeline),
):
    """
    Ingest a raw email into a feed.

    The body is the full RFC 5322 message as forwarded by the mail bridge.
    Any non-empty ?overwrite value disables the duplicate check. Returns the
    extracted item as stored.
    """
    raw = await request.body()
    try:
        item = pipeline.ingest(feed, raw, allow_overwrite=bool(overwrite))
    except FeedError as e:
        raise _http_error(e)

    return Response(
        content=item.to_json(),
        status_code=201,
        media_type="application/json",
    )


@router.post("/email2rss/{feed}/refresh")
async def refresh_feed(feed: str, pipeline: FeedPipeline = Depends(get_pipeline)):
    """Regenerate a feed from its stored items."""
    try:
        count = pipeline.regenerate(feed)
    except FeedError as e:
        raise _http_error(e)
    return {"refreshed": feed, "items": count}


@router.get("/email2rss/{feed}")
async def get_feed(feed: str, pipeline: FeedPipeline = Depends(get_pipeline)):
    try:
        document = pipeline.get_feed_bytes(feed)
    except FeedError as e:
        raise _http_error(e)
    return Response(
        content=document,
        media_type="application/rss+xml; charset=utf-8",
        headers=_NO_CACHE,
    )


@router.get("/journalclub/feed.xml")
async def get_journalclub_feed(pipeline: FeedPipeline = Depends(get_pipeline)):
    """Legacy location of the journalclub feed."""
    return await get_feed("journalclub", pipeline)


@router.get("/email2rss/{feed}/items/{key}")
async def get_item(feed: str, key: str, pipeline: FeedPipeline = Depends(get_pipeline)):
    """
    Return one stored item.

    Generic items are served as their original HTML body so readers can
    open the email; other items are served as the stored JSON record.
    """
    try:
        data = pipeline.get_item_bytes(feed, key)
        item = pipeline.decode_item(feed, data)
    except FeedError as e:
        raise _http_error(e)

    if isinstance(item, GenericItem):
        return Response(
            content=item.body,
            media_type="text/html; charset=utf-8",
            headers=_NO_CACHE,
        )
    return Response(
        content=data,
        media_type="application/json; charset=utf-8",
        headers=_NO_CACHE,
    )
