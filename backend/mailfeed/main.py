"""
mailfeed API
FastAPI application that turns forwarded emails into RSS feeds.
"""

import logging

from fastapi import FastAPI, HTTPException

from mailfeed import db
from mailfeed.routers import feeds
from mailfeed.services.registry import registered_feeds

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="mailfeed API",
    description="Email-to-RSS bridge: ingest forwarded emails, publish feeds",
    version="0.1.0",
)

app.include_router(feeds.router, tags=["feeds"])


@app.on_event("startup")
async def log_startup_config() -> None:
    """
    Log the storage and template configuration so a misconfigured
    deployment is visible in the first lines of output.

    Example output:

        mailfeed starting:
          Storage:   supabase (bucket: feeds)
          Templates: /app/mailfeed/templates
          Feeds:     journalclub (others use the generic extractor)
    """
    backend = db.get_storage_backend()
    bucket = f" (bucket: {db.STORAGE_BUCKET})" if backend == "supabase" else ""
    logger.info(
        "mailfeed starting:\n"
        "  Storage:   %s%s\n"
        "  Templates: %s\n"
        "  Feeds:     %s (others use the generic extractor)",
        backend,
        bucket,
        db.TEMPLATES_DIR,
        ", ".join(registered_feeds()),
    )


@app.get("/")
async def root():
    return {"message": "mailfeed API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/storage")
async def health_storage():
    """
    Test Supabase Storage access.

    Lists storage buckets and verifies the configured bucket exists.
    Returns 503 if storage is unreachable or the bucket is missing; the
    in-memory backend is always reported as reachable.
    """
    backend = db.get_storage_backend()
    if backend == "memory":
        return {"status": "ok", "storage": "memory"}

    if db.supabase_admin is None:
        raise HTTPException(
            status_code=503,
            detail="Storage client unavailable: SUPABASE_SERVICE_KEY is not configured",
        )

    try:
        buckets = db.supabase_admin.storage.list_buckets()
        bucket_names = [b.name for b in buckets]

        if db.STORAGE_BUCKET not in bucket_names:
            raise HTTPException(
                status_code=503,
                detail=f"Storage bucket '{db.STORAGE_BUCKET}' not found",
            )

        return {"status": "ok", "storage": "reachable", "bucket": db.STORAGE_BUCKET}
    except HTTPException:
        raise
    except Exception as exc:
        logger.error(f"Storage health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Storage check failed: {str(exc)}",
        )
