"""
API tests for the feed endpoints.

Requests go through the FastAPI app with TestClient. The pipeline
dependency is replaced by one backed by the in-memory store, and the
journalclub audio size lookup is patched, so there are no Supabase or network calls.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Ensure env vars are set before any app import
os.environ["STORAGE_BACKEND"] = "memory"

from fastapi.testclient import TestClient

from mailfeed.errors import AudioSizeUnavailable, StoreWriteError
from mailfeed.routers.feeds import build_store, get_pipeline
from mailfeed.services.pipeline import FeedPipeline
from mailfeed.services.renderer import FeedRenderer
from mailfeed.services.storage import MemoryBlobStore

from sample_emails import AUDIO_SIZE, DEFAULT_KEY, DEFAULT_SUBJECT, PLAIN_HTML, make_email

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "mailfeed" / "templates"

ITEM_PATH = f"/email2rss/journalclub/items/{DEFAULT_KEY}"


# ---------------------------------------------------------------------------
# App fixture
# ---------------------------------------------------------------------------

@pytest.fixture()
def pipeline():
    return FeedPipeline(
        MemoryBlobStore(),
        FeedRenderer(str(TEMPLATES_DIR), base_url="http://testserver"),
    )


@pytest.fixture()
def client(pipeline):
    """Return a TestClient with the pipeline dependency overridden."""
    from mailfeed.main import app

    app.dependency_overrides[get_pipeline] = lambda: pipeline
    with patch("mailfeed.services.journalclub.fetch_audio_size", return_value=AUDIO_SIZE):
        yield TestClient(app)
    app.dependency_overrides.clear()


def _post_email(client, feed="journalclub", raw=None, **params):
    return client.post(
        f"/email2rss/{feed}/email",
        content=raw if raw is not None else make_email(),
        params=params,
        headers={"Content-Type": "message/rfc822"},
    )


# ===========================================================================
# POST /email2rss/{feed}/email
# ===========================================================================

class TestAddEmail:

    def test_ingest_returns_201_with_item(self, client):
        response = _post_email(client)

        assert response.status_code == 201
        body = response.json()
        assert body["subject"] == DEFAULT_SUBJECT
        assert body["date"] == DEFAULT_KEY
        assert body["audioSize"] == AUDIO_SIZE

    def test_duplicate_returns_409(self, client):
        assert _post_email(client).status_code == 201

        response = _post_email(client)

        assert response.status_code == 409
        assert "journalclub/items/" in response.json()["detail"]

    def test_overwrite_flag_allows_replacement(self, client):
        _post_email(client, raw=make_email(subject="First"))

        response = _post_email(client, raw=make_email(subject="Second"), overwrite="1")

        assert response.status_code == 201
        assert response.json()["subject"] == "Second"

    def test_empty_overwrite_value_keeps_duplicate_check(self, client):
        _post_email(client)

        response = _post_email(client, overwrite="")

        assert response.status_code == 409

    def test_missing_date_returns_400(self, client):
        response = _post_email(client, raw=make_email(date=None))

        assert response.status_code == 400

    def test_non_multipart_email_returns_400(self, client):
        raw = b"Date: Mon, 21 Oct 2024 12:45:12 +0000\nContent-Type: text/html\n\n<p>hi</p>\n"

        response = _post_email(client, feed="newsletters", raw=raw)

        assert response.status_code == 400

    def test_audio_size_failure_returns_502(self, client):
        with patch(
            "mailfeed.services.journalclub.fetch_audio_size",
            side_effect=AudioSizeUnavailable("HEAD audio url: connection refused"),
        ):
            response = _post_email(client)

        assert response.status_code == 502
        assert "connection refused" in response.json()["detail"]

    def test_storage_failure_returns_500(self, client, pipeline):
        pipeline.store = MagicMock()
        pipeline.store.exists.return_value = False
        pipeline.store.put.side_effect = StoreWriteError("Failed to upload: quota exceeded")

        response = _post_email(client)

        assert response.status_code == 500


# ===========================================================================
# POST /email2rss/{feed}/refresh
# ===========================================================================

class TestRefreshFeed:

    def test_refresh_reports_item_count(self, client):
        _post_email(client)

        response = client.post("/email2rss/journalclub/refresh")

        assert response.status_code == 200
        assert response.json() == {"refreshed": "journalclub", "items": 1}

    def test_refresh_empty_feed_publishes_empty_document(self, client):
        response = client.post("/email2rss/newsletters/refresh")

        assert response.status_code == 200
        assert response.json()["items"] == 0
        assert client.get("/email2rss/newsletters").status_code == 200


# ===========================================================================
# GET endpoints
# ===========================================================================

class TestReadEndpoints:

    def test_get_feed_returns_rss(self, client):
        _post_email(client)

        response = client.get("/email2rss/journalclub")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/rss+xml")
        assert response.headers["cache-control"] == "no-cache"
        assert DEFAULT_SUBJECT.encode() in response.content

    def test_get_missing_feed_returns_404(self, client):
        assert client.get("/email2rss/nothing-here").status_code == 404

    def test_legacy_journalclub_path_serves_same_document(self, client):
        _post_email(client)

        legacy = client.get("/journalclub/feed.xml")

        assert legacy.status_code == 200
        assert legacy.content == client.get("/email2rss/journalclub").content

    def test_journalclub_item_is_served_as_json(self, client):
        _post_email(client)

        response = client.get(ITEM_PATH)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["subject"] == DEFAULT_SUBJECT

    def test_generic_item_is_served_as_html_body(self, client):
        _post_email(client, feed="newsletters", raw=make_email(html=PLAIN_HTML))

        response = client.get(f"/email2rss/newsletters/items/{DEFAULT_KEY}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.text == PLAIN_HTML

    def test_missing_item_returns_404(self, client):
        assert client.get(ITEM_PATH).status_code == 404


# ===========================================================================
# App wiring
# ===========================================================================

class TestAppWiring:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_storage_health_memory_backend(self, client):
        response = client.get("/health/storage")

        assert response.status_code == 200
        assert response.json()["storage"] == "memory"

    def test_build_store_memory(self):
        assert isinstance(build_store(), MemoryBlobStore)

    def test_build_store_unknown_backend_raises(self):
        with patch.dict(os.environ, {"STORAGE_BACKEND": "ftp"}):
            with pytest.raises(ValueError, match="ftp"):
                build_store()
