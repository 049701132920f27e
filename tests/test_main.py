import json
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from main import EMBED_CACHE_CONTROL, app, handle_preview_job, preview_cache
from models.preview import PreviewResult

client = TestClient(app)

PREVIEW = PreviewResult(
    title="Test Page",
    description="Test description",
    thumbnail_url="https://example.com/a.png",
    embed_html=None,
)


@pytest.fixture(autouse=True)
def empty_cache():
    preview_cache.clear()
    yield
    preview_cache.clear()


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready():
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_embed_missing_url():
    response = client.get("/api/bookmarks/embed")
    assert response.status_code == 400
    assert response.json()["detail"] == "URL is required"


def test_embed_blank_url():
    response = client.get("/api/bookmarks/embed?url=%20")
    assert response.status_code == 400


def test_embed_success():
    with patch("services.dispatcher.resolve", return_value=PREVIEW):
        response = client.get("/api/bookmarks/embed", params={"url": "https://example.com"})

    assert response.status_code == 200
    assert response.headers["cache-control"] == EMBED_CACHE_CONTROL
    assert response.json() == {
        "title": "Test Page",
        "description": "Test description",
        "thumbnail_url": "https://example.com/a.png",
        "html": None,
    }


def test_embed_cache_control_matches_a_day():
    assert EMBED_CACHE_CONTROL == "public, s-maxage=86400, stale-while-revalidate=43200"


def test_embed_graceful_degradation():
    with patch("services.scraper.requests.get", side_effect=Exception("unreachable")):
        response = client.get("/api/bookmarks/embed", params={"url": "https://example.com"})

    assert response.status_code == 200
    assert response.json() == {"title": None, "description": None, "thumbnail_url": None, "html": None}


def test_embed_uses_cache():
    with patch("services.dispatcher.resolve", return_value=PREVIEW) as mock_resolve:
        client.get("/api/bookmarks/embed", params={"url": "https://example.com/cached"})
        client.get("/api/bookmarks/embed", params={"url": "https://example.com/cached"})

    mock_resolve.assert_called_once()


def test_handle_preview_job():
    body = json.dumps({"bookmarkId": 42, "url": "https://example.com"}).encode()
    with patch("services.dispatcher.resolve", return_value=PREVIEW):
        result = handle_preview_job(body)

    assert result["bookmarkId"] == 42
    assert result["title"] == "Test Page"
    assert result["thumbnail_url"] == "https://example.com/a.png"
    assert result["html"] is None
    assert "fetchedAt" in result


@pytest.mark.parametrize("body", [b"not json", b'{"bookmarkId": 1}', b'["a list"]'])
def test_handle_preview_job_discards_malformed_jobs(body):
    with patch("services.dispatcher.resolve") as mock_resolve:
        assert handle_preview_job(body) is None
    mock_resolve.assert_not_called()
