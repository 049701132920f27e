import requests
from unittest.mock import MagicMock, patch

from services.oembed import OEMBED_PROVIDERS, fetch_oembed, find_oembed_endpoint


def make_response(payload=None, status_code: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    if isinstance(payload, Exception):
        mock_response.json.side_effect = payload
    else:
        mock_response.json.return_value = payload
    return mock_response


def test_youtube_endpoint_encodes_url():
    endpoint = find_oembed_endpoint("https://www.youtube.com/watch?v=abc&t=1")
    assert endpoint == (
        "https://www.youtube.com/oembed?url="
        "https%3A%2F%2Fwww.youtube.com%2Fwatch%3Fv%3Dabc%26t%3D1&format=json"
    )


def test_provider_classification():
    assert find_oembed_endpoint("https://youtu.be/abc").startswith("https://www.youtube.com/oembed")
    assert find_oembed_endpoint("https://twitter.com/u/status/1").startswith("https://publish.twitter.com/oembed")
    assert find_oembed_endpoint("https://x.com/u/status/1").startswith("https://publish.twitter.com/oembed")
    assert find_oembed_endpoint("https://www.instagram.com/p/xyz/").startswith("https://api.instagram.com/oembed")
    assert find_oembed_endpoint("https://example.com/post") is None


def test_classification_is_case_sensitive():
    assert find_oembed_endpoint("https://www.YouTube.com/watch?v=abc") is None


def test_classification_matches_anywhere_in_url():
    endpoint = find_oembed_endpoint("https://example.com/redirect?to=youtube.com/x")
    assert endpoint.startswith("https://www.youtube.com/oembed")


def test_provider_order():
    assert [marker for marker, _ in OEMBED_PROVIDERS] == [
        "youtube.com", "youtu.be", "twitter.com", "x.com", "instagram.com",
    ]


def test_fetch_oembed_maps_fields():
    payload = {
        "title": "A video",
        "thumbnail_url": "https://i.ytimg.com/vi/abc/hqdefault.jpg",
        "thumbnail": "https://ignored.example.com/t.jpg",
        "html": '<iframe src="https://www.youtube.com/embed/abc"></iframe>',
    }
    with patch("services.oembed.requests.get", return_value=make_response(payload)) as mock_get:
        result = fetch_oembed("https://www.youtube.com/oembed?url=x")

    mock_get.assert_called_once()
    assert result.title == "A video"
    assert result.description is None
    assert result.thumbnail_url == "https://i.ytimg.com/vi/abc/hqdefault.jpg"
    assert result.embed_html == payload["html"]


def test_fetch_oembed_thumbnail_alias_and_empty_fields():
    payload = {"title": "", "description": "Desc", "thumbnail": "https://cdn.example.com/t.jpg"}
    with patch("services.oembed.requests.get", return_value=make_response(payload)):
        result = fetch_oembed("https://publish.twitter.com/oembed?url=x")

    assert result.title is None
    assert result.description == "Desc"
    assert result.thumbnail_url == "https://cdn.example.com/t.jpg"
    assert result.embed_html is None


def test_fetch_oembed_non_2xx_returns_none():
    with patch("services.oembed.requests.get", return_value=make_response({}, status_code=500)):
        assert fetch_oembed("https://www.youtube.com/oembed?url=x") is None


def test_fetch_oembed_network_error_returns_none():
    with patch("services.oembed.requests.get", side_effect=requests.Timeout("slow")):
        assert fetch_oembed("https://www.youtube.com/oembed?url=x") is None


def test_fetch_oembed_invalid_json_returns_none():
    with patch("services.oembed.requests.get", return_value=make_response(ValueError("bad json"))):
        assert fetch_oembed("https://www.youtube.com/oembed?url=x") is None


def test_fetch_oembed_non_object_json_returns_none():
    with patch("services.oembed.requests.get", return_value=make_response(["not", "an", "object"])):
        assert fetch_oembed("https://www.youtube.com/oembed?url=x") is None
