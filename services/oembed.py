import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from config import REQUEST_TIMEOUT
from models.preview import PreviewResult

logger = logging.getLogger(__name__)

# Checked in order against the whole URL string, not its host.
OEMBED_PROVIDERS: list[tuple[str, str]] = [
    ("youtube.com", "https://www.youtube.com/oembed?url={url}&format=json"),
    ("youtu.be", "https://www.youtube.com/oembed?url={url}&format=json"),
    ("twitter.com", "https://publish.twitter.com/oembed?url={url}"),
    ("x.com", "https://publish.twitter.com/oembed?url={url}"),
    ("instagram.com", "https://api.instagram.com/oembed?url={url}"),
]

# Same reserved set as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def find_oembed_endpoint(url: str) -> Optional[str]:
    for marker, template in OEMBED_PROVIDERS:
        if marker in url:
            return template.format(url=quote(url, safe=_URI_COMPONENT_SAFE))
    return None


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def fetch_oembed(endpoint_url: str) -> Optional[PreviewResult]:
    """
    Fetch an oEmbed document and map it onto a PreviewResult.
    Returns None when the provider cannot be reached or answers with anything
    other than a 2xx JSON object.
    """
    try:
        response = requests.get(endpoint_url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        logger.warning(f"oEmbed request to {endpoint_url} failed: {exc}")
        return None

    if not 200 <= response.status_code < 300:
        logger.warning(f"oEmbed request to {endpoint_url} returned HTTP {response.status_code}")
        return None

    try:
        data = response.json()
    except ValueError as exc:
        logger.warning(f"oEmbed response from {endpoint_url} is not valid JSON: {exc}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"oEmbed response from {endpoint_url} is not a JSON object")
        return None

    return PreviewResult(
        title=_text(data.get("title")),
        description=_text(data.get("description")),
        thumbnail_url=_text(data.get("thumbnail_url")) or _text(data.get("thumbnail")),
        embed_html=_text(data.get("html")),
    )
