import logging

import requests

from config import MAX_CONTENT_BYTES, REQUEST_TIMEOUT
from models.preview import PreviewResult
from services.meta_parser import parse_meta
from services.thumbnail import find_thumbnail

logger = logging.getLogger(__name__)

# Plenty of sites refuse default or headless user agents.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class FetchError(Exception):
    """Raised when a page cannot be downloaded."""


def _body_encoding(response: requests.Response, body: bytes) -> str:
    """
    Charset from the Content-Type header if it names one, else from the page's
    own <meta charset>, else UTF-8. requests reports ISO-8859-1 for any text/*
    response without a charset, which garbles most pages.
    """
    content_type = response.headers.get("Content-Type", "")
    if "charset" in content_type.lower() and response.encoding:
        return response.encoding

    head = bytes(body[:4096]).decode("ascii", errors="ignore")
    declared = requests.utils.get_encodings_from_content(head)
    return declared[0] if declared else "utf-8"


def fetch_html(url: str, max_bytes: int = MAX_CONTENT_BYTES) -> str:
    """
    Download ``url`` and return its body as text, truncated to ``max_bytes``.
    Raises FetchError on transport errors and non-2xx responses.
    """
    try:
        with requests.get(
            url,
            timeout=REQUEST_TIMEOUT,
            headers=BROWSER_HEADERS,
            allow_redirects=True,
            stream=True,
        ) as response:
            if not 200 <= response.status_code < 300:
                raise FetchError(f"GET {url} returned HTTP {response.status_code}")

            body = bytearray()
            for chunk in response.iter_content(chunk_size=64 * 1024):
                body.extend(chunk)
                if len(body) >= max_bytes:
                    logger.warning(f"Response body of {url} exceeds {max_bytes} bytes, truncating")
                    del body[max_bytes:]
                    break
            encoding = _body_encoding(response, body)
    except requests.RequestException as exc:
        raise FetchError(f"GET {url} failed: {exc}") from exc

    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def scrape(url: str) -> PreviewResult:
    """
    Build a preview from the page's own markup. Generic pages never provide
    embed HTML, so ``embed_html`` is always None here.
    """
    html = fetch_html(url)
    meta = parse_meta(html, url)
    return PreviewResult(
        title=meta.title,
        description=meta.description,
        thumbnail_url=find_thumbnail(html, url),
    )
