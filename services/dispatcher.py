import logging
from typing import Optional

from config import PREVIEW_CACHE_TTL
from models.preview import PreviewResult
from services.cache import PreviewCache, cache_key
from services.oembed import fetch_oembed, find_oembed_endpoint
from services.scraper import FetchError, scrape

logger = logging.getLogger(__name__)


def resolve(url: str) -> PreviewResult:
    """
    Resolve a preview for ``url``. Never raises: anything that goes wrong
    ends in a PreviewResult whose fields are None.

    Known platforms are tried through oEmbed first; if that fails, or the URL
    is not recognised, the page itself is scraped.
    """
    try:
        endpoint = find_oembed_endpoint(url)
        if endpoint:
            result = fetch_oembed(endpoint)
            if result is not None:
                return result
            logger.info(f"oEmbed unavailable for {url}, falling back to page scraping")

        return scrape(url)
    except FetchError as exc:
        logger.warning(f"Could not build preview for {url}: {exc}")
    except Exception:
        logger.exception(f"Unexpected error while building preview for {url}")
    return PreviewResult.empty()


def resolve_preview(
    url: str,
    cache: Optional[PreviewCache] = None,
    ttl: float = PREVIEW_CACHE_TTL,
) -> PreviewResult:
    """
    Entry point for bookmark creation: ``resolve`` behind an optional cache.

    Concurrent misses for the same URL each run the full pipeline.
    """
    if cache is None:
        return resolve(url)

    key = cache_key(url)
    try:
        cached = cache.get(key)
    except Exception:
        logger.exception(f"Preview cache lookup failed for {key}")
        cached = None
    if cached is not None:
        return cached

    result = resolve(url)
    try:
        cache.set(key, result, ttl)
    except Exception:
        logger.exception(f"Preview cache store failed for {key}")
    return result
