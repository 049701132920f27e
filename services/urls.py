import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit

from services.entities import decode

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(scheme: str, hostname: str, port: Optional[int]) -> str:
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def normalize(candidate: str, base_url: str) -> Optional[str]:
    """
    Turn an image reference found in a page into an absolute URL.

    Returns None when the candidate is empty or cannot be resolved against
    ``base_url``.
    """
    if not candidate:
        return None

    normalized = decode(candidate).strip()
    if not normalized:
        return None

    # Only the literal lowercase prefix counts as absolute.
    if normalized.startswith("http"):
        return normalized

    try:
        base = urlsplit(base_url)
        if not base.scheme or not base.hostname:
            raise ValueError(f"base URL is not absolute: {base_url!r}")

        if normalized.startswith("//"):
            return f"{base.scheme}:{normalized}"
        if normalized.startswith("/"):
            return _origin(base.scheme, base.hostname, base.port) + normalized
        return urljoin(base_url, normalized)
    except ValueError as exc:
        logger.warning(f"Could not normalize image URL {normalized!r}: {exc}")
        return None
