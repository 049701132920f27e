import json
import logging
import re
from typing import Any, NamedTuple, Optional

from services.entities import decode_minimal
from services.meta_parser import first_match, meta_patterns
from services.urls import normalize

logger = logging.getLogger(__name__)

# Declaration order is priority order, regardless of where tags sit in the page.
IMAGE_META_PATTERNS: list[re.Pattern] = [
    *meta_patterns("property", "og:image"),
    *meta_patterns("property", "og:image:secure_url"),
    *meta_patterns("name", "twitter:image"),
    *meta_patterns("name", "twitter:image:src"),
    re.compile(r"""<link\s+rel=["'](?-i:image_src)["']\s+href=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<link\s+href=["']([^"']+)["']\s+rel=["'](?-i:image_src)["']""", re.IGNORECASE),
]

JSON_LD_RE = re.compile(
    r"""<script\s+type=["']application/ld\+json["'][^>]*>([\s\S]*?)</script>""",
    re.IGNORECASE,
)
JSON_LD_IMAGE_KEYS = ("image", "thumbnailUrl", "thumbnail")

BODY_OPEN_RE = re.compile(r"<body[^>]*>", re.IGNORECASE)
BODY_CLOSE_RE = re.compile(r"</body>", re.IGNORECASE)
IMG_RE = re.compile(r"""<img[^>]+src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)
WIDTH_RE = re.compile(r"""width=["'](\d+)["']""", re.IGNORECASE)
HEIGHT_RE = re.compile(r"""height=["'](\d+)["']""", re.IGNORECASE)
PROMINENT_RE = re.compile(
    r"""(?:class|id)=["'][^"']*(?:hero|banner|featured|main|cover)[^"']*["']""",
    re.IGNORECASE,
)
EXCLUDED_SRC_KEYWORDS = ("icon", "logo", "avatar", "favicon", "sprite")


class ImageCandidate(NamedTuple):
    url: str
    priority: int


def image_from_meta_tags(html: str) -> Optional[str]:
    return first_match(html, IMAGE_META_PATTERNS)


def _image_from_item(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None

    image = None
    for key in JSON_LD_IMAGE_KEYS:
        image = item.get(key)
        if image:
            break

    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url")
    if isinstance(image, str) and image:
        return image
    return None


def image_from_json_ld(html: str) -> Optional[str]:
    """Return the first image declared by any parseable JSON-LD block, in document order."""
    for match in JSON_LD_RE.finditer(html):
        try:
            data = json.loads(match.group(1))
        except (json.JSONDecodeError, RecursionError):
            logger.debug("Skipping JSON-LD block that cannot be parsed")
            continue

        items = data if isinstance(data, list) else [data]
        for item in items:
            image = _image_from_item(item)
            if image:
                return image
    return None


def body_window(html: str) -> Optional[str]:
    """Text between the first ``<body...>`` and the last ``</body>``, or None without a body tag."""
    opening = BODY_OPEN_RE.search(html)
    if not opening:
        return None

    closing = None
    for closing in BODY_CLOSE_RE.finditer(html, opening.end()):
        pass
    if closing is None:
        return None
    return html[opening.end():closing.start()]


def image_priority(tag: str) -> int:
    width = WIDTH_RE.search(tag)
    height = HEIGHT_RE.search(tag)
    if width and height:
        area = int(width.group(1)) * int(height.group(1))
        if area > 50000:
            priority = 3
        elif area > 20000:
            priority = 2
        elif area > 5000:
            priority = 1
        else:
            priority = 0
    else:
        # Undeclared size gets the benefit of the doubt.
        priority = 1

    if PROMINENT_RE.search(tag):
        priority += 2
    return priority


def image_candidates(body: str) -> list[ImageCandidate]:
    candidates = []
    for match in IMG_RE.finditer(body):
        src = decode_minimal(match.group(1))
        lowered = src.lower()
        if any(keyword in lowered for keyword in EXCLUDED_SRC_KEYWORDS):
            continue
        candidates.append(ImageCandidate(url=src, priority=image_priority(match.group(0))))
    return candidates


def image_from_body(html: str) -> Optional[str]:
    body = body_window(html)
    if body is None:
        return None

    candidates = sorted(image_candidates(body), key=lambda candidate: candidate.priority, reverse=True)
    if candidates and candidates[0].priority > 0:
        return candidates[0].url
    return None


def find_thumbnail(html: str, base_url: str) -> Optional[str]:
    """
    Pick the best preview image for a page.

    Tries meta tags, then JSON-LD, then a heuristic scan of ``<img>`` tags in
    the body. The first tier that yields a candidate decides the result: if
    that candidate cannot be normalized against ``base_url`` the result is None.
    """
    for tier in (image_from_meta_tags, image_from_json_ld, image_from_body):
        raw = tier(html)
        if raw:
            return normalize(raw, base_url)
    return None
