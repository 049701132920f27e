import re
from typing import NamedTuple, Optional, Sequence

from services.entities import decode

_VALUE = r"""["']([^"']+)["']"""


def meta_patterns(attribute: str, key: str) -> list[re.Pattern]:
    """
    Both attribute orders of ``<meta {attribute}="{key}" content="...">``,
    the ``{attribute}``-first order first.
    """
    key_attr = rf"""{attribute}=["'](?-i:{re.escape(key)})["']"""
    return [
        re.compile(rf"<meta\s+{key_attr}\s+content={_VALUE}", re.IGNORECASE),
        re.compile(rf"<meta\s+content={_VALUE}\s+{key_attr}", re.IGNORECASE),
    ]


# Order matters: the first pattern that matches anywhere in the page wins.
TITLE_PATTERNS: list[re.Pattern] = [
    re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE),
    *meta_patterns("property", "og:title"),
    *meta_patterns("name", "twitter:title"),
]

DESCRIPTION_PATTERNS: list[re.Pattern] = [
    *meta_patterns("name", "description"),
    *meta_patterns("property", "og:description"),
    *meta_patterns("name", "twitter:description"),
]


class MetaTags(NamedTuple):
    title: Optional[str]
    description: Optional[str]


def first_match(html: str, patterns: Sequence[re.Pattern]) -> Optional[str]:
    """Return the captured value of the first pattern in ``patterns`` that matches."""
    for pattern in patterns:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return decode(value.strip())


def parse_meta(html: str, base_url: str) -> MetaTags:
    return MetaTags(
        title=_clean(first_match(html, TITLE_PATTERNS)),
        description=_clean(first_match(html, DESCRIPTION_PATTERNS)),
    )
