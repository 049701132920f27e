import re

NAMED_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&#x27;": "'",
    "&#x2F;": "/",
    "&#x60;": "`",
    "&#x3D;": "=",
}

# Table entries come first so they win over the generic numeric forms.
_ENTITY_RE = re.compile(
    "|".join(re.escape(entity) for entity in NAMED_ENTITIES)
    + r"|&#(\d+);|&#x([0-9a-fA-F]+);"
)


def _replace(match: re.Match) -> str:
    entity = match.group(0)
    if entity in NAMED_ENTITIES:
        return NAMED_ENTITIES[entity]

    dec, hex_ = match.group(1), match.group(2)
    code_point = int(dec, 10) if dec is not None else int(hex_, 16)
    if code_point > 0x10FFFF or 0xD800 <= code_point <= 0xDFFF:
        return entity
    return chr(code_point)


def decode(text: str) -> str:
    """
    Decode the HTML entities found in scraped text.

    Runs as a single left-to-right pass: replaced text is never scanned again,
    so ``&amp;lt;`` becomes ``&lt;`` rather than ``<``. Anything that does not
    look like a supported entity is left as-is.
    """
    if not text:
        return text
    return _ENTITY_RE.sub(_replace, text)


_MINIMAL_RE = re.compile("&amp;|&lt;|&gt;|&quot;|&#39;")


def decode_minimal(text: str) -> str:
    """Decode only the five entities commonly escaped inside attribute values."""
    return _MINIMAL_RE.sub(lambda match: NAMED_ENTITIES[match.group(0)], text)
