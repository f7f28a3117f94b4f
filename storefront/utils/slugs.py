# storefront/utils/slugs.py
import re

_SPACES = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-]+")
_DASHES = re.compile(r"\-\-+")


def generate_slug(text: str) -> str:
    s = str(text or "").lower().strip()
    s = _SPACES.sub("-", s)
    s = _NON_WORD.sub("", s)
    return _DASHES.sub("-", s)
