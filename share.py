"""Share links pointing at a single verse."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from quran_api import Language

LOGGER = logging.getLogger(__name__)

DEFAULT_SHARE_BASE_URL = "https://quran.example.org/"


@dataclass(frozen=True)
class SharedVerse:
    surah: Optional[int]
    verse: Optional[int]
    language: Optional[Language]


def build_share_url(base_url: str, surah: int, verse: int, language: Language) -> str:
    """Return *base_url* with surah, verse and lang query parameters replaced."""
    parts = urlsplit(base_url or DEFAULT_SHARE_BASE_URL)
    query = {key: values[-1] for key, values in parse_qs(parts.query).items()}
    query.update({"surah": str(surah), "verse": str(verse), "lang": language.value})
    url = urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), ""))
    LOGGER.debug("Built share URL %s", url)
    return url


def parse_share_url(url: str) -> SharedVerse:
    """Read surah, verse and lang back out of a share URL; bad values become None."""
    query = parse_qs(urlsplit(url or "").query)

    def _positive(name: str) -> Optional[int]:
        raw = (query.get(name) or [""])[-1]
        try:
            value = int(raw)
        except ValueError:
            if raw:
                LOGGER.debug("Ignoring malformed %s=%r in share URL", name, raw)
            return None
        return value if value > 0 else None

    lang_raw = (query.get("lang") or [""])[-1]
    language = Language.parse(lang_raw) if lang_raw else None
    return SharedVerse(surah=_positive("surah"), verse=_positive("verse"), language=language)


__all__ = ["DEFAULT_SHARE_BASE_URL", "SharedVerse", "build_share_url", "parse_share_url"]
