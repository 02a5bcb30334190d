"""Client for the public Qur'an API used to fetch verses and search results."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

LOGGER = logging.getLogger(__name__)

QURAN_API_BASE = "https://api.alquran.cloud/v1"
IMAGE_CDN_BASE = "https://cdn.islamic.network"
ARABIC_EDITION = "quran-uthmani"
DEFAULT_TIMEOUT = 10
USER_AGENT = "VerseNavigator/1.0"


class Language(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"

    @property
    def edition_id(self) -> str:
        return EDITION_IDS[self]

    @classmethod
    def parse(cls, value: Optional[object], default: Optional["Language"] = None) -> "Language":
        """Return the language named by *value*, accepting enum values or edition ids."""
        if isinstance(value, Language):
            return value
        token = str(value or "").strip().lower()
        for language in cls:
            if token in (language.value, EDITION_IDS[language]):
                return language
        return default or cls.PRIMARY


EDITION_IDS: Dict[Language, str] = {
    Language.PRIMARY: "en.asad",
    Language.SECONDARY: "ur.ahmedali",
}


class QuranApiError(RuntimeError):
    """Raised when the Qur'an API cannot be reached or returns unusable data."""


@dataclass(frozen=True)
class VerseData:
    surah_number: int
    verse_number: int
    arabic_text: str
    translation_text: str
    surah_name: str
    english_name: str
    translation_of_name: str
    revelation_type: str
    verse_count_in_surah: int
    edition_id: str


@dataclass(frozen=True)
class SearchMatch:
    surah_number: int
    surah_english_name: str
    verse_number_in_surah: int
    matched_text: str


def image_url(surah: int, verse: int, cdn_base: str = IMAGE_CDN_BASE) -> str:
    return f"{cdn_base.rstrip('/')}/quran/images/{surah}_{verse}.png"


class QuranApiService:
    """Fetches verses, search matches and verse images over HTTP."""

    def __init__(
        self,
        api_base: str = QURAN_API_BASE,
        cdn_base: str = IMAGE_CDN_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.cdn_base = cdn_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def verse_url(self, surah: int, verse: int, edition_id: str) -> str:
        return f"{self.api_base}/ayah/{surah}:{verse}/{edition_id}"

    def search_url(self, query: str, edition_id: str) -> str:
        return f"{self.api_base}/search/{quote(query, safe='')}/{edition_id}"

    def image_url(self, surah: int, verse: int) -> str:
        return image_url(surah, verse, self.cdn_base)

    def fetch_verse(self, surah: int, verse: int, language: Language = Language.PRIMARY) -> VerseData:
        """Fetch the Arabic text and the translation of one verse."""
        edition_id = language.edition_id
        LOGGER.debug("Fetching verse %s:%s (edition=%s)", surah, verse, edition_id)
        arabic = self._get_data(self.verse_url(surah, verse, ARABIC_EDITION))
        translation = self._get_data(self.verse_url(surah, verse, edition_id))

        surah_meta = translation.get("surah") or arabic.get("surah") or {}
        if not isinstance(surah_meta, dict):
            raise QuranApiError("Verse payload has no surah metadata")

        try:
            verse_count = int(surah_meta.get("numberOfAyahs"))
            surah_number = int(surah_meta.get("number", surah))
            verse_number = int(translation.get("numberInSurah", verse))
        except (TypeError, ValueError) as exc:
            raise QuranApiError(f"Malformed verse payload: {exc}") from exc

        return VerseData(
            surah_number=surah_number,
            verse_number=verse_number,
            arabic_text=str(arabic.get("text", "")),
            translation_text=str(translation.get("text", "")),
            surah_name=str(surah_meta.get("name", "")),
            english_name=str(surah_meta.get("englishName", "")),
            translation_of_name=str(surah_meta.get("englishNameTranslation", "")),
            revelation_type=str(surah_meta.get("revelationType", "")),
            verse_count_in_surah=verse_count,
            edition_id=edition_id,
        )

    def search(self, query: str, language: Language = Language.PRIMARY) -> List[SearchMatch]:
        """Search verse text; matches are returned in API order."""
        edition_id = language.edition_id
        url = self.search_url(query.strip(), edition_id)
        LOGGER.debug("Searching %r (edition=%s)", query, edition_id)
        response = self._get(url)
        if response.status_code == 404:
            LOGGER.debug("Search for %r returned no matches", query)
            return []
        payload = self._parse_json(response)
        data = payload.get("data") or {}
        matches = data.get("matches", []) if isinstance(data, dict) else []

        results: List[SearchMatch] = []
        for entry in matches:
            match = self._parse_match(entry)
            if match is None:
                LOGGER.debug("Skipping malformed search match %s", entry)
                continue
            results.append(match)
        LOGGER.debug("Search for %r produced %d matches", query, len(results))
        return results

    def fetch_image(self, surah: int, verse: int) -> bytes:
        url = self.image_url(surah, verse)
        LOGGER.debug("Fetching verse image %s", url)
        response = self._get(url)
        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            raise QuranApiError(f"Image request failed: {exc}") from exc
        return response.content

    # ------------------------------------------------------------------
    def _get(self, url: str) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise QuranApiError(f"Request failed: {exc}") from exc
        LOGGER.debug("GET %s -> %s", url, response.status_code)
        return response

    def _get_data(self, url: str) -> Dict[str, Any]:
        payload = self._parse_json(self._get(url))
        if payload.get("code", 200) != 200:
            raise QuranApiError(f"Invalid response from Qur'an API: {payload.get('status')}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise QuranApiError(f"Unexpected payload from Qur'an API: {payload.get('data')!r}")
        return data

    @staticmethod
    def _parse_json(response: requests.Response) -> Dict[str, Any]:
        try:
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise QuranApiError(f"Request failed: {exc}") from exc
        except ValueError as exc:
            raise QuranApiError(f"Invalid JSON response: {exc}") from exc
        if not isinstance(payload, dict):
            raise QuranApiError("Unexpected JSON document from Qur'an API")
        LOGGER.debug("Qur'an API payload keys: %s", list(payload.keys()))
        return payload

    @staticmethod
    def _parse_match(entry: Any) -> Optional[SearchMatch]:
        if not isinstance(entry, dict):
            return None
        surah = entry.get("surah") or {}
        try:
            surah_number = int(surah.get("number", entry.get("surahNumber")))
            verse_number = int(entry.get("numberInSurah", entry.get("verseNumberInSurah")))
        except (AttributeError, TypeError, ValueError):
            return None
        return SearchMatch(
            surah_number=surah_number,
            surah_english_name=str(surah.get("englishName", entry.get("surahEnglishName", ""))),
            verse_number_in_surah=verse_number,
            matched_text=str(entry.get("text", "")),
        )


__all__ = [
    "ARABIC_EDITION",
    "EDITION_IDS",
    "IMAGE_CDN_BASE",
    "Language",
    "QURAN_API_BASE",
    "QuranApiError",
    "QuranApiService",
    "SearchMatch",
    "VerseData",
    "image_url",
]
