import pytest
import requests
import responses

from quran_api import (
    ARABIC_EDITION,
    QURAN_API_BASE,
    Language,
    QuranApiError,
    QuranApiService,
    image_url,
)


def build_verse_payload(text: str, edition: str, surah: int = 2, verse: int = 255) -> dict:
    return {
        "code": 200,
        "status": "OK",
        "data": {
            "number": 262,
            "text": text,
            "edition": {"identifier": edition},
            "surah": {
                "number": surah,
                "name": "سُورَةُ البَقَرَةِ",
                "englishName": "Al-Baqara",
                "englishNameTranslation": "The Cow",
                "numberOfAyahs": 286,
                "revelationType": "Medinan",
            },
            "numberInSurah": verse,
        },
    }


def add_verse_responses(mock: responses.RequestsMock, edition: str = "en.asad") -> None:
    mock.add(
        responses.GET,
        f"{QURAN_API_BASE}/ayah/2:255/{ARABIC_EDITION}",
        json=build_verse_payload("اللَّهُ لَا إِلَٰهَ إِلَّا هُوَ", ARABIC_EDITION),
        status=200,
    )
    mock.add(
        responses.GET,
        f"{QURAN_API_BASE}/ayah/2:255/{edition}",
        json=build_verse_payload("GOD - there is no deity save Him", edition),
        status=200,
    )


def test_fetch_verse_combines_arabic_and_translation():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        add_verse_responses(mock)
        verse = service.fetch_verse(2, 255, Language.PRIMARY)
        assert mock.calls[0].request.url.endswith(f"/ayah/2:255/{ARABIC_EDITION}")
        assert mock.calls[1].request.url.endswith("/ayah/2:255/en.asad")
        call_count = len(mock.calls)
    assert call_count == 2

    assert verse.surah_number == 2
    assert verse.verse_number == 255
    assert verse.arabic_text.startswith("اللَّهُ")
    assert verse.translation_text == "GOD - there is no deity save Him"
    assert verse.english_name == "Al-Baqara"
    assert verse.translation_of_name == "The Cow"
    assert verse.revelation_type == "Medinan"
    assert verse.verse_count_in_surah == 286
    assert verse.edition_id == "en.asad"


def test_fetch_verse_uses_secondary_edition():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        add_verse_responses(mock, edition="ur.ahmedali")
        verse = service.fetch_verse(2, 255, Language.SECONDARY)

    assert verse.edition_id == "ur.ahmedali"


def test_fetch_verse_non_success_status_raises():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/ayah/115:1/{ARABIC_EDITION}",
            json={"code": 404, "status": "NOT FOUND", "data": "Surah number should be between 1 and 114"},
            status=404,
        )
        with pytest.raises(QuranApiError):
            service.fetch_verse(115, 1)


def test_fetch_verse_transport_failure_is_wrapped():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/ayah/1:1/{ARABIC_EDITION}",
            body=requests.ConnectionError("offline"),
        )
        with pytest.raises(QuranApiError):
            service.fetch_verse(1, 1)


def test_fetch_verse_rejects_payload_without_surah_count():
    service = QuranApiService()
    broken = build_verse_payload("text", "en.asad")
    del broken["data"]["surah"]["numberOfAyahs"]

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/ayah/2:255/{ARABIC_EDITION}",
            json=broken,
            status=200,
        )
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/ayah/2:255/en.asad",
            json=broken,
            status=200,
        )
        with pytest.raises(QuranApiError):
            service.fetch_verse(2, 255)


def test_search_returns_matches_in_api_order():
    service = QuranApiService()
    payload = {
        "code": 200,
        "data": {
            "count": 2,
            "matches": [
                {
                    "number": 2,
                    "text": "All praise is due to God alone, the Sustainer of all the worlds",
                    "surah": {"number": 1, "englishName": "Al-Faatiha"},
                    "numberInSurah": 2,
                },
                {
                    "number": 4,
                    "text": "Lord of the Day of Judgment!",
                    "surah": {"number": 1, "englishName": "Al-Faatiha"},
                    "numberInSurah": 4,
                },
                {"text": "malformed entry without numbers"},
            ],
        },
    }

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/search/Sustainer%20of%20all/en.asad",
            json=payload,
            status=200,
        )
        matches = service.search("  Sustainer of all ")

    assert [(m.surah_number, m.verse_number_in_surah) for m in matches] == [(1, 2), (1, 4)]
    assert matches[0].surah_english_name == "Al-Faatiha"
    assert matches[1].matched_text == "Lord of the Day of Judgment!"


def test_search_not_found_means_no_matches():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            f"{QURAN_API_BASE}/search/zzzz/ur.ahmedali",
            json={"code": 404, "status": "NOT FOUND", "data": "Nothing matching"},
            status=404,
        )
        matches = service.search("zzzz", Language.SECONDARY)

    assert matches == []


def test_search_server_error_raises():
    service = QuranApiService()

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, f"{QURAN_API_BASE}/search/mercy/en.asad", status=500)
        with pytest.raises(QuranApiError):
            service.search("mercy")


def test_image_url_pattern():
    assert image_url(2, 255) == "https://cdn.islamic.network/quran/images/2_255.png"
    service = QuranApiService(cdn_base="https://cdn.example.com/")
    assert service.image_url(1, 7) == "https://cdn.example.com/quran/images/1_7.png"


def test_language_parse_accepts_edition_ids():
    assert Language.parse("secondary") is Language.SECONDARY
    assert Language.parse("ur.ahmedali") is Language.SECONDARY
    assert Language.parse("EN.ASAD") is Language.PRIMARY
    assert Language.parse("klingon", Language.SECONDARY) is Language.SECONDARY
    assert Language.PRIMARY.edition_id == "en.asad"
