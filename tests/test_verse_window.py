import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:
    from PyQt5 import QtWidgets
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtWidgets
    except Exception:  # pragma: no cover - fallback path
        from PySide6 import QtWidgets

import pytest

from navigator import Features, LoadStatus, NavigatorState, Position, SearchStatus
from quran_api import Language, SearchMatch, VerseData
from ui import VerseNavigatorWindow


@pytest.fixture(scope="module")
def qt_app():
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


def _verse() -> VerseData:
    return VerseData(
        surah_number=2,
        verse_number=255,
        arabic_text="اللَّهُ لَا إِلَٰهَ إِلَّا هُوَ",
        translation_text="GOD - there is no deity save Him",
        surah_name="سُورَةُ البَقَرَةِ",
        english_name="Al-Baqara",
        translation_of_name="The Cow",
        revelation_type="Medinan",
        verse_count_in_surah=286,
        edition_id="en.asad",
    )


def test_render_loaded_verse(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow()
    state = NavigatorState(
        position=Position(2, 255),
        status=LoadStatus.LOADED,
        verse=_verse(),
        image_url="https://cdn.islamic.network/quran/images/2_255.png",
        font_size=32,
    )

    window.render(state)

    assert window.surah_input.text() == "2"
    assert window.verse_input.text() == "255"
    assert window.translation_text.text() == "GOD - there is no deity save Him"
    assert window.position_label.text() == "Verse 255 of 286"
    assert window.status_label.text() == ""
    assert window.arabic_text.font().pointSize() == 32


def test_render_error_and_toast(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow()
    state = NavigatorState(status=LoadStatus.ERROR, error="Unable to load", toast="Unable to load")

    window.render(state)

    assert window.status_label.text() == "Unable to load"
    assert window.arabic_text.text() == ""
    assert window.toast_label.text() == "Unable to load"
    assert not window.toast_label.isHidden()


def test_controls_forward_to_handlers(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow()
    calls = []
    window.on_advance(lambda: calls.append("advance"))
    window.on_retreat(lambda: calls.append("retreat"))
    window.on_go_to(lambda surah, verse: calls.append(("go", surah, verse)))
    window.on_search(lambda query: calls.append(("search", query)))
    window.on_language_change(lambda language: calls.append(language))

    window.next_button.click()
    window.previous_button.click()
    window.surah_input.setText("18")
    window.verse_input.setText("10")
    window.go_button.click()
    window.search_input.setText("cave")
    window.search_button.click()
    window.language_combo.setCurrentIndex(1)

    assert calls == ["advance", "retreat", ("go", "18", "10"), ("search", "cave"), Language.SECONDARY]


def test_search_results_are_selectable(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow()
    selected = []
    window.on_result_selected(selected.append)
    match = SearchMatch(18, "Al-Kahf", 10, "the youths took refuge in the cave")

    window.render(NavigatorState(search_query="cave", search_status=SearchStatus.READY, search_results=(match,)))
    window.results_list.itemClicked.emit(window.results_list.item(0))

    assert not window.results_list.isHidden()
    assert selected == [match]


def test_result_selection_fires_once_per_click(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow()
    selected = []
    window.on_result_selected(selected.append)
    match = SearchMatch(24, "An-Nur", 35, "light upon light")

    window.render(NavigatorState(search_query="light", search_status=SearchStatus.READY, search_results=(match,)))
    item = window.results_list.item(0)
    window.results_list.itemActivated.emit(item)
    window.results_list.itemClicked.emit(item)

    assert selected == [match]


def test_feature_flags_hide_controls(qt_app: QtWidgets.QApplication) -> None:
    window = VerseNavigatorWindow(Features(with_search=False, with_share=False, with_reset=False, dark_mode_support=False))

    assert window.search_input.isHidden()
    assert window.share_button.isHidden()
    assert window.reset_button.isHidden()
    assert window.theme_button.isHidden()
