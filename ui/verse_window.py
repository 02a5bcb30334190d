"""Main window rendering the verse navigator state."""
from __future__ import annotations

import textwrap
from typing import Any, Callable, Dict, List, Optional

ACCENT_COLOR_HEX = "#15803d"

try:  # Prefer PyQt5, fall back to Qt for Python
    from PyQt5 import QtCore, QtGui, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtCore, QtGui, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtGui, QtWidgets  # type: ignore

from navigator import MAX_FONT_SIZE, MIN_FONT_SIZE, Features, LoadStatus, NavigatorState, SearchStatus
from quran_api import Language, SearchMatch
from surahs import find_surah

PREFERRED_ARABIC_FONTS = [
    "KFGQPC Uthman Taha Naskh",
    "KFGQPC Hafs",
    "Scheherazade New",
    "Amiri Quran",
    "Traditional Arabic",
]


class VerseNavigatorWindow(QtWidgets.QMainWindow):
    """Display projection of a NavigatorState plus the controls that drive it."""

    def __init__(self, features: Optional[Features] = None) -> None:
        super().__init__()
        self.features = features or Features()
        self.translations: Dict[str, Any] = {}
        self._theme = "light"
        self._rendered_position: Optional[tuple[int, int]] = None
        self._rendered_image_url: Optional[str] = None
        self._results: List[SearchMatch] = []
        self._rendered_query = ""

        self.setObjectName("VerseWindow")
        self.setWindowTitle("Qur'an")
        self.setAttribute(QtCore.Qt.WA_StyledBackground, True)
        self.resize(960, 760)

        central = QtWidgets.QWidget()
        self.setCentralWidget(central)
        root_layout = QtWidgets.QVBoxLayout(central)
        root_layout.setContentsMargins(24, 24, 24, 24)
        root_layout.setSpacing(16)

        root_layout.addWidget(self._build_header())
        root_layout.addWidget(self._build_results_list())
        root_layout.addWidget(self._build_verse_card(), stretch=1)
        root_layout.addLayout(self._build_controls())

        self.toast_label = QtWidgets.QLabel()
        self.toast_label.setObjectName("toastLabel")
        self.toast_label.setWordWrap(True)
        self.toast_label.setTextFormat(QtCore.Qt.PlainText)
        self.toast_label.setAlignment(QtCore.Qt.AlignCenter)
        self.toast_label.hide()
        root_layout.addWidget(self.toast_label)

        self._advance_handler: Optional[Callable[[], None]] = None
        self._retreat_handler: Optional[Callable[[], None]] = None
        self._reset_handler: Optional[Callable[[], None]] = None
        self._share_handler: Optional[Callable[[], None]] = None
        self._dark_mode_handler: Optional[Callable[[], None]] = None
        self._go_to_handler: Optional[Callable[[str, str], None]] = None
        self._language_handler: Optional[Callable[[Language], None]] = None
        self._search_handler: Optional[Callable[[str], None]] = None
        self._result_handler: Optional[Callable[[SearchMatch], None]] = None
        self._font_size_handler: Optional[Callable[[int], None]] = None

        self.next_button.clicked.connect(self._emit_advance)  # type: ignore
        self.previous_button.clicked.connect(self._emit_retreat)  # type: ignore
        self.reset_button.clicked.connect(self._emit_reset)  # type: ignore
        self.share_button.clicked.connect(self._emit_share)  # type: ignore
        self.theme_button.clicked.connect(self._emit_dark_mode)  # type: ignore
        self.go_button.clicked.connect(self._emit_go_to)  # type: ignore
        self.surah_input.returnPressed.connect(self._emit_go_to)  # type: ignore
        self.verse_input.returnPressed.connect(self._emit_go_to)  # type: ignore
        self.search_button.clicked.connect(self._emit_search)  # type: ignore
        self.search_input.returnPressed.connect(self._emit_search)  # type: ignore
        self.language_combo.currentIndexChanged.connect(self._emit_language)  # type: ignore
        self.results_list.itemClicked.connect(self._emit_result)  # type: ignore
        self.font_slider.valueChanged.connect(self._emit_font_size)  # type: ignore

        self._apply_feature_flags()
        self.apply_theme("light")

    # -- Builders -----------------------------------------------------------
    def _build_header(self) -> QtWidgets.QWidget:
        header = QtWidgets.QFrame()
        header.setObjectName("HeaderBar")
        layout = QtWidgets.QHBoxLayout(header)
        layout.setContentsMargins(16, 8, 16, 8)
        layout.setSpacing(12)

        self.title_label = QtWidgets.QLabel("Qur'an")
        title_font = QtGui.QFont(self.title_label.font())
        title_font.setPointSize(18)
        title_font.setBold(True)
        self.title_label.setFont(title_font)
        self.title_label.setObjectName("appTitle")
        layout.addWidget(self.title_label)
        layout.addStretch(1)

        self.search_input = QtWidgets.QLineEdit()
        self.search_input.setObjectName("searchInput")
        self.search_input.setPlaceholderText("Search verses...")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.setMinimumWidth(240)
        layout.addWidget(self.search_input)

        self.search_button = QtWidgets.QPushButton("Search")
        self.search_button.setObjectName("SecondaryButton")
        layout.addWidget(self.search_button)

        self.language_combo = QtWidgets.QComboBox()
        self.language_combo.setObjectName("languageCombo")
        self.language_combo.addItem("English", Language.PRIMARY)
        self.language_combo.addItem("Urdu", Language.SECONDARY)
        layout.addWidget(self.language_combo)

        self.theme_button = QtWidgets.QPushButton("☾")
        self.theme_button.setObjectName("themeButton")
        self.theme_button.setCursor(QtCore.Qt.PointingHandCursor)
        self.theme_button.setFixedWidth(40)
        layout.addWidget(self.theme_button)
        return header

    def _build_results_list(self) -> QtWidgets.QWidget:
        self.results_list = QtWidgets.QListWidget()
        self.results_list.setObjectName("resultsList")
        self.results_list.setWordWrap(True)
        self.results_list.setMaximumHeight(220)
        self.results_list.hide()
        return self.results_list

    def _build_verse_card(self) -> QtWidgets.QWidget:
        card = QtWidgets.QFrame()
        card.setObjectName("verseCard")
        layout = QtWidgets.QVBoxLayout(card)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(14)

        self.surah_title = QtWidgets.QLabel()
        self.surah_title.setObjectName("surahTitle")
        self.surah_title.setAlignment(QtCore.Qt.AlignCenter)
        surah_font = QtGui.QFont(self.surah_title.font())
        surah_font.setPointSize(16)
        surah_font.setBold(True)
        self.surah_title.setFont(surah_font)
        layout.addWidget(self.surah_title)

        self.surah_subtitle = QtWidgets.QLabel()
        self.surah_subtitle.setObjectName("surahSubtitle")
        self.surah_subtitle.setAlignment(QtCore.Qt.AlignCenter)
        layout.addWidget(self.surah_subtitle)

        self.image_label = QtWidgets.QLabel()
        self.image_label.setObjectName("verseImage")
        self.image_label.setAlignment(QtCore.Qt.AlignCenter)
        self.image_label.setMinimumHeight(80)
        layout.addWidget(self.image_label)

        self.arabic_text = QtWidgets.QLabel()
        self.arabic_text.setObjectName("arabicText")
        self.arabic_text.setWordWrap(True)
        self.arabic_text.setLayoutDirection(QtCore.Qt.RightToLeft)
        self.arabic_text.setAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
        self.arabic_text.setTextInteractionFlags(QtCore.Qt.TextSelectableByMouse)
        layout.addWidget(self.arabic_text)

        self.translation_text = QtWidgets.QLabel()
        self.translation_text.setObjectName("translationText")
        self.translation_text.setWordWrap(True)
        self.translation_text.setTextInteractionFlags(QtCore.Qt.TextSelectableByMouse)
        layout.addWidget(self.translation_text)

        self.status_label = QtWidgets.QLabel()
        self.status_label.setObjectName("statusLabel")
        self.status_label.setWordWrap(True)
        self.status_label.setAlignment(QtCore.Qt.AlignCenter)
        layout.addWidget(self.status_label)
        layout.addStretch(1)
        return card

    def _build_controls(self) -> QtWidgets.QLayout:
        controls = QtWidgets.QVBoxLayout()
        controls.setSpacing(10)

        nav_row = QtWidgets.QHBoxLayout()
        nav_row.setSpacing(10)
        self.previous_button = QtWidgets.QPushButton("‹ Previous")
        self.previous_button.setObjectName("SecondaryButton")
        nav_row.addWidget(self.previous_button)
        nav_row.addStretch(1)

        self.surah_caption = QtWidgets.QLabel("Surah")
        nav_row.addWidget(self.surah_caption)
        self.surah_input = QtWidgets.QLineEdit()
        self.surah_input.setObjectName("surahInput")
        self.surah_input.setFixedWidth(64)
        nav_row.addWidget(self.surah_input)

        self.verse_caption = QtWidgets.QLabel("Verse")
        nav_row.addWidget(self.verse_caption)
        self.verse_input = QtWidgets.QLineEdit()
        self.verse_input.setObjectName("verseInput")
        self.verse_input.setFixedWidth(64)
        nav_row.addWidget(self.verse_input)

        self.go_button = QtWidgets.QPushButton("Go")
        self.go_button.setObjectName("PrimaryButton")
        nav_row.addWidget(self.go_button)

        self.position_label = QtWidgets.QLabel()
        self.position_label.setObjectName("positionLabel")
        nav_row.addWidget(self.position_label)
        nav_row.addStretch(1)

        self.next_button = QtWidgets.QPushButton("Next ›")
        self.next_button.setObjectName("SecondaryButton")
        nav_row.addWidget(self.next_button)
        controls.addLayout(nav_row)

        extras_row = QtWidgets.QHBoxLayout()
        extras_row.setSpacing(10)
        self.font_caption = QtWidgets.QLabel("Text size")
        extras_row.addWidget(self.font_caption)
        self.font_slider = QtWidgets.QSlider(QtCore.Qt.Horizontal)
        self.font_slider.setObjectName("fontSlider")
        self.font_slider.setRange(MIN_FONT_SIZE, MAX_FONT_SIZE)
        self.font_slider.setSingleStep(1)
        extras_row.addWidget(self.font_slider, stretch=1)

        self.reset_button = QtWidgets.QPushButton("Reset")
        self.reset_button.setObjectName("SecondaryButton")
        extras_row.addWidget(self.reset_button)

        self.share_button = QtWidgets.QPushButton("Share")
        self.share_button.setObjectName("PrimaryButton")
        extras_row.addWidget(self.share_button)
        controls.addLayout(extras_row)
        return controls

    def _apply_feature_flags(self) -> None:
        self.search_input.setVisible(self.features.with_search)
        self.search_button.setVisible(self.features.with_search)
        self.share_button.setVisible(self.features.with_share)
        self.reset_button.setVisible(self.features.with_reset)
        self.theme_button.setVisible(self.features.dark_mode_support)

    # -- Event handler wiring -------------------------------------------------
    def on_advance(self, handler: Callable[[], None]) -> None:
        self._advance_handler = handler

    def on_retreat(self, handler: Callable[[], None]) -> None:
        self._retreat_handler = handler

    def on_reset(self, handler: Callable[[], None]) -> None:
        self._reset_handler = handler

    def on_share(self, handler: Callable[[], None]) -> None:
        self._share_handler = handler

    def on_dark_mode_toggle(self, handler: Callable[[], None]) -> None:
        self._dark_mode_handler = handler

    def on_go_to(self, handler: Callable[[str, str], None]) -> None:
        self._go_to_handler = handler

    def on_language_change(self, handler: Callable[[Language], None]) -> None:
        self._language_handler = handler

    def on_search(self, handler: Callable[[str], None]) -> None:
        self._search_handler = handler

    def on_result_selected(self, handler: Callable[[SearchMatch], None]) -> None:
        self._result_handler = handler

    def on_font_size_change(self, handler: Callable[[int], None]) -> None:
        self._font_size_handler = handler

    def _emit_advance(self) -> None:
        if self._advance_handler:
            self._advance_handler()

    def _emit_retreat(self) -> None:
        if self._retreat_handler:
            self._retreat_handler()

    def _emit_reset(self) -> None:
        if self._reset_handler:
            self._reset_handler()

    def _emit_share(self) -> None:
        if self._share_handler:
            self._share_handler()

    def _emit_dark_mode(self) -> None:
        if self._dark_mode_handler:
            self._dark_mode_handler()

    def _emit_go_to(self) -> None:
        if self._go_to_handler:
            self._go_to_handler(self.surah_input.text(), self.verse_input.text())

    def _emit_language(self, index: int) -> None:
        language = self.language_combo.itemData(index)
        if self._language_handler and isinstance(language, Language):
            self._language_handler(language)

    def _emit_search(self) -> None:
        if self._search_handler:
            self._search_handler(self.search_input.text())

    def _emit_result(self, item: QtWidgets.QListWidgetItem) -> None:
        row = self.results_list.row(item)
        if self._result_handler and 0 <= row < len(self._results):
            self._result_handler(self._results[row])

    def _emit_font_size(self, value: int) -> None:
        if self._font_size_handler:
            self._font_size_handler(value)

    # -- Rendering ------------------------------------------------------------
    def render(self, state: NavigatorState) -> None:
        """Bring every widget in line with *state*."""
        strings = self.translations
        position = (state.position.surah, state.position.verse)
        if position != self._rendered_position:
            self.surah_input.setText(str(state.position.surah))
            self.verse_input.setText(str(state.position.verse))
            self._rendered_position = position

        self._set_combo_language(state.language)
        self.font_slider.blockSignals(True)
        self.font_slider.setValue(state.font_size)
        self.font_slider.blockSignals(False)

        verse = state.verse
        if verse is not None:
            self.surah_title.setText(f"{verse.english_name} · {verse.surah_name}")
            self.surah_subtitle.setText(f"{verse.translation_of_name} · {verse.revelation_type}")
            self.arabic_text.setText(verse.arabic_text)
            self.translation_text.setText(verse.translation_text)
            self.position_label.setText(
                strings.get("verse_position", "Verse {verse} of {total}").format(
                    verse=state.position.verse,
                    total=verse.verse_count_in_surah,
                )
            )
        else:
            known = find_surah(state.position.surah)
            if known:
                self.surah_title.setText(f"{known.english_name} · {known.arabic_name}")
            else:
                self.surah_title.setText(
                    strings.get("surah_placeholder", "Surah {surah}").format(surah=state.position.surah)
                )
            self.surah_subtitle.clear()
            self.arabic_text.clear()
            self.translation_text.clear()
            self.position_label.clear()

        if state.status is LoadStatus.LOADING:
            self.status_label.setText(strings.get("loading", "Loading verse..."))
        elif state.status is LoadStatus.ERROR:
            self.status_label.setText(state.error or strings.get("error_fetch", "Unable to load this verse."))
        else:
            self.status_label.clear()

        if state.image_url != self._rendered_image_url:
            self._rendered_image_url = state.image_url
            self.image_label.clear()
            if state.image_url:
                self.image_label.setText(strings.get("image_loading", "Loading image..."))

        self._render_search(state)
        self._apply_arabic_font(state.font_size)
        self.set_toast(state.toast)
        self.apply_theme("dark" if state.dark_mode else "light")

    def _render_search(self, state: NavigatorState) -> None:
        if self._rendered_query and not state.search_query:
            self.search_input.clear()
        self._rendered_query = state.search_query
        self.search_button.setEnabled(not state.is_searching)

        results = list(state.search_results)
        if results != self._results:
            self._results = results
            self.results_list.clear()
            for match in results:
                item = QtWidgets.QListWidgetItem(
                    f"{match.surah_english_name} {match.surah_number}:{match.verse_number_in_surah}\n{match.matched_text}"
                )
                self.results_list.addItem(item)

        if state.search_status is SearchStatus.READY and not results:
            self.results_list.clear()
            self.results_list.addItem(self.translations.get("search_empty", "No matches found."))
            self.results_list.setVisible(self.features.with_search)
        else:
            self.results_list.setVisible(self.features.with_search and bool(results))

    def set_verse_image(self, url: str, data: Optional[bytes]) -> None:
        """Show the image fetched for *url* if it is still the one on display."""
        if url != self._rendered_image_url:
            return
        pixmap = QtGui.QPixmap()
        if data and pixmap.loadFromData(data):
            width = max(self.image_label.width(), 320)
            self.image_label.setPixmap(pixmap.scaledToWidth(width, QtCore.Qt.SmoothTransformation))
        else:
            self.image_label.clear()

    def set_toast(self, message: Optional[str]) -> None:
        if message:
            self.toast_label.setText(message)
            self.toast_label.show()
        else:
            self.toast_label.clear()
            self.toast_label.hide()

    def _set_combo_language(self, language: Language) -> None:
        index = self.language_combo.findData(language)
        if index >= 0 and index != self.language_combo.currentIndex():
            self.language_combo.blockSignals(True)
            self.language_combo.setCurrentIndex(index)
            self.language_combo.blockSignals(False)

    def _apply_arabic_font(self, size: int) -> None:
        available = set(QtGui.QFontDatabase().families())
        family = next((name for name in PREFERRED_ARABIC_FONTS if name in available), None)
        font = QtGui.QFont(family) if family else QtGui.QFont(self.arabic_text.font())
        font.setPointSize(size)
        self.arabic_text.setFont(font)

    def apply_translations(self, translations: Dict[str, Any]) -> None:
        self.translations = translations
        self.title_label.setText(translations.get("app_title", "Qur'an"))
        self.setWindowTitle(translations.get("app_title", "Qur'an"))
        self.search_input.setPlaceholderText(translations.get("search_placeholder", "Search verses..."))
        self.search_button.setText(translations.get("search", "Search"))
        self.previous_button.setText(translations.get("previous", "‹ Previous"))
        self.next_button.setText(translations.get("next", "Next ›"))
        self.surah_caption.setText(translations.get("surah", "Surah"))
        self.verse_caption.setText(translations.get("verse", "Verse"))
        self.go_button.setText(translations.get("go", "Go"))
        self.font_caption.setText(translations.get("text_size", "Text size"))
        self.reset_button.setText(translations.get("reset", "Reset"))
        self.share_button.setText(translations.get("share", "Share"))
        language_names = translations.get("languages", {}) if isinstance(translations.get("languages"), dict) else {}
        for index in range(self.language_combo.count()):
            language = self.language_combo.itemData(index)
            label = language_names.get(language.value) if isinstance(language, Language) else None
            if label:
                self.language_combo.setItemText(index, str(label))

    def apply_theme(self, theme: str) -> None:
        if theme not in {"light", "dark"}:
            theme = "light"
        if theme == self._theme and self.styleSheet():
            return
        self._theme = theme
        self.theme_button.setText("☀" if theme == "dark" else "☾")
        self.setStyleSheet(self._stylesheet_for_theme(theme))

    def _stylesheet_for_theme(self, theme: str) -> str:
        if theme == "dark":
            return textwrap.dedent(
                """
                QWidget {
                    font-family: 'Ubuntu', 'Segoe UI', sans-serif;
                    color: #f1f5ff;
                }

                #VerseWindow {
                    background-color: #0b1628;
                }

                #HeaderBar, QFrame#verseCard {
                    background-color: #13243d;
                    border-radius: 20px;
                    border: 1px solid #1f3452;
                }

                QLabel#surahTitle, QLabel#arabicText {
                    color: #f8fafc;
                }

                QLabel#surahSubtitle, QLabel#statusLabel, QLabel#positionLabel {
                    color: #b7c3df;
                }

                QLabel#translationText {
                    color: #d7fee4;
                    font-size: 16px;
                }

                QLabel#toastLabel {
                    background-color: #15803d;
                    color: #ffffff;
                    border-radius: 12px;
                    padding: 8px 16px;
                }

                QLineEdit, QComboBox, QListWidget#resultsList {
                    background-color: #111d33;
                    border: 1px solid #1f2f46;
                    border-radius: 10px;
                    padding: 4px 8px;
                }

                QPushButton#PrimaryButton {
                    background-color: #15803d;
                    color: #ffffff;
                    border-radius: 10px;
                    padding: 6px 14px;
                }

                QPushButton#SecondaryButton, QPushButton#themeButton {
                    background-color: #1b2d4a;
                    color: #f1f5ff;
                    border-radius: 10px;
                    padding: 6px 14px;
                }
                """
            )
        return textwrap.dedent(
            f"""
            QWidget {{
                font-family: 'Ubuntu', 'Segoe UI', sans-serif;
                color: #1f2937;
            }}

            #VerseWindow {{
                background-color: #fdf8ec;
            }}

            #HeaderBar, QFrame#verseCard {{
                background-color: #ffffff;
                border-radius: 20px;
                border: 1px solid #e0cfa2;
            }}

            QLabel#surahTitle {{
                color: #78350f;
            }}

            QLabel#surahSubtitle, QLabel#statusLabel, QLabel#positionLabel {{
                color: #92400e;
            }}

            QLabel#translationText {{
                color: #374151;
                font-size: 16px;
            }}

            QLabel#toastLabel {{
                background-color: {ACCENT_COLOR_HEX};
                color: #ffffff;
                border-radius: 12px;
                padding: 8px 16px;
            }}

            QLineEdit, QComboBox, QListWidget#resultsList {{
                background-color: #fffdf4;
                border: 1px solid #e0cfa2;
                border-radius: 10px;
                padding: 4px 8px;
            }}

            QPushButton#PrimaryButton {{
                background-color: {ACCENT_COLOR_HEX};
                color: #ffffff;
                border-radius: 10px;
                padding: 6px 14px;
            }}

            QPushButton#SecondaryButton, QPushButton#themeButton {{
                background-color: #f9f1d6;
                color: #78350f;
                border-radius: 10px;
                padding: 6px 14px;
            }}
            """
        )


__all__ = ["VerseNavigatorWindow"]
