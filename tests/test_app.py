import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from dataclasses import replace
from typing import Any, Dict, List, Optional

from main import CONFIG_PATH, PERSIST_DELAY_MS, TOAST_TIMEOUT_MS, QuranApp
from navigator import NavigatorState, Position, initial_state, show_toast
from quran_api import Language


class _StubTimer:
    def __init__(self) -> None:
        self.starts: List[int] = []
        self.stopped = False

    def start(self, msec: int) -> None:
        self.starts.append(msec)

    def stop(self) -> None:
        self.stopped = True


class _DummyWindow:
    def __init__(self) -> None:
        self.rendered: List[NavigatorState] = []

    def render(self, state: NavigatorState) -> None:
        self.rendered.append(state)


class _AppHarness:
    _changed_preferences = staticmethod(QuranApp._changed_preferences)

    def __init__(self, state: NavigatorState, config: Optional[Dict[str, Any]] = None) -> None:
        self.window = _DummyWindow()
        self._last_state = state
        self._toast_timer = _StubTimer()
        self._persist_timer = _StubTimer()
        self._pending_preferences: Dict[str, Any] = {}
        self._config: Dict[str, Any] = dict(config or {})
        self.saved: List[Dict[str, Any]] = []
        self.images: List[str] = []

    def _save_json(self, path, payload: Dict[str, Any]) -> None:
        assert path == CONFIG_PATH
        self.saved.append(dict(payload))

    def _load_image(self, url: str, position: Position) -> None:
        self.images.append(url)


def test_font_slider_changes_are_saved_once_after_delay():
    state = NavigatorState(font_size=20)
    harness = _AppHarness(state, {"font_size": 20, "language": "primary"})

    for size in (21, 22, 23):
        state = replace(state, font_size=size)
        QuranApp._on_state_changed(harness, state)

    assert harness.saved == []
    assert harness._persist_timer.starts == [PERSIST_DELAY_MS] * 3

    QuranApp._flush_preferences(harness)

    assert harness.saved == [{"font_size": 23, "language": "primary"}]


def test_flush_without_changes_does_not_write():
    state = NavigatorState(font_size=20)
    harness = _AppHarness(state, {"font_size": 20})

    QuranApp._on_state_changed(harness, replace(state, font_size=21))
    QuranApp._on_state_changed(harness, replace(state, font_size=20))
    QuranApp._flush_preferences(harness)
    QuranApp._flush_preferences(harness)

    assert harness.saved == []


def test_identical_toast_text_restarts_timer():
    state = NavigatorState()
    harness = _AppHarness(state)

    first = show_toast(state, "Link copied to clipboard.")
    QuranApp._on_state_changed(harness, first)
    second = show_toast(first, "Link copied to clipboard.")
    QuranApp._on_state_changed(harness, second)
    QuranApp._on_state_changed(harness, replace(second, font_size=second.font_size))

    assert harness._toast_timer.starts == [TOAST_TIMEOUT_MS, TOAST_TIMEOUT_MS]


def test_shared_language_is_not_persisted():
    state = initial_state(position=Position(2, 255), language=Language.SECONDARY)
    harness = _AppHarness(state, {"language": "primary", "dark_mode": False})

    QuranApp._on_state_changed(harness, replace(state, dark_mode=True))
    QuranApp._flush_preferences(harness)

    assert harness.saved == [{"language": "primary", "dark_mode": True}]


def test_language_switch_is_persisted():
    state = NavigatorState()
    harness = _AppHarness(state, {"language": "primary"})

    QuranApp._on_state_changed(harness, replace(state, language=Language.SECONDARY))
    QuranApp._flush_preferences(harness)

    assert harness.saved == [{"language": "secondary"}]


def test_share_link_argument_sets_position_and_language():
    position, language = QuranApp._initial_position_from_args(
        ["--verbose", "https://quran.example.org/read?surah=18&verse=10&lang=secondary"]
    )

    assert position == Position(18, 10)
    assert language is Language.SECONDARY


def test_arguments_without_share_link_keep_defaults():
    assert QuranApp._initial_position_from_args(["--verbose"]) == (None, None)
