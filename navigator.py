"""Verse navigation and search state machine.

The state lives in an immutable :class:`NavigatorState` record. The module level
functions are pure transitions from one record to the next, so they can be
exercised without a network or a display. :class:`VerseNavigator` owns the
current record, performs the fetches a transition asks for, and drops any
response whose request token is no longer current.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from quran_api import (
    DEFAULT_TIMEOUT,
    IMAGE_CDN_BASE,
    QURAN_API_BASE,
    Language,
    QuranApiService,
    SearchMatch,
    VerseData,
)
from share import DEFAULT_SHARE_BASE_URL, build_share_url
from surahs import verse_count_for

LOGGER = logging.getLogger(__name__)

MIN_FONT_SIZE = 16
MAX_FONT_SIZE = 40
DEFAULT_FONT_SIZE = 24

DEFAULT_MESSAGES: Dict[str, str] = {
    "error_invalid_position": "Surah and verse must be positive numbers.",
    "error_fetch": "Unable to load this verse. Please try again.",
    "error_search": "Search failed. Please try again.",
    "share_copied": "Link copied to clipboard.",
    "share_sent": "Link shared.",
    "share_unavailable": "Share link: {url}",
}


class InvalidPositionError(ValueError):
    """Raised when a surah or verse number is not a positive integer."""


class LoadStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class SearchStatus(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    READY = "ready"
    ERROR = "error"


class RetreatMode(Enum):
    # Stepping back from verse 1 lands on verse 1 of the previous surah.
    FIRST_VERSE = "first_verse"
    # Stepping back from verse 1 lands on the last verse of the previous surah.
    LAST_VERSE = "last_verse"


@dataclass(frozen=True)
class Position:
    surah: int
    verse: int


@dataclass(frozen=True)
class Features:
    with_search: bool = True
    with_share: bool = True
    with_reset: bool = True
    dark_mode_support: bool = True


@dataclass(frozen=True)
class NavigatorConfig:
    api_base: str = QURAN_API_BASE
    cdn_base: str = IMAGE_CDN_BASE
    share_base_url: str = DEFAULT_SHARE_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    retreat_mode: RetreatMode = RetreatMode.FIRST_VERSE
    language: Language = Language.PRIMARY
    dark_mode: bool = False
    font_size: int = DEFAULT_FONT_SIZE
    features: Features = field(default_factory=Features)


@dataclass(frozen=True)
class NavigatorState:
    position: Position = Position(1, 1)
    language: Language = Language.PRIMARY
    dark_mode: bool = False
    font_size: int = DEFAULT_FONT_SIZE
    status: LoadStatus = LoadStatus.IDLE
    verse: Optional[VerseData] = None
    image_url: Optional[str] = None
    error: Optional[str] = None
    request_token: int = 0
    search_query: str = ""
    search_status: SearchStatus = SearchStatus.IDLE
    search_results: Tuple[SearchMatch, ...] = ()
    search_error: Optional[str] = None
    search_token: int = 0
    toast: Optional[str] = None
    toast_id: int = 0

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    @property
    def is_searching(self) -> bool:
        return self.search_status is SearchStatus.SEARCHING


def initial_state(
    config: Optional[NavigatorConfig] = None,
    position: Optional[Position] = None,
    language: Optional[Language] = None,
) -> NavigatorState:
    config = config or NavigatorConfig()
    return NavigatorState(
        position=position or Position(1, 1),
        language=language or config.language,
        dark_mode=config.dark_mode,
        font_size=clamp_font_size(config.font_size),
    )


# -- Input parsing ----------------------------------------------------------
def parse_position(surah: Any, verse: Any) -> Position:
    """Build a Position from user input, rejecting non-positive or non-numeric values."""
    return Position(_parse_positive(surah, "surah"), _parse_positive(verse, "verse"))


def _parse_positive(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise InvalidPositionError(f"{label} must be a number, got {value!r}")
    if isinstance(value, float):
        if math.isnan(value) or not value.is_integer():
            raise InvalidPositionError(f"{label} must be a whole number, got {value!r}")
        number = int(value)
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise InvalidPositionError(f"{label} must be a number, got {value!r}") from None
    if number < 1:
        raise InvalidPositionError(f"{label} must be positive, got {number}")
    return number


def clamp_font_size(size: Any) -> int:
    try:
        value = int(size)
    except (TypeError, ValueError):
        return DEFAULT_FONT_SIZE
    return max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, value))


# -- Position arithmetic ----------------------------------------------------
def loaded_verse_count(state: NavigatorState) -> Optional[int]:
    """Verse count of the current surah, preferring the loaded verse over the static table."""
    verse = state.verse
    if verse is not None and verse.surah_number == state.position.surah:
        return verse.verse_count_in_surah
    return verse_count_for(state.position.surah)


def next_position(state: NavigatorState) -> Position:
    position = state.position
    verse_count = loaded_verse_count(state)
    if verse_count is None or position.verse < verse_count:
        return Position(position.surah, position.verse + 1)
    return Position(position.surah + 1, 1)


def previous_position(state: NavigatorState, mode: RetreatMode = RetreatMode.FIRST_VERSE) -> Position:
    position = state.position
    if position.verse > 1:
        return Position(position.surah, position.verse - 1)
    if position.surah > 1:
        previous_surah = position.surah - 1
        if mode is RetreatMode.LAST_VERSE:
            return Position(previous_surah, verse_count_for(previous_surah) or 1)
        return Position(previous_surah, 1)
    return position


# -- Navigation transitions -------------------------------------------------
def begin_load(
    state: NavigatorState,
    position: Optional[Position] = None,
    language: Optional[Language] = None,
) -> NavigatorState:
    """Enter LOADING for *position*/*language* under a fresh request token."""
    return replace(
        state,
        position=position or state.position,
        language=language or state.language,
        status=LoadStatus.LOADING,
        error=None,
        request_token=state.request_token + 1,
    )


def advance(state: NavigatorState) -> NavigatorState:
    return begin_load(state, next_position(state))


def retreat(state: NavigatorState, mode: RetreatMode = RetreatMode.FIRST_VERSE) -> NavigatorState:
    target = previous_position(state, mode)
    if target == state.position:
        return state
    return begin_load(state, target)


def go_to(state: NavigatorState, position: Position) -> NavigatorState:
    if position == state.position and state.status in (LoadStatus.LOADING, LoadStatus.LOADED):
        return state
    return begin_load(state, position)


def set_language(state: NavigatorState, language: Language) -> NavigatorState:
    if language is state.language:
        return state
    return begin_load(state, language=language)


def reset(state: NavigatorState) -> NavigatorState:
    cleared = replace(
        state,
        search_query="",
        search_status=SearchStatus.IDLE,
        search_results=(),
        search_error=None,
        search_token=state.search_token + 1,
    )
    return begin_load(cleared, Position(1, 1))


def invalid_input(state: NavigatorState, message: str) -> NavigatorState:
    """Enter ERROR without a fetch; in-flight responses are invalidated."""
    return replace(
        state,
        status=LoadStatus.ERROR,
        verse=None,
        image_url=None,
        error=message,
        toast=message,
        toast_id=state.toast_id + 1,
        request_token=state.request_token + 1,
    )


def verse_matches_position(verse: VerseData, position: Position) -> bool:
    """True when *verse* is the verse at *position* and lies inside its surah."""
    return (
        verse.surah_number == position.surah
        and verse.verse_number == position.verse
        and 1 <= position.verse <= verse.verse_count_in_surah
    )


def load_succeeded(
    state: NavigatorState,
    token: int,
    verse: VerseData,
    image: str,
    mismatch_message: str = DEFAULT_MESSAGES["error_fetch"],
) -> NavigatorState:
    if token != state.request_token:
        return state
    if not verse_matches_position(verse, state.position):
        return load_failed(state, token, mismatch_message)
    return replace(state, status=LoadStatus.LOADED, verse=verse, image_url=image, error=None)


def load_failed(state: NavigatorState, token: int, message: str) -> NavigatorState:
    if token != state.request_token:
        return state
    return replace(
        state,
        status=LoadStatus.ERROR,
        verse=None,
        image_url=None,
        error=message,
        toast=message,
        toast_id=state.toast_id + 1,
    )


# -- Search transitions -----------------------------------------------------
def begin_search(state: NavigatorState, query: str) -> NavigatorState:
    if not query or not query.strip():
        return state
    return replace(
        state,
        search_query=query,
        search_status=SearchStatus.SEARCHING,
        search_error=None,
        search_token=state.search_token + 1,
    )


def search_succeeded(state: NavigatorState, token: int, matches: List[SearchMatch]) -> NavigatorState:
    if token != state.search_token:
        return state
    return replace(state, search_status=SearchStatus.READY, search_results=tuple(matches), search_error=None)


def search_failed(state: NavigatorState, token: int, message: str) -> NavigatorState:
    if token != state.search_token:
        return state
    return replace(
        state,
        search_status=SearchStatus.ERROR,
        search_error=message,
        toast=message,
        toast_id=state.toast_id + 1,
    )


def select_result(state: NavigatorState, match: SearchMatch) -> NavigatorState:
    cleared = replace(
        state,
        search_query="",
        search_status=SearchStatus.IDLE,
        search_results=(),
        search_error=None,
        search_token=state.search_token + 1,
    )
    return begin_load(cleared, Position(match.surah_number, match.verse_number_in_surah))


# -- Display preferences ----------------------------------------------------
def toggle_dark_mode(state: NavigatorState) -> NavigatorState:
    return replace(state, dark_mode=not state.dark_mode)


def set_font_size(state: NavigatorState, size: Any) -> NavigatorState:
    return replace(state, font_size=clamp_font_size(size))


def show_toast(state: NavigatorState, message: Optional[str]) -> NavigatorState:
    if message is None:
        return replace(state, toast=None)
    return replace(state, toast=message, toast_id=state.toast_id + 1)


# -- Configuration ----------------------------------------------------------
def build_navigator_config(config: Dict[str, object]) -> NavigatorConfig:
    """Create a NavigatorConfig from a loaded config mapping, ignoring bad values."""
    if not isinstance(config, dict):
        return NavigatorConfig()
    defaults = NavigatorConfig()

    try:
        timeout = float(config.get("timeout", defaults.timeout))  # type: ignore[arg-type]
        if timeout <= 0:
            raise ValueError(timeout)
    except (TypeError, ValueError):
        LOGGER.warning("Invalid timeout %r in config; using %s", config.get("timeout"), defaults.timeout)
        timeout = defaults.timeout

    try:
        retreat_mode = RetreatMode(str(config.get("retreat_mode", defaults.retreat_mode.value)).lower())
    except ValueError:
        LOGGER.warning("Unknown retreat_mode %r in config", config.get("retreat_mode"))
        retreat_mode = defaults.retreat_mode

    features_cfg = config.get("features")
    features_cfg = features_cfg if isinstance(features_cfg, dict) else {}
    features = Features(
        with_search=bool(features_cfg.get("with_search", True)),
        with_share=bool(features_cfg.get("with_share", True)),
        with_reset=bool(features_cfg.get("with_reset", True)),
        dark_mode_support=bool(features_cfg.get("dark_mode_support", True)),
    )

    return NavigatorConfig(
        api_base=str(config.get("api_base") or defaults.api_base),
        cdn_base=str(config.get("cdn_base") or defaults.cdn_base),
        share_base_url=str(config.get("share_base_url") or defaults.share_base_url),
        timeout=timeout,
        retreat_mode=retreat_mode,
        language=Language.parse(config.get("language"), defaults.language),
        dark_mode=bool(config.get("dark_mode", False)) and features.dark_mode_support,
        font_size=clamp_font_size(config.get("font_size", defaults.font_size)),
        features=features,
    )


# -- Controller -------------------------------------------------------------
Runner = Callable[[Callable[[], Any], Callable[[Any], None], Callable[[Exception], None]], None]
Listener = Callable[[NavigatorState], None]


def run_inline(func: Callable[[], Any], on_success: Callable[[Any], None], on_error: Callable[[Exception], None]) -> None:
    """Runner that executes the task immediately on the calling thread."""
    try:
        result = func()
    except Exception as exc:
        on_error(exc)
    else:
        on_success(result)


class VerseNavigator:
    """Owns the current NavigatorState and performs the fetches it calls for."""

    def __init__(
        self,
        service: QuranApiService,
        config: Optional[NavigatorConfig] = None,
        runner: Optional[Runner] = None,
        clipboard: Optional[Callable[[str], None]] = None,
        share_handler: Optional[Callable[[str], bool]] = None,
        initial_position: Optional[Position] = None,
        initial_language: Optional[Language] = None,
    ) -> None:
        self.service = service
        self.config = config or NavigatorConfig()
        self._runner: Runner = runner or run_inline
        self._clipboard = clipboard
        self._share_handler = share_handler
        self._messages: Dict[str, str] = dict(DEFAULT_MESSAGES)
        self._listeners: List[Listener] = []
        self._state = initial_state(self.config, initial_position, initial_language)

    @property
    def state(self) -> NavigatorState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def apply_translations(self, strings: Dict[str, Any]) -> None:
        for key in DEFAULT_MESSAGES:
            value = strings.get(key)
            if isinstance(value, str) and value:
                self._messages[key] = value

    # ------------------------------------------------------------------
    def start(self) -> None:
        self._apply(begin_load(self._state))

    def advance(self) -> None:
        self._apply(advance(self._state))

    def retreat(self) -> None:
        self._apply(retreat(self._state, self.config.retreat_mode))

    def reset(self) -> None:
        self._apply(reset(self._state))

    def go_to(self, surah: Any, verse: Any) -> None:
        try:
            position = parse_position(surah, verse)
        except InvalidPositionError as exc:
            LOGGER.info("Rejected position input surah=%r verse=%r: %s", surah, verse, exc)
            self._apply(invalid_input(self._state, self._messages["error_invalid_position"]))
            return
        self._apply(go_to(self._state, position))

    def set_language(self, language: Any) -> None:
        self._apply(set_language(self._state, Language.parse(language, self._state.language)))

    def toggle_dark_mode(self) -> None:
        if not self.config.features.dark_mode_support:
            return
        self._apply(toggle_dark_mode(self._state))

    def set_font_size(self, size: Any) -> None:
        self._apply(set_font_size(self._state, size))

    def clear_toast(self) -> None:
        if self._state.toast is not None:
            self._apply(show_toast(self._state, None))

    def search(self, query: str) -> None:
        updated = begin_search(self._state, query)
        if updated is self._state:
            LOGGER.debug("Ignoring empty search query %r", query)
            return
        self._apply(updated)
        token = updated.search_token
        language = updated.language
        cleaned = query.strip()

        def task() -> List[SearchMatch]:
            return self.service.search(cleaned, language)

        def on_success(matches: List[SearchMatch]) -> None:
            if token != self._state.search_token:
                LOGGER.debug("Discarding stale search response (token=%s current=%s)", token, self._state.search_token)
                return
            LOGGER.info("Search for %r returned %d matches", cleaned, len(matches))
            self._apply(search_succeeded(self._state, token, matches))

        def on_error(exc: Exception) -> None:
            LOGGER.error("Search for %r failed", cleaned, exc_info=exc)
            self._apply(search_failed(self._state, token, self._messages["error_search"]))

        self._runner(task, on_success, on_error)

    def select_result(self, match: SearchMatch) -> None:
        self._apply(select_result(self._state, match))

    def share_url(self) -> str:
        position = self._state.position
        return build_share_url(self.config.share_base_url, position.surah, position.verse, self._state.language)

    def share(self) -> str:
        """Share the current verse link, falling back to the clipboard."""
        url = self.share_url()
        if self._share_handler is not None:
            try:
                if self._share_handler(url):
                    self._apply(show_toast(self._state, self._messages["share_sent"]))
                    return url
            except Exception:
                LOGGER.warning("Platform share failed; falling back to clipboard", exc_info=True)
        if self._clipboard is not None:
            self._clipboard(url)
            self._apply(show_toast(self._state, self._messages["share_copied"]))
        else:
            self._apply(show_toast(self._state, self._messages["share_unavailable"].format(url=url)))
        return url

    # ------------------------------------------------------------------
    def _apply(self, state: NavigatorState) -> None:
        previous = self._state
        if state is previous:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        if state.request_token != previous.request_token and state.status is LoadStatus.LOADING:
            self._fetch_verse(state)

    def _fetch_verse(self, state: NavigatorState) -> None:
        token = state.request_token
        position = state.position
        language = state.language
        LOGGER.debug("Loading verse %s:%s (%s, token=%s)", position.surah, position.verse, language.value, token)

        def task() -> VerseData:
            return self.service.fetch_verse(position.surah, position.verse, language)

        def on_success(verse: VerseData) -> None:
            if token != self._state.request_token:
                LOGGER.debug("Discarding stale verse response (token=%s current=%s)", token, self._state.request_token)
                return
            if not verse_matches_position(verse, position):
                LOGGER.error(
                    "Verse response %s:%s (of %s) does not match request %s:%s",
                    verse.surah_number,
                    verse.verse_number,
                    verse.verse_count_in_surah,
                    position.surah,
                    position.verse,
                )
            else:
                LOGGER.info("Loaded verse %s:%s", position.surah, position.verse)
            image = self.service.image_url(position.surah, position.verse)
            self._apply(load_succeeded(self._state, token, verse, image, self._messages["error_fetch"]))

        def on_error(exc: Exception) -> None:
            if token != self._state.request_token:
                LOGGER.debug("Discarding stale verse failure (token=%s current=%s)", token, self._state.request_token)
                return
            LOGGER.error("Failed to load verse %s:%s", position.surah, position.verse, exc_info=exc)
            self._apply(load_failed(self._state, token, self._messages["error_fetch"]))

        self._runner(task, on_success, on_error)


__all__ = [
    "DEFAULT_FONT_SIZE",
    "Features",
    "InvalidPositionError",
    "LoadStatus",
    "MAX_FONT_SIZE",
    "MIN_FONT_SIZE",
    "NavigatorConfig",
    "NavigatorState",
    "Position",
    "RetreatMode",
    "SearchStatus",
    "VerseNavigator",
    "advance",
    "begin_load",
    "begin_search",
    "build_navigator_config",
    "clamp_font_size",
    "go_to",
    "initial_state",
    "invalid_input",
    "load_failed",
    "load_succeeded",
    "next_position",
    "parse_position",
    "previous_position",
    "reset",
    "retreat",
    "run_inline",
    "search_failed",
    "search_succeeded",
    "select_result",
    "set_font_size",
    "set_language",
    "show_toast",
    "verse_matches_position",
    "toggle_dark_mode",
]
