"""Entry point for the Qur'an verse navigator desktop application."""
from __future__ import annotations

import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

try:  # Prefer PyQt5, fall back to Qt for Python if available
    from PyQt5 import QtCore, QtGui, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback only used when PyQt5 missing
    try:
        from PySide2 import QtCore, QtGui, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtGui, QtWidgets  # type: ignore

try:  # Compatibility alias for Qt signal and slot decorators
    Signal = QtCore.pyqtSignal  # type: ignore[attr-defined]
    Slot = QtCore.pyqtSlot  # type: ignore[attr-defined]
except AttributeError:  # pragma: no cover - PySide compatibility
    Signal = QtCore.Signal  # type: ignore[attr-defined]
    Slot = QtCore.Slot  # type: ignore[attr-defined]

from navigator import NavigatorConfig, NavigatorState, Position, VerseNavigator, build_navigator_config
from quran_api import QuranApiService
from share import parse_share_url
from ui import VerseNavigatorWindow

APP_ROOT = Path(__file__).parent
CONFIG_PATH = APP_ROOT / "config.json"
TRANSLATIONS_PATH = APP_ROOT / "translations.json"
TOAST_TIMEOUT_MS = 3000
PERSIST_DELAY_MS = 500

logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
LOGGER = logging.getLogger(__name__)


class _AsyncDispatcher(QtCore.QObject):
    """Provide main-thread delivery for background task callbacks."""

    success = Signal(object)
    error = Signal(object)

    def __init__(
        self,
        owner: "QuranApp",
        on_success: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        super().__init__()
        self._owner = owner
        self._on_success = on_success
        self._on_error = on_error
        self.success.connect(self._handle_success)  # type: ignore[attr-defined]
        self.error.connect(self._handle_error)  # type: ignore[attr-defined]

    @Slot(object)
    def _handle_success(self, result: Any) -> None:
        try:
            self._on_success(result)
        finally:
            self._owner._async_dispatchers.discard(self)
            self.deleteLater()

    @Slot(object)
    def _handle_error(self, exc: Exception) -> None:
        try:
            self._on_error(exc)
        finally:
            self._owner._async_dispatchers.discard(self)
            self.deleteLater()


class QuranApp(QtWidgets.QApplication):
    """Wires the verse navigator to the window and the background executor."""

    def __init__(self, argv: list[str]) -> None:
        super().__init__(argv)
        self.setApplicationName("Qur'an")
        self.setFont(QtGui.QFont("Ubuntu", 10))

        self._executor = ThreadPoolExecutor(max_workers=2)
        self._async_dispatchers: Set[_AsyncDispatcher] = set()
        self._config = self._load_json(CONFIG_PATH, default={})
        self._translations = self._load_json(TRANSLATIONS_PATH, default={})
        LOGGER.debug("Loaded config keys: %s", list(self._config.keys()))

        self.ui_language = str(self._config.get("ui_language", "en"))
        self.navigator_config: NavigatorConfig = build_navigator_config(self._config)
        self.service = QuranApiService(
            api_base=self.navigator_config.api_base,
            cdn_base=self.navigator_config.cdn_base,
            timeout=self.navigator_config.timeout,
        )

        initial_position, shared_language = self._initial_position_from_args(argv[1:])
        self.navigator = VerseNavigator(
            self.service,
            self.navigator_config,
            runner=self._run_async,
            clipboard=self._copy_to_clipboard,
            initial_position=initial_position,
            initial_language=shared_language,
        )
        strings = self._strings_for_language()
        self.navigator.apply_translations(strings)

        self.window = VerseNavigatorWindow(self.navigator_config.features)
        self.window.apply_translations(strings)
        self.window.on_advance(self.navigator.advance)
        self.window.on_retreat(self.navigator.retreat)
        self.window.on_reset(self.navigator.reset)
        self.window.on_share(self.navigator.share)
        self.window.on_dark_mode_toggle(self.navigator.toggle_dark_mode)
        self.window.on_go_to(self.navigator.go_to)
        self.window.on_language_change(self.navigator.set_language)
        self.window.on_search(self.navigator.search)
        self.window.on_result_selected(self.navigator.select_result)
        self.window.on_font_size_change(self.navigator.set_font_size)

        self._toast_timer = QtCore.QTimer(self)
        self._toast_timer.setSingleShot(True)
        self._toast_timer.timeout.connect(self.navigator.clear_toast)  # type: ignore

        self._persist_timer = QtCore.QTimer(self)
        self._persist_timer.setSingleShot(True)
        self._persist_timer.timeout.connect(self._flush_preferences)  # type: ignore
        self._pending_preferences: Dict[str, Any] = {}

        self._last_state: Optional[NavigatorState] = self.navigator.state
        self.navigator.subscribe(self._on_state_changed)
        self.window.render(self.navigator.state)
        self.window.show()

        self.aboutToQuit.connect(self._cleanup)  # type: ignore

        QtCore.QTimer.singleShot(0, self.navigator.start)

    # ------------------------------------------------------------------
    def _on_state_changed(self, state: NavigatorState) -> None:
        previous = self._last_state
        self._last_state = state
        self.window.render(state)

        if state.image_url and (previous is None or previous.image_url != state.image_url):
            self._load_image(state.image_url, state.position)

        if state.toast and (previous is None or previous.toast_id != state.toast_id):
            self._toast_timer.start(TOAST_TIMEOUT_MS)

        changed = self._changed_preferences(previous, state)
        if changed:
            self._pending_preferences.update(changed)
            self._persist_timer.start(PERSIST_DELAY_MS)

    def _load_image(self, url: str, position: Position) -> None:
        def task() -> bytes:
            return self.service.fetch_image(position.surah, position.verse)

        def on_success(data: bytes) -> None:
            self.window.set_verse_image(url, data)

        def on_error(exc: Exception) -> None:
            LOGGER.warning("Verse image unavailable at %s: %s", url, exc)
            self.window.set_verse_image(url, None)

        self._run_async(task, on_success, on_error)

    @staticmethod
    def _changed_preferences(previous: Optional[NavigatorState], state: NavigatorState) -> Dict[str, Any]:
        """Return only the preferences the user changed between two states."""
        if previous is None:
            return {}
        changed: Dict[str, Any] = {}
        if previous.language is not state.language:
            changed["language"] = state.language.value
        if previous.dark_mode != state.dark_mode:
            changed["dark_mode"] = state.dark_mode
        if previous.font_size != state.font_size:
            changed["font_size"] = state.font_size
        return changed

    def _flush_preferences(self) -> None:
        pending, self._pending_preferences = self._pending_preferences, {}
        if not pending or all(self._config.get(key) == value for key, value in pending.items()):
            return
        self._config.update(pending)
        LOGGER.debug("Persisting preferences: %s", pending)
        try:
            self._save_json(CONFIG_PATH, self._config)
        except OSError:
            LOGGER.exception("Failed to save config to %s", CONFIG_PATH)

    def _copy_to_clipboard(self, text: str) -> None:
        self.clipboard().setText(text)
        LOGGER.info("Copied share link to clipboard: %s", text)

    def _strings_for_language(self, language_code: Optional[str] = None) -> Dict[str, Any]:
        language_code = language_code or self.ui_language
        return self._translations.get(language_code, self._translations.get("en", {}))

    @staticmethod
    def _initial_position_from_args(args: list[str]):
        for arg in args:
            if "?" not in arg:
                continue
            shared = parse_share_url(arg)
            if shared.surah is None and shared.language is None:
                continue
            LOGGER.info("Opening shared verse %s:%s (%s)", shared.surah, shared.verse, shared.language)
            position = Position(shared.surah, shared.verse or 1) if shared.surah else None
            return position, shared.language
        return None, None

    def _run_async(self, func, on_success, on_error) -> None:
        LOGGER.debug("Submitting background task %s", getattr(func, "__name__", func))
        dispatcher = _AsyncDispatcher(self, on_success, on_error)
        self._async_dispatchers.add(dispatcher)
        future = self._executor.submit(func)

        def _done(future_result) -> None:
            try:
                result = future_result.result()
            except Exception as exc:  # pragma: no cover - UI glue
                LOGGER.debug("Background task %s raised %r", getattr(func, "__name__", func), exc)
                dispatcher.error.emit(exc)
            else:
                dispatcher.success.emit(result)

        future.add_done_callback(_done)

    @staticmethod
    def _load_json(path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError):
            LOGGER.exception("Failed to read %s", path)
            return default
        return payload if isinstance(payload, dict) else default

    @staticmethod
    def _save_json(path: Path, payload: Dict[str, Any]) -> None:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)

    def _cleanup(self) -> None:
        self._persist_timer.stop()
        self._flush_preferences()
        self._executor.shutdown(wait=False)


def main() -> int:
    app = QuranApp(sys.argv)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
