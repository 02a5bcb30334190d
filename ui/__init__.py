"""UI components for the verse navigator application."""

from .verse_window import VerseNavigatorWindow

__all__ = ["VerseNavigatorWindow"]
