"""Reading progress and bookmarks.

Progress is stored per book as the index of the last chapter shown, along
with the last opened book (for reopening on startup) and a list of bookmarks
per book. Everything lives in a single JSON file.
"""

import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def book_key(path: str | Path) -> str:
    """Stable key for a book: its absolute, normalized path."""
    return os.path.normpath(os.path.abspath(str(path)))


@dataclass
class Bookmark:
    """A bookmarked chapter."""

    chapter_index: int = -1
    chapter_title: str = ""
    timestamp: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter_index": self.chapter_index,
            "chapter_title": self.chapter_title,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bookmark":
        return cls(
            chapter_index=int(data.get("chapter_index", -1)),
            chapter_title=str(data.get("chapter_title", "")),
            timestamp=float(data.get("timestamp", 0.0)),
        )


@dataclass
class ProgressState:
    """Everything the progress store persists.

    Attributes:
        progress_by_book: Last chapter index per book key
        last_opened_book: Key of the most recently opened book
        bookmarks_by_book: Bookmarks per book key, oldest first
    """

    progress_by_book: dict[str, int] = field(default_factory=dict)
    last_opened_book: str | None = None
    bookmarks_by_book: dict[str, list[Bookmark]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "progress_by_book": dict(self.progress_by_book),
            "last_opened_book": self.last_opened_book,
            "bookmarks_by_book": {
                key: [bookmark.to_dict() for bookmark in bookmarks]
                for key, bookmarks in self.bookmarks_by_book.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressState":
        return cls(
            progress_by_book={
                str(key): int(value) for key, value in data.get("progress_by_book", {}).items()
            },
            last_opened_book=data.get("last_opened_book"),
            bookmarks_by_book={
                str(key): [Bookmark.from_dict(item) for item in items]
                for key, items in data.get("bookmarks_by_book", {}).items()
            },
        )


class ProgressStore:
    """JSON-backed store for progress, bookmarks and the last opened book.

    Every mutation is written through to disk immediately. Pass ``path=None``
    for an in-memory store.

    Example:
        >>> store = ProgressStore("/tmp/progress.json")
        >>> store.update_progress("/books/a.epub", 4)
        >>> store.get_progress("/books/a.epub")
        4
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self.state = self.load()

    def load(self) -> ProgressState:
        """Read the state file; a missing or corrupt file yields empty state."""
        if self.path is None or not self.path.exists():
            return ProgressState()
        try:
            with open(self.path, encoding="utf-8") as f:
                return ProgressState.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable progress file %s: %s", self.path, e)
            return ProgressState()

    def save(self) -> None:
        """Write the state file."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.state.to_dict(), f, indent=2)

    def get_progress(self, book: str | Path) -> int | None:
        return self.state.progress_by_book.get(book_key(book))

    def update_progress(self, book: str | Path, chapter_index: int) -> None:
        with self._lock:
            self.state.progress_by_book[book_key(book)] = chapter_index
            self.save()

    def get_last_opened_book(self) -> str | None:
        return self.state.last_opened_book

    def update_last_opened_book(self, book: str | Path | None) -> None:
        with self._lock:
            self.state.last_opened_book = book_key(book) if book else None
            self.save()

    def add_bookmark(self, book: str | Path, chapter_index: int, chapter_title: str) -> Bookmark:
        bookmark = Bookmark(
            chapter_index=chapter_index,
            chapter_title=chapter_title,
            timestamp=time.time(),
        )
        with self._lock:
            self.state.bookmarks_by_book.setdefault(book_key(book), []).append(bookmark)
            self.save()
        return bookmark

    def get_bookmarks(self, book: str | Path) -> list[Bookmark]:
        return list(self.state.bookmarks_by_book.get(book_key(book), []))
