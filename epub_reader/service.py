"""Reader service: loads books off the caller's thread and tracks navigation.

The service is the stateful layer between the extraction pass and a UI. It
owns the current chapter list and a ``ReaderState`` snapshot that listeners
receive on every change. Loading runs on a worker thread; a newer
``load_book`` call supersedes an older one, whose result is discarded when
it finally completes.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from .epub_source import read_book
from .errors import EpubReaderError
from .events import EventBus, EventType
from .extractor import extract_chapters
from .loader import DEFAULT_ENCODING
from .model import Book, Chapter, TocEntry
from .progress import Bookmark, ProgressStore, book_key
from .sanitizer import DEFAULT_THEME, ChapterTheme

logger = logging.getLogger(__name__)

GENERIC_LOAD_ERROR = "Unexpected error while reading EPUB."


@dataclass(frozen=True)
class ReaderState:
    """Snapshot of what a reader UI should display."""

    book_title: str = "No EPUB loaded"
    current_chapter_title: str = ""
    chapter_content: str = "Open an EPUB file to start reading."
    current_index: int = -1
    chapter_count: int = 0
    is_loading: bool = False
    error_message: str | None = None
    toc_entries: tuple[TocEntry, ...] = ()
    source: str | None = None

    @property
    def has_previous(self) -> bool:
        return not self.is_loading and self.current_index > 0

    @property
    def has_next(self) -> bool:
        return not self.is_loading and 0 <= self.current_index < self.chapter_count - 1


StateListener = Callable[[ReaderState], None]


def _error_message(error: Exception) -> str:
    if isinstance(error, EpubReaderError):
        return error.message
    return str(error) or GENERIC_LOAD_ERROR


class ReaderService:
    """Loads books and navigates their chapters.

    Args:
        progress_store: Where progress and bookmarks are kept (in-memory if None)
        event_bus: Bus receiving reader events (a private one if None)
        executor: Executor running loads (a single worker thread if None)
        book_reader: Callable turning a path into a ``Book``
        theme: Theme for chapter documents
        fallback_encoding: Encoding used when a declared one is unusable
    """

    def __init__(
        self,
        progress_store: ProgressStore | None = None,
        event_bus: EventBus | None = None,
        executor: ThreadPoolExecutor | None = None,
        book_reader: Callable[[str], Book] = read_book,
        theme: ChapterTheme = DEFAULT_THEME,
        fallback_encoding: str = DEFAULT_ENCODING,
    ):
        self.progress = progress_store or ProgressStore(None)
        self.events = event_bus or EventBus()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="epub-reader"
        )
        self._book_reader = book_reader
        self._theme = theme
        self._fallback_encoding = fallback_encoding

        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._state = ReaderState()
        self._chapters: tuple[Chapter, ...] = ()
        self._generation = 0

    # ------------------------------------------------------------------
    # State and listeners
    # ------------------------------------------------------------------

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def chapters(self) -> tuple[Chapter, ...]:
        return self._chapters

    def add_listener(self, listener: StateListener) -> None:
        """Register *listener* and call it right away with the current state."""
        with self._lock:
            self._listeners.append(listener)
            state = self._state
        listener(state)

    def remove_listener(self, listener: StateListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _commit(
        self, state: ReaderState, chapters: tuple[Chapter, ...] | None = None
    ) -> list[StateListener]:
        # Caller holds self._lock; listeners are notified after it is released.
        if chapters is not None:
            self._chapters = chapters
        self._state = state
        return list(self._listeners)

    def _publish(self, state: ReaderState, chapters: tuple[Chapter, ...] | None = None) -> None:
        with self._lock:
            listeners = self._commit(state, chapters)
        self._notify(state, listeners)

    def _notify(self, state: ReaderState, listeners: list[StateListener]) -> None:
        for listener in listeners:
            try:
                listener(state)
            except Exception as e:
                logger.warning("Reader listener error: %s", e)
        self.events.emit(EventType.STATE_CHANGED, state=state)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_book(self, path: str | Path) -> Future:
        """Start loading *path* in the background.

        Returns:
            Future resolving to True if this load's result was published,
            False if it failed or was superseded by a newer load
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            loading = replace(self._state, is_loading=True, error_message=None, toc_entries=())
        self._publish(loading)
        self.events.emit(EventType.LOAD_STARTED, source=str(path))
        return self._executor.submit(self._load, str(path), generation)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _load(self, path: str, generation: int) -> bool:
        try:
            book = self._book_reader(path)
            result = extract_chapters(book, self._theme, self._fallback_encoding)
        except Exception as e:
            logger.warning("Failed to load EPUB %s", path, exc_info=True)
            with self._lock:
                if not self._is_current(generation):
                    return False
                failed = ReaderState(error_message=_error_message(e), source=book_key(path))
                listeners = self._commit(failed, chapters=())
            self._notify(failed, listeners)
            self.events.emit(EventType.BOOK_FAILED, source=path, error=failed.error_message)
            return False

        with self._lock:
            if not self._is_current(generation):
                logger.debug("Discarding superseded load of %s", path)
                return False
            chapters = result.chapters
            saved = self.progress.get_progress(path)
            start = saved if saved is not None and 0 <= saved < len(chapters) else 0
            loaded = ReaderState(
                book_title=book.title or Path(path).stem,
                current_chapter_title=chapters[start].title,
                chapter_content=chapters[start].content,
                current_index=start,
                chapter_count=len(chapters),
                toc_entries=result.toc_entries,
                source=book_key(path),
            )
            listeners = self._commit(loaded, chapters=chapters)
        self._notify(loaded, listeners)

        self.progress.update_last_opened_book(path)
        self.progress.update_progress(path, start)
        logger.info("Loaded '%s' with %d chapters", loaded.book_title, len(chapters))
        self.events.emit(EventType.BOOK_LOADED, source=path, chapter_count=len(chapters))
        return True

    def reopen_last_book(self) -> Future | None:
        """Reload the most recently opened book, if it still exists.

        A last-opened book that no longer exists is forgotten.
        """
        last = self.progress.get_last_opened_book()
        if not last:
            return None
        if not Path(last).is_file():
            logger.info("Last opened book %s no longer exists", last)
            self.progress.update_last_opened_book(None)
            return None
        return self.load_book(last)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_chapter(self) -> None:
        self._navigate_to(self._state.current_index + 1)

    def previous_chapter(self) -> None:
        self._navigate_to(self._state.current_index - 1)

    def open_chapter(self, index: int) -> None:
        if index == self._state.current_index:
            return
        self._navigate_to(index)

    def open_toc_entry(self, entry: TocEntry) -> None:
        if entry.chapter_index >= 0:
            self.open_chapter(entry.chapter_index)

    def _navigate_to(self, index: int) -> None:
        with self._lock:
            chapters = self._chapters
            if not chapters or not 0 <= index < len(chapters):
                return
            chapter = chapters[index]
            moved = replace(
                self._state,
                current_chapter_title=chapter.title,
                chapter_content=chapter.content,
                current_index=index,
                chapter_count=len(chapters),
                error_message=None,
            )
            listeners = self._commit(moved)
        self._notify(moved, listeners)
        if moved.source:
            self.progress.update_progress(moved.source, index)
        self.events.emit(EventType.CHAPTER_CHANGED, index=index, title=chapter.title)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def add_bookmark(self) -> Bookmark | None:
        """Bookmark the current chapter; None when nothing is open."""
        state = self._state
        if state.current_index < 0 or not state.source:
            return None
        bookmark = self.progress.add_bookmark(
            state.source, state.current_index, state.current_chapter_title
        )
        self.events.emit(EventType.BOOKMARK_ADDED, bookmark=bookmark)
        return bookmark

    def bookmarks(self) -> list[Bookmark]:
        if not self._state.source:
            return []
        return self.progress.get_bookmarks(self._state.source)
