"""Tests for ReaderService loading, navigation and persistence."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from epub_reader.errors import EpubReadError
from epub_reader.events import EventBus, EventType
from epub_reader.model import Book
from epub_reader.progress import ProgressStore, book_key
from epub_reader.service import ReaderService, ReaderState
from fixtures.books import make_book, make_resource, ref

TIMEOUT = 5


def three_chapter_book(title: str = "Book") -> Book:
    resource = make_resource(
        "ch.xhtml",
        '<h1 id="a">One</h1><p>alpha</p><h1 id="b">Two</h1><p>beta</p><h1 id="c">Three</h1><p>gamma</p>',
    )
    return make_book(
        [resource],
        toc=[
            ref("Part", None, ref("One", "ch.xhtml#a"), ref("Two", "ch.xhtml#b")),
            ref("Three", "ch.xhtml#c"),
        ],
        title=title,
    )


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def store(temp_dir):
    return ProgressStore(temp_dir / "progress.json")


def make_service(store, executor, reader=None, bus=None) -> ReaderService:
    return ReaderService(
        progress_store=store,
        event_bus=bus,
        executor=executor,
        book_reader=reader or (lambda path: three_chapter_book()),
    )


class TestReaderState:
    """Tests for the ReaderState snapshot."""

    def test_initial_state(self):
        """A fresh state shows the empty reader."""
        state = ReaderState()
        assert state.book_title == "No EPUB loaded"
        assert state.current_index == -1
        assert not state.has_previous
        assert not state.has_next

    def test_navigation_flags(self):
        """Previous and next depend on the position and loading flag."""
        assert ReaderState(current_index=1, chapter_count=3).has_previous
        assert ReaderState(current_index=1, chapter_count=3).has_next
        assert not ReaderState(current_index=2, chapter_count=3).has_next
        assert not ReaderState(current_index=1, chapter_count=3, is_loading=True).has_next


class TestLoading:
    """Tests for load_book."""

    def test_load_publishes_first_chapter(self, store, executor):
        """A successful load shows chapter one and notifies listeners."""
        service = make_service(store, executor)
        seen = []
        service.add_listener(seen.append)

        assert service.load_book("/books/a.epub").result(timeout=TIMEOUT) is True

        state = service.state
        assert state.book_title == "Book"
        assert state.current_index == 0
        assert state.chapter_count == 3
        assert state.current_chapter_title == "One"
        assert "alpha" in state.chapter_content
        assert len(state.toc_entries) == 4
        assert not state.is_loading
        assert seen[0] == ReaderState()
        assert any(s.is_loading for s in seen)
        assert seen[-1] == state

    def test_progress_and_last_book_recorded(self, store, executor):
        """Loading remembers the book and its position."""
        service = make_service(store, executor)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        assert store.get_last_opened_book() == book_key("/books/a.epub")
        assert store.get_progress("/books/a.epub") == 0

    def test_resumes_saved_chapter(self, store, executor):
        """A saved chapter index is restored on load."""
        store.update_progress("/books/a.epub", 2)
        service = make_service(store, executor)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        assert service.state.current_index == 2
        assert service.state.current_chapter_title == "Three"

    def test_out_of_range_progress_ignored(self, store, executor):
        """A saved index past the end starts at the first chapter."""
        store.update_progress("/books/a.epub", 99)
        service = make_service(store, executor)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        assert service.state.current_index == 0

    def test_failure_publishes_error(self, store, executor):
        """A failed load clears the chapters and shows the error."""

        def reader(path):
            if path.endswith("bad.epub"):
                raise EpubReadError(path, details="File is not a zip file")
            return three_chapter_book()

        bus = EventBus()
        failures = []
        bus.on(EventType.BOOK_FAILED, failures.append)
        service = make_service(store, executor, reader=reader, bus=bus)
        service.load_book("/books/good.epub").result(timeout=TIMEOUT)

        assert service.load_book("/books/bad.epub").result(timeout=TIMEOUT) is False
        assert service.state.error_message == "Could not read EPUB: /books/bad.epub"
        assert service.state.current_index == -1
        assert service.chapters == ()
        assert len(failures) == 1

    def test_empty_book_reports_no_chapters(self, store, executor):
        """A book without chapters fails with the empty-book message."""
        service = make_service(store, executor, reader=lambda path: make_book([], title="Empty"))
        assert service.load_book("/books/empty.epub").result(timeout=TIMEOUT) is False
        assert service.state.error_message.startswith("No readable chapters found in")

    def test_newer_load_supersedes_older(self, store, executor):
        """The result of a slower, older load is discarded."""
        release = threading.Event()

        def reader(path):
            if path.endswith("slow.epub"):
                release.wait(TIMEOUT)
                return three_chapter_book("Slow")
            return three_chapter_book("Fast")

        service = make_service(store, executor, reader=reader)
        slow = service.load_book("/books/slow.epub")
        fast = service.load_book("/books/fast.epub")
        assert fast.result(timeout=TIMEOUT) is True
        release.set()
        assert slow.result(timeout=TIMEOUT) is False
        assert service.state.book_title == "Fast"
        assert store.get_last_opened_book() == book_key("/books/fast.epub")

    def test_listener_errors_do_not_break_loading(self, store, executor):
        """A failing listener does not stop the load."""
        service = make_service(store, executor)
        calls = []

        def listener(state):
            calls.append(state)
            if len(calls) > 1:
                raise RuntimeError("ui gone")

        service.add_listener(listener)
        assert service.load_book("/books/a.epub").result(timeout=TIMEOUT) is True

    def test_listeners_run_without_the_lock(self, store, executor):
        """A listener may wait on another thread that uses the service."""
        service = make_service(store, executor)
        blocked = []

        def listener(state):
            helper = threading.Thread(target=service.remove_listener, args=(print,))
            helper.start()
            helper.join(TIMEOUT)
            blocked.append(helper.is_alive())

        service.add_listener(listener)
        assert service.load_book("/books/a.epub").result(timeout=TIMEOUT * 4) is True
        service.next_chapter()
        assert len(blocked) >= 3
        assert not any(blocked)

    def test_remove_listener(self, store, executor):
        """Removed listeners are no longer called."""
        service = make_service(store, executor)
        seen = []
        service.add_listener(seen.append)
        service.remove_listener(seen.append)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        assert seen == [ReaderState()]


class TestNavigation:
    """Tests for chapter navigation."""

    @pytest.fixture
    def service(self, store, executor):
        service = make_service(store, executor)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        return service

    def test_next_and_previous(self, service, store):
        """Next and previous move one chapter and save progress."""
        service.next_chapter()
        assert service.state.current_chapter_title == "Two"
        assert "beta" in service.state.chapter_content
        assert store.get_progress("/books/a.epub") == 1
        service.previous_chapter()
        assert service.state.current_index == 0

    def test_bounds(self, service):
        """Navigation past either end does nothing."""
        service.previous_chapter()
        assert service.state.current_index == 0
        service.open_chapter(2)
        service.next_chapter()
        assert service.state.current_index == 2
        service.open_chapter(7)
        assert service.state.current_index == 2

    def test_open_toc_entry(self, service):
        """TOC entries open their chapter; structural ones are ignored."""
        part, one, two, three = service.state.toc_entries
        service.open_toc_entry(three)
        assert service.state.current_chapter_title == "Three"
        service.open_toc_entry(part)
        assert service.state.current_chapter_title == "Three"

    def test_chapter_changed_event(self, store, executor):
        """Moving emits a chapter change event."""
        bus = EventBus()
        changes = []
        bus.on(EventType.CHAPTER_CHANGED, changes.append)
        service = make_service(store, executor, bus=bus)
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        service.open_chapter(1)
        service.open_chapter(1)
        assert [event.data["index"] for event in changes] == [1]

    def test_navigation_without_book(self, store, executor):
        """Navigation before any load is a no-op."""
        service = make_service(store, executor)
        service.next_chapter()
        assert service.state == ReaderState()


class TestBookmarksAndReopen:
    """Tests for bookmarks and reopening the last book."""

    def test_bookmark_current_chapter(self, store, executor):
        """The current chapter can be bookmarked and listed."""
        service = make_service(store, executor)
        assert service.add_bookmark() is None
        service.load_book("/books/a.epub").result(timeout=TIMEOUT)
        service.next_chapter()
        bookmark = service.add_bookmark()
        assert (bookmark.chapter_index, bookmark.chapter_title) == (1, "Two")
        assert [b.chapter_title for b in service.bookmarks()] == ["Two"]

    def test_reopen_last_book(self, store, executor, temp_dir):
        """The last opened book is loaded again at its saved chapter."""
        path = temp_dir / "a.epub"
        path.write_bytes(b"placeholder")
        store.update_last_opened_book(path)
        store.update_progress(path, 1)

        service = make_service(store, executor)
        future = service.reopen_last_book()
        assert future is not None
        assert future.result(timeout=TIMEOUT) is True
        assert service.state.current_index == 1

    def test_reopen_missing_book_forgets_it(self, store, executor, temp_dir):
        """A last opened book that vanished is cleared."""
        store.update_last_opened_book(temp_dir / "gone.epub")
        service = make_service(store, executor)
        assert service.reopen_last_book() is None
        assert store.get_last_opened_book() is None

    def test_reopen_nothing(self, store, executor):
        """Without a last opened book there is nothing to reopen."""
        assert make_service(store, executor).reopen_last_book() is None
