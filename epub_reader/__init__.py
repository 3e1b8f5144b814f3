"""epub_reader: navigable chapters from EPUB books.

Turns a book's table of contents and XHTML documents into an ordered list of
chapters with sanitized, self-contained HTML, slicing shared documents at
the anchors their TOC entries point to.
"""

# Chapter extraction
from .extractor import (
    ExtractionPass,
    build_chapter_data,
    build_chapters_from_spine,
    build_chapters_from_toc,
    extract_chapters,
)

# Book model
from .model import (
    Book,
    Chapter,
    ChapterBuildResult,
    Resource,
    TocEntry,
    TocNode,
    TocReference,
)

# EPUB container reading
from .epub_source import book_from_ebooklib, read_book

# Sanitization
from .sanitizer import (
    ChapterTheme,
    placeholder_chapter_html,
    sanitize_for_display,
    sanitize_html,
    wrap_chapter_html,
)

# Reader service and persistence
from .events import Event, EventBus, EventType
from .progress import Bookmark, ProgressState, ProgressStore
from .service import ReaderService, ReaderState

# Custom errors
from .errors import (
    ConfigurationError,
    EpubReaderError,
    EpubReadError,
    NoReadableChaptersError,
    format_error_for_user,
)

# Logging utilities
from .logger import level_for, set_level, setup_logging

from .cli import main

__version__ = "1.0.0"

__all__ = [
    "Book",
    "Bookmark",
    "Chapter",
    "ChapterBuildResult",
    "ChapterTheme",
    "ConfigurationError",
    "EpubReadError",
    "EpubReaderError",
    "Event",
    "EventBus",
    "EventType",
    "ExtractionPass",
    "NoReadableChaptersError",
    "ProgressState",
    "ProgressStore",
    "ReaderService",
    "ReaderState",
    "Resource",
    "TocEntry",
    "TocNode",
    "TocReference",
    "book_from_ebooklib",
    "build_chapter_data",
    "build_chapters_from_spine",
    "build_chapters_from_toc",
    "extract_chapters",
    "format_error_for_user",
    "level_for",
    "main",
    "placeholder_chapter_html",
    "read_book",
    "sanitize_for_display",
    "sanitize_html",
    "set_level",
    "setup_logging",
    "wrap_chapter_html",
]
