import argparse
import logging
import sys
from pathlib import Path

from .config import AppConfig, init_config
from .epub_source import read_book
from .errors import EpubReaderError, format_error_for_user
from .export import export_chapters
from .extractor import extract_chapters
from .logger import level_for, setup_logging
from .model import ChapterBuildResult
from .progress import ProgressStore
from .sanitizer import chapter_body_text
from .service import ReaderService

logger = logging.getLogger(__name__)


def _load(config: AppConfig, path: str) -> tuple[str, ChapterBuildResult]:
    book = read_book(path)
    result = extract_chapters(book, config.theme, config.fallback_encoding)
    return book.title or Path(path).stem, result


def _print_chapter(number: int, total: int, title: str, content: str, as_text: bool) -> None:
    print(f"Chapter {number}/{total}: {title}")
    print("-" * 60)
    print(chapter_body_text(content) if as_text else content)


def cmd_toc(args, config: AppConfig, store: ProgressStore) -> int:
    title, result = _load(config, args.book)
    print(title)
    if result.from_spine:
        print("(no usable table of contents, showing spine order)")
    for entry in result.toc_entries:
        number = str(entry.chapter_index + 1) if entry.chapter_index >= 0 else "-"
        print(f"{number:>4}  {'  ' * entry.level}{entry.title}")
    return 0


def cmd_show(args, config: AppConfig, store: ProgressStore) -> int:
    _title, result = _load(config, args.book)
    total = len(result.chapters)
    if args.chapter is None:
        saved = store.get_progress(args.book)
        index = saved if saved is not None and 0 <= saved < total else 0
    else:
        index = args.chapter - 1
    if not 0 <= index < total:
        print(f"Chapter {index + 1} is out of range (1-{total})", file=sys.stderr)
        return 1

    chapter = result.chapters[index]
    _print_chapter(index + 1, total, chapter.title, chapter.content, args.text)
    store.update_progress(args.book, index)
    store.update_last_opened_book(args.book)
    return 0


def cmd_export(args, config: AppConfig, store: ProgressStore) -> int:
    output_dir = args.output or config.export_dir
    if output_dir is None:
        print("No output directory given and none configured", file=sys.stderr)
        return 1
    title, result = _load(config, args.book)
    written = export_chapters(result, output_dir, title)
    print(f"Wrote {len(written)} chapters to {output_dir}")
    return 0


def cmd_bookmark(args, config: AppConfig, store: ProgressStore) -> int:
    _title, result = _load(config, args.book)
    index = args.chapter - 1
    if not 0 <= index < len(result.chapters):
        print(f"Chapter {args.chapter} is out of range (1-{len(result.chapters)})", file=sys.stderr)
        return 1
    bookmark = store.add_bookmark(args.book, index, result.chapters[index].title)
    print(f"Bookmarked chapter {index + 1}: {bookmark.chapter_title}")
    return 0


def cmd_bookmarks(args, config: AppConfig, store: ProgressStore) -> int:
    bookmarks = store.get_bookmarks(args.book)
    if not bookmarks:
        print("No bookmarks")
        return 0
    for bookmark in bookmarks:
        print(f"{bookmark.chapter_index + 1:>4}  {bookmark.chapter_title}")
    return 0


def cmd_resume(args, config: AppConfig, store: ProgressStore) -> int:
    service = ReaderService(
        progress_store=store,
        theme=config.theme,
        fallback_encoding=config.fallback_encoding,
    )
    try:
        future = service.reopen_last_book()
        if future is None:
            print("No book to resume")
            return 1
        future.result()
    finally:
        service.shutdown()

    state = service.state
    if state.error_message:
        print(f"Error: {state.error_message}", file=sys.stderr)
        return 1
    print(state.book_title)
    _print_chapter(
        state.current_index + 1,
        state.chapter_count,
        state.current_chapter_title,
        state.chapter_content,
        args.text,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epub-reader",
        description="Read EPUB books chapter by chapter, even when chapters share a file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the table of contents with chapter numbers
  epub-reader toc mybook.epub

  # Print chapter 3 as plain text
  epub-reader show mybook.epub 3 --text

  # Continue where you left off
  epub-reader resume --text

  # Write every chapter to its own HTML file
  epub-reader export mybook.epub ./mybook-html
        """,
    )
    parser.add_argument("--home", type=str, default=None, help="Directory for config and progress")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose (debug) logging"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Quiet mode (only warnings and errors)"
    )
    parser.add_argument("--log-file", type=str, default=None, help="Also write log messages to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    toc = sub.add_parser("toc", help="Print the table of contents")
    toc.add_argument("book", help="EPUB file")
    toc.set_defaults(handler=cmd_toc)

    show = sub.add_parser("show", help="Print one chapter")
    show.add_argument("book", help="EPUB file")
    show.add_argument("chapter", type=int, nargs="?", default=None, help="Chapter number (1-based)")
    show.add_argument("--text", action="store_true", help="Print plain text instead of HTML")
    show.set_defaults(handler=cmd_show)

    export = sub.add_parser("export", help="Write chapters as HTML files")
    export.add_argument("book", help="EPUB file")
    export.add_argument("output", nargs="?", default=None, help="Output directory")
    export.set_defaults(handler=cmd_export)

    bookmark = sub.add_parser("bookmark", help="Bookmark a chapter")
    bookmark.add_argument("book", help="EPUB file")
    bookmark.add_argument("chapter", type=int, help="Chapter number (1-based)")
    bookmark.set_defaults(handler=cmd_bookmark)

    bookmarks = sub.add_parser("bookmarks", help="List bookmarks of a book")
    bookmarks.add_argument("book", help="EPUB file")
    bookmarks.set_defaults(handler=cmd_bookmarks)

    resume = sub.add_parser("resume", help="Reopen the last book at the saved chapter")
    resume.add_argument("--text", action="store_true", help="Print plain text instead of HTML")
    resume.set_defaults(handler=cmd_resume)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level_for(args.verbose, args.quiet), log_file=args.log_file)

    try:
        config = init_config(args.home)
        logger.debug("Using configuration in %s", config.base_dir)
        store = ProgressStore(config.progress_file)
        return args.handler(args, config, store)
    except (EpubReaderError, OSError) as e:
        print(format_error_for_user(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
