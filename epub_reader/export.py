"""Writing extracted chapters to a directory of HTML files."""

import html
import logging
import re
from pathlib import Path

from .model import ChapterBuildResult

logger = logging.getLogger(__name__)


def slugify_title(title: str | None, max_length: int = 40) -> str:
    """Convert title to a file-name friendly slug.

    Examples:
        "Writing and Difference" → "writing-and-difference"
        "Chapter 1: The Beginning" → "chapter-1-the-beginning"
        "" → "untitled"
    """
    if not title:
        return "untitled"

    slug = title.lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")

    # Truncate at word boundary if too long
    if len(slug) > max_length:
        slug = slug[:max_length].rsplit("-", 1)[0]

    return slug or "untitled"


def chapter_file_name(index: int, title: str) -> str:
    return f"{index + 1:03d}-{slugify_title(title)}.html"


def render_index(result: ChapterBuildResult, book_title: str) -> str:
    """Outline page linking every navigable TOC entry to its chapter file."""
    items = []
    for entry in result.toc_entries:
        indent = f' style="margin-left: {entry.level * 1.5}em;"' if entry.level else ""
        title = html.escape(entry.title)
        if entry.chapter_index >= 0:
            target = chapter_file_name(entry.chapter_index, result.chapters[entry.chapter_index].title)
            items.append(f'<li{indent}><a href="{target}">{title}</a></li>')
        else:
            items.append(f"<li{indent}>{title}</li>")
    heading = html.escape(book_title)
    body = "\n    ".join(items)
    return (
        f"<html>\n  <head><title>{heading}</title></head>\n  <body>\n"
        f"  <h1>{heading}</h1>\n  <ul>\n    {body}\n  </ul>\n  </body>\n</html>\n"
    )


def export_chapters(result: ChapterBuildResult, output_dir: str | Path, book_title: str) -> list[Path]:
    """Write one HTML file per chapter plus ``index.html``.

    Returns:
        Paths of the written chapter files, in chapter order
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for index, chapter in enumerate(result.chapters):
        path = out / chapter_file_name(index, chapter.title)
        path.write_text(chapter.content, encoding="utf-8")
        written.append(path)

    (out / "index.html").write_text(render_index(result, book_title), encoding="utf-8")
    logger.info("Exported %d chapters to %s", len(written), out)
    return written
