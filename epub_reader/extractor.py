"""Chapter extraction: Book -> ordered chapters plus TOC outline.

One call to ``extract_chapters`` is one extraction pass. The pass owns its
document cache and node claims through an ``ExtractionPass`` instance; nothing
is shared between passes, so concurrent loads of different books are safe.

Flow:
    flatten TOC -> group entries per document -> load and parse documents ->
    resolve start nodes -> slice -> sanitize

If the TOC yields no chapter at all, the spine fallback emits one chapter
per spine document instead.
"""

import logging
from collections import OrderedDict

from .errors import NoReadableChaptersError
from .loader import DEFAULT_ENCODING, DocumentLoader
from .model import Book, Chapter, ChapterBuildResult, TocEntry, TocNode
from .sanitizer import (
    DEFAULT_THEME,
    ChapterTheme,
    placeholder_chapter_html,
    sanitize_for_display,
)
from .slicer import ResourceSlice, build_resource_slice
from .toc import ResourceIndex, flatten_toc

logger = logging.getLogger(__name__)


class ExtractionPass:
    """State owned by a single extraction over one book.

    Attributes:
        book: The book being extracted
        theme: Theme for the generated chapter documents
        loader: Per-pass document cache
        stats: Counters describing how chapters were produced
    """

    def __init__(
        self,
        book: Book,
        theme: ChapterTheme = DEFAULT_THEME,
        fallback_encoding: str = DEFAULT_ENCODING,
    ):
        self.book = book
        self.theme = theme
        self.loader = DocumentLoader(fallback_encoding=fallback_encoding)
        self.resources = ResourceIndex(book.resources)
        self.stats = {
            "toc_nodes": 0,
            "sliced": 0,
            "placeholders": 0,
            "structural": 0,
            "spine": 0,
        }

    def run(self) -> ChapterBuildResult:
        """Build chapters from the TOC, falling back to the spine."""
        from_toc = self.build_from_toc()
        if not from_toc.is_empty:
            logger.info(
                "Extracted %d chapters from the table of contents (%d placeholders)",
                len(from_toc.chapters),
                self.stats["placeholders"],
            )
            return from_toc

        logger.info("No chapters from the table of contents, using spine order")
        return self.build_from_spine()

    # ------------------------------------------------------------------
    # TOC path
    # ------------------------------------------------------------------

    def build_from_toc(self) -> ChapterBuildResult:
        if not self.book.toc:
            return ChapterBuildResult()

        nodes = flatten_toc(self.book.toc, self.resources)
        self.stats["toc_nodes"] = len(nodes)
        if not any(node.resource is not None for node in nodes):
            return ChapterBuildResult()

        slices = self._build_slices(nodes)

        chapters: list[Chapter] = []
        entries: list[TocEntry] = []
        for node in nodes:
            if node.resource is None and node.resource_path is None:
                # Structural heading with nothing to show.
                self.stats["structural"] += 1
                entries.append(TocEntry(title=node.title, chapter_index=-1, level=node.level))
                continue

            content = self._chapter_content(node, slices.get(node.resource_path or ""))
            chapters.append(Chapter(title=node.title, content=content))
            entries.append(
                TocEntry(
                    title=node.title,
                    chapter_index=len(chapters) - 1,
                    level=node.level,
                    resource_href=node.resource_path,
                    resource_id=node.resource.id if node.resource is not None else None,
                )
            )

        return ChapterBuildResult(chapters=tuple(chapters), toc_entries=tuple(entries))

    def _build_slices(self, nodes: list[TocNode]) -> dict[str, ResourceSlice]:
        grouped: "OrderedDict[str, list[TocNode]]" = OrderedDict()
        for node in nodes:
            if node.resource_path is None or node.resource is None:
                continue
            grouped.setdefault(node.resource_path, []).append(node)

        slices: dict[str, ResourceSlice] = {}
        for path, sequence in grouped.items():
            document = self.loader.load(sequence[0].resource, path)
            if document is None:
                logger.warning("Resource '%s' is unreadable; %d entries get placeholders", path, len(sequence))
                continue
            slices[path] = build_resource_slice(document, sequence)
        return slices

    def _chapter_content(self, node: TocNode, resource_slice: ResourceSlice | None) -> str:
        if resource_slice is None:
            self.stats["placeholders"] += 1
            return placeholder_chapter_html(node.title, self.theme)

        raw = resource_slice.slice_html(node)
        if not raw.strip():
            self.stats["placeholders"] += 1
            return placeholder_chapter_html(node.title, self.theme)

        self.stats["sliced"] += 1
        return sanitize_for_display(raw, node.title, self.theme)

    # ------------------------------------------------------------------
    # Spine fallback
    # ------------------------------------------------------------------

    def build_from_spine(self) -> ChapterBuildResult:
        chapters: list[Chapter] = []
        entries: list[TocEntry] = []
        for number, resource in enumerate(self.book.spine, start=1):
            if resource is None:
                continue
            title = resource.title.strip() if resource.title and resource.title.strip() else f"Chapter {number}"
            document = self.loader.load(resource, self.resources.path_of(resource))
            body = document.body if document is not None else None
            body_html = body.decode_contents() if body is not None else ""
            content = sanitize_for_display(body_html, title, self.theme)

            chapters.append(Chapter(title=title, content=content))
            entries.append(
                TocEntry(
                    title=title,
                    chapter_index=len(chapters) - 1,
                    level=0,
                    resource_href=self.resources.path_of(resource),
                    resource_id=resource.id,
                )
            )
        self.stats["spine"] = len(chapters)
        return ChapterBuildResult(chapters=tuple(chapters), toc_entries=tuple(entries), from_spine=True)


def build_chapters_from_toc(book: Book, theme: ChapterTheme = DEFAULT_THEME) -> ChapterBuildResult:
    """TOC path only; empty result when the TOC maps to no resource."""
    return ExtractionPass(book, theme).build_from_toc()


def build_chapters_from_spine(book: Book, theme: ChapterTheme = DEFAULT_THEME) -> ChapterBuildResult:
    """One chapter per spine document, in reading order."""
    return ExtractionPass(book, theme).build_from_spine()


def build_chapter_data(book: Book, theme: ChapterTheme = DEFAULT_THEME) -> ChapterBuildResult:
    """TOC path with spine fallback; may return an empty result."""
    return ExtractionPass(book, theme).run()


def extract_chapters(
    book: Book,
    theme: ChapterTheme = DEFAULT_THEME,
    fallback_encoding: str = DEFAULT_ENCODING,
) -> ChapterBuildResult:
    """Extract the chapter list of *book*.

    Args:
        book: Parsed book
        theme: Theme for chapter documents
        fallback_encoding: Encoding used when a declared one is unusable

    Returns:
        Non-empty ChapterBuildResult

    Raises:
        NoReadableChaptersError: If neither the TOC nor the spine yields a chapter
    """
    result = ExtractionPass(book, theme, fallback_encoding).run()
    if result.is_empty:
        source = book.source or book.title or "book"
        raise NoReadableChaptersError(
            source,
            details=f"{len(book.toc)} TOC entries, {len(book.spine)} spine items",
        )
    return result
