"""Data model shared by the extraction pass and its callers.

The input side (``Book``, ``Resource``, ``TocReference``) is an already-parsed,
immutable view of an EPUB container. ``epub_source`` builds it from ebooklib,
tests build it directly. The output side (``Chapter``, ``TocEntry``) is what a
reader UI consumes: an ordered chapter list addressed by index plus an outline
that maps each TOC entry onto that list.
"""

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True, eq=False)
class Resource:
    """A content document inside the EPUB container.

    Attributes:
        href: Path of the document relative to the package document
        content: Raw bytes of the document
        encoding: Declared character encoding, if the container declares one
        title: Optional title recorded for the document
        id: Manifest id of the document
        media_type: Manifest media type
        reader: Optional callable returning the bytes lazily; may raise OSError
    """

    href: str
    content: bytes = b""
    encoding: str | None = None
    title: str | None = None
    id: str | None = None
    media_type: str = "application/xhtml+xml"
    reader: Callable[[], bytes] | None = field(default=None, repr=False)

    def get_content(self) -> bytes:
        """Return the raw document bytes.

        Raises:
            OSError: If the underlying archive entry cannot be read
        """
        if self.reader is not None:
            return self.reader()
        return self.content


@dataclass(frozen=True)
class TocReference:
    """One node of the book's hierarchical table of contents.

    ``href`` is the complete reference (path plus optional ``#fragment``).
    ``resource`` is set when the container already resolved the target.
    """

    title: str | None
    href: str | None = None
    resource: Resource | None = None
    children: tuple["TocReference", ...] = ()


@dataclass(frozen=True)
class Book:
    """Parsed EPUB container: resources, reading order and TOC tree."""

    title: str | None = None
    resources: tuple[Resource, ...] = ()
    spine: tuple[Resource, ...] = ()
    toc: tuple[TocReference, ...] = ()
    source: str | None = None


@dataclass(frozen=True)
class TocNode:
    """A flattened TOC entry, created once while walking the TOC tree."""

    title: str
    level: int
    resource_path: str | None
    fragment: str | None
    fragment_original: str | None
    resource: Resource | None
    order: int


@dataclass(frozen=True)
class Chapter:
    """One navigable chapter: a title and a self-contained HTML document."""

    title: str
    content: str


@dataclass(frozen=True)
class TocEntry:
    """Outline entry for the UI.

    ``chapter_index`` is -1 when the entry is structural only.
    """

    title: str
    chapter_index: int
    level: int
    resource_href: str | None = None
    resource_id: str | None = None

    @property
    def is_navigable(self) -> bool:
        return self.chapter_index >= 0


@dataclass(frozen=True)
class ChapterBuildResult:
    """Chapters plus the outline that points into them."""

    chapters: tuple[Chapter, ...] = ()
    toc_entries: tuple[TocEntry, ...] = ()
    from_spine: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.chapters
