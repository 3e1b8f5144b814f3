"""Reading EPUB containers with ebooklib into the ``Book`` model."""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import ebooklib
from ebooklib import epub

from .errors import EpubReadError
from .loader import sniff_declared_encoding
from .model import Book, Resource, TocReference
from .paths import normalize_path, split_href
from .toc import ResourceIndex

logger = logging.getLogger(__name__)


def _item_name(item: Any) -> str:
    get_name = getattr(item, "get_name", None)
    if callable(get_name):
        return get_name() or ""
    return getattr(item, "file_name", "") or ""


def _item_id(item: Any) -> str | None:
    get_id = getattr(item, "get_id", None)
    if callable(get_id):
        value = get_id()
        if value:
            return value
    return getattr(item, "id", None) or None


def _item_bytes(item: Any) -> bytes:
    # Raw manifest bytes; EpubHtml.get_content() re-serializes the document.
    content = getattr(item, "content", None)
    if isinstance(content, str):
        return content.encode("utf-8")
    if content:
        return content
    return item.get_content() or b""


def _first_dc_meta(book: epub.EpubBook, name: str) -> str:
    items = book.get_metadata("DC", name)
    if not items:
        return ""
    value, _attrs = items[0]
    return value or ""


def _to_resource(item: Any) -> Resource:
    data = _item_bytes(item)
    title = getattr(item, "title", "") or None
    return Resource(
        href=_item_name(item),
        content=data,
        encoding=sniff_declared_encoding(data),
        title=title.strip() if title and title.strip() else None,
        id=_item_id(item),
        media_type=getattr(item, "media_type", "") or "application/xhtml+xml",
    )


def _is_toc_node(value: Any) -> bool:
    if isinstance(value, (epub.Link, epub.Section)):
        return True
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and isinstance(value[0], (epub.Link, epub.Section))
        and isinstance(value[1], (list, tuple))
    )


def _toc_nodes(toc: Any) -> list[Any]:
    """Top-level TOC nodes; ebooklib may hand back a single node instead of a list."""
    if not toc:
        return []
    if _is_toc_node(toc):
        return [toc]
    return list(toc)


def _convert_toc(nodes: Iterable[Any], index: ResourceIndex) -> tuple[TocReference, ...]:
    references: list[TocReference] = []

    def make(head: Any, children: tuple[TocReference, ...]) -> TocReference:
        href = getattr(head, "href", None) or None
        resource = index.get(normalize_path(split_href(href).path)) if href else None
        return TocReference(
            title=getattr(head, "title", None),
            href=href,
            resource=resource,
            children=children,
        )

    for node in nodes:
        if isinstance(node, epub.Link) and not node.href and not node.title:
            # Placeholder ebooklib builds for an empty navMap.
            continue
        if isinstance(node, (epub.Link, epub.Section)):
            references.append(make(node, ()))
        elif isinstance(node, (list, tuple)):
            if _is_toc_node(node):
                head, children = node
                references.append(make(head, _convert_toc(children, index)))
            else:
                references.extend(_convert_toc(node, index))
        else:
            logger.debug("Skipping unknown TOC node %r", node)
    return tuple(references)


def book_from_ebooklib(epub_book: epub.EpubBook, source: str | None = None) -> Book:
    """Convert an ebooklib book into the immutable ``Book`` model.

    Args:
        epub_book: Book returned by ``ebooklib.epub.read_epub``
        source: Path the book was read from, used for titles and messages

    Returns:
        Book with document resources, spine and TOC tree
    """
    resources = tuple(
        _to_resource(item) for item in epub_book.get_items_of_type(ebooklib.ITEM_DOCUMENT)
    )
    by_id = {resource.id: resource for resource in resources if resource.id}
    index = ResourceIndex(resources)

    spine: list[Resource] = []
    for entry in epub_book.spine:
        idref = entry[0] if isinstance(entry, (list, tuple)) else entry
        resource = by_id.get(idref)
        if resource is None:
            logger.debug("Spine item '%s' is not a content document", idref)
            continue
        spine.append(resource)

    toc = _convert_toc(_toc_nodes(epub_book.toc), index)
    title = _first_dc_meta(epub_book, "title") or (Path(source).stem if source else None)

    logger.debug(
        "Book '%s': %d documents, %d spine items, %d top-level TOC entries",
        title,
        len(resources),
        len(spine),
        len(toc),
    )
    return Book(title=title, resources=resources, spine=tuple(spine), toc=toc, source=source)


def read_book(path: str | Path) -> Book:
    """Open the EPUB at *path*.

    Raises:
        EpubReadError: If the file is missing or is not a readable EPUB
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise EpubReadError(str(file_path), details="File does not exist")
    try:
        epub_book = epub.read_epub(str(file_path), options={"ignore_ncx": False})
    except Exception as e:
        raise EpubReadError(str(file_path), details=str(e)) from e
    return book_from_ebooklib(epub_book, source=str(file_path))
