"""Test fixtures for epub_reader.

Real EPUB archives come from ``epub_factory``; lightweight in-memory books
from ``books``.
"""

from .books import make_book, make_resource, ref, toc_node, xhtml
from .epub_factory import FIXTURES, create_fixture_epub, create_test_epub

__all__ = [
    "FIXTURES",
    "create_fixture_epub",
    "create_test_epub",
    "make_book",
    "make_resource",
    "ref",
    "toc_node",
    "xhtml",
]
