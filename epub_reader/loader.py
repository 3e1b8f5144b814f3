"""Document loading: bytes -> decoded text -> parsed, stripped DOM.

A ``DocumentLoader`` belongs to exactly one extraction pass. It parses each
resource at most once and forgets everything when the pass is dropped.
"""

import codecs
import logging
import re

from bs4 import BeautifulSoup

from .model import Resource
from .paths import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# Elements never rendered by the reader; removed before slicing.
STRIPPED_TAGS = ["script", "style", "img"]

_XML_DECL_RE = re.compile(rb"""^\s*<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._:-]+)["']""")
_META_CHARSET_RE = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?([A-Za-z0-9._:-]+)""", re.IGNORECASE)


def sniff_declared_encoding(content: bytes | None) -> str | None:
    """Return the encoding a document declares about itself, if any.

    Looks at the XML declaration first, then at ``<meta charset>`` /
    ``http-equiv`` content types within the first kilobyte.
    """
    if not content:
        return None
    head = content[:1024]
    if head.startswith(codecs.BOM_UTF8):
        head = head[len(codecs.BOM_UTF8):]
    match = _XML_DECL_RE.match(head) or _META_CHARSET_RE.search(head)
    if not match:
        return None
    return match.group(1).decode("ascii", errors="ignore") or None


def decode_content(
    data: bytes,
    encoding: str | None = None,
    fallback: str = DEFAULT_ENCODING,
) -> str:
    """Decode *data* with its declared encoding, leniently.

    Unusable encodings fall back to *fallback*, then to UTF-8; malformed
    byte sequences are replaced rather than raising.
    """
    name = (encoding or "").strip() or fallback
    try:
        text = data.decode(name, errors="replace")
    except (LookupError, UnicodeError):
        # Unknown names, non-text codecs such as "base64" and codecs that
        # refuse errors="replace" such as "idna" all land here.
        logger.warning("Unsupported encoding '%s', falling back to %s", name, fallback)
        try:
            text = data.decode(fallback, errors="replace")
        except (LookupError, UnicodeError):
            logger.warning("Unusable fallback encoding '%s', using %s", fallback, DEFAULT_ENCODING)
            text = data.decode(DEFAULT_ENCODING, errors="replace")
    return text.lstrip("\ufeff")


def parse_document(html: str) -> BeautifulSoup:
    """Parse markup into a DOM with script, style and img elements removed."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(STRIPPED_TAGS):
        tag.decompose()
    return soup


class DocumentLoader:
    """Per-pass cache of parsed documents, keyed by normalized resource path.

    Example:
        >>> loader = DocumentLoader()
        >>> soup = loader.load(resource)
        >>> soup is loader.load(resource)
        True
    """

    def __init__(self, fallback_encoding: str = DEFAULT_ENCODING):
        self.fallback_encoding = fallback_encoding
        self._cache: dict[str, BeautifulSoup | None] = {}
        self.parse_count = 0

    def load(self, resource: Resource | None, path: str | None = None) -> BeautifulSoup | None:
        """Return the parsed document for *resource*, or None if unreadable.

        Args:
            resource: Resource to load
            path: Cache key; defaults to the resource's normalized href
        """
        if resource is None:
            return None
        key = path or normalize_path(resource.href) or resource.href
        if key in self._cache:
            return self._cache[key]

        document = self._load_uncached(resource)
        self._cache[key] = document
        return document

    def _load_uncached(self, resource: Resource) -> BeautifulSoup | None:
        try:
            data = resource.get_content()
        except OSError as e:
            logger.warning("Failed to read resource data for %s: %s", resource.href, e)
            return None
        if data is None:
            return None

        html = decode_content(data, resource.encoding, self.fallback_encoding)
        self.parse_count += 1
        return parse_document(html)

    def __contains__(self, path: str) -> bool:
        return path in self._cache

    def __len__(self) -> int:
        return len(self._cache)
