"""Anchor resolution: which DOM node does a TOC entry start at?

Resolution is an ordered list of match strategies. Each strategy looks at the
document and one TOC node and returns a candidate element or None. The slicer
consumes the candidates in priority order and takes the first one that no
earlier entry of the same document has claimed.

Priority for every entry:
1. ``ExactIdMatch`` - ``id`` equal to the unnormalized fragment (ids are
   case-sensitive in EPUB)
2. ``NameMatch`` - legacy ``<a name="...">`` anchors, unnormalized
3. ``NormalizedMatch`` - decoded, lower-cased ``id``/``name`` comparison

Then, for the first entry of a document, ``BodyMatch``. For later entries the
positional fallbacks: ``TitleHeadingMatch``, ``NthHeadingMatch`` and
``NthBodyChildMatch``.
"""

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from .model import TocNode
from .paths import normalize_fragment

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


def normalize_title(raw: str | None) -> str:
    """Lower-case and collapse whitespace for title comparison."""
    if not raw:
        return ""
    return re.sub(r"\s+", " ", raw.strip().lower())


@dataclass
class AnchorContext:
    """Per-document lookups shared by all strategies.

    Attributes:
        document: Parsed document
        headings: All h1-h6 elements in document order
        heading_by_title: First heading for each normalized heading text
        body_children: Element children of ``<body>``
    """

    document: BeautifulSoup
    headings: list[Tag] = field(default_factory=list)
    heading_by_title: dict[str, Tag] = field(default_factory=dict)
    body_children: list[Tag] = field(default_factory=list)

    @classmethod
    def for_document(cls, document: BeautifulSoup) -> "AnchorContext":
        headings = document.find_all(HEADING_TAGS)
        heading_by_title: dict[str, Tag] = {}
        for heading in headings:
            key = normalize_title(heading.get_text(" "))
            if key:
                heading_by_title.setdefault(key, heading)
        body = document.body
        body_children = body.find_all(True, recursive=False) if body is not None else []
        return cls(
            document=document,
            headings=headings,
            heading_by_title=heading_by_title,
            body_children=body_children,
        )

    @property
    def body(self) -> Tag | None:
        return self.document.body


class MatchStrategy:
    """Base class for a single way of locating a start node."""

    name = "strategy"

    def find(self, context: AnchorContext, node: TocNode, position: int) -> Tag | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def promote_empty_anchor(element: Tag) -> Tag:
    """Lift a contentless leading anchor to the element it opens.

    ``<h2><a id="c2"/>Chapter 2</h2>`` resolves to the ``h2`` so that the
    heading stays intact in the slice that starts there.
    """
    current = element
    while (
        current.parent is not None
        and current.parent.name not in ("body", "html", "[document]")
        and not current.get_text(strip=True)
        and not current.find(True)
        and all(
            isinstance(sibling, str) and not sibling.strip()
            for sibling in current.previous_siblings
        )
    ):
        current = current.parent
    return current


class ExactIdMatch(MatchStrategy):
    name = "id"

    def find(self, context, node, position):
        if not node.fragment_original:
            return None
        element = context.document.find(attrs={"id": node.fragment_original})
        return promote_empty_anchor(element) if element is not None else None


class NameMatch(MatchStrategy):
    name = "name"

    def find(self, context, node, position):
        if not node.fragment_original:
            return None
        element = context.document.find(attrs={"name": node.fragment_original})
        return promote_empty_anchor(element) if element is not None else None


class NormalizedMatch(MatchStrategy):
    name = "normalized"

    def find(self, context, node, position):
        if not node.fragment:
            return None
        for element in context.document.find_all(True):
            element_id = element.get("id")
            element_name = element.get("name")
            if isinstance(element_id, str) and normalize_fragment(element_id) == node.fragment:
                return promote_empty_anchor(element)
            if isinstance(element_name, str) and normalize_fragment(element_name) == node.fragment:
                return promote_empty_anchor(element)
        return None


class BodyMatch(MatchStrategy):
    name = "body"

    def find(self, context, node, position):
        return context.body


class TitleHeadingMatch(MatchStrategy):
    name = "title-heading"

    def find(self, context, node, position):
        key = normalize_title(node.title)
        if not key:
            return None
        return context.heading_by_title.get(key)


class NthHeadingMatch(MatchStrategy):
    name = "nth-heading"

    def find(self, context, node, position):
        if not context.headings:
            return None
        return context.headings[min(position, len(context.headings) - 1)]


class NthBodyChildMatch(MatchStrategy):
    name = "nth-body-child"

    def find(self, context, node, position):
        if position < len(context.body_children):
            return context.body_children[position]
        return None


FRAGMENT_STRATEGIES: tuple[MatchStrategy, ...] = (ExactIdMatch(), NameMatch(), NormalizedMatch())
FIRST_NODE_STRATEGIES: tuple[MatchStrategy, ...] = FRAGMENT_STRATEGIES + (BodyMatch(),)
LATER_NODE_STRATEGIES: tuple[MatchStrategy, ...] = FRAGMENT_STRATEGIES + (
    TitleHeadingMatch(),
    NthHeadingMatch(),
    NthBodyChildMatch(),
)


def strategies_for(position: int) -> tuple[MatchStrategy, ...]:
    """Strategies for the entry at *position* within its document's entries."""
    return FIRST_NODE_STRATEGIES if position == 0 else LATER_NODE_STRATEGIES


def find_fragment_element(context: AnchorContext, node: TocNode) -> Tag | None:
    """Element named by the node's fragment, or None."""
    for strategy in FRAGMENT_STRATEGIES:
        element = strategy.find(context, node, 0)
        if element is not None:
            return element
    return None


def candidate_start_nodes(
    context: AnchorContext,
    node: TocNode,
    position: int,
) -> list[tuple[str, Tag]]:
    """Priority-ordered ``(strategy name, element)`` candidates for *node*."""
    candidates: list[tuple[str, Tag]] = []
    for strategy in strategies_for(position):
        element = strategy.find(context, node, position)
        if element is not None:
            candidates.append((strategy.name, element))
    fragment_names = {strategy.name for strategy in FRAGMENT_STRATEGIES}
    if node.fragment and not any(name in fragment_names for name, _ in candidates):
        logger.debug("Fragment '#%s' of '%s' not found", node.fragment_original, node.title)
    return candidates
