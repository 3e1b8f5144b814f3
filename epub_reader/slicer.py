"""Carving several chapters out of one XHTML document.

EPUB TOCs often point several entries at fragments of the same file. For each
such file the slicer assigns every entry a distinct start node and emits the
HTML found walking forward in document order from that start node up to the
next entry's start node.

Document order walk: a node, then its next sibling, or when there is none,
the next sibling of the nearest ancestor that has one. A node that contains
the stop node is entered rather than emitted whole so slices never overlap.
"""

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement

from .anchors import AnchorContext, candidate_start_nodes
from .model import TocNode

logger = logging.getLogger(__name__)


class NodeArena:
    """Document-order positions for every node of one parsed document.

    bs4 compares tags structurally, so two identical ``<p>`` elements are
    "equal". Claims and stop checks go through these positions instead,
    which are unique per node for as long as the pass holds the document.
    """

    def __init__(self, document: BeautifulSoup):
        self.document = document
        self._positions = {id(node): index for index, node in enumerate(document.descendants)}

    def position(self, node: PageElement) -> int | None:
        return self._positions.get(id(node))

    def __len__(self) -> int:
        return len(self._positions)


@dataclass
class ClaimSet:
    """Nodes already used as a start node within one document."""

    arena: NodeArena
    _claimed: set[int] = field(default_factory=set)

    def claim(self, node: PageElement) -> bool:
        """Claim *node*; False if an earlier entry already holds it."""
        key = self.arena.position(node)
        if key is None:
            key = -1 - id(node)
        if key in self._claimed:
            return False
        self._claimed.add(key)
        return True

    def __contains__(self, node: PageElement) -> bool:
        return self.arena.position(node) in self._claimed

    def __len__(self) -> int:
        return len(self._claimed)


def next_node(node: PageElement) -> PageElement | None:
    """The node after *node*'s subtree in document order, or None at the end."""
    current = node
    while current is not None:
        sibling = current.next_sibling
        if sibling is not None:
            return sibling
        current = current.parent
    return None


def is_ancestor(candidate: PageElement, node: PageElement) -> bool:
    return any(parent is candidate for parent in node.parents)


def outer_html(node: PageElement) -> str:
    """Markup for *node* including its own tag; text is HTML-escaped."""
    if isinstance(node, Tag):
        return node.decode()
    if isinstance(node, NavigableString):
        return node.output_ready(formatter="minimal")
    return str(node)


def ensure_unique_start(candidate: PageElement | None, claims: ClaimSet) -> PageElement | None:
    """Claim *candidate*, or the first unclaimed node after it in document order."""
    current = candidate
    while current is not None:
        if claims.claim(current):
            return current
        current = next_node(current)
    return None


def resolve_start_nodes(
    context: AnchorContext,
    sequence: list[TocNode],
    arena: NodeArena | None = None,
) -> list[PageElement | None]:
    """Assign a distinct start node to every entry of one document.

    Args:
        context: Lookups for the parsed document
        sequence: Entries pointing at this document, sorted by ``order``
        arena: Node positions; built from the document when omitted

    Returns:
        One start node per entry, None where nothing could be resolved
    """
    claims = ClaimSet(arena or NodeArena(context.document))
    start_nodes: list[PageElement | None] = []

    for position, node in enumerate(sequence):
        resolved = None
        strategy = None
        for strategy, candidate in candidate_start_nodes(context, node, position):
            resolved = ensure_unique_start(candidate, claims)
            if resolved is not None:
                break
        if resolved is None:
            logger.warning("No start node for '%s' in %s", node.title, node.resource_path)
        else:
            logger.debug(
                "'%s' starts at <%s> via %s",
                node.title,
                getattr(resolved, "name", None) or "#text",
                strategy,
            )
        start_nodes.append(resolved)

    return start_nodes


def collect_until_next_start(start: PageElement, next_start: PageElement | None) -> str:
    """Concatenate outer HTML from *start* up to, not including, *next_start*."""
    parts: list[str] = []
    current: PageElement | None = start
    while current is not None:
        if current is next_start:
            break
        if next_start is not None and isinstance(current, Tag) and is_ancestor(current, next_start):
            # Enter the container; its leading children belong here, the rest to the next slice.
            current = current.contents[0]
            continue
        parts.append(outer_html(current))
        current = next_node(current)
    return "".join(parts)


@dataclass
class ResourceSlice:
    """All TOC entries that point into one document, with their start nodes.

    Lives for a single extraction pass.
    """

    document: BeautifulSoup
    sequence: list[TocNode]
    start_nodes: list[PageElement | None]

    def position_of(self, node: TocNode) -> int:
        for position, candidate in enumerate(self.sequence):
            if candidate.order == node.order:
                return position
        return -1

    def next_start(self, position: int) -> PageElement | None:
        """Start node of the first later entry that resolved."""
        for start in self.start_nodes[position + 1:]:
            if start is not None:
                return start
        return None

    def slice_html(self, node: TocNode) -> str:
        """Raw HTML belonging to *node*; empty when it has no start node."""
        position = self.position_of(node)
        if position < 0:
            return ""
        start = self.start_nodes[position]
        if start is None:
            return ""
        return collect_until_next_start(start, self.next_start(position))


def build_resource_slice(document: BeautifulSoup, sequence: list[TocNode]) -> ResourceSlice:
    """Resolve start nodes for *sequence* (sorted by order) in *document*."""
    ordered = sorted(sequence, key=lambda node: node.order)
    context = AnchorContext.for_document(document)
    start_nodes = resolve_start_nodes(context, ordered, NodeArena(document))
    return ResourceSlice(document=document, sequence=ordered, start_nodes=start_nodes)
