"""Table of contents flattening.

Walks the hierarchical TOC depth-first, pre-order, and produces one
``TocNode`` per reference with its nesting level, resolved resource and a
strictly increasing ``order``.
"""

import logging
import posixpath
from collections.abc import Iterable

from .model import Resource, TocNode, TocReference
from .paths import normalize_fragment, normalize_path, split_href

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


class ResourceIndex:
    """Lookup of book resources by normalized path.

    Falls back to a basename match when exactly one resource carries that
    basename, which rescues TOCs written relative to another directory.
    """

    def __init__(self, resources: Iterable[Resource]):
        self._by_path: dict[str, Resource] = {}
        self._by_basename: dict[str, list[Resource]] = {}
        for resource in resources:
            path = normalize_path(resource.href)
            if path is None:
                continue
            self._by_path.setdefault(path, resource)
            self._by_basename.setdefault(posixpath.basename(path), []).append(resource)

    def get(self, path: str | None) -> Resource | None:
        """Return the resource for a normalized path, or None."""
        if not path:
            return None
        resource = self._by_path.get(path)
        if resource is not None:
            return resource
        candidates = self._by_basename.get(posixpath.basename(path), [])
        if len(candidates) == 1:
            logger.debug("Resolved '%s' by basename to '%s'", path, candidates[0].href)
            return candidates[0]
        return None

    def path_of(self, resource: Resource) -> str | None:
        return normalize_path(resource.href)

    def __len__(self) -> int:
        return len(self._by_path)

    def __bool__(self) -> bool:
        return bool(self._by_path)


def _resolve_title(reference: TocReference) -> str:
    if reference.title and reference.title.strip():
        return reference.title.strip()
    if reference.resource is not None and reference.resource.title:
        return reference.resource.title
    return UNTITLED


def flatten_toc(
    references: Iterable[TocReference],
    resources: ResourceIndex | None = None,
) -> list[TocNode]:
    """Flatten a TOC tree into traversal-ordered nodes.

    Args:
        references: Root references of the TOC
        resources: Index used to resolve hrefs the container left unresolved

    Returns:
        Flat list of TocNode; roots have level 0, ``order`` counts from 0
    """
    nodes: list[TocNode] = []
    index = resources or ResourceIndex(())

    def walk(refs: Iterable[TocReference], level: int) -> None:
        for reference in refs:
            own_href = reference.resource.href if reference.resource is not None else None
            parts = split_href(reference.href or own_href)
            fragment_original = parts.fragment.strip() if parts.fragment else None
            resource_path = normalize_path(parts.path) or normalize_path(own_href)

            resource = reference.resource
            if resource is None:
                resource = index.get(resource_path)
            if resource is not None and resource_path is not None:
                # Canonical key so that every node of one document groups together.
                resource_path = index.path_of(resource) or resource_path

            nodes.append(
                TocNode(
                    title=_resolve_title(reference),
                    level=level,
                    resource_path=resource_path,
                    fragment=normalize_fragment(fragment_original),
                    fragment_original=fragment_original or None,
                    resource=resource,
                    order=len(nodes),
                )
            )
            walk(reference.children, level + 1)

    walk(references, 0)
    return nodes
