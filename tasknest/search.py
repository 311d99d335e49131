from __future__ import annotations

from collections.abc import Iterable, Iterator

from .model import Entity, EntityKind, TreeRow
from .tree import Forest, Prune


def normalize_query(query: str) -> str:
    return (query or "").casefold()


def title_matches(entity: Entity, needle: str) -> bool:
    return needle in entity.title.casefold()


def _matching_ids(nodes: Iterable[Entity], needle: str, prune: Prune | None) -> set[int]:
    keep: set[int] = set()

    def visit(node: Entity) -> bool:
        if prune is not None and prune(node):
            return False
        hit = title_matches(node, needle)
        for child in node.children:
            if visit(child):
                hit = True
        if hit:
            keep.add(node.id)
        return hit

    for node in nodes:
        visit(node)
    return keep


def filter_rows(
    forest: Forest,
    query: str,
    *,
    start: Iterable[Entity] | None = None,
    kind: EntityKind | None = None,
    prune: Prune | None = None,
    collapsed: bool = False,
) -> Iterator[TreeRow]:
    """Rows whose title, or any descendant's title, contains the query.

    Order is the plain depth-first order. An empty query is the unfiltered
    walk. Descendant matching always looks at every kind below a node, so a
    workspace stays visible when one of its tasks matches.
    """

    nodes = list(forest.roots if start is None else start)
    needle = normalize_query(query)
    if not needle:
        yield from forest.walk(nodes, kind=kind, prune=prune, collapsed=collapsed)
        return
    keep = _matching_ids(nodes, needle, prune)
    for row in forest.walk(nodes, kind=kind, prune=prune):
        if row.id in keep:
            yield row


def filter_forest(forest: Forest, query: str) -> Iterator[Entity]:
    for row in filter_rows(forest, query):
        yield row.entity
