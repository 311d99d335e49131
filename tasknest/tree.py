from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from datetime import datetime, timezone

from .errors import EmptyTitle, InvalidParent, NotFound
from .model import Entity, EntityKind, TaskStatus, TreeRow


Prune = Callable[[Entity], bool]


def clean_title(value: str) -> str:
    return " ".join((value or "").split()).strip()


class Forest:
    """Top-level workspaces plus an id -> parent-id index kept in sync on every structural change."""

    def __init__(self, roots: list[Entity] | None = None, *, next_id: int = 1) -> None:
        self.roots: list[Entity] = list(roots or [])
        self.next_id = max(1, int(next_id))
        self._nodes: dict[int, Entity] = {}
        self._parents: dict[int, int | None] = {}
        self.rebuild_index()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Forest):
            return NotImplemented
        return self.next_id == other.next_id and self.roots == other.roots

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._nodes

    def rebuild_index(self) -> None:
        """Recompute the lookup tables; raises ValueError on a duplicate id."""

        self._nodes.clear()
        self._parents.clear()
        stack: list[tuple[Entity, int | None]] = [(node, None) for node in reversed(self.roots)]
        while stack:
            node, parent_id = stack.pop()
            if node.id in self._nodes:
                raise ValueError(f"duplicate id {node.id}")
            self._nodes[node.id] = node
            self._parents[node.id] = parent_id
            stack.extend((child, node.id) for child in reversed(node.children))
        if self._nodes:
            self.next_id = max(self.next_id, max(self._nodes) + 1)

    def _allocate_id(self) -> int:
        nid = self.next_id
        self.next_id += 1
        return nid

    # -------------------- lookups --------------------

    def find(self, entity_id: int) -> Entity:
        node = self._nodes.get(entity_id)
        if node is None:
            raise NotFound(f"no entity with id {entity_id}")
        return node

    def get(self, entity_id: int | None) -> Entity | None:
        if entity_id is None:
            return None
        return self._nodes.get(entity_id)

    def parent_of(self, entity_id: int) -> Entity | None:
        self.find(entity_id)
        parent_id = self._parents.get(entity_id)
        return self._nodes.get(parent_id) if parent_id is not None else None

    def ancestors(self, entity_id: int) -> list[Entity]:
        """Ancestor chain ordered from the root down to the direct parent."""

        chain: list[Entity] = []
        parent = self.parent_of(entity_id)
        while parent is not None:
            chain.append(parent)
            parent = self.get(self._parents.get(parent.id))
        chain.reverse()
        return chain

    def siblings_of(self, entity_id: int) -> list[Entity]:
        parent = self.parent_of(entity_id)
        return parent.children if parent is not None else self.roots

    def is_effectively_archived(self, entity_id: int) -> bool:
        node = self.find(entity_id)
        if node.archived:
            return True
        return any(ancestor.archived for ancestor in self.ancestors(entity_id))

    def workspace_tasks(self, workspace_id: int) -> list[Entity]:
        workspace = self.find(workspace_id)
        return [child for child in workspace.children if child.is_task]

    def entities(self) -> Iterator[Entity]:
        for root in self.roots:
            yield from root.iter_subtree()

    # -------------------- structure --------------------

    def create(
        self,
        parent_id: int | None,
        kind: EntityKind,
        title: str,
        *,
        now: datetime | None = None,
    ) -> Entity:
        cleaned = clean_title(title)
        if parent_id is None:
            if kind is not EntityKind.WORKSPACE:
                raise InvalidParent("tasks need a parent workspace or task")
            siblings = self.roots
        else:
            parent = self._nodes.get(parent_id)
            if parent is None:
                raise InvalidParent(f"no parent with id {parent_id}")
            if not parent.accepts(kind):
                raise InvalidParent(f"a {parent.kind.value} cannot hold a {kind.value}")
            siblings = parent.children
        if not cleaned:
            raise EmptyTitle("title cannot be empty")

        stamp = (now or datetime.now(tz=timezone.utc)).replace(microsecond=0).isoformat()
        node = Entity(
            id=self._allocate_id(),
            kind=kind,
            title=cleaned,
            created_at=stamp,
            status=TaskStatus.TODO if kind is EntityKind.TASK else None,
        )
        siblings.append(node)
        self._nodes[node.id] = node
        self._parents[node.id] = parent_id
        return node

    def rename(self, entity_id: int, title: str) -> Entity:
        node = self.find(entity_id)
        cleaned = clean_title(title)
        if not cleaned:
            raise EmptyTitle("title cannot be empty")
        node.title = cleaned
        return node

    def delete(self, entity_id: int) -> Entity:
        """Detach the entity and its whole subtree; returns the severed subtree."""

        node = self.find(entity_id)
        siblings = self.siblings_of(entity_id)
        index = next(i for i, item in enumerate(siblings) if item.id == entity_id)
        del siblings[index]
        for removed in node.iter_subtree():
            self._nodes.pop(removed.id, None)
            self._parents.pop(removed.id, None)
        return node

    # -------------------- traversal --------------------

    def walk(
        self,
        start: Iterable[Entity] | None = None,
        *,
        kind: EntityKind | None = None,
        prune: Prune | None = None,
        collapsed: bool = False,
        depth: int = 0,
        parents: tuple[Entity, ...] = (),
    ) -> Iterator[TreeRow]:
        """Lazy depth-first traversal yielding rows with depth and ancestor chain.

        `kind` restricts both the yielded rows and the descent to one kind.
        `prune` drops an entity with its subtree. With `collapsed=True` the
        children of entities whose `expanded` flag is off are not visited.
        """

        nodes = self.roots if start is None else start
        for node in nodes:
            if kind is not None and node.kind is not kind:
                continue
            if prune is not None and prune(node):
                continue
            yield TreeRow(node, depth, parents)
            if collapsed and not node.expanded:
                continue
            yield from self.walk(
                node.children,
                kind=kind,
                prune=prune,
                collapsed=collapsed,
                depth=depth + 1,
                parents=(*parents, node),
            )
