from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class EntityKind(str, Enum):
    WORKSPACE = "workspace"
    TASK = "task"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DEPRECATED = "deprecated"


OPEN_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS})

_STATUS_ALIASES = {
    "todo": TaskStatus.TODO,
    "t": TaskStatus.TODO,
    "in_progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "ip": TaskStatus.IN_PROGRESS,
    "p": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
    "c": TaskStatus.COMPLETED,
    "deprecated": TaskStatus.DEPRECATED,
    "d": TaskStatus.DEPRECATED,
}


def parse_status(value: str) -> TaskStatus | None:
    return _STATUS_ALIASES.get(" ".join((value or "").split()).lower())


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


@dataclass
class Entity:
    """One node of the forest.

    Workspaces use `archived` and ignore `status`/`due_date`; tasks use
    `status`/`due_date` and never carry `archived=True`.
    """

    id: int
    kind: EntityKind
    title: str
    created_at: str
    children: list[Entity] = field(default_factory=list)
    status: TaskStatus | None = None
    due_date: date | None = None
    archived: bool = False
    expanded: bool = True

    @property
    def is_task(self) -> bool:
        return self.kind is EntityKind.TASK

    @property
    def is_workspace(self) -> bool:
        return self.kind is EntityKind.WORKSPACE

    def accepts(self, kind: EntityKind) -> bool:
        if self.is_workspace:
            return True
        return kind is EntityKind.TASK

    def subtree_size(self) -> int:
        return 1 + sum(child.subtree_size() for child in self.children)

    def iter_subtree(self):
        yield self
        for child in self.children:
            yield from child.iter_subtree()


@dataclass(frozen=True)
class TreeRow:
    entity: Entity
    depth: int
    parents: tuple[Entity, ...]

    @property
    def id(self) -> int:
        return self.entity.id

    @property
    def breadcrumb(self) -> str:
        return " / ".join([*(p.title for p in self.parents), self.entity.title])
