"""Domain rules layered over the forest.

Every function validates before touching anything, so a raised error always
leaves the forest exactly as it was.
"""

from __future__ import annotations

from datetime import date, datetime

from .due import resolve_due_date
from .errors import NotATask, NotAWorkspace
from .model import Entity, EntityKind, TaskStatus
from .tree import Forest


def _require_task(forest: Forest, task_id: int) -> Entity:
    node = forest.find(task_id)
    if not node.is_task:
        raise NotATask(f"{node.title!r} is a workspace")
    return node


def _require_workspace(forest: Forest, workspace_id: int) -> Entity:
    node = forest.find(workspace_id)
    if not node.is_workspace:
        raise NotAWorkspace(f"{node.title!r} is a task")
    return node


def add_workspace(forest: Forest, title: str, *, parent_id: int | None = None, now: datetime | None = None) -> Entity:
    return forest.create(parent_id, EntityKind.WORKSPACE, title, now=now)


def add_task(forest: Forest, parent_id: int, title: str, *, now: datetime | None = None) -> Entity:
    return forest.create(parent_id, EntityKind.TASK, title, now=now)


def rename(forest: Forest, entity_id: int, title: str) -> Entity:
    return forest.rename(entity_id, title)


def delete(forest: Forest, entity_id: int) -> Entity:
    return forest.delete(entity_id)


def set_status(forest: Forest, task_id: int, status: TaskStatus) -> Entity:
    node = _require_task(forest, task_id)
    node.status = TaskStatus(status)
    return node


def archive(forest: Forest, workspace_id: int) -> bool:
    """Flag the workspace archived; returns False when it already was."""

    node = _require_workspace(forest, workspace_id)
    if node.archived:
        return False
    node.archived = True
    return True


def recover(forest: Forest, workspace_id: int) -> bool:
    node = _require_workspace(forest, workspace_id)
    if not node.archived:
        return False
    node.archived = False
    return True


def set_due_date(forest: Forest, task_id: int, raw: str, *, now: datetime | date | None = None) -> date:
    node = _require_task(forest, task_id)
    due = resolve_due_date(raw, now=now)
    node.due_date = due
    return due


def clear_due_date(forest: Forest, task_id: int) -> Entity:
    node = _require_task(forest, task_id)
    node.due_date = None
    return node


def toggle_expanded(forest: Forest, entity_id: int) -> bool:
    node = forest.find(entity_id)
    node.expanded = not node.expanded
    return node.expanded
