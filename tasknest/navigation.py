"""Focus/mode state machine driven by decoded intents.

`reduce` is the whole transition function: it takes the current state, one
intent and the forest, applies any mutation the intent asks for, and returns
the next state together with the effect the shell must carry out (nothing,
save, or save-and-quit). It never touches the file system.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Union

from . import mutations
from .errors import InvalidParent, NotFound, TaskNestError
from .model import Entity, EntityKind, TaskStatus, TreeRow
from .search import filter_rows
from .tree import Forest


PANEL_WORKSPACES = 1
PANEL_ARCHIVED = 2
PANEL_TASKS = 3


class ArchivedVisibility(str, Enum):
    HIDE_SUBTREE = "hide_subtree"
    EXPOSE_IN_ARCHIVE = "expose_in_archive"


class Effect(str, Enum):
    NONE = "none"
    SAVE = "save"
    QUIT = "quit"


# -------------------- states --------------------


@dataclass(frozen=True)
class ViewingWorkspaces:
    cursor: int = 0


@dataclass(frozen=True)
class ViewingArchivedWorkspaces:
    cursor: int = 0


@dataclass(frozen=True)
class ViewingTasks:
    workspace_id: int
    cursor: int = 0


@dataclass(frozen=True)
class Searching:
    previous: "ListState"
    query: str = ""
    cursor: int = 0


@dataclass(frozen=True)
class Help:
    previous: "NavState"


@dataclass(frozen=True)
class ConfirmingDelete:
    previous: "ListState"
    target_id: int


@dataclass(frozen=True)
class Exited:
    pass


TopLevelState = Union[ViewingWorkspaces, ViewingArchivedWorkspaces, ViewingTasks]
ListState = Union[ViewingWorkspaces, ViewingArchivedWorkspaces, ViewingTasks, Searching]
NavState = Union[ViewingWorkspaces, ViewingArchivedWorkspaces, ViewingTasks, Searching, Help, ConfirmingDelete, Exited]

_TOP_LEVEL = (ViewingWorkspaces, ViewingArchivedWorkspaces, ViewingTasks)
_LIST_STATES = (*_TOP_LEVEL, Searching)


# -------------------- intents --------------------


@dataclass(frozen=True)
class SwitchPanel:
    panel: int


@dataclass(frozen=True)
class MoveCursor:
    delta: int


@dataclass(frozen=True)
class Enter:
    workspace_id: int


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class AddItem:
    title: str


@dataclass(frozen=True)
class AddChildItem:
    title: str


@dataclass(frozen=True)
class RequestDelete:
    entity_id: int


@dataclass(frozen=True)
class ConfirmDelete:
    pass


@dataclass(frozen=True)
class CancelDelete:
    pass


@dataclass(frozen=True)
class Rename:
    entity_id: int
    title: str


@dataclass(frozen=True)
class SetStatus:
    entity_id: int
    status: TaskStatus


@dataclass(frozen=True)
class SetDueDate:
    entity_id: int
    raw: str


@dataclass(frozen=True)
class ClearDueDate:
    entity_id: int


@dataclass(frozen=True)
class Archive:
    workspace_id: int


@dataclass(frozen=True)
class Recover:
    workspace_id: int


@dataclass(frozen=True)
class ToggleExpand:
    entity_id: int


@dataclass(frozen=True)
class OpenSearch:
    pass


@dataclass(frozen=True)
class UpdateQuery:
    query: str


@dataclass(frozen=True)
class OpenHelp:
    pass


@dataclass(frozen=True)
class Save:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Intent = Union[
    SwitchPanel, MoveCursor, Enter, Back, AddItem, AddChildItem, RequestDelete, ConfirmDelete,
    CancelDelete, Rename, SetStatus, SetDueDate, ClearDueDate, Archive, Recover, ToggleExpand,
    OpenSearch, UpdateQuery, OpenHelp, Save, Quit,
]


@dataclass(frozen=True)
class Outcome:
    error: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class Step:
    state: NavState
    effect: Effect = Effect.NONE
    outcome: Outcome = Outcome()
    changed: bool = False


# -------------------- visible rows --------------------


def _active_prune(node: Entity) -> bool:
    return node.archived


def _archived_rows(forest: Forest, policy: ArchivedVisibility, query: str) -> list[TreeRow]:
    if policy is ArchivedVisibility.EXPOSE_IN_ARCHIVE:
        roots = [
            row.entity
            for row in forest.walk(kind=EntityKind.WORKSPACE)
            if row.entity.archived and not any(parent.archived for parent in row.parents)
        ]
        return list(filter_rows(forest, query, start=roots, kind=EntityKind.WORKSPACE, collapsed=True))

    flagged = [row for row in forest.walk(kind=EntityKind.WORKSPACE) if row.entity.archived]
    rows: list[TreeRow] = []
    for row in flagged:
        matched = list(filter_rows(forest, query, start=[row.entity], kind=EntityKind.WORKSPACE))
        if matched:
            rows.append(TreeRow(row.entity, 0, row.parents))
    return rows


def _base_rows(state: TopLevelState, forest: Forest, policy: ArchivedVisibility, query: str) -> list[TreeRow]:
    if isinstance(state, ViewingWorkspaces):
        return list(
            filter_rows(forest, query, kind=EntityKind.WORKSPACE, prune=_active_prune, collapsed=True)
        )
    if isinstance(state, ViewingArchivedWorkspaces):
        return _archived_rows(forest, policy, query)
    workspace = forest.get(state.workspace_id)
    if workspace is None:
        return []
    tasks = forest.workspace_tasks(workspace.id)
    return list(filter_rows(forest, query, start=tasks, kind=EntityKind.TASK, collapsed=True))


def list_state(state: NavState) -> ListState | None:
    """The list-bearing state whose rows are on screen for `state`."""

    if isinstance(state, _LIST_STATES):
        return state
    if isinstance(state, (Help, ConfirmingDelete)):
        return list_state(state.previous)
    return None


def top_level_state(state: NavState) -> TopLevelState | None:
    current = list_state(state)
    if isinstance(current, Searching):
        return current.previous
    return current


def visible_rows(
    state: NavState,
    forest: Forest,
    *,
    policy: ArchivedVisibility = ArchivedVisibility.HIDE_SUBTREE,
) -> list[TreeRow]:
    current = list_state(state)
    if current is None:
        return []
    if isinstance(current, Searching):
        return _base_rows(current.previous, forest, policy, current.query)
    return _base_rows(current, forest, policy, "")


def cursor_of(state: NavState) -> int:
    current = list_state(state)
    return current.cursor if current is not None else 0


def selected_row(
    state: NavState,
    forest: Forest,
    *,
    policy: ArchivedVisibility = ArchivedVisibility.HIDE_SUBTREE,
) -> TreeRow | None:
    rows = visible_rows(state, forest, policy=policy)
    if not rows:
        return None
    return rows[_clamp(cursor_of(state), len(rows))]


def _clamp(cursor: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(cursor, count - 1))


def _locate(rows: list[TreeRow], candidates: list[int | None]) -> int:
    ids = [row.id for row in rows]
    for candidate in candidates:
        if candidate is not None and candidate in ids:
            return ids.index(candidate)
    return 0


def _fallback_ids(forest: Forest, entity_id: int) -> list[int | None]:
    """Previous siblings nearest first, then the parent."""

    siblings = forest.siblings_of(entity_id)
    index = next(i for i, item in enumerate(siblings) if item.id == entity_id)
    candidates: list[int | None] = [item.id for item in reversed(siblings[:index])]
    parent = forest.parent_of(entity_id)
    candidates.append(parent.id if parent is not None else None)
    return candidates


def _with_cursor(state: ListState, cursor: int) -> ListState:
    return replace(state, cursor=cursor)


def _normalize(state: ListState, forest: Forest) -> ListState:
    """Leave a task view whose workspace vanished or got archived."""

    base = state.previous if isinstance(state, Searching) else state
    if isinstance(base, ViewingTasks):
        if base.workspace_id not in forest or forest.is_effectively_archived(base.workspace_id):
            return ViewingWorkspaces()
    return state


# -------------------- reducer --------------------


def reduce(
    state: NavState,
    intent: Intent,
    forest: Forest,
    *,
    policy: ArchivedVisibility = ArchivedVisibility.HIDE_SUBTREE,
    now: datetime | None = None,
) -> Step:
    try:
        return _reduce(state, intent, forest, policy, now)
    except TaskNestError as exc:
        return Step(state, Effect.NONE, Outcome(error=exc.kind, message=str(exc)))


def _ignored(state: NavState, message: str) -> Step:
    return Step(state, Effect.NONE, Outcome(message=message))


def _reduce(
    state: NavState,
    intent: Intent,
    forest: Forest,
    policy: ArchivedVisibility,
    now: datetime | None,
) -> Step:
    if isinstance(state, Exited):
        return _ignored(state, "")

    if isinstance(intent, Quit):
        if isinstance(state, ConfirmingDelete):
            return _ignored(state, "confirm or cancel the pending delete first")
        return Step(Exited(), Effect.QUIT, Outcome(message="Bye"))

    if isinstance(intent, Save):
        return Step(state, Effect.SAVE)

    if isinstance(state, ConfirmingDelete):
        return _reduce_confirming(state, intent, forest, policy)

    if isinstance(state, Help):
        if isinstance(intent, Back):
            return Step(state.previous)
        return _ignored(state, "press back to leave help")

    if isinstance(intent, OpenHelp):
        return Step(Help(previous=state))

    if isinstance(intent, Back):
        if isinstance(state, Searching):
            previous = _normalize(state.previous, forest)
            rows = visible_rows(previous, forest, policy=policy)
            return Step(_with_cursor(previous, _clamp(previous.cursor, len(rows))))
        if isinstance(state, ViewingTasks):
            rows = visible_rows(ViewingWorkspaces(), forest, policy=policy)
            return Step(ViewingWorkspaces(cursor=_locate(rows, [state.workspace_id])))
        return _ignored(state, "")

    if isinstance(intent, SwitchPanel):
        return _switch_panel(state, intent.panel, forest, policy)

    if isinstance(intent, MoveCursor):
        rows = visible_rows(state, forest, policy=policy)
        return Step(_with_cursor(state, _clamp(cursor_of(state) + int(intent.delta), len(rows))))

    if isinstance(intent, Enter):
        return _enter(state, intent.workspace_id, forest, policy)

    if isinstance(intent, OpenSearch):
        if isinstance(state, Searching):
            return _ignored(state, "")
        return Step(Searching(previous=state))

    if isinstance(intent, UpdateQuery):
        if not isinstance(state, Searching):
            return _ignored(state, "open search first")
        return Step(replace(state, query=intent.query, cursor=0))

    if isinstance(intent, RequestDelete):
        target = forest.find(intent.entity_id)
        return Step(
            ConfirmingDelete(previous=state, target_id=target.id),
            outcome=Outcome(message=f"Delete {target.title!r} and {target.subtree_size() - 1} nested item(s)?"),
        )

    if isinstance(intent, (ConfirmDelete, CancelDelete)):
        return _ignored(state, "nothing to confirm")

    return _reduce_mutation(state, intent, forest, policy, now)


def _reduce_confirming(
    state: ConfirmingDelete,
    intent: Intent,
    forest: Forest,
    policy: ArchivedVisibility,
) -> Step:
    if isinstance(intent, (CancelDelete, Back)):
        return Step(state.previous, outcome=Outcome(message="Delete cancelled"))
    if not isinstance(intent, ConfirmDelete):
        return _ignored(state, "confirm or cancel the pending delete first")

    previous = state.previous
    target_id = state.target_id
    if target_id not in forest:
        return Step(previous, outcome=Outcome(error=NotFound.kind, message=f"no entity with id {target_id}"))
    removed_holder: list[Entity] = []

    def action() -> int | None:
        removed_holder.append(mutations.delete(forest, target_id))
        return None

    step = _apply(previous, forest, policy, action, anchor_id=target_id, message="")
    return replace(step, outcome=_deleted_outcome(removed_holder[0]))


def _deleted_outcome(removed: Entity) -> Outcome:
    count = removed.subtree_size()
    return Outcome(message=f"Deleted {removed.title!r} ({count} item{'s' if count != 1 else ''})")


def _switch_panel(state: NavState, panel: int, forest: Forest, policy: ArchivedVisibility) -> Step:
    if not isinstance(state, _TOP_LEVEL):
        return _ignored(state, "leave search first")
    if panel == PANEL_WORKSPACES:
        if isinstance(state, ViewingWorkspaces):
            return Step(state)
        rows = visible_rows(ViewingWorkspaces(), forest, policy=policy)
        anchor = state.workspace_id if isinstance(state, ViewingTasks) else None
        return Step(ViewingWorkspaces(cursor=_locate(rows, [anchor])))
    if panel == PANEL_ARCHIVED:
        if isinstance(state, ViewingArchivedWorkspaces):
            return Step(state)
        return Step(ViewingArchivedWorkspaces())
    if panel == PANEL_TASKS:
        if isinstance(state, ViewingTasks):
            return Step(state)
        row = selected_row(state, forest, policy=policy)
        if row is None:
            return _ignored(state, "select a workspace first")
        return _enter(ViewingWorkspaces(), row.id, forest, policy, origin=state)
    return _ignored(state, f"no panel {panel}")


def _enter(
    state: NavState,
    workspace_id: int,
    forest: Forest,
    policy: ArchivedVisibility,
    *,
    origin: NavState | None = None,
) -> Step:
    origin = origin or state
    base = state.previous if isinstance(state, Searching) else state
    if not isinstance(base, ViewingWorkspaces):
        return _ignored(origin, "")
    workspace = forest.get(workspace_id)
    if workspace is None or not workspace.is_workspace:
        return _ignored(origin, "no such workspace")
    if forest.is_effectively_archived(workspace_id):
        return _ignored(origin, f"{workspace.title!r} is archived")
    return Step(ViewingTasks(workspace_id=workspace_id))


def _apply(
    state: ListState,
    forest: Forest,
    policy: ArchivedVisibility,
    action: Callable[[], int | None],
    *,
    anchor_id: int | None = None,
    message: str,
) -> Step:
    """Run a mutation and move the cursor so it keeps tracking the selection.

    If the selected row disappears from the view, the cursor lands on the
    nearest previous sibling still visible, else on the parent, else on 0.
    `anchor_id` names the entity the mutation removes from view; when the
    selection sits inside it, the fallback is computed from the anchor.
    """

    rows = visible_rows(state, forest, policy=policy)
    selected = rows[_clamp(state.cursor, len(rows))] if rows else None
    candidates: list[int | None] = []
    if selected is not None:
        pivot = selected.id
        if anchor_id is not None and anchor_id in forest:
            chain = {entity.id for entity in forest.ancestors(selected.id)}
            if anchor_id == selected.id or anchor_id in chain:
                pivot = anchor_id
        candidates = [selected.id, *_fallback_ids(forest, pivot)]

    focus_id = action()

    next_state = _normalize(state, forest)
    new_rows = visible_rows(next_state, forest, policy=policy)
    cursor = _locate(new_rows, [focus_id, *candidates])
    return Step(_with_cursor(next_state, cursor), Effect.NONE, Outcome(message=message), changed=True)


def _discard(call: Callable[[], object]) -> Callable[[], None]:
    def run() -> None:
        call()

    return run


def _reduce_mutation(
    state: ListState,
    intent: Intent,
    forest: Forest,
    policy: ArchivedVisibility,
    now: datetime | None,
) -> Step:
    base = state.previous if isinstance(state, Searching) else state

    if isinstance(intent, (AddItem, AddChildItem)):
        if isinstance(base, ViewingArchivedWorkspaces):
            raise InvalidParent("archived workspaces take no new items")
        parent: Entity | None = None
        if isinstance(intent, AddChildItem):
            row = selected_row(state, forest, policy=policy)
            parent = row.entity if row is not None else None
        if parent is None and isinstance(base, ViewingTasks):
            parent = forest.find(base.workspace_id)
        kind = EntityKind.TASK if isinstance(base, ViewingTasks) else EntityKind.WORKSPACE
        label = "Task" if kind is EntityKind.TASK else "Workspace"

        def add() -> int:
            created = forest.create(parent.id if parent is not None else None, kind, intent.title, now=now)
            if parent is not None:
                parent.expanded = True
            return created.id

        return _apply(state, forest, policy, add, message=f"{label} added")

    if isinstance(intent, Rename):
        action = _discard(partial(mutations.rename, forest, intent.entity_id, intent.title))
        return _apply(state, forest, policy, action, message="Renamed")

    if isinstance(intent, SetStatus):
        status = TaskStatus(intent.status)
        action = _discard(partial(mutations.set_status, forest, intent.entity_id, status))
        return _apply(state, forest, policy, action, message=f"Status set to {status.value}")

    if isinstance(intent, SetDueDate):
        due = mutations.set_due_date(forest, intent.entity_id, intent.raw, now=now)
        return _apply(state, forest, policy, lambda: None, message=f"Due {due.isoformat()}")

    if isinstance(intent, ClearDueDate):
        action = _discard(partial(mutations.clear_due_date, forest, intent.entity_id))
        return _apply(state, forest, policy, action, message="Due date cleared")

    if isinstance(intent, (Archive, Recover)):
        flip = mutations.archive if isinstance(intent, Archive) else mutations.recover
        flipped: list[bool] = []

        def toggle_archived() -> None:
            flipped.append(flip(forest, intent.workspace_id))

        step = _apply(state, forest, policy, toggle_archived, anchor_id=intent.workspace_id, message="")
        if isinstance(intent, Archive):
            message = "Archived" if flipped[0] else "Already archived"
        else:
            message = "Recovered" if flipped[0] else "Not archived"
        return replace(step, outcome=Outcome(message=message), changed=flipped[0])

    if isinstance(intent, ToggleExpand):
        action = _discard(partial(mutations.toggle_expanded, forest, intent.entity_id))
        return _apply(state, forest, policy, action, message="")

    raise TypeError(f"unsupported intent {type(intent).__name__}")


# -------------------- session --------------------


class Session:
    """Owns the forest and the current state for the interactive shell."""

    def __init__(
        self,
        forest: Forest,
        *,
        policy: ArchivedVisibility = ArchivedVisibility.HIDE_SUBTREE,
        state: NavState | None = None,
    ) -> None:
        self.forest = forest
        self.policy = policy
        self.state: NavState = state or ViewingWorkspaces()
        self.last_outcome = Outcome()

    def dispatch(self, intent: Intent, *, now: datetime | None = None) -> Step:
        step = reduce(self.state, intent, self.forest, policy=self.policy, now=now)
        self.state = step.state
        self.last_outcome = step.outcome
        return step

    def rows(self) -> list[TreeRow]:
        return visible_rows(self.state, self.forest, policy=self.policy)

    @property
    def cursor(self) -> int:
        return cursor_of(self.state)

    def selected(self) -> Entity | None:
        row = selected_row(self.state, self.forest, policy=self.policy)
        return row.entity if row is not None else None

    def note(self, outcome: Outcome) -> None:
        self.last_outcome = outcome

    @property
    def exited(self) -> bool:
        return isinstance(self.state, Exited)
