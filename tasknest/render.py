from __future__ import annotations

from datetime import date

from .due import DEFAULT_SOON_DAYS, due_countdown
from .model import EntityKind, TaskStatus, TreeRow
from .navigation import (
    ConfirmingDelete,
    Exited,
    Help,
    NavState,
    Outcome,
    Searching,
    ViewingArchivedWorkspaces,
    ViewingTasks,
    ViewingWorkspaces,
)
from .tree import Forest


STATUS_MARKS = {
    TaskStatus.TODO: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.DEPRECATED: "[-]",
}
FOLD_OPEN = "v"
FOLD_CLOSED = ">"

KEY_HINTS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "General",
        (
            ("1 / 2 / 3", "workspaces / archived / tasks panel"),
            ("j k / arrows", "move cursor"),
            ("/", "search the current panel"),
            ("?", "this help"),
            ("esc", "back"),
            ("s", "save"),
            ("q", "save and quit"),
        ),
    ),
    (
        "Workspaces",
        (
            ("enter", "open the workspace's tasks"),
            ("a", "add workspace"),
            ("i", "add sub-workspace"),
            ("r", "rename"),
            ("x", "delete (asks y/n)"),
            ("A", "archive"),
            ("space", "fold / unfold"),
        ),
    ),
    (
        "Tasks",
        (
            ("a", "add task"),
            ("i", "add subtask"),
            ("r", "rename"),
            ("x", "delete (asks y/n)"),
            ("t p c d", "todo / in progress / completed / deprecated"),
            ("D", "due date: YYYY-MM-DD, '3 days', '2 weeks', '1 month', today, tomorrow; empty clears"),
            ("space", "fold / unfold"),
        ),
    ),
    (
        "Archived",
        (
            ("R", "recover"),
            ("x", "delete (asks y/n)"),
        ),
    ),
)


def help_text() -> str:
    lines: list[str] = []
    for section, hints in KEY_HINTS:
        lines.append(section)
        for key, detail in hints:
            lines.append(f"  {key:<14}{detail}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def format_row(
    row: TreeRow,
    *,
    today: date,
    selected: bool = False,
    soon_days: int = DEFAULT_SOON_DAYS,
) -> str:
    entity = row.entity
    pointer = ">" if selected else " "
    fold = " "
    if entity.children:
        fold = FOLD_OPEN if entity.expanded else FOLD_CLOSED
    parts = [f"{pointer} {'  ' * row.depth}{fold} "]
    if entity.kind is EntityKind.TASK:
        parts.append(f"{STATUS_MARKS.get(entity.status or TaskStatus.TODO, '[ ]')} ")
    parts.append(entity.title)
    if entity.archived:
        parts.append("  (archived)")
    if entity.kind is EntityKind.TASK and entity.due_date is not None:
        countdown = due_countdown(entity.due_date, today, entity.status, soon_days=soon_days)
        suffix = entity.due_date.isoformat()
        if countdown is not None:
            suffix = f"{suffix}, {countdown.label}"
        parts.append(f"  (due {suffix})")
    return "".join(parts)


def format_rows(
    rows: list[TreeRow],
    cursor: int,
    *,
    today: date,
    soon_days: int = DEFAULT_SOON_DAYS,
    empty: str = "(empty)",
) -> str:
    if not rows:
        return empty
    return "\n".join(
        format_row(row, today=today, selected=index == cursor, soon_days=soon_days)
        for index, row in enumerate(rows)
    )


def state_label(state: NavState, forest: Forest) -> str:
    if isinstance(state, ViewingWorkspaces):
        return "workspaces"
    if isinstance(state, ViewingArchivedWorkspaces):
        return "archived"
    if isinstance(state, ViewingTasks):
        workspace = forest.get(state.workspace_id)
        return f"tasks: {workspace.title if workspace else '?'}"
    if isinstance(state, Searching):
        return f"{state_label(state.previous, forest)} | search: {state.query}"
    if isinstance(state, Help):
        return "help"
    if isinstance(state, ConfirmingDelete):
        target = forest.get(state.target_id)
        return f"delete {target.title if target else '?'}? (y/n)"
    if isinstance(state, Exited):
        return "bye"
    return ""


def status_line(state: NavState, forest: Forest, outcome: Outcome) -> str:
    label = state_label(state, forest)
    if outcome.error:
        return f"{label} | {outcome.error}: {outcome.message}"
    if outcome.message:
        return f"{label} | {outcome.message}"
    return label


def outline(forest: Forest, *, archived: bool = False, today: date | None = None) -> str:
    """Plain indented outline of the whole forest, tasks included."""

    today = today or date.today()
    lines: list[str] = []
    prune = None if archived else (lambda node: node.archived)
    for row in forest.walk(prune=prune):
        lines.append(format_row(row, today=today).rstrip())
    return "\n".join(lines) if lines else "(no workspaces)"
