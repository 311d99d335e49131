"""Glue between decoded keys, the reducer and persistence.

Everything here runs without a terminal; the Textual app only forwards key
tokens and prompt submissions and repaints from the session afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from . import storage
from .applog import AppLog
from .errors import IoFailure
from .model import parse_status
from .navigation import (
    AddChildItem,
    AddItem,
    Archive,
    Back,
    CancelDelete,
    ClearDueDate,
    ConfirmDelete,
    ConfirmingDelete,
    Effect,
    Enter,
    Exited,
    Help,
    Intent,
    MoveCursor,
    OpenHelp,
    OpenSearch,
    Outcome,
    Quit,
    Recover,
    Rename,
    RequestDelete,
    Save,
    Searching,
    Session,
    SetDueDate,
    SetStatus,
    Step,
    SwitchPanel,
    ToggleExpand,
    UpdateQuery,
    ViewingArchivedWorkspaces,
    ViewingWorkspaces,
    top_level_state,
)


class PromptKind(str, Enum):
    ADD = "add"
    ADD_CHILD = "add_child"
    RENAME = "rename"
    DUE = "due"
    SEARCH = "search"


@dataclass(frozen=True)
class PromptRequest:
    kind: PromptKind
    label: str
    target_id: int | None = None
    initial: str = ""


STATUS_KEYS = {key: parse_status(key) for key in ("t", "p", "c", "d")}
BACK_KEYS = {"escape", "h", "left"}
ENTER_KEYS = {"enter", "l", "right"}


def intent_for_key(token: str, session: Session) -> Intent | PromptRequest | None:
    """Map one key token (a character, or a key name such as `escape`) to an action."""

    state = session.state
    if isinstance(state, Exited):
        return None
    if isinstance(state, ConfirmingDelete):
        if token == "y":
            return ConfirmDelete()
        if token in {"n", "escape"}:
            return CancelDelete()
        return None
    if token == "q":
        return Quit()
    if token == "s":
        return Save()
    if isinstance(state, Help):
        if token in BACK_KEYS or token == "?":
            return Back()
        return None

    if token in BACK_KEYS:
        return Back()
    if token == "?":
        return OpenHelp()
    if token in {"1", "2", "3"}:
        return SwitchPanel(int(token))
    if token in {"j", "down"}:
        return MoveCursor(1)
    if token in {"k", "up"}:
        return MoveCursor(-1)
    if token == "/":
        query = state.query if isinstance(state, Searching) else ""
        return PromptRequest(PromptKind.SEARCH, "Search", initial=query)

    base = top_level_state(state)
    selected = session.selected()
    in_workspaces = isinstance(base, ViewingWorkspaces)
    noun = "workspace" if in_workspaces or isinstance(base, ViewingArchivedWorkspaces) else "task"

    if token == "a":
        return PromptRequest(PromptKind.ADD, f"Add {noun}")
    if token == "i":
        return PromptRequest(PromptKind.ADD_CHILD, f"Add sub-{noun}")
    if selected is None:
        return None

    if token in ENTER_KEYS:
        if selected.is_workspace and in_workspaces:
            return Enter(selected.id)
        return ToggleExpand(selected.id)
    if token == "space":
        return ToggleExpand(selected.id)
    if token == "x":
        return RequestDelete(selected.id)
    if token == "r":
        return PromptRequest(PromptKind.RENAME, "Rename", target_id=selected.id, initial=selected.title)
    if token in STATUS_KEYS and selected.is_task:
        return SetStatus(selected.id, STATUS_KEYS[token])
    if token == "D" and selected.is_task:
        initial = selected.due_date.isoformat() if selected.due_date else ""
        return PromptRequest(PromptKind.DUE, "Due date (empty clears)", target_id=selected.id, initial=initial)
    if token == "A":
        return Archive(selected.id)
    if token == "R":
        return Recover(selected.id)
    return None


def intent_for_prompt(prompt: PromptRequest, value: str) -> Intent | None:
    if prompt.kind is PromptKind.ADD:
        return AddItem(value)
    if prompt.kind is PromptKind.ADD_CHILD:
        return AddChildItem(value)
    if prompt.kind is PromptKind.RENAME and prompt.target_id is not None:
        return Rename(prompt.target_id, value)
    if prompt.kind is PromptKind.DUE and prompt.target_id is not None:
        if not value.strip():
            return ClearDueDate(prompt.target_id)
        return SetDueDate(prompt.target_id, value)
    if prompt.kind is PromptKind.SEARCH:
        return UpdateQuery(value)
    return None


class Controller:
    def __init__(
        self,
        session: Session,
        *,
        data_path: Path,
        log: AppLog | None = None,
        autosave: bool = True,
        soon_days: int = 3,
    ) -> None:
        self.session = session
        self.data_path = data_path
        self.log = log or AppLog(None)
        self.autosave = autosave
        self.soon_days = soon_days

    def handle(self, intent: Intent, *, now: datetime | None = None) -> Step:
        before = self.session.state
        step = self.session.dispatch(intent, now=now)
        self._log_step(intent, step)

        if step.effect is Effect.QUIT:
            if not self.flush():
                # stay alive so the user can retry once the obstruction clears
                self.session.state = before
            return step
        if step.effect is Effect.SAVE:
            self.flush(announce=True)
        elif step.changed and self.autosave:
            self.flush()
        return step

    def open_search(self) -> Step:
        if isinstance(self.session.state, Searching):
            return Step(self.session.state)
        return self.handle(OpenSearch())

    def flush(self, *, announce: bool = False) -> bool:
        try:
            storage.save(self.data_path, self.session.forest)
        except IoFailure as exc:
            self.log.write("error", f"{exc.kind}: {exc}")
            self.session.note(Outcome(error=exc.kind, message=str(exc)))
            return False
        self.log.write("storage", f"saved {len(self.session.forest)} entities to {self.data_path}")
        if announce:
            self.session.note(Outcome(message="Data saved"))
        return True

    def _log_step(self, intent: Intent, step: Step) -> None:
        name = type(intent).__name__
        if step.outcome.error:
            self.log.write("error", f"{name} rejected: {step.outcome.error}: {step.outcome.message}")
        elif step.changed:
            self.log.write("intent", f"{name}: {step.outcome.message or 'ok'}")
