from __future__ import annotations

from datetime import date

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Input, Static

from . import __version__
from .controller import Controller, PromptKind, PromptRequest, intent_for_key, intent_for_prompt
from .navigation import (
    Back,
    Help,
    Intent,
    Quit,
    UpdateQuery,
    ViewingArchivedWorkspaces,
    ViewingTasks,
    ViewingWorkspaces,
    top_level_state,
    visible_rows,
)
from .render import format_rows, help_text, status_line


NAMED_KEYS = {"escape", "enter", "up", "down", "left", "right", "space", "tab", "backspace"}


def key_token(event: events.Key) -> str:
    if event.key in NAMED_KEYS:
        return event.key
    if event.character and event.is_printable:
        return event.character
    return event.key


class TaskNestApp(App[None]):
    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    #main {
        height: 1fr;
    }

    #sidebar {
        width: 1fr;
    }

    .panel {
        height: 1fr;
        border: solid $primary;
        padding: 0 1;
    }

    #panel-tasks {
        width: 2fr;
    }

    .panel.active {
        border: double $accent;
    }

    #help-panel {
        height: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }

    #prompt {
        margin: 0;
        border: solid $border;
    }

    Footer {
        dock: none;
    }
    """

    BINDINGS = [
        ("ctrl+c", "request_quit", "Quit"),
    ]

    def __init__(self, controller: Controller) -> None:
        super().__init__()
        self.controller = controller
        self.session = controller.session
        self.prompt: PromptRequest | None = None
        self.title = f"tasknest {__version__}"

    def compose(self) -> ComposeResult:
        yield Static("", id="status-bar", markup=False)
        with Horizontal(id="main"):
            with Vertical(id="sidebar"):
                yield Static("", id="panel-workspaces", classes="panel", markup=False)
                yield Static("", id="panel-archived", classes="panel", markup=False)
            yield Static("", id="panel-tasks", classes="panel", markup=False)
        yield Static(help_text(), id="help-panel", markup=False)
        yield Input(id="prompt")
        yield Footer()

    def on_mount(self) -> None:
        self.status_bar = self.query_one("#status-bar", Static)
        self.main_area = self.query_one("#main", Horizontal)
        self.workspaces_panel = self.query_one("#panel-workspaces", Static)
        self.archived_panel = self.query_one("#panel-archived", Static)
        self.tasks_panel = self.query_one("#panel-tasks", Static)
        self.help_panel = self.query_one("#help-panel", Static)
        self.prompt_box = self.query_one("#prompt", Input)
        self.workspaces_panel.border_title = "<1> Workspaces"
        self.archived_panel.border_title = "<2> Archived"
        self.tasks_panel.border_title = "<3> Todo List"
        self.help_panel.display = False
        self.prompt_box.display = False
        self.controller.log.write("system", f"session started ({len(self.session.forest)} entities)")
        self._refresh_view()

    # -------------------- input --------------------

    def on_key(self, event: events.Key) -> None:
        token = key_token(event)
        if self.prompt is not None:
            if token == "escape":
                event.stop()
                self._cancel_prompt()
            return

        action = intent_for_key(token, self.session)
        if action is None:
            return
        event.stop()
        if isinstance(action, PromptRequest):
            self._open_prompt(action)
            return
        self._dispatch(action)

    def on_input_changed(self, event: Input.Changed) -> None:
        if self.prompt is None or self.prompt.kind is not PromptKind.SEARCH:
            return
        self.controller.handle(UpdateQuery(event.value))
        self._refresh_view()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        prompt = self.prompt
        if prompt is None:
            return
        self._close_prompt()
        if prompt.kind is PromptKind.SEARCH:
            # the query is already applied live; keep the filtered list for navigation
            self._refresh_view()
            return
        intent = intent_for_prompt(prompt, event.value)
        if intent is not None:
            self._dispatch(intent)

    def action_request_quit(self) -> None:
        self._cancel_prompt()
        self._dispatch(Quit())

    # -------------------- prompt --------------------

    def _open_prompt(self, request: PromptRequest) -> None:
        if request.kind is PromptKind.SEARCH:
            self.controller.open_search()
        self.prompt = request
        self.prompt_box.placeholder = request.label
        self.prompt_box.border_title = request.label
        self.prompt_box.value = request.initial
        self.prompt_box.display = True
        self.prompt_box.focus()
        self._refresh_view()

    def _close_prompt(self) -> None:
        self.prompt = None
        self.prompt_box.display = False
        self.prompt_box.value = ""
        self.set_focus(None)

    def _cancel_prompt(self) -> None:
        prompt = self.prompt
        if prompt is None:
            return
        self._close_prompt()
        if prompt.kind is PromptKind.SEARCH:
            self.controller.handle(Back())
        self._refresh_view()

    # -------------------- dispatch --------------------

    def _dispatch(self, intent: Intent) -> None:
        self.controller.handle(intent)
        if self.session.exited:
            self.controller.log.write("system", "session ended")
            self.exit()
            return
        self._refresh_view()

    def _refresh_view(self) -> None:
        session = self.session
        forest = session.forest
        state = session.state
        base = top_level_state(state)
        today = date.today()
        soon_days = self.controller.soon_days

        def panel_text(kind: type, empty: str, preview_state=None) -> str:
            if isinstance(base, kind):
                return format_rows(session.rows(), session.cursor, today=today, soon_days=soon_days, empty=empty)
            shown = preview_state if preview_state is not None else kind()
            rows = visible_rows(shown, forest, policy=session.policy)
            return format_rows(rows, -1, today=today, soon_days=soon_days, empty=empty)

        self.workspaces_panel.update(panel_text(ViewingWorkspaces, "(no workspaces, press a to add one)"))
        self.archived_panel.update(panel_text(ViewingArchivedWorkspaces, "(nothing archived)"))

        preview = None
        if isinstance(base, ViewingWorkspaces):
            selected = session.selected()
            if selected is not None and selected.is_workspace:
                preview = ViewingTasks(workspace_id=selected.id)
        if isinstance(base, ViewingTasks) or preview is not None:
            self.tasks_panel.update(panel_text(ViewingTasks, "(no tasks, press a to add one)", preview))
        else:
            self.tasks_panel.update("(select a workspace)")

        self.workspaces_panel.set_class(isinstance(base, ViewingWorkspaces), "active")
        self.archived_panel.set_class(isinstance(base, ViewingArchivedWorkspaces), "active")
        self.tasks_panel.set_class(isinstance(base, ViewingTasks), "active")

        showing_help = isinstance(state, Help)
        self.help_panel.display = showing_help
        self.main_area.display = not showing_help
        self.status_bar.update(status_line(state, forest, session.last_outcome))


def run_terminal_app(controller: Controller) -> int:
    app = TaskNestApp(controller)
    # Keep terminal-native text selection by disabling mouse reporting.
    app.run(mouse=False)
    return 0
