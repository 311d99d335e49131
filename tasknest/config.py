from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import tomllib

from .due import DEFAULT_SOON_DAYS
from .navigation import ArchivedVisibility


def _as_int(value, *, default: int) -> int:
    if isinstance(value, bool):
        return int(default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def _as_bool(value, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return bool(default)


def _as_visibility(value, *, default: ArchivedVisibility) -> ArchivedVisibility:
    if isinstance(value, str):
        lowered = value.strip().lower().replace("-", "_")
        for option in ArchivedVisibility:
            if option.value == lowered:
                return option
    return default


@dataclass(frozen=True)
class StorageConfig:
    data_file: Path | None = None
    autosave: bool = True


@dataclass(frozen=True)
class ViewConfig:
    archived_visibility: ArchivedVisibility = ArchivedVisibility.HIDE_SUBTREE


@dataclass(frozen=True)
class DueConfig:
    soon_days: int = DEFAULT_SOON_DAYS


@dataclass(frozen=True)
class TaskNestConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    due: DueConfig = field(default_factory=DueConfig)


def load_config(path: Path) -> tuple[TaskNestConfig, str]:
    """Load settings from tasknest.toml.

    Returns (config, warning). Warning is empty on success; bad individual
    values fall back to their defaults without a warning.
    """

    if not path.exists():
        return TaskNestConfig(), ""

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        return TaskNestConfig(), f"tasknest.toml parse failed: {exc}"

    storage = data.get("storage") if isinstance(data.get("storage"), dict) else {}
    view = data.get("view") if isinstance(data.get("view"), dict) else {}
    due = data.get("due") if isinstance(data.get("due"), dict) else {}

    raw_data_file = storage.get("data_file")
    data_file: Path | None = None
    if isinstance(raw_data_file, str) and raw_data_file.strip():
        data_file = Path(raw_data_file.strip()).expanduser()
        if not data_file.is_absolute():
            data_file = path.parent / data_file

    cfg = TaskNestConfig(
        storage=StorageConfig(
            data_file=data_file,
            autosave=_as_bool(storage.get("autosave"), default=StorageConfig.autosave),
        ),
        view=ViewConfig(
            archived_visibility=_as_visibility(
                view.get("archived_visibility"), default=ViewConfig.archived_visibility
            ),
        ),
        due=DueConfig(
            soon_days=max(1, _as_int(due.get("soon_days"), default=DueConfig.soon_days)),
        ),
    )
    return cfg, ""


def explain_config(config: TaskNestConfig, *, path: Path | None = None) -> str:
    location = str(path) if path is not None else "tasknest.toml"
    data_file = str(config.storage.data_file) if config.storage.data_file else "(default: data.json beside this file)"
    lines = [
        f"tasknest.toml guide ({location})",
        "",
        "[storage]",
        f"- data_file: where the forest is stored (current: {data_file})",
        f"- autosave: save after every change, not only on `s`/quit (current: {'true' if config.storage.autosave else 'false'})",
        "",
        "[view]",
        "- archived_visibility: hide_subtree | expose_in_archive",
        "  hide_subtree lists each archived workspace on its own in the archive panel;",
        "  expose_in_archive shows archived workspaces with their sub-workspaces nested below.",
        f"  (current: {config.view.archived_visibility.value})",
        "",
        "[due]",
        f"- soon_days: days left at which an open task counts as due soon (current: {config.due.soon_days})",
    ]
    return "\n".join(lines)
