from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


HOME_ENV = "TASKNEST_HOME"
APP_DIRNAME = "tasknest"


def app_root() -> Path:
    """Directory holding data, settings, logs and locks.

    `$TASKNEST_HOME` wins; otherwise `$XDG_CONFIG_HOME/tasknest`, falling back
    to `~/.config/tasknest`.
    """

    override = os.environ.get(HOME_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_DIRNAME


@dataclass(frozen=True)
class AppPaths:
    root: Path
    data_json: Path
    config_toml: Path
    logs_dir: Path
    app_log: Path
    locks_dir: Path
    instance_lock: Path


def app_paths(root: Path | None = None, *, data_file: Path | None = None) -> AppPaths:
    root = root or app_root()
    logs_dir = root / "logs"
    locks_dir = root / "locks"
    return AppPaths(
        root=root,
        data_json=data_file or root / "data.json",
        config_toml=root / "tasknest.toml",
        logs_dir=logs_dir,
        app_log=logs_dir / "app.log",
        locks_dir=locks_dir,
        instance_lock=locks_dir / "tasknest.lock",
    )


def ensure_app_dirs(paths: AppPaths | None = None) -> AppPaths:
    paths = paths or app_paths()
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.logs_dir.mkdir(parents=True, exist_ok=True)
    paths.locks_dir.mkdir(parents=True, exist_ok=True)
    paths.data_json.parent.mkdir(parents=True, exist_ok=True)
    return paths
