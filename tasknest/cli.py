from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
import sys

from . import __version__, storage
from .applog import AppLog
from .config import TaskNestConfig, explain_config, load_config
from .controller import Controller
from .errors import CorruptData, IoFailure
from .locks import instance_lock
from .navigation import Session
from .paths import AppPaths, app_paths, ensure_app_dirs
from .render import outline
from .tree import Forest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasknest",
        description="tasknest: nested workspaces and tasks in the terminal",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data", help="Use this data file instead of the configured one")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="If the data file is unreadable, back it up and start with an empty forest",
    )

    sub = parser.add_subparsers(dest="cmd", required=False)

    sub.add_parser("app", help="Start the interactive terminal app.")

    show = sub.add_parser("show", help="Print the workspace/task outline and exit.")
    show.add_argument("--archived", action="store_true", help="Include archived workspaces")

    sub.add_parser("paths", help="Print where data, settings, logs and locks live.")
    sub.add_parser("config", help="Explain tasknest.toml and the current values.")

    return parser


def _resolve(args: argparse.Namespace) -> tuple[AppPaths, TaskNestConfig, str]:
    base = app_paths()
    config, warning = load_config(base.config_toml)
    data_file = Path(args.data).expanduser() if getattr(args, "data", None) else config.storage.data_file
    return app_paths(base.root, data_file=data_file), config, warning


def _load_for_session(paths: AppPaths, *, reset: bool, log: AppLog) -> Forest | None:
    """Load the forest, honoring `--reset` for unreadable files. None means abort."""

    try:
        forest = storage.load(paths.data_json)
    except CorruptData as exc:
        log.write("error", f"{exc.kind}: {exc}")
        if not reset:
            print(f"Data file is corrupt: {exc}", file=sys.stderr)
            print("Re-run with `tasknest --reset` to back it up and start empty.", file=sys.stderr)
            return None
        backup = storage.backup_corrupt(paths.data_json)
        log.write("storage", f"corrupt data backed up to {backup}")
        print(f"Backed up unreadable data to {backup}; starting empty.", file=sys.stderr)
        return Forest()
    except IoFailure as exc:
        log.write("error", f"{exc.kind}: {exc}")
        print(str(exc), file=sys.stderr)
        return None
    log.write("storage", f"loaded {len(forest)} entities from {paths.data_json}")
    return forest


def _load_app_runner():
    from .app import run_terminal_app

    return run_terminal_app


def cmd_app(args: argparse.Namespace) -> int:
    try:
        run_terminal_app = _load_app_runner()
    except ModuleNotFoundError as exc:
        if exc.name == "textual":
            print(
                "Interactive app requires `textual`. Install it (pip install textual) and retry.",
                file=sys.stderr,
            )
            return 1
        raise

    paths, config, warning = _resolve(args)
    ensure_app_dirs(paths)
    log = AppLog(paths.app_log)
    if warning:
        print(warning, file=sys.stderr)
        log.write("error", warning)

    try:
        with instance_lock(paths.instance_lock):
            try:
                forest = _load_for_session(paths, reset=bool(getattr(args, "reset", False)), log=log)
            except IoFailure as exc:
                print(str(exc), file=sys.stderr)
                return 1
            if forest is None:
                return 1
            session = Session(forest, policy=config.view.archived_visibility)
            controller = Controller(
                session,
                data_path=paths.data_json,
                log=log,
                autosave=config.storage.autosave,
                soon_days=config.due.soon_days,
            )
            return run_terminal_app(controller)
    except KeyboardInterrupt:
        return 130
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 2


def cmd_show(args: argparse.Namespace) -> int:
    paths, _config, warning = _resolve(args)
    if warning:
        print(warning, file=sys.stderr)
    try:
        forest = storage.load(paths.data_json)
    except (CorruptData, IoFailure) as exc:
        print(f"{exc.kind}: {exc}", file=sys.stderr)
        return 1
    print(outline(forest, archived=bool(args.archived), today=date.today()))
    return 0


def cmd_paths(args: argparse.Namespace) -> int:
    paths, _config, _warning = _resolve(args)
    lines = [
        f"root: {paths.root}",
        f"data: {paths.data_json}",
        f"config: {paths.config_toml}",
        f"log: {paths.app_log}",
        f"lock: {paths.instance_lock}",
    ]
    print("\n".join(lines))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    paths, config, warning = _resolve(args)
    if warning:
        print(warning, file=sys.stderr)
    print(explain_config(config, path=paths.config_toml))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    argv = list(argv) if argv is not None else list(sys.argv[1:])
    args = parser.parse_args(argv)
    if args.cmd is None:
        args = parser.parse_args([*argv, "app"])

    if args.cmd == "app":
        return cmd_app(args)
    if args.cmd == "show":
        return cmd_show(args)
    if args.cmd == "paths":
        return cmd_paths(args)
    if args.cmd == "config":
        return cmd_config(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2
