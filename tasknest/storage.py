from __future__ import annotations

import contextlib
from datetime import date, datetime, timezone
import json
import os
from pathlib import Path
import shutil
import tempfile
from typing import Any

from .errors import CorruptData, IoFailure
from .model import Entity, EntityKind, TaskStatus
from .tree import Forest, clean_title


DATA_VERSION = 1


# -------------------- encode --------------------


def _record_from_entity(node: Entity) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": node.id,
        "kind": node.kind.value,
        "title": node.title,
        "created_at": node.created_at,
        "expanded": bool(node.expanded),
        "children": [_record_from_entity(child) for child in node.children],
    }
    if node.is_workspace:
        record["archived"] = bool(node.archived)
    else:
        record["status"] = (node.status or TaskStatus.TODO).value
        record["due_date"] = node.due_date.isoformat() if node.due_date else None
    return record


def forest_to_payload(forest: Forest) -> dict[str, Any]:
    return {
        "version": DATA_VERSION,
        "next_id": forest.next_id,
        "workspaces": [_record_from_entity(root) for root in forest.roots],
    }


# -------------------- decode --------------------


def _entity_from_record(record: Any, *, parent_kind: EntityKind | None, where: str) -> Entity:
    if not isinstance(record, dict):
        raise CorruptData(f"{where}: expected an object")

    entity_id = record.get("id")
    if not isinstance(entity_id, int) or isinstance(entity_id, bool) or entity_id < 1:
        raise CorruptData(f"{where}: id must be a positive integer")
    try:
        kind = EntityKind(record.get("kind"))
    except ValueError as exc:
        raise CorruptData(f"{where}: unknown kind {record.get('kind')!r}") from exc
    if parent_kind is None and kind is not EntityKind.WORKSPACE:
        raise CorruptData(f"{where}: top-level entries must be workspaces")
    if parent_kind is EntityKind.TASK and kind is not EntityKind.TASK:
        raise CorruptData(f"{where}: a task cannot hold a workspace")

    title = record.get("title")
    if not isinstance(title, str) or not clean_title(title):
        raise CorruptData(f"{where}: title must be a non-empty string")
    created_at = record.get("created_at")
    if not isinstance(created_at, str) or not created_at.strip():
        raise CorruptData(f"{where}: created_at missing")

    raw_children = record.get("children", [])
    if not isinstance(raw_children, list):
        raise CorruptData(f"{where}: children must be a list")

    node = Entity(
        id=entity_id,
        kind=kind,
        title=clean_title(title),
        created_at=created_at,
        expanded=_flag(record, "expanded", True, where=where),
    )
    if kind is EntityKind.WORKSPACE:
        node.archived = _flag(record, "archived", False, where=where)
    else:
        try:
            node.status = TaskStatus(record.get("status", TaskStatus.TODO.value))
        except ValueError as exc:
            raise CorruptData(f"{where}: unknown status {record.get('status')!r}") from exc
        node.due_date = _parse_due(record.get("due_date"), where=where)

    node.children = [
        _entity_from_record(child, parent_kind=kind, where=f"{where}.children[{index}]")
        for index, child in enumerate(raw_children)
    ]
    return node


def _flag(record: dict, key: str, default: bool, *, where: str) -> bool:
    value = record.get(key, default)
    if not isinstance(value, bool):
        raise CorruptData(f"{where}: {key} must be true or false")
    return value


def _parse_due(value: Any, *, where: str) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CorruptData(f"{where}: due_date must be a string")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise CorruptData(f"{where}: invalid due_date {value!r}") from exc


def forest_from_payload(payload: Any) -> Forest:
    if not isinstance(payload, dict):
        raise CorruptData("top-level is not an object")
    if payload.get("version") != DATA_VERSION:
        raise CorruptData(f"unsupported version {payload.get('version')!r}")
    records = payload.get("workspaces")
    if not isinstance(records, list):
        raise CorruptData("workspaces must be a list")
    next_id = payload.get("next_id", 1)
    if not isinstance(next_id, int) or isinstance(next_id, bool) or next_id < 1:
        raise CorruptData("next_id must be a positive integer")

    roots = [
        _entity_from_record(record, parent_kind=None, where=f"workspaces[{index}]")
        for index, record in enumerate(records)
    ]
    try:
        return Forest(roots, next_id=next_id)
    except ValueError as exc:
        raise CorruptData(str(exc)) from exc


# -------------------- file io --------------------


def load(path: Path) -> Forest:
    """Read the forest from `path`; a missing file is an empty forest."""

    if not path.exists():
        return Forest()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise IoFailure(f"cannot read {path}: {exc}") from exc
    try:
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise CorruptData(f"{path} is not valid UTF-8 JSON: {exc}") from exc
    return forest_from_payload(payload)


def save(path: Path, forest: Forest) -> None:
    """Write the whole forest atomically: temp file in the same dir, fsync, replace."""

    text = json.dumps(forest_to_payload(forest), indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    tmp_name = ""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = ""
    except OSError as exc:
        raise IoFailure(f"cannot write {path}: {exc}") from exc
    finally:
        if tmp_name:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)


def backup_corrupt(path: Path) -> Path | None:
    """Copy an unreadable data file aside before starting over."""

    if not path.exists():
        return None
    stamp = datetime.now(tz=timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    target = path.with_name(f"{path.name}.corrupt-{stamp}")
    try:
        shutil.copy2(path, target)
    except OSError as exc:
        raise IoFailure(f"cannot back up {path}: {exc}") from exc
    return target
