from __future__ import annotations

import contextlib
from contextlib import contextmanager
import os
from pathlib import Path
from typing import Iterator


class LockHeld(RuntimeError):
    pass


def lock_holder(lock_path: Path) -> str:
    """Pid recorded by the session holding the lock, or an empty string."""

    try:
        return lock_path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""


@contextmanager
def instance_lock(lock_path: Path) -> Iterator[Path]:
    """Hold an exclusive flock on `lock_path` for the life of one session.

    The holder writes its pid into the file; it is blanked again on release.
    """

    try:
        import fcntl  # type: ignore
    except ModuleNotFoundError:
        raise RuntimeError("Instance locks require fcntl (not available on this platform).")

    lock_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            holder = lock_holder(lock_path)
            owner = f" (pid {holder})" if holder else ""
            raise LockHeld(f"Another tasknest session is already running{owner}; lock: {lock_path}") from exc
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("utf-8"))
        try:
            yield lock_path
        finally:
            with contextlib.suppress(OSError):
                os.ftruncate(fd, 0)
                fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
