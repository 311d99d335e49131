from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from pathlib import Path


class AppLog:
    """Append-only text log: `<utc stamp> [channel] message` per line.

    A log without a path drops everything. Write failures never propagate.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path

    def write(self, channel: str, message: str) -> None:
        if self.path is None:
            return
        stamp = datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
        safe_channel = channel.strip().lower() or "system"
        safe_message = " ".join(message.split())
        with contextlib.suppress(OSError):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(f"{stamp} [{safe_channel}] {safe_message}\n")

    def tail(self, limit: int = 20) -> list[str]:
        if self.path is None or not self.path.exists():
            return []
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except OSError:
            return []
        return lines[-max(0, limit):] if limit else []
