from __future__ import annotations

import os
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest

from tasknest.applog import AppLog
from tasknest.locks import LockHeld, instance_lock, lock_holder
from tasknest.paths import app_paths, ensure_app_dirs


class TestAppLog(unittest.TestCase):
    def test_lines_carry_stamp_and_channel(self) -> None:
        with TemporaryDirectory() as tmp:
            log = AppLog(Path(tmp) / "logs" / "app.log")
            log.write("Storage", "saved\n 3 entities")
            log.write("", "hello")
            lines = log.tail()
        self.assertEqual(2, len(lines))
        self.assertRegex(lines[0], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\+00:00 \[storage\] saved 3 entities$")
        self.assertTrue(lines[1].endswith("[system] hello"))

    def test_tail_limit(self) -> None:
        with TemporaryDirectory() as tmp:
            log = AppLog(Path(tmp) / "app.log")
            for index in range(5):
                log.write("intent", f"step {index}")
            self.assertEqual(2, len(log.tail(2)))
            self.assertTrue(log.tail(2)[-1].endswith("step 4"))

    def test_pathless_log_drops_writes(self) -> None:
        log = AppLog(None)
        log.write("error", "ignored")
        self.assertEqual([], log.tail())

    def test_unwritable_log_does_not_raise(self) -> None:
        with TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("", encoding="utf-8")
            log = AppLog(blocker / "app.log")
            log.write("error", "nowhere to go")
            self.assertEqual([], log.tail())


class TestPathsAndLocks(unittest.TestCase):
    def test_layout_under_root(self) -> None:
        with TemporaryDirectory() as tmp:
            paths = ensure_app_dirs(app_paths(Path(tmp) / "nest"))
            self.assertTrue(paths.logs_dir.is_dir())
            self.assertTrue(paths.locks_dir.is_dir())
            self.assertEqual(paths.root / "data.json", paths.data_json)
            self.assertEqual(paths.root / "tasknest.toml", paths.config_toml)

    def test_data_file_override(self) -> None:
        paths = app_paths(Path("/srv/nest"), data_file=Path("/data/tasks.json"))
        self.assertEqual(Path("/data/tasks.json"), paths.data_json)
        self.assertEqual(Path("/srv/nest/logs/app.log"), paths.app_log)

    def test_second_lock_is_refused(self) -> None:
        with TemporaryDirectory() as tmp:
            lock_path = Path(tmp) / "locks" / "tasknest.lock"
            with instance_lock(lock_path):
                self.assertEqual(str(os.getpid()), lock_holder(lock_path))
                with self.assertRaises(LockHeld) as caught:
                    with instance_lock(lock_path):
                        pass
                self.assertIn(f"pid {os.getpid()}", str(caught.exception))
            self.assertEqual("", lock_holder(lock_path))
            with instance_lock(lock_path):
                pass


if __name__ == "__main__":
    unittest.main()
