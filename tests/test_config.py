from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory
import textwrap
import unittest

from tasknest.config import TaskNestConfig, explain_config, load_config
from tasknest.navigation import ArchivedVisibility


class TestConfig(unittest.TestCase):
    def test_missing_file_uses_defaults(self) -> None:
        with TemporaryDirectory() as tmp:
            cfg, warning = load_config(Path(tmp) / "tasknest.toml")
        self.assertEqual("", warning)
        self.assertEqual(TaskNestConfig(), cfg)
        self.assertTrue(cfg.storage.autosave)
        self.assertEqual(ArchivedVisibility.HIDE_SUBTREE, cfg.view.archived_visibility)
        self.assertEqual(3, cfg.due.soon_days)

    def test_values_are_read(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tasknest.toml"
            path.write_text(
                textwrap.dedent(
                    """
                    [storage]
                    data_file = "store/tasks.json"
                    autosave = "off"

                    [view]
                    archived_visibility = "expose-in-archive"

                    [due]
                    soon_days = 5
                    """
                ),
                encoding="utf-8",
            )
            cfg, warning = load_config(path)

            self.assertEqual("", warning)
            self.assertEqual(Path(tmp) / "store" / "tasks.json", cfg.storage.data_file)
        self.assertFalse(cfg.storage.autosave)
        self.assertEqual(ArchivedVisibility.EXPOSE_IN_ARCHIVE, cfg.view.archived_visibility)
        self.assertEqual(5, cfg.due.soon_days)

    def test_bad_values_fall_back_silently(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tasknest.toml"
            path.write_text(
                '[view]\narchived_visibility = "sideways"\n[due]\nsoon_days = "many"\n[storage]\nautosave = 3\n',
                encoding="utf-8",
            )
            cfg, warning = load_config(path)
        self.assertEqual("", warning)
        self.assertEqual(ArchivedVisibility.HIDE_SUBTREE, cfg.view.archived_visibility)
        self.assertEqual(3, cfg.due.soon_days)
        self.assertTrue(cfg.storage.autosave)

    def test_soon_days_has_a_floor(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tasknest.toml"
            path.write_text("[due]\nsoon_days = 0\n", encoding="utf-8")
            cfg, _warning = load_config(path)
        self.assertEqual(1, cfg.due.soon_days)

    def test_unparsable_file_warns(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tasknest.toml"
            path.write_text("[storage\n", encoding="utf-8")
            cfg, warning = load_config(path)
        self.assertIn("parse failed", warning)
        self.assertEqual(TaskNestConfig(), cfg)

    def test_explain_mentions_every_setting(self) -> None:
        text = explain_config(TaskNestConfig(), path=Path("/tmp/tasknest.toml"))
        for needle in ("data_file", "autosave", "archived_visibility", "soon_days", "/tmp/tasknest.toml"):
            self.assertIn(needle, text)


if __name__ == "__main__":
    unittest.main()
