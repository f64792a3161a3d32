from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from core import settings_manager
from core.settings_manager import DEFAULT_SETTINGS, get_config_str, is_streamlit_cloud, load_settings, save_settings


class LoadSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "user_settings.json"
        self._patch = patch.object(settings_manager, "SETTINGS_FILE", self.path)
        self._patch.start()

    def tearDown(self) -> None:
        self._patch.stop()
        self._tmp.cleanup()

    def _write(self, data) -> None:
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def test_defaults_when_missing(self) -> None:
        self.assertEqual(load_settings(), DEFAULT_SETTINGS)

    def test_defaults_when_corrupt(self) -> None:
        self.path.write_text("{oops", encoding="utf-8")
        self.assertEqual(load_settings(), DEFAULT_SETTINGS)

    def test_saved_values_override_and_are_clamped(self) -> None:
        self._write({"grid_columns": 40, "cell_width": "12", "show_names": 1, "long_press_seconds": "x"})
        settings = load_settings()

        self.assertEqual(settings["grid_columns"], 16)
        self.assertEqual(settings["cell_width"], 48)
        self.assertIs(settings["show_names"], True)
        self.assertEqual(settings["long_press_seconds"], DEFAULT_SETTINGS["long_press_seconds"])
        self.assertEqual(settings["drag_threshold_px"], DEFAULT_SETTINGS["drag_threshold_px"])

    def test_save_then_load(self) -> None:
        settings = load_settings()
        settings["grid_columns"] = 6
        save_settings(settings)

        self.assertEqual(load_settings()["grid_columns"], 6)

    def test_defaults_are_not_shared(self) -> None:
        load_settings()["grid_columns"] = 3
        self.assertEqual(DEFAULT_SETTINGS["grid_columns"], 8)


class ConfigTests(unittest.TestCase):
    def test_environment_wins(self) -> None:
        with patch.dict(os.environ, {"ADMIN_TOKEN": "s3cret"}):
            self.assertEqual(get_config_str("ADMIN_TOKEN"), "s3cret")

    def test_default(self) -> None:
        with patch.object(settings_manager, "_maybe_streamlit", return_value=None):
            self.assertEqual(get_config_str("NOT_CONFIGURED_ANYWHERE", "fallback"), "fallback")

    def test_cloud_flag(self) -> None:
        with patch.dict(os.environ, {"ROSTER_GRID_CLOUD": "true"}):
            self.assertTrue(is_streamlit_cloud())
        with patch.dict(os.environ, {"ROSTER_GRID_CLOUD": "0"}):
            self.assertFalse(is_streamlit_cloud())


if __name__ == "__main__":
    unittest.main()
