import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml

from askmd.config import (
    Settings,
    default_exclude_patterns,
    ensure_config,
    format_settings,
    load_settings,
    parse_setting_value,
    save_settings,
    update_setting,
)
from askmd.errors import ConfigError
from askmd.paths import askmd_home, config_path


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        env = {k: v for k, v in os.environ.items() if not k.startswith("ASKMD_")}
        patcher = mock.patch.dict(os.environ, env, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_defaults_without_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            settings = load_settings(Path(tmp) / "config.yaml")
        self.assertEqual(settings.model, "opus")
        self.assertEqual(settings.temperature, 1.0)
        self.assertIsNone(settings.max_tokens)
        self.assertTrue(settings.filter)
        self.assertTrue(settings.web)
        self.assertEqual(settings.exclude, default_exclude_patterns())

    def test_save_and_load_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            original = Settings(
                model="haiku",
                temperature=0.3,
                max_tokens=4096,
                filter=False,
                web=False,
                exclude=["*.log", "custom/**"],
                debug="warn",
            )
            save_settings(original, path)
            text = path.read_text(encoding="utf-8")
            self.assertIn("# Model selection", text)
            self.assertIn("  # Custom", text)
            self.assertEqual(load_settings(path), original)

    def test_written_file_is_valid_yaml(self) -> None:
        data = yaml.safe_load(format_settings(Settings()))
        self.assertEqual(data["model"], "opus")
        self.assertEqual(data["exclude"], default_exclude_patterns())

    def test_empty_exclude_list(self) -> None:
        data = yaml.safe_load(format_settings(Settings(exclude=[])))
        self.assertEqual(data["exclude"], [])

    def test_env_overrides_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            save_settings(Settings(model="opus"), path)
            with mock.patch.dict(os.environ, {"ASKMD_MODEL": "sonnet", "ASKMD_WEB": "off"}):
                settings = load_settings(path)
        self.assertEqual(settings.model, "sonnet")
        self.assertFalse(settings.web)

    def test_invalid_file_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("model: gpt\n", encoding="utf-8")
            self.assertEqual(load_settings(path).model, "opus")
            path.write_text(": : :\n  - [", encoding="utf-8")
            self.assertEqual(load_settings(path).model, "opus")

    def test_max_tokens_alias(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("maxTokens: 2048\n", encoding="utf-8")
            self.assertEqual(load_settings(path).max_tokens, 2048)

    def test_validate_rejects_out_of_range(self) -> None:
        with self.assertRaises(ConfigError):
            Settings(model="gpt").validate()
        with self.assertRaises(ConfigError):
            Settings(temperature=1.5).validate()
        with self.assertRaises(ConfigError):
            Settings(max_tokens=0).validate()
        with self.assertRaises(ConfigError):
            Settings(temperature="hot").validate()

    def test_parse_setting_value(self) -> None:
        self.assertEqual(parse_setting_value("temperature", "0.5"), 0.5)
        self.assertEqual(parse_setting_value("filter", "off"), False)
        self.assertIsNone(parse_setting_value("max_tokens", "none"))
        self.assertEqual(parse_setting_value("exclude", "a/**, *.tmp"), ["a/**", "*.tmp"])
        with self.assertRaises(ConfigError):
            parse_setting_value("colour", "red")
        with self.assertRaises(ConfigError):
            parse_setting_value("web", "maybe")

    def test_update_setting_validates(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            updated = update_setting("model", "Sonnet", path)
            self.assertEqual(updated.model, "sonnet")
            self.assertEqual(load_settings(path).model, "sonnet")
            with self.assertRaises(ConfigError):
                update_setting("temperature", "3", path)
            self.assertEqual(load_settings(path).temperature, 1.0)

    def test_ensure_config_uses_askmd_home(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.dict(os.environ, {"ASKMD_HOME": tmp}):
                self.assertEqual(askmd_home(), Path(tmp))
                path = ensure_config()
                self.assertEqual(path, config_path())
                self.assertTrue(path.exists())
                path.write_text("model: haiku\n", encoding="utf-8")
                ensure_config()
                self.assertEqual(path.read_text(encoding="utf-8"), "model: haiku\n")


if __name__ == "__main__":
    unittest.main()
