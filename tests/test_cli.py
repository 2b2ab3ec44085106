import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from askmd import __version__
from askmd.cli import NEW_SESSION, app
from askmd.config import load_settings
from askmd.errors import EmptySessionError


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.home = self.root / "home"
        env = {k: v for k, v in os.environ.items() if not k.startswith("ASKMD_")}
        env["ASKMD_HOME"] = str(self.home)
        patcher = mock.patch.dict(os.environ, env, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.runner = CliRunner()

    def test_version(self) -> None:
        result = self.runner.invoke(app, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)
        result = self.runner.invoke(app, ["version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_init_creates_session_and_config(self) -> None:
        path = self.root / "session.md"
        result = self.runner.invoke(app, ["init", str(path)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(path.read_text(encoding="utf-8"), NEW_SESSION)
        self.assertTrue((self.home / "config.yaml").exists())
        self.assertIn("Created", result.output)

    def test_init_refuses_existing_file(self) -> None:
        path = self.root / "session.md"
        path.write_text("keep me", encoding="utf-8")
        result = self.runner.invoke(app, ["init", str(path)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("already exists", result.output)
        self.assertIn("Delete it to start fresh", result.output)
        self.assertEqual(path.read_text(encoding="utf-8"), "keep me")

    def test_refresh_reports_count(self) -> None:
        (self.root / "a.txt").write_text("alpha", encoding="utf-8")
        path = self.root / "session.md"
        path.write_text("# [1] Human\n\nSee [[a.txt]]\n", encoding="utf-8")
        result = self.runner.invoke(app, ["refresh", str(path)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Refreshed 1 file", result.output)

    def test_refresh_nothing(self) -> None:
        path = self.root / "session.md"
        path.write_text("# [1] Human\n\nPlain\n", encoding="utf-8")
        result = self.runner.invoke(app, ["refresh", str(path)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No expanded references found to refresh", result.output)

    def test_refresh_missing_file(self) -> None:
        result = self.runner.invoke(app, ["refresh", str(self.root / "nope.md")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("✗", result.output)

    def test_cfg_set_show_reset(self) -> None:
        result = self.runner.invoke(app, ["cfg", "set", "model", "haiku"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(load_settings().model, "haiku")

        result = self.runner.invoke(app, ["cfg"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("haiku", result.output)

        result = self.runner.invoke(app, ["cfg", "set", "temperature", "7"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Invalid temperature", result.output)

        result = self.runner.invoke(app, ["cfg", "reset"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(load_settings().model, "opus")

    def test_cfg_path(self) -> None:
        result = self.runner.invoke(app, ["cfg", "path"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("config.yaml", result.output)

    def test_ask_passes_options(self) -> None:
        path = self.root / "session.md"
        with mock.patch("askmd.cli.run_ask", new_callable=mock.AsyncMock) as run_ask:
            result = self.runner.invoke(app, ["--session", str(path), "-m", "sonnet", "-r"])
        self.assertEqual(result.exit_code, 0, result.output)
        args, kwargs = run_ask.call_args
        self.assertEqual(args[0], path)
        self.assertEqual(kwargs["model"], "sonnet")
        self.assertTrue(kwargs["refresh"])

    def test_ask_error_exits_with_message(self) -> None:
        with mock.patch("askmd.cli.run_ask", new_callable=mock.AsyncMock, side_effect=EmptySessionError()):
            result = self.runner.invoke(app, [])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("No turns found in session.md", result.output)
        self.assertIn("# [1] Human", result.output)


if __name__ == "__main__":
    unittest.main()
