import io
import unittest

from rich.console import Console

from askmd.output import Output, plural, truncate_url


class OutputTests(unittest.TestCase):
    def setUp(self) -> None:
        self.console = Console(file=io.StringIO(), force_terminal=False, color_system=None, width=200)
        self.output = Output(self.console)

    def test_status_lines(self) -> None:
        self.output.success("Saved [notes]")
        self.output.warning("Careful")
        self.output.error("Broken")
        text = self.console.file.getvalue()
        self.assertIn("✓ Saved [notes]", text)
        self.assertIn("⚠ Careful", text)
        self.assertIn("✗ Broken", text)

    def test_fetch_lines(self) -> None:
        self.output.fetch_success("https://example.com/page", 2500)
        self.output.fetch_error("https://example.com/x", "404 Not Found")
        text = self.console.file.getvalue()
        self.assertIn("https://example.com/page (3k chars)", text)
        self.assertIn("404 Not Found", text)

    def test_meta(self) -> None:
        self.output.meta([("Sending", 12345), ("Model", "opus")])
        text = self.console.file.getvalue()
        self.assertIn("Sending: 12,345", text)
        self.assertIn("Model: opus", text)

    def test_plural(self) -> None:
        self.assertEqual(plural(1, "file"), "1 file")
        self.assertEqual(plural(0, "file"), "0 files")
        self.assertEqual(plural(3, "file"), "3 files")

    def test_truncate_url(self) -> None:
        short = "https://example.com/a"
        self.assertEqual(truncate_url(short, 50), short)
        long_url = "https://example.com/" + "segment/" * 20
        shortened = truncate_url(long_url, 50)
        self.assertTrue(shortened.startswith("https://example.com/"))
        self.assertTrue(shortened.endswith("..."))
        self.assertLessEqual(len(shortened), 50)


if __name__ == "__main__":
    unittest.main()
