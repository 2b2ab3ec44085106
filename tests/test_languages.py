import unittest

from askmd.languages import language_for


class LanguageTests(unittest.TestCase):
    def test_extensions(self) -> None:
        self.assertEqual(language_for("src/app.ts"), "typescript")
        self.assertEqual(language_for("main.PY"), "python")
        self.assertEqual(language_for("notes.md"), "markdown")

    def test_special_filenames(self) -> None:
        self.assertEqual(language_for("Dockerfile"), "dockerfile")
        self.assertEqual(language_for("build/Makefile"), "makefile")

    def test_fallbacks(self) -> None:
        self.assertEqual(language_for("LICENSE"), "text")
        self.assertEqual(language_for("data.xyz"), "xyz")


if __name__ == "__main__":
    unittest.main()
