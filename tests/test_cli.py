import io
import tempfile
import unittest
import zipfile
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from combine import main

from epub_fixtures import picture_book


class CombineCliTests(unittest.TestCase):
    def test_writes_combined_epub(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            first = Path(tmp) / "alpha.epub"
            second = Path(tmp) / "beta.epub"
            first.write_bytes(picture_book("Alpha", b"a"))
            second.write_bytes(picture_book("Beta", b"b"))
            output = Path(tmp) / "out" / "both.epub"

            stdout = io.StringIO()
            with redirect_stdout(stdout):
                code = main([str(first), str(second), "-o", str(output)])

            self.assertEqual(code, 0)
            self.assertIn("EPUB saved to:", stdout.getvalue())
            with zipfile.ZipFile(output) as zf:
                self.assertIn("OEBPS/Text/chapter_0_c1.xhtml", zf.namelist())
                self.assertIn("OEBPS/Text/chapter_1_c1.xhtml", zf.namelist())

    def test_missing_input_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            stderr = io.StringIO()
            with redirect_stderr(stderr):
                code = main([str(Path(tmp) / "nope.epub"), str(Path(tmp) / "other.epub")])
        self.assertEqual(code, 1)
        self.assertIn("Input file not found", stderr.getvalue())

    def test_invalid_epub_reports_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            good = Path(tmp) / "good.epub"
            bad = Path(tmp) / "bad.epub"
            good.write_bytes(picture_book("Alpha", b"a"))
            bad.write_bytes(b"plain text")
            output = Path(tmp) / "out.epub"
            stderr = io.StringIO()
            with redirect_stderr(stderr):
                code = main([str(good), str(bad), "-o", str(output)])
            self.assertEqual(code, 1)
            self.assertFalse(output.exists())
        self.assertIn("book 1", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
