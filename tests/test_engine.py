import tempfile
import unittest
from pathlib import Path

from sql_formatter_thing.config import Configuration
from sql_formatter_thing.engine import check_paths, check_text, run_paths
from sql_formatter_thing.registry import default_registry


def active(*rule_ids):
    cfg = Configuration.only(rule_ids) if rule_ids else Configuration()
    return default_registry().resolve(cfg)


class TestCheckText(unittest.TestCase):
    def test_lex_error_becomes_file_error(self):
        result = check_text("SELECT 'unterminated", active(), path="q.sql")
        self.assertEqual(result.violations, ())
        self.assertEqual(result.error.kind, "LexError")
        self.assertEqual((result.error.line, result.error.col), (1, 8))

    def test_fix_returns_output_only_when_changed(self):
        self.assertIsNone(check_text("SELECT 1", active(), fix=True).output)
        self.assertEqual(check_text("select 1", active(), fix=True).output, "SELECT 1")

    def test_diff(self):
        result = check_text("SELECT a b", active("SQL012"), path="q.sql", diff=True)
        self.assertIn("+SELECT a AS b", result.diff)


class TestCheckPaths(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        p = self.root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
        return p

    def test_lex_error_does_not_stop_other_files(self):
        self.write("a_broken.sql", "SELECT 'unterminated")
        self.write("b_bad.sql", "select 1")
        self.write("c_good.sql", "SELECT 1")
        report = check_paths([self.root], active())
        self.assertEqual(report.files_checked, 2)
        self.assertEqual([e.kind for e in report.errors], ["LexError"])
        self.assertEqual([(Path(v.path).name, v.rule_id) for v in report.violations], [("b_bad.sql", "SQL001")])
        self.assertEqual(report.exit_code(), 3)

    def test_parallel_and_serial_runs_agree(self):
        for i in range(12):
            self.write(f"q{i:02d}.sql", f"select c{i} from t{i} x\n  where a = {i}\n")
        serial = check_paths([self.root], active(), jobs=1)
        parallel = check_paths([self.root], active(), jobs=4)
        self.assertEqual(serial, parallel)
        self.assertEqual(len(serial.violations), 12 * 5)

    def test_directory_scan_filters_extensions_and_excluded_dirs(self):
        self.write("q.sql", "select 1")
        self.write("notes.txt", "select 1")
        self.write(".venv/lib/q.sql", "select 1")
        self.write("nested/deeper/q.sql", "select 1")
        results = run_paths([self.root], active())
        self.assertEqual(
            [Path(r.path).relative_to(self.root).as_posix() for r in results],
            ["nested/deeper/q.sql", "q.sql"],
        )

    def test_missing_file_is_a_read_error(self):
        report = check_paths([self.root / "missing.sql"], active())
        self.assertEqual([e.kind for e in report.errors], ["ReadError"])
        self.assertEqual(report.exit_code(), 3)

    def test_fix_writes_in_place_and_reports_what_is_left(self):
        p = self.write("q.sql", "select a b\nfrom t\n")
        report = check_paths([p], active(), fix=True)
        self.assertEqual(p.read_text(encoding="utf-8"), "SELECT a b\nFROM t\n")
        self.assertEqual([v.rule_id for v in report.violations], ["SQL012"])

    def test_files_are_listed_once(self):
        p = self.write("q.sql", "select 1")
        report = check_paths([p, self.root], active())
        self.assertEqual(report.files_checked, 1)


if __name__ == "__main__":
    unittest.main()
