"""
Tests for the session boundary and the command line interface
"""

import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from parquet_scope import cli
from parquet_scope.accessor import BufferAccessor, LocalFileAccessor
from parquet_scope.config import EngineConfig
from parquet_scope.errors import CorruptFooter, CorruptPage, TruncatedFile
from parquet_scope.navigation import JumpToRow, Mode, Unreadable
from parquet_scope.session import Session

from tests.fixtures import ParquetFileGenerator, read_bytes


class TestSession(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.test_file = ParquetFileGenerator.create_minimal_parquet(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_metadata_summary(self):
        with Session.open(self.test_file) as session:
            summary = session.visible_metadata_summary()
        self.assertEqual(summary["row_count"], 3)
        self.assertEqual(summary["row_group_count"], 1)
        self.assertTrue(summary["created_by"].startswith("parquet-cpp"))
        self.assertIn("pandas", summary["key_value_metadata"])
        self.assertEqual(summary["num_columns"], 3)
        self.assertIn("compression_ratio", summary)

    def test_schema_and_columns(self):
        with Session.open(self.test_file) as session:
            tree = session.visible_schema_tree()
            self.assertEqual([c.name for c in tree.children], ["id", "name", "value"])
            self.assertEqual(session.column_names(), ["id", "name", "value"])
            summaries = session.column_summaries()
        self.assertEqual(summaries[1].min_value, "Alice")
        self.assertEqual(summaries[0].max_value, 3)

    def test_window_from_buffer(self):
        with Session.open(read_bytes(self.test_file), EngineConfig(prefetch_enabled=False)) as session:
            self.assertIsNone(session.prefetcher)
            state = session.handle(JumpToRow(1))
            window = session.decoded_window()
        self.assertEqual(state.mode, Mode.DATA)
        # Three rows fit in one viewport, so it stays at the first row.
        self.assertEqual((state.cursor_row, state.first_visible_row), (1, 0))
        self.assertEqual(window, [[1, "Alice", 1.1], [2, "Bob", 2.2], [3, "Charlie", 3.3]])

    def test_page_infos_and_layout(self):
        with Session.open(self.test_file) as session:
            infos = session.page_infos(0, 0)
            layout = session.layout()
        self.assertEqual(sum(info.num_rows for info in infos if info.is_data), 3)
        self.assertEqual(layout[0]["name"], "magic_number")

    def test_dictionary_values(self):
        path = ParquetFileGenerator.create_many_pages(self.temp_dir)
        with Session.open(path, EngineConfig(prefetch_enabled=False)) as session:
            self.assertEqual(session.dictionary_values(2, max_items=3), ["tag-0", "tag-1", "tag-2"])
            self.assertEqual(session.dictionary_values(0), [])

    def test_undecodable_dictionary_is_unreadable(self):
        path = ParquetFileGenerator.create_many_pages(self.temp_dir)
        with Session.open(path, EngineConfig(prefetch_enabled=False)) as session:
            with patch.object(session.reader, "_decode_dictionary", side_effect=CorruptPage("bad dictionary")):
                with self.assertLogs("Session", level="WARNING"):
                    values = session.dictionary_values(2)
        self.assertEqual(len(values), 1)
        self.assertIsInstance(values[0], Unreadable)
        self.assertIn("bad dictionary", values[0].reason)
        self.assertIn("row group 0", values[0].reason)

    def test_close_is_idempotent(self):
        session = Session.open(self.test_file)
        session.close()
        session.close()
        self.assertTrue(session.closed)
        self.assertTrue(session.accessor._file.closed)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            Session.open(os.path.join(self.temp_dir, "missing.parquet"))

    def test_failed_open_closes_file(self):
        path = ParquetFileGenerator.create_corrupt_magic(self.temp_dir)
        with patch.object(LocalFileAccessor, "close", autospec=True) as close:
            with self.assertRaises(CorruptFooter):
                Session.open(path)
        close.assert_called_once()

    def test_truncated_buffer(self):
        accessor = BufferAccessor(b"PAR1")
        with self.assertRaises(TruncatedFile):
            Session.open(accessor)


class TestCommandLineInterface(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.test_file = ParquetFileGenerator.create_two_row_groups(self.temp_dir)
        # Keep the user's own config file out of the tests.
        self.config_path = os.path.join(self.temp_dir, "config.toml")
        with open(self.config_path, "w") as f:
            f.write("prefetch_enabled = false\n")

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def run_main(self, *args):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = cli.main([*args, "--config", self.config_path])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_summary(self):
        code, out, _ = self.run_main(self.test_file)
        self.assertEqual(code, 0)
        parsed = json.loads(out)
        self.assertEqual(parsed["row_count"], 200)
        self.assertEqual([c["name"] for c in parsed["columns"]], ["id", "label"])
        self.assertEqual(parsed["columns"][0]["max_value"], 199)

    def test_schema(self):
        code, out, _ = self.run_main(self.test_file, "--schema")
        self.assertEqual(code, 0)
        parsed = json.loads(out)
        self.assertEqual(parsed["kind"], "group")
        self.assertEqual([c["name"] for c in parsed["children"]], ["id", "label"])
        self.assertEqual(parsed["children"][1]["type"], "BYTE_ARRAY String")

    def test_layout(self):
        code, out, _ = self.run_main(self.test_file, "--layout")
        self.assertEqual(code, 0)
        segments = json.loads(out)
        self.assertEqual([s["name"] for s in segments].count("column_chunk"), 4)

    def test_rows(self):
        code, out, _ = self.run_main(self.test_file, "--rows", "3", "--offset", "99")
        self.assertEqual(code, 0)
        parsed = json.loads(out)
        self.assertEqual(parsed["columns"], ["id", "label"])
        self.assertEqual(parsed["first_row"], 99)
        self.assertEqual(parsed["rows"], [[99, "row-99"], [100, "row-100"], [101, "row-101"]])

    def test_rows_render_typed_values(self):
        path = ParquetFileGenerator.create_typed(self.temp_dir)
        code, out, _ = self.run_main(path, "--rows", "1")
        self.assertEqual(code, 0)
        row = json.loads(out)["rows"][0]
        self.assertEqual(row[1], "2024-01-01")
        self.assertEqual(row[3], "1.25")
        self.assertEqual(row[6], "0001")

    def test_corrupt_file(self):
        path = ParquetFileGenerator.create_corrupt_magic(self.temp_dir)
        code, out, err = self.run_main(path)
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertTrue(err.startswith("error: "))
        self.assertEqual(len(err.strip().splitlines()), 1)

    def test_missing_file(self):
        code, _, err = self.run_main(os.path.join(self.temp_dir, "missing.parquet"))
        self.assertEqual(code, 1)
        self.assertIn("error:", err)

    def test_dictionary(self):
        path = ParquetFileGenerator.create_two_row_groups(
            self.temp_dir, "dictionary.parquet", use_dictionary=True
        )
        code, out, _ = self.run_main(path, "--dictionary", "1")
        self.assertEqual(code, 0)
        parsed = json.loads(out)
        self.assertEqual(parsed["column"], "label")
        self.assertEqual(parsed["dictionary"], [f"row-{i}" for i in range(10)])

    def test_dictionary_of_unknown_column(self):
        code, out, err = self.run_main(self.test_file, "--dictionary", "9")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("error:", err)

    def test_log_level_is_case_insensitive(self):
        code, _, _ = self.run_main(self.test_file, "--log-level", "warning", "--schema")
        self.assertEqual(code, 0)

    def test_unknown_log_level(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(self.test_file, "--log-level", "LOUD")
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
