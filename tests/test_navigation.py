"""
Tests for the navigation state machine and decoded windows
"""

import random
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from parquet_scope.config import EngineConfig
from parquet_scope.navigation import (
    ChangeRowGroup,
    Direction,
    JumpToRow,
    Mode,
    MoveCursor,
    NavigationController,
    Quit,
    Resize,
    ShowData,
    ShowMetadata,
    ShowSchema,
    Unreadable,
)
from parquet_scope.session import Session

from tests.fixtures import ParquetFileGenerator

CONFIG = EngineConfig(prefetch_enabled=False, viewport_height=10, viewport_width=2)


class NavigationTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.sessions = []

    def tearDown(self):
        for session in self.sessions:
            session.close()
        shutil.rmtree(self.temp_dir)

    def open(self, path, config=CONFIG):
        session = Session.open(path, config)
        self.sessions.append(session)
        return session

    def assertConsistent(self, state, total_rows, num_columns):
        if total_rows:
            self.assertLessEqual(0, state.first_visible_row)
            self.assertLessEqual(state.first_visible_row, state.cursor_row)
            self.assertLess(state.cursor_row, total_rows)
            self.assertLess(state.cursor_row, state.first_visible_row + state.viewport_height)
        if num_columns:
            self.assertLessEqual(state.first_visible_column, state.cursor_column)
            self.assertLess(state.cursor_column, num_columns)
            self.assertLess(state.cursor_column, state.first_visible_column + state.viewport_width)


class TestDataBrowsing(NavigationTestCase):

    def setUp(self):
        super().setUp()
        self.session = self.open(ParquetFileGenerator.create_two_row_groups(self.temp_dir))

    def test_starts_in_metadata_mode(self):
        state = self.session.current_view()
        self.assertEqual(state.mode, Mode.METADATA)
        self.assertEqual(self.session.decoded_window(), [])
        self.session.handle(MoveCursor(Direction.DOWN, 5))
        self.assertEqual(self.session.current_view().cursor_row, 0)

    def test_show_data_window(self):
        self.session.handle(ShowData())
        window = self.session.decoded_window()
        self.assertEqual(len(window), 10)
        self.assertEqual(window[0], [0, "row-0"])
        self.assertEqual(window[9], [9, "row-9"])

    def test_jump_to_row_150(self):
        self.session.handle(ShowData())
        state = self.session.handle(JumpToRow(150))
        self.assertEqual((state.row_group_index, state.row_offset), (1, 50))
        self.assertEqual((state.cursor_row, state.first_visible_row), (150, 150))
        window = self.session.decoded_window()
        # The 51st value of row group 1.
        self.assertEqual(window[0][0], 150)
        self.assertEqual([row[0] for row in window], list(range(150, 160)))

    def test_jump_near_end_shows_last_page(self):
        state = self.session.handle(JumpToRow(195))
        self.assertEqual(state.mode, Mode.DATA)
        self.assertEqual((state.cursor_row, state.first_visible_row), (195, 190))
        self.assertEqual([row[0] for row in self.session.decoded_window()], list(range(190, 200)))

    def test_jump_is_clamped(self):
        self.assertEqual(self.session.handle(JumpToRow(10_000)).cursor_row, 199)
        self.assertEqual(self.session.handle(JumpToRow(-5)).cursor_row, 0)

    def test_window_across_row_groups(self):
        self.session.handle(JumpToRow(95))
        window = self.session.decoded_window()
        self.assertEqual([row[0] for row in window], list(range(95, 105)))
        self.assertEqual([row[1] for row in window], [f"row-{i}" for i in range(95, 105)])

    def test_cursor_movement(self):
        self.session.handle(ShowData())
        state = self.session.handle(MoveCursor(Direction.DOWN, 12))
        self.assertEqual((state.cursor_row, state.first_visible_row), (12, 3))
        state = self.session.handle(MoveCursor(Direction.UP, 5))
        self.assertEqual((state.cursor_row, state.first_visible_row), (7, 3))
        state = self.session.handle(MoveCursor(Direction.PAGE_DOWN))
        self.assertEqual(state.cursor_row, 17)
        state = self.session.handle(MoveCursor(Direction.BOTTOM))
        self.assertEqual((state.cursor_row, state.first_visible_row), (199, 190))
        self.assertEqual((state.row_group_index, state.row_offset), (1, 90))
        state = self.session.handle(MoveCursor(Direction.DOWN))
        self.assertEqual(state.cursor_row, 199)
        state = self.session.handle(MoveCursor(Direction.TOP))
        self.assertEqual((state.cursor_row, state.first_visible_row), (0, 0))
        state = self.session.handle(MoveCursor(Direction.PAGE_UP, 3))
        self.assertEqual(state.cursor_row, 0)

    def test_column_movement(self):
        self.session.handle(ShowData())
        state = self.session.handle(MoveCursor(Direction.RIGHT, 5))
        self.assertEqual(state.cursor_column, 1)
        state = self.session.handle(MoveCursor(Direction.LEFT, 5))
        self.assertEqual(state.cursor_column, 0)

    def test_change_row_group(self):
        state = self.session.handle(ChangeRowGroup(1))
        self.assertEqual((state.cursor_row, state.row_group_index, state.row_offset), (100, 1, 0))
        state = self.session.handle(ChangeRowGroup(7))
        self.assertEqual(state.cursor_row, 100)
        state = self.session.handle(ChangeRowGroup(-1))
        self.assertEqual(state.cursor_row, 0)

    def test_resize(self):
        self.session.handle(JumpToRow(50))
        state = self.session.handle(Resize(4, 1))
        self.assertEqual((state.viewport_height, state.viewport_width), (4, 1))
        self.assertEqual(len(self.session.decoded_window()), 4)
        self.assertEqual(len(self.session.decoded_window()[0]), 1)
        state = self.session.handle(Resize(0, 0))
        self.assertEqual((state.viewport_height, state.viewport_width), (1, 1))
        self.assertConsistent(state, 200, 2)

    def test_random_event_sequences_keep_cursor_in_range(self):
        rng = random.Random(42)
        directions = list(Direction)
        self.session.handle(ShowData())
        for _ in range(500):
            choice = rng.random()
            if choice < 0.6:
                intent = MoveCursor(rng.choice(directions), rng.randint(0, 250))
            elif choice < 0.8:
                intent = JumpToRow(rng.randint(-50, 300))
            elif choice < 0.9:
                intent = ChangeRowGroup(rng.randint(-2, 4))
            else:
                intent = Resize(rng.randint(-1, 30), rng.randint(-1, 4))
            state = self.session.handle(intent)
            self.assertConsistent(state, 200, 2)
            self.assertEqual(
                (state.row_group_index, state.row_offset),
                self.session.catalog.locate(state.first_visible_row),
            )

    def test_quit_is_terminal(self):
        state = self.session.handle(Quit())
        self.assertTrue(state.is_closed)
        state = self.session.handle(JumpToRow(20))
        self.assertEqual(state.mode, Mode.CLOSED)
        self.assertEqual(state.cursor_row, 0)

    def test_unknown_intent(self):
        with self.assertRaises(TypeError):
            self.session.handle("jump")

    def test_mode_switches_keep_position(self):
        self.session.handle(JumpToRow(42))
        self.session.handle(ShowSchema())
        self.assertEqual(self.session.decoded_window(), [])
        state = self.session.handle(ShowMetadata())
        self.assertEqual(state.mode, Mode.METADATA)
        state = self.session.handle(ShowData())
        self.assertEqual(state.cursor_row, 42)


class TestSchemaBrowsing(NavigationTestCase):

    def test_schema_cursor(self):
        session = self.open(ParquetFileGenerator.create_nested(self.temp_dir))
        nodes = session.controller.schema_nodes
        self.assertEqual(nodes[0].name, "id")
        session.handle(ShowSchema())
        state = session.handle(MoveCursor(Direction.DOWN, 2))
        self.assertEqual(state.schema_cursor, 2)
        state = session.handle(MoveCursor(Direction.BOTTOM))
        self.assertEqual(state.schema_cursor, len(nodes) - 1)
        state = session.handle(MoveCursor(Direction.DOWN, 3))
        self.assertEqual(state.schema_cursor, len(nodes) - 1)
        state = session.handle(MoveCursor(Direction.UP, 100))
        self.assertEqual(state.schema_cursor, 0)
        self.assertEqual(state.cursor_row, 0)


class TestUnreadableColumns(NavigationTestCase):

    def test_unsupported_encoding_only_affects_its_column(self):
        session = self.open(
            ParquetFileGenerator.create_unsupported_encoding(self.temp_dir),
            EngineConfig(prefetch_enabled=False, viewport_height=10, viewport_width=3),
        )
        session.handle(JumpToRow(20))
        with self.assertLogs("NavigationController", level="WARNING"):
            window = session.decoded_window()
        self.assertEqual([row[0] for row in window], list(range(20, 30)))
        self.assertEqual([row[2] for row in window], [f"t{i}" for i in range(20, 30)])
        for row in window:
            self.assertIsInstance(row[1], Unreadable)
            self.assertEqual(str(row[1]), "unreadable")
            self.assertIn("DELTA_BINARY_PACKED", row[1].reason)

        state = session.handle(MoveCursor(Direction.PAGE_DOWN))
        self.assertEqual(state.cursor_row, 30)
        self.assertEqual([row[0] for row in session.decoded_window()], list(range(21, 31)))


class TestPrefetchRequests(NavigationTestCase):

    def test_next_viewport_is_prefetched(self):
        session = self.open(ParquetFileGenerator.create_two_row_groups(self.temp_dir))
        prefetcher = MagicMock()
        config = EngineConfig(prefetch_depth=2, viewport_height=10, viewport_width=2)
        controller = NavigationController(session.catalog, session.reader, config, prefetcher)
        controller.handle(JumpToRow(80))
        controller.window()
        submitted = sorted(c.args for c in prefetcher.submit.call_args_list)
        self.assertEqual(submitted, [(0, 0, 90, 10), (0, 1, 90, 10), (1, 0, 0, 10), (1, 1, 0, 10)])

    def test_window_is_reused_until_view_moves(self):
        session = self.open(ParquetFileGenerator.create_two_row_groups(self.temp_dir))
        session.handle(ShowData())
        first = session.decoded_window()
        self.assertIs(session.decoded_window(), first)
        session.handle(MoveCursor(Direction.DOWN, 1))
        self.assertIs(session.decoded_window(), first)
        session.handle(MoveCursor(Direction.DOWN, 10))
        self.assertIsNot(session.decoded_window(), first)


class TestEmptyFile(NavigationTestCase):

    def test_zero_rows(self):
        session = self.open(ParquetFileGenerator.create_empty_table(self.temp_dir))
        state = session.handle(ShowData())
        self.assertEqual((state.cursor_row, state.first_visible_row), (0, 0))
        self.assertEqual(session.decoded_window(), [])
        state = session.handle(MoveCursor(Direction.BOTTOM))
        self.assertEqual(state.cursor_row, 0)
        state = session.handle(JumpToRow(10))
        self.assertEqual(state.cursor_row, 0)
        state = session.handle(ChangeRowGroup(3))
        self.assertEqual(state.cursor_row, 0)

    def test_empty_row_group_between_others(self):
        session = self.open(ParquetFileGenerator.create_empty_middle_row_group(self.temp_dir))
        self.assertEqual(session.catalog.total_rows, 20)
        state = session.handle(JumpToRow(5))
        self.assertEqual((state.row_group_index, state.row_offset), (0, 5))
        window = session.decoded_window()
        self.assertEqual([row[0] for row in window], list(range(5, 15)))
        self.assertEqual(window[9][1], "row-14")
        state = session.handle(ChangeRowGroup(1))
        self.assertEqual((state.cursor_row, state.row_group_index), (10, 2))
        self.assertEqual(session.reader.read_column_chunk(1, 0), [])


if __name__ == "__main__":
    unittest.main()
