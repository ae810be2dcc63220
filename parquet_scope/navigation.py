"""
View state machine driven by user intents.

``NavigationController`` owns the only mutable view state of a session. It
turns intents into a new frozen ``ViewState``, clamping every position into
range, and builds the decoded window the renderer draws: one read per
(row group, visible column), concatenated in row order.
"""

import enum
import logging
from dataclasses import dataclass, replace

from .errors import ColumnError
from .schema import iter_nodes


class Mode(enum.Enum):
    METADATA = "metadata"
    SCHEMA = "schema"
    DATA = "data"
    CLOSED = "closed"


class Direction(enum.Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class ViewState:
    mode: Mode = Mode.METADATA
    # Row group holding first_visible_row and that row's offset inside it.
    row_group_index: int = 0
    row_offset: int = 0
    first_visible_row: int = 0
    cursor_row: int = 0
    cursor_column: int = 0
    first_visible_column: int = 0
    viewport_height: int = 20
    viewport_width: int = 8
    schema_cursor: int = 0

    @property
    def is_closed(self):
        return self.mode is Mode.CLOSED


@dataclass(frozen=True)
class Unreadable:
    """Placeholder for a cell whose column chunk could not be decoded."""

    reason: str = ""

    def __str__(self):
        return "unreadable"


# Intents


@dataclass(frozen=True)
class ShowMetadata:
    pass


@dataclass(frozen=True)
class ShowSchema:
    pass


@dataclass(frozen=True)
class ShowData:
    pass


@dataclass(frozen=True)
class MoveCursor:
    direction: Direction
    amount: int = 1


@dataclass(frozen=True)
class JumpToRow:
    row: int


@dataclass(frozen=True)
class ChangeRowGroup:
    index: int


@dataclass(frozen=True)
class Resize:
    height: int
    width: int


@dataclass(frozen=True)
class Quit:
    pass


def _clamp(value, low, high):
    return max(low, min(value, high))


class NavigationController(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, catalog, reader, config, prefetcher=None):
        self.catalog = catalog
        self.reader = reader
        self.config = config
        self.prefetcher = prefetcher
        # Schema browsing walks every node below the root, depth first.
        self.schema_nodes = list(iter_nodes(catalog.schema_tree))[1:]
        self.state = ViewState(
            viewport_height=max(1, config.viewport_height),
            viewport_width=max(1, config.viewport_width),
        )
        self._window_key = None
        self._window = []

    @property
    def total_rows(self):
        return self.catalog.total_rows

    @property
    def num_columns(self):
        return self.catalog.num_columns

    def handle(self, intent):
        """Apply one intent and return the resulting ViewState."""
        if self.state.is_closed:
            self.logger.debug(f"Ignoring {intent} after quit")
            return self.state
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise TypeError(f"Unknown intent {intent!r}")
        self.state = handler(self, intent)
        self.logger.debug(f"{intent} -> {self.state}")
        return self.state

    # Intent handlers

    def _show_metadata(self, intent):
        return replace(self.state, mode=Mode.METADATA)

    def _show_schema(self, intent):
        return replace(self.state, mode=Mode.SCHEMA)

    def _show_data(self, intent):
        return replace(self._place(self.state.cursor_row, self.state.cursor_column), mode=Mode.DATA)

    def _quit(self, intent):
        return replace(self.state, mode=Mode.CLOSED)

    def _resize(self, intent):
        state = replace(
            self.state,
            viewport_height=max(1, intent.height),
            viewport_width=max(1, intent.width),
        )
        return self._place(state.cursor_row, state.cursor_column, state=state)

    def _move_cursor(self, intent):
        mode = self.state.mode
        if mode is Mode.SCHEMA:
            return self._move_schema_cursor(intent)
        if mode is not Mode.DATA:
            return self.state
        state = self.state
        amount = intent.amount
        row, column = state.cursor_row, state.cursor_column
        direction = intent.direction
        if direction is Direction.UP:
            row -= amount
        elif direction is Direction.DOWN:
            row += amount
        elif direction is Direction.LEFT:
            column -= amount
        elif direction is Direction.RIGHT:
            column += amount
        elif direction is Direction.PAGE_UP:
            row -= amount * state.viewport_height
        elif direction is Direction.PAGE_DOWN:
            row += amount * state.viewport_height
        elif direction is Direction.TOP:
            row = 0
        elif direction is Direction.BOTTOM:
            row = self.total_rows - 1
        return self._place(row, column)

    def _move_schema_cursor(self, intent):
        state = self.state
        cursor = state.schema_cursor
        direction = intent.direction
        if direction is Direction.UP:
            cursor -= intent.amount
        elif direction is Direction.DOWN:
            cursor += intent.amount
        elif direction is Direction.PAGE_UP:
            cursor -= intent.amount * state.viewport_height
        elif direction is Direction.PAGE_DOWN:
            cursor += intent.amount * state.viewport_height
        elif direction is Direction.TOP:
            cursor = 0
        elif direction is Direction.BOTTOM:
            cursor = len(self.schema_nodes) - 1
        return replace(state, schema_cursor=_clamp(cursor, 0, max(len(self.schema_nodes) - 1, 0)))

    def _jump_to_row(self, intent):
        if self.total_rows == 0:
            return replace(self.state, mode=Mode.DATA)
        row = _clamp(intent.row, 0, self.total_rows - 1)
        row_group_index, local_row = self.catalog.locate(row)
        self.logger.debug(f"Row {row} is row {local_row} of row group {row_group_index}")
        first = min(row, max(self.total_rows - self.state.viewport_height, 0))
        return replace(self._place(row, self.state.cursor_column, first_row=first), mode=Mode.DATA)

    def _change_row_group(self, intent):
        if self.total_rows == 0 or self.catalog.num_row_groups == 0:
            return replace(self.state, mode=Mode.DATA)
        index = _clamp(intent.index, 0, self.catalog.num_row_groups - 1)
        start, _ = self.catalog.row_group_bounds(index)
        # An empty trailing row group resolves to the last row.
        return self._jump_to_row(JumpToRow(min(start, self.total_rows - 1)))

    _handlers = {
        ShowMetadata: _show_metadata,
        ShowSchema: _show_schema,
        ShowData: _show_data,
        MoveCursor: _move_cursor,
        JumpToRow: _jump_to_row,
        ChangeRowGroup: _change_row_group,
        Resize: _resize,
        Quit: _quit,
    }

    def _place(self, row, column, first_row=None, state=None):
        """Clamp the cursor and scroll the viewport as little as possible to show it."""
        state = state or self.state
        height, width = state.viewport_height, state.viewport_width

        if self.total_rows == 0:
            row = first = 0
        else:
            row = _clamp(row, 0, self.total_rows - 1)
            first = state.first_visible_row if first_row is None else first_row
            if row < first:
                first = row
            elif row >= first + height:
                first = row - height + 1
            first = _clamp(first, 0, row)

        if self.num_columns == 0:
            column = first_column = 0
        else:
            column = _clamp(column, 0, self.num_columns - 1)
            first_column = state.first_visible_column
            if column < first_column:
                first_column = column
            elif column >= first_column + width:
                first_column = column - width + 1

        row_group_index, row_offset = self.catalog.locate(first) if self.total_rows else (0, 0)
        return replace(
            state,
            row_group_index=row_group_index,
            row_offset=row_offset,
            first_visible_row=first,
            cursor_row=row,
            cursor_column=column,
            first_visible_column=first_column,
        )

    # Decoded window

    def visible_columns(self):
        state = self.state
        stop = min(state.first_visible_column + state.viewport_width, self.num_columns)
        return list(range(state.first_visible_column, stop))

    def visible_rows(self):
        state = self.state
        stop = min(state.first_visible_row + state.viewport_height, self.total_rows)
        return range(state.first_visible_row, stop)

    def window(self):
        """Rows of decoded cells for the current viewport, in ascending row order."""
        state = self.state
        if state.mode is not Mode.DATA:
            return []
        key = (state.first_visible_row, state.viewport_height,
               state.first_visible_column, state.viewport_width)
        if key == self._window_key:
            return self._window

        rows = self.visible_rows()
        columns = [self._column_cells(column, rows.start, rows.stop) for column in self.visible_columns()]
        window = [list(cells) for cells in zip(*columns)] if columns else [[] for _ in rows]
        self._window_key, self._window = key, window
        self._prefetch(rows.stop)
        return window

    def _column_cells(self, column, start, stop):
        cells = []
        for row_group_index, local_start, local_stop in self.catalog.split_range(start, stop):
            count = local_stop - local_start
            try:
                cells.extend(self.reader.read_window(row_group_index, column, local_start, count))
            except ColumnError as e:
                self.logger.warning(f"Cannot preview {self.catalog.leaf(column).dotted_path}: {e}")
                cells.extend([Unreadable(str(e))] * count)
        return cells

    def _prefetch(self, start):
        if self.prefetcher is None:
            return
        height = self.state.viewport_height
        stop = min(start + height * self.config.prefetch_depth, self.total_rows)
        for row_group_index, local_start, local_stop in self.catalog.split_range(start, stop):
            for column in self.visible_columns():
                self.prefetcher.submit(row_group_index, column, local_start, local_stop - local_start)
