"""
One open Parquet file and everything derived from it.

The session is the boundary a renderer talks to: it hands out read-only
snapshots (view state, schema tree, metadata summary, decoded window) and
accepts navigation intents. It never draws anything itself.
"""

import logging

from .accessor import open_accessor
from .catalog import RowGroupCatalog
from .config import EngineConfig
from .errors import ColumnError
from .footer import FooterDecoder, describe_layout
from .navigation import NavigationController, Unreadable
from .pages import LazyPageReader
from .prefetch import Prefetcher
from .schema import build_schema_tree


class Session(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, accessor, metadata, schema_tree, catalog, config=None):
        self.accessor = accessor
        self.metadata = metadata
        self.schema_tree = schema_tree
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.reader = LazyPageReader(accessor, catalog, self.config)
        self.prefetcher = None
        if self.config.prefetch_enabled and self.config.prefetch_depth > 0:
            self.prefetcher = Prefetcher(self.reader)
        self.controller = NavigationController(catalog, self.reader, self.config, self.prefetcher)
        self.closed = False

    @classmethod
    def open(cls, source, config=None):
        """Open a path, buffer or accessor; fatal errors close it and propagate."""
        accessor = open_accessor(source)
        try:
            metadata = FooterDecoder(accessor).decode()
            schema_tree = build_schema_tree(metadata.schema)
            catalog = RowGroupCatalog(metadata, schema_tree)
        except BaseException:
            accessor.close()
            raise
        cls.logger.info(
            f"Opened {accessor.name}: {catalog.total_rows} rows, "
            f"{catalog.num_row_groups} row groups, {catalog.num_columns} columns"
        )
        return cls(accessor, metadata, schema_tree, catalog, config)

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self.prefetcher is not None:
            self.prefetcher.close()
        self.accessor.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # Renderer boundary

    def current_view(self):
        return self.controller.state

    def visible_schema_tree(self):
        return self.schema_tree

    def visible_metadata_summary(self):
        summary = {
            "row_count": self.catalog.total_rows,
            "row_group_count": self.catalog.num_row_groups,
            "created_by": self.metadata.created_by,
            "key_value_metadata": dict(self.metadata.key_value_metadata),
        }
        summary.update(self.catalog.file_summary())
        return summary

    def decoded_window(self):
        return self.controller.window()

    def column_names(self):
        return self.catalog.column_names()

    def handle(self, intent):
        return self.controller.handle(intent)

    # Inspection helpers

    def column_summaries(self):
        return [self.catalog.column_summary(i) for i in range(self.catalog.num_columns)]

    def layout(self):
        return describe_layout(self.metadata)

    def page_infos(self, row_group_index, column_index):
        return self.reader.page_infos(row_group_index, column_index)

    def dictionary_values(self, column_index, max_items=10):
        """Up to ``max_items`` dictionary entries of a column; one Unreadable if they cannot be decoded."""
        try:
            return self.reader.dictionary_values(column_index, max_items)
        except ColumnError as e:
            self.logger.warning(f"Cannot read dictionary of {self.catalog.leaf(column_index).dotted_path}: {e}")
            return [Unreadable(str(e))]
