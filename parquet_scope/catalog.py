"""
Row group and column chunk index.

The user browses by global row number while pages are decoded per row
group; the catalog maps between the two with a cumulative row index and
exposes every column chunk by ``(row_group_index, leaf_column_index)``.
"""

import bisect
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ColumnNotFound, MalformedSchema
from .schema import leaves


@dataclass(frozen=True)
class ColumnSummary:
    """Footer statistics of one leaf column aggregated over all row groups."""

    column_index: int
    name: str
    min_value: Any
    max_value: Any
    null_count: Optional[int]
    distinct_count: Optional[int]
    total_compressed_size: int
    total_uncompressed_size: int


def human_readable_bytes(num_bytes):
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    size = float(num_bytes)
    unit = 0
    while size >= 1024.0 and unit < len(units) - 1:
        size /= 1024.0
        unit += 1
    if unit == 0:
        return f"{int(size)} {units[unit]}"
    return f"{size:.2f} {units[unit]}"


def _extreme(values, pick):
    """min/max over values, or None when they are not mutually comparable."""
    try:
        return pick(values)
    except (TypeError, ValueError):
        return None


class RowGroupCatalog(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, metadata, schema_tree):
        self.metadata = metadata
        self.schema_tree = schema_tree
        self.leaves = leaves(schema_tree)

        for rg in metadata.row_groups:
            if len(rg.columns) != len(self.leaves):
                raise MalformedSchema(
                    f"Row group {rg.index} has {len(rg.columns)} column chunks "
                    f"but the schema has {len(self.leaves)} leaf columns"
                )

        # starts[i] is the global row number of the first row of row group i.
        self._starts = []
        total = 0
        for rg in metadata.row_groups:
            self._starts.append(total)
            total += rg.num_rows
        self.total_rows = total
        if total != metadata.num_rows:
            self.logger.warning(
                f"Footer declares {metadata.num_rows} rows but row groups hold {total}; "
                f"browsing uses the row group counts"
            )

    @property
    def num_row_groups(self):
        return len(self.metadata.row_groups)

    @property
    def num_columns(self):
        return len(self.leaves)

    def row_group(self, row_group_index):
        if not 0 <= row_group_index < self.num_row_groups:
            raise ColumnNotFound(
                f"Row group {row_group_index} out of range (file has {self.num_row_groups})"
            )
        return self.metadata.row_groups[row_group_index]

    def chunk(self, row_group_index, column_index):
        rg = self.row_group(row_group_index)
        if not 0 <= column_index < len(rg.columns):
            raise ColumnNotFound(
                f"Column {column_index} out of range (row group {row_group_index} "
                f"has {len(rg.columns)})"
            )
        return rg.columns[column_index]

    def leaf(self, column_index):
        if not 0 <= column_index < len(self.leaves):
            raise ColumnNotFound(f"Column {column_index} out of range (schema has {len(self.leaves)})")
        return self.leaves[column_index]

    def column_names(self):
        return [leaf.dotted_path for leaf in self.leaves]

    def locate(self, global_row):
        """Map a global row number to ``(row_group_index, local_row)``."""
        if not 0 <= global_row < self.total_rows:
            raise IndexError(f"Row {global_row} out of range (file has {self.total_rows} rows)")
        # bisect_right skips empty row groups sharing the same start.
        row_group_index = bisect.bisect_right(self._starts, global_row) - 1
        return row_group_index, global_row - self._starts[row_group_index]

    def row_group_bounds(self, row_group_index):
        rg = self.row_group(row_group_index)
        start = self._starts[row_group_index]
        return start, start + rg.num_rows

    def split_range(self, start, stop):
        """Split global rows [start, stop) into per row group pieces.

        Yields ``(row_group_index, local_start, local_stop)`` in ascending
        row order; empty row groups are skipped.
        """
        start = max(start, 0)
        stop = min(stop, self.total_rows)
        row = start
        while row < stop:
            row_group_index, local_start = self.locate(row)
            rg_start, rg_stop = self.row_group_bounds(row_group_index)
            local_stop = min(stop, rg_stop) - rg_start
            yield row_group_index, local_start, local_stop
            row = rg_start + local_stop

    def column_summary(self, column_index):
        leaf = self.leaf(column_index)
        chunks = [rg.columns[column_index] for rg in self.metadata.row_groups]
        # Empty row groups carry no statistics worth aggregating.
        stats = [c.statistics for c in chunks if c.num_rows]
        null_counts = [s.null_count for s in stats]
        distinct_counts = [s.distinct_count for s in stats]
        bounded = bool(stats) and all(s.has_min_max for s in stats)
        return ColumnSummary(
            column_index=column_index,
            name=leaf.dotted_path,
            min_value=_extreme([s.min_value for s in stats], min) if bounded else None,
            max_value=_extreme([s.max_value for s in stats], max) if bounded else None,
            null_count=sum(null_counts) if stats and None not in null_counts else None,
            distinct_count=sum(distinct_counts) if stats and None not in distinct_counts else None,
            total_compressed_size=sum(c.total_compressed_size for c in chunks),
            total_uncompressed_size=sum(c.total_uncompressed_size for c in chunks),
        )

    def file_summary(self):
        chunks = [c for rg in self.metadata.row_groups for c in rg.columns]
        raw_size = sum(c.total_uncompressed_size for c in chunks)
        compressed_size = sum(c.total_compressed_size for c in chunks)
        codecs = Counter(c.codec for c in chunks)
        encodings = sorted({e for c in chunks for e in c.encodings})
        return {
            "format_version": self.metadata.version,
            "created_by": self.metadata.created_by,
            "num_rows": self.total_rows,
            "num_columns": self.num_columns,
            "num_row_groups": self.num_row_groups,
            "raw_size": raw_size,
            "compressed_size": compressed_size,
            "raw_size_human": human_readable_bytes(raw_size),
            "compressed_size_human": human_readable_bytes(compressed_size),
            "compression_ratio": raw_size / compressed_size if compressed_size else 0.0,
            "codecs": ", ".join(f"{codec}({count})" for codec, count in sorted(codecs.items())),
            "encodings": ", ".join(encodings),
            "avg_row_size": raw_size // self.total_rows if self.total_rows else 0,
        }
