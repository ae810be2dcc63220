"""
On-demand decoding of column chunk pages.

A column chunk is a sequence of ``<PageHeader><payload>`` pairs, optionally
starting with a dictionary page. ``LazyPageReader`` scans page headers only
as far as a requested row window needs, skips the payload of every page
before the window, and decodes just the pages overlapping it. Decoded pages
live in a bounded LRU cache keyed by ``(row_group, column, page)``.

Flat columns cache each page as a tuple of cells. Repeated columns cache the
decoded level and value streams instead, because a V1 page may end in the
middle of a row and the row is only complete once the next page is read.
"""

import bisect
import logging
import struct
import threading

from thrift.protocol import TCompactProtocol
from thrift.protocol.TProtocol import TProtocolException
from thrift.transport.TTransport import TMemoryBuffer, TTransportException

from .cache import PageCache
from .compression import decompress
from .config import EngineConfig
from .encoding import (
    decode_dictionary_indices,
    decode_levels_v1,
    decode_levels_v2,
    decode_plain,
    decode_rle_booleans,
)
from .errors import ColumnError, CorruptPage, UnsupportedEncoding
from .model import PageInfo
from .parquet_format.ttypes import Encoding, PageHeader, PageType
from .schema import ancestry
from .values import convert_all, make_converter

DICTIONARY_ENCODINGS = ("PLAIN_DICTIONARY", "RLE_DICTIONARY")


def _encoding_name(value):
    if value is None:
        return None
    return Encoding._VALUES_TO_NAMES.get(value, f"UNKNOWN({value})")


class _PageEntry(object):
    __slots__ = ("info", "header", "continues_row")

    def __init__(self, info, header, continues_row=False):
        self.info = info
        self.header = header
        # The page opens with the tail of a row started on an earlier page.
        self.continues_row = continues_row

    @property
    def row_span(self):
        """Rows with at least one level on this page, as ``[lo, hi)``."""
        info = self.info
        return info.first_row - self.continues_row, info.first_row + info.num_rows


class _ChunkIndex(object):
    """Page headers of one column chunk, discovered incrementally."""

    def __init__(self, chunk):
        self.chunk = chunk
        self.entries = []
        self.data_entries = []
        self.data_first_rows = []
        self.next_offset = chunk.offset
        self.rows_scanned = 0
        self.complete = chunk.length == 0
        self.lock = threading.Lock()

    @property
    def end_offset(self):
        return self.chunk.offset + self.chunk.length


class LazyPageReader(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, accessor, catalog, config=None, page_cache=None):
        self.accessor = accessor
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.page_cache = page_cache or PageCache(self.config.page_cache_size, "pages")
        self._dictionaries = PageCache(self.config.dictionary_cache_size, "dictionaries")
        self._indexes = PageCache(self.config.chunk_index_cache_size, "chunk indexes")
        self._repeated_levels = {}

    # Public API

    def read_window(self, row_group_index, column_index, start_row, count):
        """Cells of rows ``[start_row, start_row + count)`` of one column chunk.

        The range is trimmed to the row group. Each cell is a typed value,
        None for a null, or a (possibly nested) list for repeated columns.
        """
        chunk = self.catalog.chunk(row_group_index, column_index)
        leaf = self.catalog.leaf(column_index)
        start = max(start_row, 0)
        stop = min(start_row + max(count, 0), chunk.num_rows)
        if start >= stop:
            return []

        try:
            if chunk.file_path is not None:
                raise UnsupportedEncoding(f"Column chunk is stored in external file {chunk.file_path}")
            index = self._index(chunk)
            entries = self._entries_for_range(index, leaf, start, stop)
            if leaf.repetition_level == 0:
                cells = self._flat_window(chunk, leaf, entries, start, stop)
            else:
                cells = self._repeated_window(chunk, leaf, entries, start, stop)
            if len(cells) != stop - start:
                raise CorruptPage(
                    f"Pages hold {index.rows_scanned} rows but the row group declares {chunk.num_rows}"
                )
        except ColumnError as e:
            raise e.locate(row_group_index, column_index)
        return cells

    def read_column_chunk(self, row_group_index, column_index):
        """Every cell of one column chunk."""
        chunk = self.catalog.chunk(row_group_index, column_index)
        return self.read_window(row_group_index, column_index, 0, chunk.num_rows)

    def page_infos(self, row_group_index, column_index):
        """Headers of every page in a column chunk."""
        chunk = self.catalog.chunk(row_group_index, column_index)
        leaf = self.catalog.leaf(column_index)
        try:
            index = self._index(chunk)
            with index.lock:
                while not index.complete:
                    self._scan_next(index, leaf)
        except ColumnError as e:
            raise e.locate(row_group_index, column_index)
        return [entry.info for entry in index.entries]

    def dictionary_values(self, column_index, max_items=10):
        """Leading entries of a column's dictionary pages, gathered across row groups.

        Chunks without a dictionary page contribute nothing, so a column that
        is never dictionary-encoded yields an empty list.
        """
        leaf = self.catalog.leaf(column_index)
        values = []
        for row_group_index in range(self.catalog.num_row_groups):
            if len(values) >= max_items:
                break
            chunk = self.catalog.chunk(row_group_index, column_index)
            if chunk.file_path is not None or chunk.length == 0 or not chunk.uses_dictionary:
                continue
            try:
                if self._dictionary_entry(chunk, leaf) is None:
                    continue
                dictionary = self._dictionary(chunk, leaf)
            except ColumnError as e:
                raise e.locate(row_group_index, column_index)
            values.extend(dictionary[:max_items - len(values)])
        return values

    # Windows

    def _page(self, chunk, leaf, entry):
        key = (chunk.row_group_index, chunk.column_index, entry.info.index)
        return self.page_cache.get_or_compute(key, lambda: self._decode_data_page(chunk, leaf, entry))

    def _flat_window(self, chunk, leaf, entries, start, stop):
        cells = []
        for entry in entries:
            info = entry.info
            rows = self._page(chunk, leaf, entry)
            lo = max(start, info.first_row) - info.first_row
            hi = min(stop, info.first_row + info.num_rows) - info.first_row
            cells.extend(rows[lo:hi])
        return cells

    def _repeated_window(self, chunk, leaf, entries, start, stop):
        if not entries:
            return []
        repetition, definition, values = [], [], []
        for entry in entries:
            page_repetition, page_definition, page_values = self._page(chunk, leaf, entry)
            repetition.extend(page_repetition)
            definition.extend(page_definition)
            values.extend(page_values)

        # Drop the tail of a row that started before the first page.
        skip = 0
        while skip < len(repetition) and repetition[skip] != 0:
            skip += 1
        skipped_values = sum(1 for d in definition[:skip] if d == leaf.definition_level)
        rows = self._assemble(leaf, values[skipped_values:], definition[skip:], repetition[skip:])
        first_row = entries[0].info.first_row
        return rows[start - first_row:stop - first_row]

    # Page header scanning

    def _index(self, chunk):
        key = (chunk.row_group_index, chunk.column_index)
        return self._indexes.get_or_compute(key, lambda: _ChunkIndex(chunk))

    def _entries_for_range(self, index, leaf, start, stop):
        # A repeated row is only known to be complete once the next row starts.
        needed = stop + 1 if leaf.repetition_level else stop
        with index.lock:
            while not index.complete and index.rows_scanned < needed:
                self._scan_next(index, leaf)
            first_rows = list(index.data_first_rows)
            entries = list(index.data_entries)
        if index.rows_scanned < stop:
            raise CorruptPage(
                f"Column chunk ends after {index.rows_scanned} rows; row {stop - 1} requested"
            )
        # Last page starting at or before ``start``.
        position = max(bisect.bisect_right(first_rows, start) - 1, 0)
        selected = []
        for entry in entries[position:]:
            lo, hi = entry.row_span
            if lo >= stop:
                break
            if hi > start and hi > lo:
                selected.append(entry)
        return selected

    def _scan_next(self, index, leaf):
        offset = index.next_offset
        end = index.end_offset
        if offset >= end:
            index.complete = True
            return
        page_index = len(index.entries)
        header, header_length = self._read_page_header(offset, end, page_index)
        compressed_size = header.compressed_page_size
        uncompressed_size = header.uncompressed_page_size
        payload_offset = offset + header_length
        if compressed_size < 0 or uncompressed_size < 0:
            raise CorruptPage("Page header declares a negative size", page=page_index)
        if payload_offset + compressed_size > end:
            raise CorruptPage(
                f"Page payload [{payload_offset}, {payload_offset + compressed_size}) runs past "
                f"the column chunk end {end}",
                page=page_index,
            )

        encoding = None
        num_values = 0
        num_rows = 0
        continues_row = False
        if header.type == PageType.DICTIONARY_PAGE:
            dph = self._require(header.dictionary_page_header, "dictionary_page_header", page_index)
            encoding, num_values = _encoding_name(dph.encoding), dph.num_values
        elif header.type == PageType.DATA_PAGE:
            dph = self._require(header.data_page_header, "data_page_header", page_index)
            encoding, num_values = _encoding_name(dph.encoding), dph.num_values
            if leaf.repetition_level == 0:
                num_rows = num_values
            else:
                # V1 headers do not state a row count for repeated columns;
                # count the rows from the repetition levels.
                num_rows, continues_row = self._count_repeated_rows(
                    index.chunk, leaf, header, payload_offset, page_index
                )
                if continues_row and not index.data_entries:
                    raise CorruptPage("First data page starts in the middle of a row", page=page_index)
        elif header.type == PageType.DATA_PAGE_V2:
            dph = self._require(header.data_page_header_v2, "data_page_header_v2", page_index)
            encoding, num_values, num_rows = _encoding_name(dph.encoding), dph.num_values, dph.num_rows
        if num_values < 0 or num_rows < 0:
            raise CorruptPage("Page header declares a negative value count", page=page_index)

        info = PageInfo(
            index=page_index,
            page_type=header.type,
            header_offset=offset,
            header_length=header_length,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            num_values=num_values,
            encoding=encoding,
            num_rows=num_rows,
            first_row=index.rows_scanned,
        )
        entry = _PageEntry(info, header, continues_row)
        index.entries.append(entry)
        if info.is_data:
            index.data_entries.append(entry)
            index.data_first_rows.append(info.first_row)
            index.rows_scanned += num_rows
        index.next_offset = info.end_offset
        if index.next_offset >= end:
            index.complete = True
        self.logger.debug(
            f"Scanned {info.type_name} page {page_index} of {index.chunk.name} "
            f"(row group {index.chunk.row_group_index}): {num_values} values, {num_rows} rows, "
            f"{compressed_size} bytes"
        )

    @staticmethod
    def _require(value, name, page_index):
        if value is None:
            raise CorruptPage(f"Page header is missing {name}", page=page_index)
        return value

    def _read_page_header(self, offset, end, page_index):
        read_size = self.config.header_read_size
        while True:
            length = min(read_size, end - offset)
            data = self.accessor.read_at(offset, length)
            protocol = TCompactProtocol.TCompactProtocol(TMemoryBuffer(data))
            header = PageHeader()
            try:
                header.read(protocol)
                return header, protocol.trans._buffer.tell()
            except (EOFError, struct.error, TTransportException) as e:
                if length == end - offset:
                    raise CorruptPage(f"Truncated page header: {e}", page=page_index) from e
                # Headers with large statistics need a bigger read.
                read_size *= 4
            except (KeyError, TProtocolException, UnicodeDecodeError) as e:
                raise CorruptPage(f"Malformed page header: {e}", page=page_index) from e

    # Page decoding

    def _payload(self, info):
        return self.accessor.read_at(info.payload_offset, info.compressed_size)

    def _levels_v1(self, data, dph, leaf):
        count = dph.num_values
        repetition, offset = decode_levels_v1(
            data, _encoding_name(dph.repetition_level_encoding), leaf.repetition_level, count, 0
        )
        definition, offset = decode_levels_v1(
            data, _encoding_name(dph.definition_level_encoding), leaf.definition_level, count, offset
        )
        return repetition, definition, offset

    def _count_repeated_rows(self, chunk, leaf, header, payload_offset, page_index):
        raw = self.accessor.read_at(payload_offset, header.compressed_page_size)
        dph = header.data_page_header
        try:
            data = decompress(chunk.codec, raw, header.uncompressed_page_size)
            repetition, _ = decode_levels_v1(
                data, _encoding_name(dph.repetition_level_encoding), leaf.repetition_level, dph.num_values, 0
            )
        except ColumnError as e:
            raise e.locate(page=page_index)
        rows = sum(1 for r in repetition if r == 0)
        return rows, bool(repetition) and repetition[0] != 0

    def _decode_data_page(self, chunk, leaf, entry):
        info, header = entry.info, entry.header
        self.logger.debug(
            f"Decoding page {info.index} of {chunk.name} (row group {chunk.row_group_index}), "
            f"{info.encoding}, {chunk.codec}"
        )
        raw = self._payload(info)
        try:
            if header.type == PageType.DATA_PAGE:
                data = decompress(chunk.codec, raw, header.uncompressed_page_size)
                dph = header.data_page_header
                repetition, definition, offset = self._levels_v1(data, dph, leaf)
            else:
                dph = header.data_page_header_v2
                repetition, definition, data = self._split_v2(chunk, leaf, header, raw)
                offset = 0
            if leaf.definition_level == 0:
                present = dph.num_values
            else:
                present = sum(1 for d in definition if d == leaf.definition_level)
            values = self._decode_values(chunk, leaf, info.encoding, data, offset, present)

            if leaf.repetition_level:
                rows = sum(1 for r in repetition if r == 0)
                result = (tuple(repetition), tuple(definition), tuple(values))
            else:
                result = tuple(self._assemble(leaf, values, definition, repetition))
                rows = len(result)
        except ColumnError as e:
            raise e.locate(page=info.index)
        if rows != info.num_rows:
            raise CorruptPage(f"Page decoded to {rows} rows but declares {info.num_rows}", page=info.index)
        return result

    def _split_v2(self, chunk, leaf, header, raw):
        dph = header.data_page_header_v2
        repetition_length = dph.repetition_levels_byte_length
        definition_length = dph.definition_levels_byte_length
        levels_length = repetition_length + definition_length
        if repetition_length < 0 or definition_length < 0 or levels_length > len(raw):
            raise CorruptPage("Level byte lengths exceed the page size")
        repetition = decode_levels_v2(raw, leaf.repetition_level, dph.num_values, 0, repetition_length)
        definition = decode_levels_v2(
            raw, leaf.definition_level, dph.num_values, repetition_length, definition_length
        )
        values_size = header.uncompressed_page_size - levels_length
        if dph.is_compressed is False or chunk.codec == "UNCOMPRESSED":
            data = raw[levels_length:]
            if len(data) != values_size:
                raise CorruptPage(f"Page holds {len(data)} value bytes but declares {values_size}")
        else:
            data = decompress(chunk.codec, raw[levels_length:], values_size)
        return repetition, definition, data

    def _decode_values(self, chunk, leaf, encoding, data, offset, count):
        if encoding == "PLAIN":
            values, _ = decode_plain(data, leaf.physical_type, count, offset, leaf.type_length)
            return convert_all(values, make_converter(leaf.physical_type, leaf.logical_type))
        if encoding in DICTIONARY_ENCODINGS:
            dictionary = self._dictionary(chunk, leaf)
            indices = decode_dictionary_indices(data, count, offset)
            try:
                return [dictionary[i] for i in indices]
            except IndexError:
                raise CorruptPage(
                    f"Dictionary index {max(indices)} out of range for {len(dictionary)} entries"
                ) from None
        if encoding == "RLE" and leaf.physical_type == "BOOLEAN":
            return decode_rle_booleans(data, count, offset)
        raise UnsupportedEncoding(f"Encoding {encoding} is not supported for {leaf.physical_type}")

    def _dictionary(self, chunk, leaf):
        key = (chunk.row_group_index, chunk.column_index)
        return self._dictionaries.get_or_compute(key, lambda: self._decode_dictionary(chunk, leaf))

    def _dictionary_entry(self, chunk, leaf):
        """The chunk's dictionary page, or None when its first page is a data page."""
        index = self._index(chunk)
        with index.lock:
            if not index.entries and not index.complete:
                self._scan_next(index, leaf)
            entry = index.entries[0] if index.entries else None
        if entry is None or not entry.info.is_dictionary:
            return None
        return entry

    def _decode_dictionary(self, chunk, leaf):
        entry = self._dictionary_entry(chunk, leaf)
        if entry is None:
            raise CorruptPage("Dictionary-encoded page without a dictionary page")
        info, header = entry.info, entry.header
        if info.encoding not in ("PLAIN", "PLAIN_DICTIONARY"):
            raise UnsupportedEncoding(f"Dictionary page encoding {info.encoding} is not supported")
        try:
            data = decompress(chunk.codec, self._payload(info), header.uncompressed_page_size)
            values, _ = decode_plain(data, leaf.physical_type, info.num_values, 0, leaf.type_length)
        except ColumnError as e:
            raise e.locate(page=info.index)
        self.logger.debug(f"Decoded dictionary of {chunk.name}: {len(values)} entries")
        return tuple(convert_all(values, make_converter(leaf.physical_type, leaf.logical_type)))

    # Nested value assembly

    def _repeated_definition_levels(self, leaf):
        """Definition level of each repeated node on the leaf's path."""
        levels = self._repeated_levels.get(leaf.column_index)
        if levels is None:
            chain = ancestry(self.catalog.schema_tree, leaf)
            levels = [node.definition_level for node in chain if node.repetition == "REPEATED"]
            self._repeated_levels[leaf.column_index] = levels
        return levels

    def _assemble(self, leaf, values, definition, repetition):
        max_definition = leaf.definition_level
        remaining = iter(values)
        try:
            if leaf.repetition_level:
                return self._assemble_lists(leaf, remaining, definition, repetition)
            if max_definition == 0:
                return list(values)
            return [next(remaining) if d == max_definition else None for d in definition]
        except (IndexError, TypeError, AttributeError, StopIteration) as e:
            raise CorruptPage(f"Levels do not match the decoded values: {e!r}") from e

    def _assemble_lists(self, leaf, remaining, definition, repetition):
        max_definition = leaf.definition_level
        max_repetition = leaf.repetition_level
        repeated_levels = self._repeated_definition_levels(leaf)

        def build(d, depth):
            if depth == max_repetition:
                return next(remaining) if d == max_definition else None
            threshold = repeated_levels[depth]
            if d >= threshold:
                return [build(d, depth + 1)]
            # The list's enclosing node is defined: an empty list, else null.
            return [] if d >= threshold - 1 else None

        rows = []
        for r, d in zip(repetition, definition):
            if r == 0:
                rows.append(build(d, 0))
                continue
            # Descend to the list this level continues.
            target = rows[-1]
            for _ in range(r - 1):
                target = target[-1]
            target.append(build(d, r))
        return rows
