"""
Footer location and decoding.

A Parquet file ends with the thrift-encoded FileMetaData, a 4-byte
little-endian footer length and the magic number::

    PAR1 <column chunks ...> <FileMetaData> <footer length> PAR1

The footer is read back-to-front through a FileAccessor and decoded with the
thrift compact protocol into the immutable records of ``model``.
"""

import logging
import struct

from thrift.protocol import TCompactProtocol
from thrift.protocol.TProtocol import TProtocolException
from thrift.transport.TTransport import TMemoryBuffer, TTransportException

from .accessor import open_accessor
from .errors import CorruptFooter, TruncatedFile, UnsupportedVersion
from .model import (
    ColumnChunk,
    ColumnStatistics,
    FileMetadata,
    LogicalType,
    RowGroup,
    SchemaElement,
)
from .parquet_format import ttypes
from .values import decode_statistic

MAGIC = b"PAR1"
ENCRYPTED_MAGIC = b"PARE"
FOOTER_SIZE = 8
MIN_FILE_SIZE = len(MAGIC) + FOOTER_SIZE
MAX_FORMAT_VERSION = 2

_CONVERTED_TO_LOGICAL = {
    "UTF8": LogicalType("STRING"),
    "ENUM": LogicalType("ENUM"),
    "JSON": LogicalType("JSON"),
    "BSON": LogicalType("BSON"),
    "DATE": LogicalType("DATE"),
    "LIST": LogicalType("LIST"),
    "MAP": LogicalType("MAP"),
    "TIME_MILLIS": LogicalType("TIME", unit="MILLIS", is_adjusted_to_utc=True),
    "TIME_MICROS": LogicalType("TIME", unit="MICROS", is_adjusted_to_utc=True),
    "TIMESTAMP_MILLIS": LogicalType("TIMESTAMP", unit="MILLIS", is_adjusted_to_utc=True),
    "TIMESTAMP_MICROS": LogicalType("TIMESTAMP", unit="MICROS", is_adjusted_to_utc=True),
    "UINT_8": LogicalType("INTEGER", bit_width=8, is_signed=False),
    "UINT_16": LogicalType("INTEGER", bit_width=16, is_signed=False),
    "UINT_32": LogicalType("INTEGER", bit_width=32, is_signed=False),
    "UINT_64": LogicalType("INTEGER", bit_width=64, is_signed=False),
    "INT_8": LogicalType("INTEGER", bit_width=8, is_signed=True),
    "INT_16": LogicalType("INTEGER", bit_width=16, is_signed=True),
    "INT_32": LogicalType("INTEGER", bit_width=32, is_signed=True),
    "INT_64": LogicalType("INTEGER", bit_width=64, is_signed=True),
}

# Legacy min/max were written with signed comparison; only trust them where
# that matches the column's natural order.
_LEGACY_STATS_TYPES = {"BOOLEAN", "INT32", "INT64", "FLOAT", "DOUBLE"}


def _enum_name(enum_class, value):
    if value is None:
        return None
    return enum_class._VALUES_TO_NAMES.get(value, f"UNKNOWN({value})")


def _logical_type(element):
    logical = element.logicalType
    if logical is not None:
        member = logical.set_field()
        if member == "DECIMAL":
            return LogicalType("DECIMAL", scale=logical.DECIMAL.scale, precision=logical.DECIMAL.precision)
        if member == "INTEGER":
            return LogicalType("INTEGER", bit_width=logical.INTEGER.bitWidth, is_signed=logical.INTEGER.isSigned)
        if member in ("TIME", "TIMESTAMP"):
            annotation = getattr(logical, member)
            unit = annotation.unit.set_field() if annotation.unit is not None else None
            return LogicalType(member, unit=unit, is_adjusted_to_utc=annotation.isAdjustedToUTC)
        if member is not None:
            return LogicalType(member)
    converted = _enum_name(ttypes.ConvertedType, element.converted_type)
    if converted == "DECIMAL":
        return LogicalType("DECIMAL", scale=element.scale or 0, precision=element.precision)
    return _CONVERTED_TO_LOGICAL.get(converted)


def _schema_element(element):
    return SchemaElement(
        name=element.name,
        physical_type=_enum_name(ttypes.Type, element.type),
        type_length=element.type_length,
        repetition=_enum_name(ttypes.FieldRepetitionType, element.repetition_type),
        num_children=element.num_children,
        converted_type=_enum_name(ttypes.ConvertedType, element.converted_type),
        logical_type=_logical_type(element),
        scale=element.scale,
        precision=element.precision,
        field_id=element.field_id,
    )


def _statistics(stats, leaf):
    if stats is None:
        return ColumnStatistics()
    min_raw, max_raw = stats.min_value, stats.max_value
    if min_raw is None and max_raw is None and leaf.physical_type in _LEGACY_STATS_TYPES:
        unsigned = leaf.logical_type is not None and leaf.logical_type.is_signed is False
        if not unsigned:
            min_raw, max_raw = stats.min, stats.max
    return ColumnStatistics(
        min_value=decode_statistic(min_raw, leaf.physical_type, leaf.logical_type, leaf.type_length),
        max_value=decode_statistic(max_raw, leaf.physical_type, leaf.logical_type, leaf.type_length),
        null_count=stats.null_count,
        distinct_count=stats.distinct_count,
        min_raw=min_raw,
        max_raw=max_raw,
    )


class FooterDecoder(object):
    """Reads and validates the footer of one file.

    ``decode()`` either returns a complete FileMetadata or raises; it never
    exposes partially decoded metadata.
    """

    logger = logging.getLogger(__qualname__)

    def __init__(self, accessor):
        self.accessor = accessor

    def decode(self):
        file_size = self.accessor.size
        if file_size < MIN_FILE_SIZE:
            raise TruncatedFile(
                f"{self.accessor.name} is {file_size} bytes; a Parquet file "
                f"needs at least {MIN_FILE_SIZE}"
            )

        header = self.accessor.read_at(0, len(MAGIC))
        trailer = self.accessor.read_at(file_size - FOOTER_SIZE, FOOTER_SIZE)
        footer_length = struct.unpack("<I", trailer[:4])[0]
        footer_magic = trailer[4:]
        if footer_magic == ENCRYPTED_MAGIC:
            raise CorruptFooter("Encrypted Parquet footers are not supported")
        if footer_magic != MAGIC:
            raise CorruptFooter(f"Invalid Parquet magic at footer. Expected {MAGIC!r}, got {footer_magic!r}")
        if header != MAGIC:
            raise CorruptFooter(f"Invalid Parquet magic at file start. Expected {MAGIC!r}, got {header!r}")
        if footer_length > file_size - MIN_FILE_SIZE:
            raise CorruptFooter(
                f"Footer length {footer_length} exceeds the {file_size - MIN_FILE_SIZE} "
                f"bytes available before the trailer"
            )

        footer_offset = file_size - FOOTER_SIZE - footer_length
        self.logger.debug(f"Footer at [{footer_offset}, {footer_offset + footer_length}) of {file_size} bytes")
        footer_bytes = self.accessor.read_at(footer_offset, footer_length)
        thrift_metadata = self._parse(footer_bytes)

        if thrift_metadata.version > MAX_FORMAT_VERSION:
            raise UnsupportedVersion(thrift_metadata.version, MAX_FORMAT_VERSION)

        schema = tuple(_schema_element(e) for e in thrift_metadata.schema)
        leaves = [e for e in schema[1:] if not e.is_group]
        row_groups = tuple(
            self._row_group(index, rg, leaves, footer_offset)
            for index, rg in enumerate(thrift_metadata.row_groups)
        )
        key_value_metadata = {
            kv.key: kv.value for kv in (thrift_metadata.key_value_metadata or [])
        }
        if thrift_metadata.num_rows < 0:
            raise CorruptFooter(f"Negative row count {thrift_metadata.num_rows}")

        metadata = FileMetadata(
            version=thrift_metadata.version,
            num_rows=thrift_metadata.num_rows,
            schema=schema,
            row_groups=row_groups,
            key_value_metadata=key_value_metadata,
            created_by=thrift_metadata.created_by,
            footer_offset=footer_offset,
            footer_length=footer_length,
            file_size=file_size,
        )
        self.logger.debug(
            f"Decoded footer: version {metadata.version}, {len(row_groups)} row groups, "
            f"{metadata.num_rows} rows, {len(schema)} schema elements"
        )
        return metadata

    def _parse(self, footer_bytes):
        protocol = TCompactProtocol.TCompactProtocol(TMemoryBuffer(footer_bytes))
        thrift_metadata = ttypes.FileMetaData()
        try:
            thrift_metadata.read(protocol)
        except (EOFError, KeyError, TProtocolException, TTransportException, UnicodeDecodeError, struct.error) as e:
            raise CorruptFooter(f"Thrift deserialization of FileMetaData failed: {e}") from e
        return thrift_metadata

    def _row_group(self, index, rg, leaves, footer_offset):
        if rg.num_rows < 0 or rg.total_byte_size < 0:
            raise CorruptFooter(f"Row group {index} declares negative sizes")
        columns = tuple(
            self._column_chunk(index, column_index, chunk, leaves, rg.num_rows, footer_offset)
            for column_index, chunk in enumerate(rg.columns)
        )
        total_compressed = rg.total_compressed_size
        if total_compressed is None:
            total_compressed = sum(c.total_compressed_size for c in columns)
        return RowGroup(
            index=index,
            num_rows=rg.num_rows,
            total_byte_size=rg.total_byte_size,
            total_compressed_size=total_compressed,
            columns=columns,
            file_offset=rg.file_offset,
        )

    def _column_chunk(self, row_group_index, column_index, chunk, leaves, num_rows, footer_offset):
        md = chunk.meta_data
        where = f"row group {row_group_index}, column {column_index}"
        if md is None:
            raise CorruptFooter(f"Column chunk metadata missing ({where})")

        physical_type = _enum_name(ttypes.Type, md.type)
        if column_index < len(leaves):
            leaf = leaves[column_index]
        else:
            leaf = SchemaElement(name=md.path_in_schema[-1] if md.path_in_schema else "", physical_type=physical_type)

        dictionary_page_offset = md.dictionary_page_offset
        if dictionary_page_offset is not None and dictionary_page_offset <= 0:
            # Some writers store 0 for "no dictionary page".
            dictionary_page_offset = None
        offset = md.data_page_offset
        if dictionary_page_offset is not None:
            offset = min(offset, dictionary_page_offset)
        length = md.total_compressed_size

        if offset < 0 or length < 0 or md.total_uncompressed_size < 0 or md.num_values < 0:
            raise CorruptFooter(f"Negative offset or size in column chunk metadata ({where})")
        if num_rows == 0 or md.num_values == 0:
            # Writers store empty chunks with a zero data page offset; there is nothing to read.
            length = 0
        elif chunk.file_path is None and (offset < len(MAGIC) or offset + length > footer_offset):
            raise CorruptFooter(
                f"Column chunk byte range [{offset}, {offset + length}) lies outside "
                f"the data region [{len(MAGIC)}, {footer_offset}) ({where})"
            )

        return ColumnChunk(
            row_group_index=row_group_index,
            column_index=column_index,
            path=tuple(md.path_in_schema),
            physical_type=physical_type,
            codec=_enum_name(ttypes.CompressionCodec, md.codec),
            encodings=tuple(_enum_name(ttypes.Encoding, e) for e in md.encodings),
            offset=offset,
            length=length,
            data_page_offset=md.data_page_offset,
            num_values=md.num_values,
            num_rows=num_rows,
            total_compressed_size=md.total_compressed_size,
            total_uncompressed_size=md.total_uncompressed_size,
            statistics=_statistics(md.statistics, leaf),
            dictionary_page_offset=dictionary_page_offset,
            file_path=chunk.file_path,
            has_statistics=md.statistics is not None,
            has_bloom_filter=md.bloom_filter_offset is not None,
            has_page_encoding_stats=bool(md.encoding_stats),
            has_column_index=chunk.column_index_offset is not None,
            has_offset_index=chunk.offset_index_offset is not None,
        )


def decode_footer(source):
    """Decode the footer of a path, a bytes buffer or a FileAccessor."""
    accessor = open_accessor(source)
    try:
        return FooterDecoder(accessor).decode()
    finally:
        if accessor is not source:
            accessor.close()


def create_segment(range_start, range_end, name, value=None, metadata=None):
    segment = {}
    segment["offset_range"] = [range_start, range_end]
    segment["name"] = name
    segment["value"] = value
    if metadata:
        segment["metadata"] = metadata
    return segment


def describe_layout(metadata):
    """Byte layout of the file as segments ordered by offset."""
    footer_end = metadata.footer_offset + metadata.footer_length
    segments = [
        create_segment(0, len(MAGIC), "magic_number", MAGIC.decode()),
        create_segment(
            metadata.footer_offset, footer_end, "footer",
            metadata={"row_groups": len(metadata.row_groups), "version": metadata.version},
        ),
        create_segment(footer_end, footer_end + 4, "footer_length", metadata.footer_length),
        create_segment(footer_end + 4, metadata.file_size, "magic_number", MAGIC.decode()),
    ]
    for rg in metadata.row_groups:
        for chunk in rg.columns:
            if chunk.file_path is not None or chunk.length == 0:
                continue
            segments.append(
                create_segment(
                    chunk.offset, chunk.offset + chunk.length, "column_chunk", chunk.name,
                    metadata={
                        "row_group": rg.index,
                        "column": chunk.column_index,
                        "codec": chunk.codec,
                        "encodings": list(chunk.encodings),
                    },
                )
            )
    segments.sort(key=lambda s: s["offset_range"])
    return segments
