"""
Immutable records describing an opened Parquet file.

They are built once by the footer decoder and shared read-only by the
catalog, the page reader and the renderer boundary. Column chunks and pages
are identified by integer indices (row group, leaf column, page) rather than
by references between objects.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .parquet_format.ttypes import PageType


@dataclass(frozen=True)
class LogicalType:
    """Logical annotation of a schema element (or one derived from a
    legacy converted type)."""

    name: str
    unit: Optional[str] = None
    is_adjusted_to_utc: Optional[bool] = None
    bit_width: Optional[int] = None
    is_signed: Optional[bool] = None
    scale: Optional[int] = None
    precision: Optional[int] = None

    def describe(self):
        if self.name == "DECIMAL":
            return f"Decimal({self.scale},{self.precision})"
        if self.name == "INTEGER":
            return f"Integer({self.bit_width},{'sign' if self.is_signed else 'unsign'})"
        if self.name in ("TIME", "TIMESTAMP"):
            zone = "utc" if self.is_adjusted_to_utc else "local"
            return f"{self.name.capitalize()}({zone}, {self.unit.lower()})"
        return self.name.capitalize()


@dataclass(frozen=True)
class SchemaElement:
    """One entry of the flat, depth-first schema list as stored in the footer."""

    name: str
    physical_type: Optional[str] = None
    type_length: Optional[int] = None
    repetition: Optional[str] = None
    num_children: Optional[int] = None
    converted_type: Optional[str] = None
    logical_type: Optional[LogicalType] = None
    scale: Optional[int] = None
    precision: Optional[int] = None
    field_id: Optional[int] = None

    @property
    def is_group(self):
        return self.physical_type is None


@dataclass(frozen=True)
class ColumnStatistics:
    """Footer statistics of one column chunk.

    Every field is independently optional; ``None`` means the writer did not
    record it, never zero.
    """

    min_value: Any = None
    max_value: Any = None
    null_count: Optional[int] = None
    distinct_count: Optional[int] = None
    min_raw: Optional[bytes] = None
    max_raw: Optional[bytes] = None

    @property
    def has_min_max(self):
        return self.min_value is not None and self.max_value is not None


@dataclass(frozen=True)
class ColumnChunk:
    row_group_index: int
    column_index: int
    path: tuple
    physical_type: str
    codec: str
    encodings: tuple
    offset: int
    length: int
    data_page_offset: int
    num_values: int
    num_rows: int
    total_compressed_size: int
    total_uncompressed_size: int
    statistics: ColumnStatistics = field(default_factory=ColumnStatistics)
    dictionary_page_offset: Optional[int] = None
    file_path: Optional[str] = None
    has_statistics: bool = False
    has_bloom_filter: bool = False
    has_page_encoding_stats: bool = False
    has_column_index: bool = False
    has_offset_index: bool = False

    @property
    def name(self):
        return ".".join(self.path)

    @property
    def byte_range(self):
        return (self.offset, self.offset + self.length)

    @property
    def has_dictionary_page(self):
        return self.dictionary_page_offset is not None

    @property
    def uses_dictionary(self):
        return self.has_dictionary_page or any(
            encoding in ("PLAIN_DICTIONARY", "RLE_DICTIONARY") for encoding in self.encodings
        )


@dataclass(frozen=True)
class RowGroup:
    index: int
    num_rows: int
    total_byte_size: int
    total_compressed_size: int
    columns: tuple
    file_offset: Optional[int] = None

    @property
    def compression_ratio(self):
        if not self.total_compressed_size:
            return 0.0
        return self.total_byte_size / self.total_compressed_size


@dataclass(frozen=True)
class FileMetadata:
    version: int
    num_rows: int
    schema: tuple
    row_groups: tuple
    key_value_metadata: dict
    created_by: Optional[str]
    footer_offset: int
    footer_length: int
    file_size: int


@dataclass(frozen=True)
class PageInfo:
    """Location and header summary of one page inside a column chunk."""

    index: int
    page_type: int
    header_offset: int
    header_length: int
    compressed_size: int
    uncompressed_size: int
    num_values: int
    encoding: Optional[str]
    num_rows: Optional[int] = None
    first_row: Optional[int] = None

    @property
    def payload_offset(self):
        return self.header_offset + self.header_length

    @property
    def end_offset(self):
        return self.payload_offset + self.compressed_size

    @property
    def is_dictionary(self):
        return self.page_type == PageType.DICTIONARY_PAGE

    @property
    def is_data(self):
        return self.page_type in (PageType.DATA_PAGE, PageType.DATA_PAGE_V2)

    @property
    def type_name(self):
        return PageType._VALUES_TO_NAMES.get(self.page_type, str(self.page_type))
