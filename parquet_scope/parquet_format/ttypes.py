"""
Thrift structures of the parquet-format footer and page headers.

The field ids, types and enum values follow parquet.thrift. Every struct
carries a ``thrift_spec`` tuple laid out like the one emitted by
``thrift --gen py:dynamic`` (index == field id, entries ``(id, ttype, name,
type_args, default)``) and is read by thrift's ``TBase``. Fields the engine
does not model are skipped on the wire.
"""

from thrift.Thrift import TType
from thrift.protocol.TBase import TBase
from thrift.protocol.TProtocol import TProtocolException


class Type(object):
    BOOLEAN = 0
    INT32 = 1
    INT64 = 2
    INT96 = 3
    FLOAT = 4
    DOUBLE = 5
    BYTE_ARRAY = 6
    FIXED_LEN_BYTE_ARRAY = 7

    _VALUES_TO_NAMES = {
        0: "BOOLEAN",
        1: "INT32",
        2: "INT64",
        3: "INT96",
        4: "FLOAT",
        5: "DOUBLE",
        6: "BYTE_ARRAY",
        7: "FIXED_LEN_BYTE_ARRAY",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class ConvertedType(object):
    UTF8 = 0
    MAP = 1
    MAP_KEY_VALUE = 2
    LIST = 3
    ENUM = 4
    DECIMAL = 5
    DATE = 6
    TIME_MILLIS = 7
    TIME_MICROS = 8
    TIMESTAMP_MILLIS = 9
    TIMESTAMP_MICROS = 10
    UINT_8 = 11
    UINT_16 = 12
    UINT_32 = 13
    UINT_64 = 14
    INT_8 = 15
    INT_16 = 16
    INT_32 = 17
    INT_64 = 18
    JSON = 19
    BSON = 20
    INTERVAL = 21

    _VALUES_TO_NAMES = {
        0: "UTF8",
        1: "MAP",
        2: "MAP_KEY_VALUE",
        3: "LIST",
        4: "ENUM",
        5: "DECIMAL",
        6: "DATE",
        7: "TIME_MILLIS",
        8: "TIME_MICROS",
        9: "TIMESTAMP_MILLIS",
        10: "TIMESTAMP_MICROS",
        11: "UINT_8",
        12: "UINT_16",
        13: "UINT_32",
        14: "UINT_64",
        15: "INT_8",
        16: "INT_16",
        17: "INT_32",
        18: "INT_64",
        19: "JSON",
        20: "BSON",
        21: "INTERVAL",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class FieldRepetitionType(object):
    REQUIRED = 0
    OPTIONAL = 1
    REPEATED = 2

    _VALUES_TO_NAMES = {
        0: "REQUIRED",
        1: "OPTIONAL",
        2: "REPEATED",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class Encoding(object):
    PLAIN = 0
    PLAIN_DICTIONARY = 2
    RLE = 3
    BIT_PACKED = 4
    DELTA_BINARY_PACKED = 5
    DELTA_LENGTH_BYTE_ARRAY = 6
    DELTA_BYTE_ARRAY = 7
    RLE_DICTIONARY = 8
    BYTE_STREAM_SPLIT = 9

    _VALUES_TO_NAMES = {
        0: "PLAIN",
        2: "PLAIN_DICTIONARY",
        3: "RLE",
        4: "BIT_PACKED",
        5: "DELTA_BINARY_PACKED",
        6: "DELTA_LENGTH_BYTE_ARRAY",
        7: "DELTA_BYTE_ARRAY",
        8: "RLE_DICTIONARY",
        9: "BYTE_STREAM_SPLIT",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class CompressionCodec(object):
    UNCOMPRESSED = 0
    SNAPPY = 1
    GZIP = 2
    LZO = 3
    BROTLI = 4
    LZ4 = 5
    ZSTD = 6
    LZ4_RAW = 7

    _VALUES_TO_NAMES = {
        0: "UNCOMPRESSED",
        1: "SNAPPY",
        2: "GZIP",
        3: "LZO",
        4: "BROTLI",
        5: "LZ4",
        6: "ZSTD",
        7: "LZ4_RAW",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class PageType(object):
    DATA_PAGE = 0
    INDEX_PAGE = 1
    DICTIONARY_PAGE = 2
    DATA_PAGE_V2 = 3

    _VALUES_TO_NAMES = {
        0: "DATA_PAGE",
        1: "INDEX_PAGE",
        2: "DICTIONARY_PAGE",
        3: "DATA_PAGE_V2",
    }

    _NAMES_TO_VALUES = {v: k for k, v in _VALUES_TO_NAMES.items()}


class ThriftStruct(TBase):
    """Base of the structs below, in the form ``thrift --gen py:dynamic`` emits.

    ``TBase.read`` hands ``thrift_spec`` to the protocol's ``readStruct``;
    required fields are checked once the struct has been read.
    """

    __slots__ = ()
    thrift_spec = (None,)
    required_fields = ()

    def __init__(self, **kwargs):
        for spec in self.thrift_spec:
            if spec is None:
                continue
            setattr(self, spec[2], kwargs.pop(spec[2], spec[4]))
        if kwargs:
            raise TypeError(
                f"{self.__class__.__name__} got unexpected fields: {', '.join(sorted(kwargs))}"
            )

    def read(self, iprot):
        super().read(iprot)
        self.validate()

    def validate(self):
        for name in self.required_fields:
            if getattr(self, name) is None:
                raise TProtocolException(
                    type=TProtocolException.INVALID_DATA,
                    message=f"Required field {self.__class__.__name__}.{name} is unset!",
                )

    def set_field(self):
        """Name of the first populated field; the active member of a union."""
        for spec in self.thrift_spec:
            if spec is not None and getattr(self, spec[2]) is not None:
                return spec[2]
        return None


class Statistics(ThriftStruct):
    __slots__ = (
        'max', 'min', 'null_count', 'distinct_count', 'max_value', 'min_value',
        'is_max_value_exact', 'is_min_value_exact',
    )
    thrift_spec = (
        None,  # 0
        (1, TType.STRING, 'max', 'BINARY', None, ),  # 1
        (2, TType.STRING, 'min', 'BINARY', None, ),  # 2
        (3, TType.I64, 'null_count', None, None, ),  # 3
        (4, TType.I64, 'distinct_count', None, None, ),  # 4
        (5, TType.STRING, 'max_value', 'BINARY', None, ),  # 5
        (6, TType.STRING, 'min_value', 'BINARY', None, ),  # 6
        (7, TType.BOOL, 'is_max_value_exact', None, None, ),  # 7
        (8, TType.BOOL, 'is_min_value_exact', None, None, ),  # 8
    )


class _EmptyStruct(ThriftStruct):
    __slots__ = ()


class StringType(_EmptyStruct):
    __slots__ = ()


class MapType(_EmptyStruct):
    __slots__ = ()


class ListType(_EmptyStruct):
    __slots__ = ()


class EnumType(_EmptyStruct):
    __slots__ = ()


class DateType(_EmptyStruct):
    __slots__ = ()


class Float16Type(_EmptyStruct):
    __slots__ = ()


class NullType(_EmptyStruct):
    __slots__ = ()


class JsonType(_EmptyStruct):
    __slots__ = ()


class BsonType(_EmptyStruct):
    __slots__ = ()


class UUIDType(_EmptyStruct):
    __slots__ = ()


class VariantType(_EmptyStruct):
    __slots__ = ()


class GeometryType(_EmptyStruct):
    __slots__ = ()


class GeographyType(_EmptyStruct):
    __slots__ = ()


class MilliSeconds(_EmptyStruct):
    __slots__ = ()


class MicroSeconds(_EmptyStruct):
    __slots__ = ()


class NanoSeconds(_EmptyStruct):
    __slots__ = ()


class DecimalType(ThriftStruct):
    __slots__ = ('scale', 'precision')
    required_fields = ('scale', 'precision')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'scale', None, None, ),  # 1
        (2, TType.I32, 'precision', None, None, ),  # 2
    )


class TimeUnit(ThriftStruct):
    __slots__ = ('MILLIS', 'MICROS', 'NANOS')
    thrift_spec = (
        None,  # 0
        (1, TType.STRUCT, 'MILLIS', [MilliSeconds, None], None, ),  # 1
        (2, TType.STRUCT, 'MICROS', [MicroSeconds, None], None, ),  # 2
        (3, TType.STRUCT, 'NANOS', [NanoSeconds, None], None, ),  # 3
    )


class TimestampType(ThriftStruct):
    __slots__ = ('isAdjustedToUTC', 'unit')
    required_fields = ('isAdjustedToUTC', 'unit')
    thrift_spec = (
        None,  # 0
        (1, TType.BOOL, 'isAdjustedToUTC', None, None, ),  # 1
        (2, TType.STRUCT, 'unit', [TimeUnit, None], None, ),  # 2
    )


class TimeType(ThriftStruct):
    __slots__ = ('isAdjustedToUTC', 'unit')
    required_fields = ('isAdjustedToUTC', 'unit')
    thrift_spec = (
        None,  # 0
        (1, TType.BOOL, 'isAdjustedToUTC', None, None, ),  # 1
        (2, TType.STRUCT, 'unit', [TimeUnit, None], None, ),  # 2
    )


class IntType(ThriftStruct):
    __slots__ = ('bitWidth', 'isSigned')
    required_fields = ('bitWidth', 'isSigned')
    thrift_spec = (
        None,  # 0
        (1, TType.BYTE, 'bitWidth', None, None, ),  # 1
        (2, TType.BOOL, 'isSigned', None, None, ),  # 2
    )


class LogicalType(ThriftStruct):
    __slots__ = (
        'STRING', 'MAP', 'LIST', 'ENUM', 'DECIMAL', 'DATE', 'TIME', 'TIMESTAMP',
        'INTEGER', 'UNKNOWN', 'JSON', 'BSON', 'UUID', 'FLOAT16', 'VARIANT',
        'GEOMETRY', 'GEOGRAPHY',
    )
    thrift_spec = (
        None,  # 0
        (1, TType.STRUCT, 'STRING', [StringType, None], None, ),  # 1
        (2, TType.STRUCT, 'MAP', [MapType, None], None, ),  # 2
        (3, TType.STRUCT, 'LIST', [ListType, None], None, ),  # 3
        (4, TType.STRUCT, 'ENUM', [EnumType, None], None, ),  # 4
        (5, TType.STRUCT, 'DECIMAL', [DecimalType, None], None, ),  # 5
        (6, TType.STRUCT, 'DATE', [DateType, None], None, ),  # 6
        (7, TType.STRUCT, 'TIME', [TimeType, None], None, ),  # 7
        (8, TType.STRUCT, 'TIMESTAMP', [TimestampType, None], None, ),  # 8
        None,  # 9
        (10, TType.STRUCT, 'INTEGER', [IntType, None], None, ),  # 10
        (11, TType.STRUCT, 'UNKNOWN', [NullType, None], None, ),  # 11
        (12, TType.STRUCT, 'JSON', [JsonType, None], None, ),  # 12
        (13, TType.STRUCT, 'BSON', [BsonType, None], None, ),  # 13
        (14, TType.STRUCT, 'UUID', [UUIDType, None], None, ),  # 14
        (15, TType.STRUCT, 'FLOAT16', [Float16Type, None], None, ),  # 15
        (16, TType.STRUCT, 'VARIANT', [VariantType, None], None, ),  # 16
        (17, TType.STRUCT, 'GEOMETRY', [GeometryType, None], None, ),  # 17
        (18, TType.STRUCT, 'GEOGRAPHY', [GeographyType, None], None, ),  # 18
    )


class SchemaElement(ThriftStruct):
    __slots__ = (
        'type', 'type_length', 'repetition_type', 'name', 'num_children',
        'converted_type', 'scale', 'precision', 'field_id', 'logicalType',
    )
    required_fields = ('name',)
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'type', None, None, ),  # 1
        (2, TType.I32, 'type_length', None, None, ),  # 2
        (3, TType.I32, 'repetition_type', None, None, ),  # 3
        (4, TType.STRING, 'name', 'UTF8', None, ),  # 4
        (5, TType.I32, 'num_children', None, None, ),  # 5
        (6, TType.I32, 'converted_type', None, None, ),  # 6
        (7, TType.I32, 'scale', None, None, ),  # 7
        (8, TType.I32, 'precision', None, None, ),  # 8
        (9, TType.I32, 'field_id', None, None, ),  # 9
        (10, TType.STRUCT, 'logicalType', [LogicalType, None], None, ),  # 10
    )


class KeyValue(ThriftStruct):
    __slots__ = ('key', 'value')
    required_fields = ('key',)
    thrift_spec = (
        None,  # 0
        (1, TType.STRING, 'key', 'UTF8', None, ),  # 1
        (2, TType.STRING, 'value', 'UTF8', None, ),  # 2
    )


class PageEncodingStats(ThriftStruct):
    __slots__ = ('page_type', 'encoding', 'count')
    required_fields = ('page_type', 'encoding', 'count')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'page_type', None, None, ),  # 1
        (2, TType.I32, 'encoding', None, None, ),  # 2
        (3, TType.I32, 'count', None, None, ),  # 3
    )


class ColumnMetaData(ThriftStruct):
    __slots__ = (
        'type', 'encodings', 'path_in_schema', 'codec', 'num_values',
        'total_uncompressed_size', 'total_compressed_size', 'key_value_metadata',
        'data_page_offset', 'index_page_offset', 'dictionary_page_offset',
        'statistics', 'encoding_stats', 'bloom_filter_offset', 'bloom_filter_length',
    )
    required_fields = (
        'type', 'encodings', 'path_in_schema', 'codec', 'num_values',
        'total_uncompressed_size', 'total_compressed_size', 'data_page_offset',
    )
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'type', None, None, ),  # 1
        (2, TType.LIST, 'encodings', (TType.I32, None, False), None, ),  # 2
        (3, TType.LIST, 'path_in_schema', (TType.STRING, 'UTF8', False), None, ),  # 3
        (4, TType.I32, 'codec', None, None, ),  # 4
        (5, TType.I64, 'num_values', None, None, ),  # 5
        (6, TType.I64, 'total_uncompressed_size', None, None, ),  # 6
        (7, TType.I64, 'total_compressed_size', None, None, ),  # 7
        (8, TType.LIST, 'key_value_metadata', (TType.STRUCT, [KeyValue, None], False), None, ),  # 8
        (9, TType.I64, 'data_page_offset', None, None, ),  # 9
        (10, TType.I64, 'index_page_offset', None, None, ),  # 10
        (11, TType.I64, 'dictionary_page_offset', None, None, ),  # 11
        (12, TType.STRUCT, 'statistics', [Statistics, None], None, ),  # 12
        (13, TType.LIST, 'encoding_stats', (TType.STRUCT, [PageEncodingStats, None], False), None, ),  # 13
        (14, TType.I64, 'bloom_filter_offset', None, None, ),  # 14
        (15, TType.I32, 'bloom_filter_length', None, None, ),  # 15
    )


class ColumnChunk(ThriftStruct):
    __slots__ = (
        'file_path', 'file_offset', 'meta_data', 'offset_index_offset',
        'offset_index_length', 'column_index_offset', 'column_index_length',
    )
    required_fields = ('file_offset',)
    thrift_spec = (
        None,  # 0
        (1, TType.STRING, 'file_path', 'UTF8', None, ),  # 1
        (2, TType.I64, 'file_offset', None, 0, ),  # 2
        (3, TType.STRUCT, 'meta_data', [ColumnMetaData, None], None, ),  # 3
        (4, TType.I64, 'offset_index_offset', None, None, ),  # 4
        (5, TType.I32, 'offset_index_length', None, None, ),  # 5
        (6, TType.I64, 'column_index_offset', None, None, ),  # 6
        (7, TType.I32, 'column_index_length', None, None, ),  # 7
    )


class RowGroup(ThriftStruct):
    __slots__ = ('columns', 'total_byte_size', 'num_rows', 'file_offset', 'total_compressed_size', 'ordinal')
    required_fields = ('columns', 'total_byte_size', 'num_rows')
    thrift_spec = (
        None,  # 0
        (1, TType.LIST, 'columns', (TType.STRUCT, [ColumnChunk, None], False), None, ),  # 1
        (2, TType.I64, 'total_byte_size', None, None, ),  # 2
        (3, TType.I64, 'num_rows', None, None, ),  # 3
        None,  # 4 sorting_columns
        (5, TType.I64, 'file_offset', None, None, ),  # 5
        (6, TType.I64, 'total_compressed_size', None, None, ),  # 6
        (7, TType.I16, 'ordinal', None, None, ),  # 7
    )


class FileMetaData(ThriftStruct):
    __slots__ = ('version', 'schema', 'num_rows', 'row_groups', 'key_value_metadata', 'created_by')
    required_fields = ('version', 'schema', 'num_rows', 'row_groups')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'version', None, None, ),  # 1
        (2, TType.LIST, 'schema', (TType.STRUCT, [SchemaElement, None], False), None, ),  # 2
        (3, TType.I64, 'num_rows', None, None, ),  # 3
        (4, TType.LIST, 'row_groups', (TType.STRUCT, [RowGroup, None], False), None, ),  # 4
        (5, TType.LIST, 'key_value_metadata', (TType.STRUCT, [KeyValue, None], False), None, ),  # 5
        (6, TType.STRING, 'created_by', 'UTF8', None, ),  # 6
    )


class DataPageHeader(ThriftStruct):
    __slots__ = (
        'num_values', 'encoding', 'definition_level_encoding',
        'repetition_level_encoding', 'statistics',
    )
    required_fields = ('num_values', 'encoding', 'definition_level_encoding', 'repetition_level_encoding')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'num_values', None, None, ),  # 1
        (2, TType.I32, 'encoding', None, None, ),  # 2
        (3, TType.I32, 'definition_level_encoding', None, None, ),  # 3
        (4, TType.I32, 'repetition_level_encoding', None, None, ),  # 4
        (5, TType.STRUCT, 'statistics', [Statistics, None], None, ),  # 5
    )


class DictionaryPageHeader(ThriftStruct):
    __slots__ = ('num_values', 'encoding', 'is_sorted')
    required_fields = ('num_values', 'encoding')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'num_values', None, None, ),  # 1
        (2, TType.I32, 'encoding', None, None, ),  # 2
        (3, TType.BOOL, 'is_sorted', None, None, ),  # 3
    )


class DataPageHeaderV2(ThriftStruct):
    __slots__ = (
        'num_values', 'num_nulls', 'num_rows', 'encoding', 'definition_levels_byte_length',
        'repetition_levels_byte_length', 'is_compressed', 'statistics',
    )
    required_fields = (
        'num_values', 'num_nulls', 'num_rows', 'encoding',
        'definition_levels_byte_length', 'repetition_levels_byte_length',
    )
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'num_values', None, None, ),  # 1
        (2, TType.I32, 'num_nulls', None, None, ),  # 2
        (3, TType.I32, 'num_rows', None, None, ),  # 3
        (4, TType.I32, 'encoding', None, None, ),  # 4
        (5, TType.I32, 'definition_levels_byte_length', None, None, ),  # 5
        (6, TType.I32, 'repetition_levels_byte_length', None, None, ),  # 6
        (7, TType.BOOL, 'is_compressed', None, True, ),  # 7
        (8, TType.STRUCT, 'statistics', [Statistics, None], None, ),  # 8
    )


class PageHeader(ThriftStruct):
    __slots__ = (
        'type', 'uncompressed_page_size', 'compressed_page_size', 'crc',
        'data_page_header', 'dictionary_page_header', 'data_page_header_v2',
    )
    required_fields = ('type', 'uncompressed_page_size', 'compressed_page_size')
    thrift_spec = (
        None,  # 0
        (1, TType.I32, 'type', None, None, ),  # 1
        (2, TType.I32, 'uncompressed_page_size', None, None, ),  # 2
        (3, TType.I32, 'compressed_page_size', None, None, ),  # 3
        (4, TType.I32, 'crc', None, None, ),  # 4
        (5, TType.STRUCT, 'data_page_header', [DataPageHeader, None], None, ),  # 5
        None,  # 6 index_page_header
        (7, TType.STRUCT, 'dictionary_page_header', [DictionaryPageHeader, None], None, ),  # 7
        (8, TType.STRUCT, 'data_page_header_v2', [DataPageHeaderV2, None], None, ),  # 8
    )
