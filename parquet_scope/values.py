"""
Conversion of physical Parquet values to typed Python values.

Used for footer statistics and for decoded page values, so that a statistic
and a cell of the same column always have the same Python type.
"""

import datetime
import decimal
import logging
import struct
import uuid

logger = logging.getLogger(__name__)

_EPOCH_DATE = datetime.date(1970, 1, 1)
_EPOCH_UTC = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_EPOCH_NAIVE = datetime.datetime(1970, 1, 1)
_JULIAN_DAY_OF_EPOCH = 2440588
_NANOS_PER_DAY = 86400 * 10**9

_FIXED_WIDTH = {
    "BOOLEAN": ("<?", 1),
    "INT32": ("<i", 4),
    "INT64": ("<q", 8),
    "FLOAT": ("<f", 4),
    "DOUBLE": ("<d", 8),
}


def _to_timedelta(value, unit):
    if unit == "MILLIS":
        return datetime.timedelta(milliseconds=value)
    if unit == "MICROS":
        return datetime.timedelta(microseconds=value)
    return datetime.timedelta(microseconds=value // 1000)


def _timestamp(value, unit, utc):
    try:
        return (_EPOCH_UTC if utc else _EPOCH_NAIVE) + _to_timedelta(value, unit)
    except OverflowError:
        return value


def _time_of_day(value, unit):
    try:
        return (_EPOCH_NAIVE + _to_timedelta(value, unit)).time()
    except OverflowError:
        return value


def _date(value):
    try:
        return _EPOCH_DATE + datetime.timedelta(days=value)
    except OverflowError:
        return value


def int96_to_datetime(raw):
    """Impala/Hive INT96 timestamp: 8 bytes nanos-of-day, 4 bytes julian day."""
    nanos, julian_day = struct.unpack("<qI", raw)
    total_nanos = (julian_day - _JULIAN_DAY_OF_EPOCH) * _NANOS_PER_DAY + nanos
    try:
        return _EPOCH_NAIVE + datetime.timedelta(microseconds=total_nanos // 1000)
    except OverflowError:
        return raw


def _decimal_from_unscaled(unscaled, scale):
    return decimal.Decimal(unscaled).scaleb(-(scale or 0))


def _decimal_from_bytes(raw, scale):
    return _decimal_from_unscaled(int.from_bytes(raw, "big", signed=True), scale)


def _utf8(raw):
    return raw.decode("utf-8", errors="replace")


def make_converter(physical_type, logical_type=None):
    """Return a function mapping one physical value to its typed value,
    or None when the physical value is already the typed value."""
    name = logical_type.name if logical_type is not None else None

    if physical_type in ("INT32", "INT64"):
        if name == "DATE":
            return _date
        if name == "DECIMAL":
            scale = logical_type.scale
            return lambda v: _decimal_from_unscaled(v, scale)
        if name == "TIMESTAMP":
            unit, utc = logical_type.unit, logical_type.is_adjusted_to_utc
            return lambda v: _timestamp(v, unit, utc)
        if name == "TIME":
            unit = logical_type.unit
            return lambda v: _time_of_day(v, unit)
        if name == "INTEGER" and logical_type.is_signed is False:
            mask = (1 << (32 if physical_type == "INT32" else 64)) - 1
            return lambda v: v & mask
        return None
    if physical_type == "INT96":
        return int96_to_datetime
    if physical_type == "BYTE_ARRAY":
        if name in ("STRING", "ENUM", "JSON"):
            return _utf8
        if name == "DECIMAL":
            scale = logical_type.scale
            return lambda v: _decimal_from_bytes(v, scale)
        return None
    if physical_type == "FIXED_LEN_BYTE_ARRAY":
        if name == "UUID":
            return lambda v: uuid.UUID(bytes=v) if len(v) == 16 else v
        if name == "DECIMAL":
            scale = logical_type.scale
            return lambda v: _decimal_from_bytes(v, scale)
        if name == "FLOAT16":
            return lambda v: struct.unpack("<e", v)[0] if len(v) == 2 else v
        if name in ("STRING", "ENUM", "JSON"):
            return _utf8
        return None
    return None


def convert_all(values, converter):
    if converter is None:
        return list(values)
    return [converter(v) for v in values]


def decode_statistic(raw, physical_type, logical_type=None, type_length=None):
    """Decode a single PLAIN-encoded statistics value.

    Returns None when the bytes do not have the width the physical type
    requires; the statistic is then treated as unknown.
    """
    if raw is None:
        return None
    if physical_type in _FIXED_WIDTH:
        fmt, width = _FIXED_WIDTH[physical_type]
        if len(raw) != width:
            logger.debug(f"Ignoring {physical_type} statistic of {len(raw)} bytes")
            return None
        value = struct.unpack(fmt, raw)[0]
    elif physical_type == "INT96":
        if len(raw) != 12:
            return None
        value = raw
    elif physical_type == "FIXED_LEN_BYTE_ARRAY" and type_length is not None and len(raw) != type_length:
        return None
    else:
        value = bytes(raw)
    converter = make_converter(physical_type, logical_type)
    return converter(value) if converter is not None else value
