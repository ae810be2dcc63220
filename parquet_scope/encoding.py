"""
Value and level decoders for Parquet page payloads.

All decoders work on an owned ``bytes`` buffer with explicit offsets and
raise CorruptPage when a stream ends early or declares impossible sizes.
"""

import struct

from .errors import CorruptPage, UnsupportedEncoding

_STRUCT_FORMATS = {
    "INT32": ("i", 4),
    "INT64": ("q", 8),
    "FLOAT": ("f", 4),
    "DOUBLE": ("d", 8),
}


def bit_width(max_value):
    return max_value.bit_length()


def read_uleb128(data, offset):
    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise CorruptPage("Truncated varint in RLE/bit-packed stream")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, offset
        shift += 7
        if shift > 63:
            raise CorruptPage("Varint longer than 64 bits in RLE/bit-packed stream")


def decode_rle_hybrid(data, width, count, offset=0, end=None):
    """Decode ``count`` values of the RLE/bit-packed hybrid encoding.

    Returns the values and the offset where decoding stopped.
    """
    if end is None:
        end = len(data)
    if end > len(data):
        raise CorruptPage(f"RLE/bit-packed stream length {end - offset} exceeds the page")
    if width == 0:
        return [0] * count, offset
    if width > 32:
        raise CorruptPage(f"Invalid RLE/bit-packed bit width {width}")

    mask = (1 << width) - 1
    byte_width = (width + 7) // 8
    values = []
    while len(values) < count:
        header, offset = read_uleb128(data, offset)
        remaining = count - len(values)
        if header & 1:
            groups = header >> 1
            if groups == 0:
                raise CorruptPage("Empty bit-packed run")
            wanted = min(groups * 8, remaining)
            needed_bytes = (wanted * width + 7) // 8
            if offset + needed_bytes > end:
                raise CorruptPage(
                    f"Bit-packed run of {groups * 8} values needs {needed_bytes} bytes, "
                    f"{end - offset} left"
                )
            # Each group of 8 values occupies exactly ``width`` bytes, LSB first.
            for group_start in range(0, wanted, 8):
                group_offset = offset + (group_start // 8) * width
                packed = int.from_bytes(data[group_offset:group_offset + width], "little")
                for i in range(min(8, wanted - group_start)):
                    values.append((packed >> (i * width)) & mask)
            offset = min(offset + groups * width, end)
        else:
            run_length = header >> 1
            if run_length == 0:
                raise CorruptPage("Empty RLE run")
            if offset + byte_width > end:
                raise CorruptPage("Truncated RLE run value")
            value = int.from_bytes(data[offset:offset + byte_width], "little")
            if value > mask:
                raise CorruptPage(f"RLE run value {value} exceeds bit width {width}")
            offset += byte_width
            values.extend([value] * min(run_length, remaining))
    return values, offset


def decode_bit_packed_msb(data, width, count, offset=0):
    """Deprecated BIT_PACKED level encoding (most significant bit first)."""
    if width == 0:
        return [0] * count, offset
    total_bytes = (count * width + 7) // 8
    if offset + total_bytes > len(data):
        raise CorruptPage("Truncated BIT_PACKED level stream")
    packed = int.from_bytes(data[offset:offset + total_bytes], "big")
    shift_base = total_bytes * 8
    mask = (1 << width) - 1
    values = [(packed >> (shift_base - (i + 1) * width)) & mask for i in range(count)]
    return values, offset + total_bytes


def decode_levels_v1(data, encoding, max_level, count, offset):
    """Definition/repetition levels of a V1 data page.

    RLE levels carry a 4-byte length prefix; BIT_PACKED levels do not.
    """
    if max_level == 0:
        return [0] * count, offset
    width = bit_width(max_level)
    if encoding == "RLE":
        if offset + 4 > len(data):
            raise CorruptPage("Truncated level stream length")
        length = struct.unpack_from("<I", data, offset)[0]
        start = offset + 4
        levels, _ = decode_rle_hybrid(data, width, count, start, start + length)
        end = start + length
    elif encoding == "BIT_PACKED":
        levels, end = decode_bit_packed_msb(data, width, count, offset)
    else:
        raise UnsupportedEncoding(f"Unsupported level encoding {encoding}")
    _check_levels(levels, max_level)
    return levels, end


def decode_levels_v2(data, max_level, count, offset, length):
    """Levels of a V2 data page: RLE without a length prefix."""
    if max_level == 0:
        return [0] * count
    levels, _ = decode_rle_hybrid(data, bit_width(max_level), count, offset, offset + length)
    _check_levels(levels, max_level)
    return levels


def _check_levels(levels, max_level):
    if levels and max(levels) > max_level:
        raise CorruptPage(f"Level {max(levels)} exceeds maximum {max_level}")


def decode_plain(data, physical_type, count, offset=0, type_length=None):
    """PLAIN-encoded values; returns the values and the end offset."""
    try:
        if physical_type in _STRUCT_FORMATS:
            code, size = _STRUCT_FORMATS[physical_type]
            values = list(struct.unpack_from(f"<{count}{code}", data, offset))
            return values, offset + count * size
        if physical_type == "BOOLEAN":
            needed = (count + 7) // 8
            if offset + needed > len(data):
                raise CorruptPage("Truncated PLAIN boolean values")
            values = [bool((data[offset + i // 8] >> (i % 8)) & 1) for i in range(count)]
            return values, offset + needed
        if physical_type == "INT96":
            return _fixed_width(data, 12, count, offset)
        if physical_type == "FIXED_LEN_BYTE_ARRAY":
            if not type_length or type_length < 0:
                raise CorruptPage(f"Invalid FIXED_LEN_BYTE_ARRAY length {type_length}")
            return _fixed_width(data, type_length, count, offset)
        if physical_type == "BYTE_ARRAY":
            values = []
            for _ in range(count):
                length = struct.unpack_from("<I", data, offset)[0]
                offset += 4
                if offset + length > len(data):
                    raise CorruptPage("BYTE_ARRAY value runs past the end of the page")
                values.append(bytes(data[offset:offset + length]))
                offset += length
            return values, offset
    except struct.error as e:
        raise CorruptPage(f"Truncated PLAIN {physical_type} values: {e}") from e
    raise CorruptPage(f"Unknown physical type {physical_type}")


def _fixed_width(data, width, count, offset):
    end = offset + width * count
    if end > len(data):
        raise CorruptPage(f"Truncated fixed-width values ({count} x {width} bytes)")
    return [bytes(data[offset + i * width:offset + (i + 1) * width]) for i in range(count)], end


def decode_dictionary_indices(data, count, offset=0):
    """Indices of a PLAIN_DICTIONARY/RLE_DICTIONARY data page."""
    if count == 0:
        return []
    if offset >= len(data):
        raise CorruptPage("Missing dictionary index bit width")
    width = data[offset]
    indices, _ = decode_rle_hybrid(data, width, count, offset + 1)
    return indices


def decode_rle_booleans(data, count, offset=0):
    """RLE-encoded boolean values (4-byte length prefix, bit width 1)."""
    if offset + 4 > len(data):
        raise CorruptPage("Truncated RLE boolean length")
    length = struct.unpack_from("<I", data, offset)[0]
    values, _ = decode_rle_hybrid(data, 1, count, offset + 4, offset + 4 + length)
    return [bool(v) for v in values]
