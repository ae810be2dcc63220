"""
Page decompression through pyarrow's codec bindings.
"""

import logging

import pyarrow as pa

from .errors import CorruptPage, UnsupportedCodec

logger = logging.getLogger(__name__)

# Parquet codec name -> pyarrow.Codec name. The Hadoop-framed LZ4 and LZO
# codecs have no pyarrow counterpart.
CODEC_NAMES = {
    "SNAPPY": "snappy",
    "GZIP": "gzip",
    "BROTLI": "brotli",
    "ZSTD": "zstd",
    "LZ4_RAW": "lz4_raw",
}

_codecs = {}


def _get_codec(codec):
    if codec not in _codecs:
        name = CODEC_NAMES.get(codec)
        if name is None or not pa.Codec.is_available(name):
            raise UnsupportedCodec(f"Compression codec {codec} is not supported")
        _codecs[codec] = pa.Codec(name)
        logger.debug(f"Loaded pyarrow codec {name} for {codec}")
    return _codecs[codec]


def decompress(codec, data, uncompressed_size):
    """Decompress one page payload and check it has the declared size."""
    if codec == "UNCOMPRESSED":
        result = bytes(data)
    else:
        arrow_codec = _get_codec(codec)
        try:
            result = arrow_codec.decompress(data, decompressed_size=uncompressed_size, asbytes=True)
        except (pa.ArrowException, ValueError) as e:
            raise CorruptPage(f"{codec} decompression failed: {e}") from e
    if len(result) != uncompressed_size:
        raise CorruptPage(
            f"Page decompressed to {len(result)} bytes but declares {uncompressed_size}"
        )
    return result
