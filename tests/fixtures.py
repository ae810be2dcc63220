"""
Helpers that write Parquet files for the test suites.

Files are written with pyarrow into a caller-owned temporary directory so
every test works against real writer output.
"""

import datetime
import decimal
import os

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq


class ParquetFileGenerator:
    """Helper class to generate test Parquet files for testing"""

    @staticmethod
    def write(directory, name, table, **kwargs):
        path = os.path.join(directory, name)
        pq.write_table(table, path, **kwargs)
        return path

    @staticmethod
    def create_minimal_parquet(directory, name="minimal.parquet"):
        """Three rows, three flat columns, default writer settings"""
        df = pd.DataFrame({
            "id": [1, 2, 3],
            "name": ["Alice", "Bob", "Charlie"],
            "value": [1.1, 2.2, 3.3],
        })
        return ParquetFileGenerator.write(directory, name, pa.Table.from_pandas(df, preserve_index=False))

    @staticmethod
    def create_two_row_groups(directory, name="two_groups.parquet", **kwargs):
        """200 rows of a plain-encoded INT32 "id" column in two row groups of 100"""
        table = pa.table({
            "id": pa.array(range(200), type=pa.int32()),
            "label": pa.array([f"row-{i}" for i in range(200)], type=pa.string()),
        })
        kwargs.setdefault("use_dictionary", False)
        return ParquetFileGenerator.write(directory, name, table, row_group_size=100, **kwargs)

    @staticmethod
    def create_many_pages(directory, name="many_pages.parquet", rows=1000, **kwargs):
        """Small pages so one column chunk holds many data pages"""
        table = pa.table({
            "id": pa.array(range(rows), type=pa.int64()),
            "maybe": pa.array([None if i % 7 == 0 else i * 0.5 for i in range(rows)], type=pa.float64()),
            "tag": pa.array([f"tag-{i % 13}" for i in range(rows)], type=pa.string()),
        })
        kwargs.setdefault("data_page_size", 64)
        kwargs.setdefault("write_batch_size", 10)
        kwargs.setdefault("row_group_size", 400)
        kwargs.setdefault("use_dictionary", ["tag"])
        return ParquetFileGenerator.write(directory, name, table, **kwargs)

    @staticmethod
    def create_unsupported_encoding(directory, name="delta.parquet"):
        """The "delta" column uses DELTA_BINARY_PACKED; every other column is PLAIN"""
        table = pa.table({
            "id": pa.array(range(50), type=pa.int32()),
            "delta": pa.array(range(0, 500, 10), type=pa.int64()),
            "text": pa.array([f"t{i}" for i in range(50)], type=pa.string()),
        })
        return ParquetFileGenerator.write(
            directory, name, table,
            use_dictionary=False,
            column_encoding={"delta": "DELTA_BINARY_PACKED"},
            row_group_size=25,
        )

    @staticmethod
    def create_nested(directory, name="nested.parquet", **kwargs):
        """List, nested list and struct columns with nulls and empty lists"""
        table = pa.table({
            "id": pa.array([0, 1, 2, 3, 4], type=pa.int32()),
            "numbers": pa.array([[1, 2], [], None, [3, None], [4]], type=pa.list_(pa.int32())),
            "matrix": pa.array(
                [[[1], []], None, [], [[2, 3], None], [[4]]], type=pa.list_(pa.list_(pa.int64()))
            ),
            "point": pa.array(
                [{"x": 1, "y": "a"}, None, {"x": None, "y": "c"}, {"x": 4, "y": None}, {"x": 5, "y": "e"}],
                type=pa.struct([("x", pa.int32()), ("y", pa.string())]),
            ),
        })
        return ParquetFileGenerator.write(directory, name, table, **kwargs)

    @staticmethod
    def create_typed(directory, name="typed.parquet", **kwargs):
        """One column per logical type the value converters handle"""
        table = pa.table({
            "flag": pa.array([True, False, None], type=pa.bool_()),
            "day": pa.array([datetime.date(2024, 1, 1), None, datetime.date(1969, 12, 31)], type=pa.date32()),
            "ts": pa.array(
                [datetime.datetime(2024, 1, 1, 12, 30), None, datetime.datetime(2000, 2, 29)],
                type=pa.timestamp("us"),
            ),
            "price": pa.array(
                [decimal.Decimal("1.25"), decimal.Decimal("-3.50"), None], type=pa.decimal128(9, 2)
            ),
            "small": pa.array([1, 200, None], type=pa.uint8()),
            "big": pa.array([2**63, 5, None], type=pa.uint64()),
            "blob": pa.array([b"\x00\x01", b"", None], type=pa.binary()),
            "text": pa.array(["héllo", "", None], type=pa.string()),
        })
        return ParquetFileGenerator.write(directory, name, table, **kwargs)

    @staticmethod
    def create_empty_table(directory, name="empty.parquet"):
        table = pa.table({"id": pa.array([], type=pa.int32())})
        return ParquetFileGenerator.write(directory, name, table)

    @staticmethod
    def create_empty_middle_row_group(directory, name="gap.parquet"):
        """Row groups of 10, 0 and 10 rows"""
        path = os.path.join(directory, name)
        schema = pa.schema([("id", pa.int32()), ("label", pa.string())])
        with pq.ParquetWriter(path, schema) as writer:
            for start, stop in ((0, 10), (10, 10), (10, 20)):
                ids = list(range(start, stop))
                writer.write_table(pa.table(
                    {"id": pa.array(ids, type=pa.int32()), "label": [f"row-{i}" for i in ids]},
                    schema=schema,
                ))
        return path

    @staticmethod
    def create_corrupt_magic(directory, name="corrupt.parquet"):
        """A valid file whose trailing magic bytes are overwritten"""
        path = ParquetFileGenerator.create_minimal_parquet(directory, name)
        with open(path, "r+b") as f:
            f.seek(-4, os.SEEK_END)
            f.write(b"XXXX")
        return path

    @staticmethod
    def create_raw(directory, name, data):
        path = os.path.join(directory, name)
        with open(path, "wb") as f:
            f.write(data)
        return path


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()
