"""
Exception taxonomy for parquet-scope.

Fatal errors make the file unusable and abort opening a session. Column errors
are scoped to one column chunk (or one page of it) and are rendered in place
of the affected cells while browsing continues.
"""


class ParquetScopeError(Exception):
    """Base class for every error raised by the engine."""


class FatalError(ParquetScopeError):
    """The file cannot be opened or browsed."""


class IOFailure(FatalError):
    """A read could not be satisfied (short read, out-of-range access)."""


class TruncatedFile(FatalError):
    """The file is too small to hold a Parquet footer."""


class CorruptFooter(FatalError):
    """Magic bytes, footer length or footer contents are invalid."""


class UnsupportedVersion(FatalError):
    """The footer declares a format version newer than the engine understands."""

    def __init__(self, version, max_version):
        super().__init__(
            f"Unsupported Parquet format version {version} "
            f"(newest supported: {max_version})"
        )
        self.version = version
        self.max_version = max_version


class MalformedSchema(FatalError):
    """The flat schema element list does not describe a valid tree."""


class ColumnNotFound(FatalError):
    """A row group or leaf column index is out of range."""


class ColumnError(ParquetScopeError):
    """A column chunk (or one of its pages) cannot be previewed."""

    def __init__(self, message, row_group=None, column=None, page=None):
        super().__init__(message)
        self.row_group = row_group
        self.column = column
        self.page = page

    def locate(self, row_group=None, column=None, page=None):
        """Fill in location details not known where the error was raised."""
        if self.row_group is None:
            self.row_group = row_group
        if self.column is None:
            self.column = column
        if self.page is None:
            self.page = page
        return self

    def __str__(self):
        message = super().__str__()
        where = []
        if self.row_group is not None:
            where.append(f"row group {self.row_group}")
        if self.column is not None:
            where.append(f"column {self.column}")
        if self.page is not None:
            where.append(f"page {self.page}")
        if where:
            return f"{message} ({', '.join(where)})"
        return message


class UnsupportedEncoding(ColumnError):
    """A page uses an encoding the engine does not implement."""


class UnsupportedCodec(UnsupportedEncoding):
    """A column chunk uses a compression codec that is not available."""


class CorruptPage(ColumnError):
    """A page header, payload or level/value stream is malformed."""
