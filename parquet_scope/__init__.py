from .accessor import BufferAccessor, FileAccessor, LocalFileAccessor, open_accessor
from .catalog import RowGroupCatalog
from .config import EngineConfig, load_config
from .errors import (
    ColumnError,
    ColumnNotFound,
    CorruptFooter,
    CorruptPage,
    FatalError,
    IOFailure,
    MalformedSchema,
    ParquetScopeError,
    TruncatedFile,
    UnsupportedCodec,
    UnsupportedEncoding,
    UnsupportedVersion,
)
from .footer import FooterDecoder, decode_footer, describe_layout
from .navigation import (
    ChangeRowGroup,
    Direction,
    JumpToRow,
    Mode,
    MoveCursor,
    NavigationController,
    Quit,
    Resize,
    ShowData,
    ShowMetadata,
    ShowSchema,
    Unreadable,
    ViewState,
)
from .pages import LazyPageReader
from .schema import SchemaNode, SchemaTreeBuilder, build_schema_tree
from .session import Session

__version__ = "0.1.0"
