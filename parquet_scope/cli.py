import argparse
import dataclasses
import json
import logging
import sys

from .config import load_config
from .errors import FatalError
from .navigation import JumpToRow, Resize, ShowData, Unreadable
from .session import Session

logger = logging.getLogger(__name__)


def schema_to_dict(node):
    result = {
        "name": node.name,
        "kind": node.kind,
        "repetition": node.repetition,
        "type": node.type_description,
        "definition_level": node.definition_level,
        "repetition_level": node.repetition_level,
    }
    if node.is_leaf:
        result["column_index"] = node.column_index
    else:
        result["children"] = [schema_to_dict(child) for child in node.children]
    return result


def _json_default(value):
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, Unreadable):
        return f"<unreadable: {value.reason}>"
    if dataclasses.is_dataclass(value):
        return dataclasses.asdict(value)
    return str(value)


def snapshot(session, args):
    if args.schema:
        return schema_to_dict(session.visible_schema_tree())
    if args.layout:
        return session.layout()
    if args.dictionary is not None:
        return {
            "column": session.catalog.leaf(args.dictionary).dotted_path,
            "dictionary": session.dictionary_values(args.dictionary),
        }
    if args.rows is not None:
        session.handle(Resize(max(args.rows, 1), session.catalog.num_columns or 1))
        session.handle(ShowData())
        session.handle(JumpToRow(args.offset))
        rows = session.decoded_window()[:args.rows]
        return {
            "columns": session.column_names(),
            "first_row": session.current_view().first_visible_row,
            "rows": rows,
        }
    summary = session.visible_metadata_summary()
    summary["columns"] = session.column_summaries()
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(prog="parquet-scope")
    parser.add_argument("parquet_file")
    parser.add_argument(
        "--log-level", default="WARNING", type=str.upper, choices=sorted(logging.getLevelNamesMapping())
    )
    parser.add_argument("--config", default=None)
    view = parser.add_mutually_exclusive_group()
    view.add_argument("--schema", action="store_true", help="print the schema tree")
    view.add_argument("--layout", action="store_true", help="print the byte layout")
    view.add_argument("--rows", type=int, default=None, help="print N decoded rows")
    view.add_argument("--dictionary", type=int, default=None, metavar="COLUMN",
                      help="print the leading dictionary entries of a column")
    parser.add_argument("--offset", type=int, default=0, help="first row printed with --rows")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.getLevelNamesMapping()[args.log_level],
        format="%(asctime)s %(name)s [%(threadName)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = load_config(args.config)
    try:
        session = Session.open(args.parquet_file, config)
    except (FatalError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    with session:
        try:
            result = snapshot(session, args)
        except FatalError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(json.dumps(result, indent=2, default=_json_default))
    return 0


if __name__ == "__main__":
    sys.exit(main())
