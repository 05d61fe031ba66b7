import argparse
import json
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from rich_argparse import ArgumentDefaultsRichHelpFormatter, RawTextRichHelpFormatter

from tierkit.io.xlsx.conf import N_ROWS_SHEET_MAX_LEGACY, ROOT_ID
from tierkit.io.xlsx.reader import count_sheets, load_sheet_value_maps, load_sheet_values
from tierkit.io.xlsx.spec import EnumStylePreset, SpecTreeWriteOptions
from tierkit.io.xlsx.transform import column_transformer
from tierkit.io.xlsx.writer import TreeXlsxWriter

from .console import CliHeadings


class SmartFormatter(ArgumentDefaultsRichHelpFormatter, RawTextRichHelpFormatter):
    """
    Keep manual newlines/indentation AND show (default: ...) in help.
    """

    pass


CommandHandler = Callable[[argparse.Namespace, CliHeadings], int]


@dataclass(frozen=True, slots=True)
class SpecCommand:
    id: str
    help: str
    args_builder: Callable[[argparse.ArgumentParser], None]
    handler: CommandHandler
    aliases: tuple[str, ...] = ()


def _load_json(path_in: Path) -> Any:
    with path_in.open("r", encoding="utf-8") as fh:
        return json.load(fh)


################################################################################
# #region Export


def _build_export_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("columns", type=Path, help="JSON file with column definitions.")
    p.add_argument(
        "records", type=Path, nargs="?", help="JSON file with a list of records."
    )
    p.add_argument("-o", "--out", type=Path, required=True, help="Output .xlsx file.")
    p.add_argument("--title", default="sheet1", help="Sheet name prefix.")
    g_tree = p.add_argument_group(
        "tree columns",
        "Give --key-id to read COLUMNS as a multi-level node list;\n"
        "otherwise COLUMNS is a list of headings or {heading: field} maps.",
    )
    g_tree.add_argument("--key-id", default=None)
    g_tree.add_argument("--key-pid", default="pid")
    g_tree.add_argument("--key-content", default="content")
    g_tree.add_argument("--key-field-name", default="field_name")
    g_tree.add_argument("--root-id", default=ROOT_ID)
    p.add_argument("--header-only", action="store_true", help="Skip body rows.")
    p.add_argument(
        "--row-index", action="store_true", help="Prepend a 1-based index column."
    )
    p.add_argument(
        "--style-preset",
        type=int,
        choices=[int(_p) for _p in EnumStylePreset],
        default=int(EnumStylePreset.PLAIN),
        help="0: plain, 1: add 'left' body style, 2: dark header.",
    )
    p.add_argument(
        "--rows-per-sheet",
        type=int,
        default=N_ROWS_SHEET_MAX_LEGACY,
        help="Records per sheet before splitting.",
    )
    p.add_argument(
        "--date-format", default="%Y-%m-%d %H:%M:%S", help="strftime pattern."
    )


def _run_export(ns: argparse.Namespace, headings: CliHeadings) -> int:
    l_items = _load_json(ns.columns)
    l_records = _load_json(ns.records) if ns.records is not None else []
    if not isinstance(l_items, list) or not isinstance(l_records, list):
        raise ValueError("COLUMNS and RECORDS must both hold JSON lists.")

    if ns.key_id is None:
        l_forest = column_transformer(l_items)
    else:
        l_forest = column_transformer(
            l_items,
            key_id=ns.key_id,
            key_pid=ns.key_pid,
            key_content=ns.key_content,
            key_field_name=ns.key_field_name,
            root_id=ns.root_id,
        )

    cfg_options = SpecTreeWriteOptions(
        fmt_date=ns.date_format,
        style_preset=EnumStylePreset(ns.style_preset),
        n_rows_sheet_max=ns.rows_per_sheet,
        root_id=ns.root_id,
    )
    with TreeXlsxWriter(ns.title, write_options=cfg_options) as writer:
        path_out = writer.export_to_file(
            l_forest,
            l_records,
            ns.out,
            if_write_body=not ns.header_only,
            if_row_index=ns.row_index,
        )
        tup_reports = writer.report()

    headings.h1(f"Exported {path_out}")
    for _report in tup_reports:
        headings.table(
            [
                [
                    _part.sheet_name,
                    str(_part.row_end_exclusive - _part.row_start_inclusive),
                    ", ".join(str(_w) for _w in _part.widths_col),
                ]
                for _part in _report.sheets
            ],
            headers=["sheet", "records", "column widths"],
        )
    return 0


# #endregion
################################################################################
# #region Read


def _build_read_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", type=Path, help="Workbook (.xlsx, .xlsm or .xls).")
    p.add_argument("--sheet", type=int, default=1, help="1-based sheet position.")
    p.add_argument(
        "--header-rows", type=int, default=1, help="Header rows above the body."
    )
    p.add_argument(
        "--as-maps", action="store_true", help="Print rows as {header: value} JSON."
    )


def _run_read(ns: argparse.Namespace, headings: CliHeadings) -> int:
    if ns.as_maps:
        for _row in load_sheet_value_maps(
            ns.file, ns.sheet, n_rows_header=ns.header_rows
        ):
            headings.console.print_json(json.dumps(_row, ensure_ascii=False))
        return 0

    l_rows = load_sheet_values(ns.file, ns.sheet, n_rows_header=ns.header_rows)
    headings.h2(f"{ns.file.name} (sheet {ns.sheet}): {len(l_rows)} row(s)")
    headings.table(l_rows)
    return 0


def _build_sheets_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", type=Path, help="Workbook (.xlsx, .xlsm or .xls).")


def _run_sheets(ns: argparse.Namespace, headings: CliHeadings) -> int:
    headings.console.print(count_sheets(ns.file))
    return 0


# #endregion
################################################################################
# #region Entry

TUP_COMMANDS: tuple[SpecCommand, ...] = (
    SpecCommand(
        id="export",
        help="Write records under a (multi-level) header into an .xlsx file.",
        args_builder=_build_export_args,
        handler=_run_export,
    ),
    SpecCommand(
        id="read",
        help="Print the body rows of a sheet.",
        args_builder=_build_read_args,
        handler=_run_read,
    ),
    SpecCommand(
        id="sheets",
        help="Print the number of sheets in a workbook.",
        args_builder=_build_sheets_args,
        handler=_run_sheets,
        aliases=("count",),
    ),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tierkit",
        description="Tree-headed XLSX export and read-back.",
        formatter_class=SmartFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG level."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for _cmd in TUP_COMMANDS:
        p_cmd_ = subparsers.add_parser(
            _cmd.id,
            help=_cmd.help,
            description=_cmd.help,
            aliases=list(_cmd.aliases),
            formatter_class=SmartFormatter,
        )
        _cmd.args_builder(p_cmd_)
        p_cmd_.set_defaults(_handler=_cmd.handler)
    return parser


def configure_logging(*, if_verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if if_verbose else "INFO")


def main(argv: Sequence[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)
    configure_logging(if_verbose=ns.verbose)
    try:
        return ns._handler(ns, CliHeadings())
    except (ValueError, OSError) as exc:
        logger.error(f"{ns.command}: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())


# #endregion
################################################################################
