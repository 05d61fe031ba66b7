import os
from datetime import date
from pathlib import Path
from typing import Any

import openpyxl
import polars as pl

from tierkit._optional_deps import build_optional_dependency_error

from .conf import TUP_SUFFIX_XLS, TUP_SUFFIX_XLSX
from .spec import SpecMergeRange, SpecSheetGrid


class UnsupportedWorkbookTypeError(ValueError):
    """The file suffix selects no known workbook format."""


################################################################################
# #region CellValueConversion


def format_cell_value(value: Any) -> str:
    """
    Text form of a cell value as read back from a workbook.

    Examples:
        >>> format_cell_value("  abc ")
        'abc'
        >>> format_cell_value(95)
        '95.0'
        >>> format_cell_value(True)
        'true'
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(float(value))
    # datetime is a date subclass
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return ""


# #endregion
################################################################################
# #region GridLoading


def _select_workbook_kind(path_in: Path) -> str:
    c_suffix = path_in.suffix.lower()
    if c_suffix in TUP_SUFFIX_XLSX:
        return "xlsx"
    if c_suffix in TUP_SUFFIX_XLS:
        return "xls"
    raise UnsupportedWorkbookTypeError(
        f"Unsupported workbook type {path_in.suffix!r} for {path_in.name!r}; "
        f"expected one of {TUP_SUFFIX_XLSX + TUP_SUFFIX_XLS}."
    )


def _check_sheet_num(sheet_num: int, n_sheets: int) -> None:
    if not 1 <= sheet_num <= n_sheets:
        raise ValueError(
            f"sheet_num must be within 1..{n_sheets}, got {sheet_num}."
        )


def _read_excel_legacy(path_in: Path, sheet_id: int) -> Any:
    try:
        return pl.read_excel(
            path_in,
            sheet_id=sheet_id,
            engine="calamine",
            has_header=False,
            infer_schema_length=0,
            drop_empty_rows=False,
            drop_empty_cols=False,
            raise_if_empty=False,
        )
    except ModuleNotFoundError as exc:
        # polars loads the calamine engine (fastexcel) lazily
        raise build_optional_dependency_error(
            feature="Reading .xls workbooks",
            extras=("xls",),
            missing_module=exc.name or "fastexcel",
        ) from exc


def _load_sheet_grid_xlsx(path_in: Path, sheet_num: int) -> SpecSheetGrid:
    wb = openpyxl.load_workbook(path_in, data_only=True)
    try:
        _check_sheet_num(sheet_num, len(wb.worksheets))
        ws = wb.worksheets[sheet_num - 1]
        l_values = [
            [_cell.value for _cell in _row]
            for _row in ws.iter_rows(
                min_row=1, max_row=ws.max_row, max_col=ws.max_column
            )
        ]
        # openpyxl ranges are 1-based
        l_merges = [
            SpecMergeRange(
                row_start=_rng.min_row - 1,
                col_start=_rng.min_col - 1,
                row_end=_rng.max_row - 1,
                col_end=_rng.max_col - 1,
            )
            for _rng in ws.merged_cells.ranges
        ]
        return SpecSheetGrid(sheet_name=ws.title, values=l_values, merges=l_merges)
    finally:
        wb.close()


def _load_sheet_grid_xls(path_in: Path, sheet_num: int) -> SpecSheetGrid:
    _check_sheet_num(sheet_num, count_sheets(path_in))
    df_sheet: pl.DataFrame = _read_excel_legacy(path_in, sheet_num)
    # calamine exposes values only; merged ranges stay unresolved
    return SpecSheetGrid(
        sheet_name=str(sheet_num),
        values=[list(_row) for _row in df_sheet.rows()],
        merges=[],
    )


def load_sheet_grid(file_in: os.PathLike[str] | str, sheet_num: int = 1) -> SpecSheetGrid:
    """Raw cell values and merged ranges of the ``sheet_num``-th sheet (1-based)."""
    path_in = Path(file_in)
    if _select_workbook_kind(path_in) == "xlsx":
        return _load_sheet_grid_xlsx(path_in, sheet_num)
    return _load_sheet_grid_xls(path_in, sheet_num)


def count_sheets(file_in: os.PathLike[str] | str) -> int:
    path_in = Path(file_in)
    if _select_workbook_kind(path_in) == "xlsx":
        wb = openpyxl.load_workbook(path_in, read_only=True)
        try:
            return len(wb.sheetnames)
        finally:
            wb.close()
    return len(_read_excel_legacy(path_in, 0))


# #endregion
################################################################################
# #region ValueMatrix


def resolve_grid_text(grid: SpecSheetGrid) -> list[list[str]]:
    """
    Text matrix of a sheet where every cell of a merged range carries the
    range's top-left value.
    """
    dict_anchor_by_cell: dict[tuple[int, int], tuple[int, int]] = {}
    for _merge in grid.merges:
        for _row_idx in range(_merge.row_start, _merge.row_end + 1):
            for _col_idx in range(_merge.col_start, _merge.col_end + 1):
                dict_anchor_by_cell[(_row_idx, _col_idx)] = (
                    _merge.row_start,
                    _merge.col_start,
                )

    n_rows = len(grid.values)
    l_text_rows: list[list[str]] = []
    for _row_idx, _row in enumerate(grid.values):
        l_text_row_: list[str] = []
        for _col_idx, _value in enumerate(_row):
            n_anchor_row_, n_anchor_col_ = dict_anchor_by_cell.get(
                (_row_idx, _col_idx), (_row_idx, _col_idx)
            )
            if n_anchor_row_ < n_rows and n_anchor_col_ < len(grid.values[n_anchor_row_]):
                _value = grid.values[n_anchor_row_][n_anchor_col_]
            l_text_row_.append(format_cell_value(_value))
        l_text_rows.append(l_text_row_)
    return l_text_rows


def load_sheet_values(
    file_in: os.PathLike[str] | str,
    sheet_num: int = 1,
    *,
    n_rows_header: int = 1,
) -> list[list[str]]:
    """
    Body rows of a sheet as a matrix of strings.

    The first ``n_rows_header`` rows are skipped. Every other row of the used
    range is kept, blank ones included, so a row's position matches the
    record written there. Every returned row is as wide as the used range.

    Args:
        file_in: ``.xlsx``/``.xlsm`` or legacy ``.xls`` workbook.
        sheet_num (int): 1-based sheet position.
        n_rows_header (int): Header rows above the body.

    Raises:
        UnsupportedWorkbookTypeError: For any other file suffix.
        ValueError: If ``sheet_num`` is out of range.
    """
    if n_rows_header < 0:
        raise ValueError(f"n_rows_header must be >= 0, got {n_rows_header}.")
    l_text_rows = resolve_grid_text(load_sheet_grid(file_in, sheet_num))
    return l_text_rows[n_rows_header:]


def load_sheet_value_maps(
    file_in: os.PathLike[str] | str,
    sheet_num: int = 1,
    *,
    n_rows_header: int = 1,
) -> list[list[dict[str, str]]]:
    """
    Body rows of a sheet as lists of single-entry ``{header: value}`` maps.

    Header text comes from the last header row, with merged header cells
    resolved to their label. Blank body rows are kept as in
    :func:`load_sheet_values`.
    """
    if n_rows_header < 1:
        raise ValueError(f"n_rows_header must be >= 1, got {n_rows_header}.")
    l_text_rows = resolve_grid_text(load_sheet_grid(file_in, sheet_num))
    if len(l_text_rows) < n_rows_header:
        return []

    l_headers = l_text_rows[n_rows_header - 1]
    return [
        [{_header: _value} for _header, _value in zip(l_headers, _row)]
        for _row in l_text_rows[n_rows_header:]
    ]


# #endregion
################################################################################
