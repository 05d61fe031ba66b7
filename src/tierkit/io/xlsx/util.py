import math
from collections.abc import Callable, Generator, Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

import polars as pl

from .conf import (
    N_LEN_EXCEL_SHEET_NAME_MAX,
    N_WIDTH_COL_MIN,
    N_WIDTH_PADDING,
    SUFFIX_COLOR_KEY,
    TUP_EXCEL_ILLEGAL,
    TUP_RANGE_WIDE_CHARS,
)
from .spec import SpecSheetSlice

RecordExtractor = Callable[[Any, str], Any]

################################################################################
# #region CellValueConversion


def convert_cell_text(value: Any, *, fmt_date: str) -> str | None:
    if value is None:
        return None
    # datetime is a date subclass
    if isinstance(value, date):
        return value.strftime(fmt_date)
    return str(value)


def extract_cell_value(
    record: Any,
    field_name: str,
    *,
    fmt_date: str,
    extractor: RecordExtractor | None = None,
) -> tuple[str | None, str | None]:
    """
    Read one field of a record as cell text plus an optional color key.

    Mappings are read by key and may carry a ``<field>_color`` companion
    naming the body style. Other records go through ``extractor`` when given,
    otherwise through attribute access; a missing attribute yields an empty
    cell. Errors raised while reading a field propagate.

    Returns:
        tuple[str | None, str | None]: ``(text, color_key)``; ``text`` is
        ``None`` for an empty cell.
    """
    c_color_key: str | None = None
    if isinstance(record, Mapping):
        value = record.get(field_name)
        if (color := record.get(f"{field_name}{SUFFIX_COLOR_KEY}")) is not None:
            c_color_key = str(color)
    elif extractor is not None:
        value = extractor(record, field_name)
    else:
        value = getattr(record, field_name, None)
    return convert_cell_text(value, fmt_date=fmt_date), c_color_key


# #endregion
################################################################################
# #region WidthEstimation


def estimate_width(text: str | None) -> int:
    """
    Display width of ``text`` in column-width units.

    CJK Unified Ideographs (U+4E00..U+9FFF) count twice, everything else once,
    plus padding; the result never drops below the default width.

    Examples:
        >>> estimate_width("数据")
        12
        >>> estimate_width("abcdefghijklmno")
        17
    """
    if not text:
        return N_WIDTH_COL_MIN
    n_start, n_end = TUP_RANGE_WIDE_CHARS
    n_units = sum(2 if n_start <= ord(_chr) <= n_end else 1 for _chr in text)
    return max(n_units + N_WIDTH_PADDING, N_WIDTH_COL_MIN)


def estimate_header_width(text: str | None, span_col: int) -> int:
    """Per-column share of a header cell's width, spread over its columns."""
    n_span = max(span_col, 1)
    return max(math.ceil(estimate_width(text) / n_span), N_WIDTH_COL_MIN)


# #endregion
################################################################################
# #region RecordSlicing


def convert_to_records(records: Any) -> Sequence[Any] | pl.DataFrame:
    if records is None:
        return []
    if isinstance(records, (pl.DataFrame, Sequence)) and not isinstance(
        records, (str, bytes)
    ):
        return records
    if isinstance(records, Iterable):
        return list(records)
    raise TypeError(f"Unsupported records container: {type(records).__name__}")


def count_records(records: Sequence[Any] | pl.DataFrame) -> int:
    return records.height if isinstance(records, pl.DataFrame) else len(records)


def generate_record_slice(
    records: Sequence[Any] | pl.DataFrame, *, start: int, end: int
) -> Generator[Any, Any, None]:
    if isinstance(records, pl.DataFrame):
        yield from records.slice(offset=start, length=end - start).iter_rows(
            named=True
        )
        return
    for _idx in range(start, end):
        yield records[_idx]


# #endregion
################################################################################
# #region SheetNormalization


def sanitize_sheet_name(name: str, *, replace_to: str = "_") -> str:
    for ch in TUP_EXCEL_ILLEGAL:
        name = name.replace(ch, replace_to)
    name = name.strip() or "Sheet"
    return name[:N_LEN_EXCEL_SHEET_NAME_MAX]


def create_sheet_identifier(base_name: str, part_idx_1based: int) -> str:
    c_sheet_name_suffix = str(part_idx_1based)
    n_len_base_name_max = N_LEN_EXCEL_SHEET_NAME_MAX - len(c_sheet_name_suffix)
    c_sheet_name_base = base_name[: max(1, n_len_base_name_max)]
    return f"{c_sheet_name_base}{c_sheet_name_suffix}"


def generate_sheet_slices(
    *,
    height_data: int,
    n_rows_sheet_max: int,
    sheet_title: str,
) -> list[SpecSheetSlice]:
    """
    Split ``height_data`` records into consecutive per-sheet slices.

    Sheets are named ``<title><index>`` with a 1-based index. At least one
    slice is returned so that a header-only sheet is written for empty data.
    """
    if n_rows_sheet_max <= 0:
        raise ValueError(f"n_rows_sheet_max must be >= 1, got {n_rows_sheet_max}.")

    c_title = sanitize_sheet_name(sheet_title)
    n_parts = max(1, math.ceil(height_data / n_rows_sheet_max))
    l_sheet_slices: list[SpecSheetSlice] = []
    for _idx in range(n_parts):
        n_row_start_ = _idx * n_rows_sheet_max
        l_sheet_slices.append(
            SpecSheetSlice(
                sheet_name=create_sheet_identifier(c_title, _idx + 1),
                row_start_inclusive=n_row_start_,
                row_end_exclusive=min(n_row_start_ + n_rows_sheet_max, height_data),
            )
        )
    return l_sheet_slices


# #endregion
################################################################################
