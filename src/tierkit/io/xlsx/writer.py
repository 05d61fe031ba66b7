import os
from collections.abc import Sequence
from io import BytesIO
from pathlib import Path
from types import TracebackType
from typing import Any, Self

import polars as pl
import xlsxwriter
import xlsxwriter.worksheet
from loguru import logger

from .conf import (
    DEFAULT_TREE_WRITE_OPTIONS,
    N_LEN_EXCEL_SHEET_NAME_MAX,
    N_NCOLS_EXCEL_MAX,
    N_NROWS_EXCEL_MAX,
    N_WIDTH_COL_MAX,
    N_WIDTH_COL_MIN,
)
from .spec import (
    SpecCellFormat,
    SpecColumn,
    SpecHeaderRegion,
    SpecSheetPart,
    SpecSheetSlice,
    SpecTreeWriteOptions,
    SpecXlsxReport,
)
from .style import XlsxStyleRegistry
from .transform import column_transformer
from .tree import (
    build_column_forest,
    collect_leaf_columns,
    iter_columns_depth_first,
    plan_header_regions,
    resolve_column_forest,
)
from .util import (
    RecordExtractor,
    convert_to_records,
    count_records,
    estimate_header_width,
    estimate_width,
    extract_cell_value,
    generate_record_slice,
    generate_sheet_slices,
)


class TreeXlsxWriter:
    """
    Write records under a tree-shaped, multi-row header into an XLSX workbook.

    The header comes from a column forest (see :func:`column_transformer`):
    every node becomes one header cell, merged over its row and column span,
    and every leaf with a ``field_name`` becomes one data column. Records are
    split into sheets of at most ``write_options.n_rows_sheet_max`` rows named
    ``<title>1``, ``<title>2``, ...; each sheet repeats the full header.

    The workbook is built in memory and serialized once, by
    :meth:`export_to_file` / :meth:`export_to_stream` or explicitly through
    :meth:`save`, :meth:`to_stream` or :meth:`close`::

        from tierkit.io.xlsx import TreeXlsxWriter, column_transformer

        columns = column_transformer([{"Name": "name"}, {"Score": "score"}])
        with TreeXlsxWriter("scores") as writer:
            writer.export_to_file(columns, [{"name": "Ann", "score": 95}], "out.xlsx")

    Parameters
    ----------
    title:
        Sheet name prefix.
    write_options:
        Widths, row height, date format, style preset, rows per sheet, root id
        and index-column label. Defaults to :data:`DEFAULT_TREE_WRITE_OPTIONS`.
    extractor:
        Optional ``(record, field_name) -> value`` callback used for records
        that are not mappings, instead of attribute access.
    fmt_header, fmt_body:
        Replace the base header / default body cell formats.
    """

    column_transformer = staticmethod(column_transformer)

    def __init__(
        self,
        title: str = "sheet1",
        *,
        write_options: SpecTreeWriteOptions | None = None,
        extractor: RecordExtractor | None = None,
        fmt_header: SpecCellFormat | None = None,
        fmt_body: SpecCellFormat | None = None,
    ):
        self.title = title
        self.options = (
            DEFAULT_TREE_WRITE_OPTIONS if write_options is None else write_options
        )
        if self.options.n_rows_sheet_max < 1:
            raise ValueError(
                f"n_rows_sheet_max must be >= 1, got {self.options.n_rows_sheet_max}."
            )
        self.extractor = extractor

        self._buffer = BytesIO()
        self.wb = xlsxwriter.Workbook(
            self._buffer,
            {
                # Header cells are written depth-first, not row by row.
                "in_memory": True,
                "strings_to_numbers": False,
            },
        )
        self.styles = XlsxStyleRegistry(
            self.wb,
            preset=self.options.style_preset,
            fmt_header=fmt_header,
            fmt_body=fmt_body,
        )
        self._existing_sheet_names: set[str] = set()
        self._reports: list[SpecXlsxReport] = []
        self._is_closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self, exc_type: type | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.close()

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    def close(self) -> None:
        if self._is_closed:
            return
        self.wb.close()
        self._is_closed = True

    def report(self) -> tuple[SpecXlsxReport, ...]:
        return tuple(self._reports)

    ############################################################################
    # #region Output

    def to_stream(self) -> BytesIO:
        """Finalize the workbook and return its bytes as a rewound stream."""
        self.close()
        return BytesIO(self._buffer.getvalue())

    def save(self, file_out: os.PathLike[str] | str) -> Path:
        """Finalize the workbook and write it to ``file_out``, creating parents."""
        self.close()
        path_out = Path(file_out)
        path_out.parent.mkdir(parents=True, exist_ok=True)
        with path_out.open("wb") as fh:
            fh.write(self._buffer.getvalue())
        logger.info(f"Workbook written: {path_out}")
        return path_out

    def export_to_file(
        self,
        columns: Sequence[SpecColumn],
        records: Any,
        file_out: os.PathLike[str] | str,
        *,
        if_write_body: bool = True,
        if_row_index: bool = False,
    ) -> Path:
        self.write_sheets(
            columns, records, if_write_body=if_write_body, if_row_index=if_row_index
        )
        return self.save(file_out)

    def export_to_workbook(
        self,
        columns: Sequence[SpecColumn],
        records: Any,
        *,
        if_write_body: bool = True,
        if_row_index: bool = False,
    ) -> xlsxwriter.Workbook:
        """Write the sheets and hand back the still-open workbook."""
        self.write_sheets(
            columns, records, if_write_body=if_write_body, if_row_index=if_row_index
        )
        return self.wb

    def export_to_stream(
        self,
        columns: Sequence[SpecColumn],
        records: Any,
        *,
        if_write_body: bool = True,
        if_row_index: bool = False,
    ) -> BytesIO:
        self.write_sheets(
            columns, records, if_write_body=if_write_body, if_row_index=if_row_index
        )
        return self.to_stream()

    # #endregion
    ############################################################################
    # #region WorkbookDriver

    def _create_unique_sheet_name(self, name: str) -> str:
        if name not in self._existing_sheet_names:
            self._existing_sheet_names.add(name)
            return name

        # deterministic bump: name__2, name__3 ...
        c_base_name = name[: max(1, N_LEN_EXCEL_SHEET_NAME_MAX - 3)]
        i = 2
        c_candidate_name = f"{c_base_name}__{i}"[:N_LEN_EXCEL_SHEET_NAME_MAX]
        while c_candidate_name in self._existing_sheet_names:
            i += 1
            c_candidate_name = f"{c_base_name}__{i}"[:N_LEN_EXCEL_SHEET_NAME_MAX]
        self._existing_sheet_names.add(c_candidate_name)
        return c_candidate_name

    def _prepare_columns(self, columns: Sequence[SpecColumn]) -> list[SpecColumn]:
        if not columns:
            raise ValueError("columns cannot be empty.")
        # a resolved forest holds only top-level nodes
        if all(_col.is_resolved and _col.tree_step == 0 for _col in columns):
            return list(columns)
        return resolve_column_forest(
            build_column_forest(columns, self.options.root_id)
        )

    def write_sheets(
        self,
        columns: Sequence[SpecColumn],
        records: Any,
        *,
        if_write_body: bool = True,
        if_row_index: bool = False,
    ) -> Self:
        """
        Add one sheet per chunk of ``records`` under the header of ``columns``.

        ``columns`` is a resolved forest or a flat list of columns (resolved
        here with ``write_options.root_id``). ``records`` is a sequence of
        mappings or objects, or a polars DataFrame.
        """
        if self._is_closed:
            raise RuntimeError("Workbook already finalized; create a new writer.")

        report = SpecXlsxReport(sheets=[], warnings=[])
        l_forest = self._prepare_columns(columns)
        n_total_row = l_forest[0].total_row
        if n_total_row + self.options.n_rows_sheet_max > N_NROWS_EXCEL_MAX:
            raise ValueError(
                f"Header rows ({n_total_row}) plus n_rows_sheet_max "
                f"({self.options.n_rows_sheet_max}) exceed the Excel row limit."
            )
        n_cols_total = l_forest[0].total_col + (1 if if_row_index else 0)
        if n_cols_total > N_NCOLS_EXCEL_MAX:
            raise ValueError(
                f"Header needs {n_cols_total} columns; Excel allows {N_NCOLS_EXCEL_MAX}."
            )

        for _node in iter_columns_depth_first(l_forest):
            if _node.has_children and _node.field_name:
                report.warn(
                    f"Column {_node.id!r} has children; field {_node.field_name!r} is ignored."
                )
            elif not _node.has_children and not _node.field_name and if_write_body:
                report.warn(f"Leaf column {_node.id!r} has no field name; left empty.")

        seq_records = convert_to_records(records)
        n_records = count_records(seq_records)
        l_sheet_slices = generate_sheet_slices(
            height_data=n_records,
            n_rows_sheet_max=self.options.n_rows_sheet_max,
            sheet_title=self.title,
        )
        if len(l_sheet_slices) > 1:
            report.warn(
                f"{n_records} records exceed {self.options.n_rows_sheet_max} rows per "
                f"sheet: split into {len(l_sheet_slices)} sheets."
            )
        for _msg in report.warnings:
            logger.warning(_msg)

        for _sheet_slice in l_sheet_slices:
            c_sheet_name_unique_ = self._create_unique_sheet_name(
                _sheet_slice.sheet_name
            )
            cfg_worksheet_ = self.wb.add_worksheet(c_sheet_name_unique_)
            tup_widths_ = self._write_sheet(
                cfg_worksheet_,
                forest=l_forest,
                records=seq_records,
                sheet_slice=_sheet_slice,
                if_write_body=if_write_body,
                if_row_index=if_row_index,
            )
            report.sheets.append(
                SpecSheetPart(
                    sheet_name=c_sheet_name_unique_,
                    row_start_inclusive=_sheet_slice.row_start_inclusive,
                    row_end_exclusive=_sheet_slice.row_end_exclusive,
                    widths_col=tup_widths_,
                )
            )
            logger.debug(
                f"Sheet {c_sheet_name_unique_!r}: records "
                f"[{_sheet_slice.row_start_inclusive}, {_sheet_slice.row_end_exclusive})"
            )

        self._reports.append(report)
        return self

    # #endregion
    ############################################################################
    # #region SheetWriter

    def _write_sheet(
        self,
        ws: xlsxwriter.worksheet.Worksheet,
        *,
        forest: list[SpecColumn],
        records: Sequence[Any] | pl.DataFrame,
        sheet_slice: SpecSheetSlice,
        if_write_body: bool,
        if_row_index: bool,
    ) -> tuple[int, ...]:
        ws.set_default_row(self.options.height_row)

        n_col_offset = 1 if if_row_index else 0
        n_total_row = forest[0].total_row
        n_cols_total = forest[0].total_col + n_col_offset

        l_regions = [
            SpecHeaderRegion(
                row_start=_region.row_start,
                row_end=_region.row_end,
                col_start=_region.col_start + n_col_offset,
                col_end=_region.col_end + n_col_offset,
                text=_region.text,
            )
            for _region in plan_header_regions(forest)
        ]
        if if_row_index:
            l_regions.insert(
                0,
                SpecHeaderRegion(
                    row_start=0,
                    row_end=n_total_row - 1,
                    col_start=0,
                    col_end=0,
                    text=self.options.label_row_index,
                ),
            )

        dict_widths_header = self._write_header(
            ws, regions=l_regions, n_rows=n_total_row, n_cols=n_cols_total
        )
        dict_widths_data: dict[int, int] = {}
        if if_write_body:
            dict_widths_data = self._write_body(
                ws,
                leaves=collect_leaf_columns(forest),
                records=records,
                sheet_slice=sheet_slice,
                row_idx_data_start=n_total_row,
                n_col_offset=n_col_offset,
            )

        l_widths_final: list[int] = []
        for _col_idx in range(n_cols_total):
            n_width_ = min(
                max(
                    N_WIDTH_COL_MIN,
                    dict_widths_header.get(_col_idx, 0),
                    dict_widths_data.get(_col_idx, 0),
                ),
                N_WIDTH_COL_MAX,
            )
            ws.set_column(first_col=_col_idx, last_col=_col_idx, width=n_width_)
            l_widths_final.append(n_width_)
        if n_cols_total < N_NCOLS_EXCEL_MAX:
            ws.set_column(
                first_col=n_cols_total,
                last_col=N_NCOLS_EXCEL_MAX - 1,
                width=self.options.width_col_default,
            )
        return tuple(l_widths_final)

    def _write_header(
        self,
        ws: xlsxwriter.worksheet.Worksheet,
        *,
        regions: list[SpecHeaderRegion],
        n_rows: int,
        n_cols: int,
    ) -> dict[int, int]:
        cfg_fmt_header = self.styles.create_header_format(if_merged=False)
        cfg_fmt_merged = self.styles.create_header_format(if_merged=True)

        # styled backdrop so every grid cell exists before merging
        for _row_idx in range(n_rows):
            for _col_idx in range(n_cols):
                ws.write_blank(
                    row=_row_idx, col=_col_idx, blank=None, cell_format=cfg_fmt_header
                )

        dict_widths_header: dict[int, int] = {}
        for _region in regions:
            if _region.is_merged:
                ws.merge_range(
                    first_row=_region.row_start,
                    first_col=_region.col_start,
                    last_row=_region.row_end,
                    last_col=_region.col_end,
                    data=_region.text,
                    cell_format=cfg_fmt_merged,
                )
            elif _region.text:
                ws.write_string(
                    row=_region.row_start,
                    col=_region.col_start,
                    string=_region.text,
                    cell_format=cfg_fmt_header,
                )

            n_width_ = estimate_header_width(
                _region.text, _region.col_end - _region.col_start + 1
            )
            for _col_idx in range(_region.col_start, _region.col_end + 1):
                dict_widths_header[_col_idx] = max(
                    dict_widths_header.get(_col_idx, 0), n_width_
                )
        return dict_widths_header

    def _write_body(
        self,
        ws: xlsxwriter.worksheet.Worksheet,
        *,
        leaves: list[SpecColumn],
        records: Sequence[Any] | pl.DataFrame,
        sheet_slice: SpecSheetSlice,
        row_idx_data_start: int,
        n_col_offset: int,
    ) -> dict[int, int]:
        cfg_fmt_default = self.styles.create_body_format(None)
        dict_widths_data: dict[int, int] = {}

        for _row_idx_chunk, _record in enumerate(
            generate_record_slice(
                records,
                start=sheet_slice.row_start_inclusive,
                end=sheet_slice.row_end_exclusive,
            )
        ):
            n_row_idx_ = row_idx_data_start + _row_idx_chunk

            if n_col_offset:
                c_index_ = str(sheet_slice.row_start_inclusive + _row_idx_chunk + 1)
                ws.write_string(
                    row=n_row_idx_, col=0, string=c_index_, cell_format=cfg_fmt_default
                )
                dict_widths_data[0] = max(
                    dict_widths_data.get(0, 0), estimate_width(c_index_)
                )

            for _leaf in leaves:
                n_col_idx_ = _leaf.col + n_col_offset
                if _record is None or not _leaf.field_name:
                    ws.write_blank(
                        row=n_row_idx_,
                        col=n_col_idx_,
                        blank=None,
                        cell_format=cfg_fmt_default,
                    )
                    continue

                c_text_, c_color_key_ = extract_cell_value(
                    _record,
                    _leaf.field_name,
                    fmt_date=self.options.fmt_date,
                    extractor=self.extractor,
                )
                cfg_fmt_cell_ = self.styles.create_body_format(c_color_key_)
                if c_text_ is None:
                    ws.write_blank(
                        row=n_row_idx_,
                        col=n_col_idx_,
                        blank=None,
                        cell_format=cfg_fmt_cell_,
                    )
                    continue

                ws.write_string(
                    row=n_row_idx_,
                    col=n_col_idx_,
                    string=c_text_,
                    cell_format=cfg_fmt_cell_,
                )
                dict_widths_data[n_col_idx_] = max(
                    dict_widths_data.get(n_col_idx_, 0), estimate_width(c_text_)
                )
        return dict_widths_data

    # #endregion
    ############################################################################
