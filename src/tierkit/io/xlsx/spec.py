# "Facts/Results/Plans" produced while laying out tree headers and writing XLSX files.

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any


################################################################################
# #region CellFormatSpecification
@dataclass(frozen=True, slots=True)
class SpecCellFormat:
    # Field names follow xlsxwriter format property keys.
    font_name: str | None = None
    font_size: int | None = None
    bold: bool | None = None
    italic: bool | None = None

    align: str | None = None
    valign: str | None = None
    border: int | None = None
    text_wrap: bool | None = None

    top: int | None = None
    bottom: int | None = None
    left: int | None = None
    right: int | None = None

    num_format: str | None = None
    pattern: int | None = None
    bg_color: str | None = None
    font_color: str | None = None

    def with_(self, **kwargs: Any) -> "SpecCellFormat":
        return replace(self, **kwargs)

    def merge(self, other: "SpecCellFormat") -> "SpecCellFormat":
        # non-None fields of `other` win
        data = {
            k: (
                getattr(other, k) if getattr(other, k) is not None else getattr(self, k)
            )
            for k in self.__dataclass_fields__
        }
        return SpecCellFormat(**data)

    def to_xlsxwriter(self) -> dict[str, Any]:
        return {
            k: getattr(self, k)
            for k in self.__dataclass_fields__
            if getattr(self, k) is not None
        }


# #endregion
################################################################################
# #region ColumnTreeSpecification
@dataclass(slots=True, eq=False)
class SpecColumn:
    """
    One header cell (or header subtree) of a tree-shaped sheet header.

    Callers fill ``id``, ``pid``, ``content`` and, for leaves, ``field_name``.
    Everything below ``field_name`` is geometry, written once by
    :func:`tierkit.io.xlsx.tree.resolve_column_forest`.

    ``span_row`` / ``span_col`` use ``0`` for "no merge on this axis":
    interior nodes always have ``span_row == 0`` (their children fill the rows
    below), and a node covering a single leaf has ``span_col == 0``.
    """

    id: str
    pid: str
    content: str = ""
    field_name: str | None = None

    tree_step: int = 0
    row: int = 0
    col: int = 0
    span_row: int = 0
    span_col: int = 0
    total_row: int = 0
    total_col: int = 0
    has_children: bool = False
    children: list["SpecColumn"] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.total_col > 0


@dataclass(frozen=True, slots=True)
class SpecHeaderRegion:
    """Rectangle covered by one header node; bounds are 0-based and inclusive."""

    row_start: int
    row_end: int
    col_start: int
    col_end: int
    text: str

    @property
    def is_merged(self) -> bool:
        return self.row_start != self.row_end or self.col_start != self.col_end


# #endregion
################################################################################
# #region WriteOptions
# Legacy (.xls) row bound, kept as the default records-per-sheet.
N_ROWS_SHEET_MAX_LEGACY = 65_535
ROOT_ID = "0"


class EnumStylePreset(IntEnum):
    PLAIN = 0
    LEFT_ALIGNED = 1
    DARK_HEADER = 2


@dataclass(frozen=True, slots=True)
class SpecTreeWriteOptions:
    width_col_default: int = 20
    height_row: int = 20
    fmt_date: str = "%Y-%m-%d %H:%M:%S"
    style_preset: EnumStylePreset = EnumStylePreset.PLAIN
    n_rows_sheet_max: int = N_ROWS_SHEET_MAX_LEGACY
    root_id: str = ROOT_ID
    label_row_index: str = "No."


# #endregion
################################################################################
# #region SheetSpecification
@dataclass(frozen=True, slots=True)
class SpecSheetSlice:
    sheet_name: str
    row_start_inclusive: int
    row_end_exclusive: int  # exclusive in source records


@dataclass(frozen=True, slots=True)
class SpecSheetPart:
    sheet_name: str
    row_start_inclusive: int
    row_end_exclusive: int  # exclusive in source records
    widths_col: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class SpecMergeRange:
    # 0-based, inclusive
    row_start: int
    col_start: int
    row_end: int
    col_end: int


@dataclass(frozen=True, slots=True)
class SpecSheetGrid:
    sheet_name: str
    values: list[list[Any]]
    merges: list[SpecMergeRange]


# #endregion
################################################################################
# #region ReportSpecification
@dataclass(slots=True)
class SpecXlsxReport:
    sheets: list[SpecSheetPart]
    warnings: list[str]

    def warn(self, msg: str) -> None:
        self.warnings.append(str(msg))


# #endregion
################################################################################
