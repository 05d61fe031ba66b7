from collections.abc import Mapping
from types import MappingProxyType
from typing import Literal

from .spec import N_ROWS_SHEET_MAX_LEGACY as N_ROWS_SHEET_MAX_LEGACY
from .spec import ROOT_ID as ROOT_ID
from .spec import SpecCellFormat, SpecTreeWriteOptions

N_NROWS_EXCEL_MAX = 1_048_576
N_NCOLS_EXCEL_MAX = 16_384
N_LEN_EXCEL_SHEET_NAME_MAX = 31
TUP_EXCEL_ILLEGAL = ("*", ":", "?", "/", "\\", "[", "]")

SUFFIX_COLOR_KEY = "_color"

# Column widths are character units.
N_WIDTH_COL_MIN = 12
N_WIDTH_COL_MAX = 255
N_WIDTH_PADDING = 2
# CJK Unified Ideographs count as two display units.
TUP_RANGE_WIDE_CHARS = (0x4E00, 0x9FFF)

TUP_SUFFIX_XLSX = (".xlsx", ".xlsm")
TUP_SUFFIX_XLS = (".xls",)

# Strategy/Preference/Adjustable Parameters for XLSX I/O operations.

DICT_COLOR_HEX: Mapping[str, str] = MappingProxyType(
    {
        "white": "#FFFFFF",
        "red": "#FF0000",
        "green": "#008000",
        "blue": "#0000FF",
        "dark_red": "#800000",
    }
)

LIT_FMT_KEYS = Literal["header", "body"]
_cls_base_fmt_spec = SpecCellFormat(align="center", valign="vcenter", num_format="@")

DEFAULT_XLSX_FORMATS: Mapping[LIT_FMT_KEYS, SpecCellFormat] = MappingProxyType(
    {
        "header": _cls_base_fmt_spec,
        "body": _cls_base_fmt_spec.with_(
            right=1, bottom=1, pattern=1, bg_color=DICT_COLOR_HEX["white"]
        ),
    }
)

DEFAULT_TREE_WRITE_OPTIONS = SpecTreeWriteOptions()
