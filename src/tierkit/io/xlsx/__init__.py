from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tierkit._optional_deps import import_optional_attr

__all__ = [
    "TreeXlsxWriter",
    "XlsxStyleRegistry",
    "SpecColumn",
    "SpecCellFormat",
    "SpecTreeWriteOptions",
    "EnumStylePreset",
    "ColumnTreeError",
    "UnsupportedWorkbookTypeError",
    "build_column_forest",
    "resolve_column_forest",
    "column_transformer",
    "count_sheets",
    "load_sheet_values",
    "load_sheet_value_maps",
]

if TYPE_CHECKING:
    from .reader import (
        UnsupportedWorkbookTypeError,
        count_sheets,
        load_sheet_value_maps,
        load_sheet_values,
    )
    from .spec import (
        EnumStylePreset,
        SpecCellFormat,
        SpecColumn,
        SpecTreeWriteOptions,
    )
    from .style import XlsxStyleRegistry
    from .transform import column_transformer
    from .tree import ColumnTreeError, build_column_forest, resolve_column_forest
    from .writer import TreeXlsxWriter

_ATTR_MODULES: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    # name: (module, extras, required third-party modules)
    "SpecColumn": (".spec", ("xlsx",), ()),
    "SpecCellFormat": (".spec", ("xlsx",), ()),
    "SpecTreeWriteOptions": (".spec", ("xlsx",), ()),
    "EnumStylePreset": (".spec", ("xlsx",), ()),
    "ColumnTreeError": (".tree", ("xlsx",), ("loguru",)),
    "build_column_forest": (".tree", ("xlsx",), ("loguru",)),
    "resolve_column_forest": (".tree", ("xlsx",), ("loguru",)),
    "column_transformer": (".transform", ("xlsx",), ("loguru",)),
    "XlsxStyleRegistry": (".style", ("xlsx",), ("xlsxwriter",)),
    "TreeXlsxWriter": (".writer", ("xlsx",), ("xlsxwriter", "polars", "loguru")),
    "UnsupportedWorkbookTypeError": (".reader", ("xlsx",), ("openpyxl", "polars")),
    "count_sheets": (".reader", ("xlsx",), ("openpyxl", "polars")),
    "load_sheet_values": (".reader", ("xlsx",), ("openpyxl", "polars")),
    "load_sheet_value_maps": (".reader", ("xlsx",), ("openpyxl", "polars")),
}


def __getattr__(name: str) -> Any:
    entry = _ATTR_MODULES.get(name)
    if entry is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, extras, required_modules = entry
    return import_optional_attr(
        module_name=module_name,
        attr_name=name,
        package=__name__,
        feature="tierkit.io.xlsx",
        extras=extras,
        required_modules=required_modules,
    )


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
