"""Workbook I/O. ``tierkit.io.xlsx`` holds the tree-header writer and the sheet reader."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tierkit._optional_deps import import_optional_module

__all__ = ["xlsx"]

if TYPE_CHECKING:
    import tierkit.io.xlsx as xlsx


def __getattr__(name: str) -> Any:
    if name != "xlsx":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    globals()[name] = import_optional_module(
        module_name=".xlsx",
        package=__name__,
        feature="tierkit.io.xlsx",
        extras=("xlsx",),
    )
    return globals()[name]
