from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tierkit._optional_deps import import_optional_attr

__all__ = ["CliHeadings", "build_parser", "main"]

if TYPE_CHECKING:
    from .app import build_parser, main
    from .console import CliHeadings


def __getattr__(name: str) -> Any:
    if name == "CliHeadings":
        return import_optional_attr(
            module_name=".console",
            attr_name=name,
            package=__name__,
            feature="tierkit.cli",
            extras=("cli",),
            required_modules=("rich",),
        )
    if name in {"build_parser", "main"}:
        return import_optional_attr(
            module_name=".app",
            attr_name=name,
            package=__name__,
            feature="tierkit.cli",
            extras=("cli", "xlsx"),
            required_modules=("rich_argparse", "rich", "xlsxwriter", "openpyxl"),
        )
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
