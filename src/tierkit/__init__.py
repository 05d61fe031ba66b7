from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from types import ModuleType
from typing import TYPE_CHECKING, Any

from tierkit._optional_deps import import_optional_module

__all__ = [
    "__version__",
    "io_xlsx",
    "cli",
]

try:
    __version__ = version("tierkit")
except PackageNotFoundError:
    __version__ = "0.0.0"

if TYPE_CHECKING:
    import tierkit.cli as cli
    import tierkit.io.xlsx as io_xlsx

# alias: (module, extras naming its third-party stack)
_ALIAS_MODULES: dict[str, tuple[str, tuple[str, ...]]] = {
    "io_xlsx": (".io.xlsx", ("xlsx",)),
    "cli": (".cli", ("cli",)),
}


def __getattr__(name: str) -> Any:
    entry = _ALIAS_MODULES.get(name)
    if entry is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, extras = entry
    module_loaded: ModuleType = import_optional_module(
        module_name=module_name,
        package=__name__,
        feature=f"tierkit.{module_name.lstrip('.')}",
        extras=extras,
    )
    globals()[name] = module_loaded
    return module_loaded


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
