from __future__ import annotations

from collections.abc import Sequence
from importlib import import_module
from types import ModuleType
from typing import Any

# extra name -> third-party modules it installs
DICT_EXTRA_MODULES: dict[str, tuple[str, ...]] = {
    "xlsx": ("xlsxwriter", "openpyxl", "polars", "loguru"),
    "xls": ("fastexcel",),
    "cli": ("rich", "rich_argparse"),
}


def _format_extra_names(extras: Sequence[str]) -> str:
    return ",".join(dict.fromkeys(extras))


def _collect_required_modules(extras: Sequence[str]) -> tuple[str, ...]:
    return tuple(
        dict.fromkeys(
            _module for _extra in extras for _module in DICT_EXTRA_MODULES.get(_extra, ())
        )
    )


def _is_required_module_missing(
    missing_module: str | None, required_modules: Sequence[str]
) -> bool:
    if not required_modules:
        return True
    # any dotted segment counts: relative imports report "<package>.<module>"
    set_missing = set((missing_module or "").split(".")) - {""}
    return any(set(_module.split(".")) & set_missing for _module in required_modules)


def build_optional_dependency_error(
    *,
    feature: str,
    extras: Sequence[str],
    missing_module: str | None,
) -> ModuleNotFoundError:
    c_extras = _format_extra_names(extras)
    c_missing = f"`{missing_module}`" if missing_module else "an optional dependency"
    return ModuleNotFoundError(
        f"{feature} is unavailable: {c_missing} is not installed. "
        f'Run `pip install "tierkit[{c_extras}]"`, '
        f"or `pdm sync -G dev -G {c_extras}` in a checkout."
    )


def import_optional_module(
    *,
    module_name: str,
    package: str,
    feature: str,
    extras: Sequence[str],
    required_modules: Sequence[str] | None = None,
) -> ModuleType:
    """
    Import ``module_name``; a missing third-party module becomes an install hint.

    ``required_modules`` defaults to every module the ``extras`` install. Only
    a failure on one of those is rewritten, anything else propagates as is.
    """
    if required_modules is None:
        required_modules = _collect_required_modules(extras)
    try:
        return import_module(module_name, package=package)
    except ModuleNotFoundError as exc:
        if _is_required_module_missing(exc.name, required_modules):
            raise build_optional_dependency_error(
                feature=feature, extras=extras, missing_module=exc.name
            ) from exc
        raise


def import_optional_attr(
    *,
    module_name: str,
    attr_name: str,
    package: str,
    feature: str,
    extras: Sequence[str],
    required_modules: Sequence[str] | None = None,
) -> Any:
    return getattr(
        import_optional_module(
            module_name=module_name,
            package=package,
            feature=feature,
            extras=extras,
            required_modules=required_modules,
        ),
        attr_name,
    )
