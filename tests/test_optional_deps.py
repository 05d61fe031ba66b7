from __future__ import annotations

import re
import sys
import tomllib
from pathlib import Path

import pytest

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

import tierkit  # noqa: E402
from tierkit._optional_deps import (  # noqa: E402
    DICT_EXTRA_MODULES,
    import_optional_attr,
    import_optional_module,
)


def test_optional_import_error_contains_install_hint() -> None:
    with pytest.raises(ModuleNotFoundError) as exc_info:
        import_optional_module(
            module_name=".missing_feature_module",
            package="tierkit",
            feature="tierkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("missing_feature_module",),
        )

    message = str(exc_info.value)
    assert "tierkit.io.xlsx is unavailable" in message
    assert re.search(r'pip install "tierkit\[xlsx\]"', message)
    assert "pdm sync -G dev -G xlsx" in message


def test_unrelated_missing_module_is_not_rewritten() -> None:
    with pytest.raises(ModuleNotFoundError) as exc_info:
        import_optional_module(
            module_name="tierkit_no_such_module",
            package="tierkit",
            feature="tierkit.cli",
            extras=("cli",),
        )

    assert exc_info.value.name == "tierkit_no_such_module"
    assert "unavailable" not in str(exc_info.value)


def test_extras_are_deduplicated_in_hint() -> None:
    with pytest.raises(ModuleNotFoundError, match=r"tierkit\[cli,xlsx\]"):
        import_optional_module(
            module_name=".missing_feature_module",
            package="tierkit",
            feature="tierkit.cli",
            extras=("cli", "xlsx", "cli"),
            required_modules=(),
        )


def test_optional_attr_resolves_installed_module() -> None:
    cls_writer = import_optional_attr(
        module_name=".io.xlsx.writer",
        attr_name="TreeXlsxWriter",
        package="tierkit",
        feature="tierkit.io.xlsx",
        extras=("xlsx",),
    )
    assert cls_writer.__name__ == "TreeXlsxWriter"


def test_lazy_package_aliases() -> None:
    assert tierkit.io_xlsx.TreeXlsxWriter.__name__ == "TreeXlsxWriter"
    assert "column_transformer" in dir(tierkit.io_xlsx)
    with pytest.raises(AttributeError):
        tierkit.io_xlsx.NoSuchName  # noqa: B018
    with pytest.raises(AttributeError):
        tierkit.no_such_alias  # noqa: B018


def test_hinted_extras_declare_their_modules() -> None:
    path_pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    with path_pyproject.open("rb") as fh:
        dict_extras = tomllib.load(fh)["project"]["optional-dependencies"]

    for _extra, _modules in DICT_EXTRA_MODULES.items():
        set_declared_ = {
            re.split(r"[<>=!~;\[ ]", _req, maxsplit=1)[0].lower()
            for _req in dict_extras[_extra]
        }
        assert {_mod.replace("_", "-") for _mod in _modules} <= set_declared_, _extra
