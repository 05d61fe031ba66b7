from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import openpyxl
import polars as pl
import pytest

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from tierkit.io.xlsx import (  # noqa: E402
    TreeXlsxWriter,
    UnsupportedWorkbookTypeError,
    column_transformer,
    count_sheets,
    load_sheet_value_maps,
    load_sheet_values,
)
from tierkit.io.xlsx import reader as mod_reader  # noqa: E402
from tierkit.io.xlsx.spec import (  # noqa: E402
    SpecMergeRange,
    SpecSheetGrid,
    SpecTreeWriteOptions,
)


@pytest.fixture
def path_scores(tmp_path: Path) -> Path:
    columns = column_transformer(
        [
            {"id": "1", "pid": "0", "content": "姓名", "field_name": "name"},
            {"id": "2", "pid": "0", "content": "Score"},
            {"id": "3", "pid": "2", "content": "Math", "field_name": "math"},
            {"id": "4", "pid": "2", "content": "English", "field_name": "english"},
        ],
        key_id="id",
        key_pid="pid",
        key_content="content",
        key_field_name="field_name",
    )
    path_out = tmp_path / "scores.xlsx"
    with TreeXlsxWriter("scores") as writer:
        writer.export_to_file(
            columns,
            [
                {"name": "张三", "math": 95, "english": 88},
                {"name": "Bob", "math": 72, "english": None},
            ],
            path_out,
        )
    return path_out


def test_round_trip_values_under_tree_header(path_scores: Path) -> None:
    assert load_sheet_values(path_scores, n_rows_header=2) == [
        ["张三", "95", "88"],
        ["Bob", "72", ""],
    ]


def test_merged_header_cells_resolve_to_their_label(path_scores: Path) -> None:
    l_rows = load_sheet_values(path_scores, n_rows_header=1)

    assert l_rows[0] == ["姓名", "Math", "English"]
    assert len(l_rows) == 3
    assert load_sheet_values(path_scores, n_rows_header=0)[0] == ["姓名", "Score", "Score"]


def test_value_maps_use_last_header_row(path_scores: Path) -> None:
    assert load_sheet_value_maps(path_scores, n_rows_header=2) == [
        [{"姓名": "张三"}, {"Math": "95"}, {"English": "88"}],
        [{"姓名": "Bob"}, {"Math": "72"}, {"English": ""}],
    ]


def _export_flat(path_out: Path, headings: list[dict[str, str]], records: list) -> Path:
    with TreeXlsxWriter("blank") as writer:
        writer.export_to_file(column_transformer(headings), records, path_out)
    return path_out


def test_all_null_record_keeps_its_row(tmp_path: Path) -> None:
    path_out = _export_flat(
        tmp_path / "nulls.xlsx",
        [{"A": "a"}, {"B": "b"}],
        [{"a": "x", "b": "y"}, {"a": None, "b": None}, {"a": "z", "b": "w"}],
    )

    assert load_sheet_values(path_out) == [["x", "y"], ["", ""], ["z", "w"]]
    assert load_sheet_value_maps(path_out)[1] == [{"A": ""}, {"B": ""}]


def test_missing_record_keeps_its_row(tmp_path: Path) -> None:
    path_out = _export_flat(
        tmp_path / "missing.xlsx", [{"A": "a"}], [{"a": 1}, None, {"a": 2}]
    )

    assert load_sheet_values(path_out) == [["1"], [""], ["2"]]
    assert load_sheet_value_maps(path_out) == [[{"A": "1"}], [{"A": ""}], [{"A": "2"}]]


def test_trailing_missing_record_is_read_back(tmp_path: Path) -> None:
    path_out = _export_flat(tmp_path / "tail.xlsx", [{"A": "a"}], [{"a": "x"}, None])

    assert load_sheet_values(path_out) == [["x"], [""]]


def test_native_cell_types_are_rendered_as_text(tmp_path: Path) -> None:
    path_in = tmp_path / "native.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["h1", "h2", "h3"])
    ws.append([1, date(2024, 1, 2), "  padded  "])
    ws.append([None, None, None])
    ws.append([2.5, True, None])
    wb.save(path_in)

    assert load_sheet_values(path_in) == [
        ["1.0", "2024-01-02", "padded"],
        ["", "", ""],
        ["2.5", "true", ""],
    ]


def test_sheet_selection_and_count(tmp_path: Path) -> None:
    path_out = tmp_path / "split.xlsx"
    with TreeXlsxWriter(
        "part", write_options=SpecTreeWriteOptions(n_rows_sheet_max=1)
    ) as writer:
        writer.export_to_file(
            column_transformer([{"V": "v"}]), [{"v": "a"}, {"v": "b"}], path_out
        )

    assert count_sheets(path_out) == 2
    assert load_sheet_values(path_out, 2) == [["b"]]
    with pytest.raises(ValueError, match="1..2"):
        load_sheet_values(path_out, 3)
    with pytest.raises(ValueError):
        load_sheet_values(path_out, 0)


def test_unsupported_suffix(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedWorkbookTypeError, match="csv"):
        load_sheet_values(tmp_path / "data.csv")
    with pytest.raises(ValueError):
        count_sheets(tmp_path / "data.ods")


def test_header_row_counts_are_validated(path_scores: Path) -> None:
    with pytest.raises(ValueError):
        load_sheet_values(path_scores, n_rows_header=-1)
    with pytest.raises(ValueError):
        load_sheet_value_maps(path_scores, n_rows_header=0)


def test_resolve_grid_text_fills_merged_ranges() -> None:
    grid = SpecSheetGrid(
        sheet_name="S",
        values=[["A", None, "C"], [None, None, 3]],
        merges=[SpecMergeRange(row_start=0, col_start=0, row_end=1, col_end=1)],
    )
    assert mod_reader.resolve_grid_text(grid) == [["A", "A", "C"], ["A", "A", "3.0"]]


def test_legacy_xls_goes_through_calamine(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    df_sheet = pl.DataFrame(
        {"column_1": ["h", "x", None], "column_2": ["k", "1", None]}
    )
    l_calls: list[dict] = []

    def _fake_read_excel(source: Path, **kwargs: object) -> object:
        l_calls.append(kwargs)
        if kwargs["sheet_id"] == 0:
            return {"s1": df_sheet, "s2": df_sheet}
        return df_sheet

    monkeypatch.setattr(mod_reader.pl, "read_excel", _fake_read_excel)
    path_in = tmp_path / "legacy.XLS"

    assert count_sheets(path_in) == 2
    assert load_sheet_values(path_in, 2) == [["x", "1"], ["", ""]]
    assert {_kw["engine"] for _kw in l_calls} == {"calamine"}
    assert all(_kw["has_header"] is False for _kw in l_calls)


def test_legacy_xls_without_engine_names_the_extra(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _fake_read_excel(source: Path, **kwargs: object) -> object:
        raise ModuleNotFoundError("No module named 'fastexcel'", name="fastexcel")

    monkeypatch.setattr(mod_reader.pl, "read_excel", _fake_read_excel)

    with pytest.raises(ModuleNotFoundError, match=r"tierkit\[xls\]"):
        count_sheets(tmp_path / "legacy.xls")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ""),
        ("  x ", "x"),
        (3, "3.0"),
        (False, "false"),
        (date(2020, 2, 29), "2020-02-29"),
        (object(), ""),
    ],
)
def test_format_cell_value(value: object, expected: str) -> None:
    assert mod_reader.format_cell_value(value) == expected
