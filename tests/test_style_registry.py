from __future__ import annotations

import sys
from collections.abc import Iterator
from io import BytesIO
from pathlib import Path

import pytest
import xlsxwriter

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from tierkit.io.xlsx.spec import EnumStylePreset, SpecCellFormat  # noqa: E402
from tierkit.io.xlsx.style import XlsxStyleRegistry  # noqa: E402


@pytest.fixture
def wb() -> Iterator[xlsxwriter.Workbook]:
    inst_wb = xlsxwriter.Workbook(BytesIO(), {"in_memory": True})
    yield inst_wb
    inst_wb.close()


def test_seeded_body_styles(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb)

    assert styles.keys == ("default", "red", "green", "blue")
    assert styles.select("red").bg_color == "#FF0000"
    assert styles.select("default").right == 1
    assert styles.select("default").bottom == 1


def test_select_is_case_insensitive_and_falls_back(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb)

    assert styles.select(" RED ") == styles.select("red")
    assert styles.select("magenta") == styles.select("default")
    assert styles.select(None) == styles.select("default")


def test_register_lowercases_keys(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb)
    fmt_yellow = styles.select(None).with_(pattern=1, bg_color="#FFFF00")
    styles.register(" Yellow ", fmt_yellow)

    assert "yellow" in styles.keys
    assert styles.select("YELLOW") == fmt_yellow
    with pytest.raises(ValueError):
        styles.register("  ", fmt_yellow)


def test_left_aligned_preset_adds_left_style(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb, preset=EnumStylePreset.LEFT_ALIGNED)

    assert "left" in styles.keys
    assert styles.select("left").align == "left"
    assert styles.fmt_header.bg_color is None


def test_dark_header_preset(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb, preset=2)

    assert styles.fmt_header.bg_color == "#800000"
    assert styles.fmt_header.font_color == "#FFFFFF"
    assert styles.fmt_header.bold is True
    assert "left" not in styles.keys


def test_formats_are_cached_per_value(wb: xlsxwriter.Workbook) -> None:
    styles = XlsxStyleRegistry(wb)

    assert styles.create_body_format("red") is styles.create_body_format("RED")
    assert styles.create_body_format("red") is not styles.create_body_format(None)
    assert styles.create_header_format(if_merged=True) is not styles.create_header_format(
        if_merged=False
    )


def test_custom_base_formats(wb: xlsxwriter.Workbook) -> None:
    fmt_body = SpecCellFormat(align="left", num_format="@")
    styles = XlsxStyleRegistry(
        wb, fmt_header=SpecCellFormat(bold=True), fmt_body=fmt_body
    )

    assert styles.select(None) == fmt_body
    assert styles.select("green").align == "left"
    assert styles.create_header_format(if_merged=True) is styles.create_format_cached(
        SpecCellFormat(bold=True, left=1, right=1, bottom=1)
    )


def test_cell_format_merge_prefers_set_fields() -> None:
    fmt_base = SpecCellFormat(align="center", bold=False)
    fmt_merged = fmt_base.merge(SpecCellFormat(bold=True, font_size=9))

    assert fmt_merged == SpecCellFormat(align="center", bold=True, font_size=9)
    assert fmt_merged.to_xlsxwriter() == {"align": "center", "bold": True, "font_size": 9}
