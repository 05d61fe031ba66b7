from typing import Any

import xlsxwriter
import xlsxwriter.format

from .conf import DEFAULT_XLSX_FORMATS, DICT_COLOR_HEX
from .spec import EnumStylePreset, SpecCellFormat

STYLE_KEY_DEFAULT = "default"


class XlsxStyleRegistry:
    """
    Named body styles and header styles of one workbook.

    Styles are immutable :class:`SpecCellFormat` values; each distinct value is
    realized as one ``xlsxwriter`` format and cached, so formats are shared
    between cells but never modified after creation.

    Seeded body styles are ``"default"`` (centered, thin right/bottom border,
    white fill) and the ``"red"``, ``"green"`` and ``"blue"`` fills.
    ``EnumStylePreset.LEFT_ALIGNED`` adds a ``"left"`` body style and
    ``EnumStylePreset.DARK_HEADER`` renders headers bold white on dark red.
    """

    def __init__(
        self,
        wb: xlsxwriter.Workbook,
        *,
        preset: EnumStylePreset | int = EnumStylePreset.PLAIN,
        fmt_header: SpecCellFormat | None = None,
        fmt_body: SpecCellFormat | None = None,
    ):
        self.wb = wb
        self.preset = EnumStylePreset(preset)
        self._format_cache: dict[SpecCellFormat, xlsxwriter.format.Format] = {}

        self.fmt_header = (
            DEFAULT_XLSX_FORMATS["header"] if fmt_header is None else fmt_header
        )
        fmt_body_default = (
            DEFAULT_XLSX_FORMATS["body"] if fmt_body is None else fmt_body
        )
        self._body_specs: dict[str, SpecCellFormat] = {
            STYLE_KEY_DEFAULT: fmt_body_default
        }

        if self.preset is EnumStylePreset.LEFT_ALIGNED:
            self.register("left", fmt_body_default.with_(align="left"))
        elif self.preset is EnumStylePreset.DARK_HEADER:
            self.fmt_header = self.fmt_header.merge(
                SpecCellFormat(
                    pattern=1,
                    bg_color=DICT_COLOR_HEX["dark_red"],
                    bold=True,
                    font_color=DICT_COLOR_HEX["white"],
                )
            )

        for _color in ("red", "green", "blue"):
            self.register(
                _color,
                fmt_body_default.with_(pattern=1, bg_color=DICT_COLOR_HEX[_color]),
            )

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._body_specs)

    def register(self, key: str, fmt: SpecCellFormat) -> None:
        c_key = key.strip().lower()
        if not c_key:
            raise ValueError("Style key must be non-empty.")
        self._body_specs[c_key] = fmt

    def select(self, key: str | None) -> SpecCellFormat:
        if key is None:
            return self._body_specs[STYLE_KEY_DEFAULT]
        return self._body_specs.get(
            key.strip().lower(), self._body_specs[STYLE_KEY_DEFAULT]
        )

    def create_format_cached(self, spec: SpecCellFormat) -> Any:
        fmt = self._format_cache.get(spec)
        if fmt is None:
            fmt = self.wb.add_format(spec.to_xlsxwriter())
            self._format_cache[spec] = fmt
        return fmt

    def create_body_format(self, key: str | None) -> xlsxwriter.format.Format:
        return self.create_format_cached(self.select(key))

    def create_header_format(self, *, if_merged: bool) -> xlsxwriter.format.Format:
        if not if_merged:
            return self.create_format_cached(self.fmt_header)
        return self.create_format_cached(
            self.fmt_header.with_(left=1, right=1, bottom=1)
        )
