from __future__ import annotations

import argparse
import json
import platform
import statistics
import sys
import tempfile
import zipfile
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from time import perf_counter

import polars as pl

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from tierkit.io.xlsx import TreeXlsxWriter, column_transformer  # noqa: E402
from tierkit.io.xlsx.spec import SpecColumn, SpecTreeWriteOptions  # noqa: E402


@dataclass(frozen=True)
class TreeBenchmarkScenario:
    name: str
    n_rows: int
    n_groups: int
    n_leaves_per_group: int
    n_rows_sheet_max: int = 65_535
    if_row_index: bool = False


@dataclass(frozen=True)
class TreeBenchmarkStats:
    scenario: TreeBenchmarkScenario
    n_cols: int
    n_sheets: int
    repeats: int
    warmup_runs: int
    times_seconds: list[float]
    mean_seconds: float
    median_seconds: float
    min_seconds: float
    max_seconds: float
    stdev_seconds: float
    output_size_bytes_mean: int


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run write benchmarks for tierkit.io.xlsx.TreeXlsxWriter.",
    )
    parser.add_argument(
        "--repeat", type=int, default=3, help="Measured runs per scenario."
    )
    parser.add_argument(
        "--warmup", type=int, default=1, help="Warmup runs per scenario."
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=PROJECT_ROOT / "benchmarks" / "tree_writer" / "results",
        help="Directory where benchmark result files are written.",
    )
    parser.add_argument(
        "--profile",
        choices=("default", "huge"),
        default="default",
        help="Scenario profile to run.",
    )
    return parser.parse_args()


def build_scenarios(profile: str) -> list[TreeBenchmarkScenario]:
    if profile == "default":
        return [
            TreeBenchmarkScenario(
                name="flat_tall", n_rows=20_000, n_groups=8, n_leaves_per_group=1
            ),
            TreeBenchmarkScenario(
                name="grouped_indexed",
                n_rows=10_000,
                n_groups=6,
                n_leaves_per_group=4,
                if_row_index=True,
            ),
        ]

    return [
        TreeBenchmarkScenario(
            name="huge_split_sheets",
            n_rows=150_000,
            n_groups=4,
            n_leaves_per_group=3,
        ),
        TreeBenchmarkScenario(
            name="huge_wide_groups",
            n_rows=40_000,
            n_groups=20,
            n_leaves_per_group=5,
            n_rows_sheet_max=20_000,
        ),
    ]


def detect_tierkit_version() -> str:
    try:
        return metadata.version("tierkit")
    except metadata.PackageNotFoundError:
        return "local-src"


def build_columns(*, n_groups: int, n_leaves_per_group: int) -> list[SpecColumn]:
    l_items: list[dict[str, str]] = []
    for n_group in range(n_groups):
        if n_leaves_per_group == 1:
            l_items.append(
                {"id": f"g{n_group}", "pid": "0", "content": f"Value {n_group}", "field": f"v_{n_group}_0"}
            )
            continue
        l_items.append({"id": f"g{n_group}", "pid": "0", "content": f"Group {n_group}"})
        for n_leaf in range(n_leaves_per_group):
            l_items.append(
                {
                    "id": f"g{n_group}_{n_leaf}",
                    "pid": f"g{n_group}",
                    "content": f"Metric {n_leaf}",
                    "field": f"v_{n_group}_{n_leaf}",
                }
            )
    return column_transformer(
        l_items, key_id="id", key_pid="pid", key_content="content", key_field_name="field"
    )


def build_dataframe(
    *, n_rows: int, n_groups: int, n_leaves_per_group: int
) -> pl.DataFrame:
    df = pl.DataFrame({"row_id": pl.Series("row_id", range(n_rows), dtype=pl.Int64)})
    l_expr = [
        ((pl.col("row_id") * (n_group + 1) + n_leaf).cast(pl.Float64) / 7.0).alias(
            f"v_{n_group}_{n_leaf}"
        )
        for n_group in range(n_groups)
        for n_leaf in range(n_leaves_per_group)
    ]
    return df.with_columns(l_expr)


def count_output_sheets(path_xlsx_out: Path) -> int:
    with zipfile.ZipFile(path_xlsx_out) as zf:
        return sum(
            1
            for c_name in zf.namelist()
            if c_name.startswith("xl/worksheets/sheet") and c_name.endswith(".xml")
        )


def run_one_write(
    *,
    scenario: TreeBenchmarkScenario,
    columns: list[SpecColumn],
    df: pl.DataFrame,
    path_xlsx_out: Path,
) -> float:
    cfg_options = SpecTreeWriteOptions(n_rows_sheet_max=scenario.n_rows_sheet_max)
    n_t_start = perf_counter()
    with TreeXlsxWriter("benchmark", write_options=cfg_options) as inst_writer:
        inst_writer.export_to_file(
            columns, df, path_xlsx_out, if_row_index=scenario.if_row_index
        )
    return perf_counter() - n_t_start


def benchmark_scenario(
    *,
    scenario: TreeBenchmarkScenario,
    repeat: int,
    warmup: int,
    path_dir_tmp: Path,
) -> TreeBenchmarkStats:
    df = build_dataframe(
        n_rows=scenario.n_rows,
        n_groups=scenario.n_groups,
        n_leaves_per_group=scenario.n_leaves_per_group,
    )
    l_columns = build_columns(
        n_groups=scenario.n_groups, n_leaves_per_group=scenario.n_leaves_per_group
    )
    n_sheets_expected = max(1, -(-scenario.n_rows // scenario.n_rows_sheet_max))

    l_times_seconds: list[float] = []
    l_output_size_bytes: list[int] = []
    for n_idx in range(warmup + repeat):
        path_file_out = path_dir_tmp / f"{scenario.name}_{n_idx}.xlsx"
        n_elapsed = run_one_write(
            scenario=scenario, columns=l_columns, df=df, path_xlsx_out=path_file_out
        )
        n_sheets = count_output_sheets(path_file_out)
        if n_sheets != n_sheets_expected:
            raise ValueError(
                f"Sheet count mismatch: expected={n_sheets_expected}, got={n_sheets}."
            )
        if n_idx >= warmup:
            l_times_seconds.append(n_elapsed)
            l_output_size_bytes.append(path_file_out.stat().st_size)
        path_file_out.unlink(missing_ok=True)

    return TreeBenchmarkStats(
        scenario=scenario,
        n_cols=scenario.n_groups * scenario.n_leaves_per_group
        + (1 if scenario.if_row_index else 0),
        n_sheets=n_sheets_expected,
        repeats=repeat,
        warmup_runs=warmup,
        times_seconds=l_times_seconds,
        mean_seconds=statistics.mean(l_times_seconds),
        median_seconds=statistics.median(l_times_seconds),
        min_seconds=min(l_times_seconds),
        max_seconds=max(l_times_seconds),
        stdev_seconds=(
            statistics.stdev(l_times_seconds) if len(l_times_seconds) > 1 else 0.0
        ),
        output_size_bytes_mean=round(statistics.mean(l_output_size_bytes)),
    )


def render_markdown_summary(payload: dict[str, object]) -> str:
    l_scenarios = payload["scenarios"]
    assert isinstance(l_scenarios, list)

    l_lines = [
        "# Tree XLSX Benchmark Record",
        "",
        f"- Timestamp (UTC): `{payload['timestamp_utc']}`",
        f"- Platform: `{payload['platform']}`",
        f"- Python: `{payload['python_version']}`",
        f"- tierkit: `{payload['tierkit_version']}`",
        "",
        "| scenario | rows | cols | sheets | repeat | median_s | mean_s | min_s | max_s | mean_size_mb |",
        "| --- | ---: | ---: | ---: | ---: | ---: | ---: | ---: | ---: | ---: |",
    ]
    for item in l_scenarios:
        assert isinstance(item, dict)
        cfg = item["scenario"]
        n_size_mb = float(item["output_size_bytes_mean"]) / (1024 * 1024)
        l_lines.append(
            f"| {cfg['name']} | {cfg['n_rows']} | {item['n_cols']} | {item['n_sheets']} | "
            f"{item['repeats']} | {item['median_seconds']:.3f} | {item['mean_seconds']:.3f} | "
            f"{item['min_seconds']:.3f} | {item['max_seconds']:.3f} | {n_size_mb:.2f} |"
        )
    return "\n".join(l_lines) + "\n"


def main() -> int:
    args = parse_args()
    if args.repeat < 1:
        raise ValueError("--repeat must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    args.out_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc)
    c_timestamp_compact = ts.strftime("%Y%m%dT%H%M%SZ")

    with tempfile.TemporaryDirectory(prefix="tierkit_tree_bench_") as c_dir_tmp:
        l_stats = [
            benchmark_scenario(
                scenario=cfg_scenario,
                repeat=args.repeat,
                warmup=args.warmup,
                path_dir_tmp=Path(c_dir_tmp),
            )
            for cfg_scenario in build_scenarios(args.profile)
        ]

    payload = {
        "timestamp_utc": ts.isoformat(),
        "command": " ".join(sys.argv),
        "platform": platform.platform(),
        "python_version": sys.version.split()[0],
        "tierkit_version": detect_tierkit_version(),
        "polars_version": pl.__version__,
        "repeat": args.repeat,
        "warmup": args.warmup,
        "profile": args.profile,
        "scenarios": [asdict(item) for item in l_stats],
    }

    path_file_json = args.out_dir / f"tree_writer_{c_timestamp_compact}.json"
    path_file_md = args.out_dir / f"tree_writer_{c_timestamp_compact}.md"
    path_file_json.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
    )
    path_file_md.write_text(render_markdown_summary(payload), encoding="utf-8")

    print(path_file_json)
    print(path_file_md)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
