from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from tierkit.io.xlsx.transform import (  # noqa: E402
    column_transformer,
    create_flat_columns,
)
from tierkit.io.xlsx.tree import ColumnTreeError, iter_columns_depth_first  # noqa: E402


def test_heading_strings_become_header_only_columns() -> None:
    forest = column_transformer(["Name", "Age", "City"])

    assert [(_n.id, _n.pid, _n.content) for _n in forest] == [
        ("1", "0", "Name"),
        ("2", "0", "Age"),
        ("3", "0", "City"),
    ]
    assert all(_n.field_name is None for _n in forest)
    assert [_n.col for _n in forest] == [0, 1, 2]
    assert forest[0].total_row == 1


def test_heading_mappings_are_numbered_across_mappings() -> None:
    forest = column_transformer([{"Name": "name", "Age": "age"}, {"City": "city"}])

    assert [(_n.id, _n.content, _n.field_name) for _n in forest] == [
        ("1", "Name", "name"),
        ("2", "Age", "age"),
        ("3", "City", "city"),
    ]


def test_mixing_strings_and_mappings_fails() -> None:
    with pytest.raises(ColumnTreeError, match="Cannot mix"):
        create_flat_columns([{"Name": "name"}, "Age"])
    with pytest.raises(ValueError):
        create_flat_columns(["Name", {"Age": "age"}])


def test_tree_items_from_mappings() -> None:
    items = [
        {"id": 1, "pid": 0, "title": "Name", "field": "name"},
        {"id": 2, "pid": 0, "title": "Score"},
        {"id": 3, "pid": 2, "title": "Math", "field": "math"},
        {"id": 4, "pid": 2, "title": "English", "field": "english"},
    ]
    forest = column_transformer(
        items, key_id="id", key_pid="pid", key_content="title", key_field_name="field"
    )
    l_nodes = list(iter_columns_depth_first(forest))

    assert [_n.id for _n in l_nodes] == ["1", "2", "3", "4"]
    assert [_n.field_name for _n in l_nodes] == ["name", None, "math", "english"]
    assert forest[1].span_col == 2
    assert forest[0].span_row == 2


def test_tree_items_from_objects() -> None:
    items = [
        SimpleNamespace(key="g", parent="top", label="Group"),
        SimpleNamespace(key="a", parent="g", label="A"),
        SimpleNamespace(key="b", parent="g", label="B"),
    ]
    forest = column_transformer(
        items, key_id="key", key_pid="parent", key_content="label", root_id="top"
    )

    assert [_n.content for _n in forest] == ["Group"]
    assert [_c.content for _c in forest[0].children] == ["A", "B"]
    assert all(_c.field_name is None for _c in forest[0].children)


def test_tree_items_without_id_fail() -> None:
    with pytest.raises(ValueError, match="no 'id'"):
        column_transformer(
            [{"pid": "0", "title": "A"}], key_id="id", key_pid="pid", key_content="title"
        )


def test_tree_items_with_broken_parents_fail() -> None:
    with pytest.raises(ColumnTreeError):
        column_transformer(
            [{"id": "1", "title": "A"}], key_id="id", key_pid="pid", key_content="title"
        )


def test_key_id_requires_pid_and_content_keys() -> None:
    with pytest.raises(ValueError, match="key_pid"):
        column_transformer([{"id": "1"}], key_id="id")


def test_empty_items_fail() -> None:
    with pytest.raises(ValueError):
        column_transformer([])
