from collections.abc import Mapping, Sequence
from typing import Any

from .conf import ROOT_ID
from .spec import SpecColumn
from .tree import ColumnTreeError, build_column_forest, resolve_column_forest


def _read_item_value(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def _to_optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def create_flat_columns(items: Sequence[str | Mapping[str, str]]) -> list[SpecColumn]:
    """
    Single-row column definitions from headings.

    Strings become header-only columns. Mappings contribute one column per
    ``{heading: field_name}`` entry, numbered cumulatively across all mappings.
    """
    l_columns: list[SpecColumn] = []
    if isinstance(items[0], Mapping):
        for _mapping in items:
            if not isinstance(_mapping, Mapping):
                raise ColumnTreeError("Cannot mix heading strings and heading mappings.")
            for _heading, _field_name in _mapping.items():
                l_columns.append(
                    SpecColumn(
                        id=str(len(l_columns) + 1),
                        pid=ROOT_ID,
                        content=str(_heading),
                        field_name=_to_optional_str(_field_name),
                    )
                )
        return l_columns

    for _heading in items:
        if isinstance(_heading, Mapping):
            raise ColumnTreeError("Cannot mix heading strings and heading mappings.")
        l_columns.append(
            SpecColumn(id=str(len(l_columns) + 1), pid=ROOT_ID, content=str(_heading))
        )
    return l_columns


def create_tree_columns(
    items: Sequence[Any],
    *,
    key_id: str,
    key_pid: str,
    key_content: str,
    key_field_name: str | None = None,
) -> list[SpecColumn]:
    """Column definitions read from arbitrary mappings or objects by key name."""
    l_columns: list[SpecColumn] = []
    for _item in items:
        c_id_ = _to_optional_str(_read_item_value(_item, key_id))
        if c_id_ is None:
            raise ValueError(f"Column item has no {key_id!r} value: {_item!r}")
        l_columns.append(
            SpecColumn(
                id=c_id_,
                pid=_to_optional_str(_read_item_value(_item, key_pid)) or "",
                content=_to_optional_str(_read_item_value(_item, key_content)) or "",
                field_name=(
                    _to_optional_str(_read_item_value(_item, key_field_name))
                    if key_field_name is not None
                    else None
                ),
            )
        )
    return l_columns


def column_transformer(
    items: Sequence[Any],
    key_id: str | None = None,
    key_pid: str | None = None,
    key_content: str | None = None,
    key_field_name: str | None = None,
    root_id: str = ROOT_ID,
) -> list[SpecColumn]:
    """
    Turn user column definitions into a resolved column forest.

    Without key names, ``items`` is a list of heading strings (header only) or
    a list of ``{heading: field_name}`` mappings, producing a single header row.
    With ``key_id``/``key_pid``/``key_content`` (and optionally
    ``key_field_name``), every item is a node of a multi-level header read
    from a mapping or object attributes, rooted at ``root_id``.

    Examples:
        >>> forest = column_transformer([{"Name": "name"}, {"Age": "age"}])
        >>> [(c.content, c.col) for c in forest]
        [('Name', 0), ('Age', 1)]
    """
    if not items:
        raise ValueError("Column items cannot be empty.")

    if key_id is None:
        l_columns = create_flat_columns(items)
        c_root_id = ROOT_ID
    else:
        if key_pid is None or key_content is None:
            raise ValueError(
                "key_pid and key_content are required together with key_id."
            )
        l_columns = create_tree_columns(
            items,
            key_id=key_id,
            key_pid=key_pid,
            key_content=key_content,
            key_field_name=key_field_name,
        )
        c_root_id = root_id

    return resolve_column_forest(build_column_forest(l_columns, c_root_id))
