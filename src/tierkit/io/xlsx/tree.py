from collections import defaultdict, deque
from collections.abc import Generator, Sequence
from typing import Any

from loguru import logger

from .conf import ROOT_ID
from .spec import SpecColumn, SpecHeaderRegion


class ColumnTreeError(ValueError):
    """Column definitions do not form a forest under the root sentinel."""


################################################################################
# #region TreeBuilding


def build_column_forest(
    columns: Sequence[SpecColumn], root_id: str = ROOT_ID
) -> list[SpecColumn]:
    """
    Link a flat list of columns into an ordered forest.

    Children are attached to ``SpecColumn.children`` in input order; the
    returned list holds the columns whose ``pid`` equals ``root_id``.

    Args:
        columns (Sequence[SpecColumn]): Flat column definitions.
        root_id (str): Sentinel parent id of top-level columns.

    Returns:
        list[SpecColumn]: Top-level columns, in input order.

    Raises:
        ColumnTreeError: On duplicate ids, an id equal to ``root_id``, a parent
            id that matches no column, or columns whose parent chain is cyclic
            (and therefore never reaches ``root_id``).
    """
    dict_columns_by_id: dict[str, SpecColumn] = {}
    for _col in columns:
        if _col.id == root_id:
            raise ColumnTreeError(
                f"Column id {_col.id!r} collides with the root sentinel."
            )
        if _col.id in dict_columns_by_id:
            raise ColumnTreeError(f"Duplicate column id: {_col.id!r}")
        dict_columns_by_id[_col.id] = _col

    dict_children_by_pid: dict[str, list[SpecColumn]] = defaultdict(list)
    for _col in columns:
        if _col.pid != root_id and _col.pid not in dict_columns_by_id:
            raise ColumnTreeError(
                f"Column {_col.id!r} references unknown parent {_col.pid!r}."
            )
        dict_children_by_pid[_col.pid].append(_col)

    for _col in columns:
        _col.children = list(dict_children_by_pid.get(_col.id, ()))
        _col.has_children = bool(_col.children)

    l_forest = list(dict_children_by_pid.get(root_id, ()))

    # Every reachable node has a parent chain ending at the root, so this walk
    # terminates; anything left over sits on a cycle.
    set_reached: set[str] = set()
    l_stack = list(l_forest)
    while l_stack:
        cls_node = l_stack.pop()
        set_reached.add(cls_node.id)
        l_stack.extend(cls_node.children)

    if len(set_reached) != len(dict_columns_by_id):
        l_ids_cyclic = [_id for _id in dict_columns_by_id if _id not in set_reached]
        raise ColumnTreeError(
            f"Cyclic parent chain, columns never reach root {root_id!r}: {l_ids_cyclic}"
        )
    return l_forest


# #endregion
################################################################################
# #region Traversal


def iter_columns_depth_first(
    forest: Sequence[SpecColumn],
) -> Generator[SpecColumn, Any, None]:
    """Yield every node, parents before children, siblings left to right."""
    l_stack = list(reversed(forest))
    while l_stack:
        cls_node = l_stack.pop()
        yield cls_node
        l_stack.extend(reversed(cls_node.children))


def count_leaf_columns(node: SpecColumn) -> int:
    if not node.children:
        return 1
    return sum(count_leaf_columns(_child) for _child in node.children)


def collect_leaf_columns(forest: Sequence[SpecColumn]) -> list[SpecColumn]:
    """Leaves in depth-first order, which is also increasing ``col`` order."""
    return [_node for _node in iter_columns_depth_first(forest) if not _node.children]


# #endregion
################################################################################
# #region Geometry


def annotate_column_levels(forest: Sequence[SpecColumn]) -> tuple[int, int]:
    """
    First pass: depth, row, child flag, row span and grid totals.

    Returns:
        tuple[int, int]: ``(total_row, total_col)`` of the header grid.
    """
    n_step_max = -1
    l_queue: deque[tuple[SpecColumn, int]] = deque((_n, 0) for _n in forest)
    while l_queue:
        cls_node, n_step = l_queue.popleft()
        cls_node.tree_step = n_step
        cls_node.row = n_step
        cls_node.has_children = bool(cls_node.children)
        n_step_max = max(n_step_max, n_step)
        l_queue.extend((_child, n_step + 1) for _child in cls_node.children)

    n_total_row = n_step_max + 1
    n_total_col = sum(count_leaf_columns(_node) for _node in forest)

    for _node in iter_columns_depth_first(forest):
        _node.span_row = 0 if _node.has_children else n_total_row - _node.tree_step
        _node.total_row = n_total_row
        _node.total_col = n_total_col
    return n_total_row, n_total_col


def annotate_column_positions(forest: Sequence[SpecColumn]) -> None:
    """
    Second pass, breadth first: left column and column span of every node.

    A node starts at its parent's column plus the leaf counts of its elder
    siblings; top-level nodes start from column 0.
    """
    l_level: deque[tuple[int, Sequence[SpecColumn]]] = deque([(0, forest)])
    while l_level:
        n_col_parent, l_siblings = l_level.popleft()
        n_col_cursor = n_col_parent
        for _node in l_siblings:
            n_leaves_ = count_leaf_columns(_node)
            _node.col = n_col_cursor
            _node.span_col = 0 if n_leaves_ <= 1 else n_leaves_
            n_col_cursor += n_leaves_
            if _node.children:
                l_level.append((_node.col, _node.children))


def resolve_column_forest(forest: Sequence[SpecColumn]) -> list[SpecColumn]:
    if not forest:
        raise ValueError("Column forest cannot be empty.")
    n_total_row, n_total_col = annotate_column_levels(forest)
    annotate_column_positions(forest)
    logger.debug(
        f"Resolved header grid: {n_total_row} row(s) x {n_total_col} column(s)"
    )
    return list(forest)


def plan_header_regions(forest: Sequence[SpecColumn]) -> list[SpecHeaderRegion]:
    """
    Cell rectangles of all header nodes, in depth-first order.

    For a resolved forest the regions tile the ``total_row x total_col`` grid
    without overlap.
    """
    return [
        SpecHeaderRegion(
            row_start=_node.row,
            row_end=_node.row + max(_node.span_row, 1) - 1,
            col_start=_node.col,
            col_end=_node.col + max(_node.span_col, 1) - 1,
            text=_node.content or "",
        )
        for _node in iter_columns_depth_first(forest)
    ]


# #endregion
################################################################################
