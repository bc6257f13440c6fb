"""Parent/child tree helpers shared by branches, divisions and positions."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def would_create_cycle(
    node_id: int,
    new_parent_id: Optional[int],
    get_parent_id: Callable[[int], Optional[int]],
) -> bool:
    """Walk ancestors of ``new_parent_id`` looking for ``node_id``.

    A repeated ancestor (already corrupt data) is reported as a cycle too.
    """
    seen: set[int] = set()
    current = new_parent_id
    while current is not None:
        if current == node_id or current in seen:
            return True
        seen.add(current)
        current = get_parent_id(current)
    return False


def compute_path(parent_path: Optional[str], code: str) -> str:
    return f"{parent_path}.{code}" if parent_path else code


def compute_level(parent_level: Optional[int]) -> int:
    return int(parent_level) + 1 if parent_level else 1


def build_tree(
    nodes: Iterable[T],
    *,
    id_of: Callable[[T], int],
    parent_of: Callable[[T], Optional[int]],
    to_dict: Callable[[T], Dict[str, Any]],
    children_key: str = "children",
    root_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Nest a flat node list.

    Nodes whose parent is not part of ``nodes`` become roots, unless
    ``root_id`` is given in which case only that subtree is returned.
    """
    items = list(nodes)
    by_id = {id_of(n): to_dict(n) for n in items}
    for d in by_id.values():
        d[children_key] = []

    roots: List[Dict[str, Any]] = []
    for n in items:
        parent = parent_of(n)
        if parent is not None and parent in by_id:
            by_id[parent][children_key].append(by_id[id_of(n)])
        else:
            roots.append(by_id[id_of(n)])

    if root_id is not None:
        return [by_id[root_id]] if root_id in by_id else []
    return roots
