"""
patchflow compiler — Depth-first Traversal
==========================================
One three-colour depth-first walk shared by the patch resolver (patch
nesting) and the scheduler (flat data dependencies).  Callers supply the
roots and an edge function; the walk returns vertices in post-order and
reports the first back edge as a cycle.

    WHITE  not visited yet
    GRAY   on the current path
    BLACK  finished, all successors emitted

The walk is iterative so long dependency chains do not hit the interpreter's
recursion limit.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, Iterator, List, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)


class Color(Enum):
    WHITE = 0
    GRAY = 1
    BLACK = 2


class CycleFound(Exception):
    """A back edge was met.  ``path`` lists the cycle, first vertex repeated last."""

    def __init__(self, path: List):
        super().__init__(" -> ".join(str(v) for v in path))
        self.path = path


def depth_first_postorder(
    roots: Iterable[K],
    edges: Callable[[K], Iterable[K]],
) -> List[K]:
    """
    Visit every vertex reachable from ``roots`` and return them in post-order
    (a vertex appears after everything reachable from it).

    Roots and successors are visited in the order they are yielded, so
    callers control tie-breaking by sorting.

    Raises:
        CycleFound: On the first back edge.
    """
    color: Dict[K, Color] = {}
    order: List[K] = []

    for root in roots:
        if color.get(root, Color.WHITE) is not Color.WHITE:
            continue
        color[root] = Color.GRAY
        path: List[K] = [root]
        stack: List[Tuple[K, Iterator[K]]] = [(root, iter(edges(root)))]

        while stack:
            vertex, successors = stack[-1]
            advanced = False
            for nxt in successors:
                state = color.get(nxt, Color.WHITE)
                if state is Color.GRAY:
                    start = path.index(nxt)
                    raise CycleFound(path[start:] + [nxt])
                if state is Color.WHITE:
                    color[nxt] = Color.GRAY
                    path.append(nxt)
                    stack.append((nxt, iter(edges(nxt))))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                path.pop()
                color[vertex] = Color.BLACK
                order.append(vertex)

    return order


__all__ = ["Color", "CycleFound", "depth_first_postorder"]
