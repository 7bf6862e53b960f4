"""
patchflow compiler — Topological Scheduler
==========================================
Orders the flat node set so that every node comes after all nodes feeding
its inputs.

The walk visits nodes in ascending id order and, for each node, its
predecessors in ascending id order before emitting the node itself.  For an
unchanged graph the result is therefore always the same permutation:

    42 ─► 43        7        →   [7, 42, 43]

Pure nodes may later be merged or moved by an emitter; the scheduler only
promises dependency order.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from .errors import CycleDetected
from .ir import FlatGraph
from .traversal import CycleFound, depth_first_postorder

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, graph: FlatGraph):
        self.graph = graph
        self._preds: Dict[int, List[int]] = graph.predecessors()

    def _upstream(self, node_id: int) -> List[int]:
        return self._preds.get(node_id, [])

    def build(self) -> List[int]:
        """
        Return the topology: all node ids, each after its upstream nodes.

        Raises:
            CycleDetected: the data links form a cycle.
        """
        try:
            order = depth_first_postorder(sorted(self.graph.nodes), self._upstream)
        except CycleFound as exc:
            # the walk runs against the links; report the cycle in data order
            cycle = list(reversed(exc.path))
            raise CycleDetected(
                f"Dependency cycle between nodes {' -> '.join(str(n) for n in cycle)}",
                {"nodeIds": cycle},
            ) from exc
        logger.debug(f"Scheduled {len(order)} nodes")
        return order


def schedule(graph: FlatGraph) -> List[int]:
    return Scheduler(graph).build()


__all__ = ["Scheduler", "schedule"]
