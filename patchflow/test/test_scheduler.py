import pytest

from patchflow.compiler.errors import CycleDetected, ErrorKind
from patchflow.compiler.ir import FlatGraph, FlatLink, FlatNode
from patchflow.compiler.scheduler import Scheduler, schedule
from patchflow.compiler.traversal import CycleFound, depth_first_postorder


def _graph(node_ids, links):
    return FlatGraph(
        nodes={nid: FlatNode(id=nid, type="t") for nid in node_ids},
        links=[FlatLink(a, "out", b, "in") for a, b in links],
    )


class TestTraversal:

    def test_postorder(self):
        edges = {"a": ["b", "c"], "b": ["c"], "c": []}
        assert depth_first_postorder(["a"], lambda v: edges[v]) == ["c", "b", "a"]

    def test_each_vertex_once(self):
        edges = {1: [3], 2: [3], 3: []}
        assert depth_first_postorder([1, 2, 3], lambda v: edges[v]) == [3, 1, 2]

    def test_cycle_path(self):
        edges = {1: [2], 2: [3], 3: [2]}
        with pytest.raises(CycleFound) as excinfo:
            depth_first_postorder([1], lambda v: edges[v])
        assert excinfo.value.path == [2, 3, 2]

    def test_long_chain(self):
        """Deeper than the default recursion limit."""
        n = 5000
        order = depth_first_postorder([n], lambda v: [v - 1] if v > 0 else [])
        assert order == list(range(n + 1))


class TestScheduler:

    def test_upstream_first(self):
        graph = _graph([1, 2, 3, 4], [(3, 1), (1, 2), (4, 2)])
        assert schedule(graph) == [3, 1, 4, 2]

    def test_independent_nodes_ascending(self):
        assert Scheduler(_graph([9, 2, 5], [])).build() == [2, 5, 9]

    def test_every_link_respected(self):
        links = [(10, 2), (2, 7), (10, 7), (3, 10)]
        order = schedule(_graph([2, 3, 7, 10], links))
        position = {nid: i for i, nid in enumerate(order)}
        assert all(position[a] < position[b] for a, b in links)
        assert sorted(order) == [2, 3, 7, 10]

    def test_cycle(self):
        with pytest.raises(CycleDetected) as excinfo:
            schedule(_graph([1, 2, 3], [(1, 2), (2, 1)]))

        assert excinfo.value.kind is ErrorKind.CYCLE_DETECTED
        assert excinfo.value.payload == {"nodeIds": [1, 2, 1]}

    def test_self_loop(self):
        with pytest.raises(CycleDetected) as excinfo:
            schedule(_graph([4], [(4, 4)]))
        assert excinfo.value.payload == {"nodeIds": [4, 4]}
