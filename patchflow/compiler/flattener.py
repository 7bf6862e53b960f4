"""
patchflow compiler — Graph Flattener
====================================
Inlines patch-typed nodes until only primitives remain, producing one
FlatGraph in a single global id space.

Id assignment
-------------
Nodes of the entry patch keep their ids.  Inlining then proceeds in passes:
each pass expands every patch-typed node currently in the flat graph, in
ascending global id order.  The nodes of an instantiated patch receive
``max_id + 1, max_id + 2, …`` in ascending local id order; a patch-typed
inner node takes an id as well and is expanded by the next pass.

    entry:  100 button   101 AUX   102 NOP   103 led         max_id = 103
    pass 1: 101 AUX → 104 inputBool, 105 NOP, 106 outputBool
            102 NOP → 107 inputBool, 108 outputBool
    pass 2: 105 NOP → 109 inputBool, 110 outputBool

Boundary splicing
-----------------
Terminals of an inlined patch are copied like any other node and become
pass-through nodes at the call site.  A link endpoint ``(instance,
input_41)`` is rewritten to ``(global id of terminal 41, "PIN")``; a literal
property ``input_41`` on the instance moves onto that terminal as ``PIN``.

Links are oriented (output end first) while their patch-local types are
still at hand, so no direction information is lost when endpoints move.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .errors import InvalidProjectFormat
from .ir import FlatGraph, FlatLink, FlatNode
from .project import TERMINAL_PIN, BoundaryRef, Link, LinkEnd, NamedPin, Patch, PinDirection, parse_pin_ref
from .resolver import Primitive, ResolvedPatches, SubPatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Edge:
    src: LinkEnd
    dst: LinkEnd


class FlatteningContext:
    """Owns the id counter and the graph under construction for one run."""

    def __init__(self, resolved: ResolvedPatches):
        self.resolved = resolved
        self.nodes: Dict[int, FlatNode] = {}
        self.edges: List[_Edge] = []
        self.max_id = 0

    def next_id(self) -> int:
        self.max_id += 1
        return self.max_id

    # ── Link orientation ──────────────────────────────────────────────────

    def _direction(self, type_id: str, end: LinkEnd, link: Link) -> Optional[PinDirection]:
        kind = self.resolved.kind_of(type_id)
        if isinstance(kind, SubPatch):
            if isinstance(end.pin, BoundaryRef):
                return end.pin.direction
            raise InvalidProjectFormat(
                f"Link {link.id}: pin '{end.pin}' of patch node {end.node_id} "
                f"({kind.path}) is not a boundary reference",
                {"link": link.id, "nodeId": end.node_id, "pinKey": str(end.pin)},
            )
        direction = kind.pin_direction(str(end.pin))
        # only types without a signature may use undeclared pins
        if direction is None and (kind.entry is not None or kind.is_terminal):
            raise InvalidProjectFormat(
                f"Link {link.id}: node {end.node_id} ({kind.type_id}) has no pin '{end.pin}'",
                {"link": link.id, "nodeId": end.node_id, "pinKey": str(end.pin)},
            )
        return direction

    def _orient(self, link: Link, type_of: Callable[[int], str]) -> Tuple[LinkEnd, LinkEnd]:
        a, b = link.ends
        da = self._direction(type_of(a.node_id), a, link)
        db = self._direction(type_of(b.node_id), b, link)

        if da is not None and da == db:
            raise InvalidProjectFormat(
                f"Link {link.id} connects two {da.value} pins ({a} and {b})",
                {"link": link.id, "direction": da.value},
            )
        if da is PinDirection.INPUT or db is PinDirection.OUTPUT:
            return b, a
        # a is an output, b is an input, or the document order decides
        return a, b

    def _add_links(self, patch: Patch, id_map: Dict[int, int]) -> None:
        type_of = lambda local_id: patch.nodes[local_id].type  # noqa: E731
        for link in patch.sorted_links():
            src, dst = self._orient(link, type_of)
            self.edges.append(_Edge(
                LinkEnd(id_map[src.node_id], src.pin),
                LinkEnd(id_map[dst.node_id], dst.pin),
            ))

    # ── Inlining ──────────────────────────────────────────────────────────

    def _terminal_for(self, patch: Patch, ref: BoundaryRef, id_map: Dict[int, int], instance_id: int) -> int:
        node = patch.nodes.get(ref.terminal_id)
        kind = None if node is None else self.resolved.kind_of(node.type)
        if not (isinstance(kind, Primitive) and kind.is_terminal and kind.terminal.direction is ref.direction):
            raise InvalidProjectFormat(
                f"Pin '{ref.key}' of patch node {instance_id} does not name an "
                f"{ref.direction.value} terminal of '{patch.path}'",
                {"nodeId": instance_id, "pinKey": ref.key, "patch": patch.path},
            )
        return id_map[ref.terminal_id]

    def _inline(self, instance_id: int) -> None:
        instance = self.nodes.pop(instance_id)
        kind = self.resolved.kind_of(instance.type)
        patch = self.resolved.patch(kind.path)

        id_map: Dict[int, int] = {}
        for inner in patch.sorted_nodes():
            gid = self.next_id()
            id_map[inner.id] = gid
            self.nodes[gid] = FlatNode(
                id=gid,
                type=inner.type,
                properties=dict(inner.properties),
                arity_level=inner.arity_level,
                debug_id=f"{instance.debug_id}~{inner.id}",
            )
        logger.debug(
            f"Inlined node {instance_id} ({patch.path}) as "
            f"{min(id_map.values(), default='-')}..{max(id_map.values(), default='-')}"
        )

        for key, value in sorted(instance.properties.items()):
            ref = parse_pin_ref(key)
            if isinstance(ref, BoundaryRef):
                terminal_id = self._terminal_for(patch, ref, id_map, instance_id)
                self.nodes[terminal_id].properties[TERMINAL_PIN] = value
            else:
                logger.debug(f"Ignoring property '{key}' of patch node {instance_id}")

        def splice(end: LinkEnd) -> LinkEnd:
            if end.node_id != instance_id:
                return end
            return LinkEnd(self._terminal_for(patch, end.pin, id_map, instance_id), NamedPin(TERMINAL_PIN))

        self.edges = [_Edge(splice(e.src), splice(e.dst)) for e in self.edges]
        self._add_links(patch, id_map)

    def _pending_instances(self) -> List[int]:
        return sorted(
            nid for nid, node in self.nodes.items()
            if isinstance(self.resolved.kind_of(node.type), SubPatch)
        )

    # ── Public ────────────────────────────────────────────────────────────

    def run(self) -> FlatGraph:
        entry = self.resolved.entry
        for node in entry.sorted_nodes():
            self.nodes[node.id] = FlatNode(
                id=node.id,
                type=node.type,
                properties=dict(node.properties),
                arity_level=node.arity_level,
                debug_id=str(node.id),
            )
        self.max_id = max(entry.nodes, default=0)
        self._add_links(entry, {nid: nid for nid in entry.nodes})

        passes = 0
        pending = self._pending_instances()
        while pending:
            passes += 1
            for instance_id in pending:
                self._inline(instance_id)
            pending = self._pending_instances()

        links = {
            FlatLink(e.src.node_id, str(e.src.pin), e.dst.node_id, str(e.dst.pin)): None
            for e in self.edges
        }
        logger.debug(
            f"Flattened '{entry.path}' in {passes} passes: "
            f"{len(self.nodes)} nodes, {len(links)} links"
        )
        return FlatGraph(
            nodes={nid: self.nodes[nid] for nid in sorted(self.nodes)},
            links=sorted(links, key=FlatLink.sort_key),
        )


def flatten(resolved: ResolvedPatches) -> FlatGraph:
    """Inline every patch-typed node reachable from the resolved entry patch."""
    return FlatteningContext(resolved).run()


__all__ = ["FlatteningContext", "flatten"]
