"""
patchflow compiler — Liveness / Error-Raiser Analysis
=====================================================
Marks the pins an error can reach.  A node flagged ``raises`` in the catalog
may emit an error on any of its outputs; an error arriving on an input pin
poisons every output of that node, and so on downstream.

The emitter uses the resulting map to wrap only the affected pins in
error-propagation code.  With liveness NONE no such code is generated and
the map is empty.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Set, Union

from .ir import ResolvedNode
from .resolver import ResolvedPatches

logger = logging.getLogger(__name__)


class Liveness(str, Enum):
    NONE = "none"
    DEBUG = "debug"
    SIMULATION = "simulation"

    @classmethod
    def parse(cls, value: Union["Liveness", str, None]) -> "Liveness":
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


def _output_pins(node: ResolvedNode, resolved: ResolvedPatches) -> Set[str]:
    pins = set(node.out_links)
    entry = resolved.kind_of(node.impl_id).entry
    if entry is not None:
        pins.update(p.key for p in entry.outputs())
    return pins


def pins_affected_by_error_raisers(
    nodes: Dict[int, ResolvedNode],
    topology: List[int],
    resolved: ResolvedPatches,
    mode: Union[Liveness, str] = Liveness.NONE,
) -> Dict[int, FrozenSet[str]]:
    """
    Return ``{node id: pins reachable from an error raiser}`` for every node
    with at least one such pin.  Empty when ``mode`` is NONE.
    """
    if Liveness.parse(mode) is Liveness.NONE:
        return {}

    affected: Dict[int, Set[str]] = {}
    poisoned_outputs: Set[tuple] = set()

    for nid in topology:
        node = nodes[nid]
        pins = affected.setdefault(nid, set())
        entry = resolved.kind_of(node.impl_id).entry
        if (entry is not None and entry.raises) or pins:
            pins.update(_output_pins(node, resolved))
            for pin in pins:
                poisoned_outputs.add((nid, pin))
        for pin, targets in node.out_links.items():
            if (nid, pin) not in poisoned_outputs:
                continue
            for target in targets:
                affected.setdefault(target.node_id, set()).add(target.key)

    result = {nid: frozenset(pins) for nid, pins in sorted(affected.items()) if pins}
    logger.debug(f"{len(result)} nodes have pins affected by error raisers")
    return result


__all__ = ["Liveness", "pins_affected_by_error_raisers"]
