"""
patchflow compiler — Intermediate Representation
================================================
Data produced by the pipeline stages:

    Project ─► [flattener] ─► FlatGraph ─► [bindings] ─► ResolvedNodes
                                              ↓
                               [scheduler] ─► topology
                                              ↓
                               [liveness]  ─► TranspilationUnit ─► [emitter]

Design goals:
  - No references back into the Project; a unit outlives it freely.
  - Serialisable (``to_dict`` / ``to_json``) with a stable key order so two
    runs over the same project produce byte-identical output.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


# ── Flat graph (flattener output) ────────────────────────────────────────────

@dataclass
class FlatNode:
    id: int
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    arity_level: int = 1
    debug_id: str = ""


@dataclass(frozen=True)
class FlatLink:
    from_id: int
    from_pin: str
    to_id: int
    to_pin: str

    def sort_key(self) -> Tuple[int, str, int, str]:
        return (self.from_id, self.from_pin, self.to_id, self.to_pin)


@dataclass
class FlatGraph:
    nodes: Dict[int, FlatNode] = field(default_factory=dict)
    links: List[FlatLink] = field(default_factory=list)

    # ── Convenience queries ────────────────────────────────────────────────

    def predecessors(self) -> Dict[int, List[int]]:
        """node id → sorted distinct upstream node ids."""
        preds: Dict[int, set] = {nid: set() for nid in self.nodes}
        for link in self.links:
            preds.setdefault(link.to_id, set()).add(link.from_id)
        return {nid: sorted(ids) for nid, ids in preds.items()}


# ── Resolved node (bindings output) ──────────────────────────────────────────

@dataclass(frozen=True)
class OutLink:
    node_id: int
    key: str

    def to_dict(self) -> Dict[str, Any]:
        return {"nodeId": self.node_id, "key": self.key}


@dataclass
class ResolvedNode:
    id: int
    impl_id: str
    pure: bool = False
    input_types: Dict[str, str] = field(default_factory=dict)
    out_links: Dict[str, List[OutLink]] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "implId": self.impl_id,
            "pure": self.pure,
            "inputTypes": dict(self.input_types),
            "outLinks": {
                pin: [ol.to_dict() for ol in links]
                for pin, links in self.out_links.items()
            },
            "props": dict(self.props),
        }


# ── Transpilation unit (pipeline output) ─────────────────────────────────────

@dataclass
class TranspilationUnit:
    nodes: Dict[int, ResolvedNode] = field(default_factory=dict)
    topology: List[int] = field(default_factory=list)
    # implementation id → template text actually used
    impl: Dict[str, str] = field(default_factory=dict)
    # global node id → debug id ("101~42")
    node_ids_map: Dict[int, str] = field(default_factory=dict)
    # global node id → pins reachable from an error raiser
    pins_affected_by_error_raisers: Dict[int, FrozenSet[str]] = field(default_factory=dict)
    liveness: str = "none"
    globals: Dict[str, str] = field(default_factory=dict)

    def ordered_nodes(self) -> List[ResolvedNode]:
        return [self.nodes[nid] for nid in self.topology]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": {str(nid): self.nodes[nid].to_dict() for nid in sorted(self.nodes)},
            "topology": list(self.topology),
            "impl": dict(self.impl),
            "nodeIdsMap": {str(nid): dbg for nid, dbg in sorted(self.node_ids_map.items())},
            "pinsAffectedByErrorRaisers": {
                str(nid): sorted(pins)
                for nid, pins in sorted(self.pins_affected_by_error_raisers.items())
            },
            "liveness": self.liveness,
            "globals": dict(self.globals),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


__all__ = [
    "FlatNode",
    "FlatLink",
    "FlatGraph",
    "OutLink",
    "ResolvedNode",
    "TranspilationUnit",
]
