"""Builders for project documents used across the test suite."""

from typing import Any, Dict, Iterable, List, Optional, Tuple


def link(link_id, spec: Tuple[int, str, str, int]) -> Dict[str, Any]:
    """link(1, (42, 'valueOut', 'valueIn', 43)) → a link document."""
    node_from, pin_from, pin_to, node_to = spec
    return {
        "id": link_id,
        "pins": [
            {"nodeId": node_from, "pinKey": pin_from},
            {"nodeId": node_to, "pinKey": pin_to},
        ],
    }


def patch(nodes: Dict[int, Any], links: Iterable[Tuple[int, str, str, int]] = ()) -> Dict[str, Any]:
    """
    nodes: local id → type id, or local id → full node dict.
    links: (from, pinFrom, pinTo, to) tuples, numbered from 1.
    """
    node_docs = {}
    for nid, spec in nodes.items():
        if isinstance(spec, str):
            spec = {"type": spec}
        node_docs[str(nid)] = {"id": nid, **spec}
    return {
        "nodes": node_docs,
        "links": {str(i): link(i, l) for i, l in enumerate(links, start=1)},
    }


def pin(direction: str, type_: str = "number", **extra) -> Dict[str, Any]:
    return {"direction": direction, "type": type_, **extra}


def project(patches: Dict[str, Any], node_types: Optional[Dict[str, Any]] = None, name: str = "") -> Dict[str, Any]:
    doc: Dict[str, Any] = {"patches": patches, "nodeTypes": node_types or {}}
    if name:
        doc["name"] = name
    return doc


def topology_with_impl(unit) -> List[Tuple[int, str]]:
    return [(nid, unit.nodes[nid].impl_id) for nid in unit.topology]


def out_links(unit, node_id: int) -> Dict[str, List[Tuple[int, str]]]:
    return {
        pin_key: [(ol.node_id, ol.key) for ol in targets]
        for pin_key, targets in unit.nodes[node_id].out_links.items()
    }
