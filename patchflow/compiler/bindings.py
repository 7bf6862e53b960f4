"""
patchflow compiler — Type & Binding Resolver
============================================
Turns FlatNodes into ResolvedNodes:

  * deduces the data type of every Terminal from the pins it is linked to,
  * merges literal property bindings with the catalog's pin defaults,
  * derives ``out_links`` from the link set,
  * collects the implementation template of every type actually used.

Terminal type deduction
-----------------------
A terminal's type is, in order of preference:
  1. its declared type (catalog pin type, or the type id suffix: inputBool),
  2. the type of a linked non-terminal pin, upstream first,
  3. the type of a linked terminal that is already resolved.
Rules 2 and 3 are applied until nothing changes.  A terminal still untyped
but linked to a primitive pin of unknown type becomes ``any``; one linked
only to other untyped terminals is an authoring error.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ConflictingBinding, UnresolvableTerminalType
from .ir import FlatGraph, FlatLink, FlatNode, OutLink, ResolvedNode
from .project import TERMINAL_PIN, PinSpec
from .resolver import Primitive, ResolvedPatches

logger = logging.getLogger(__name__)

ANY_TYPE = "any"


def _known(type_name: Optional[str]) -> Optional[str]:
    return None if type_name in (None, ANY_TYPE) else type_name


def literal_type(value: Any) -> Optional[str]:
    """Data type name of a literal property value."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


class BindingResolver:

    def __init__(self, resolved: ResolvedPatches, graph: FlatGraph):
        self.resolved = resolved
        self.graph = graph
        self.incoming: Dict[int, List[FlatLink]] = defaultdict(list)
        self.outgoing: Dict[int, List[FlatLink]] = defaultdict(list)
        for link in graph.links:
            self.incoming[link.to_id].append(link)
            self.outgoing[link.from_id].append(link)
        self.terminal_types: Dict[int, Optional[str]] = {}

    def kind(self, node_id: int) -> Primitive:
        return self.resolved.kind_of(self.graph.nodes[node_id].type)

    # ── Terminal types ────────────────────────────────────────────────────

    def _pin_type(self, node_id: int, pin: str) -> Tuple[bool, Optional[str]]:
        """(is_terminal, known type) of a pin at the far end of a link."""
        kind = self.kind(node_id)
        if kind.is_terminal:
            return True, self.terminal_types.get(node_id)
        spec = kind.pin_spec(pin)
        return False, None if spec is None else _known(spec.type)

    def _candidates(self, node_id: int) -> Iterable[Tuple[bool, Optional[str]]]:
        for link in self.incoming[node_id]:
            yield self._pin_type(link.from_id, link.from_pin)
        for link in self.outgoing[node_id]:
            yield self._pin_type(link.to_id, link.to_pin)

    def _deduce(self, node_id: int) -> Optional[str]:
        found = [c for c in self._candidates(node_id) if c[1] is not None]
        for is_terminal, type_name in found:
            if not is_terminal:
                return type_name
        return found[0][1] if found else None

    def resolve_terminal_types(self) -> None:
        for nid, node in self.graph.nodes.items():
            kind = self.kind(nid)
            if kind.is_terminal:
                declared = None
                if kind.entry is not None and TERMINAL_PIN in kind.entry.pins:
                    declared = _known(kind.entry.pins[TERMINAL_PIN].type)
                self.terminal_types[nid] = declared or kind.terminal.data_type

        self._settle()

        # next to a primitive pin that is itself untyped: accept anything
        for nid in sorted(self.terminal_types):
            if self.terminal_types[nid] is None and any(
                not is_terminal for is_terminal, _ in self._candidates(nid)
            ):
                self.terminal_types[nid] = ANY_TYPE
        self._settle()

        for nid in sorted(self.terminal_types):
            if self.terminal_types[nid] is not None:
                continue
            node = self.graph.nodes[nid]
            if self.incoming[nid] or self.outgoing[nid]:
                raise UnresolvableTerminalType(
                    f"Cannot deduce the data type of terminal {nid} ({node.type}): "
                    f"it is only linked to other untyped terminals",
                    {"nodeId": nid, "type": node.type, "debugId": node.debug_id},
                )
            if TERMINAL_PIN in node.properties:
                self.terminal_types[nid] = literal_type(node.properties[TERMINAL_PIN])

    def _settle(self) -> None:
        """Apply the deduction rules until no terminal changes."""
        changed = True
        while changed:
            changed = False
            for nid in sorted(self.terminal_types):
                if self.terminal_types[nid] is not None:
                    continue
                deduced = self._deduce(nid)
                if deduced is not None:
                    self.terminal_types[nid] = deduced
                    changed = True

    # ── Per-node records ──────────────────────────────────────────────────

    def _input_pins(self, node: FlatNode, kind: Primitive) -> List[PinSpec]:
        if kind.entry is None:
            return []
        pins: List[PinSpec] = []
        for spec in kind.entry.inputs():
            pins.append(spec)
            if spec.variadic:
                for i in range(1, node.arity_level):
                    pins.append(PinSpec(
                        key=f"{spec.key}-${i}",
                        direction=spec.direction,
                        type=spec.type,
                        default=spec.default,
                        variadic=True,
                    ))
        return pins

    def _check_conflicts(self, node: FlatNode) -> None:
        linked = {l.to_pin for l in self.incoming[node.id]}
        for key in sorted(node.properties):
            if key in linked:
                raise ConflictingBinding(
                    f"Pin '{key}' of node {node.id} has both a literal value and an incoming link",
                    {"nodeId": node.id, "pinKey": key, "debugId": node.debug_id},
                )

    def _out_links(self, node_id: int) -> Dict[str, List[OutLink]]:
        grouped: Dict[str, List[OutLink]] = defaultdict(list)
        for link in self.outgoing[node_id]:
            grouped[link.from_pin].append(OutLink(link.to_id, link.to_pin))
        return {
            pin: sorted(grouped[pin], key=lambda ol: (ol.node_id, ol.key))
            for pin in sorted(grouped)
        }

    def resolve_node(self, node: FlatNode) -> ResolvedNode:
        kind = self.kind(node.id)
        self._check_conflicts(node)
        linked = {l.to_pin for l in self.incoming[node.id]}

        input_types: Dict[str, str] = {}
        props: Dict[str, Any] = {}
        if kind.is_terminal:
            if TERMINAL_PIN in linked or TERMINAL_PIN in node.properties:
                input_types[TERMINAL_PIN] = self.terminal_types[node.id] or ANY_TYPE
        else:
            for spec in self._input_pins(node, kind):
                input_types[spec.key] = spec.type
                if spec.has_default and spec.key not in linked:
                    props[spec.key] = spec.default
        props.update(node.properties)

        return ResolvedNode(
            id=node.id,
            impl_id=kind.type_id,
            pure=kind.entry.pure if kind.entry is not None else False,
            input_types=input_types,
            out_links=self._out_links(node.id),
            props=props,
        )

    def resolve(self) -> Dict[int, ResolvedNode]:
        self.resolve_terminal_types()
        return {nid: self.resolve_node(node) for nid, node in sorted(self.graph.nodes.items())}


def collect_impl(
    resolved: ResolvedPatches,
    nodes: Dict[int, ResolvedNode],
    backends: Sequence[str],
) -> Dict[str, str]:
    """implementation id → first template found in ``backends`` order."""
    impl: Dict[str, str] = {}
    for impl_id in sorted({n.impl_id for n in nodes.values()}):
        entry = resolved.kind_of(impl_id).entry
        if entry is None:
            continue
        for backend in backends:
            if backend in entry.impl:
                impl[impl_id] = entry.impl[backend]
                break
        else:
            if entry.impl:
                logger.debug(f"No implementation of '{impl_id}' for backends {list(backends)}")
    return impl


def resolve_bindings(resolved: ResolvedPatches, graph: FlatGraph) -> Dict[int, ResolvedNode]:
    """
    Build the ResolvedNode record of every flat node.

    Raises:
        UnresolvableTerminalType: a linked terminal has no deducible type.
        ConflictingBinding:       a pin is bound both literally and by a link.
    """
    return BindingResolver(resolved, graph).resolve()


__all__ = ["BindingResolver", "resolve_bindings", "collect_impl", "literal_type"]
