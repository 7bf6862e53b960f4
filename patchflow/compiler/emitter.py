"""
patchflow compiler — Source Emitter
===================================
Converts a TranspilationUnit into program text for one backend, plus the
two maps calling tooling needs alongside it.

Output structure
----------------
    <header>                       banner, runtime prelude
    <impl section>                 one block per implementation id, sorted
    <node section>                 one entry per node, in topology order
    <footer>                       topology table / transaction loop

All ordering comes from the unit, so the same unit always yields the same
text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from .ir import TranspilationUnit
from .templates import get_backend, splice_globals

logger = logging.getLogger(__name__)


@dataclass
class EmitResult:
    source: str
    node_ids_map: Dict[int, str] = field(default_factory=dict)
    pins_affected_by_error_raisers: Dict[int, FrozenSet[str]] = field(default_factory=dict)
    unit: Optional[TranspilationUnit] = None


def emit(unit: TranspilationUnit, backend: str = "js") -> EmitResult:
    """
    Emit a complete program for ``backend`` from a TranspilationUnit.

    Raises:
        UnsupportedBackend: no template is registered for ``backend``.
    """
    tmpl = get_backend(backend)
    w = tmpl.writer()

    tmpl.header(unit, w)
    w.blank()

    if unit.impl:
        w.comment("── Implementations " + "─" * 40)
        for impl_id in sorted(unit.impl):
            tmpl.emit_impl(impl_id, splice_globals(unit.impl[impl_id], unit.globals), w)
            w.blank()

    w.comment("── Nodes " + "─" * 50)
    for node in unit.ordered_nodes():
        tmpl.emit_node(node, unit, w)

    tmpl.footer(unit, w)

    lines: List[str] = w.lines()
    logger.debug(f"Emitted {len(lines)} lines of {backend} for {len(unit.topology)} nodes")
    return EmitResult(
        source="\n".join(lines) + "\n",
        node_ids_map=dict(unit.node_ids_map),
        pins_affected_by_error_raisers=dict(unit.pins_affected_by_error_raisers),
        unit=unit,
    )


__all__ = ["EmitResult", "emit"]
