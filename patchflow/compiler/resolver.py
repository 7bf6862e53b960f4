"""
patchflow compiler — Patch Resolver
===================================
Resolves every node type id reachable from an entry patch, once, into a
closed variant:

    Primitive(type_id, entry, terminal)   catalog entry and/or builtin Terminal
    SubPatch(path)                        another patch of the project

and checks that patch nesting is acyclic.  Later stages dispatch on the
variant instead of re-inspecting type ids.

Resolution order for a type id
------------------------------
  1. Equal to a patch path       → SubPatch
  2. Catalog entry or Terminal   → Primitive
  3. Anything else               → Primitive without entry (warning),
                                   or TypeNotFound when ``strict``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .errors import CyclicPatchReference, PatchNotFound, TypeNotFound
from .project import (
    TERMINAL_PIN,
    Patch,
    PinDirection,
    PinSpec,
    Project,
    TerminalInfo,
    TypeEntry,
    terminal_info,
)
from .traversal import CycleFound, depth_first_postorder

logger = logging.getLogger(__name__)

_VARIADIC_KEY_RE = re.compile(r"^(.+)-\$(\d+)$")


# ── Node kinds ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Primitive:
    type_id: str
    entry: Optional[TypeEntry] = None
    terminal: Optional[TerminalInfo] = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal is not None

    def pin_spec(self, key: str) -> Optional[PinSpec]:
        """Look up a pin of this type, following variadic expansions ("ADD-$2")."""
        if self.entry is not None:
            spec = self.entry.pins.get(key)
            if spec is not None:
                return spec
            m = _VARIADIC_KEY_RE.match(key)
            if m is not None:
                base = self.entry.pins.get(m.group(1))
                if base is not None and base.variadic:
                    return base
        if self.terminal is not None and key == TERMINAL_PIN:
            return PinSpec(
                key=TERMINAL_PIN,
                direction=self.terminal.inner_pin_direction,
                type=self.terminal.data_type or "any",
            )
        return None

    def pin_direction(self, key: str) -> Optional[PinDirection]:
        spec = self.pin_spec(key)
        return None if spec is None else spec.direction


@dataclass(frozen=True)
class SubPatch:
    path: str


NodeKind = Union[Primitive, SubPatch]


# ── Result ───────────────────────────────────────────────────────────────────

@dataclass
class ResolvedPatches:
    entry: Patch
    # closure of patches reachable from the entry, dependencies first
    patches: Dict[str, Patch] = field(default_factory=dict)
    kinds: Dict[str, NodeKind] = field(default_factory=dict)

    def kind_of(self, type_id: str) -> NodeKind:
        return self.kinds[type_id]

    def patch(self, path: str) -> Patch:
        return self.patches[path]


# ── Resolver ─────────────────────────────────────────────────────────────────

def _classify(project: Project, type_id: str, strict: bool) -> NodeKind:
    if type_id in project.patches:
        return SubPatch(type_id)

    entry = project.catalog.get(type_id)
    terminal = terminal_info(type_id)
    if entry is None and terminal is None:
        if strict:
            raise TypeNotFound(
                f"Node type '{type_id}' is neither a patch nor a catalog entry",
                {"type": type_id},
            )
        logger.warning(f"Unknown node type '{type_id}': treated as a primitive without signature")
    return Primitive(type_id, entry=entry, terminal=terminal)


def resolve_patches(project: Project, entry_path: str, strict: bool = False) -> ResolvedPatches:
    """
    Resolve the entry patch and the transitive closure of its node types.

    Raises:
        PatchNotFound:        ``entry_path`` is not a patch of the project.
        CyclicPatchReference: a patch transitively instantiates itself.
        TypeNotFound:         unknown type id and ``strict`` is set.
    """
    entry = project.get_patch(entry_path)
    if entry is None:
        raise PatchNotFound(f"Patch '{entry_path}' not found", {"path": entry_path})

    kinds: Dict[str, NodeKind] = {}

    def sub_patches(path: str) -> List[str]:
        deps = set()
        for node in project.patches[path].nodes.values():
            kind = kinds.get(node.type)
            if kind is None:
                kind = kinds[node.type] = _classify(project, node.type, strict)
            if isinstance(kind, SubPatch):
                deps.add(kind.path)
        return sorted(deps)

    try:
        order = depth_first_postorder([entry_path], sub_patches)
    except CycleFound as exc:
        raise CyclicPatchReference(
            f"Patch '{exc.path[0]}' instantiates itself: {exc}",
            {"cycle": list(exc.path)},
        ) from exc

    logger.debug(f"Resolved '{entry_path}': {len(order)} patches, {len(kinds)} node types")
    return ResolvedPatches(
        entry=entry,
        patches={path: project.patches[path] for path in order},
        kinds=kinds,
    )


__all__ = ["Primitive", "SubPatch", "NodeKind", "ResolvedPatches", "resolve_patches"]
