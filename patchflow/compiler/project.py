"""
patchflow compiler — Project Model
==================================
The validated, in-memory form of a project document.  Everything in here is
read-only for the duration of a transform run.

    Project
      ├── patches:  path → Patch
      │               ├── nodes: local id → Node
      │               └── links: link id  → Link (two LinkEnds)
      └── catalog:  type id → TypeEntry (pins, purity, error raiser, impl)

Link endpoints address pins through a PinRef:

    NamedPin("valueIn")          a pin of the node's own type signature
    BoundaryRef(INPUT, 41)       the reserved form "input_41": the Terminal
                                 node 41 inside the instantiated patch

The reserved form is parsed exactly once, when the document is loaded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union


# ── Pins ─────────────────────────────────────────────────────────────────────

class PinDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"

    @property
    def opposite(self) -> "PinDirection":
        return PinDirection.OUTPUT if self is PinDirection.INPUT else PinDirection.INPUT


_UNSET = object()


@dataclass(frozen=True)
class PinSpec:
    key: str
    direction: PinDirection
    type: str = "any"
    default: Any = _UNSET
    variadic: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _UNSET


# ── Type catalog ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TypeEntry:
    key: str
    pins: Dict[str, PinSpec] = field(default_factory=dict)
    pure: bool = False
    raises: bool = False
    # backend name → source template text
    impl: Dict[str, str] = field(default_factory=dict)

    def inputs(self) -> Iterator[PinSpec]:
        return (p for p in self.pins.values() if p.direction is PinDirection.INPUT)

    def outputs(self) -> Iterator[PinSpec]:
        return (p for p in self.pins.values() if p.direction is PinDirection.OUTPUT)


@dataclass(frozen=True)
class TypeCatalog:
    entries: Dict[str, TypeEntry] = field(default_factory=dict)

    def get(self, type_id: str) -> Optional[TypeEntry]:
        return self.entries.get(type_id)

    def __contains__(self, type_id: str) -> bool:
        return type_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)


# ── Terminals ────────────────────────────────────────────────────────────────

TERMINAL_PIN = "PIN"

_TERMINAL_RE = re.compile(r"^(input|output)(?:[-_]?([A-Za-z]+))?$")

TERMINAL_DATA_TYPES: Dict[str, str] = {
    "bool": "bool",
    "boolean": "bool",
    "number": "number",
    "pulse": "pulse",
    "string": "string",
    "byte": "byte",
}


@dataclass(frozen=True)
class TerminalInfo:
    """What a terminal type id says about itself."""
    direction: PinDirection        # boundary side: INPUT terminals feed the patch
    data_type: Optional[str]       # None → generic, must be deduced

    @property
    def inner_pin_direction(self) -> PinDirection:
        """Direction of PIN as seen from inside the terminal's own patch."""
        return self.direction.opposite


def terminal_info(type_id: str) -> Optional[TerminalInfo]:
    """Return TerminalInfo for a terminal type id, or None for anything else."""
    basename = type_id.rsplit("/", 1)[-1]
    m = _TERMINAL_RE.match(basename)
    if m is None:
        return None
    suffix = m.group(2)
    if suffix is None:
        data_type = None
    else:
        data_type = TERMINAL_DATA_TYPES.get(suffix.lower())
        if data_type is None:
            # "inputCapture" and friends are ordinary primitives
            return None
    return TerminalInfo(direction=PinDirection(m.group(1)), data_type=data_type)


# ── Pin references ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NamedPin:
    key: str

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class BoundaryRef:
    direction: PinDirection
    terminal_id: int

    @property
    def key(self) -> str:
        return f"{self.direction.value}_{self.terminal_id}"

    def __str__(self) -> str:
        return self.key


PinRef = Union[NamedPin, BoundaryRef]

_BOUNDARY_RE = re.compile(r"^(input|output)_(\d+)$")
_DECIMAL_RE = re.compile(r"[0-9]+")


def parse_pin_ref(key: str) -> PinRef:
    """Parse a raw pin key; ``input_41`` / ``output_42`` become BoundaryRefs."""
    m = _BOUNDARY_RE.match(key)
    if m is None:
        return NamedPin(key)
    return BoundaryRef(PinDirection(m.group(1)), int(m.group(2)))


# ── Graph ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Node:
    id: int
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    arity_level: int = 1


@dataclass(frozen=True)
class LinkEnd:
    node_id: int
    pin: PinRef

    def __str__(self) -> str:
        return f"{self.node_id}.{self.pin}"


@dataclass(frozen=True)
class Link:
    id: str
    ends: Tuple[LinkEnd, LinkEnd]


@dataclass(frozen=True)
class Patch:
    path: str
    nodes: Dict[int, Node] = field(default_factory=dict)
    links: Dict[str, Link] = field(default_factory=dict)
    id: Optional[str] = None

    def sorted_nodes(self) -> list[Node]:
        return [self.nodes[k] for k in sorted(self.nodes)]

    def sorted_links(self) -> list[Link]:
        return [self.links[k] for k in sorted(self.links, key=_link_sort_key)]


def _link_sort_key(link_id: str) -> Tuple[int, Union[int, str]]:
    # numeric ids in numeric order, then everything else lexically
    return (0, int(link_id)) if _DECIMAL_RE.fullmatch(link_id) else (1, link_id)


@dataclass(frozen=True)
class Project:
    patches: Dict[str, Patch] = field(default_factory=dict)
    catalog: TypeCatalog = field(default_factory=TypeCatalog)
    name: str = ""

    def get_patch(self, path: str) -> Optional[Patch]:
        return self.patches.get(path)


__all__ = [
    "PinDirection",
    "PinSpec",
    "TypeEntry",
    "TypeCatalog",
    "TERMINAL_PIN",
    "TerminalInfo",
    "terminal_info",
    "NamedPin",
    "BoundaryRef",
    "PinRef",
    "parse_pin_ref",
    "Node",
    "LinkEnd",
    "Link",
    "Patch",
    "Project",
]
