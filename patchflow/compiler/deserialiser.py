"""
patchflow compiler — JSON Deserialiser
======================================
Converts a serialised project document (file path or pre-parsed dict) into
a validated, immutable Project.

Pipeline
--------
    project.json  →  [schema.validate]            →  dict (structurally sound)
    dict          →  [deserialiser.load_project]  →  Project
    Project       →  [compiler.transform]         →  TranspilationUnit

Pin keys of link endpoints are parsed into PinRefs here, once; no later
stage looks at the ``input_<id>`` / ``output_<id>`` spelling again.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from .errors import InvalidProjectFormat
from .project import (
    Link,
    LinkEnd,
    Node,
    Patch,
    PinDirection,
    PinSpec,
    Project,
    TypeCatalog,
    TypeEntry,
    parse_pin_ref,
)
from .schema import SchemaError, validate

logger = logging.getLogger(__name__)


def _items(container: Any):
    if isinstance(container, dict):
        return list(container.items())
    return [(item["id"], item) for item in container]


# ── Catalog ──────────────────────────────────────────────────────────────────

def _parse_pin(key: str, spec: Dict[str, Any]) -> PinSpec:
    kwargs: Dict[str, Any] = {}
    if "default" in spec:
        kwargs["default"] = spec["default"]
    return PinSpec(
        key=spec.get("key", key),
        direction=PinDirection(spec["direction"]),
        type=spec.get("type", "any"),
        variadic=spec.get("variadic", False),
        **kwargs,
    )


def _parse_type_entry(key: str, spec: Dict[str, Any]) -> TypeEntry:
    pins = {pin_key: _parse_pin(pin_key, pin) for pin_key, pin in spec.get("pins", {}).items()}
    return TypeEntry(
        key=key,
        pins=pins,
        pure=spec.get("pure", False),
        raises=spec.get("raises", False),
        impl=dict(spec.get("impl", {})),
    )


def parse_catalog(node_types: Dict[str, Any]) -> TypeCatalog:
    return TypeCatalog({key: _parse_type_entry(key, spec) for key, spec in node_types.items()})


# ── Patches ──────────────────────────────────────────────────────────────────

def _parse_node(key: Any, spec: Dict[str, Any]) -> Node:
    return Node(
        id=int(key),
        type=spec.get("type", spec.get("typeId")),
        properties=dict(spec.get("properties", {})),
        arity_level=int(spec.get("arityLevel", 1)),
    )


def _parse_link(key: Any, spec: Dict[str, Any]) -> Link:
    a, b = spec["pins"]
    return Link(
        id=str(key),
        ends=(
            LinkEnd(int(a["nodeId"]), parse_pin_ref(a["pinKey"])),
            LinkEnd(int(b["nodeId"]), parse_pin_ref(b["pinKey"])),
        ),
    )


def _parse_patch(path: str, spec: Dict[str, Any]) -> Patch:
    nodes = {}
    for key, node_spec in _items(spec.get("nodes", {})):
        node = _parse_node(key, node_spec)
        nodes[node.id] = node
    links = {}
    for key, link_spec in _items(spec.get("links", {})):
        link = _parse_link(key, link_spec)
        links[link.id] = link
    patch_id = spec.get("id")
    return Patch(
        path=path,
        nodes=nodes,
        links=links,
        id=None if patch_id is None else str(patch_id),
    )


# ── Public entry point ────────────────────────────────────────────────────────

def project_from_dict(data: Dict[str, Any]) -> Project:
    """Validate a parsed project document and build a Project from it."""
    try:
        validate(data)
    except SchemaError as exc:
        raise InvalidProjectFormat(str(exc), {"reason": str(exc)}) from exc

    patches = {path: _parse_patch(path, spec) for path, spec in data.get("patches", {}).items()}
    catalog = parse_catalog(data.get("nodeTypes", {}))
    logger.debug(f"Loaded project with {len(patches)} patches and {len(catalog)} node types")
    return Project(patches=patches, catalog=catalog, name=data.get("name", ""))


def load_project(source: Union[str, Path, Dict[str, Any]]) -> Project:
    """
    Load a project from a JSON file path or a pre-parsed dict.

    Raises:
        FileNotFoundError: If a path is given and the file does not exist.
        InvalidProjectFormat: If the document is not JSON or fails validation.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        with path.open(encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise InvalidProjectFormat(
                    f"{path}: not a JSON document ({exc})",
                    {"reason": "NOT_A_JSON", "path": str(path)},
                ) from exc
    else:
        data = source
    return project_from_dict(data)


__all__ = ["load_project", "project_from_dict", "parse_catalog"]
