"""
patchflow compiler — Project JSON Schema + Validator
====================================================
Defines the canonical serialisation format for patchflow projects and
provides a lightweight validator that runs without any third-party JSON
Schema library.

Canonical JSON format
---------------------

    {
      "name": "blink",                                  // project label (str, optional)
      "patches": {
        "@/main": {                                     // patch path (str key, required)
          "nodes": {
            "42": {                                     // local id (int-like key)
              "id":         42,                         // optional, must match the key
              "type":       "core/add100",              // catalog id or patch path ("typeId" accepted)
              "properties": { "valueIn": 5 },           // literal bindings (dict, optional)
              "arityLevel": 1                           // variadic arity (int >= 1, optional)
            }
          },
          "links": {
            "1": {
              "pins": [                                 // exactly two endpoints
                { "nodeId": 42, "pinKey": "valueOut" },
                { "nodeId": 43, "pinKey": "valueIn" }
              ]
            }
          }
        }
      },
      "nodeTypes": {
        "core/add100": {
          "pure":   true,                               // bool, optional
          "raises": false,                              // error raiser flag, optional
          "pins": {
            "valueIn":  { "direction": "input",  "type": "number", "default": 0 },
            "valueOut": { "direction": "output", "type": "number" }
          },
          "impl": { "js": "...", "cpp": "..." }         // backend → template text
        }
      }
    }

``nodes`` and ``links`` may also be given as JSON lists of objects carrying
their own ``id``.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Union


# ── Validation helpers ────────────────────────────────────────────────────────

_DECIMAL_RE = re.compile(r"[0-9]+")


class SchemaError(ValueError):
    """Raised when project JSON fails structural validation."""


PIN_DIRECTIONS = frozenset({"input", "output"})


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys: List[str], context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def is_int_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and _DECIMAL_RE.fullmatch(value) is not None


def _entries(container: Any, context: str) -> List[tuple]:
    """Return (key, item) pairs for a dict- or list-shaped collection."""
    if isinstance(container, dict):
        return list(container.items())
    _require(isinstance(container, list), f"{context} must be an object or a list")
    pairs = []
    for i, item in enumerate(container):
        _require(isinstance(item, dict), f"{context}[{i}]: each entry must be a JSON object")
        _require_keys(item, ["id"], f"{context}[{i}]")
        pairs.append((item["id"], item))
    return pairs


# ── Section validators ───────────────────────────────────────────────────────

def _validate_node_type(key: str, spec: Any) -> None:
    ctx = f"nodeTypes['{key}']"
    _require(isinstance(spec, dict), f"{ctx}: must be a JSON object")
    for flag in ("pure", "raises"):
        if flag in spec:
            _require(isinstance(spec[flag], bool), f"{ctx}.{flag} must be a boolean")

    pins = spec.get("pins", {})
    _require(isinstance(pins, dict), f"{ctx}.pins must be an object")
    for pin_key, pin in pins.items():
        pctx = f"{ctx}.pins['{pin_key}']"
        _require(isinstance(pin, dict), f"{pctx}: must be a JSON object")
        _require_keys(pin, ["direction"], pctx)
        _require(
            pin["direction"] in PIN_DIRECTIONS,
            f"{pctx}.direction must be one of {sorted(PIN_DIRECTIONS)}",
        )
        if "type" in pin:
            _require(isinstance(pin["type"], str), f"{pctx}.type must be a string")
        if "variadic" in pin:
            _require(isinstance(pin["variadic"], bool), f"{pctx}.variadic must be a boolean")

    impl = spec.get("impl", {})
    _require(isinstance(impl, dict), f"{ctx}.impl must be an object")
    for backend, text in impl.items():
        _require(isinstance(text, str), f"{ctx}.impl['{backend}'] must be a string")


def _validate_patch(path: str, patch: Any) -> None:
    ctx = f"patches['{path}']"
    _require(isinstance(patch, dict), f"{ctx}: must be a JSON object")

    node_ids: set[int] = set()
    for key, node in _entries(patch.get("nodes", {}), f"{ctx}.nodes"):
        nctx = f"{ctx}.nodes['{key}']"
        _require(isinstance(node, dict), f"{nctx}: each node must be a JSON object")
        _require(is_int_like(key), f"{nctx}: node ids must be integers")
        if "id" in node:
            _require(is_int_like(node["id"]), f"{nctx}.id must be an integer")
            _require(int(node["id"]) == int(key), f"{nctx}.id does not match its key")
        _require("type" in node or "typeId" in node, f"{nctx}: missing required field 'type'")
        type_id = node.get("type", node.get("typeId"))
        _require(isinstance(type_id, str) and type_id != "", f"{nctx}.type must be a non-empty string")
        if "properties" in node:
            _require(isinstance(node["properties"], dict), f"{nctx}.properties must be an object")
        if "arityLevel" in node:
            _require(
                is_int_like(node["arityLevel"]) and int(node["arityLevel"]) >= 1,
                f"{nctx}.arityLevel must be an integer >= 1",
            )
        _require(int(key) not in node_ids, f"{nctx}: duplicate node id '{key}'")
        node_ids.add(int(key))

    for key, link in _entries(patch.get("links", {}), f"{ctx}.links"):
        lctx = f"{ctx}.links['{key}']"
        _require(isinstance(link, dict), f"{lctx}: each link must be a JSON object")
        _require_keys(link, ["pins"], lctx)
        pins = link["pins"]
        _require(
            isinstance(pins, list) and len(pins) == 2,
            f"{lctx}.pins must be a list of exactly two endpoints",
        )
        for i, end in enumerate(pins):
            ectx = f"{lctx}.pins[{i}]"
            _require(isinstance(end, dict), f"{ectx}: must be a JSON object")
            _require_keys(end, ["nodeId", "pinKey"], ectx)
            _require(is_int_like(end["nodeId"]), f"{ectx}.nodeId must be an integer")
            _require(isinstance(end["pinKey"], str), f"{ectx}.pinKey must be a string")
            _require(
                int(end["nodeId"]) in node_ids,
                f"{ectx}: nodeId '{end['nodeId']}' not found in nodes",
            )


# ── Public validator ─────────────────────────────────────────────────────────

def validate(data: Dict[str, Any]) -> None:
    """
    Validate a parsed project JSON dict.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "project JSON must be a JSON object at the top level")

    if "name" in data:
        _require(isinstance(data["name"], str), "name must be a string")

    patches = data.get("patches", {})
    _require(isinstance(patches, dict), "patches must be an object keyed by patch path")
    for path, patch in patches.items():
        _validate_patch(path, patch)

    node_types = data.get("nodeTypes", {})
    _require(isinstance(node_types, dict), "nodeTypes must be an object keyed by type id")
    for key, spec in node_types.items():
        _validate_node_type(key, spec)


def validate_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and validate a project JSON file.

    Returns:
        The parsed dict on success.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        SchemaError: If the project structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    validate(data)
    return data


__all__ = ["SchemaError", "validate", "validate_file", "is_int_like"]
