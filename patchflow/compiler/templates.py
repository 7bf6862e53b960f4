"""
patchflow compiler — Backend Code Templates
===========================================
A BackendTemplate turns a TranspilationUnit into program text for one
target runtime.  It provides four emission hooks, called in this order:

  header(unit, writer)
      File banner: project, entry patch, liveness.  Never a timestamp, so
      identical units give byte-identical programs.

  emit_impl(impl_id, source, writer)
      Emitted once per implementation id actually used, with globals already
      spliced into ``source``.

  emit_node(node, unit, writer)
      Emitted once per node, in topology order.

  footer(unit, writer)
      Whatever the runtime needs after the node table.

Adding a new backend
--------------------
1. Subclass BackendTemplate and override the hooks.
2. Register: BACKEND_REGISTRY["mybackend"] = MyBackendTemplate()
The registry key is also the key looked up in each catalog entry's ``impl``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, TYPE_CHECKING

from .errors import UnsupportedBackend

if TYPE_CHECKING:
    from .ir import ResolvedNode, TranspilationUnit


# ── Code writer ───────────────────────────────────────────────────────────────

class CodeWriter:
    """Simple indented string accumulator."""

    def __init__(self, indent: int = 0, comment_prefix: str = "//"):
        self._lines: List[str] = []
        self._indent = indent
        self._comment_prefix = comment_prefix

    def writeln(self, line: str = "") -> "CodeWriter":
        if line:
            self._lines.append("    " * self._indent + line)
        else:
            self._lines.append("")
        return self

    def blank(self) -> "CodeWriter":
        return self.writeln()

    def comment(self, text: str) -> "CodeWriter":
        return self.writeln(f"{self._comment_prefix} {text}")

    def push(self) -> "CodeWriter":
        self._indent += 1
        return self

    def pop(self) -> "CodeWriter":
        self._indent = max(0, self._indent - 1)
        return self

    def extend(self, lines: List[str]) -> "CodeWriter":
        for line in lines:
            self.writeln(line)
        return self

    def lines(self) -> List[str]:
        return self._lines

    def result(self) -> str:
        return "\n".join(self._lines)


# ── Globals ───────────────────────────────────────────────────────────────────

_GLOBAL_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def splice_globals(source: str, globals_: Mapping[str, str]) -> str:
    """Replace ``{{ NAME }}`` with ``globals_[NAME]``; unknown names stay as-is."""
    def _sub(m: "re.Match[str]") -> str:
        name = m.group(1)
        return str(globals_[name]) if name in globals_ else m.group(0)
    return _GLOBAL_RE.sub(_sub, source)


def _safe_ident(impl_id: str) -> str:
    """'acme-dev/pn532-nfc/nfc-uid' → 'acme_dev__pn532_nfc__nfc_uid'."""
    parts = [re.sub(r"[^0-9A-Za-z_]", "_", p) for p in impl_id.split("/")]
    ident = "__".join(parts)
    return f"_{ident}" if ident[:1].isdigit() else ident


def _banner(unit: "TranspilationUnit", writer: CodeWriter, generator: str) -> None:
    writer.comment(f"Generated by patchflow ({generator} backend).")
    writer.comment("Do not edit by hand; re-run the compiler to regenerate.")
    name = unit.globals.get("PROJECT_NAME")
    if name:
        writer.comment(f"Project: {name}")
    writer.comment(f"Liveness: {unit.liveness}")
    writer.comment(f"Nodes: {len(unit.topology)}")


# ── Base template ─────────────────────────────────────────────────────────────

class BackendTemplate:
    """
    Base class — subclass and override the hooks you need.
    All hooks have safe default implementations.
    """

    name = "base"
    comment_prefix = "//"

    def writer(self) -> CodeWriter:
        return CodeWriter(comment_prefix=self.comment_prefix)

    def header(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        _banner(unit, writer, self.name)

    def emit_impl(self, impl_id: str, source: str, writer: CodeWriter) -> None:
        writer.comment(f"impl: {impl_id}")
        writer.extend(source.splitlines())

    def emit_node(self, node: "ResolvedNode", unit: "TranspilationUnit", writer: CodeWriter) -> None:
        writer.comment(f"node {node.id} ({node.impl_id})")

    def footer(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        pass


# ── JavaScript ────────────────────────────────────────────────────────────────

def _js(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


class JavaScriptTemplate(BackendTemplate):
    """
    Each implementation becomes a CommonJS-style module object; each node a
    plain record in the ``nodes`` table the runtime walks in ``topology``
    order.
    """

    name = "js"

    def header(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        _banner(unit, writer, self.name)
        writer.writeln("'use strict';")
        writer.blank()
        writer.writeln("const impl = {};")
        writer.writeln("const nodes = {};")

    def emit_impl(self, impl_id: str, source: str, writer: CodeWriter) -> None:
        writer.comment(f"impl: {impl_id}")
        writer.writeln(f"impl[{_js(impl_id)}] = (function () {{")
        writer.push()
        writer.writeln("const module = { exports: {} };")
        writer.extend(source.splitlines())
        writer.writeln("return module.exports;")
        writer.pop()
        writer.writeln("})();")

    def emit_node(self, node: "ResolvedNode", unit: "TranspilationUnit", writer: CodeWriter) -> None:
        record = node.to_dict()
        affected = unit.pins_affected_by_error_raisers.get(node.id)
        if affected:
            record["errorPins"] = sorted(affected)
        writer.writeln(f"nodes[{node.id}] = {_js(record)};")

    def footer(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        writer.blank()
        writer.writeln(f"const topology = {_js(unit.topology)};")
        writer.writeln(f"const debugIds = {_js({str(k): v for k, v in unit.node_ids_map.items()})};")
        writer.blank()
        writer.writeln("module.exports = { impl, nodes, topology, debugIds };")


# ── C++ ───────────────────────────────────────────────────────────────────────

class CppTemplate(BackendTemplate):
    """
    Each implementation is wrapped in its own namespace; each node gets a
    statically allocated instance, evaluated in topology order by
    ``runTransaction()``.  Error-affected pins are only tracked when the
    program is built with PATCHFLOW_DEBUG or PATCHFLOW_SIMULATION.
    """

    name = "cpp"

    def header(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        _banner(unit, writer, self.name)
        writer.blank()
        writer.writeln("namespace patchflow {")

    def emit_impl(self, impl_id: str, source: str, writer: CodeWriter) -> None:
        ns = _safe_ident(impl_id)
        writer.comment(f"impl: {impl_id}")
        writer.writeln(f"namespace {ns} {{")
        writer.extend(source.splitlines())
        writer.writeln(f"}} // namespace {ns}")

    def emit_node(self, node: "ResolvedNode", unit: "TranspilationUnit", writer: CodeWriter) -> None:
        ns = _safe_ident(node.impl_id)
        writer.writeln(f"{ns}::Node node_{node.id}; // {unit.node_ids_map.get(node.id, node.id)}")

    def footer(self, unit: "TranspilationUnit", writer: CodeWriter) -> None:
        writer.blank()
        writer.writeln("void runTransaction() {")
        writer.push()
        for node in unit.ordered_nodes():
            ns = _safe_ident(node.impl_id)
            affected = unit.pins_affected_by_error_raisers.get(node.id)
            if affected:
                writer.writeln("#if defined(PATCHFLOW_DEBUG) || defined(PATCHFLOW_SIMULATION)")
                for pin in sorted(affected):
                    writer.writeln(f"detail::trackError(&node_{node.id}, \"{pin}\");")
                writer.writeln("#endif")
            writer.writeln(f"{ns}::evaluate(&node_{node.id});")
        writer.pop()
        writer.writeln("}")
        writer.blank()
        writer.writeln("} // namespace patchflow")


# ── Registry ──────────────────────────────────────────────────────────────────

BACKEND_REGISTRY: Dict[str, BackendTemplate] = {
    "js": JavaScriptTemplate(),
    "cpp": CppTemplate(),
}


def get_backend(name: str) -> BackendTemplate:
    """Return the template for ``name``; unknown backends are an error."""
    try:
        return BACKEND_REGISTRY[name]
    except KeyError:
        raise UnsupportedBackend(
            f"No code templates registered for backend '{name}'",
            {"backend": name, "known": sorted(BACKEND_REGISTRY)},
        ) from None


__all__ = [
    "CodeWriter",
    "BackendTemplate",
    "JavaScriptTemplate",
    "CppTemplate",
    "BACKEND_REGISTRY",
    "get_backend",
    "splice_globals",
]
