"""
patchflow compiler
==================
Flattens a hierarchical patch project into one ordered, typed node list and
emits program text from it.

Pipeline:
    Project        →  [resolver]    →  ResolvedPatches
    ResolvedPatches →  [flattener]  →  FlatGraph
    FlatGraph      →  [bindings]    →  ResolvedNodes + impl
    FlatGraph      →  [scheduler]   →  topology
    ResolvedNodes  →  [liveness]    →  error-affected pins
                                    =  TranspilationUnit
    TranspilationUnit → [emitter]   →  source str + id maps

Public API
----------
    from patchflow.compiler import transform, transpile

    unit = transform(project, "@/main")
    print(unit.topology)

    result = transpile(project, "@/main", backend="cpp", mode="debug")
    print(result.source)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .bindings import collect_impl, resolve_bindings
from .deserialiser import load_project, project_from_dict
from .emitter import EmitResult, emit
from .errors import ErrorKind, TransformError, UnexpectedError
from .flattener import flatten
from .ir import TranspilationUnit
from .liveness import Liveness, pins_affected_by_error_raisers
from .project import Project
from .resolver import resolve_patches
from .scheduler import schedule

logger = logging.getLogger(__name__)

ProjectLike = Union[Project, Dict[str, Any]]


def _as_project(project: ProjectLike) -> Project:
    if isinstance(project, Project):
        return project
    return project_from_dict(project)


def _transform(
    project: ProjectLike,
    entry_path: str,
    mode: Union[Liveness, str],
    globals: Optional[Mapping[str, str]],
    backends: Sequence[str],
    strict: bool,
) -> TranspilationUnit:
    project = _as_project(project)
    liveness = Liveness.parse(mode)

    resolved = resolve_patches(project, entry_path, strict=strict)
    graph    = flatten(resolved)
    nodes    = resolve_bindings(resolved, graph)
    topology = schedule(graph)
    affected = pins_affected_by_error_raisers(nodes, topology, resolved, liveness)

    return TranspilationUnit(
        nodes=nodes,
        topology=topology,
        impl=collect_impl(resolved, nodes, backends),
        node_ids_map={nid: node.debug_id for nid, node in graph.nodes.items()},
        pins_affected_by_error_raisers=affected,
        liveness=liveness.value,
        globals=dict(globals or {}),
    )


def transform(
    project: ProjectLike,
    entry_path: str,
    mode: Union[Liveness, str] = Liveness.NONE,
    globals: Optional[Mapping[str, str]] = None,
    backends: Sequence[str] = ("js",),
    strict: bool = False,
) -> TranspilationUnit:
    """
    Flatten, type and schedule the patch at ``entry_path``.

    Args:
        project:    A Project, or a project document dict (validated first).
        entry_path: Path of the patch to compile.
        mode:       Liveness mode controlling error-raiser analysis.
        globals:    Constants spliced into templates as ``{{ NAME }}``.
        backends:   Backend preference used to pick each ``impl`` template.
        strict:     Fail on node types that resolve to nothing.

    Returns:
        A new TranspilationUnit.

    Raises:
        TransformError: Always one of its kinds; unexpected faults are
                        wrapped in UnexpectedError.
    """
    try:
        unit = _transform(project, entry_path, mode, globals, tuple(backends), strict)
    except TransformError as exc:
        logger.debug(f"Transform of '{entry_path}' failed: {exc.kind.value}")
        raise
    except Exception as exc:
        logger.exception(f"Unexpected failure while transforming '{entry_path}'")
        raise UnexpectedError.wrap(exc) from exc
    logger.info(f"Transformed '{entry_path}': {len(unit.topology)} nodes")
    return unit


def transpile(
    project: ProjectLike,
    entry_path: str,
    backend: str = "js",
    mode: Union[Liveness, str] = Liveness.NONE,
    globals: Optional[Mapping[str, str]] = None,
    strict: bool = False,
) -> EmitResult:
    """
    Transform ``entry_path`` and emit program text for ``backend``.

    Returns:
        EmitResult with the source text, node-id → debug-id map and the
        error-affected pin map.
    """
    unit = transform(project, entry_path, mode, globals, backends=(backend,), strict=strict)
    try:
        return emit(unit, backend)
    except TransformError:
        raise
    except Exception as exc:
        logger.exception(f"Unexpected failure while emitting '{entry_path}' for {backend}")
        raise UnexpectedError.wrap(exc) from exc


__all__ = [
    "transform",
    "transpile",
    "load_project",
    "project_from_dict",
    "Liveness",
    "TranspilationUnit",
    "EmitResult",
    "TransformError",
    "ErrorKind",
]
