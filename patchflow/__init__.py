"""
patchflow — flattens hierarchical dataflow patches into ordered, typed node
lists and emits target program text from them.
"""

from patchflow.compiler import (
    EmitResult,
    ErrorKind,
    Liveness,
    TransformError,
    TranspilationUnit,
    load_project,
    transform,
    transpile,
)

__version__ = "0.1.0"

__all__ = [
    "transform",
    "transpile",
    "load_project",
    "Liveness",
    "TranspilationUnit",
    "EmitResult",
    "TransformError",
    "ErrorKind",
    "__version__",
]
