"""
patchflow compiler — Transform Errors
=====================================
Every failure of the pipeline is a TransformError carrying a tagged kind and
a small JSON-friendly payload.  Callers of ``transform()`` / ``transpile()``
only ever see these; anything unanticipated is wrapped in UnexpectedError.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    PATCH_NOT_FOUND = "PATCH_NOT_FOUND"
    CYCLIC_PATCH_REFERENCE = "CYCLIC_PATCH_REFERENCE"
    UNRESOLVABLE_TERMINAL_TYPE = "UNRESOLVABLE_TERMINAL_TYPE"
    CONFLICTING_BINDING = "CONFLICTING_BINDING"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    INVALID_PROJECT_FORMAT = "INVALID_PROJECT_FORMAT"
    TYPE_NOT_FOUND = "TYPE_NOT_FOUND"
    UNSUPPORTED_BACKEND = "UNSUPPORTED_BACKEND"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class TransformError(ValueError):
    """Base class: a pipeline stage aborted on a property of the input graph."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_ERROR

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload: Dict[str, Any] = dict(payload or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "payload": self.payload,
            "message": self.message,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, {self.payload!r})"


class PatchNotFound(TransformError):
    kind = ErrorKind.PATCH_NOT_FOUND


class CyclicPatchReference(TransformError):
    kind = ErrorKind.CYCLIC_PATCH_REFERENCE


class UnresolvableTerminalType(TransformError):
    kind = ErrorKind.UNRESOLVABLE_TERMINAL_TYPE


class ConflictingBinding(TransformError):
    kind = ErrorKind.CONFLICTING_BINDING


class CycleDetected(TransformError):
    kind = ErrorKind.CYCLE_DETECTED


class InvalidProjectFormat(TransformError):
    kind = ErrorKind.INVALID_PROJECT_FORMAT


class TypeNotFound(TransformError):
    kind = ErrorKind.TYPE_NOT_FOUND


class UnsupportedBackend(TransformError):
    kind = ErrorKind.UNSUPPORTED_BACKEND


class UnexpectedError(TransformError):
    kind = ErrorKind.UNEXPECTED_ERROR

    @classmethod
    def wrap(cls, exc: BaseException) -> "UnexpectedError":
        err = cls(f"{type(exc).__name__}: {exc}", {"exception": type(exc).__name__})
        err.__cause__ = exc
        return err


__all__ = [
    "ErrorKind",
    "TransformError",
    "PatchNotFound",
    "CyclicPatchReference",
    "UnresolvableTerminalType",
    "ConflictingBinding",
    "CycleDetected",
    "InvalidProjectFormat",
    "TypeNotFound",
    "UnsupportedBackend",
    "UnexpectedError",
]
