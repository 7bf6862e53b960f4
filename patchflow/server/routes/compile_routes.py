"""
Compile REST routes.

All routes are mounted under /api by main.py.  Transform errors are reported
as HTTP 422 with the error's tagged form:

    {"detail": {"kind": "CYCLE_DETECTED", "payload": {...}, "message": "..."}}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from patchflow.compiler import transform, transpile
from patchflow.compiler.errors import TransformError
from patchflow.compiler.liveness import Liveness
from patchflow.config import CompilerSettings

logger = logging.getLogger(__name__)

router = APIRouter()


class TransformBody(BaseModel):
    project: Dict[str, Any]
    entry: str
    liveness: Liveness = Liveness.NONE
    globals: Dict[str, str] = Field(default_factory=dict)
    backends: Optional[List[str]] = None
    strict: bool = False


class TranspileBody(BaseModel):
    project: Dict[str, Any]
    entry: str
    backend: str = "js"
    liveness: Liveness = Liveness.NONE
    globals: Dict[str, str] = Field(default_factory=dict)
    strict: bool = False


def _settings() -> CompilerSettings:
    return CompilerSettings.from_env(dotenv=False)


def _unprocessable(exc: TransformError) -> HTTPException:
    return HTTPException(status_code=422, detail=exc.to_dict())


# ── POST /transform ───────────────────────────────────────────────────────────

@router.post("/transform")
async def post_transform(body: TransformBody) -> Dict[str, Any]:
    settings = _settings()
    try:
        unit = transform(
            body.project,
            body.entry,
            mode=body.liveness,
            globals={**settings.globals, **body.globals},
            backends=body.backends or settings.backends,
            strict=body.strict or settings.strict,
        )
    except TransformError as exc:
        logger.info(f"POST /transform '{body.entry}' failed: {exc.kind.value}")
        raise _unprocessable(exc)
    return unit.to_dict()


# ── POST /transpile ───────────────────────────────────────────────────────────

@router.post("/transpile")
async def post_transpile(body: TranspileBody) -> Dict[str, Any]:
    settings = _settings()
    try:
        result = transpile(
            body.project,
            body.entry,
            backend=body.backend,
            mode=body.liveness,
            globals={**settings.globals, **body.globals},
            strict=body.strict or settings.strict,
        )
    except TransformError as exc:
        logger.info(f"POST /transpile '{body.entry}' failed: {exc.kind.value}")
        raise _unprocessable(exc)
    return {
        "source": result.source,
        "nodeIdsMap": {str(k): v for k, v in sorted(result.node_ids_map.items())},
        "pinsAffectedByErrorRaisers": {
            str(k): sorted(v) for k, v in sorted(result.pins_affected_by_error_raisers.items())
        },
    }
