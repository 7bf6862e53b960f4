"""
Compiler settings read from the environment.

A ``.env`` file in the working directory is loaded first when python-dotenv
finds one, so local overrides need no manual ``export``:

    PATCHFLOW_BACKENDS=cpp,js
    PATCHFLOW_LIVENESS=debug
    PATCHFLOW_LOG_LEVEL=DEBUG
    PATCHFLOW_STRICT=1
    PATCHFLOW_PORT=3001
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from patchflow.compiler.liveness import Liveness

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CompilerSettings:
    backends: Tuple[str, ...] = ("js",)
    liveness: Liveness = Liveness.NONE
    log_level: str = "WARNING"
    strict: bool = False
    port: int = 3001
    globals: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> "CompilerSettings":
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        backends = tuple(
            b.strip() for b in environ.get("PATCHFLOW_BACKENDS", "js").split(",") if b.strip()
        )
        # PATCHFLOW_GLOBAL_USERNAME=alice → {"USERNAME": "alice"}
        prefix = "PATCHFLOW_GLOBAL_"
        globals_ = {k[len(prefix):]: v for k, v in sorted(environ.items()) if k.startswith(prefix)}

        return cls(
            backends=backends or ("js",),
            liveness=Liveness.parse(environ.get("PATCHFLOW_LIVENESS", "none")),
            log_level=environ.get("PATCHFLOW_LOG_LEVEL", "WARNING").upper(),
            strict=environ.get("PATCHFLOW_STRICT", "").lower() in _TRUTHY,
            port=int(environ.get("PATCHFLOW_PORT", "3001")),
            globals=globals_,
        )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level, logging.WARNING),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


__all__ = ["CompilerSettings"]
