"""
patchflow HTTP server — exposes the compiler to editor tooling.

Start with:
    python -m patchflow.server.main

Or via uvicorn directly:
    uvicorn patchflow.server.main:app --port 3001 --reload
"""
from __future__ import annotations

from dotenv import load_dotenv

# Load .env before settings are read so PATCHFLOW_* overrides apply.
load_dotenv()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from patchflow import __version__  # noqa: E402
from patchflow.server.routes.compile_routes import router  # noqa: E402

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title="patchflow compiler API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    from patchflow.config import CompilerSettings

    settings = CompilerSettings.from_env()
    settings.configure_logging()
    uvicorn.run(
        "patchflow.server.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
    )
