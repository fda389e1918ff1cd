"""Main FastAPI application and server startup."""

import uvicorn
from fastapi import FastAPI

from memory_engine import __version__
from memory_engine.config.settings import load_settings
from memory_engine.telemetry import configure_logging

from .memory import router as memory_router


app = FastAPI(
    title="Memory Relevance Engine API",
    description="Scoring, ranking, context assembly and analytics for assistant memories",
    version=__version__,
)

app.include_router(memory_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Configure logging from settings."""
    configure_logging(load_settings().log_level)


@app.get("/")
async def root():
    return {"message": "Memory Relevance Engine API", "version": __version__}


@app.get("/health")
async def health():
    """Liveness check; the store is checked per request."""
    return {"status": "ok", "version": __version__}


def run():
    """Run the development server."""
    uvicorn.run("memory_engine.api.main:app", host="0.0.0.0", port=8000, reload=True)


if __name__ == "__main__":
    run()
