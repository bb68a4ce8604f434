"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signote.api.routes import actions, goals, notes, refresh, settings
from signote.storage import init_database


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize services on startup."""
    await init_database()
    yield


app = FastAPI(
    title="Signal Notes API",
    description="Meeting notes in, ranked action items out",
    version="0.1.0",
    lifespan=lifespan,
)

# Allow CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(notes.router, prefix="/api/notes", tags=["notes"])
app.include_router(actions.router, prefix="/api/actions", tags=["actions"])
app.include_router(goals.router, prefix="/api/macro-goals", tags=["macro-goals"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(refresh.router, prefix="/api/refresh", tags=["refresh"])
