"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scrimboard.config import settings
from scrimboard.api.dependencies import to_http_error
from scrimboard.api.routes.auth import admin_router
from scrimboard.api.routes.auth import router as auth_router
from scrimboard.api.routes.scoring import router as scoring_router
from scrimboard.api.routes.tournaments import router as tournaments_router
from scrimboard.repositories.record_repository import (
    LicenseKeyRepository,
    ScoringPresetRepository,
    TournamentRepository,
    UserRepository,
)
from scrimboard.repositories.store import DuckDBStore
from scrimboard.services.analysis_logger import AnalysisLogger
from scrimboard.services.errors import ScrimboardError
from scrimboard.services.license_service import LicenseService, SessionRegistry
from scrimboard.services.tournament_service import TournamentService
from scrimboard.services.vision_client import get_vision_client

REPO_ROOT = Path(__file__).parent.parent.parent.parent


def resolve_path(path: str) -> Path:
    """Absolute paths as-is; relative paths resolve from the repo root."""
    resolved = Path(path)
    if resolved.is_absolute():
        return resolved
    return REPO_ROOT / path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup: anything already on app.state (tests) is kept
    if not hasattr(app.state, "store"):
        app.state.store = DuckDBStore(resolve_path(settings.database_path))
    store = app.state.store

    if not hasattr(app.state, "license_service"):
        app.state.license_service = LicenseService(
            UserRepository(store),
            LicenseKeyRepository(store),
            salt=settings.license_salt,
            admin_username=settings.admin_username,
            admin_password=settings.admin_password,
        )
    if not hasattr(app.state, "sessions"):
        app.state.sessions = SessionRegistry(settings.session_ttl_seconds)
    if not hasattr(app.state, "vision_client"):
        app.state.vision_client = get_vision_client(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.llm_timeout,
            use_mock=not settings.enable_llm,
        )
    if not hasattr(app.state, "tournament_service"):
        app.state.tournament_service = TournamentService(
            TournamentRepository(store),
            ScoringPresetRepository(store),
            extractor=app.state.vision_client,
            diagnostics=AnalysisLogger(
                output_dir=resolve_path(settings.diagnostics_dir),
                enabled=settings.analysis_diagnostics,
            ),
        )
    yield
    # Shutdown: close the AI client's HTTP connection pool
    await app.state.vision_client.close()


app = FastAPI(
    title="Scrimboard",
    description="Scrim and tournament standings from scoreboard screenshots",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScrimboardError)
async def domain_error_handler(request: Request, exc: ScrimboardError):
    """Domain errors become HTTP errors with the operator-facing message as detail."""
    error = to_http_error(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "scrimboard"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Scrimboard API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# Register routers
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(tournaments_router)
app.include_router(scoring_router)
