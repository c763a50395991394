import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from routes.auth_route import router as auth_router
from routes.realtime_ws import router as realtime_router
from routes.session_route import router as session_router
from services.file_preview import FilePreviewGenerator
from services.openai.provider import OpenAIInferenceProvider
from services.orchestration.agent_activity import AgentActivityBoard
from services.orchestration.file_ingestion import FileIngestionPipeline
from services.orchestration.interfaces import InferenceProvider
from services.orchestration.narration import NarrationState
from services.orchestration.session_state import SessionStateContainer
from services.orchestration.task_registry import DetachedTaskRegistry
from services.orchestration.turn_orchestrator import TurnOrchestrator
from services.session_store import SessionStore
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


async def _close_client(client) -> None:
    """Close the OpenAI client if it exposes a close/aclose method."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception:
        # Shutdown errors must not mask the original exit reason.
        LOGGER.warning("Failed to close OpenAI client", exc_info=True)


def build_lifespan(config: AppConfig, provider: Optional[InferenceProvider] = None):
    """
    Build the lifespan manager that initializes:
      - the SQLite database at DATABASE_DIR/scholarflow.db (kept across restarts)
      - the session store, restoring the remembered account
      - the OpenAI async client and the agent provider (unless one is injected)
      - the live session state, agent board, narration state and turn orchestrator
    and attaches them to `app.state`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_initializer = AsyncDatabaseInitializer(config.database_dir or None)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        app.state.config = config

        session_store = SessionStore(db_initializer)
        await session_store.restore_account()
        app.state.session_store = session_store

        openai_client = None
        active_provider = provider
        if active_provider is None:
            if not config.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY environment variable is not set")
            try:
                openai_client = AsyncOpenAI(api_key=config.openai_api_key)
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
            active_provider = OpenAIInferenceProvider(openai_client, config)
        app.state.openai_client = openai_client
        app.state.provider = active_provider

        session_state = SessionStateContainer(discard_stale_writes=config.discard_stale_writes)
        activity = AgentActivityBoard()
        tasks = DetachedTaskRegistry()
        app.state.session_state = session_state
        app.state.tasks = tasks
        app.state.orchestrator = TurnOrchestrator(
            session_store,
            active_provider,
            session_state,
            activity=activity,
            narration=NarrationState(enabled=config.narration_enabled),
            tasks=tasks,
        )
        app.state.ingestion = FileIngestionPipeline(
            session_store,
            active_provider,
            session_state,
            activity=activity,
            previews=FilePreviewGenerator(),
        )
        LOGGER.info("ScholarFlow ready (database=%s)", db_initializer.db_path)

        try:
            yield
        finally:
            await tasks.drain()
            if openai_client is not None:
                await _close_client(openai_client)

    return lifespan


def create_app(config: Optional[AppConfig] = None, provider: Optional[InferenceProvider] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    config = config or AppConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="ScholarFlow", lifespan=build_lifespan(config, provider))

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies DB initializer and inference provider presence.
        """
        has_db = hasattr(request.app.state, "db_initializer")
        has_provider = getattr(request.app.state, "provider", None) is not None
        return {"ok": True, "db_initialized": has_db, "inference_available": has_provider}

    # Register application routers
    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(realtime_router)

    return app


app = create_app()
