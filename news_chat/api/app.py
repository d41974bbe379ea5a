from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from news_chat import __version__
from news_chat.api.models import HealthResponse
from news_chat.api.routes.chat import router as chat_router
from news_chat.api.routes.sessions import router as sessions_router
from news_chat.api.websocket import router as websocket_router
from news_chat.config import Config, get_config
from news_chat.system import NewsChatSystem


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the system once and make sure the collection exists
    if app.state.system is None:
        app.state.system = NewsChatSystem(config=app.state.config)
    app.state.system.initialize()

    yield  # Server is running and handling requests


def create_app(
    system: Optional[NewsChatSystem] = None,
    config: Optional[Config] = None
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or (system.config if system is not None else get_config())

    app = FastAPI(
        title="News Chat API",
        description="Conversational question answering over recent news articles",
        version=__version__,
        lifespan=lifespan
    )
    app.state.config = config
    app.state.system = system

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(chat_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(websocket_router)

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat()
        )

    return app
