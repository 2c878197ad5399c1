# main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from edupath.config import build_sqlalchemy_db_url, settings
from edupath.database import Base, engine
import edupath.models  # noqa: F401  # ensure all models are registered
from edupath.routers import health, recommendations
from edupath.services.llm_client import LLMClient, build_llm_client


def create_app(llm_client: LLMClient | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One model client per process, shared by reference across requests.
        owned = None
        if llm_client is not None:
            app.state.llm_client = llm_client
        else:
            owned = build_llm_client(settings)
            app.state.llm_client = owned
        try:
            yield
        finally:
            if owned is not None:
                await owned.close()

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoints
    application.include_router(health.router)
    application.include_router(recommendations.router)

    # Avoid accidental schema changes in shared MySQL databases.
    # For local/test sqlite usage, auto-create ORM tables is still convenient.
    if build_sqlalchemy_db_url(settings).startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    return application


app = create_app()
