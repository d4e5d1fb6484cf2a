from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prover_mock.config import Settings
from prover_mock.middleware import add_error_handling_middleware
from prover_mock.routes import health, info, uploads, sessions, snark
from prover_mock.services.prover import Prover
from prover_mock.services.state import ServerState

settings = Settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper()))
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None, prover: Optional[Prover] = None) -> FastAPI:
    """Build an application with its own, empty ServerState."""
    app_settings = app_settings or settings
    state = ServerState(app_settings, prover=prover)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await state.start()
        try:
            yield
        finally:
            await state.stop()

    app = FastAPI(
        title=app_settings.app_name,
        description="Local mock of a remote proving service REST API",
        version=app_settings.app_version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.server = state

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handling middleware
    add_error_handling_middleware(app)

    prefix = app_settings.api_v1_prefix
    app.include_router(health.router, prefix=prefix)
    app.include_router(info.router, prefix=prefix)
    app.include_router(uploads.router, prefix=prefix)
    app.include_router(sessions.router, prefix=prefix)
    app.include_router(snark.router, prefix=prefix)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {"message": "Prover Mock Server", "version": app_settings.app_version}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
