import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import models  # noqa: F401  (registers tables on Base)
from .context import PracticeContext
from .database import Base, engine
from .routes.sessions import router as sessions_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(context: Optional[PracticeContext] = None, create_tables: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        if create_tables:
            try:
                Base.metadata.create_all(bind=engine, checkfirst=True)
                logger.info("Database tables created successfully")
            except Exception as e:
                # Another worker may have created them first
                if "already exists" in str(e):
                    logger.info("Database tables already exist (created by another worker)")
                else:
                    logger.error(f"Failed to create database tables: {e}")
                    raise

        app.state.context = context or PracticeContext()
        app.state.context.start()
        yield
        logger.info("Application shutting down...")
        await app.state.context.dispose()

    app = FastAPI(title="Pawbook API", version="1.0.0", lifespan=lifespan)
    app.include_router(sessions_router)
    return app


app = create_app()
