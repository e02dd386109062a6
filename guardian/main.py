from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .infrastructure import models
from .infrastructure.database import engine
from .api import guardian, leaderboards, badges, outcomes
from .tasks.scheduler import scheduler
from .core.config import settings

logger = logging.getLogger(__name__)


def validate_config():
    """Validate critical configuration settings on startup."""
    if settings.LEADERBOARD_DEFAULT_LIMIT > settings.LEADERBOARD_MAX_LIMIT:
        raise RuntimeError(
            f"CONFIG ERROR: LEADERBOARD_DEFAULT_LIMIT ({settings.LEADERBOARD_DEFAULT_LIMIT}) "
            f"exceeds LEADERBOARD_MAX_LIMIT ({settings.LEADERBOARD_MAX_LIMIT})"
        )

    if settings.is_production:
        localhost_origins = [o for o in settings.BACKEND_CORS_ORIGINS if "localhost" in o]
        if localhost_origins:
            logger.warning(
                f"WARNING: CORS origins contain localhost URLs in production: {localhost_origins}. "
                "Consider removing localhost from BACKEND_CORS_ORIGINS env var."
            )

    logger.info(f"Config validation passed. Production mode: {settings.is_production}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan events for startup and shutdown."""
    logger.info("Starting Guardian API...")

    validate_config()
    models.Base.metadata.create_all(bind=engine)

    if settings.SCHEDULER_ENABLED:
        scheduler.start()

    yield

    logger.info("Shutting down Guardian API...")
    scheduler.stop()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(guardian.router, prefix=f"{settings.API_V1_STR}/guardian", tags=["guardian"])
app.include_router(leaderboards.router, prefix=f"{settings.API_V1_STR}/leaderboards", tags=["leaderboards"])
app.include_router(badges.router, prefix=f"{settings.API_V1_STR}/badges", tags=["badges"])
app.include_router(outcomes.router, prefix=settings.API_V1_STR, tags=["outcomes"])

@app.get("/health")
def health_check():
    return {"status": "healthy"}
