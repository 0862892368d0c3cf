import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forma.config import settings
from forma.core.errors import register_error_handlers
from forma.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from forma.dependencies import engine
from forma.routers import forecast
from forma.services.forecast_cache import InMemoryForecastCache

logger = logging.getLogger("forma")


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create database tables on startup if they don't exist."""
    from forma.models.base import Base
    # Import all models so Base.metadata is populated
    import forma.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created env=%s", settings.app_env)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# One forecast cache for the process; invalidated explicitly by callers
app.state.forecast_cache = InMemoryForecastCache()

# Middleware: last added = outermost
app.add_middleware(RequestIDMiddleware)
app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)

register_error_handlers(app)

app.include_router(forecast.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.app_name, "version": "0.1.0"}
