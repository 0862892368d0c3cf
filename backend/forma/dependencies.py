from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forma.config import settings
from forma.services.forecast_cache import ForecastCache
from forma.services.forecast_service import ForecastService
from forma.services.sql_readers import SqlBalanceReader, SqlSettingsReader, SqlTransactionReader

engine = create_async_engine(settings.database_url)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


def get_forecast_cache(request: Request) -> ForecastCache:
    """The app-wide cache, created once at startup."""
    return request.app.state.forecast_cache


def get_forecast_service(
    db: AsyncSession = Depends(get_db),
    cache: ForecastCache = Depends(get_forecast_cache),
) -> ForecastService:
    return ForecastService(
        SqlTransactionReader(db),
        SqlSettingsReader(db),
        SqlBalanceReader(db),
        cache=cache,
        lookback_days=settings.forecast_lookback_days,
        max_range_days=settings.forecast_max_range_days,
        outlier_multiplier=settings.forecast_outlier_multiplier,
    )
