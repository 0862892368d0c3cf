"""Forecast router: daily projection, payment risks and cache control.

Endpoints:
- GET /forecast/{workspace_id}/accounts/{account_id}: Forecast for a date range
- DELETE /forecast/{workspace_id}/accounts/{account_id}/cache: Drop one account's cached forecast
- DELETE /forecast/{workspace_id}/cache: Drop every cached forecast in a workspace
- GET /forecast/cache/stats: Cache size and hit rate

Workspace membership and account ownership are checked upstream.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status

from forma.config import settings
from forma.dependencies import get_forecast_service
from forma.schemas.forecast import CacheStatsRead, CompleteForecastRead
from forma.services.forecast_service import ForecastService
from forma.services.forecast_types import ForecastOptions

router = APIRouter(prefix="/forecast", tags=["forecast"])


@router.get("/cache/stats", response_model=CacheStatsRead)
async def get_cache_stats(
    service: ForecastService = Depends(get_forecast_service),
):
    return CacheStatsRead.from_stats(service.cache_stats())


@router.get("/{workspace_id}/accounts/{account_id}", response_model=CompleteForecastRead)
async def get_forecast(
    workspace_id: uuid.UUID,
    account_id: uuid.UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    minimum_safe_balance: Decimal | None = None,
    safety_buffer_days: int | None = Query(default=None, ge=1, le=30),
    service: ForecastService = Depends(get_forecast_service),
):
    """Daily balance projection and payment risks for one account.

    Defaults to today through the configured number of days ahead.
    """
    start = start_date or service.today()
    end = end_date or start + timedelta(days=settings.forecast_default_days)
    options = ForecastOptions(
        start_date=start,
        end_date=end,
        minimum_safe_balance=minimum_safe_balance,
        safety_buffer_days=safety_buffer_days,
    )
    forecast = await service.get_forecast(workspace_id, account_id, options)
    return CompleteForecastRead.from_forecast(forecast)


@router.delete(
    "/{workspace_id}/accounts/{account_id}/cache",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def invalidate_account_cache(
    workspace_id: uuid.UUID,
    account_id: uuid.UUID,
    service: ForecastService = Depends(get_forecast_service),
):
    """Call after creating, updating or deleting a transaction on the account."""
    service.invalidate_cache(workspace_id, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{workspace_id}/cache", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_workspace_cache(
    workspace_id: uuid.UUID,
    service: ForecastService = Depends(get_forecast_service),
):
    service.invalidate_workspace_cache(workspace_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
