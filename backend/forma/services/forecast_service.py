"""Forecast service: balance projection and payment risk for one account.

Pipeline per request:
1. Validate the date range
2. Serve from cache when an entry exists for (workspace, account) and the
   same options
3. Resolve inputs: settings, current balance, completed history, planned
   transactions
4. Compute: spending estimate -> daily projection -> payment risks ->
   day risk levels
5. Store the assembled CompleteForecast in the cache and return it

Failures surface as ForecastError subclasses tagged with the stage that
failed. Nothing is cached on failure.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from forma.services.daily_forecast import (
    calculate_daily_forecast,
    lowest_point,
    projected_daily_spending,
)
from forma.services.forecast_cache import ForecastCache, InMemoryForecastCache
from forma.services.forecast_errors import (
    AccountNotFoundError,
    DataSourceError,
    ForecastError,
    InvalidRangeError,
    SettingsNotFoundError,
)
from forma.services.forecast_types import (
    CacheStats,
    CompleteForecast,
    ForecastOptions,
    ForecastStage,
    UserSettings,
)
from forma.services.payment_risk import assess_payment_risks, classify_days
from forma.services.readers import BalanceReader, SettingsReader, TransactionReader
from forma.services.spending_analyzer import DEFAULT_LOOKBACK_DAYS, analyze_spending

logger = logging.getLogger("forma.forecast")

DEFAULT_MAX_RANGE_DAYS = 366


def _today_utc() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


class ForecastService:
    """Orchestrates the forecast pipeline for (workspace, account) pairs.

    Readers are injected per instance. The cache belongs to whoever
    constructs the service; by default each instance gets its own.
    """

    def __init__(
        self,
        transactions: TransactionReader,
        settings: SettingsReader,
        balances: BalanceReader,
        *,
        cache: ForecastCache | None = None,
        clock: Callable[[], date] | None = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        max_range_days: int = DEFAULT_MAX_RANGE_DAYS,
        outlier_multiplier: Decimal | None = None,
    ):
        self._transactions = transactions
        self._settings = settings
        self._balances = balances
        self._cache = cache if cache is not None else InMemoryForecastCache()
        self._clock = clock or _today_utc
        self._lookback_days = lookback_days
        self._max_range_days = max_range_days
        self._outlier_multiplier = outlier_multiplier
        self.stage = ForecastStage.idle

    @property
    def cache(self) -> ForecastCache:
        return self._cache

    def today(self) -> date:
        return self._clock()

    # --- Cache management ---

    def invalidate_cache(self, workspace_id: uuid.UUID, account_id: uuid.UUID) -> None:
        """Call after any transaction change on the account."""
        self._cache.invalidate(workspace_id, account_id)

    def invalidate_workspace_cache(self, workspace_id: uuid.UUID) -> None:
        """Call after settings changes or anything else workspace-wide."""
        self._cache.invalidate_workspace(workspace_id)

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    # --- Pipeline ---

    def _validate_range(
        self,
        workspace_id: uuid.UUID,
        account_id: uuid.UUID,
        options: ForecastOptions,
    ) -> None:
        if options.end_date < options.start_date:
            raise InvalidRangeError(
                f"end_date {options.end_date.isoformat()} is before "
                f"start_date {options.start_date.isoformat()}",
                stage=ForecastStage.idle,
                workspace_id=workspace_id,
                account_id=account_id,
            )
        span = (options.end_date - options.start_date).days + 1
        if span > self._max_range_days:
            raise InvalidRangeError(
                f"Forecast range of {span} days exceeds the maximum of "
                f"{self._max_range_days} days",
                stage=ForecastStage.idle,
                workspace_id=workspace_id,
                account_id=account_id,
            )

    async def _fetch(
        self,
        source: str,
        call: Callable[[], Awaitable],
        workspace_id: uuid.UUID,
        account_id: uuid.UUID,
    ):
        """Await a collaborator, turning unexpected failures into DataSourceError."""
        try:
            return await call()
        except ForecastError:
            raise
        except Exception as exc:
            raise DataSourceError(
                f"Failed to fetch {source}: {exc}",
                stage=ForecastStage.resolving_inputs,
                workspace_id=workspace_id,
                account_id=account_id,
                source=source,
            ) from exc

    async def _resolve_settings(
        self,
        workspace_id: uuid.UUID,
        account_id: uuid.UUID,
        options: ForecastOptions,
    ) -> UserSettings:
        stored = await self._fetch(
            "user settings",
            lambda: self._settings.get_user_settings(workspace_id),
            workspace_id, account_id,
        )
        if stored is None:
            # Both overrides supplied: the stored row is not needed
            if options.minimum_safe_balance is not None and options.safety_buffer_days is not None:
                return UserSettings(
                    minimum_safe_balance=options.minimum_safe_balance,
                    safety_buffer_days=options.safety_buffer_days,
                )
            raise SettingsNotFoundError(
                f"No forecast settings found for workspace {workspace_id}",
                stage=ForecastStage.resolving_inputs,
                workspace_id=workspace_id,
                account_id=account_id,
                source="user settings",
            )
        return UserSettings(
            minimum_safe_balance=(
                options.minimum_safe_balance
                if options.minimum_safe_balance is not None
                else stored.minimum_safe_balance
            ),
            safety_buffer_days=(
                options.safety_buffer_days
                if options.safety_buffer_days is not None
                else stored.safety_buffer_days
            ),
        )

    async def get_forecast(
        self,
        workspace_id: uuid.UUID,
        account_id: uuid.UUID,
        options: ForecastOptions,
    ) -> CompleteForecast:
        """Return the cached forecast or compute, cache and return a fresh one."""
        self.stage = ForecastStage.idle
        self._validate_range(workspace_id, account_id, options)

        cached = self._cache.get(workspace_id, account_id, options)
        if cached is not None:
            self.stage = ForecastStage.done
            logger.info(
                "forecast served from cache workspace=%s account=%s",
                workspace_id, account_id,
            )
            return cached

        today = self._clock()
        logger.info(
            "calculating forecast workspace=%s account=%s start=%s end=%s",
            workspace_id, account_id,
            options.start_date.isoformat(), options.end_date.isoformat(),
        )

        try:
            self.stage = ForecastStage.resolving_inputs
            settings = await self._resolve_settings(workspace_id, account_id, options)

            current_balance = await self._fetch(
                "current balance",
                lambda: self._balances.get_current_balance(account_id),
                workspace_id, account_id,
            )
            if current_balance is None:
                raise AccountNotFoundError(
                    f"No balance found for account {account_id}",
                    stage=ForecastStage.resolving_inputs,
                    workspace_id=workspace_id,
                    account_id=account_id,
                    source="current balance",
                )
            current_balance = Decimal(current_balance)

            since = today - timedelta(days=self._lookback_days)
            history = await self._fetch(
                "completed transactions",
                lambda: self._transactions.list_completed_transactions(account_id, since),
                workspace_id, account_id,
            )
            planned = await self._fetch(
                "planned transactions",
                lambda: self._transactions.list_planned_transactions(account_id, options.end_date),
                workspace_id, account_id,
            )
            logger.debug(
                "inputs resolved workspace=%s account=%s history=%d planned=%d balance=%s",
                workspace_id, account_id, len(history), len(planned), current_balance,
            )

            self.stage = ForecastStage.computing
            spending = analyze_spending(
                history,
                reference_date=today,
                lookback_days=self._lookback_days,
                outlier_multiplier=self._outlier_multiplier,
            )
            daily = calculate_daily_forecast(
                current_balance,
                options.start_date,
                options.end_date,
                planned,
                spending,
                today=today,
            )
            risks = assess_payment_risks(daily, planned, settings, today=today)
            daily = classify_days(daily, settings, projected_daily_spending(spending))
        except ForecastError as exc:
            failed_at = self.stage
            self.stage = ForecastStage.failed
            if exc.stage is None:
                exc.stage = failed_at
            logger.warning(
                "forecast failed workspace=%s account=%s stage=%s error=%s",
                workspace_id, account_id, exc.stage.value, exc.message,
            )
            raise

        low = lowest_point(daily)
        result = CompleteForecast(
            workspace_id=workspace_id,
            account_id=account_id,
            options=options,
            daily_forecasts=daily,
            payment_risks=risks,
            spending=spending,
            current_balance=current_balance,
            settings=settings,
            computed_at=datetime.now(timezone.utc),
            lowest_balance=low.projected_balance if low else None,
            lowest_balance_date=low.date if low else None,
        )

        self._cache.set(workspace_id, account_id, result)
        self.stage = ForecastStage.done
        logger.info(
            "forecast completed workspace=%s account=%s days=%d risks=%d confidence=%s",
            workspace_id, account_id, len(daily), len(risks), spending.confidence.value,
        )
        return result
