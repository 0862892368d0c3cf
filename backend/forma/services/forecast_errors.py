"""Forecast engine errors.

InputResolutionError covers anything that goes wrong while fetching the
balance, settings or transactions. Not-found and transient failures are
separate subclasses so callers can pick a message (and a status code).
"""

import uuid

from forma.services.forecast_types import ForecastStage


class ForecastError(Exception):
    """Base class: carries the failing stage and the forecast key."""

    def __init__(
        self,
        message: str,
        *,
        stage: ForecastStage | None = None,
        workspace_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
        source: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.workspace_id = workspace_id
        self.account_id = account_id
        self.source = source


class InvalidRangeError(ForecastError, ValueError):
    """end before start, or a span longer than the configured maximum."""


class InputResolutionError(ForecastError):
    pass


class InputNotFoundError(InputResolutionError):
    pass


class SettingsNotFoundError(InputNotFoundError):
    pass


class AccountNotFoundError(InputNotFoundError):
    pass


class DataSourceError(InputResolutionError):
    """A collaborator failed to answer. Not retried here."""
