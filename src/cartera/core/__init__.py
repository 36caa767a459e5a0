"""Core utilities and shared functionality."""

from cartera.core.timezone import (
    now_local,
    today_local,
    to_local,
    parse_calendar_date,
    LOCAL_TZ,
)
from cartera.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    UnclassifiedOperationError,
    UpstreamUnavailableError,
    FxUnavailableError,
    InsufficientDataError,
)
from cartera.core.numbers import ZERO, to_decimal, valid_amount, safe_divide, percent_of

__all__ = [
    "now_local",
    "today_local",
    "to_local",
    "parse_calendar_date",
    "LOCAL_TZ",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "UnclassifiedOperationError",
    "UpstreamUnavailableError",
    "FxUnavailableError",
    "InsufficientDataError",
    "ZERO",
    "to_decimal",
    "valid_amount",
    "safe_divide",
    "percent_of",
]
