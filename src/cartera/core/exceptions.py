"""Application-level exceptions."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when a raw record cannot be normalized at all."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class UnclassifiedOperationError(AppError):
    """Raised when an operation descriptor matches no known keyword."""

    def __init__(self, descriptor: str):
        self.descriptor = descriptor
        super().__init__(
            f"Unrecognized operation descriptor: {descriptor!r}",
            code="UNCLASSIFIED_OPERATION",
        )


class UpstreamUnavailableError(AppError):
    """Raised when a collaborator fetch fails and no cached value exists."""

    def __init__(
        self,
        resource: str,
        cause: Optional[BaseException] = None,
        code: str = "UPSTREAM_UNAVAILABLE",
    ):
        self.resource = resource
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Upstream unavailable for {resource}{detail}", code=code)


class FxUnavailableError(UpstreamUnavailableError):
    """Raised when an ARS amount needs conversion and no rate exists at all."""

    def __init__(self, on_date: str):
        super().__init__(f"ARS/USD rate for {on_date}", code="FX_UNAVAILABLE")


class InsufficientDataError(AppError):
    """Raised when an instrument has neither transactions nor a market quote."""

    def __init__(self, instrument_id: str):
        self.instrument_id = instrument_id
        super().__init__(
            f"Insufficient data to value {instrument_id}: no transactions and no market quote",
            code="INSUFFICIENT_DATA",
        )
