"""Pydantic schemas for API responses."""

from cartera.api.schemas.portfolio import (
    CacheMetadataResponse,
    ValuationResponse,
    CashflowLineResponse,
    ProjectionResponse,
    InstrumentSummaryResponse,
    PortfolioResponse,
)
from cartera.api.schemas.cashflow import CashflowGroupResponse, CashflowGroupsResponse
from cartera.api.schemas.cache import CacheInfoResponse, CacheInvalidateResponse

__all__ = [
    "CacheMetadataResponse",
    "ValuationResponse",
    "CashflowLineResponse",
    "ProjectionResponse",
    "InstrumentSummaryResponse",
    "PortfolioResponse",
    "CashflowGroupResponse",
    "CashflowGroupsResponse",
    "CacheInfoResponse",
    "CacheInvalidateResponse",
]
