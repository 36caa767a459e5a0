"""Portfolio reconstruction and valuation engine for ARS/USD brokerage accounts."""

__version__ = "0.1.0"
