"""Monthly aggregation package."""

from snapledger.queries.aggregator import monthly_view, summarize, total, trend

__all__ = ["monthly_view", "summarize", "total", "trend"]
