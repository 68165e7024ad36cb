"""Spending insights package."""

from finwallet.insights.trends import (
    CategoryTrend,
    Suggestion,
    TrendDirection,
    analyze_category_trends,
)

__all__ = [
    "CategoryTrend",
    "Suggestion",
    "TrendDirection",
    "analyze_category_trends",
]
