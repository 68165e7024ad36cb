"""Validation package."""

from finwallet.validation.validator import (
    InputValidator,
    ValidationError,
    ValidationIssue,
    ensure_valid,
    require_positive,
    summarize_issues,
)

__all__ = [
    "InputValidator",
    "ValidationError",
    "ValidationIssue",
    "ensure_valid",
    "require_positive",
    "summarize_issues",
]
