"""
Input Validation

Two kinds of checks live here:

1. FORM VALIDATION - user input for goals, budgets, transactions and share
   invitations is checked before anything is written. All issues are
   collected so the caller can show them together.

2. ENGINE GUARDS - the allocation engine and budget monitor divide by goal
   targets and budget limits. A non-positive divisor is rejected with a
   ValidationError instead of turning into a division error or a NaN.

IMPORTANT: Validation NEVER silently fixes issues. It reports them.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, Field

from finwallet.models.ledger import GoalPriority, TransactionType


_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Mirrors the field limits on the ledger models.
CATEGORY_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200
GOAL_NAME_MAX_LENGTH = 100
WALLET_NAME_MAX_LENGTH = 100


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'non_positive', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationError(ValueError):
    """
    Invalid input for an engine or a form.

    Carries every issue found so callers can surface them as a form
    validation failure.
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric input, returning None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _check_positive_amount(
    value: Any,
    field: str,
    label: str,
) -> list[ValidationIssue]:
    amount = _to_decimal(value)
    if amount is None:
        return [ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"{label} must be a number",
            suggested_fix="Enter an amount like 150.00",
        )]
    if amount <= 0:
        return [ValidationIssue(
            field=field,
            issue_type="non_positive",
            message=f"{label} must be greater than zero",
            suggested_fix="Enter a positive amount",
        )]
    return []


def _check_text(
    value: Optional[str],
    field: str,
    label: str,
    max_length: int,
    required: bool = True,
    suggested_fix: Optional[str] = None,
) -> list[ValidationIssue]:
    """Presence and length of a free-text field, measured after stripping."""
    text = (value or "").strip()
    if required and not text:
        return [ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{label} is required",
            suggested_fix=suggested_fix,
        )]
    if len(text) > max_length:
        return [ValidationIssue(
            field=field,
            issue_type="too_long",
            message=f"{label} must be at most {max_length} characters",
            suggested_fix=f"Shorten it by {len(text) - max_length} characters",
        )]
    return []


def require_positive(value: Any, field: str, label: Optional[str] = None) -> Decimal:
    """
    Engine guard: return `value` as a Decimal or raise ValidationError.

    Used before every division by a goal target or budget limit.
    """
    issues = _check_positive_amount(value, field, label or field)
    if issues:
        raise ValidationError(issues)
    return Decimal(str(value))


def ensure_valid(issues: list[ValidationIssue]) -> None:
    """Raise ValidationError when any error-level issue is present."""
    errors = [issue for issue in issues if issue.severity == "error"]
    if errors:
        raise ValidationError(errors)


class InputValidator:
    """
    Validates user input before it becomes a stored record.

    Every method returns the full list of issues; use `ensure_valid` to
    turn them into an exception.
    """

    @staticmethod
    def validate_goal(
        name: str,
        target_amount: Any,
        priority: Any,
    ) -> list[ValidationIssue]:
        issues = _check_text(name, "name", "Goal name", GOAL_NAME_MAX_LENGTH)

        issues.extend(_check_positive_amount(target_amount, "target_amount", "Target amount"))

        try:
            GoalPriority(int(priority))
        except (TypeError, ValueError):
            issues.append(ValidationIssue(
                field="priority",
                issue_type="invalid_value",
                message=f"Priority must be 1 (high), 2 (medium) or 3 (low), got {priority!r}",
            ))

        return issues

    @staticmethod
    def validate_budget(category: str, limit: Any) -> list[ValidationIssue]:
        issues = _check_text(category, "category", "Budget category", CATEGORY_MAX_LENGTH)
        issues.extend(_check_positive_amount(limit, "limit", "Budget limit"))
        return issues

    @staticmethod
    def validate_transaction(
        amount: Any,
        transaction_type: Any,
        category: str,
        description: Optional[str] = "",
    ) -> list[ValidationIssue]:
        issues = _check_positive_amount(amount, "amount", "Amount")

        try:
            TransactionType(transaction_type)
        except ValueError:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Transaction type must be 'income' or 'expense', got {transaction_type!r}",
            ))

        issues.extend(_check_text(
            category,
            "category",
            "Transaction category",
            CATEGORY_MAX_LENGTH,
            suggested_fix="Pick a category such as 'food' or 'salary'",
        ))
        issues.extend(_check_text(
            description,
            "description",
            "Description",
            DESCRIPTION_MAX_LENGTH,
            required=False,
        ))

        return issues

    @staticmethod
    def validate_wallet_name(name: str) -> list[ValidationIssue]:
        return _check_text(name, "name", "Wallet name", WALLET_NAME_MAX_LENGTH)

    @staticmethod
    def validate_email(email: str) -> list[ValidationIssue]:
        if not email or not _EMAIL_PATTERN.match(email.strip()):
            return [ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"'{email}' is not a valid email address",
            )]
        return []


def summarize_issues(issues: list[ValidationIssue]) -> str:
    """
    Generate a user-friendly summary of validation issues.

    This is what a form shows next to the submit button.
    """
    if not issues:
        return "✅ All checks passed!"

    lines = ["❌ Please fix the following:"]
    for issue in issues:
        lines.append(f"   • {issue.message}")
        if issue.suggested_fix:
            lines.append(f"     💡 {issue.suggested_fix}")
    return "\n".join(lines)
