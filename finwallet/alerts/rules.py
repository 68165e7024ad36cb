"""
Alert Rule Engine

Maps an alert type and its payload to the user-facing title, message and
icon. Every mapping is a plain template substitution.

DESIGN DECISION: The mapping is a closed dict keyed by AlertType. Importing
this module fails if a member of AlertType has no template, so a new type
cannot ship without its message. Unknown type strings coming from the
store or from callers render the generic fallback instead of raising.
"""

from typing import Any, Callable, Mapping, Union

from finwallet.models.alert import AlertContent, AlertType


Template = Callable[[Mapping[str, Any]], AlertContent]

FALLBACK = AlertContent(
    title="Notification",
    message="New update available",
    icon="📢",
)

_SHARE_STATUS_TEXT = {
    "pending": "wants to share a wallet with you! How about joining forces? 💪",
    "accepted": "accepted the shared wallet invitation. Welcome aboard! 🎉",
    "rejected": "declined the shared wallet invitation.",
}


def _share_invite(data: Mapping[str, Any]) -> AlertContent:
    status = data.get("status", "pending")
    return AlertContent(
        title="🤝 New Financial Partnership!",
        message=f"{data.get('sender_name', 'Someone')} {_SHARE_STATUS_TEXT.get(status, _SHARE_STATUS_TEXT['pending'])}",
        icon="🤝",
    )


def _saving_tip(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="💡 Smart Tip!",
        message=f"{data.get('message', '')} #TipOfTheDay ✨",
        icon="💡",
    )


def _budget_warning(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="⚠️ Budget Alert!",
        message=(
            f"Hey! You have already used {data.get('percentage')}% of the "
            f"{data.get('category')} budget. Time to slow down? 🌊"
        ),
        icon="⚠️",
    )


def _budget_exceeded(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="🚨 Budget Exceeded!",
        message=(
            f"Oops! The {data.get('category')} budget went over its limit. "
            "Tomorrow is a new day to start again! 🌅"
        ),
        icon="🚨",
    )


def _goal_milestone(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="🎯 Goal Milestone Reached!",
        message=(
            f"Woohoo! You already reached {data.get('percentage')}% of your "
            f"goal \"{data.get('goal_name')}\"! Keep flying! 🚀"
        ),
        icon="🎯",
    )


def _goal_achieved(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="🏆 Goal Achieved!",
        message=(
            f"CONGRATULATIONS! You reached your goal \"{data.get('goal_name')}\"! "
            "You are amazing! 🎉"
        ),
        icon="🏆",
    )


def _spending_pattern(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="🔍 Spending Pattern Spotted",
        message=(
            f"Looks like you have been spending a lot on {data.get('category')}. "
            "Want to take a look? 👀"
        ),
        icon="🔍",
    )


def _saving_streak(data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title="🔥 Amazing Streak!",
        message=f"{data.get('days')} days of saving! You are on fire! Keep it up! 🎯",
        icon="🔥",
    )


def _transaction_large(data: Mapping[str, Any]) -> AlertContent:
    kind = "income" if data.get("type") == "income" else "expense"
    return AlertContent(
        title="💰 Large Transaction",
        message=f"Wow! An {kind} of {data.get('amount')} was recorded. Want to categorize it? 📝",
        icon="💰",
    )


def _monthly_summary(data: Mapping[str, Any]) -> AlertContent:
    if int(data.get("comparison", 0)) > 0:
        outlook = "Better than last month! 🚀"
    else:
        outlook = "Let's do better next month? 💪"
    return AlertContent(
        title="📊 Monthly Summary",
        message=f"You saved {data.get('saved_amount')} this month! {outlook}",
        icon="📊",
    )


TEMPLATES: dict[AlertType, Template] = {
    AlertType.SHARE_INVITE: _share_invite,
    AlertType.SAVING_TIP: _saving_tip,
    AlertType.BUDGET_WARNING: _budget_warning,
    AlertType.BUDGET_EXCEEDED: _budget_exceeded,
    AlertType.GOAL_MILESTONE: _goal_milestone,
    AlertType.GOAL_ACHIEVED: _goal_achieved,
    AlertType.SPENDING_PATTERN: _spending_pattern,
    AlertType.SAVING_STREAK: _saving_streak,
    AlertType.TRANSACTION_LARGE: _transaction_large,
    AlertType.MONTHLY_SUMMARY: _monthly_summary,
}


def missing_templates(templates: Mapping[AlertType, Template]) -> set[AlertType]:
    """Alert types without a template in `templates`."""
    return set(AlertType) - set(templates)


def check_templates(templates: Mapping[AlertType, Template]) -> None:
    missing = missing_templates(templates)
    if missing:
        names = ", ".join(sorted(t.value for t in missing))
        raise RuntimeError(f"Alert types without a template: {names}")


check_templates(TEMPLATES)


def render_alert(
    alert_type: Union[AlertType, str],
    data: Mapping[str, Any],
) -> AlertContent:
    """
    Title, message and icon for an alert.

    Unknown types render FALLBACK.
    """
    parsed = AlertType.parse(alert_type)
    if parsed is None:
        return FALLBACK.model_copy()
    return TEMPLATES[parsed](data)
