# budget_tracker/alerts.py
"""Budget threshold alerts.

A category has at most one live alert. Evaluation is level triggered: every
call drops the category's existing alerts and creates a new one only if the
current spend is at or above a threshold.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from budget_tracker.core.models import AlertType, BudgetAlert, Category
from budget_tracker.store import ALERTS, BaseStore

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = Decimal("80")
DANGER_THRESHOLD = Decimal("100")


def spend_percentage(category: Category) -> Optional[Decimal]:
    """Return spent as a percentage of the limit, or None when alerting is off."""
    if category.monthly_limit <= 0:
        return None
    return category.spent / category.monthly_limit * 100


def classify(category: Category) -> Optional[AlertType]:
    percentage = spend_percentage(category)
    if percentage is None:
        return None
    if percentage >= DANGER_THRESHOLD:
        return AlertType.DANGER
    if percentage >= WARNING_THRESHOLD:
        return AlertType.WARNING
    return None


def _format_amount(value: Decimal) -> str:
    return f"{value:.2f}"


def alert_message(category: Category, alert_type: AlertType) -> str:
    if alert_type is AlertType.DANGER:
        return (
            f"Budget exceeded in {category.name}! You've spent "
            f"{_format_amount(category.spent)} of {_format_amount(category.monthly_limit)}"
        )
    return (
        f"You're exceeding your budget in {category.name}. "
        "Consider reviewing your spending."
    )


class AlertEngine:
    def __init__(self, store: BaseStore) -> None:
        self._store = store

    async def evaluate_category(self, category: Category) -> Optional[BudgetAlert]:
        """Replace the category's alert to match its current spend.

        Returns the alert that was written, if any. Categories without a
        positive limit are left untouched.
        """
        if category.monthly_limit <= 0:
            return None

        await self.delete_alerts_for_category(category.user_id, category.id)

        alert_type = classify(category)
        if alert_type is None:
            return None

        alert = BudgetAlert(
            category_id=category.id,
            message=alert_message(category, alert_type),
            type=alert_type,
            user_id=category.user_id,
        )
        await self._store.put(category.user_id, ALERTS, alert.id, alert.to_record())
        logger.info(
            "%s alert for category %s (%s of %s)",
            alert_type.value, category.name, category.spent, category.monthly_limit,
        )
        return alert

    async def delete_alerts_for_category(self, user_id: str, category_id: str) -> int:
        records = await self._store.fetch(user_id, ALERTS, {"category_id": category_id})
        for record in records:
            await self._store.delete(user_id, ALERTS, record["id"])
        if records:
            logger.debug("Removed %d alert(s) for category %s", len(records), category_id)
        return len(records)
