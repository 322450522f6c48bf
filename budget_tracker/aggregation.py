# budget_tracker/aggregation.py
"""Derived state: per-category spend and the financial summary.

``Category.spent`` is a cache. It is always rebuilt from the expense
transactions that belong to the category, never adjusted incrementally.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Type, TypeVar

from budget_tracker.alerts import AlertEngine
from budget_tracker.core.models import (
    Budget,
    Category,
    FinancialSummary,
    Transaction,
    TransactionType,
)
from budget_tracker.errors import MalformedRecord
from budget_tracker.store import BUDGETS, CATEGORIES, TRANSACTIONS, BaseStore

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
ZERO = Decimal("0")

T = TypeVar("T")


def decode_records(cls: Type[T], records: Iterable[dict]) -> List[T]:
    """Decode store records, skipping (and logging) the ones that are corrupt."""
    items = []
    for record in records:
        try:
            items.append(cls.from_record(record))
        except MalformedRecord as exc:
            logger.warning("Skipping malformed %s: %s", cls.__name__, exc)
    return items


def belongs_to(tx: Transaction, category: Category) -> bool:
    # Transactions without a category id fall back to the name match used by
    # older records.
    if tx.category_id:
        return tx.category_id == category.id
    return tx.category == category.name


def category_spend(transactions: Iterable[Transaction], category: Category) -> Decimal:
    return sum(
        (
            tx.amount
            for tx in transactions
            if tx.type is TransactionType.EXPENSE and belongs_to(tx, category)
        ),
        ZERO,
    )


def totals(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    """Return (income, expenses) over the given transactions."""
    income = ZERO
    expenses = ZERO
    for tx in transactions:
        if tx.type is TransactionType.INCOME:
            income += tx.amount
        else:
            expenses += tx.amount
    return income, expenses


def build_summary(transactions: Iterable[Transaction], budget: Optional[Budget]) -> FinancialSummary:
    income, expenses = totals(transactions)
    net = income - expenses
    savings_rate = net / income * 100 if income > 0 else ZERO
    budget_used = ZERO
    if budget is not None and budget.total_monthly_budget > 0:
        budget_used = expenses / budget.total_monthly_budget * 100
    return FinancialSummary(
        total_income=income,
        total_expenses=expenses,
        net_income=net,
        savings_rate=savings_rate,
        avg_daily_spend=expenses / DAYS_PER_MONTH,
        budget_used_percentage=budget_used,
    )


def select_current_budget(budgets: Iterable[Budget], today: Optional[date] = None) -> Optional[Budget]:
    """Pick the budget for today's month (0-11) and year.

    Duplicates are reported and resolved by the smallest id so the choice does
    not depend on store enumeration order.
    """
    today = today or date.today()
    matches = sorted(
        (b for b in budgets if b.month == today.month - 1 and b.year == today.year),
        key=lambda b: b.id,
    )
    if len(matches) > 1:
        logger.warning(
            "%d budgets found for %d-%02d, using %s",
            len(matches), today.year, today.month, matches[0].id,
        )
    return matches[0] if matches else None


class AggregationEngine:
    def __init__(self, store: BaseStore, alerts: AlertEngine) -> None:
        self._store = store
        self._alerts = alerts

    async def recompute_category_spend(
        self,
        user_id: str,
        category_name: str,
        category_id: Optional[str] = None,
    ) -> List[Category]:
        """Rebuild ``spent`` for every category named ``category_name``.

        Categories sharing a name all receive a recomputed total. When
        ``category_id`` is given, that category is refreshed as well even if
        it has since been renamed. Alerts are re-evaluated for each updated
        category.
        """
        # filtered after decoding; legacy records may spell the type in upper case
        expenses = [
            tx for tx in decode_records(Transaction, await self._store.fetch(user_id, TRANSACTIONS))
            if tx.type is TransactionType.EXPENSE
        ]
        categories = decode_records(Category, await self._store.fetch(user_id, CATEGORIES))

        updated = []
        for category in categories:
            if category.name != category_name and (not category_id or category.id != category_id):
                continue
            spent = category_spend(expenses, category)
            await self._store.set_field(user_id, CATEGORIES, category.id, "spent", str(spent))
            category = replace(category, spent=spent, user_id=category.user_id or user_id)
            logger.debug("Category %s spent recomputed to %s", category.name, spent)
            await self._alerts.evaluate_category(category)
            updated.append(category)
        return updated

    async def reset_month(self, user_id: str) -> int:
        """Drop all of the user's transactions and zero every category.

        Categories themselves are kept. Returns the number of categories reset.
        """
        await self._store.delete_collection(user_id, TRANSACTIONS)
        records = await self._store.fetch(user_id, CATEGORIES)
        for record in records:
            record_id = record.get("id")
            if record_id:
                await self._store.set_field(user_id, CATEGORIES, record_id, "spent", str(ZERO))
        # With spend at zero every alert clears.
        for category in decode_records(Category, records):
            category = replace(category, spent=ZERO, user_id=category.user_id or user_id)
            await self._alerts.evaluate_category(category)
        logger.info("Reset month for user %s (%d categories)", user_id, len(records))
        return len(records)

    async def current_budget(self, user_id: str, today: Optional[date] = None) -> Optional[Budget]:
        today = today or date.today()
        records = await self._store.fetch(user_id, BUDGETS, {"month": today.month - 1})
        return select_current_budget(decode_records(Budget, records), today)

    async def compute_financial_summary(
        self, user_id: str, today: Optional[date] = None
    ) -> FinancialSummary:
        transactions = decode_records(Transaction, await self._store.fetch(user_id, TRANSACTIONS))
        budget = await self.current_budget(user_id, today)
        return build_summary(transactions, budget)
