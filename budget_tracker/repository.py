# budget_tracker/repository.py
"""User-facing operations over a store.

Every method resolves the signed-in user first. Without one, reads come back
empty and writes are dropped; that is the normal signed-out behaviour, not an
error. Callers that need a hard failure use ``identity.require_user``.
"""
from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import replace
from datetime import date
from typing import AsyncIterator, Dict, Iterable, List, Optional

from budget_tracker.aggregation import AggregationEngine, build_summary, decode_records
from budget_tracker.alerts import AlertEngine
from budget_tracker.core.models import (
    Budget,
    BudgetAlert,
    Category,
    FinancialSummary,
    Transaction,
    TransactionType,
)
from budget_tracker.identity import IdentityProvider
from budget_tracker.store import ALERTS, BUDGETS, CATEGORIES, TRANSACTIONS, BaseStore

logger = logging.getLogger(__name__)


def _newest_first(transactions: List[Transaction]) -> List[Transaction]:
    return sorted(transactions, key=lambda tx: tx.date, reverse=True)


class BudgetRepository:
    def __init__(self, store: BaseStore, identity: IdentityProvider) -> None:
        self.store = store
        self.identity = identity
        self.alerts = AlertEngine(store)
        self.aggregation = AggregationEngine(store, self.alerts)

    def _user(self, action: str) -> Optional[str]:
        user_id = self.identity.current_user_id()
        if not user_id:
            logger.debug("No signed-in user; %s skipped", action)
            return None
        return user_id

    async def _watch(self, collection: str, cls, where=None, keep=None, sort_key=None, reverse=False):
        user_id = self._user(f"watch {collection}")
        if user_id is None:
            yield []
            return
        async with self.store.query(user_id, collection, where) as live:
            async for records in live:
                items = decode_records(cls, records)
                if keep is not None:
                    items = [item for item in items if keep(item)]
                if sort_key is not None:
                    items.sort(key=sort_key, reverse=reverse)
                yield items

    # transactions

    async def add_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        transaction.validate()
        user_id = self._user("add_transaction")
        if user_id is None:
            return None
        transaction = replace(transaction, user_id=user_id)
        await self.store.put(user_id, TRANSACTIONS, transaction.id, transaction.to_record())
        if transaction.type is TransactionType.EXPENSE:
            await self.aggregation.recompute_category_spend(
                user_id, transaction.category, transaction.category_id
            )
        return transaction

    async def delete_transaction(self, transaction: Transaction) -> None:
        user_id = self._user("delete_transaction")
        if user_id is None:
            return
        await self.store.delete(user_id, TRANSACTIONS, transaction.id)
        if transaction.type is TransactionType.EXPENSE:
            await self.aggregation.recompute_category_spend(
                user_id, transaction.category, transaction.category_id
            )

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        user_id = self._user("get_transaction")
        if user_id is None:
            return None
        record = await self.store.get(user_id, TRANSACTIONS, transaction_id)
        found = decode_records(Transaction, [record] if record else [])
        return found[0] if found else None

    async def reset_monthly_transactions(self) -> None:
        user_id = self._user("reset_monthly_transactions")
        if user_id is None:
            return
        await self.aggregation.reset_month(user_id)

    async def list_transactions(
        self,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        user_id = self._user("list_transactions")
        if user_id is None:
            return []
        where = {"category": category} if category is not None else None
        records = await self.store.fetch(user_id, TRANSACTIONS, where)
        transactions = [tx for tx in decode_records(Transaction, records) if _has_type(tx, type)]
        return _newest_first(transactions)

    def watch_transactions(
        self,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> AsyncIterator[List[Transaction]]:
        return self._watch(
            TRANSACTIONS,
            Transaction,
            {"category": category} if category is not None else None,
            keep=lambda tx: _has_type(tx, type),
            sort_key=lambda tx: tx.date,
            reverse=True,
        )

    # categories

    async def add_category(self, category: Category) -> Optional[Category]:
        category.validate()
        user_id = self._user("add_category")
        if user_id is None:
            return None
        category = replace(category, user_id=user_id)
        await self.store.put(user_id, CATEGORIES, category.id, category.to_record())
        # pick up transactions that already carry this name
        updated = await self.aggregation.recompute_category_spend(user_id, category.name, category.id)
        return next((c for c in updated if c.id == category.id), category)

    async def update_category(self, category: Category) -> Optional[Category]:
        """Replace a category's name, limit, color or icon.

        ``spent`` is not taken from the argument; it is recomputed. Dropping
        the limit to zero clears the category's alerts.
        """
        category.validate()
        user_id = self._user("update_category")
        if user_id is None:
            return None
        existing = await self.get_category(category.id)
        if existing is not None:
            category = replace(category, spent=existing.spent)
        category = replace(category, user_id=user_id)
        await self.store.put(user_id, CATEGORIES, category.id, category.to_record())
        if category.monthly_limit <= 0:
            # alerting is off without a limit
            await self.alerts.delete_alerts_for_category(user_id, category.id)
        updated = await self.aggregation.recompute_category_spend(user_id, category.name, category.id)
        return next((c for c in updated if c.id == category.id), category)

    async def delete_category(self, category: Category) -> None:
        user_id = self._user("delete_category")
        if user_id is None:
            return
        await self.store.delete(user_id, CATEGORIES, category.id)
        await self.alerts.delete_alerts_for_category(user_id, category.id)

    async def get_category(self, category_id: str) -> Optional[Category]:
        user_id = self._user("get_category")
        if user_id is None:
            return None
        record = await self.store.get(user_id, CATEGORIES, category_id)
        found = decode_records(Category, [record] if record else [])
        return found[0] if found else None

    async def list_categories(self) -> List[Category]:
        user_id = self._user("list_categories")
        if user_id is None:
            return []
        categories = decode_records(Category, await self.store.fetch(user_id, CATEGORIES))
        return sorted(categories, key=lambda c: c.name)

    def watch_categories(self) -> AsyncIterator[List[Category]]:
        return self._watch(CATEGORIES, Category, sort_key=lambda c: c.name)

    async def initialize_default_categories(self, defaults: Iterable[Dict]) -> List[Category]:
        """Seed categories for a user who has none yet."""
        user_id = self._user("initialize_default_categories")
        if user_id is None:
            return []
        if await self.store.fetch(user_id, CATEGORIES):
            return []
        created = []
        for entry in defaults:
            category = Category.from_record({**entry, "user_id": user_id})
            category.validate()
            await self.store.put(user_id, CATEGORIES, category.id, category.to_record())
            created.append(category)
        logger.info("Seeded %d default categories for user %s", len(created), user_id)
        return created

    # budgets

    async def get_current_month_budget(self, today: Optional[date] = None) -> Optional[Budget]:
        user_id = self._user("get_current_month_budget")
        if user_id is None:
            return None
        return await self.aggregation.current_budget(user_id, today)

    async def set_budget(self, budget: Budget) -> Optional[Budget]:
        """Store the budget for its (month, year), replacing any earlier one."""
        budget.validate()
        user_id = self._user("set_budget")
        if user_id is None:
            return None
        budget = replace(budget, id=Budget.key_for(budget.month, budget.year), user_id=user_id)
        await self.store.put(user_id, BUDGETS, budget.id, budget.to_record())
        return budget

    # alerts

    async def list_alerts(self, unread_only: bool = False) -> List[BudgetAlert]:
        user_id = self._user("list_alerts")
        if user_id is None:
            return []
        where = {"is_read": False} if unread_only else None
        alerts = decode_records(BudgetAlert, await self.store.fetch(user_id, ALERTS, where))
        return sorted(alerts, key=lambda a: a.timestamp, reverse=True)

    def watch_alerts(self) -> AsyncIterator[List[BudgetAlert]]:
        return self._watch(ALERTS, BudgetAlert, sort_key=lambda a: a.timestamp, reverse=True)

    def watch_unread_alerts(self) -> AsyncIterator[List[BudgetAlert]]:
        return self._watch(
            ALERTS,
            BudgetAlert,
            {"is_read": False},
            sort_key=lambda a: a.timestamp,
            reverse=True,
        )

    async def mark_alert_as_read(self, alert_id: str) -> None:
        user_id = self._user("mark_alert_as_read")
        if user_id is None:
            return
        await self.store.set_field(user_id, ALERTS, alert_id, "is_read", True)

    # summary

    async def financial_summary(self, today: Optional[date] = None) -> FinancialSummary:
        user_id = self._user("financial_summary")
        if user_id is None:
            return FinancialSummary()
        return await self.aggregation.compute_financial_summary(user_id, today)

    async def watch_financial_summary(
        self, today: Optional[date] = None
    ) -> AsyncIterator[FinancialSummary]:
        """Yield a fresh summary for every transaction snapshot.

        The current-month budget is read once, when the stream starts.
        """
        user_id = self._user("watch_financial_summary")
        if user_id is None:
            yield FinancialSummary()
            return
        budget = await self.aggregation.current_budget(user_id, today)
        async with aclosing(self.watch_transactions()) as stream:
            async for transactions in stream:
                yield build_summary(transactions, budget)


# type is matched on decoded records since stored values may differ in case
def _has_type(tx: Transaction, type: Optional[TransactionType]) -> bool:
    return type is None or tx.type is type
