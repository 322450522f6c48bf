# budget_tracker/analytics.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from budget_tracker.aggregation import ZERO, build_summary, totals
from budget_tracker.core.models import (
    Budget,
    BudgetAlert,
    Category,
    FinancialSummary,
    Transaction,
)


@dataclass
class FilteredTransactions:
    transactions: List[Transaction]
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO


@dataclass
class CategoryExpense:
    name: str
    amount: Decimal
    percentage: Decimal
    color: str


@dataclass
class AnalyticsReport:
    summary: FinancialSummary
    categories_over_budget: int = 0
    total_categories: int = 0
    expenses_by_category: List[CategoryExpense] = field(default_factory=list)


@dataclass
class BudgetOverview:
    monthly_budget: Decimal
    total_spent: Decimal
    budget_used_percentage: Decimal
    categories_over_budget: int


@dataclass
class Dashboard:
    summary: FinancialSummary
    recent_transactions: List[Transaction]
    top_categories: List[Category]
    alerts: List[BudgetAlert]

    @property
    def unread_alerts(self) -> int:
        return len(self.alerts)


def filter_transactions(
    transactions: Iterable[Transaction],
    query: str = "",
    category: Optional[str] = None,
) -> FilteredTransactions:
    """Search description and merchant (case-insensitive) and filter by category."""
    needle = query.lower()
    matched = []
    for tx in transactions:
        if needle and needle not in tx.description.lower() and needle not in (tx.merchant or "").lower():
            continue
        if category is not None and tx.category != category:
            continue
        matched.append(tx)
    income, expenses = totals(matched)
    return FilteredTransactions(matched, income, expenses)


def _over_budget(category: Category) -> bool:
    return category.monthly_limit > 0 and category.spent / category.monthly_limit * 100 >= 100


def analytics_report(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
) -> AnalyticsReport:
    transactions = list(transactions)
    categories = list(categories)
    summary = build_summary(transactions, None)
    expenses = summary.total_expenses

    by_category = [
        CategoryExpense(
            name=c.name,
            amount=c.spent,
            percentage=c.spent / expenses * 100 if expenses > 0 else ZERO,
            color=c.color,
        )
        for c in categories
        if c.spent > 0
    ]
    by_category.sort(key=lambda item: item.amount, reverse=True)

    return AnalyticsReport(
        summary=summary,
        categories_over_budget=sum(1 for c in categories if _over_budget(c)),
        total_categories=len(categories),
        expenses_by_category=by_category,
    )


def budget_overview(
    categories: Iterable[Category],
    budget: Optional[Budget],
    default_monthly_budget: Decimal = Decimal("21000"),
) -> BudgetOverview:
    categories = list(categories)
    total_spent = sum((c.spent for c in categories), ZERO)
    monthly = budget.total_monthly_budget if budget is not None else Decimal(default_monthly_budget)
    used = total_spent / monthly * 100 if monthly > 0 else ZERO
    return BudgetOverview(
        monthly_budget=monthly,
        total_spent=total_spent,
        budget_used_percentage=used,
        categories_over_budget=sum(1 for c in categories if _over_budget(c)),
    )


def dashboard(
    summary: FinancialSummary,
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    unread_alerts: Iterable[BudgetAlert],
    recent: int = 5,
    top: int = 3,
) -> Dashboard:
    recent_transactions = sorted(transactions, key=lambda tx: tx.date, reverse=True)[:recent]
    top_categories = sorted(categories, key=lambda c: c.spent, reverse=True)[:top]
    return Dashboard(summary, recent_transactions, top_categories, list(unread_alerts))
