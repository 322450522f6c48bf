from decimal import Decimal

import anyio
import pytest

from budget_tracker.core.models import Budget, Category, Transaction, TransactionType
from budget_tracker.identity import StaticIdentity
from budget_tracker.mcp_server import get_alerts, get_categories, get_financial_summary, parse_sms
from budget_tracker.repository import BudgetRepository
from budget_tracker.store import SQLiteStore


def _setup_db(tmp_path):
    db_path = tmp_path / "budget.db"
    repo = BudgetRepository(SQLiteStore(str(db_path)), StaticIdentity("alice"))

    async def seed():
        await repo.add_category(Category(id="food", name="Food & Dining", monthly_limit=Decimal("100")))
        await repo.set_budget(Budget(total_monthly_budget=Decimal("1000"), month=0, year=2025))
        await repo.add_transaction(Transaction(type=TransactionType.INCOME, amount=Decimal("1000"), category="Salary"))
        await repo.add_transaction(Transaction(amount=Decimal("300"), category="Food & Dining"))
        await repo.add_transaction(Transaction(amount=Decimal("200"), category="Shopping"))

    anyio.run(seed)
    return db_path


def test_get_financial_summary(tmp_path):
    db_path = _setup_db(tmp_path)

    async def run():
        return await get_financial_summary(str(db_path), "alice", today="2025-01-20")

    res = anyio.run(run)
    assert res["total_income"] == 1000.0
    assert res["total_expenses"] == 500.0
    assert res["savings_rate"] == 50.0
    assert res["budget_used_percentage"] == 50.0


def test_get_categories_and_alerts(tmp_path):
    db_path = _setup_db(tmp_path)

    async def run():
        return await get_categories(str(db_path), "alice"), await get_alerts(str(db_path), "alice")

    categories, alerts = anyio.run(run)
    assert categories == [
        {
            "id": "food",
            "name": "Food & Dining",
            "monthly_limit": 100.0,
            "spent": 300.0,
            "color": "",
            "icon": "",
            "user_id": "alice",
        }
    ]
    assert len(alerts) == 1
    assert alerts[0]["type"] == "danger"
    assert alerts[0]["category_id"] == "food"


def test_missing_database(tmp_path):
    async def run():
        await get_categories(str(tmp_path / "missing.db"), "alice")

    with pytest.raises(FileNotFoundError):
        anyio.run(run)


def test_parse_sms_tool():
    async def run():
        return await parse_sms("Rs. 1,234.50 debited from your account", "HDFCBK")

    res = anyio.run(run)
    assert res["amount"] == 1234.5
    assert res["type"] == "expense"
    assert res["bank_name"] == "HDFC Bank"
    assert res["suggested_category"] == "Others"
