from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from budget_tracker.core.categorizer import suggest_category
from budget_tracker.identity import StaticIdentity
from budget_tracker.repository import BudgetRepository
from budget_tracker.sms import parse_transaction
from budget_tracker.store import SQLiteStore

server = FastMCP(name="BudgetBuddy", instructions="Expose BudgetBuddy budgets as MCP tools")


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def _repository(db_path: str, user_id: str) -> BudgetRepository:
    if not Path(db_path).exists():
        raise FileNotFoundError(f"Database not found: {db_path}")
    if not user_id:
        raise ValueError("user_id must be provided")
    return BudgetRepository(SQLiteStore(db_path), StaticIdentity(user_id))


@server.tool(
    name="get_financial_summary",
    description="Income, expenses, savings rate and budget usage for a user",
)
async def get_financial_summary(db_path: str, user_id: str, today: str | None = None) -> dict:
    """Return the financial summary for ``user_id``.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    user_id:
        Owner of the records.
    today:
        Optional ISO date used to pick the current-month budget.
    """
    try:
        day = date.fromisoformat(today) if today else None
    except ValueError as exc:
        raise ValueError(f"Invalid today: {today}") from exc

    repo = _repository(db_path, user_id)
    summary = await repo.financial_summary(day)
    return _jsonable(asdict(summary))


@server.tool(name="get_categories", description="Categories with spend and limits")
async def get_categories(db_path: str, user_id: str) -> list[dict]:
    repo = _repository(db_path, user_id)
    return [_jsonable(asdict(c)) for c in await repo.list_categories()]


@server.tool(name="get_alerts", description="Budget alerts, newest first")
async def get_alerts(db_path: str, user_id: str, unread_only: bool = False) -> list[dict]:
    repo = _repository(db_path, user_id)
    return [_jsonable(asdict(a)) for a in await repo.list_alerts(unread_only)]


@server.tool(name="parse_sms", description="Parse a bank SMS into a candidate transaction")
async def parse_sms(message: str, sender: str | None = None) -> dict | None:
    candidate = parse_transaction(message, sender)
    if candidate is None:
        return None
    payload = _jsonable(asdict(candidate))
    payload["suggested_category"] = suggest_category(candidate.merchant, message)
    return payload


def main() -> None:
    server.run()


if __name__ == "__main__":
    main()
