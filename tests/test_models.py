from decimal import Decimal

import pytest

from budget_tracker.core.models import (
    AlertType,
    Budget,
    BudgetAlert,
    Category,
    Transaction,
    TransactionType,
)
from budget_tracker.errors import MalformedRecord, ValidationError


def test_transaction_record_uses_attribute_names():
    tx = Transaction(id="t1", amount=Decimal("12.50"), category="Shopping", date=1000)
    record = tx.to_record()
    assert record["id"] == "t1"
    assert record["type"] == "expense"
    assert record["amount"] == "12.50"
    assert record["is_auto_detected"] is False
    assert Transaction.from_record(record) == tx


def test_from_record_accepts_legacy_values_and_ignores_extras():
    tx = Transaction.from_record(
        {"id": "t2", "type": "INCOME", "amount": 0.1, "category": "Salary", "extra": 1}
    )
    assert tx.type is TransactionType.INCOME
    assert tx.amount == Decimal("0.1")

    alert = BudgetAlert.from_record({"id": "a1", "type": "WARNING"})
    assert alert.type is AlertType.WARNING


@pytest.mark.parametrize(
    "record",
    [
        {"id": "x", "amount": "abc"},
        {"id": "x", "type": "transfer"},
        {"id": "x", "amount": True},
        {"id": "x", "amount": "NaN"},
        {"id": "x", "amount": "-Infinity"},
        "not a mapping",
    ],
)
def test_malformed_transaction_records(record):
    with pytest.raises(MalformedRecord):
        Transaction.from_record(record)


def test_transaction_validation():
    with pytest.raises(ValidationError):
        Transaction(amount=Decimal("-1"), category="Food").validate()
    with pytest.raises(ValidationError):
        Transaction(amount=Decimal("1"), category="  ").validate()
    Transaction(amount=Decimal("0"), category="Food").validate()


@pytest.mark.parametrize("amount", [Decimal("NaN"), Decimal("Infinity"), Decimal("sNaN")])
def test_non_finite_amounts_fail_validation(amount):
    with pytest.raises(ValidationError):
        Transaction(amount=amount, category="Food").validate()
    with pytest.raises(ValidationError):
        Category(name="Food", monthly_limit=amount).validate()
    with pytest.raises(ValidationError):
        Budget(total_monthly_budget=amount, month=0, year=2025).validate()


def test_non_finite_spent_is_malformed():
    with pytest.raises(MalformedRecord):
        Category.from_record({"id": "c", "name": "Food", "spent": "NaN"})


def test_category_and_budget_validation():
    with pytest.raises(ValidationError):
        Category(name="").validate()
    with pytest.raises(ValidationError):
        Category(name="Food", monthly_limit=Decimal("-5")).validate()
    Category(name="Food", monthly_limit=Decimal("0")).validate()

    with pytest.raises(ValidationError):
        Budget(month=12, year=2025).validate()
    assert Budget.key_for(0, 2025) == "2025-00"
