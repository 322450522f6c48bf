# budget_tracker/core/models.py
from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from budget_tracker.errors import MalformedRecord, ValidationError


def now_millis() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Decimal:
    """Convert a stored or user supplied amount into a Decimal.

    Floats go through ``str`` first so ``0.1`` becomes ``Decimal('0.1')``
    rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise InvalidOperation(f"not an amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    if not isinstance(value, Decimal):
        value = Decimal(str(value).strip())
    if not value.is_finite():
        raise InvalidOperation(f"not a finite amount: {value!r}")
    return value


def _check_amount(label: str, value: Any) -> None:
    try:
        value = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{label} must be a finite number: {value!r}")
    if value < 0:
        raise ValidationError(f"{label} must not be negative: {value}")


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AlertType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


class Record:
    """Mixin turning a dataclass into a flat key-value record and back."""

    _decimal_fields: tuple = ()
    _enum_fields: Dict[str, type] = {}

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        for name, value in record.items():
            if isinstance(value, Decimal):
                record[name] = str(value)
            elif isinstance(value, Enum):
                record[name] = value.value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]):
        if not isinstance(record, dict):
            raise MalformedRecord(f"{cls.__name__} record is not a mapping: {record!r}")
        kwargs = {}
        try:
            for f in fields(cls):
                if f.name not in record:
                    continue
                value = record[f.name]
                if f.name in cls._decimal_fields:
                    value = to_decimal(value)
                elif f.name in cls._enum_fields:
                    value = cls._enum_fields[f.name](str(value).lower())
                kwargs[f.name] = value
            return cls(**kwargs)
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise MalformedRecord(f"Invalid {cls.__name__} record {record!r}: {exc}") from exc


@dataclass
class Transaction(Record):
    id: str = field(default_factory=new_id)
    type: TransactionType = TransactionType.EXPENSE
    amount: Decimal = Decimal("0")
    category: str = ""
    description: str = ""
    merchant: Optional[str] = None
    date: int = field(default_factory=now_millis)
    is_auto_detected: bool = False
    bank_account_id: Optional[str] = None
    user_id: str = ""
    category_id: Optional[str] = None

    _decimal_fields = ("amount",)
    _enum_fields = {"type": TransactionType}

    def validate(self) -> None:
        _check_amount("Transaction amount", self.amount)
        if not self.category.strip():
            raise ValidationError("Transaction category must not be empty")


@dataclass
class Category(Record):
    id: str = field(default_factory=new_id)
    name: str = ""
    monthly_limit: Decimal = Decimal("0")
    spent: Decimal = Decimal("0")
    color: str = ""
    icon: str = ""
    user_id: str = ""

    _decimal_fields = ("monthly_limit", "spent")

    def validate(self) -> None:
        if not self.name.strip():
            raise ValidationError("Category name must not be empty")
        _check_amount("Category monthly limit", self.monthly_limit)


@dataclass
class Budget(Record):
    id: str = field(default_factory=new_id)
    total_monthly_budget: Decimal = Decimal("0")
    month: int = 0
    year: int = 0
    user_id: str = ""

    _decimal_fields = ("total_monthly_budget",)

    @staticmethod
    def key_for(month: int, year: int) -> str:
        return f"{year:04d}-{month:02d}"

    def validate(self) -> None:
        if not 0 <= self.month <= 11:
            raise ValidationError(f"Budget month must be between 0 and 11: {self.month}")
        _check_amount("Budget total", self.total_monthly_budget)


@dataclass
class BudgetAlert(Record):
    id: str = field(default_factory=new_id)
    category_id: str = ""
    message: str = ""
    type: AlertType = AlertType.INFO
    timestamp: int = field(default_factory=now_millis)
    is_read: bool = False
    user_id: str = ""

    _enum_fields = {"type": AlertType}


@dataclass
class SMSTransaction:
    amount: Decimal
    type: TransactionType
    merchant: Optional[str]
    timestamp: int
    raw_message: str
    bank_name: Optional[str]


@dataclass
class FinancialSummary:
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    savings_rate: Decimal = Decimal("0")
    avg_daily_spend: Decimal = Decimal("0")
    budget_used_percentage: Decimal = Decimal("0")
