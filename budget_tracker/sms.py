# budget_tracker/sms.py
"""Turn bank SMS text into candidate transactions.

Only the amount is mandatory; direction, merchant and bank are best effort.
Nothing here touches the store.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from budget_tracker.core.categorizer import suggest_category
from budget_tracker.core.models import SMSTransaction, Transaction, TransactionType, now_millis

# Earlier patterns take precedence.
_AMOUNT_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"Rs\.?\s*([0-9,]+\.?[0-9]*)",
        r"INR\s*([0-9,]+\.?[0-9]*)",
        r"₹\s*([0-9,]+\.?[0-9]*)",
        r"amount\s*:?\s*Rs\.?\s*([0-9,]+\.?[0-9]*)",
        r"of\s*Rs\.?\s*([0-9,]+\.?[0-9]*)",
    )
]

_DEBIT_KEYWORDS = ("debited", "withdrawn", "spent", "paid", "purchase")
_CREDIT_KEYWORDS = ("credited", "received", "deposited", "refund")

_MERCHANT_PATTERNS = [
    re.compile(r"at\s+([A-Z][A-Za-z0-9\s]+?)(?:on|\.|$)"),
    re.compile(r"to\s+([A-Z][A-Za-z0-9\s]+?)(?:on|\.|$)"),
    re.compile(r"for\s+([A-Z][A-Za-z0-9\s]+?)(?:on|\.|$)"),
]
_UPI_PATTERN = re.compile(r"UPI/([A-Za-z0-9@]+)")

BANKS = {
    "HDFCBK": "HDFC Bank",
    "SBIINB": "State Bank of India",
    "ICICIB": "ICICI Bank",
    "AXISBK": "Axis Bank",
    "KOTAKB": "Kotak Mahindra Bank",
    "PNBSMS": "Punjab National Bank",
    "BOISMS": "Bank of India",
}

_BANK_SMS_KEYWORDS = (
    "debited", "credited", "withdrawn", "deposited",
    "transaction", "account", "balance", "bank",
    "upi", "paytm", "gpay", "phonepe", "bhim",
)


def extract_amount(message: str) -> Optional[Decimal]:
    for pattern in _AMOUNT_PATTERNS:
        match = pattern.search(message)
        if match:
            try:
                return Decimal(match.group(1).replace(",", ""))
            except InvalidOperation:
                return None
    return None


def determine_transaction_type(message: str) -> TransactionType:
    lower = message.lower()
    if any(kw in lower for kw in _DEBIT_KEYWORDS):
        return TransactionType.EXPENSE
    if any(kw in lower for kw in _CREDIT_KEYWORDS):
        return TransactionType.INCOME
    return TransactionType.EXPENSE


def extract_merchant(message: str) -> Optional[str]:
    for pattern in _MERCHANT_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).strip()
    match = _UPI_PATTERN.search(message)
    if match:
        return match.group(1)
    return None


def extract_bank_name(sender: Optional[str], message: str) -> Optional[str]:
    if sender:
        sender_upper = sender.upper()
        for code, name in BANKS.items():
            if code in sender_upper:
                return name
    message_lower = message.lower()
    for name in BANKS.values():
        if name.lower() in message_lower:
            return name
    return None


def is_bank_sms(sender: Optional[str], message: str) -> bool:
    """Cheap pre-filter deciding whether an SMS is worth parsing at all."""
    lower = message.lower()
    return any(kw in lower for kw in _BANK_SMS_KEYWORDS)


def parse_transaction(
    message_body: str,
    sender: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> Optional[SMSTransaction]:
    """Return a candidate transaction, or ``None`` when no amount is found."""
    amount = extract_amount(message_body)
    if amount is None:
        return None
    return SMSTransaction(
        amount=amount,
        type=determine_transaction_type(message_body),
        merchant=extract_merchant(message_body),
        timestamp=timestamp if timestamp is not None else now_millis(),
        raw_message=message_body,
        bank_name=extract_bank_name(sender, message_body),
    )


def to_transaction(candidate: SMSTransaction, category: Optional[str] = None) -> Transaction:
    """Build an auto-detected Transaction from a confirmed SMS candidate."""
    if category is None:
        category = suggest_category(candidate.merchant, candidate.raw_message)
    description = candidate.merchant or candidate.bank_name or "SMS transaction"
    return Transaction(
        type=candidate.type,
        amount=candidate.amount,
        category=category,
        description=description,
        merchant=candidate.merchant,
        date=candidate.timestamp,
        is_auto_detected=True,
    )
