"""Sample plan used for demos and first-run exploration."""

from __future__ import annotations

from ..models.debt import Debt

SAMPLE_PLAN_NAME = "Sample Debt Plan"
SAMPLE_MONTHLY_BUDGET = 850.0
SAMPLE_DATA_SETTING = "has_sample_data"

_SAMPLE_DEBTS = (
    # name, balance, apr, min payment, credit limit, type
    ("Chase Sapphire Card", 3247.82, 0.2249, 95.0, 6000.0, "Credit Card"),
    ("Capital One Quicksilver", 1423.55, 0.1799, 45.0, 4500.0, "Credit Card"),
    ("Toyota Auto Loan", 9847.00, 0.0599, 275.0, None, "Auto Loan"),
    ("Federal Student Loan", 14523.67, 0.0455, 180.0, None, "Student Loan"),
)


def generate_sample_debts() -> list[Debt]:
    """Return unsaved debts with realistic balances; ``plan_id`` is set on save."""

    debts: list[Debt] = []
    for position, (name, balance, apr, min_payment, limit, debt_type) in enumerate(_SAMPLE_DEBTS):
        debts.append(
            Debt(
                plan_id="",
                position=position,
                name=name,
                balance=balance,
                apr=apr,
                min_payment=min_payment,
                active=True,
                credit_limit=limit,
                debt_type=debt_type,
            )
        )
    return debts


def sample_debt_total() -> float:
    return sum(row[1] for row in _SAMPLE_DEBTS)


def sample_min_payments() -> float:
    return sum(row[3] for row in _SAMPLE_DEBTS)


__all__ = [
    "SAMPLE_DATA_SETTING",
    "SAMPLE_MONTHLY_BUDGET",
    "SAMPLE_PLAN_NAME",
    "generate_sample_debts",
    "sample_debt_total",
    "sample_min_payments",
]
