"""CSV and plain-text export helpers for plans and payoff schedules."""

from __future__ import annotations

import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

from .debts import CalculationResult, DebtAccount, MonthlyScheduleRow, Strategy

DEBT_HEADERS = [
    "name",
    "balance",
    "apr",
    "minPayment",
    "customRank",
    "creditLimit",
    "type",
    "feeAmount",
    "feeFrequency",
]
SCHEDULE_HEADERS = [
    "Month",
    "Date",
    "Total Payment",
    "Baseline",
    "Extra/Snowball",
    "Remaining Balance",
]


def _serialize_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _money(value: float) -> str:
    return f"{value:.2f}"


def _write(rows: Iterable[Sequence[str]], header: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def debts_to_csv(debts: Iterable[DebtAccount]) -> str:
    """Serialize debts in the import-compatible column layout."""

    rows = [
        [
            debt.name,
            _serialize_value(debt.balance),
            _serialize_value(debt.apr),
            _serialize_value(debt.min_payment),
            _serialize_value(debt.custom_rank),
            _serialize_value(debt.credit_limit),
            _serialize_value(debt.debt_type),
            _serialize_value(debt.fee_amount),
            _serialize_value(debt.fee_frequency),
        ]
        for debt in debts
    ]
    return _write(rows, DEBT_HEADERS)


def schedule_to_csv(schedule: Sequence[MonthlyScheduleRow]) -> str:
    """Serialize a schedule with three columns (interest, payment, balance) per debt.

    Debt columns follow the order in which debt names first appear; months
    after a debt is paid off leave its cells blank.
    """

    debt_names: list[str] = []
    for row in schedule:
        for detail in row.debt_details:
            if detail.debt_name not in debt_names:
                debt_names.append(detail.debt_name)

    header = list(SCHEDULE_HEADERS)
    for name in debt_names:
        header.extend([f"{name} Interest", f"{name} Payment", f"{name} Balance"])

    rows: list[list[str]] = []
    for row in schedule:
        values = [
            str(row.month_number),
            row.date.isoformat(),
            _money(row.total_payment),
            _money(row.baseline_payment),
            _money(row.snowball_extra),
            _money(row.total_remaining_balance),
        ]
        by_name = {}
        for detail in row.debt_details:
            by_name.setdefault(detail.debt_name, detail)
        for name in debt_names:
            detail = by_name.get(name)
            if detail is None:
                values.extend(["", "", ""])
            else:
                values.extend(
                    [_money(detail.interest), _money(detail.payment), _money(detail.ending_balance)]
                )
        rows.append(values)
    return _write(rows, header)


def build_summary(
    *,
    plan_name: str,
    debts: Sequence[DebtAccount],
    monthly_budget: float,
    strategy: "Strategy | str",
    result: CalculationResult,
    generated_on: date | None = None,
) -> str:
    """Render the plain-text plan summary."""

    strategy = Strategy.parse(strategy)
    names = {debt.id: debt.name for debt in debts}
    lines = [
        "DEBT REDUCTION SUMMARY",
        "======================",
        f"Plan: {plan_name}",
        f"Generated: {(generated_on or date.today()).isoformat()}",
        "",
        "DEBTS",
        "-----",
    ]
    lines.extend(f"• {d.name}: ${d.balance:.2f} @ {d.apr * 100:.2f}% APR" for d in debts)
    lines.extend(
        [
            "",
            "STRATEGY",
            "--------",
            f"Monthly Budget: ${monthly_budget:.2f}",
            f"Strategy: {strategy.value.replace('_', ' ')}",
            "",
            "RESULTS",
            "-------",
            f"Total Interest Paid: ${result.total_interest_paid:.2f}",
            f"Months to Payoff: {result.months_to_payoff}",
            f"Debt-Free Date: {result.payoff_date.isoformat()}",
        ]
    )
    if not result.is_complete:
        lines.append("Note: balances remain after the simulation horizon.")
    lines.extend(["", "PAYOFF ORDER", "------------"])
    for position, debt_id in enumerate(result.payoff_order, start=1):
        paid_off = result.payoff_date_per_debt.get(debt_id)
        lines.append(
            f"{position}. {names.get(debt_id, 'Unknown')} - Paid off: "
            f"{paid_off.isoformat() if paid_off else 'not within horizon'}"
        )
    return "\n".join(lines)


def _write_text(content: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CSV line endings untouched on Windows
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(content)
    return output_path


def export_debts_csv(*, debts: Iterable[DebtAccount], output_path: Path) -> Path:
    """Write debts to CSV at ``output_path`` and return the path."""

    return _write_text(debts_to_csv(debts), output_path)


def export_schedule_csv(*, result: CalculationResult, output_path: Path) -> Path:
    """Write a payoff schedule to CSV at ``output_path`` and return the path."""

    return _write_text(schedule_to_csv(result.schedule), output_path)


def export_summary(*, summary: str, output_path: Path) -> Path:
    return _write_text(summary + "\n", output_path)


__all__ = [
    "DEBT_HEADERS",
    "SCHEDULE_HEADERS",
    "build_summary",
    "debts_to_csv",
    "export_debts_csv",
    "export_schedule_csv",
    "export_summary",
    "schedule_to_csv",
]
