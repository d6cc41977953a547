"""Debt payoff calculators.

The simulator projects a month-by-month payoff schedule for a list of debts
under a fixed monthly budget. Each month interest accrues at ``apr / 12`` on
the balance carried in, every active debt receives its minimum payment, and
whatever remains of the budget (the "snowball") flows down the payoff order
chosen by the strategy. Every monetary figure is rounded to cents as soon as
it is computed so that long schedules reproduce to the cent.
"""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

MAX_MONTHS = 480  # 40 years


class Strategy(str, Enum):
    """Payoff prioritization strategies."""

    SNOWBALL_LOWEST_BALANCE = "SNOWBALL_LOWEST_BALANCE"
    AVALANCHE_HIGHEST_APR = "AVALANCHE_HIGHEST_APR"
    ORDER_ENTERED = "ORDER_ENTERED"
    NO_SNOWBALL = "NO_SNOWBALL"
    CUSTOM_HIGHEST_FIRST = "CUSTOM_HIGHEST_FIRST"
    CUSTOM_LOWEST_FIRST = "CUSTOM_LOWEST_FIRST"

    @property
    def label(self) -> str:
        return STRATEGY_LABELS[self]

    @property
    def description(self) -> str:
        return STRATEGY_DESCRIPTIONS[self]

    @property
    def redistributes(self) -> bool:
        """Whether leftover budget is reallocated to the payoff order."""
        return self is not Strategy.NO_SNOWBALL

    @classmethod
    def parse(cls, value: "str | Strategy") -> "Strategy":
        """Resolve a member from its value, name or a short alias."""

        if isinstance(value, Strategy):
            return value
        key = str(value).strip()
        alias = STRATEGY_ALIASES.get(key.lower())
        if alias is not None:
            return alias
        try:
            return cls(key.upper())
        except ValueError:
            raise ValueError(f"Unknown payoff strategy: {value!r}") from None


STRATEGY_LABELS: dict[Strategy, str] = {
    Strategy.SNOWBALL_LOWEST_BALANCE: "Snowball (Lowest Balance First)",
    Strategy.AVALANCHE_HIGHEST_APR: "Avalanche (Highest APR First)",
    Strategy.ORDER_ENTERED: "Order Entered",
    Strategy.NO_SNOWBALL: "No Snowball (Minimums Only)",
    Strategy.CUSTOM_HIGHEST_FIRST: "Custom Order (Highest Rank First)",
    Strategy.CUSTOM_LOWEST_FIRST: "Custom Order (Lowest Rank First)",
}

STRATEGY_DESCRIPTIONS: dict[Strategy, str] = {
    Strategy.SNOWBALL_LOWEST_BALANCE: "Pay off smallest debts first for quick wins and motivation.",
    Strategy.AVALANCHE_HIGHEST_APR: "Pay off highest interest rate debts first to minimize total interest.",
    Strategy.ORDER_ENTERED: "Pay off debts in the order you entered them.",
    Strategy.NO_SNOWBALL: "Pay only minimum payments with no extra redistribution.",
    Strategy.CUSTOM_HIGHEST_FIRST: "Pay off debts with highest custom rank first.",
    Strategy.CUSTOM_LOWEST_FIRST: "Pay off debts with lowest custom rank first.",
}

STRATEGY_ALIASES: dict[str, Strategy] = {
    "snowball": Strategy.SNOWBALL_LOWEST_BALANCE,
    "avalanche": Strategy.AVALANCHE_HIGHEST_APR,
    "entered": Strategy.ORDER_ENTERED,
    "order-entered": Strategy.ORDER_ENTERED,
    "none": Strategy.NO_SNOWBALL,
    "minimums": Strategy.NO_SNOWBALL,
    "no-snowball": Strategy.NO_SNOWBALL,
    "custom-high": Strategy.CUSTOM_HIGHEST_FIRST,
    "custom-low": Strategy.CUSTOM_LOWEST_FIRST,
}


@dataclass(slots=True)
class DebtAccount:
    """Represents a debt input for payoff projections."""

    id: str
    name: str
    balance: float
    apr: float  # decimal fraction, 0.195 == 19.5%
    min_payment: float
    custom_rank: Optional[int] = None
    active: bool = True
    # Informational only; never read by the simulator.
    credit_limit: Optional[float] = None
    debt_type: Optional[str] = None
    fee_amount: Optional[float] = None
    fee_frequency: Optional[str] = None


@dataclass(slots=True, frozen=True)
class MonthlyDebtDetail:
    debt_id: str
    debt_name: str
    starting_balance: float
    interest: float
    payment: float
    ending_balance: float


@dataclass(slots=True)
class MonthlyScheduleRow:
    month_number: int
    date: date
    total_payment: float
    baseline_payment: float
    snowball_extra: float
    debt_details: list[MonthlyDebtDetail]
    total_remaining_balance: float


@dataclass(slots=True)
class CalculationResult:
    """Complete output of a payoff simulation."""

    schedule: list[MonthlyScheduleRow]
    total_interest_paid: float
    months_to_payoff: int
    payoff_date: date
    payoff_date_per_debt: dict[str, date]
    payoff_order: list[str]

    @property
    def is_complete(self) -> bool:
        """True unless the schedule stopped at the horizon with balances left."""

        if not self.schedule:
            return True
        return self.schedule[-1].total_remaining_balance == 0


@dataclass(slots=True, frozen=True)
class BudgetValidation:
    valid: bool
    initial_snowball: float
    message: Optional[str] = None


def round2(amount: float) -> float:
    """Round to cents with halves going toward positive infinity."""

    return math.floor(amount * 100 + 0.5) / 100


def add_months(value: date, months: int) -> date:
    """Return ``value`` shifted by ``months``, clamping to the month's last day."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def calculate_monthly_interest(balance: float, apr: float) -> float:
    return round2(balance * apr / 12)


def active_debts(debts: Iterable[DebtAccount]) -> list[DebtAccount]:
    """Debts that take part in a simulation, in input order."""

    return [debt for debt in debts if debt.active and debt.balance > 0]


def order_debts(debts: Iterable[DebtAccount], strategy: "Strategy | str") -> list[DebtAccount]:
    """Return active debts in payoff priority order for ``strategy``.

    Sorting is stable, so debts that tie on the sort key keep their input
    order. Debts without a custom rank go last in both custom variants.
    """

    strategy = Strategy.parse(strategy)
    candidates = active_debts(debts)

    if strategy is Strategy.SNOWBALL_LOWEST_BALANCE:
        return sorted(candidates, key=lambda d: d.balance)
    if strategy is Strategy.AVALANCHE_HIGHEST_APR:
        return sorted(candidates, key=lambda d: d.apr, reverse=True)
    if strategy in (Strategy.CUSTOM_HIGHEST_FIRST, Strategy.CUSTOM_LOWEST_FIRST):
        ranked = [d for d in candidates if d.custom_rank is not None]
        unranked = [d for d in candidates if d.custom_rank is None]
        ranked = sorted(
            ranked,
            key=lambda d: d.custom_rank,
            reverse=strategy is Strategy.CUSTOM_HIGHEST_FIRST,
        )
        return ranked + unranked
    # ORDER_ENTERED and NO_SNOWBALL keep the entered order.
    return candidates


def calculate_initial_snowball(monthly_budget: float, debts: Iterable[DebtAccount]) -> float:
    minimums = sum(debt.min_payment for debt in active_debts(debts))
    return round2(monthly_budget - minimums)


def validate_budget(monthly_budget: float, debts: Iterable[DebtAccount]) -> BudgetValidation:
    """Check that ``monthly_budget`` covers the minimum payments.

    The check is advisory; ``simulate`` runs on any budget.
    """

    initial_snowball = calculate_initial_snowball(monthly_budget, debts)
    if initial_snowball < 0:
        return BudgetValidation(
            valid=False,
            initial_snowball=initial_snowball,
            message=(
                f"Need to increase monthly payment by ${abs(initial_snowball):.2f} "
                "to cover minimum payments."
            ),
        )
    return BudgetValidation(valid=True, initial_snowball=initial_snowball)


def is_interest_only_risk(debt: DebtAccount) -> bool:
    """True when the minimum payment does not cover a month of interest."""

    return debt.min_payment < calculate_monthly_interest(debt.balance, debt.apr)


def simulate(
    debts: Iterable[DebtAccount],
    strategy: "Strategy | str",
    monthly_budget: float,
    start_date: date,
) -> CalculationResult:
    """Project the month-by-month payoff schedule.

    The payoff order is computed once from the full debt list and filtered to
    the debts still owing each month. The input debts are never modified; the
    run works on its own balance map keyed by debt id. Simulation stops when
    every balance is zero or after ``MAX_MONTHS`` months.
    """

    strategy = Strategy.parse(strategy)
    debt_list = list(debts)
    participating = active_debts(debt_list)
    by_id = {debt.id: debt for debt in participating}
    balances: dict[str, float] = {debt.id: debt.balance for debt in participating}
    payoff_order = [debt.id for debt in order_debts(debt_list, strategy)]

    schedule: list[MonthlyScheduleRow] = []
    payoff_dates: dict[str, date] = {}
    total_interest = 0.0
    month_number = 0

    while month_number < MAX_MONTHS:
        active_ids = [debt_id for debt_id, balance in balances.items() if balance > 0]
        if not active_ids:
            break

        month_number += 1
        current_date = add_months(start_date, month_number)

        interest: dict[str, float] = {}
        for debt_id in active_ids:
            accrued = calculate_monthly_interest(balances[debt_id], by_id[debt_id].apr)
            interest[debt_id] = accrued
            balances[debt_id] = round2(balances[debt_id] + accrued)
            total_interest = round2(total_interest + accrued)

        # Minimums are capped at what is owed so the last payment never overshoots.
        baseline: dict[str, float] = {}
        total_baseline = 0.0
        for debt_id in active_ids:
            payment = min(by_id[debt_id].min_payment, balances[debt_id])
            baseline[debt_id] = round2(payment)
            total_baseline = round2(total_baseline + payment)

        extra = dict.fromkeys(active_ids, 0.0)
        extra_pool = round2(monthly_budget - total_baseline) if strategy.redistributes else 0.0
        if extra_pool > 0:
            for debt_id in payoff_order:
                if extra_pool <= 0:
                    break
                if balances[debt_id] <= 0:
                    continue
                headroom = round2(balances[debt_id] - baseline[debt_id])
                if headroom > 0:
                    allocated = round2(min(extra_pool, headroom))
                    extra[debt_id] = allocated
                    extra_pool = round2(extra_pool - allocated)

        details: list[MonthlyDebtDetail] = []
        total_payment = 0.0
        total_extra = 0.0
        total_remaining = 0.0
        for debt_id in active_ids:
            starting_balance = round2(balances[debt_id] - interest[debt_id])
            payment = round2(baseline[debt_id] + extra[debt_id])
            balances[debt_id] = round2(max(0.0, balances[debt_id] - payment))
            total_payment = round2(total_payment + payment)
            total_extra = round2(total_extra + extra[debt_id])

            if balances[debt_id] == 0 and debt_id not in payoff_dates:
                payoff_dates[debt_id] = current_date

            details.append(
                MonthlyDebtDetail(
                    debt_id=debt_id,
                    debt_name=by_id[debt_id].name,
                    starting_balance=starting_balance,
                    interest=interest[debt_id],
                    payment=payment,
                    ending_balance=balances[debt_id],
                )
            )
            total_remaining = round2(total_remaining + balances[debt_id])

        schedule.append(
            MonthlyScheduleRow(
                month_number=month_number,
                date=current_date,
                total_payment=total_payment,
                baseline_payment=total_baseline,
                snowball_extra=total_extra,
                debt_details=details,
                total_remaining_balance=total_remaining,
            )
        )

    logger.debug(
        "Simulated payoff schedule",
        extra={
            "strategy": strategy.value,
            "debts": len(participating),
            "months": month_number,
        },
    )

    return CalculationResult(
        schedule=schedule,
        total_interest_paid=total_interest,
        months_to_payoff=month_number,
        payoff_date=schedule[-1].date if schedule else start_date,
        payoff_date_per_debt=payoff_dates,
        payoff_order=payoff_order,
    )


def utilization_rate(balance: float, credit_limit: Optional[float]) -> Optional[float]:
    """Percent of the credit limit in use, one decimal, capped at 100."""

    if not credit_limit or credit_limit <= 0:
        return None
    return min(math.floor(balance / credit_limit * 1000 + 0.5) / 10, 100.0)


def available_credit(balance: float, credit_limit: Optional[float]) -> Optional[float]:
    if not credit_limit or credit_limit <= 0:
        return None
    return max(credit_limit - balance, 0.0)


def utilization_color(rate: Optional[float]) -> Optional[str]:
    if rate is None:
        return None
    if rate < 30:
        return "green"
    if rate <= 70:
        return "yellow"
    return "red"


__all__ = [
    "MAX_MONTHS",
    "STRATEGY_ALIASES",
    "BudgetValidation",
    "CalculationResult",
    "DebtAccount",
    "MonthlyDebtDetail",
    "MonthlyScheduleRow",
    "Strategy",
    "active_debts",
    "add_months",
    "available_credit",
    "calculate_initial_snowball",
    "calculate_monthly_interest",
    "is_interest_only_risk",
    "order_debts",
    "round2",
    "simulate",
    "utilization_color",
    "utilization_rate",
    "validate_budget",
]
