"""Plan lifecycle: creation, versioning, debt edits and simulation.

The payoff engine in :mod:`truebalance.services.debts` only sees plain
``DebtAccount`` values. This module is the seam between it and storage: it
loads plans through a :class:`PlanRepository`, keeps ``active`` in step with
``balance`` on every debt edit, bumps the plan version on each change and
tracks which plan is active through the settings repository.
"""

from __future__ import annotations

import logging
import random
from dataclasses import fields
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from ..domain.repositories import PlanRepository, SettingsRepository
from ..models.debt import Debt
from ..models.plan import Plan, new_id
from .debts import CalculationResult, DebtAccount, Strategy, simulate
from .sample_data import (
    SAMPLE_DATA_SETTING,
    SAMPLE_MONTHLY_BUDGET,
    SAMPLE_PLAN_NAME,
    generate_sample_debts,
)

logger = logging.getLogger(__name__)

ACTIVE_PLAN_SETTING = "active_plan_id"
DEFAULT_PLAN_NAME = "My Debt Plan"
DEFAULT_VERSION = "1.0"
# No O/0 or I/1 so identifiers read back unambiguously.
PLAN_IDENTIFIER_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

_DEBT_FIELDS = {
    "name",
    "balance",
    "apr",
    "min_payment",
    "custom_rank",
    "credit_limit",
    "debt_type",
    "fee_amount",
    "fee_frequency",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_plan_identifier(rng: random.Random | None = None) -> str:
    """Return a short identifier such as ``TBP-9F3A``."""

    chooser = rng or random
    return "TBP-" + "".join(chooser.choice(PLAN_IDENTIFIER_ALPHABET) for _ in range(4))


def increment_version(current: str) -> str:
    """Bump the minor part: ``"1.0" -> "1.1"``, ``"1.9" -> "1.10"``."""

    parts = (current or "").split(".")

    def _as_int(raw: str) -> int:
        try:
            return int(raw)
        except ValueError:
            return 0

    major = _as_int(parts[0]) or 1
    minor = _as_int(parts[1]) if len(parts) > 1 else 0
    return f"{major}.{minor + 1}"


def build_plan(
    name: str = DEFAULT_PLAN_NAME,
    *,
    monthly_budget: float = 500.0,
    strategy: "Strategy | str" = Strategy.SNOWBALL_LOWEST_BALANCE,
    balance_date: date | None = None,
) -> Plan:
    """Return a new unsaved plan with fresh identifiers and timestamps."""

    now = _utcnow()
    return Plan(
        id=new_id(),
        name=name,
        balance_date=balance_date or date.today(),
        monthly_budget=monthly_budget,
        strategy=Strategy.parse(strategy).value,
        version=DEFAULT_VERSION,
        plan_identifier=generate_plan_identifier(),
        created_at=now,
        updated_at=now,
        last_updated_at=now,
    )


def build_debt(
    *,
    name: str,
    balance: float,
    apr: float,
    min_payment: float,
    custom_rank: Optional[int] = None,
    credit_limit: Optional[float] = None,
    debt_type: Optional[str] = None,
    fee_amount: Optional[float] = None,
    fee_frequency: Optional[str] = None,
) -> Debt:
    """Return a new unsaved debt; ``active`` follows ``balance``."""

    return Debt(
        id=new_id(),
        plan_id="",
        name=name,
        balance=balance,
        apr=apr,
        min_payment=min_payment,
        custom_rank=custom_rank,
        active=balance > 0,
        credit_limit=credit_limit,
        debt_type=debt_type,
        fee_amount=fee_amount,
        fee_frequency=fee_frequency,
    )


def to_debt_account(debt: Debt) -> DebtAccount:
    """Adapt a stored debt into the simulator's input shape."""

    return DebtAccount(
        id=debt.id,
        name=debt.name,
        balance=float(debt.balance or 0.0),
        apr=float(debt.apr or 0.0),
        min_payment=float(debt.min_payment or 0.0),
        custom_rank=debt.custom_rank,
        active=bool(debt.active),
        credit_limit=debt.credit_limit,
        debt_type=debt.debt_type,
        fee_amount=debt.fee_amount,
        fee_frequency=debt.fee_frequency,
    )


def to_debt_accounts(debts: Iterable[Debt]) -> list[DebtAccount]:
    return [to_debt_account(debt) for debt in debts]


def from_debt_account(account: DebtAccount) -> Debt:
    """Build an unsaved stored debt from a simulator input."""

    values = {f.name: getattr(account, f.name) for f in fields(DebtAccount)}
    return Debt(plan_id="", **values)


class PlanService:
    """Plan and debt operations on top of the repositories."""

    def __init__(
        self,
        plans: PlanRepository,
        settings: SettingsRepository,
        *,
        default_budget: float = 500.0,
        default_strategy: "Strategy | str" = Strategy.SNOWBALL_LOWEST_BALANCE,
    ) -> None:
        self.plans = plans
        self.settings = settings
        self.default_budget = default_budget
        self.default_strategy = Strategy.parse(default_strategy)

    # -- plans -------------------------------------------------------------

    def _create_default_plan(self, name: str = DEFAULT_PLAN_NAME) -> Plan:
        plan = self.plans.create(
            build_plan(name, monthly_budget=self.default_budget, strategy=self.default_strategy)
        )
        self.switch_plan(plan.id)
        logger.info("Created plan", extra={"plan_id": plan.id, "plan_identifier": plan.plan_identifier})
        return plan

    def active_plan(self) -> Plan:
        """Return the active plan, creating a default one on first run."""

        active_id = self.settings.get_value(ACTIVE_PLAN_SETTING)
        if active_id is not None:
            plan = self.plans.get_by_id(active_id)
            if plan is not None:
                return plan

        existing = self.plans.list_all()
        if not existing:
            return self._create_default_plan()
        self.switch_plan(existing[0].id)
        return existing[0]

    def require_plan(self, plan_id: str | None = None) -> Plan:
        """Return the plan by id or short identifier, or the active plan."""

        if plan_id is None:
            return self.active_plan()
        plan = self.plans.get_by_id(plan_id) or self.plans.get_by_identifier(plan_id)
        if plan is None:
            raise LookupError(f"No plan found for {plan_id!r}")
        return plan

    def switch_plan(self, plan_id: str) -> None:
        self.settings.set(ACTIVE_PLAN_SETTING, plan_id, description="Currently selected plan")

    def create_plan(self, name: str = "New Plan") -> Plan:
        return self._create_default_plan(name)

    def delete_plan(self, plan_id: str) -> None:
        """Delete a plan; deleting the last plan leaves a fresh default behind."""

        self.plans.delete(plan_id)
        remaining = self.plans.list_all()
        if not remaining:
            self._create_default_plan()
            return
        if self.settings.get_value(ACTIVE_PLAN_SETTING) in (None, plan_id):
            self.switch_plan(remaining[0].id)

    def update_plan(self, plan: Plan, *, bump_version: bool = True, **changes) -> Plan:
        """Apply ``changes`` to ``plan``, refresh timestamps and bump its version."""

        if "strategy" in changes:
            changes["strategy"] = Strategy.parse(changes["strategy"]).value
        for key, value in changes.items():
            setattr(plan, key, value)
        now = _utcnow()
        plan.updated_at = now
        plan.last_updated_at = now
        if bump_version:
            plan.version = increment_version(plan.version or DEFAULT_VERSION)
        return self.plans.update(plan)

    def set_strategy(self, plan: Plan, strategy: "Strategy | str") -> Plan:
        return self.update_plan(plan, strategy=strategy)

    def set_monthly_budget(self, plan: Plan, monthly_budget: float) -> Plan:
        return self.update_plan(plan, monthly_budget=monthly_budget)

    def set_balance_date(self, plan: Plan, balance_date: date) -> Plan:
        return self.update_plan(plan, balance_date=balance_date)

    # -- debts -------------------------------------------------------------

    def add_debt(self, plan: Plan, debt: Debt) -> Debt:
        debt.active = debt.balance > 0
        created = self.plans.add_debt(plan.id, debt)
        self.update_plan(plan)
        return created

    def update_debt(self, plan: Plan, debt_id: str, **changes) -> Debt:
        """Update one debt; changing the balance re-derives ``active``."""

        unknown = set(changes) - _DEBT_FIELDS
        if unknown:
            raise ValueError(f"Unknown debt fields: {sorted(unknown)}")
        debt = next((d for d in self.plans.list_debts(plan.id) if d.id == debt_id), None)
        if debt is None:
            raise LookupError(f"No debt {debt_id!r} in plan {plan.id!r}")
        for key, value in changes.items():
            setattr(debt, key, value)
        if "balance" in changes:
            debt.active = debt.balance > 0
        updated = self.plans.update_debt(debt)
        self.update_plan(plan)
        return updated

    def delete_debt(self, plan: Plan, debt_id: str) -> None:
        self.plans.delete_debt(debt_id)
        self.update_plan(plan)

    def import_debts(self, plan: Plan, debts: Iterable[Debt]) -> list[Debt]:
        """Replace all of a plan's debts with ``debts`` (fresh ids)."""

        fresh: list[Debt] = []
        for debt in debts:
            debt.id = new_id()
            debt.active = debt.balance > 0
            fresh.append(debt)
        created = self.plans.replace_debts(plan.id, fresh)
        self.update_plan(plan)
        logger.info("Imported debts", extra={"plan_id": plan.id, "count": len(created)})
        return created

    def import_plan(self, plan: Plan, imported: Plan, debts: Iterable[Debt]) -> Plan:
        """Overwrite ``plan`` with an imported plan, keeping its own id.

        Imported debts get fresh ids.
        """

        plan.name = imported.name
        plan.balance_date = imported.balance_date
        plan.monthly_budget = imported.monthly_budget
        plan.strategy = Strategy.parse(imported.strategy).value
        plan.created_at = imported.created_at
        plan.updated_at = imported.updated_at
        plan.version = increment_version(imported.version or DEFAULT_VERSION)
        plan.plan_identifier = (
            imported.plan_identifier or plan.plan_identifier or generate_plan_identifier()
        )
        plan.last_updated_at = _utcnow()
        saved = self.plans.update(plan)
        fresh = []
        for debt in debts:
            debt.id = new_id()
            fresh.append(debt)
        self.plans.replace_debts(saved.id, fresh)
        logger.info("Imported plan", extra={"plan_id": saved.id, "count": len(fresh)})
        return saved

    # -- sample data -------------------------------------------------------

    def load_sample_plan(self) -> Plan:
        """Replace every plan with the sample plan and flag sample data as active."""

        for existing in self.plans.list_all():
            self.plans.delete(existing.id)
        plan = self.plans.create(
            build_plan(
                SAMPLE_PLAN_NAME,
                monthly_budget=SAMPLE_MONTHLY_BUDGET,
                strategy=Strategy.SNOWBALL_LOWEST_BALANCE,
            )
        )
        self.plans.replace_debts(plan.id, generate_sample_debts())
        self.switch_plan(plan.id)
        self.settings.set(SAMPLE_DATA_SETTING, "true", description="Sample data loaded")
        return plan

    def has_sample_data(self) -> bool:
        return self.settings.get_flag(SAMPLE_DATA_SETTING)

    def clear_all_data(self) -> Plan:
        """Delete every plan and start over with a fresh default plan."""

        for existing in self.plans.list_all():
            self.plans.delete(existing.id)
        self.settings.delete(SAMPLE_DATA_SETTING)
        return self._create_default_plan()

    # -- calculation -------------------------------------------------------

    def debt_accounts(self, plan: Plan) -> list[DebtAccount]:
        return to_debt_accounts(self.plans.list_debts(plan.id))

    def calculate(self, plan: Plan) -> CalculationResult:
        """Run the payoff simulation for a stored plan."""

        result = simulate(
            self.debt_accounts(plan),
            plan.strategy,
            plan.monthly_budget,
            plan.balance_date,
        )
        if result.is_complete:
            logger.info(
                "Plan simulated",
                extra={"plan_id": plan.id, "months": result.months_to_payoff},
            )
        else:
            logger.warning(
                "Plan does not pay off within the simulation horizon",
                extra={"plan_id": plan.id, "months": result.months_to_payoff},
            )
        return result


__all__ = [
    "ACTIVE_PLAN_SETTING",
    "PLAN_IDENTIFIER_ALPHABET",
    "PlanService",
    "build_debt",
    "build_plan",
    "from_debt_account",
    "generate_plan_identifier",
    "increment_version",
    "to_debt_account",
    "to_debt_accounts",
]
