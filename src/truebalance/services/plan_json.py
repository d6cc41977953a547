"""Plan export and import in the ``TrueBalance-v1`` JSON format."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..models.debt import Debt
from ..models.plan import Plan, new_id
from .debts import Strategy
from .plans import DEFAULT_VERSION, generate_plan_identifier

EXPORT_FORMAT = "TrueBalance-v1"


class PlanImportError(ValueError):
    """Raised when a plan file cannot be parsed or lacks required fields."""


class DebtDocument(BaseModel):
    """Debt entry of an exported plan."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = "Imported Debt"
    balance: float = 0.0
    apr: float = 0.0
    min_payment: float = 0.0
    custom_rank: Optional[int] = None
    active: Optional[bool] = None
    credit_limit: Optional[float] = None
    debt_type: Optional[str] = Field(default=None, alias="type")
    fee_amount: Optional[float] = None
    fee_frequency: Optional[str] = None


class PlanDocument(BaseModel):
    """Top-level exported plan."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    name: str
    debts: list[DebtDocument]
    balance_date: date = Field(default_factory=date.today)
    monthly_budget: float = 500.0
    strategy: Strategy = Strategy.SNOWBALL_LOWEST_BALANCE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    version: str = DEFAULT_VERSION
    plan_identifier: Optional[str] = None

    @field_validator("id", "name")
    @classmethod
    def require_text(cls, value: str) -> str:
        if not value or not str(value).strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("balance_date", mode="before")
    @classmethod
    def strip_time(cls, value):
        """Accept full ISO timestamps for the balance date."""

        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @field_validator("strategy", mode="before")
    @classmethod
    def parse_strategy(cls, value):
        return Strategy.parse(value)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def export_plan_json(
    plan: Plan, debts: Iterable[Debt], *, exported_at: datetime | None = None
) -> str:
    """Serialize a plan and its debts with export metadata."""

    data = {
        "id": plan.id,
        "name": plan.name,
        "balanceDate": plan.balance_date.isoformat(),
        "monthlyBudget": plan.monthly_budget,
        "strategy": Strategy.parse(plan.strategy).value,
        "debts": [
            {
                "id": debt.id,
                "name": debt.name,
                "balance": debt.balance,
                "apr": debt.apr,
                "minPayment": debt.min_payment,
                "customRank": debt.custom_rank,
                "active": debt.active,
                "creditLimit": debt.credit_limit,
                "type": debt.debt_type,
                "feeAmount": debt.fee_amount,
                "feeFrequency": debt.fee_frequency,
            }
            for debt in debts
        ],
        "createdAt": _iso(plan.created_at),
        "updatedAt": _iso(plan.updated_at),
        "lastUpdatedAt": _iso(plan.last_updated_at),
        "version": plan.version,
        "planIdentifier": plan.plan_identifier,
        "exportedAt": (exported_at or datetime.now(timezone.utc)).isoformat(),
        "exportFormat": EXPORT_FORMAT,
    }
    return json.dumps(data, indent=2)


def parse_plan_json(text: str) -> tuple[Plan, list[Debt]]:
    """Parse an exported plan into unsaved ``Plan`` and ``Debt`` rows.

    Missing ``lastUpdatedAt`` falls back to ``updatedAt`` (then now), a
    missing version becomes ``"1.0"`` and a missing identifier is generated.
    """

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PlanImportError("Could not parse plan file") from exc
    if not isinstance(raw, dict) or not raw.get("id") or not raw.get("name") or not isinstance(
        raw.get("debts"), list
    ):
        raise PlanImportError("Invalid plan format: missing required fields")

    try:
        document = PlanDocument.model_validate(raw)
    except ValidationError as exc:
        raise PlanImportError(f"Invalid plan format: {exc.error_count()} invalid field(s)") from exc

    now = datetime.now(timezone.utc)
    plan = Plan(
        id=document.id,
        name=document.name,
        balance_date=document.balance_date,
        monthly_budget=document.monthly_budget,
        strategy=document.strategy.value,
        created_at=document.created_at or now,
        updated_at=document.updated_at or now,
        last_updated_at=document.last_updated_at or document.updated_at or now,
        version=document.version or DEFAULT_VERSION,
        plan_identifier=document.plan_identifier or generate_plan_identifier(),
    )
    debts = [
        Debt(
            id=entry.id,
            plan_id=plan.id,
            position=position,
            name=entry.name,
            balance=entry.balance,
            apr=entry.apr,
            min_payment=entry.min_payment,
            custom_rank=entry.custom_rank,
            active=entry.balance > 0 if entry.active is None else entry.active,
            credit_limit=entry.credit_limit,
            debt_type=entry.debt_type,
            fee_amount=entry.fee_amount,
            fee_frequency=entry.fee_frequency,
        )
        for position, entry in enumerate(document.debts)
    ]
    return plan, debts


__all__ = ["EXPORT_FORMAT", "PlanImportError", "export_plan_json", "parse_plan_json"]
