"""Debt payoff plan entity."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import ClassVar

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Plan(SQLModel, table=True):
    """A named payoff plan: budget, strategy and balance date for a set of debts."""

    __tablename__: ClassVar[str] = "plan"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    name: str = Field(nullable=False, max_length=120, index=True)
    balance_date: date = Field(default_factory=date.today, nullable=False)
    monthly_budget: float = Field(default=500.0, nullable=False)
    strategy: str = Field(default="SNOWBALL_LOWEST_BALANCE", max_length=32)
    version: str = Field(default="1.0", max_length=16)
    plan_identifier: str = Field(default="", max_length=16)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)
    last_updated_at: datetime = Field(default_factory=_utcnow, nullable=False)
