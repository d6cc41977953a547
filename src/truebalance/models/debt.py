"""Debt entities stored per plan."""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from .plan import new_id


class Debt(SQLModel, table=True):
    """A single owed balance belonging to a plan."""

    __tablename__: ClassVar[str] = "debt"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    plan_id: str = Field(foreign_key="plan.id", nullable=False, index=True)
    position: int = Field(default=0, nullable=False)  # entered order within the plan
    name: str = Field(nullable=False, max_length=120)
    balance: float = Field(nullable=False)
    apr: float = Field(default=0.0, nullable=False)  # decimal fraction
    min_payment: float = Field(default=0.0, nullable=False)
    custom_rank: Optional[int] = Field(default=None)
    active: bool = Field(default=True, nullable=False)
    credit_limit: Optional[float] = Field(default=None)
    debt_type: Optional[str] = Field(default=None, max_length=32)
    fee_amount: Optional[float] = Field(default=None)
    fee_frequency: Optional[str] = Field(default=None, max_length=16)
