"""Plan repository protocol."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from ...models.debt import Debt
from ...models.plan import Plan


class PlanRepository(Protocol):
    """Repository for managing plans and the debts they hold."""

    def get_by_id(self, plan_id: str) -> Optional[Plan]:
        """Retrieve a plan by ID."""
        ...

    def get_by_identifier(self, plan_identifier: str) -> Optional[Plan]:
        """Retrieve a plan by its short identifier (e.g. ``TBP-9F3A``)."""
        ...

    def list_all(self) -> list[Plan]:
        """List all plans, oldest first."""
        ...

    def create(self, plan: Plan) -> Plan:
        """Create a new plan."""
        ...

    def update(self, plan: Plan) -> Plan:
        """Update an existing plan."""
        ...

    def delete(self, plan_id: str) -> None:
        """Delete a plan and its debts."""
        ...

    def list_debts(self, plan_id: str) -> list[Debt]:
        """List a plan's debts in entered order."""
        ...

    def add_debt(self, plan_id: str, debt: Debt) -> Debt:
        """Append a debt to the end of a plan's entered order."""
        ...

    def update_debt(self, debt: Debt) -> Debt:
        """Update an existing debt."""
        ...

    def delete_debt(self, debt_id: str) -> None:
        """Delete a debt by ID."""
        ...

    def replace_debts(self, plan_id: str, debts: Iterable[Debt]) -> list[Debt]:
        """Replace every debt of a plan, keeping the given order."""
        ...

    def get_total_debt(self, plan_id: str) -> float:
        """Sum the balances of every debt in a plan."""
        ...

    def get_total_min_payment(self, plan_id: str) -> float:
        """Sum the minimum payments of a plan's active debts."""
        ...
