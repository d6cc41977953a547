"""SQLModel implementation of Plan repository."""

from __future__ import annotations

from typing import Callable, ContextManager, Iterable, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.debt import Debt
from ...models.plan import Plan


class SQLModelPlanRepository:
    """SQLModel-based plan repository implementation."""

    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, plan_id: str) -> Optional[Plan]:
        """Retrieve a plan by ID."""
        with self.session_factory() as session:
            return session.get(Plan, plan_id)

    def get_by_identifier(self, plan_identifier: str) -> Optional[Plan]:
        """Retrieve a plan by its short identifier."""
        with self.session_factory() as session:
            statement = select(Plan).where(Plan.plan_identifier == plan_identifier.upper())
            return session.exec(statement).first()

    def list_all(self) -> list[Plan]:
        """List all plans, oldest first."""
        with self.session_factory() as session:
            statement = select(Plan).order_by(Plan.created_at)  # type: ignore
            return list(session.exec(statement).all())

    def create(self, plan: Plan) -> Plan:
        """Create a new plan."""
        with self.session_factory() as session:
            session.add(plan)
            session.commit()
            session.refresh(plan)
            return plan

    def update(self, plan: Plan) -> Plan:
        """Update an existing plan."""
        with self.session_factory() as session:
            plan = session.merge(plan)
            session.commit()
            session.refresh(plan)
            return plan

    def delete(self, plan_id: str) -> None:
        """Delete a plan and its debts."""
        with self.session_factory() as session:
            for debt in session.exec(select(Debt).where(Debt.plan_id == plan_id)).all():
                session.delete(debt)
            session.flush()
            plan = session.get(Plan, plan_id)
            if plan:
                session.delete(plan)
            session.commit()

    def list_debts(self, plan_id: str) -> list[Debt]:
        """List a plan's debts in entered order."""
        with self.session_factory() as session:
            statement = (
                select(Debt)
                .where(Debt.plan_id == plan_id)
                .order_by(Debt.position)  # type: ignore
            )
            return list(session.exec(statement).all())

    def add_debt(self, plan_id: str, debt: Debt) -> Debt:
        """Append a debt to the end of a plan's entered order."""
        with self.session_factory() as session:
            last_position = session.exec(
                select(func.max(Debt.position)).where(Debt.plan_id == plan_id)
            ).first()
            debt.plan_id = plan_id
            debt.position = 0 if last_position is None else last_position + 1
            session.add(debt)
            session.commit()
            session.refresh(debt)
            return debt

    def update_debt(self, debt: Debt) -> Debt:
        """Update an existing debt."""
        with self.session_factory() as session:
            debt = session.merge(debt)
            session.commit()
            session.refresh(debt)
            return debt

    def delete_debt(self, debt_id: str) -> None:
        """Delete a debt by ID."""
        with self.session_factory() as session:
            debt = session.get(Debt, debt_id)
            if debt:
                session.delete(debt)
                session.commit()

    def replace_debts(self, plan_id: str, debts: Iterable[Debt]) -> list[Debt]:
        """Replace every debt of a plan, keeping the given order."""
        with self.session_factory() as session:
            for existing in session.exec(select(Debt).where(Debt.plan_id == plan_id)).all():
                session.delete(existing)
            session.flush()

            created: list[Debt] = []
            for position, debt in enumerate(debts):
                debt.plan_id = plan_id
                debt.position = position
                session.add(debt)
                created.append(debt)
            session.commit()
            for debt in created:
                session.refresh(debt)
            return created

    def get_total_debt(self, plan_id: str) -> float:
        """Sum the balances of every debt in a plan."""
        with self.session_factory() as session:
            debts = session.exec(select(Debt).where(Debt.plan_id == plan_id)).all()
            return sum(debt.balance for debt in debts)

    def get_total_min_payment(self, plan_id: str) -> float:
        """Sum the minimum payments of a plan's active debts."""
        with self.session_factory() as session:
            debts = session.exec(
                select(Debt).where(Debt.plan_id == plan_id).where(Debt.active == True)  # noqa: E712
            ).all()
            return sum(debt.min_payment for debt in debts)


__all__ = ["SQLModelPlanRepository"]
