"""Pytest configuration and shared fixtures for TrueBalance tests.

Provides an isolated SQLite database per test, repository and service
fixtures wired the same way the CLI wires them, and factories for debt
inputs so tests can describe scenarios compactly.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from truebalance import models  # noqa: F401  registers tables with SQLModel metadata
from truebalance.infra.database import create_session_factory
from truebalance.infra.repositories import SQLModelPlanRepository, SQLModelSettingsRepository
from truebalance.services.debts import DebtAccount
from truebalance.services.plans import PlanService

START_DATE = date(2024, 1, 1)


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture
def data_dir(tmp_path, monkeypatch) -> Path:
    """Point configuration at a throwaway data directory."""

    path = tmp_path / "data"
    monkeypatch.setenv("TRUEBALANCE_DATA_DIR", str(path))
    monkeypatch.delenv("TRUEBALANCE_DATABASE_URL", raising=False)
    monkeypatch.delenv("TRUEBALANCE_DEFAULT_BUDGET", raising=False)
    monkeypatch.delenv("TRUEBALANCE_DEFAULT_STRATEGY", raising=False)
    monkeypatch.setenv("TRUEBALANCE_DEV_MODE", "true")
    return path


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with every table created
    """
    db_path = tmp_path / "test.db"
    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory committing on success, matching the application wiring."""

    return create_session_factory(db_engine)


@pytest.fixture
def plan_repo(session_factory) -> SQLModelPlanRepository:
    return SQLModelPlanRepository(session_factory)


@pytest.fixture
def settings_repo(session_factory) -> SQLModelSettingsRepository:
    return SQLModelSettingsRepository(session_factory)


@pytest.fixture
def plan_service(plan_repo, settings_repo) -> PlanService:
    return PlanService(plan_repo, settings_repo, default_budget=500.0)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def debt_factory():
    """Factory for simulator inputs.

    Returns:
        Callable: Function that builds DebtAccount instances with sequential ids
    """
    counter = {"n": 0}

    def _create_debt(
        name: str | None = None,
        balance: float = 1000.0,
        apr: float = 0.18,
        min_payment: float = 25.0,
        custom_rank: int | None = None,
        active: bool = True,
        debt_id: str | None = None,
    ) -> DebtAccount:
        """Create a debt with sensible defaults.

        Args:
            name: Display name (defaults to "Debt N")
            balance: Current balance owed
            apr: Annual rate as a decimal fraction (0.18 == 18%)
            min_payment: Required monthly payment
            custom_rank: Optional user-assigned priority
            active: Whether the debt takes part in simulations
            debt_id: Explicit id (defaults to "debt-N")
        """
        counter["n"] += 1
        n = counter["n"]
        return DebtAccount(
            id=debt_id or f"debt-{n}",
            name=name or f"Debt {n}",
            balance=balance,
            apr=apr,
            min_payment=min_payment,
            custom_rank=custom_rank,
            active=active,
        )

    return _create_debt


@pytest.fixture
def debts_csv(tmp_path) -> Path:
    """A small debt CSV in the export layout."""

    path = tmp_path / "debts.csv"
    path.write_text(
        "name,balance,apr,minPayment\n"
        "Store Card,100,0,50\n"
        "Car Loan,500,0,25\n",
        encoding="utf-8",
    )
    return path


# =============================================================================
# Helper Functions
# =============================================================================


def assert_float_equal(actual: float, expected: float, tolerance: float = 0.01):
    """Assert that two floats are equal within a tolerance.

    Args:
        actual: Actual value
        expected: Expected value
        tolerance: Maximum allowed difference (default 0.01 = 1 cent)

    Raises:
        AssertionError: If values differ by more than tolerance
    """
    assert (
        abs(actual - expected) < tolerance
    ), f"Expected {expected}, got {actual} (diff: {abs(actual - expected)})"


def assert_cents(value: float):
    """Assert that ``value`` carries no more than two decimal places."""

    assert abs(value * 100 - round(value * 100)) < 1e-6, f"{value} is not rounded to cents"
