"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelPlanRepository, SQLModelSettingsRepository
from .services.plans import PlanService


@dataclass
class AppContext:
    """Configuration, repositories and services shared by entry points."""

    config: BaseConfig
    engine: Any
    session_factory: Callable[[], ContextManager[Session]]
    plan_repo: SQLModelPlanRepository
    settings_repo: SQLModelSettingsRepository
    plan_service: PlanService


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create the database schema, repositories and plan service."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    plan_repo = SQLModelPlanRepository(session_factory)
    settings_repo = SQLModelSettingsRepository(session_factory)
    plan_service = PlanService(
        plan_repo,
        settings_repo,
        default_budget=config.DEFAULT_BUDGET,
        default_strategy=config.DEFAULT_STRATEGY,
    )

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        plan_repo=plan_repo,
        settings_repo=settings_repo,
        plan_service=plan_service,
    )
