"""Concrete repository implementations using SQLModel."""

from .plan import SQLModelPlanRepository
from .settings import SQLModelSettingsRepository

__all__ = [
    "SQLModelPlanRepository",
    "SQLModelSettingsRepository",
]
