"""Repository protocol definitions for domain layer."""

from .plan import PlanRepository
from .settings import SettingsRepository

__all__ = [
    "PlanRepository",
    "SettingsRepository",
]
