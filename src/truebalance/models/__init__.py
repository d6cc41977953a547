"""SQLModel table exports."""

from .debt import Debt
from .plan import Plan
from .settings import AppSetting

__all__ = [
    "AppSetting",
    "Debt",
    "Plan",
]
