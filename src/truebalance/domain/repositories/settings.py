"""Settings repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.settings import AppSetting


class SettingsRepository(Protocol):
    """Key/value store for plan state (active plan, sample-data flag)."""

    def get(self, key: str) -> Optional[AppSetting]:
        ...

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the stored text for ``key``, or ``default`` when unset."""
        ...

    def get_flag(self, key: str) -> bool:
        """Return True when ``key`` holds a truthy value such as ``"true"``."""
        ...

    def set(self, key: str, value: str, description: str | None = None) -> AppSetting:
        ...

    def delete(self, key: str) -> None:
        ...
