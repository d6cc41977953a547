"""Persisted plan state kept as key/value rows.

Two keys are written by :class:`~truebalance.services.plans.PlanService`:
``active_plan_id`` holds the id of the plan the CLI works on by default and
``has_sample_data`` is ``"true"`` while the sample plan is loaded. Values are
stored as text; :meth:`get_flag` reads the boolean ones back.
"""

from __future__ import annotations

from typing import Callable, ContextManager, Optional

from sqlmodel import Session, select

from ...models.settings import AppSetting

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _find(session: Session, key: str) -> Optional[AppSetting]:
    return session.exec(select(AppSetting).where(AppSetting.key == key)).first()


class SQLModelSettingsRepository:
    """Plan state stored in the ``app_setting`` table."""

    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[AppSetting]:
        with self.session_factory() as session:
            return _find(session, key)

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the stored text for ``key``, or ``default`` when unset."""
        setting = self.get(key)
        return default if setting is None else setting.value

    def get_flag(self, key: str) -> bool:
        value = self.get_value(key)
        return value is not None and value.strip().lower() in _TRUE_VALUES

    def set(self, key: str, value: str, description: str | None = None) -> AppSetting:
        """Insert or overwrite ``key``; the description is replaced too."""
        with self.session_factory() as session:
            setting = _find(session, key)
            if setting is None:
                setting = AppSetting(key=key, value=value, description=description)
                session.add(setting)
            else:
                setting.value = value
                setting.description = description
            session.commit()
            session.refresh(setting)
            return setting

    def delete(self, key: str) -> None:
        with self.session_factory() as session:
            setting = _find(session, key)
            if setting is not None:
                session.delete(setting)
                session.commit()


__all__ = ["SQLModelSettingsRepository"]
