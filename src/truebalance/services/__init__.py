"""Service module exports."""

from . import (
    charts,
    debts,
    export_csv,
    import_csv,
    plan_json,
    plans,
    sample_data,
)

__all__ = [
    "charts",
    "debts",
    "export_csv",
    "import_csv",
    "plan_json",
    "plans",
    "sample_data",
]
