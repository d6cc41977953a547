"""Chart data derivation and PNG rendering for payoff schedules."""

from __future__ import annotations

import math
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from .debts import CalculationResult, MonthlyScheduleRow, round2

MAX_POINTS = 60


def _sampled(rows: Sequence, max_points: int = MAX_POINTS) -> list:
    """Every ``step``-th entry plus the last one, keeping charts readable."""

    step = math.ceil(len(rows) / max_points) if len(rows) > max_points else 1
    return [row for index, row in enumerate(rows) if index % step == 0 or index == len(rows) - 1]


def balance_series(schedule: Sequence[MonthlyScheduleRow]) -> list[dict]:
    """Total remaining balance per (sampled) month."""

    return [
        {"month": row.month_number, "date": row.date.isoformat(), "balance": row.total_remaining_balance}
        for row in _sampled(schedule)
    ]


def debt_breakdown_series(schedule: Sequence[MonthlyScheduleRow]) -> list[dict]:
    """Per-debt ending balances per (sampled) month, keyed by debt id."""

    points = []
    for row in _sampled(schedule):
        point: dict = {"month": row.month_number, "date": row.date.isoformat()}
        for detail in row.debt_details:
            point[detail.debt_id] = detail.ending_balance
        points.append(point)
    return points


def cumulative_interest_series(schedule: Sequence[MonthlyScheduleRow]) -> list[dict]:
    """Interest for each month and the running total, sampled after accumulation."""

    points = []
    running = 0.0
    for row in schedule:
        monthly = round2(sum(detail.interest for detail in row.debt_details))
        running = round2(running + monthly)
        points.append(
            {
                "month": row.month_number,
                "date": row.date.isoformat(),
                "interest": monthly,
                "cumulative_interest": running,
            }
        )
    return _sampled(points)


def payoff_chart_png(result: CalculationResult, output_path: Path | None = None) -> Path:
    """Render the remaining-balance projection and return the PNG path."""

    series = balance_series(result.schedule)
    fig, ax = plt.subplots(figsize=(10, 6))

    if not series:
        ax.text(0.5, 0.5, "No debts to pay off", ha="center", va="center", fontsize=14, color="#666")
        ax.axis("off")
    else:
        x_vals = [point["month"] for point in series]
        totals = [point["balance"] for point in series]
        ax.plot(x_vals, totals, marker="o", color="#4F46E5", linewidth=2.5, markersize=4)
        ax.fill_between(x_vals, totals, color="#E0E7FF", alpha=0.5)

        if result.is_complete:
            ax.scatter([x_vals[-1]], [0], s=200, c="gold", marker="*", zorder=5, edgecolors="#F59E0B")
            ax.annotate(
                "DEBT FREE!",
                (x_vals[-1], 0),
                xytext=(0, 25),
                textcoords="offset points",
                ha="center",
                fontsize=12,
                fontweight="bold",
                color="#16A34A",
            )

        ax.grid(True, linestyle="--", alpha=0.3)
        ax.set_axisbelow(True)
        ax.set_title("Debt Payoff Projection", fontsize=14, fontweight="bold", pad=15)
        ax.set_ylabel("Remaining Balance ($)", fontsize=11)
        ax.set_xlabel("Month", fontsize=11)
        ax.yaxis.set_major_formatter(mticker.StrMethodFormatter("${x:,.0f}"))

    if output_path is None:
        with NamedTemporaryFile(delete=False, suffix=".png") as tmp:
            output_path = Path(tmp.name)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, bbox_inches="tight", dpi=100)
    plt.close(fig)
    return output_path


__all__ = [
    "MAX_POINTS",
    "balance_series",
    "cumulative_interest_series",
    "debt_breakdown_series",
    "payoff_chart_png",
]
