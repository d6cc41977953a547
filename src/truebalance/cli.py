"""Command line interface for TrueBalance."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .logging_config import setup_logging
from .models.debt import Debt
from .models.plan import Plan
from .services import charts, export_csv, import_csv, plan_json
from .services.debts import (
    STRATEGY_ALIASES,
    STRATEGY_LABELS,
    CalculationResult,
    DebtAccount,
    Strategy,
    available_credit,
    is_interest_only_risk,
    order_debts,
    simulate,
    utilization_color,
    utilization_rate,
    validate_budget,
)
from .services.plans import PlanService, build_debt, from_debt_account

STRATEGY_CHOICES = [s.value for s in Strategy] + list(STRATEGY_ALIASES)


class _State:
    """Lazily builds the application context on first database access."""

    def __init__(self, config: BaseConfig) -> None:
        self.config = config
        self._ctx: Optional[AppContext] = None

    @property
    def ctx(self) -> AppContext:
        if self._ctx is None:
            self._ctx = create_app_context(self.config)
        return self._ctx


pass_state = click.make_pass_decorator(_State)


def _load_debts(csv_path: Path) -> list[DebtAccount]:
    try:
        debts = import_csv.load_debts_csv(csv_path=csv_path)
    except ValueError as exc:
        raise click.ClickException(f"Could not read {csv_path}: {exc}") from exc
    if not debts:
        raise click.ClickException(f"No debts found in {csv_path}")
    return debts


def _parse_strategy(value: str) -> Strategy:
    try:
        return Strategy.parse(value)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _require_plan(service: PlanService, plan_ref: Optional[str]) -> Plan:
    try:
        return service.require_plan(plan_ref)
    except LookupError as exc:
        raise click.ClickException(str(exc)) from exc


def _find_debt(service: PlanService, plan: Plan, debt_ref: str) -> Debt:
    """Resolve DEBT_REF as the number shown by ``plan show`` or a debt id."""

    debts = service.plans.list_debts(plan.id)
    if debt_ref.isdigit() and 1 <= int(debt_ref) <= len(debts):
        return debts[int(debt_ref) - 1]
    for debt in debts:
        if debt.id == debt_ref:
            return debt
    raise click.ClickException(f"No debt {debt_ref!r} in {plan.name}")


def _echo_result(result: CalculationResult, debts: list[DebtAccount], *, show_schedule: bool) -> None:
    names = {debt.id: debt.name for debt in debts}
    if show_schedule:
        for row in result.schedule:
            click.echo(
                f"{row.month_number:>4}  {row.date.isoformat()}  "
                f"paid ${row.total_payment:>10,.2f}  extra ${row.snowball_extra:>9,.2f}  "
                f"left ${row.total_remaining_balance:>11,.2f}"
            )
        click.echo("")
    click.echo(f"Months to payoff: {result.months_to_payoff}")
    click.echo(f"Debt-free date: {result.payoff_date.isoformat()}")
    click.echo(f"Total interest paid: ${result.total_interest_paid:,.2f}")
    click.echo("Payoff order:")
    for position, debt_id in enumerate(result.payoff_order, start=1):
        paid_off = result.payoff_date_per_debt.get(debt_id)
        click.echo(
            f"  {position}. {names.get(debt_id, debt_id)}"
            f" ({paid_off.isoformat() if paid_off else 'not paid off'})"
        )
    if not result.is_complete:
        click.secho(
            "Warning: balances remain after 480 months; minimum payments may not cover interest.",
            fg="yellow",
            err=True,
        )


def _write_outputs(
    result: CalculationResult,
    debts: list[DebtAccount],
    *,
    plan_name: str,
    budget: float,
    strategy: Strategy,
    schedule_out: Optional[Path],
    summary_out: Optional[Path],
    chart_out: Optional[Path],
) -> None:
    if schedule_out is not None:
        export_csv.export_schedule_csv(result=result, output_path=schedule_out)
        click.echo(f"Schedule written: {schedule_out}")
    if summary_out is not None:
        summary = export_csv.build_summary(
            plan_name=plan_name,
            debts=debts,
            monthly_budget=budget,
            strategy=strategy,
            result=result,
        )
        export_csv.export_summary(summary=summary, output_path=summary_out)
        click.echo(f"Summary written: {summary_out}")
    if chart_out is not None:
        charts.payoff_chart_png(result, chart_out)
        click.echo(f"Chart written: {chart_out}")


_output_options = [
    click.option("--schedule-out", type=click.Path(dir_okay=False, path_type=Path), help="Write the schedule CSV here."),
    click.option("--summary-out", type=click.Path(dir_okay=False, path_type=Path), help="Write a text summary here."),
    click.option("--chart-out", type=click.Path(dir_okay=False, path_type=Path), help="Write a payoff chart PNG here."),
    click.option("--show-schedule", is_flag=True, default=False, help="Print every month."),
]


def output_options(func):
    for option in reversed(_output_options):
        func = option(func)
    return func


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path), help="Override TRUEBALANCE_DATA_DIR.")
@click.option("--verbose", is_flag=True, default=False, help="Enable console and file logging.")
@click.pass_context
def main(ctx: click.Context, data_dir: Optional[Path], verbose: bool) -> None:
    """Plan debt payoff under a fixed monthly budget."""

    config = BaseConfig(data_dir=data_dir)
    if verbose:
        setup_logging(config)
    ctx.obj = _State(config)


@main.command("simulate")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--budget", type=float, required=True, help="Monthly amount available for debts.")
@click.option("--strategy", default="snowball", show_default=True, type=click.Choice(STRATEGY_CHOICES, case_sensitive=False))
@click.option("--start", "start_date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Balance date (default today).")
@output_options
def simulate_command(
    csv_path: Path,
    budget: float,
    strategy: str,
    start_date,
    schedule_out: Optional[Path],
    summary_out: Optional[Path],
    chart_out: Optional[Path],
    show_schedule: bool,
) -> None:
    """Simulate paying off the debts listed in CSV_PATH."""

    debts = _load_debts(csv_path)
    chosen = _parse_strategy(strategy)
    validation = validate_budget(budget, debts)
    if not validation.valid:
        click.secho(f"Warning: {validation.message}", fg="yellow", err=True)

    start = start_date.date() if start_date else date.today()
    result = simulate(debts, chosen, budget, start)
    _echo_result(result, debts, show_schedule=show_schedule)
    _write_outputs(
        result,
        debts,
        plan_name=csv_path.stem,
        budget=budget,
        strategy=chosen,
        schedule_out=schedule_out,
        summary_out=summary_out,
        chart_out=chart_out,
    )


@main.command("validate")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--budget", type=float, required=True)
def validate_command(csv_path: Path, budget: float) -> None:
    """Check that BUDGET covers the minimum payments in CSV_PATH."""

    validation = validate_budget(budget, _load_debts(csv_path))
    if validation.valid:
        click.echo(f"Budget OK. Initial snowball: ${validation.initial_snowball:,.2f}")
        return
    raise click.ClickException(validation.message or "Budget does not cover minimum payments.")


@main.command("order")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--strategy", default="snowball", show_default=True, type=click.Choice(STRATEGY_CHOICES, case_sensitive=False))
def order_command(csv_path: Path, strategy: str) -> None:
    """Print the payoff order for a strategy."""

    chosen = _parse_strategy(strategy)
    click.echo(STRATEGY_LABELS[chosen])
    for position, debt in enumerate(order_debts(_load_debts(csv_path), chosen), start=1):
        click.echo(f"  {position}. {debt.name}  ${debt.balance:,.2f} @ {debt.apr * 100:.2f}%")


@main.command("risk")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def risk_command(csv_path: Path) -> None:
    """List debts whose minimum payment does not cover monthly interest."""

    flagged = [debt for debt in _load_debts(csv_path) if is_interest_only_risk(debt)]
    if not flagged:
        click.echo("Every minimum payment covers its monthly interest.")
        return
    for debt in flagged:
        click.echo(f"{debt.name}: minimum ${debt.min_payment:,.2f} does not cover interest")


@main.command("sample")
@pass_state
def sample_command(state: _State) -> None:
    """Replace stored plans with the sample plan."""

    plan = state.ctx.plan_service.load_sample_plan()
    click.echo(f"Sample plan loaded: {plan.name} ({plan.plan_identifier})")


@main.group("plan")
def plan_group() -> None:
    """Manage stored plans."""


@plan_group.command("list")
@pass_state
def plan_list(state: _State) -> None:
    service = state.ctx.plan_service
    active = service.active_plan()
    for plan in state.ctx.plan_repo.list_all():
        marker = "*" if plan.id == active.id else " "
        click.echo(
            f"{marker} {plan.plan_identifier}  {plan.name}  v{plan.version}  "
            f"${plan.monthly_budget:,.2f}  {plan.strategy}"
        )


@plan_group.command("create")
@click.argument("name")
@click.option("--budget", type=float)
@click.option("--strategy", type=click.Choice(STRATEGY_CHOICES, case_sensitive=False))
@click.option("--balance-date", type=click.DateTime(formats=["%Y-%m-%d"]))
@pass_state
def plan_create(state: _State, name: str, budget: Optional[float], strategy: Optional[str], balance_date) -> None:
    """Create a plan and make it active."""

    service = state.ctx.plan_service
    plan = service.create_plan(name)
    changes = {}
    if budget is not None:
        changes["monthly_budget"] = budget
    if strategy is not None:
        changes["strategy"] = _parse_strategy(strategy)
    if balance_date is not None:
        changes["balance_date"] = balance_date.date()
    if changes:
        plan = service.update_plan(plan, bump_version=False, **changes)
    click.echo(f"Created {plan.plan_identifier}: {plan.name}")


@plan_group.command("show")
@click.option("--plan", "plan_ref", help="Plan id or identifier (default: active plan).")
@pass_state
def plan_show(state: _State, plan_ref: Optional[str]) -> None:
    """Print a plan's settings, debts and totals."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    repo = state.ctx.plan_repo
    click.echo(f"{plan.plan_identifier}  {plan.name}  v{plan.version}")
    click.echo(f"Balance date: {plan.balance_date.isoformat()}")
    click.echo(f"Monthly budget: ${plan.monthly_budget:,.2f}")
    click.echo(f"Strategy: {STRATEGY_LABELS[Strategy.parse(plan.strategy)]}")

    debts = repo.list_debts(plan.id)
    if not debts:
        click.echo("No debts yet.")
    for position, debt in enumerate(debts, start=1):
        line = (
            f"  {position}. {debt.name}  ${debt.balance:,.2f} @ {debt.apr * 100:.2f}%"
            f"  min ${debt.min_payment:,.2f}"
        )
        if not debt.active:
            line += "  (inactive)"
        rate = utilization_rate(debt.balance, debt.credit_limit)
        if rate is not None:
            line += "  utilization " + click.style(f"{rate:.1f}%", fg=utilization_color(rate))
            line += f"  available ${available_credit(debt.balance, debt.credit_limit):,.2f}"
        click.echo(line)

    click.echo(f"Total balance: ${repo.get_total_debt(plan.id):,.2f}")
    click.echo(f"Total minimum payments: ${repo.get_total_min_payment(plan.id):,.2f}")


@plan_group.command("set")
@click.option("--plan", "plan_ref", help="Plan id or identifier (default: active plan).")
@click.option("--budget", type=float, help="Monthly amount available for debts.")
@click.option("--strategy", type=click.Choice(STRATEGY_CHOICES, case_sensitive=False))
@click.option("--balance-date", type=click.DateTime(formats=["%Y-%m-%d"]))
@pass_state
def plan_set(
    state: _State,
    plan_ref: Optional[str],
    budget: Optional[float],
    strategy: Optional[str],
    balance_date,
) -> None:
    """Change a stored plan's budget, strategy or balance date."""

    if budget is None and strategy is None and balance_date is None:
        raise click.UsageError("Give at least one of --budget, --strategy or --balance-date.")
    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    if budget is not None:
        if budget < 0:
            raise click.BadParameter("must not be negative", param_hint="--budget")
        plan = service.set_monthly_budget(plan, budget)
    if strategy is not None:
        plan = service.set_strategy(plan, _parse_strategy(strategy))
    if balance_date is not None:
        plan = service.set_balance_date(plan, balance_date.date())
    click.echo(f"Updated {plan.name} (v{plan.version})")


@plan_group.command("delete")
@click.argument("plan_ref")
@click.confirmation_option(prompt="Delete this plan and its debts?")
@pass_state
def plan_delete(state: _State, plan_ref: str) -> None:
    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    service.delete_plan(plan.id)
    click.echo(f"Deleted {plan.plan_identifier}: {plan.name}")


@plan_group.command("use")
@click.argument("plan_ref")
@pass_state
def plan_use(state: _State, plan_ref: str) -> None:
    """Make PLAN_REF (id or identifier) the active plan."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    service.switch_plan(plan.id)
    click.echo(f"Active plan: {plan.name}")


@plan_group.command("import-debts")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--plan", "plan_ref", help="Plan id or identifier (default: active plan).")
@pass_state
def plan_import_debts(state: _State, csv_path: Path, plan_ref: Optional[str]) -> None:
    """Replace a plan's debts with those in CSV_PATH."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    created = service.import_debts(plan, [from_debt_account(d) for d in _load_debts(csv_path)])
    click.echo(f"Imported {len(created)} debts into {plan.name}")


@plan_group.command("export-json")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--plan", "plan_ref")
@pass_state
def plan_export_json(state: _State, output: Path, plan_ref: Optional[str]) -> None:
    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(plan_json.export_plan_json(plan, state.ctx.plan_repo.list_debts(plan.id)), encoding="utf-8")
    click.echo(f"Plan written: {output}")


@plan_group.command("export-debts")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--plan", "plan_ref")
@pass_state
def plan_export_debts(state: _State, output: Path, plan_ref: Optional[str]) -> None:
    """Write a plan's debts to a CSV that ``plan import-debts`` reads back."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    export_csv.export_debts_csv(debts=service.debt_accounts(plan), output_path=output)
    click.echo(f"Debts written: {output}")


@plan_group.command("import-json")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--plan", "plan_ref")
@pass_state
def plan_import_json(state: _State, source: Path, plan_ref: Optional[str]) -> None:
    """Overwrite a plan with the contents of an exported plan file."""

    service = state.ctx.plan_service
    try:
        imported, debts = plan_json.parse_plan_json(source.read_text(encoding="utf-8"))
        plan = service.require_plan(plan_ref)
    except (ValueError, LookupError) as exc:
        raise click.ClickException(str(exc)) from exc
    saved = service.import_plan(plan, imported, debts)
    click.echo(f"Imported {imported.name} into {saved.plan_identifier} (v{saved.version})")


@plan_group.command("simulate")
@click.option("--plan", "plan_ref")
@output_options
@pass_state
def plan_simulate(
    state: _State,
    plan_ref: Optional[str],
    schedule_out: Optional[Path],
    summary_out: Optional[Path],
    chart_out: Optional[Path],
    show_schedule: bool,
) -> None:
    """Simulate a stored plan."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    debts = service.debt_accounts(plan)
    validation = validate_budget(plan.monthly_budget, debts)
    if not validation.valid:
        click.secho(f"Warning: {validation.message}", fg="yellow", err=True)
    result = service.calculate(plan)
    _echo_result(result, debts, show_schedule=show_schedule)
    _write_outputs(
        result,
        debts,
        plan_name=plan.name,
        budget=plan.monthly_budget,
        strategy=Strategy.parse(plan.strategy),
        schedule_out=schedule_out,
        summary_out=summary_out,
        chart_out=chart_out,
    )


@plan_group.command("clear")
@click.confirmation_option(prompt="Delete every plan and start over?")
@pass_state
def plan_clear(state: _State) -> None:
    plan = state.ctx.plan_service.clear_all_data()
    click.echo(f"All data cleared. New plan: {plan.plan_identifier}")


@main.group("debt")
def debt_group() -> None:
    """Add, edit or remove debts in a stored plan."""


def _debt_fields(func):
    for option in reversed(
        [
            click.option("--rank", "custom_rank", type=int, help="Position for the custom strategies."),
            click.option("--credit-limit", type=float),
            click.option("--type", "debt_type"),
            click.option("--fee-amount", type=float),
            click.option("--fee-frequency", type=click.Choice(["MONTHLY", "ANNUAL"], case_sensitive=False)),
            click.option("--plan", "plan_ref", help="Plan id or identifier (default: active plan)."),
        ]
    ):
        func = option(func)
    return func


@debt_group.command("add")
@click.argument("name")
@click.option("--balance", type=float, required=True)
@click.option("--apr", type=float, required=True, help="Fraction (0.199) or percent (19.9).")
@click.option("--min-payment", type=float, required=True)
@_debt_fields
@pass_state
def debt_add(
    state: _State,
    name: str,
    balance: float,
    apr: float,
    min_payment: float,
    custom_rank: Optional[int],
    credit_limit: Optional[float],
    debt_type: Optional[str],
    fee_amount: Optional[float],
    fee_frequency: Optional[str],
    plan_ref: Optional[str],
) -> None:
    """Append a debt to a plan."""

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    debt = build_debt(
        name=name,
        balance=balance,
        apr=import_csv.normalize_apr(apr),
        min_payment=min_payment,
        custom_rank=custom_rank,
        credit_limit=credit_limit,
        debt_type=debt_type,
        fee_amount=fee_amount,
        fee_frequency=(fee_frequency or "MONTHLY").upper() if fee_amount is not None else None,
    )
    service.add_debt(plan, debt)
    click.echo(f"Added {name} to {plan.name}")


@debt_group.command("edit")
@click.argument("debt_ref")
@click.option("--name")
@click.option("--balance", type=float)
@click.option("--apr", type=float, help="Fraction (0.199) or percent (19.9).")
@click.option("--min-payment", type=float)
@_debt_fields
@pass_state
def debt_edit(state: _State, debt_ref: str, plan_ref: Optional[str], **values) -> None:
    """Change fields of DEBT_REF (its number in ``plan show`` or its id)."""

    changes = {key: value for key, value in values.items() if value is not None}
    if not changes:
        raise click.UsageError("Nothing to change.")
    if "apr" in changes:
        changes["apr"] = import_csv.normalize_apr(changes["apr"])
    if "fee_frequency" in changes:
        changes["fee_frequency"] = changes["fee_frequency"].upper()

    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    debt = _find_debt(service, plan, debt_ref)
    updated = service.update_debt(plan, debt.id, **changes)
    click.echo(f"Updated {updated.name}")


@debt_group.command("remove")
@click.argument("debt_ref")
@click.option("--plan", "plan_ref")
@pass_state
def debt_remove(state: _State, debt_ref: str, plan_ref: Optional[str]) -> None:
    service = state.ctx.plan_service
    plan = _require_plan(service, plan_ref)
    debt = _find_debt(service, plan, debt_ref)
    service.delete_debt(plan, debt.id)
    click.echo(f"Removed {debt.name} from {plan.name}")


if __name__ == "__main__":  # pragma: no cover
    main()
