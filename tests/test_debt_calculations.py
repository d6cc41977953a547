"""Month-by-month simulation tests.

Scenarios use round numbers (mostly zero APR) so the expected schedule can
be worked out by hand; property tests then check the invariants that must
hold for any schedule.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date

import pytest

from tests.conftest import START_DATE, assert_cents, assert_float_equal
from truebalance.services.debts import MAX_MONTHS, Strategy, round2, simulate, validate_budget


def _detail(row, debt_id):
    return next(d for d in row.debt_details if d.debt_id == debt_id)


class TestScenarios:
    def test_single_debt_paid_in_one_month_when_minimum_covers_interest(self, debt_factory):
        debt = debt_factory(debt_id="card", balance=1200.0, apr=0.12, min_payment=1212.0)

        result = simulate([debt], Strategy.SNOWBALL_LOWEST_BALANCE, 1212.0, START_DATE)

        assert result.months_to_payoff == 1
        assert result.total_interest_paid == 12.0
        assert result.payoff_date == date(2024, 2, 1)
        assert result.payoff_date_per_debt == {"card": date(2024, 2, 1)}
        assert result.is_complete

    def test_single_debt_needs_second_month_when_interest_not_covered(self, debt_factory):
        debt = debt_factory(debt_id="card", balance=1200.0, apr=0.12, min_payment=1200.0)

        result = simulate([debt], "snowball", 1200.0, START_DATE)

        assert result.months_to_payoff == 2
        first, second = result.schedule
        assert first.debt_details[0].ending_balance == 12.0
        # 12.00 carried over accrues 0.12 before the final payment.
        assert second.debt_details[0].interest == 0.12
        assert second.debt_details[0].payment == 12.12
        assert result.total_interest_paid == 12.12

    def test_snowball_rolls_freed_minimum_into_next_debt(self, debt_factory):
        small = debt_factory(debt_id="A", name="A", balance=100.0, apr=0.0, min_payment=50.0)
        large = debt_factory(debt_id="B", name="B", balance=500.0, apr=0.0, min_payment=25.0)

        result = simulate([small, large], Strategy.SNOWBALL_LOWEST_BALANCE, 100.0, START_DATE)

        month1, month2 = result.schedule[0], result.schedule[1]
        assert _detail(month1, "A").payment == 75.0
        assert _detail(month1, "A").ending_balance == 25.0
        assert _detail(month1, "B").payment == 25.0
        assert _detail(month1, "B").ending_balance == 475.0
        assert month1.baseline_payment == 75.0
        assert month1.snowball_extra == 25.0

        assert _detail(month2, "A").payment == 25.0
        assert _detail(month2, "A").ending_balance == 0.0
        assert _detail(month2, "B").payment == 75.0
        assert month2.snowball_extra == 50.0
        assert month2.total_remaining_balance == 400.0

        # Paid-off debts drop out of later months.
        assert [d.debt_id for d in result.schedule[2].debt_details] == ["B"]

    def test_surplus_spills_into_next_debt_within_the_same_month(self, debt_factory):
        small = debt_factory(debt_id="A", name="A", balance=60.0, apr=0.0, min_payment=10.0)
        large = debt_factory(debt_id="B", name="B", balance=500.0, apr=0.0, min_payment=10.0)

        result = simulate([small, large], Strategy.SNOWBALL_LOWEST_BALANCE, 120.0, START_DATE)

        month1 = result.schedule[0]
        # A only has 50 of headroom above its minimum; the other 50 goes to B.
        assert {d.debt_id: d.payment for d in month1.debt_details} == {"A": 60.0, "B": 60.0}
        assert _detail(month1, "A").ending_balance == 0.0
        assert _detail(month1, "B").ending_balance == 440.0
        assert month1.baseline_payment == 20.0
        assert month1.snowball_extra == 100.0
        assert result.payoff_date_per_debt["A"] == date(2024, 2, 1)

        assert result.payoff_order == ["A", "B"]
        assert result.payoff_date_per_debt == {"A": date(2024, 3, 1), "B": date(2024, 7, 1)}
        assert result.months_to_payoff == 6
        assert result.total_interest_paid == 0.0

    def test_budget_below_minimums_still_simulates_to_horizon(self, debt_factory):
        debt = debt_factory(debt_id="loan", balance=10000.0, apr=0.24, min_payment=150.0)

        validation = validate_budget(100.0, [debt])
        result = simulate([debt], Strategy.SNOWBALL_LOWEST_BALANCE, 100.0, START_DATE)

        assert validation.valid is False
        assert validation.initial_snowball == -50.0
        assert result.months_to_payoff == MAX_MONTHS
        assert len(result.schedule) == MAX_MONTHS
        assert result.payoff_date_per_debt == {}
        assert result.is_complete is False
        assert result.schedule[-1].total_remaining_balance > 10000.0

    def test_no_snowball_pays_only_minimums(self, debt_factory):
        loan = debt_factory(debt_id="loan", balance=1000.0, apr=0.0, min_payment=100.0)
        card = debt_factory(debt_id="card", balance=300.0, apr=0.0, min_payment=50.0)

        result = simulate([loan, card], Strategy.NO_SNOWBALL, 1000.0, START_DATE)

        assert all(row.snowball_extra == 0.0 for row in result.schedule)
        assert result.payoff_date_per_debt["card"] == date(2024, 7, 1)
        assert result.payoff_date_per_debt["loan"] == date(2024, 11, 1)
        assert result.months_to_payoff == 10

    def test_avalanche_pays_less_interest_than_snowball(self, debt_factory):
        debts = [
            debt_factory(debt_id="low-rate", balance=800.0, apr=0.05, min_payment=25.0),
            debt_factory(debt_id="high-rate", balance=4000.0, apr=0.26, min_payment=100.0),
        ]

        snowball = simulate(debts, Strategy.SNOWBALL_LOWEST_BALANCE, 400.0, START_DATE)
        avalanche = simulate(debts, Strategy.AVALANCHE_HIGHEST_APR, 400.0, START_DATE)

        assert avalanche.payoff_order == ["high-rate", "low-rate"]
        assert avalanche.total_interest_paid < snowball.total_interest_paid

    def test_custom_rank_directs_surplus(self, debt_factory):
        first = debt_factory(debt_id="first", balance=600.0, apr=0.0, min_payment=20.0, custom_rank=2)
        second = debt_factory(debt_id="second", balance=600.0, apr=0.0, min_payment=20.0, custom_rank=1)

        result = simulate([first, second], Strategy.CUSTOM_LOWEST_FIRST, 140.0, START_DATE)

        assert result.payoff_order == ["second", "first"]
        assert _detail(result.schedule[0], "second").payment == 120.0
        assert _detail(result.schedule[0], "first").payment == 20.0


class TestEdgeCases:
    def test_no_debts_returns_empty_result(self):
        result = simulate([], Strategy.SNOWBALL_LOWEST_BALANCE, 500.0, START_DATE)

        assert result.schedule == []
        assert result.months_to_payoff == 0
        assert result.total_interest_paid == 0.0
        assert result.payoff_date == START_DATE
        assert result.payoff_order == []
        assert result.is_complete

    def test_inactive_and_zero_balance_debts_are_ignored(self, debt_factory):
        debts = [
            debt_factory(debt_id="paused", balance=900.0, active=False),
            debt_factory(debt_id="cleared", balance=0.0),
            debt_factory(debt_id="open", balance=100.0, apr=0.0, min_payment=100.0),
        ]

        result = simulate(debts, Strategy.ORDER_ENTERED, 100.0, START_DATE)

        assert result.months_to_payoff == 1
        assert [d.debt_id for d in result.schedule[0].debt_details] == ["open"]
        assert result.payoff_order == ["open"]

    def test_minimum_larger_than_balance_is_capped(self, debt_factory):
        debt = debt_factory(debt_id="tiny", balance=30.0, apr=0.0, min_payment=50.0)

        result = simulate([debt], Strategy.SNOWBALL_LOWEST_BALANCE, 500.0, START_DATE)

        row = result.schedule[0]
        assert row.baseline_payment == 30.0
        assert row.total_payment == 30.0
        assert row.snowball_extra == 0.0

    def test_dates_clamp_from_month_end_start(self, debt_factory):
        debt = debt_factory(balance=300.0, apr=0.0, min_payment=100.0)

        result = simulate([debt], Strategy.SNOWBALL_LOWEST_BALANCE, 100.0, date(2024, 1, 31))

        assert [row.date for row in result.schedule] == [
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_detail_rows_follow_input_order(self, debt_factory):
        debts = [
            debt_factory(debt_id="big", balance=900.0, apr=0.0, min_payment=30.0),
            debt_factory(debt_id="small", balance=90.0, apr=0.0, min_payment=30.0),
        ]

        result = simulate(debts, Strategy.SNOWBALL_LOWEST_BALANCE, 200.0, START_DATE)

        assert [d.debt_id for d in result.schedule[0].debt_details] == ["big", "small"]


class TestProperties:
    @pytest.fixture
    def portfolio(self, debt_factory):
        return [
            debt_factory(debt_id="chase", balance=3247.82, apr=0.2249, min_payment=95.0),
            debt_factory(debt_id="capone", balance=1423.55, apr=0.1799, min_payment=45.0),
            debt_factory(debt_id="auto", balance=9847.00, apr=0.0599, min_payment=275.0),
            debt_factory(debt_id="student", balance=14523.67, apr=0.0455, min_payment=180.0),
        ]

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_simulation_is_deterministic(self, portfolio, strategy):
        first = simulate(portfolio, strategy, 850.0, START_DATE)
        second = simulate(portfolio, strategy, 850.0, START_DATE)

        assert asdict(first) == asdict(second)

    def test_input_debts_are_not_modified(self, portfolio):
        before = [asdict(d) for d in portfolio]

        simulate(portfolio, Strategy.AVALANCHE_HIGHEST_APR, 850.0, START_DATE)

        assert [asdict(d) for d in portfolio] == before

    def test_balances_reconcile_each_month(self, portfolio):
        result = simulate(portfolio, Strategy.SNOWBALL_LOWEST_BALANCE, 850.0, START_DATE)

        for row in result.schedule:
            for detail in row.debt_details:
                expected = max(0.0, detail.starting_balance + detail.interest - detail.payment)
                assert_float_equal(detail.ending_balance, expected)
            assert_float_equal(
                row.total_remaining_balance, sum(d.ending_balance for d in row.debt_details)
            )
            assert_float_equal(row.total_payment, row.baseline_payment + row.snowball_extra)

    def test_payments_never_exceed_budget_when_budget_covers_minimums(self, portfolio):
        result = simulate(portfolio, Strategy.SNOWBALL_LOWEST_BALANCE, 850.0, START_DATE)

        assert all(row.total_payment <= 850.0 + 1e-9 for row in result.schedule)

    def test_total_balance_decreases_when_payments_exceed_interest(self, portfolio):
        result = simulate(portfolio, Strategy.AVALANCHE_HIGHEST_APR, 850.0, START_DATE)

        totals = [row.total_remaining_balance for row in result.schedule]
        assert all(later <= earlier for earlier, later in zip(totals, totals[1:]))
        assert totals[-1] == 0.0
        assert result.is_complete

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_each_debt_balance_never_increases(self, portfolio, strategy):
        result = simulate(portfolio, strategy, 850.0, START_DATE)

        history: dict[str, list[float]] = {}
        for row in result.schedule:
            for detail in row.debt_details:
                history.setdefault(detail.debt_id, []).append(detail.ending_balance)

        assert set(history) == {"chase", "capone", "auto", "student"}
        for debt_id, balances in history.items():
            assert all(later <= earlier for earlier, later in zip(balances, balances[1:])), debt_id

    def test_money_values_are_rounded_to_cents(self, portfolio):
        result = simulate(portfolio, Strategy.CUSTOM_HIGHEST_FIRST, 850.0, START_DATE)

        assert_cents(result.total_interest_paid)
        for row in result.schedule:
            for value in (row.total_payment, row.baseline_payment, row.snowball_extra, row.total_remaining_balance):
                assert_cents(value)
            for detail in row.debt_details:
                for value in (detail.starting_balance, detail.interest, detail.payment, detail.ending_balance):
                    assert_cents(value)

    def test_total_interest_matches_schedule(self, portfolio):
        result = simulate(portfolio, Strategy.SNOWBALL_LOWEST_BALANCE, 850.0, START_DATE)

        accrued = sum(d.interest for row in result.schedule for d in row.debt_details)
        assert_float_equal(result.total_interest_paid, round2(accrued))

    def test_every_payoff_date_is_a_schedule_date(self, portfolio):
        result = simulate(portfolio, Strategy.ORDER_ENTERED, 850.0, START_DATE)

        dates = {row.date for row in result.schedule}
        assert set(result.payoff_date_per_debt) == {"chase", "capone", "auto", "student"}
        assert set(result.payoff_date_per_debt.values()) <= dates
        assert max(result.payoff_date_per_debt.values()) == result.payoff_date
