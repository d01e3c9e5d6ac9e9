import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from sidebet.domain import (
    InvalidSide,
    InvalidState,
    NoWinners,
    SideBetEvent,
    compute_settlement,
    largest_remainder_shares,
    new_event,
    proportional_share,
    settle,
)

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _event(deposits: list[tuple[str, int, int]], owner_cut_percent: int = 5) -> SideBetEvent:
    event = new_event(
        event_id="evt",
        side_names=("A", "B"),
        asset_ref="TEST",
        deposit_start=START,
        deposit_end=START + timedelta(hours=1),
        owner_cut_percent=owner_cut_percent,
    )
    for address, side, amount in deposits:
        event.ledger.record(address, side, amount)
    return event


EXAMPLE = [
    ("a", 0, 1000),
    ("b", 0, 1000),
    ("c", 0, 2000),
    ("d", 1, 3000),
    ("e", 1, 4000),
]


def test_example_scenario_side_zero_wins() -> None:
    result = compute_settlement(_event(EXAMPLE), winning_side=0, owner_cut_percent=5)

    assert result.total_deposited == 11000
    assert result.owner_cut == 550
    assert result.reward_pool == 10450
    assert result.rewards == {"a": 2613, "b": 2613, "c": 5225}
    assert result.reward_for("d") == 0
    assert result.reward_for("e") == 0
    assert result.rounding_residual == 1
    assert result.owner_payout == 549
    assert result.owner_payout + result.rewards_total == result.total_deposited


def test_example_scenario_side_one_wins() -> None:
    result = compute_settlement(_event(EXAMPLE), winning_side=1, owner_cut_percent=5)

    # 3000 * 10450 / 7000 = 4478.57..., 4000 * 10450 / 7000 = 5971.42...
    assert result.rewards == {"d": 4479, "e": 5971}
    assert result.rounding_residual == 0
    assert result.owner_payout == result.owner_cut == 550


@pytest.mark.parametrize(
    "amount, pool, side_total, expected",
    [
        (1, 3, 2, 2),
        (1, 1, 3, 0),
        (2, 1, 3, 1),
        (5, 10, 10, 5),
        (0, 10, 10, 0),
    ],
    ids=["half_rounds_up", "third_rounds_down", "two_thirds_rounds_up", "exact", "zero_deposit"],
)
def test_proportional_share_rounds_half_up(amount: int, pool: int, side_total: int, expected: int) -> None:
    assert proportional_share(amount, pool, side_total) == expected


def test_over_rounding_is_taken_from_owner_cut() -> None:
    event = _event([("a", 0, 1), ("b", 0, 1), ("c", 1, 2)], owner_cut_percent=25)

    result = compute_settlement(event, winning_side=0, owner_cut_percent=25)

    assert result.owner_cut == 1
    assert result.reward_pool == 3
    assert result.rewards == {"a": 2, "b": 2}
    assert result.rounding_residual == 1
    assert result.owner_payout == 0
    assert result.owner_cut + result.reward_pool == result.total_deposited


def test_residual_stays_within_half_unit_per_winner() -> None:
    rng = random.Random(20260101)
    for _ in range(200):
        deposits = [(f"u{i}", rng.randint(0, 1), rng.randint(1, 10_000)) for i in range(rng.randint(2, 40))]
        event = _event(deposits)
        for side in (0, 1):
            if event.ledger.side_totals[side] == 0:
                continue
            for percent in (0, 5):
                result = compute_settlement(event, side, owner_cut_percent=percent)

                assert result.owner_cut + result.reward_pool == result.total_deposited
                assert abs(result.rounding_residual) <= math.ceil(len(result.rewards) / 2)
                assert result.rewards_total + result.owner_payout <= result.total_deposited


def test_settlement_is_deterministic() -> None:
    event = _event(EXAMPLE)

    first = compute_settlement(event, 0, 5)
    second = compute_settlement(event, 0, 5)

    assert first == second


def test_empty_winning_side_reports_no_winners() -> None:
    event = _event([("a", 0, 1000), ("b", 0, 500)])

    with pytest.raises(NoWinners):
        compute_settlement(event, winning_side=1, owner_cut_percent=5)


def test_invalid_side_rejected() -> None:
    with pytest.raises(InvalidSide):
        compute_settlement(_event(EXAMPLE), winning_side=2, owner_cut_percent=5)


def test_settle_requires_selected_winner() -> None:
    with pytest.raises(InvalidState):
        settle(_event(EXAMPLE))


def test_zero_cut_never_pays_more_than_the_pool() -> None:
    event = _event([("a", 0, 1), ("b", 0, 1), ("c", 0, 1), ("d", 1, 2)], owner_cut_percent=0)

    result = compute_settlement(event, winning_side=0, owner_cut_percent=0)

    # Half-up would owe 2 + 2 + 2 against a pool of 5.
    assert result.reward_pool == 5
    assert result.rewards == {"a": 2, "b": 2, "c": 1}
    assert result.rounding_residual == 0
    assert result.owner_payout == 0


def test_largest_remainder_shares_sum_to_the_pool() -> None:
    winners = [("a", 1), ("b", 5), ("c", 3)]

    shares = largest_remainder_shares(winners, pool=10, side_total=9)

    # 10/9 = 1.11, 50/9 = 5.56, 30/9 = 3.33
    assert shares == {"a": 1, "b": 6, "c": 3}
    assert sum(shares.values()) == 10
