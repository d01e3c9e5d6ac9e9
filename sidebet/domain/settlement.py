"""Owner cut, reward pool and per-winner reward calculation.

Everything here is integer arithmetic on the smallest unit of the asset and
free of side effects, so repeated calls against the same ledger agree exactly
no matter how distribution is split into batches.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InvalidState, NoWinners
from .event import SideBetEvent
from .ledger import validate_side


@dataclass(frozen=True)
class SettlementResult:
    winning_side: int
    total_deposited: int
    owner_cut: int
    reward_pool: int
    rewards: dict[str, int] = field(default_factory=dict)

    @property
    def rewards_total(self) -> int:
        return sum(self.rewards.values())

    @property
    def rounding_residual(self) -> int:
        """Signed difference between the rewards actually owed and the pool.

        Each reward is rounded independently, so the bound is half a unit per
        winner: ``abs(residual) <= ceil(len(rewards) / 2)``.
        """
        return self.rewards_total - self.reward_pool

    @property
    def owner_payout(self) -> int:
        # Over-rounding is taken out of the operator's cut so every reward stays covered.
        return max(self.owner_cut - max(self.rounding_residual, 0), 0)

    def reward_for(self, address: str) -> int:
        return self.rewards.get(address, 0)


def owner_cut_of(total_deposited: int, owner_cut_percent: int) -> int:
    return total_deposited * owner_cut_percent // 100


def proportional_share(amount: int, pool: int, side_total: int) -> int:
    """``round(amount * pool / side_total)`` with halves rounded up."""
    if side_total <= 0:
        raise NoWinners("winning side has no deposits")
    return (2 * amount * pool + side_total) // (2 * side_total)


def largest_remainder_shares(winners: list[tuple[str, int]], pool: int, side_total: int) -> dict[str, int]:
    """Split ``pool`` so the shares sum to it exactly.

    Every winner gets the floor of their share; the leftover units go to the
    largest remainders, ties broken by deposit order.
    """
    if side_total <= 0:
        raise NoWinners("winning side has no deposits")
    shares = {}
    remainders = []
    for index, (address, amount) in enumerate(winners):
        share, remainder = divmod(amount * pool, side_total)
        shares[address] = share
        remainders.append((-remainder, index, address))
    leftover = pool - sum(shares.values())
    for _, _, address in sorted(remainders)[:leftover]:
        shares[address] += 1
    return shares


def compute_settlement(event: SideBetEvent, winning_side: int, owner_cut_percent: int) -> SettlementResult:
    validate_side(winning_side)
    ledger = event.ledger
    side_total = ledger.side_totals[winning_side]
    if side_total == 0:
        raise NoWinners(
            f"side {winning_side} of {event.event_id} has no deposits",
            {"event_id": event.event_id, "side": winning_side},
        )

    total = ledger.total_deposited
    owner_cut = owner_cut_of(total, owner_cut_percent)
    reward_pool = total - owner_cut
    winners = [(address, ledger.deposits[address]) for address in ledger.participants_on(winning_side)]
    rewards = {address: proportional_share(amount, reward_pool, side_total) for address, amount in winners}
    if sum(rewards.values()) - reward_pool > owner_cut:
        # The cut cannot cover the over-rounding; an event never pays out more than it took in.
        rewards = largest_remainder_shares(winners, reward_pool, side_total)
    return SettlementResult(
        winning_side=winning_side,
        total_deposited=total,
        owner_cut=owner_cut,
        reward_pool=reward_pool,
        rewards=rewards,
    )


def settle(event: SideBetEvent) -> SettlementResult:
    """Settlement of an event whose winner is already selected."""
    if event.winning_side is None:
        raise InvalidState(f"no winner selected for {event.event_id}", {"event_id": event.event_id})
    return compute_settlement(event, event.winning_side, event.owner_cut_percent)
