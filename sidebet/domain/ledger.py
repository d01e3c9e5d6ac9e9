"""Per-event deposit ledger: who deposited how much on which side."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InvalidInput, InvalidSide, SideMismatch, ZeroAmount

SIDES = (0, 1)


def normalize_address(address: str) -> str:
    value = address.strip()
    if not value:
        raise InvalidInput("address must be non-empty")
    return value


def validate_side(side: int) -> int:
    if side not in SIDES:
        raise InvalidSide(f"side must be one of {SIDES}", {"side": side})
    return side


@dataclass(slots=True, frozen=True)
class DepositEntry:
    address: str
    side: int
    amount: int
    claimed: bool


@dataclass
class DepositLedger:
    participants: list[str] = field(default_factory=list)
    side_of: dict[str, int] = field(default_factory=dict)
    deposits: dict[str, int] = field(default_factory=dict)
    side_totals: list[int] = field(default_factory=lambda: [0, 0])
    claimed: set[str] = field(default_factory=set)
    in_flight: set[str] = field(default_factory=set)

    @property
    def total_deposited(self) -> int:
        return self.side_totals[0] + self.side_totals[1]

    def record(self, address: str, side: int, amount: int) -> bool:
        """Credit ``amount`` to ``address`` on ``side``.

        Returns True when the address is a new participant of this event.
        """
        address = normalize_address(address)
        self.check_deposit(address, side, amount)

        is_new = address not in self.side_of
        if is_new:
            self.participants.append(address)
            self.side_of[address] = side
            self.deposits[address] = 0
        self.deposits[address] += amount
        self.side_totals[side] += amount
        return is_new

    def check_deposit(self, address: str, side: int, amount: int) -> None:
        """Raise the same errors :meth:`record` would, without mutating anything."""
        validate_side(side)
        if amount <= 0:
            raise ZeroAmount("amount must be positive", {"amount": amount})
        current_side = self.side_of.get(address)
        if current_side is not None and current_side != side:
            raise SideMismatch(
                f"{address} already deposited on side {current_side}",
                {"address": address, "side": current_side, "requested_side": side},
            )

    def participants_on(self, side: int) -> list[str]:
        validate_side(side)
        return [address for address in self.participants if self.side_of[address] == side]

    def deposit_of(self, address: str) -> int:
        return self.deposits.get(address, 0)

    def is_claimed(self, address: str) -> bool:
        return address in self.claimed

    def entry(self, address: str) -> DepositEntry:
        return DepositEntry(
            address=address,
            side=self.side_of[address],
            amount=self.deposits[address],
            claimed=address in self.claimed,
        )

    def entries(self, addresses: list[str]) -> list[DepositEntry]:
        return [self.entry(address) for address in addresses]
