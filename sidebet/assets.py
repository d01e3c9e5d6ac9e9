"""Asset transfer capability consumed by the engine.

The engine never touches balances directly: it asks an :class:`AssetTransfer`
to pull funds from a depositor into its own holding account and to push funds
back out. Failures are returned as :class:`TransferReceipt` values so that a
batch payout can skip a recipient without aborting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sidebet.domain import InvalidInput

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TransferReceipt:
    ok: bool
    amount: int = 0
    reason: str | None = None

    @classmethod
    def success(cls, amount: int) -> "TransferReceipt":
        return cls(ok=True, amount=amount)

    @classmethod
    def failure(cls, reason: str) -> "TransferReceipt":
        return cls(ok=False, reason=reason)


@runtime_checkable
class AssetTransfer(Protocol):
    @property
    def holder(self) -> str: ...

    def transfer_in(self, sender: str, amount: int) -> TransferReceipt: ...

    def transfer_out(self, recipient: str, amount: int) -> TransferReceipt: ...

    def balance_of(self, account: str) -> int: ...


class InMemoryToken:
    """Fungible token kept in a dict, bound to the engine's holding account.

    ``fee_bps`` burns a share of every transfer (a taxed asset) and
    ``denylist`` makes any transfer touching a listed account fail, which is
    how the fault-isolation paths are exercised.
    """

    def __init__(self, holder: str = "escrow", *, fee_bps: int = 0, symbol: str = "TEST") -> None:
        if not 0 <= fee_bps < 10_000:
            raise ValueError("fee_bps must be within 0..9999")
        self._holder = holder
        self.symbol = symbol
        self.fee_bps = fee_bps
        self.balances: dict[str, int] = {}
        self.denylist: set[str] = set()
        self.total_supply = 0

    @property
    def holder(self) -> str:
        return self._holder

    def mint(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError("mint amount must be positive")
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount

    def set_denied(self, account: str, denied: bool = True) -> None:
        if denied:
            self.denylist.add(account)
        else:
            self.denylist.discard(account)

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def transfer_in(self, sender: str, amount: int) -> TransferReceipt:
        return self._move(sender, self._holder, amount)

    def transfer_out(self, recipient: str, amount: int) -> TransferReceipt:
        return self._move(self._holder, recipient, amount)

    def _move(self, source: str, target: str, amount: int) -> TransferReceipt:
        if amount <= 0:
            return TransferReceipt.failure("amount must be positive")
        if source in self.denylist or target in self.denylist:
            return TransferReceipt.failure("account is denylisted")
        if self.balance_of(source) < amount:
            return TransferReceipt.failure("insufficient balance")

        fee = amount * self.fee_bps // 10_000
        self.balances[source] -= amount
        self.balances[target] = self.balance_of(target) + amount - fee
        self.total_supply -= fee
        logger.debug("%s transfer %s -> %s: %s (fee %s)", self.symbol, source, target, amount, fee)
        return TransferReceipt.success(amount - fee)


class AssetRegistry:
    """Resolves the opaque asset reference stored on an event."""

    def __init__(self, assets: dict[str, AssetTransfer] | None = None) -> None:
        self._assets: dict[str, AssetTransfer] = dict(assets or {})

    def register(self, asset_ref: str, asset: AssetTransfer) -> None:
        asset_ref = asset_ref.strip()
        if not asset_ref:
            raise ValueError("asset reference must be non-empty")
        self._assets[asset_ref] = asset

    def resolve(self, asset_ref: str) -> AssetTransfer:
        asset = self._assets.get(asset_ref)
        if asset is None:
            raise InvalidInput(f"unknown asset: {asset_ref}", {"asset_ref": asset_ref})
        return asset
