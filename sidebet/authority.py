from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class Authority(Protocol):
    def is_authorized(self, caller: str) -> bool: ...


class OwnerAuthority:
    """A single owner account may administer every event."""

    def __init__(self, owner: str) -> None:
        self.owner = owner

    def is_authorized(self, caller: str) -> bool:
        return caller == self.owner


class AllowListAuthority:
    def __init__(self, accounts: Iterable[str]) -> None:
        self.accounts = frozenset(accounts)

    def is_authorized(self, caller: str) -> bool:
        return caller in self.accounts
