"""
BlankArt Supply & Membership Ledger

Tracks issued tokens against two caps:

    total_issued          <= max_supply   (fixed at construction)
    issued_by[address]    <= member_cap   (mutable; gates future issuance only)

Reservations are all-or-nothing and always return one contiguous block of
token identities starting after the last issued id (ids start at 1).

Membership is a separate set: every recipient of a token joins it, and the
controller may grant or revoke membership directly regardless of how many
tokens an address holds.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Set

from blankart.errors import InvalidParameter, SupplyCap, SupplyError
from blankart.hardening import Validators, normalize_address


class SupplyLedger:
    """Global and per-address issuance counters plus the membership set."""

    def __init__(self, max_supply: int, member_cap: int):
        if isinstance(max_supply, bool) or not isinstance(max_supply, int) or max_supply < 1:
            raise InvalidParameter("max_supply", "Must be a positive integer", max_supply)
        self.max_supply = max_supply
        self._member_cap = Validators.validate_count(member_cap, "member_cap", minimum=0).unwrap()
        self._total_issued = 0
        self._issued_by: Dict[str, int] = defaultdict(int)
        self._members: Set[str] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def total_issued(self) -> int:
        with self._lock:
            return self._total_issued

    @property
    def remaining(self) -> int:
        with self._lock:
            return self.max_supply - self._total_issued

    @property
    def member_cap(self) -> int:
        with self._lock:
            return self._member_cap

    @member_cap.setter
    def member_cap(self, value: int) -> None:
        value = Validators.validate_count(value, "member_cap", minimum=0).unwrap()
        with self._lock:
            self._member_cap = value

    def issued_to(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            return self._issued_by.get(address, 0)

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def check_reserve(self, address: str, amount: int) -> None:
        """Raise SupplyError if issuing ``amount`` to ``address`` would break a cap."""
        address = normalize_address(address)
        with self._lock:
            if self._total_issued + amount > self.max_supply:
                raise SupplyError(
                    SupplyCap.GLOBAL,
                    requested=amount,
                    total_issued=self._total_issued,
                    max_supply=self.max_supply,
                )
            held = self._issued_by.get(address, 0)
            if held + amount > self._member_cap:
                raise SupplyError(
                    SupplyCap.PER_ADDRESS,
                    address=address,
                    requested=amount,
                    issued=held,
                    member_cap=self._member_cap,
                )

    def reserve(self, address: str, amount: int) -> range:
        """
        Reserve ``amount`` identities for ``address``.

        Returns the contiguous id range ``first..last`` (inclusive) as a
        ``range``. Counters are untouched if either cap rejects the request.
        """
        amount = Validators.validate_count(amount).unwrap()
        address = normalize_address(address)
        with self._lock:
            self.check_reserve(address, amount)
            first = self._total_issued + 1
            self._total_issued += amount
            self._issued_by[address] += amount
            self._members.add(address)
            return range(first, first + amount)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def is_member(self, address: str) -> bool:
        address = normalize_address(address)
        with self._lock:
            return address in self._members

    def grant_membership(self, address: str) -> bool:
        """Admit ``address``. Returns True if membership changed."""
        address = normalize_address(address)
        with self._lock:
            if address in self._members:
                return False
            self._members.add(address)
            return True

    def revoke_membership(self, address: str) -> bool:
        """Remove ``address``. Returns True if membership changed."""
        address = normalize_address(address)
        with self._lock:
            if address not in self._members:
                return False
            self._members.discard(address)
            return True
