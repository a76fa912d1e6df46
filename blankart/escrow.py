"""
BlankArt Pricing & Escrow

Payment checks and the withdrawable balance. All values are integer wei.

The full payment is credited, not just ``unit_price * amount``: overpayment
is kept in escrow and never refunded.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import threading

from blankart.errors import InsufficientFunds
from blankart.hardening import Validators


def required_payment(unit_price: int, amount: int) -> int:
    return unit_price * amount


class Escrow:
    """Accumulated issuance payments awaiting withdrawal by the controller."""

    def __init__(self):
        self._balance = 0
        self._total_received = 0
        self._lock = threading.Lock()

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    @property
    def total_received(self) -> int:
        """Lifetime sum of credited payments (never decreases)."""
        with self._lock:
            return self._total_received

    @staticmethod
    def check_payment(unit_price: int, amount: int, paid: int) -> None:
        """Raise InsufficientFunds if ``paid`` does not cover ``amount`` units."""
        unit_price = Validators.validate_wei(unit_price, "unit_price").unwrap()
        paid = Validators.validate_wei(paid, "payment").unwrap()
        required = required_payment(unit_price, amount)
        if paid < required:
            raise InsufficientFunds(
                f"payment {paid} below required {required}",
                paid=paid,
                required=required,
            )

    def credit(self, paid: int) -> int:
        """Add ``paid`` to the balance and return the new balance."""
        paid = Validators.validate_wei(paid, "payment").unwrap()
        with self._lock:
            self._balance += paid
            self._total_received += paid
            return self._balance

    def charge(self, unit_price: int, amount: int, paid: int) -> int:
        """Check ``paid`` against ``unit_price * amount`` and credit all of it."""
        self.check_payment(unit_price, amount, paid)
        return self.credit(paid)

    def withdraw(self) -> int:
        """Zero the balance and return what it held (0 is not an error)."""
        with self._lock:
            amount, self._balance = self._balance, 0
            return amount
