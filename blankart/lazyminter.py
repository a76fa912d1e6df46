"""blankart.lazyminter

Authorizer-side helper that creates signed vouchers for later redemption.

The signing domain and struct come from ``blankart.voucher`` so the helper
and the engine can never drift apart on field order or domain parameters.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from eth_account import Account

from blankart.config import BlankArtConfig, get_config
from blankart.hardening import Validators, normalize_address
from blankart.voucher import SigningDomain, Voucher, sign_voucher


class LazyMinter:
    """
    Creates vouchers signed by ``private_key`` for the deployment at ``domain``.

    The signer must be the engine's controller for its vouchers to redeem.
    """

    def __init__(
        self,
        domain: SigningDomain,
        private_key: Any,
        clock: Optional[Callable[[], int]] = None,
        config: Optional[BlankArtConfig] = None,
    ):
        self.domain = domain
        self._account = Account.from_key(private_key)
        self._clock = clock or (lambda: int(time.time()))
        self._ttl = (config or get_config()).signing.default_voucher_ttl_seconds.get()

    @property
    def address(self) -> str:
        return self._account.address

    def create_voucher(
        self,
        recipient: str,
        min_price: int = 0,
        expiration: Optional[int] = None,
        max_amount: Optional[int] = None,
    ) -> Voucher:
        """
        Create and sign a voucher.

        Args:
            recipient: Address allowed to redeem.
            min_price: Minimum unit price in wei (defaults to zero).
            expiration: Unix seconds; defaults to now + the configured TTL.
            max_amount: Per-voucher ceiling; None for no ceiling.
        """
        if expiration is None:
            expiration = self._clock() + self._ttl
        voucher = Voucher(
            recipient=normalize_address(recipient, "recipient"),
            min_price=Validators.validate_wei(min_price, "min_price").unwrap(),
            expiration=Validators.validate_count(expiration, "expiration", minimum=0).unwrap(),
            max_amount=(
                Validators.validate_count(max_amount, "max_amount").unwrap()
                if max_amount is not None else None
            ),
        )
        return sign_voucher(voucher, self.domain, self._account.key)
