"""
BlankArt Issuance Errors

Typed rejections raised by the issuance engine and its ledgers. Every
rejection aborts the whole operation with no partial effect; callers
decide whether to retry (e.g. with a larger payment or a fresh voucher).

Each error carries a stable ``code`` so that logs, CLI output and API
adapters can report the failure without parsing messages.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class IssuanceError(Exception):
    """Base class for every rejected engine operation."""

    code = "ISSUANCE_ERROR"

    def __init__(self, message: str = "", **details: Any):
        self.message = message or self.__class__.__doc__ or self.code
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class Unauthorized(IssuanceError):
    """Caller lacks the role required for this operation."""
    code = "UNAUTHORIZED"


class NotActive(IssuanceError):
    """Redemption or minting is gated off."""
    code = "NOT_ACTIVE"


class AuthInvalid(IssuanceError):
    """Voucher signature or signing domain does not verify."""
    code = "AUTH_INVALID"


class WrongRecipient(IssuanceError):
    """Voucher was issued to a different address."""
    code = "WRONG_RECIPIENT"


class Expired(IssuanceError):
    """Voucher expiration has passed."""
    code = "EXPIRED"


class AmountExceedsVoucherLimit(IssuanceError):
    """Requested amount exceeds the voucher's own ceiling."""
    code = "AMOUNT_EXCEEDS_VOUCHER_LIMIT"


class AmountExceedsMintLimit(IssuanceError):
    """Requested amount exceeds the per-transaction ceiling."""
    code = "AMOUNT_EXCEEDS_MINT_LIMIT"


class InsufficientFunds(IssuanceError):
    """Payment is below unit price times amount."""
    code = "INSUFFICIENT_FUNDS"


class AlreadyClaimed(IssuanceError):
    """Voucher has already been redeemed."""
    code = "ALREADY_CLAIMED"


class SupplyCap(Enum):
    """Which supply cap rejected a reservation."""
    GLOBAL = "global"
    PER_ADDRESS = "per_address"


class SupplyError(IssuanceError):
    """Reservation would exceed a supply cap."""
    code = "SUPPLY_ERROR"

    def __init__(self, cap: SupplyCap, message: str = "", **details: Any):
        self.cap = cap
        super().__init__(message or f"{cap.value} supply cap exceeded", cap=cap.value, **details)

    @property
    def is_global(self) -> bool:
        return self.cap is SupplyCap.GLOBAL


class TokenNotFound(IssuanceError):
    """Token identity has not been minted."""
    code = "TOKEN_NOT_FOUND"


class InvalidParameter(IssuanceError):
    """Malformed operation input."""
    code = "INVALID_PARAMETER"

    def __init__(self, field: str, message: str, value: Optional[Any] = None):
        self.field = field
        super().__init__(f"{field}: {message}", field=field, value=value)
