"""
BlankArt — Voucher-Gated NFT Issuance Engine

Issues a capped token collection through two paths: redemption of
controller-signed EIP-712 vouchers, and public self-service minting once
the controller enables it.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          ISSUANCE ENGINE                                 │
    │    engine.py      redeem / mint / admin controls / royalty queries      │
    │                                                                          │
    │    voucher.py     EIP-712 digest, signing, signer recovery              │
    │    claims.py      at-most-once voucher redemption                       │
    │    supply.py      global + per-address caps, membership                 │
    │    escrow.py      payment checks, withdrawable balance                  │
    │    metadata.py    base-URI epochs, per-token URI locks                  │
    │                                                                          │
    │    lazyminter.py  authorizer-side voucher creation                      │
    │    config.py      YAML + environment configuration                      │
    │    events.py      issuance notifications                                │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Fail Closed: every check runs before any mutation; a rejection leaves
    no trace in counters, claims or escrow.

    One Digest: the authorizer helper and the verifier share the same
    struct and domain definitions.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

__version__ = "0.3.0"


def __getattr__(name):
    """Lazy import of the public API."""

    if name in ("IssuanceEngine", "AdminState", "MintReceipt", "SUPPORTED_INTERFACES"):
        from blankart import engine
        return getattr(engine, name)

    if name in ("Voucher", "SigningDomain", "VerificationResult", "verify",
                "voucher_digest", "sign_voucher", "recover_signer"):
        from blankart import voucher
        return getattr(voucher, name)

    if name == "LazyMinter":
        from blankart.lazyminter import LazyMinter
        return LazyMinter

    if name in ("EventBus", "TokenMinted", "EngineInitialized", "AdminChanged"):
        from blankart import events
        return getattr(events, name)

    if name in ("IssuanceError", "Unauthorized", "NotActive", "AuthInvalid",
                "WrongRecipient", "Expired", "AmountExceedsVoucherLimit",
                "AmountExceedsMintLimit", "InsufficientFunds", "AlreadyClaimed",
                "SupplyError", "SupplyCap", "TokenNotFound", "InvalidParameter"):
        from blankart import errors
        return getattr(errors, name)

    raise AttributeError(f"module 'blankart' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Engine
    "IssuanceEngine",
    "AdminState",
    "MintReceipt",
    # Vouchers
    "Voucher",
    "SigningDomain",
    "VerificationResult",
    "LazyMinter",
    "verify",
    # Events
    "EventBus",
    "TokenMinted",
    "EngineInitialized",
    # Errors
    "IssuanceError",
    "SupplyError",
    "SupplyCap",
]
