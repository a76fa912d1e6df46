"""
BlankArt Claim Ledger

Permanent registry of redeemed voucher digests. A digest moves from
unclaimed to claimed exactly once and is never reset, so a voucher can be
redeemed at most once no matter how much of its ceiling was used.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import threading
from typing import Set

from blankart.errors import AlreadyClaimed


class ClaimLedger:
    """Set of claimed voucher digests."""

    def __init__(self):
        self._claimed: Set[bytes] = set()
        self._lock = threading.Lock()

    def is_claimed(self, digest: bytes) -> bool:
        with self._lock:
            return digest in self._claimed

    def mark_claimed(self, digest: bytes) -> None:
        """Record ``digest`` as redeemed; raises AlreadyClaimed if it was."""
        with self._lock:
            if digest in self._claimed:
                raise AlreadyClaimed(digest="0x" + digest.hex())
            self._claimed.add(digest)

    def __len__(self) -> int:
        with self._lock:
            return len(self._claimed)
