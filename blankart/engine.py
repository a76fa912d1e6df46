"""
BlankArt Issuance Engine

Orchestrates the voucher redemption path, the public mint path and the
controller's administrative controls over a capped token collection.

State Machine:

    ┌──────────────┐  toggle_active   ┌──────────────┐
    │    Active    │ ◄──────────────► │    Paused    │   redemption gate
    └──────────────┘                  └──────────────┘
    ┌──────────────┐ toggle_public_mint ┌────────────┐
    │ PublicMintOff│ ◄────────────────► │PublicMintOn│   self-service gate
    └──────────────┘                    └────────────┘

    Initial state: Active, PublicMintOff. The two gates are independent;
    public minting needs both Active and PublicMintOn.

Redemption checks, in order (the first failure is reported):

    NotActive → AuthInvalid → WrongRecipient → Expired →
    AmountExceedsVoucherLimit → AmountExceedsMintLimit →
    InsufficientFunds → AlreadyClaimed → SupplyError

Atomicity:
    Every mutating operation holds one engine-wide lock and runs in two
    phases: validate everything, then apply everything. A rejection is
    raised before the first mutation, so no counter, claim or escrow
    credit is ever partially applied. Notifications are published after
    the lock is released and the state is committed.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import secrets
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from blankart.claims import ClaimLedger
from blankart.config import BlankArtConfig, get_config
from blankart.errors import (
    AlreadyClaimed,
    AmountExceedsMintLimit,
    AmountExceedsVoucherLimit,
    AuthInvalid,
    Expired,
    IssuanceError,
    NotActive,
    TokenNotFound,
    Unauthorized,
    WrongRecipient,
)
from blankart.escrow import Escrow
from blankart.events import (
    AdminChanged,
    EngineInitialized,
    Event,
    EpochAdded,
    EventBus,
    MembershipChanged,
    TokenMinted,
    TokenUriLocked,
    Withdrawal,
)
from blankart.hardening import (
    MAX_BASIS_POINTS,
    Validators,
    normalize_address,
    same_address,
)
from blankart.metadata import MetadataResolver
from blankart.observability import Layer, get_logger, timed_operation
from blankart.supply import SupplyLedger
from blankart.voucher import SigningDomain, Voucher, verify, voucher_digest

logger = get_logger("engine", Layer.ENGINE)

# ERC-165 interface identifiers
INTERFACE_ERC165 = "0x01ffc9a7"
INTERFACE_ERC721 = "0x80ac58cd"
INTERFACE_ERC721_METADATA = "0x5b5e139f"
INTERFACE_ERC2981 = "0x2a55205a"

# Tokens a single redeem or mint may issue, independent of member_cap
MAX_PER_TRANSACTION = 5

SUPPORTED_INTERFACES = frozenset({
    INTERFACE_ERC165,
    INTERFACE_ERC721,
    INTERFACE_ERC721_METADATA,
    INTERFACE_ERC2981,
})


@dataclass
class AdminState:
    """Administrative configuration owned by the engine."""
    controller: str
    royalty_receiver: str
    royalty_bps: int
    mint_price: int = 0
    active: bool = True
    public_mint_enabled: bool = False


@dataclass(frozen=True)
class MintReceipt:
    """Outcome of a successful redeem or mint."""
    recipient: str
    token_ids: Tuple[int, ...]
    token_uris: Tuple[str, ...]
    paid: int


def _system_clock() -> int:
    return int(time.time())


def _interface_key(interface_id: Union[str, int, bytes]) -> str:
    if isinstance(interface_id, bytes):
        return "0x" + interface_id.hex()
    if isinstance(interface_id, int):
        return f"0x{interface_id:08x}"
    return interface_id.lower()


class IssuanceEngine:
    """
    Capped NFT issuance via signed vouchers and public minting.

    Args:
        controller: Administrative identity; signs vouchers and receives escrow.
        max_supply: Global cap on issued tokens (positive).
        base_uri: Initial base-URI epoch (index 0).
        royalty_bps: Default royalty in basis points (0..10000).
        contract_address: Verifying-contract identity bound into voucher
            digests; a random address is generated when omitted.
        chain_id: Network identity; defaults to ``signing.chain_id``.
        member_cap: Per-address cap; defaults to ``engine.default_member_cap``.
        mint_price: Public mint unit price in wei; defaults to
            ``engine.default_mint_price_wei``.
        uri_suffix: Token URI suffix; defaults to ``metadata.uri_suffix``.
        clock: Returns the current unix time in seconds.
        event_bus: Receives notifications; a private bus is created if omitted.
    """

    def __init__(
        self,
        controller: str,
        max_supply: int,
        base_uri: str,
        royalty_bps: int,
        *,
        contract_address: Optional[str] = None,
        chain_id: Optional[int] = None,
        member_cap: Optional[int] = None,
        mint_price: Optional[int] = None,
        uri_suffix: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[BlankArtConfig] = None,
    ):
        cfg = config or get_config()
        controller = normalize_address(controller, "controller")
        royalty_bps = Validators.validate_basis_points(royalty_bps).unwrap()
        if mint_price is None:
            mint_price = cfg.engine.default_mint_price_wei.get()
        mint_price = Validators.validate_wei(mint_price, "mint_price").unwrap()
        if member_cap is None:
            member_cap = cfg.engine.default_member_cap.get()
        if uri_suffix is None:
            uri_suffix = cfg.metadata.uri_suffix.get()
        if contract_address is None:
            contract_address = "0x" + secrets.token_hex(20)

        self.name = cfg.engine.name.get()
        self.symbol = cfg.engine.symbol.get()
        self.domain = SigningDomain.for_contract(contract_address, chain_id, cfg)
        self.events = event_bus or EventBus()

        self._lock = threading.RLock()
        self._clock = clock or _system_clock
        self._state = AdminState(
            controller=controller,
            royalty_receiver=controller,
            royalty_bps=royalty_bps,
            mint_price=mint_price,
        )
        self._claims = ClaimLedger()
        self._supply = SupplyLedger(max_supply, member_cap)
        self._escrow = Escrow()
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = {}
        self._metadata = MetadataResolver(
            base_uri,
            uri_suffix,
            owner_of=self._owner_of,
            controller=lambda: self._state.controller,
        )

        logger.info(
            "Issuance engine initialized",
            operation="init",
            contract=self.domain.verifying_contract,
            chain_id=self.domain.chain_id,
            max_supply=max_supply,
        )
        self.events.publish(EngineInitialized(
            controller=controller,
            base_uri=base_uri,
            mint_price=mint_price,
            max_supply=max_supply,
            royalty_bps=royalty_bps,
            active=self._state.active,
            public_mint_enabled=self._state.public_mint_enabled,
        ))

    @property
    def contract_address(self) -> str:
        return self.domain.verifying_contract

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, caller: str) -> Iterator[List[Event]]:
        """Hold the engine lock; publish collected events after commit."""
        pending: List[Event] = []
        try:
            with self._lock:
                yield pending
        except IssuanceError as ex:
            logger.rejected(name, ex, caller=caller)
            raise
        for event in pending:
            self.events.publish(event)

    def _owner_of(self, token_id: int) -> str:
        owner = self._owners.get(token_id)
        if owner is None:
            raise TokenNotFound(f"token {token_id} does not exist", token_id=token_id)
        return owner

    def _require_controller(self, caller: str) -> str:
        if not same_address(caller, self._state.controller):
            raise Unauthorized("only the controller can make this call", caller=caller)
        return normalize_address(caller, "caller")

    def _check_mint_limit(self, amount: int) -> None:
        if amount > MAX_PER_TRANSACTION:
            raise AmountExceedsMintLimit(
                f"cannot mint {amount} tokens in one transaction "
                f"(limit {MAX_PER_TRANSACTION})",
                requested=amount,
                limit=MAX_PER_TRANSACTION,
            )

    def _issue(
        self, recipient: str, amount: int, unit_price: int, paid: int, pending: List[Event],
    ) -> MintReceipt:
        """Apply phase shared by both issuance paths. Caller holds the lock."""
        ids = self._supply.reserve(recipient, amount)
        self._escrow.charge(unit_price, amount, paid)
        uris = []
        for token_id in ids:
            self._owners[token_id] = recipient
            uri = self._metadata.resolve(token_id)
            uris.append(uri)
            pending.append(TokenMinted(token_id=token_id, recipient=recipient, token_uri=uri))
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        logger.info(
            "Tokens issued",
            operation="issue",
            recipient=recipient,
            first_id=ids[0],
            last_id=ids[-1],
            paid=paid,
        )
        return MintReceipt(
            recipient=recipient,
            token_ids=tuple(ids),
            token_uris=tuple(uris),
            paid=paid,
        )

    # ------------------------------------------------------------------
    # Issuance paths
    # ------------------------------------------------------------------

    @timed_operation(logger, "redeem")
    def redeem(self, caller: str, voucher: Voucher, amount: int, payment: int = 0) -> MintReceipt:
        """Redeem a signed voucher for ``amount`` tokens, paying ``payment`` wei."""
        with self._operation("redeem", caller) as pending:
            caller = normalize_address(caller, "caller")
            amount = Validators.validate_count(amount).unwrap()
            payment = Validators.validate_wei(payment, "payment").unwrap()

            if not self._state.active:
                raise NotActive("redemption is paused")

            result = verify(voucher, self.domain, self._state.controller)
            if not result.ok:
                raise AuthInvalid(result.error, signer=result.signer)

            if not same_address(voucher.recipient, caller):
                raise WrongRecipient(
                    "voucher was issued to a different address",
                    recipient=voucher.recipient,
                    caller=caller,
                )

            now = self._clock()
            if now > voucher.expiration:
                raise Expired(
                    "voucher has expired",
                    expiration=voucher.expiration,
                    now=now,
                )

            if voucher.max_amount and amount > voucher.max_amount:
                raise AmountExceedsVoucherLimit(
                    f"voucher allows at most {voucher.max_amount} tokens",
                    requested=amount,
                    limit=voucher.max_amount,
                )

            self._check_mint_limit(amount)
            self._escrow.check_payment(voucher.min_price, amount, payment)

            if self._claims.is_claimed(result.digest):
                raise AlreadyClaimed(
                    "voucher has already been redeemed",
                    digest="0x" + result.digest.hex(),
                )

            self._supply.check_reserve(caller, amount)

            self._claims.mark_claimed(result.digest)
            receipt = self._issue(caller, amount, voucher.min_price, payment, pending)
        return receipt

    @timed_operation(logger, "mint")
    def mint(self, caller: str, amount: int, payment: int = 0) -> MintReceipt:
        """Public self-service mint at the current ``mint_price``."""
        with self._operation("mint", caller) as pending:
            caller = normalize_address(caller, "caller")
            amount = Validators.validate_count(amount).unwrap()
            payment = Validators.validate_wei(payment, "payment").unwrap()

            if not self._state.active:
                raise NotActive("minting is paused")
            if not self._state.public_mint_enabled:
                raise NotActive("public mint is not enabled")

            self._check_mint_limit(amount)
            self._escrow.check_payment(self._state.mint_price, amount, payment)
            self._supply.check_reserve(caller, amount)

            receipt = self._issue(caller, amount, self._state.mint_price, payment, pending)
        return receipt

    # ------------------------------------------------------------------
    # Administrative transitions
    # ------------------------------------------------------------------

    def _set(self, caller: str, setting: str, value, pending: List[Event]) -> None:
        old = getattr(self._state, setting)
        setattr(self._state, setting, value)
        pending.append(AdminChanged(setting=setting, old_value=old, new_value=value, changed_by=caller))
        logger.info(
            f"{setting} updated",
            operation="admin",
            setting=setting,
            old_value=old,
            new_value=value,
        )

    def toggle_active(self, caller: str) -> bool:
        with self._operation("toggle_active", caller) as pending:
            caller = self._require_controller(caller)
            self._set(caller, "active", not self._state.active, pending)
            return self._state.active

    def toggle_public_mint(self, caller: str) -> bool:
        with self._operation("toggle_public_mint", caller) as pending:
            caller = self._require_controller(caller)
            self._set(caller, "public_mint_enabled", not self._state.public_mint_enabled, pending)
            return self._state.public_mint_enabled

    def update_mint_price(self, caller: str, price: int) -> None:
        with self._operation("update_mint_price", caller) as pending:
            caller = self._require_controller(caller)
            price = Validators.validate_wei(price, "mint_price").unwrap()
            self._set(caller, "mint_price", price, pending)

    def update_member_cap(self, caller: str, member_cap: int) -> None:
        with self._operation("update_member_cap", caller) as pending:
            caller = self._require_controller(caller)
            old = self._supply.member_cap
            self._supply.member_cap = member_cap
            pending.append(AdminChanged(
                setting="member_cap", old_value=old, new_value=member_cap, changed_by=caller,
            ))
            logger.info("member_cap updated", operation="admin", old_value=old, new_value=member_cap)

    def update_controller(self, caller: str, new_controller: str) -> None:
        with self._operation("update_controller", caller) as pending:
            caller = self._require_controller(caller)
            new_controller = normalize_address(new_controller, "controller")
            self._set(caller, "controller", new_controller, pending)

    def set_royalty(self, caller: str, receiver: str, bps: int) -> None:
        with self._operation("set_royalty", caller) as pending:
            caller = self._require_controller(caller)
            receiver = normalize_address(receiver, "royalty_receiver")
            bps = Validators.validate_basis_points(bps).unwrap()
            self._set(caller, "royalty_receiver", receiver, pending)
            self._set(caller, "royalty_bps", bps, pending)

    def add_base_uri(self, caller: str, uri: str) -> int:
        """Append a base-URI epoch. Returns its index."""
        with self._operation("add_base_uri", caller) as pending:
            index = self._metadata.add_epoch(uri, caller)
            pending.append(EpochAdded(epoch_index=index, base_uri=uri))
            logger.info("Base URI epoch added", operation="add_base_uri", epoch_index=index)
            return index

    def grant_membership(self, caller: str, address: str) -> None:
        with self._operation("grant_membership", caller) as pending:
            self._require_controller(caller)
            address = normalize_address(address)
            if self._supply.grant_membership(address):
                pending.append(MembershipChanged(address=address, member=True))

    def revoke_membership(self, caller: str, address: str) -> None:
        with self._operation("revoke_membership", caller) as pending:
            self._require_controller(caller)
            address = normalize_address(address)
            if self._supply.revoke_membership(address):
                pending.append(MembershipChanged(address=address, member=False))

    def withdraw(self, caller: str) -> int:
        """Transfer the full escrow balance to the controller."""
        with self._operation("withdraw", caller) as pending:
            caller = self._require_controller(caller)
            amount = self._escrow.withdraw()
            if amount:
                pending.append(Withdrawal(recipient=caller, amount=amount))
            logger.info("Escrow withdrawn", operation="withdraw", amount=amount)
            return amount

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def lock_token_uri(self, caller: str, token_id: int) -> bool:
        """Freeze ``token_id`` to the current epoch. Returns False if already locked."""
        with self._operation("lock_token_uri", caller) as pending:
            locked = self._metadata.lock(token_id, caller)
            if locked:
                pending.append(TokenUriLocked(
                    token_id=token_id,
                    epoch_index=self._metadata.locked_epoch(token_id),
                    token_uri=self._metadata.resolve(token_id),
                ))
            return locked

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def admin_state(self) -> AdminState:
        """Snapshot copy of the administrative state."""
        with self._lock:
            return replace(self._state)

    @property
    def controller(self) -> str:
        with self._lock:
            return self._state.controller

    @property
    def total_supply(self) -> int:
        return self._supply.total_issued

    @property
    def max_supply(self) -> int:
        return self._supply.max_supply

    @property
    def member_cap(self) -> int:
        return self._supply.member_cap

    @property
    def escrow_balance(self) -> int:
        return self._escrow.balance

    @property
    def base_uris(self) -> List[str]:
        return self._metadata.epochs

    def issued_to(self, address: str) -> int:
        return self._supply.issued_to(address)

    def is_member(self, address: str) -> bool:
        return self._supply.is_member(address)

    def owner_of(self, token_id: int) -> str:
        with self._lock:
            return self._owner_of(token_id)

    def balance_of(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            return self._balances.get(address, 0)

    def token_uri(self, token_id: int) -> str:
        with self._lock:
            self._owner_of(token_id)
            return self._metadata.resolve(token_id)

    def locked_epoch(self, token_id: int) -> Optional[int]:
        with self._lock:
            self._owner_of(token_id)
            return self._metadata.locked_epoch(token_id)

    def voucher_digest(self, voucher: Voucher) -> bytes:
        return voucher_digest(voucher, self.domain)

    def is_claimed(self, voucher: Voucher) -> bool:
        return self._claims.is_claimed(self.voucher_digest(voucher))

    def royalty_info(self, token_id: int, sale_price: int) -> Tuple[str, int]:
        """ERC-2981: ``(receiver, sale_price * bps // 10000)``."""
        sale_price = Validators.validate_wei(sale_price, "sale_price").unwrap()
        with self._lock:
            return (
                self._state.royalty_receiver,
                sale_price * self._state.royalty_bps // MAX_BASIS_POINTS,
            )

    def supports_interface(self, interface_id: Union[str, int, bytes]) -> bool:
        return _interface_key(interface_id) in SUPPORTED_INTERFACES
