"""blankart.voucher

EIP-712 vouchers: canonical digest, signing and signer recovery.

Profile / invariants:
- The signing domain is ``{name, version, chainId, verifyingContract}``;
  the name and version must match between the authorizer helper and the
  verifier or every signature is rejected.
- The struct is ``BlankNFTVoucher(address redeemerAddress, uint256 minPrice,
  uint256 expiration, uint256 maxAmount)`` in exactly that order. A voucher
  without a per-voucher ceiling encodes ``maxAmount = 0``.
- The voucher identity is the EIP-712 digest of its fields. The signature is
  not part of it, so re-signing identical fields yields the same voucher.

Verification is pure and never raises for a bad voucher: it returns a
``VerificationResult`` with ``ok=False`` and an error message.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak, to_checksum_address

from blankart.config import BlankArtConfig, get_config
from blankart.hardening import same_address

VOUCHER_TYPE_NAME = "BlankNFTVoucher"

EIP712_DOMAIN_FIELDS: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

VOUCHER_FIELDS: List[Dict[str, str]] = [
    {"name": "redeemerAddress", "type": "address"},
    {"name": "minPrice", "type": "uint256"},
    {"name": "expiration", "type": "uint256"},
    {"name": "maxAmount", "type": "uint256"},
]

SIGNATURE_LENGTH = 65


# ---------------------------------------------------------------------------
# Domain + voucher
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SigningDomain:
    """Issuer, network and contract identity bound into every digest."""

    name: str
    version: str
    chain_id: int
    verifying_contract: str

    @classmethod
    def for_contract(
        cls,
        verifying_contract: str,
        chain_id: Optional[int] = None,
        config: Optional[BlankArtConfig] = None,
    ) -> "SigningDomain":
        """Build the domain for a deployment from the signing configuration."""
        cfg = (config or get_config()).signing
        return cls(
            name=cfg.domain_name.get(),
            version=cfg.domain_version.get(),
            chain_id=chain_id if chain_id is not None else cfg.chain_id.get(),
            verifying_contract=to_checksum_address(verifying_contract),
        )

    def to_eip712(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": to_checksum_address(self.verifying_contract),
        }


@dataclass(frozen=True)
class Voucher:
    """A signed authorization for ``recipient`` to mint."""

    recipient: str
    min_price: int = 0
    expiration: int = 0
    max_amount: Optional[int] = None
    signature: bytes = b""

    def __post_init__(self):
        # maxAmount 0 is the encoded form of "no ceiling"
        if self.max_amount == 0:
            object.__setattr__(self, "max_amount", None)

    def message(self) -> Dict[str, Any]:
        """The typed struct fields, in canonical order."""
        return {
            "redeemerAddress": to_checksum_address(self.recipient),
            "minPrice": self.min_price,
            "expiration": self.expiration,
            "maxAmount": self.max_amount or 0,
        }

    def with_signature(self, signature: Union[bytes, str]) -> "Voucher":
        return replace(self, signature=_signature_bytes(signature))

    def to_dict(self) -> Dict[str, Any]:
        """JSON document form (see ``schemas/voucher.schema.json``)."""
        return {
            "redeemerAddress": to_checksum_address(self.recipient),
            "minPrice": str(self.min_price),
            "expiration": self.expiration,
            "maxAmount": self.max_amount or 0,
            "signature": "0x" + self.signature.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Voucher":
        return cls(
            recipient=to_checksum_address(data["redeemerAddress"]),
            min_price=int(data.get("minPrice") or 0),
            expiration=int(data["expiration"]),
            max_amount=int(data.get("maxAmount") or 0),
            signature=_signature_bytes(data.get("signature") or b""),
        )


def _signature_bytes(signature: Union[bytes, str]) -> bytes:
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    s = signature[2:] if signature.startswith(("0x", "0X")) else signature
    return bytes.fromhex(s)


# ---------------------------------------------------------------------------
# Canonical encoding
# ---------------------------------------------------------------------------


def typed_data(voucher: Voucher, domain: SigningDomain) -> Dict[str, Any]:
    """Full EIP-712 payload for the voucher."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_FIELDS,
            VOUCHER_TYPE_NAME: VOUCHER_FIELDS,
        },
        "primaryType": VOUCHER_TYPE_NAME,
        "domain": domain.to_eip712(),
        "message": voucher.message(),
    }


def signable_message(voucher: Voucher, domain: SigningDomain) -> SignableMessage:
    return encode_typed_data(full_message=typed_data(voucher, domain))


def voucher_digest(voucher: Voucher, domain: SigningDomain) -> bytes:
    """``keccak256(0x19 || 0x01 || domainSeparator || structHash)``."""
    msg = signable_message(voucher, domain)
    return keccak(b"\x19" + msg.version + msg.header + msg.body)


def sign_voucher(voucher: Voucher, domain: SigningDomain, private_key: Any) -> Voucher:
    """Return a copy of ``voucher`` carrying a signature by ``private_key``."""
    signed = Account.sign_message(signable_message(voucher, domain), private_key=private_key)
    return voucher.with_signature(bytes(signed.signature))


def recover_signer(voucher: Voucher, domain: SigningDomain) -> str:
    """Recover the checksum address that signed ``voucher``.

    Raises ValueError if the signature is malformed.
    """
    if len(voucher.signature) != SIGNATURE_LENGTH:
        raise ValueError(
            f"signature must be {SIGNATURE_LENGTH} bytes, got {len(voucher.signature)}"
        )
    return Account.recover_message(signable_message(voucher, domain), signature=voucher.signature)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


@dataclass
class VerificationResult:
    ok: bool
    signer: str = ""
    digest: bytes = b""
    error: str = ""


def verify(
    voucher: Voucher,
    domain: SigningDomain,
    expected_signer: Optional[str] = None,
) -> VerificationResult:
    """Verify ``voucher`` against ``domain`` and the authorized signer.

    With ``expected_signer=None`` only recovery is performed.
    """
    try:
        digest = voucher_digest(voucher, domain)
    except Exception as ex:
        return VerificationResult(ok=False, error=f"cannot encode voucher: {ex}")

    try:
        signer = recover_signer(voucher, domain)
    except Exception as ex:
        return VerificationResult(ok=False, digest=digest, error=f"signature recovery failed: {ex}")

    if expected_signer is not None and not same_address(signer, expected_signer):
        return VerificationResult(
            ok=False,
            signer=signer,
            digest=digest,
            error=f"signer {signer} is not the authorized controller",
        )
    return VerificationResult(ok=True, signer=signer, digest=digest)
