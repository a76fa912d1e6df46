"""
BlankArt Validation and Hardening Module

Input validation for every value that crosses the engine boundary:

1. Ethereum addresses (normalized to checksum form)
2. Wei amounts (non-negative integers, bounded by uint256)
3. Token counts and basis points
4. Base URIs

Security Model:
    - All inputs are untrusted until validated
    - Address comparisons are constant-time on the normalized form
    - All economic values are integers; floats are rejected

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import hmac
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from eth_utils import is_address, to_checksum_address

from blankart.errors import InvalidParameter


UINT256_MAX = 2**256 - 1
MAX_BASIS_POINTS = 10_000


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationError:
    """A single validation failure."""
    field: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def unwrap(self) -> Any:
        """Return the sanitized value or raise InvalidParameter for the first error."""
        if not self.is_valid:
            err = self.errors[0]
            raise InvalidParameter(err.field, err.message, err.value)
        return self.sanitized_value

    @classmethod
    def success(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, field_name: str, message: str, value: Any = None) -> "ValidationResult":
        return cls(is_valid=False, errors=[ValidationError(field_name, message, value)])


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://\S*$")
    MAX_URI_LENGTH = 2048

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        """Validate an Ethereum address and return its checksum form."""
        if not isinstance(value, str):
            return ValidationResult.failure(
                field_name, f"Expected string, got {type(value).__name__}", value
            )
        candidate = value.strip()
        if not is_address(candidate):
            return ValidationResult.failure(
                field_name, "Must be a valid Ethereum address (0x + 40 hex)", value
            )
        return ValidationResult.success(to_checksum_address(candidate))

    @classmethod
    def validate_wei(cls, value: Any, field_name: str = "amount") -> ValidationResult:
        """Validate a non-negative integer wei amount."""
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure(
                field_name, f"Expected integer wei, got {type(value).__name__}", value
            )
        if value < 0:
            return ValidationResult.failure(field_name, "Cannot be negative", value)
        if value > UINT256_MAX:
            return ValidationResult.failure(field_name, "Exceeds uint256 range", value)
        return ValidationResult.success(value)

    @classmethod
    def validate_count(
        cls,
        value: Any,
        field_name: str = "amount",
        minimum: int = 1,
    ) -> ValidationResult:
        """Validate a token count."""
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure(
                field_name, f"Expected integer, got {type(value).__name__}", value
            )
        if value < minimum:
            return ValidationResult.failure(field_name, f"Must be at least {minimum}", value)
        return ValidationResult.success(value)

    @classmethod
    def validate_basis_points(cls, value: Any, field_name: str = "royalty_bps") -> ValidationResult:
        """Validate royalty basis points (0..10000)."""
        result = cls.validate_count(value, field_name, minimum=0)
        if not result.is_valid:
            return result
        if value > MAX_BASIS_POINTS:
            return ValidationResult.failure(
                field_name, f"Must not exceed {MAX_BASIS_POINTS}", value
            )
        return result

    @classmethod
    def validate_uri(cls, value: Any, field_name: str = "base_uri") -> ValidationResult:
        """Validate a base URI such as ``https://x/`` or ``ar://abc/``."""
        if not isinstance(value, str):
            return ValidationResult.failure(
                field_name, f"Expected string, got {type(value).__name__}", value
            )
        if len(value) > cls.MAX_URI_LENGTH:
            return ValidationResult.failure(
                field_name, f"Too long (max {cls.MAX_URI_LENGTH} chars)", value
            )
        if not cls.URI_PATTERN.match(value):
            return ValidationResult.failure(field_name, "Must be an absolute URI", value)
        return ValidationResult.success(value)


def normalize_address(value: Any, field_name: str = "address") -> str:
    """Checksum-normalize an address or raise InvalidParameter."""
    return Validators.validate_address(value, field_name).unwrap()


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive, constant-time address equality."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.lower().encode(), b.lower().encode())
