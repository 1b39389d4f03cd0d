"""Structural validation of Stellar account addresses.

Only the shape is checked: 56 characters, leading 'G', RFC 4648 base32 alphabet.
Whether the account exists or is funded is the ledger's business.
"""

import re
from typing import Optional

from ..models.validation import ValidationResult

STELLAR_ADDRESS_LENGTH = 56
STELLAR_ADDRESS_PREFIX = "G"
STELLAR_ADDRESS_PATTERN = re.compile(r"^G[A-Z2-7]{55}$")

ADDRESS_REQUIRED = "Wallet address is required"
ADDRESS_INVALID = "Invalid Stellar address format"


def is_valid_stellar_address(address: Optional[str]) -> bool:
    if not isinstance(address, str):
        return False
    return STELLAR_ADDRESS_PATTERN.fullmatch(address) is not None


class WalletAddressValidator:
    """Gate for per-winner milestone creation."""

    def validate(self, address: Optional[str]) -> bool:
        return is_valid_stellar_address(address)

    def validate_field(self, address: Optional[str], field: str = "wallet_address") -> ValidationResult:
        """Field-scoped result: required, then format. Surrounding whitespace is ignored."""
        result = ValidationResult()
        cleaned = (address or "").strip()
        if not cleaned:
            result.add([field], ADDRESS_REQUIRED)
        elif not is_valid_stellar_address(cleaned):
            result.add([field], ADDRESS_INVALID)
        return result
