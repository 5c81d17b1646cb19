"""
stakegov/wallet.py

Wallet key normalization.

Addresses arrive with whatever casing the wallet provider used
(checksummed or lower-case). Every per-wallet record is partitioned
under the lower-case form so the same wallet always maps to the same key.
"""

from typing import Optional

from .errors import ValidationError


def normalize_wallet(address: Optional[str]) -> Optional[str]:
    """Return the wallet key for an address, or None if it is empty."""
    if address is None:
        return None
    if not isinstance(address, str):
        raise ValidationError(f"Wallet address must be a string, got {type(address).__name__}")
    key = address.strip().lower()
    if not key:
        return None
    if "/" in key:
        raise ValidationError("Wallet address cannot contain '/'")
    return key


def require_wallet(address: Optional[str], role: str = "wallet") -> str:
    """Normalize an address that must be present."""
    key = normalize_wallet(address)
    if key is None:
        raise ValidationError(f"A {role} address is required")
    return key


def short_address(key: Optional[str]) -> str:
    """Shortened form for log lines."""
    if not key:
        return "<none>"
    if len(key) <= 14:
        return key
    return f"{key[:8]}...{key[-4:]}"
