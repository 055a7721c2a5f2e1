"""
Input Validation - sanity checks for values headed to the ledger.

Each helper returns (is_valid, error_message) and leaves it to the caller
to raise the matching typed error.
"""

from typing import Any, Tuple

from auctionhouse.crypto import is_valid_address

# =============================================================================
# Constants
# =============================================================================

MIN_SALT_LENGTH = 8
MAX_SALT_LENGTH = 1024

MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_amount(
    value: Any,
    name: str = "amount",
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate an unsigned integer amount (wei or token id).

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value (uint256 by default)

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_salt(salt: Any) -> Tuple[bool, str]:
    """Validate a sealed-bid salt."""
    if not isinstance(salt, str):
        return False, f"salt must be str, got {type(salt).__name__}"

    if len(salt) < MIN_SALT_LENGTH:
        return False, f"salt must be at least {MIN_SALT_LENGTH} characters"

    if len(salt) > MAX_SALT_LENGTH:
        return False, f"salt exceeds max length {MAX_SALT_LENGTH}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 0x-prefixed 20-byte hex address."""
    if not is_valid_address(address):
        return False, f"{name} is not a valid address: {address!r}"
    return True, ""
