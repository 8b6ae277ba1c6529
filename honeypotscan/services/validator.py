import re

from web3 import Web3

from ..config.settings import settings
from ..models.contract_models import ValidationResult
from .patterns import CHAIN_CONFIGS

ADDRESS_LENGTH = 42
_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def validate_address(address, strict: bool = None) -> ValidationResult:
    """
    Check an address is ``0x`` followed by 40 hex characters.

    In strict mode a mixed-case address must also carry a valid EIP-55
    checksum (keccak256 of the lowercase address). All-lowercase and
    all-uppercase addresses carry no checksum and are accepted.
    """
    if strict is None:
        strict = settings.STRICT_CHECKSUM

    if not address or not isinstance(address, str):
        return ValidationResult(False, "Address is required")

    address = address.strip()
    if len(address) != ADDRESS_LENGTH or not _ADDRESS_RE.match(address):
        return ValidationResult(False, "Invalid contract address format")

    if strict:
        body = address[2:]
        if body != body.lower() and body != body.upper() and not Web3.is_checksum_address(address):
            return ValidationResult(False, "Invalid address checksum (EIP-55)")

    return ValidationResult(True)


def validate_chain(chain) -> ValidationResult:
    if not chain or not isinstance(chain, str):
        return ValidationResult(False, "Chain is required")

    if chain.lower() not in CHAIN_CONFIGS:
        return ValidationResult(False, f"Unsupported chain: {chain}")

    return ValidationResult(True)


def normalize_address(address: str) -> str:
    return address.strip().lower()
