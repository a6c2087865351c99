"""Helpers for validating wallet addresses and recognizing ENS names."""

from __future__ import annotations

import re

from eth_utils import to_checksum_address

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ENS_NAME_RE = re.compile(r"^[^\s.]+(\.[^\s.]+)+$")


def is_valid_evm_address(address: str | None) -> bool:
    if not address:
        return False
    return bool(_EVM_ADDRESS_RE.fullmatch(address))


def is_ens_name(value: str | None) -> bool:
    """True for dotted names such as ``vitalik.eth`` or ``pay.acme.xyz``."""
    if not value:
        return False
    candidate = value.strip()
    if candidate.startswith("0x"):
        return False
    return bool(_ENS_NAME_RE.fullmatch(candidate))


def checksum(address: str) -> str:
    """EIP-55 checksum form of a valid address."""
    return to_checksum_address(address.strip())


def same_address(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


__all__ = [
    "is_valid_evm_address",
    "is_ens_name",
    "checksum",
    "same_address",
]
