import functools

from cchecksum import to_checksum_address
from eth_typing import ChecksumAddress

ADDRESS_LENGTH = 20


@functools.lru_cache(maxsize=4096)
def get_checksum_address(address: str | bytes) -> ChecksumAddress:
    """
    Checksum a 20-byte address given as a hex string or raw bytes. Pools, positions, owners and
    tick arrays are keyed by this form, so every address entering the ledger passes through here.

    Malformed input raises `ValueError`.
    """

    if isinstance(address, bytes) and len(address) != ADDRESS_LENGTH:
        msg = f"Address must be {ADDRESS_LENGTH} bytes, got {len(address)}"
        raise ValueError(msg)
    return to_checksum_address(address)
