"""Parsing utilities for common data transformations."""

from eth_utils import to_checksum_address

WORD_HEX_LENGTH = 64
"""Hex characters in one 32-byte ABI word"""


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None:
        return default
    return int(hex_value, 16)


def strip_hex_prefix(value: str) -> str:
    """Remove a leading 0x/0X if present.

    Example:
        >>> strip_hex_prefix("0xabc")
        'abc'
    """
    return value[2:] if value[:2].lower() == "0x" else value


def split_words(data: str) -> list[str]:
    """Split ABI-encoded hex data into 32-byte words.

    Args:
        data: Hex string, with or without 0x prefix

    Returns:
        list[str]: 64-character hex words

    Raises:
        ValueError: If the payload is not a whole number of words

    Example:
        >>> split_words("0x" + "00" * 31 + "01")
        ['0000000000000000000000000000000000000000000000000000000000000001']
    """
    payload = strip_hex_prefix(data)
    if len(payload) % WORD_HEX_LENGTH:
        msg = f"ABI data length {len(payload)} is not a multiple of 32 bytes"
        raise ValueError(msg)
    return [
        payload[i : i + WORD_HEX_LENGTH]
        for i in range(0, len(payload), WORD_HEX_LENGTH)
    ]


def word_to_address(word: str) -> str:
    """Decode an address from a 32-byte word or topic.

    Example:
        >>> word_to_address("0x" + "0" * 24 + "bd6c7b0d2f68c2b7805d88388319cfb6ecb50ea9")
        '0xbD6C7B0d2f68c2b7805d88388319cfB6EcB50eA9'
    """
    return to_checksum_address("0x" + strip_hex_prefix(word)[-40:])


def word_to_uint(word: str) -> int:
    """Decode an unsigned integer from a 32-byte word or topic."""
    return int(strip_hex_prefix(word), 16)
