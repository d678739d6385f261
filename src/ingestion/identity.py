"""
Deterministic document identifiers.

Re-ingesting the same feed must hit the same documents, and there is no
side index of previously seen URLs, so the id has to be a pure function
of the URL. Python's built-in hash() is salted per process and cannot be
used here.

The hash mirrors the ids already stored by earlier versions of the job:
two 32-bit multiplicative hashes over UTF-16 code units, concatenated to
16 hex characters. Changing it would re-create every article.
"""

import struct

_MASK32 = 0xFFFFFFFF

DOC_ID_PREFIX = "art_"


def _utf16_units(value: str) -> tuple[int, ...]:
    data = value.encode("utf-16-le", "surrogatepass")
    return struct.unpack(f"<{len(data) // 2}H", data)


def stable_hash(value: str) -> str:
    """
    Generate a stable 64-bit hex hash of a string.

    Args:
        value: String to hash (typically a URL)

    Returns:
        16-character lowercase hex string (e.g., "a1b2c3d4e5f67890")
    """
    units = _utf16_units(value)
    length = len(units)

    h1 = (0xDEADBEEF ^ length) & _MASK32
    h2 = (0x41C6CE57 ^ length) & _MASK32
    for ch in units:
        h1 = ((h1 ^ ch) * 2654435761) & _MASK32
        h2 = ((h2 ^ ch) * 1597334677) & _MASK32

    h1 = (h1 ^ (h1 >> 16)) & _MASK32
    h2 = (h2 ^ (h2 >> 13)) & _MASK32
    return f"{h1:08x}{h2:08x}"


def make_doc_id(url: str) -> str:
    """Document id for an article URL, e.g. "art_a1b2c3d4e5f67890"."""
    return f"{DOC_ID_PREFIX}{stable_hash(url)}"
