"""
Visitor Fingerprints
====================

Derives a bounded, stable key for a visitor from request data.

The raw key is ``"<address>|<user-agent>"`` (plus ``"?<query>"`` when the
query string is included). It is truncated to ``max_bytes`` BEFORE hashing
so an adversarially long User-Agent cannot grow memory, and hashed with
SHA-256 by default so no address or User-Agent is kept in the store.
"""

import hashlib
from typing import Optional


DEFAULT_MAX_KEY_BYTES = 511


def make_fingerprint(
    address: Optional[str],
    user_agent: Optional[str],
    query: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_KEY_BYTES,
    hashed: bool = True,
) -> str:
    """
    Build a visitor fingerprint.

    Args:
        address: Client network address ("unknown" if missing)
        user_agent: Client User-Agent string
        query: Optional query string to mix in
        max_bytes: Cap on the raw key length in UTF-8 bytes
        hashed: Return a SHA-256 hex digest instead of the raw key

    Returns:
        64-char hex digest, or the truncated raw key when ``hashed`` is False
    """
    raw = f"{address or 'unknown'}|{user_agent or ''}"
    if query:
        raw = f"{raw}?{query}"

    data = raw.encode("utf-8")[:max_bytes]

    if hashed:
        return hashlib.sha256(data).hexdigest()

    # Drop a multibyte sequence cut in half by the truncation
    return data.decode("utf-8", errors="ignore")
