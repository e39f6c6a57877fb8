"""Batch signing: HMAC helper and signed collector URLs."""

from __future__ import annotations

import hashlib
import hmac
from typing import Callable
from urllib.parse import quote


# (secret, message) -> signature; must be deterministic
HashFunction = Callable[[str, str], str]


def hmac_sha256_hex(secret: str, message: str) -> str:
    """HMAC-SHA256 of ``message`` keyed with ``secret``, as lowercase hex."""
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def sign_url(endpoint: str, client_key: str, signature: str) -> str:
    """
    Append ``key`` and ``mac`` query parameters to the collector endpoint.

    Joined with "&" when the endpoint already has a query string, else "?".
    Both values are fully percent-encoded ("?foo" -> "%3Ffoo").

        >>> sign_url("https://c.example/v1?feature=x", "?foo", "abc")
        'https://c.example/v1?feature=x&key=%3Ffoo&mac=abc'
    """
    base, hash_mark, fragment = endpoint.partition("#")
    separator = "&" if "?" in base else "?"
    params = f"key={quote(client_key, safe='')}&mac={quote(signature, safe='')}"

    signed = f"{base}{separator}{params}"
    if hash_mark:
        signed = f"{signed}#{fragment}"
    return signed
