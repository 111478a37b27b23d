"""
Caller identity derivation.

A caller is keyed by an HMAC-SHA256 of its network address, so raw
addresses never reach the rate limiter state, logs, or metrics.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import Request

from .exceptions import ConfigurationError, IdentityError

CALLER_KEY_LENGTH = 64


def hash_identity(address: Optional[str], secret: Optional[str]) -> str:
    """
    Derive the caller key for an address.

    Same address and secret always give the same 64 character hex digest.
    """
    if not secret:
        raise ConfigurationError("Your credentials are missing.")

    address = (address or "").strip()
    if not address:
        raise IdentityError()

    digest = hmac.new(secret.encode("utf-8"), address.encode("utf-8"), hashlib.sha256).hexdigest()
    if len(digest) != CALLER_KEY_LENGTH:
        raise IdentityError()
    return digest


def get_client_address(request: Request, trusted_proxies: int = 0) -> Optional[str]:
    """
    Return the address a request came from.

    With no trusted proxies this is the socket peer. Behind ``trusted_proxies``
    proxies, each appending to X-Forwarded-For, it is the hop the outermost
    proxy recorded. Hops left of it are client-supplied and never used.
    """
    if trusted_proxies > 0:
        forwarded = request.headers.get("x-forwarded-for", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if len(hops) >= trusted_proxies:
            return hops[-trusted_proxies]

    if request.client is None:
        return None
    return request.client.host
