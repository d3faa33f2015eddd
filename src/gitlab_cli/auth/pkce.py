"""PKCE (:rfc:`7636`) code verifier and S256 challenge generation.

The verifier is the locally held secret; only its SHA-256 challenge goes
into the browser-facing authorization URL. The verifier itself is sent once,
in the authorization-code token exchange.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import NamedTuple

VERIFIER_BYTES = 32


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_verifier() -> str:
    """Return a fresh code verifier.

    32 bytes from :mod:`secrets`, URL-safe base64 without padding, which
    gives a 43-character string inside the 43-128 range :rfc:`7636` allows.
    """
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def challenge_for(verifier: str) -> str:
    """Return the S256 challenge for *verifier*.

    ``BASE64URL-NOPAD(SHA256(ASCII(verifier)))``; deterministic and pure.
    """
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


class PKCEPair(NamedTuple):
    """A code verifier together with its derived challenge."""

    verifier: str
    challenge: str

    @classmethod
    def generate(cls) -> PKCEPair:
        verifier = generate_verifier()
        return cls(verifier, challenge_for(verifier))
