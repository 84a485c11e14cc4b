"""HMAC-SHA256 signature verification for webhook request bodies.

The MAC is computed over the exact bytes received on the wire. Verifying a body
that was parsed and re-serialized will fail (or worse, succeed for a different
payload), so callers must capture the raw body before any JSON decoding.
"""

import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-alchemy-signature"


def _as_bytes(value: Union[bytes, str]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def compute_signature(raw_body: Union[bytes, str], signing_key: str) -> str:
    """
    Compute the lowercase hex HMAC-SHA256 of a request body.

    Args:
        raw_body: Body exactly as received (str bodies are UTF-8 encoded)
        signing_key: Shared signing secret

    Returns:
        Lowercase hex digest
    """
    return hmac.new(_as_bytes(signing_key), _as_bytes(raw_body), hashlib.sha256).hexdigest()


def verify_signature(
    raw_body: Optional[Union[bytes, str]],
    signature: Optional[str],
    signing_key: str,
) -> bool:
    """
    Check a sender-supplied signature against the raw body.

    Missing inputs and mismatches return False; this never raises.

    Args:
        raw_body: Body exactly as received
        signature: Hex MAC from the signature header
        signing_key: Shared signing secret

    Returns:
        True when the signature equals the computed digest
    """
    if not raw_body or not signature or not signing_key:
        return False

    expected = compute_signature(raw_body, signing_key)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


class SignatureVerifier:
    """Verifies webhook signatures with a single static signing key."""

    def __init__(self, signing_key: str):
        if not signing_key:
            raise ValueError("A webhook signing key is required")
        self._signing_key = signing_key

    def sign(self, raw_body: Union[bytes, str]) -> str:
        return compute_signature(raw_body, self._signing_key)

    def verify(self, raw_body: Optional[Union[bytes, str]], signature: Optional[str]) -> bool:
        return verify_signature(raw_body, signature, self._signing_key)
