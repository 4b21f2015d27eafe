"""
Discord interaction request signature verification.

Every interaction Discord sends to an HTTP endpoint is signed with the
application's Ed25519 key. The signed message is the raw value of the
X-Signature-Timestamp header immediately followed by the raw request body.

Security Features:
- Ed25519 signature verification (PyNaCl)
- Distinct errors for missing headers, bad hex encoding and forged signatures
- Verification can be disabled explicitly by configuring an empty public key

Reference: https://discord.com/developers/docs/interactions/overview#setting-up-an-endpoint-validating-security-request-headers
"""

import binascii
from typing import Mapping, Optional, Union

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from requests.structures import CaseInsensitiveDict

HEADER_SIGNATURE = "X-Signature-Ed25519"
HEADER_TIMESTAMP = "X-Signature-Timestamp"


class SignatureVerificationError(Exception):
    """Base exception for request signature verification failures."""

    pass


class MissingSignatureHeaderError(SignatureVerificationError):
    """Raised when the X-Signature-Ed25519 header is absent or empty."""

    def __init__(self) -> None:
        super().__init__(f"missing header {HEADER_SIGNATURE}")


class MissingTimestampHeaderError(SignatureVerificationError):
    """Raised when the X-Signature-Timestamp header is absent or empty."""

    def __init__(self) -> None:
        super().__init__(f"missing header {HEADER_TIMESTAMP}")


class InvalidSignatureEncodingError(SignatureVerificationError):
    """Raised when the signature header is not valid hex."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"invalid signature encoding: {reason}")


class InvalidSignatureError(SignatureVerificationError):
    """Raised when the signature does not match the timestamp and body."""

    def __init__(self) -> None:
        super().__init__("invalid signature")


def _as_header_lookup(headers: Optional[Mapping[str, str]]) -> CaseInsensitiveDict:
    if isinstance(headers, CaseInsensitiveDict):
        return headers
    return CaseInsensitiveDict(headers or {})


def verify_signature(
    public_key: Union[bytes, VerifyKey, None],
    headers: Optional[Mapping[str, str]],
    body: bytes,
) -> None:
    """
    Verify a Discord interaction request.

    Args:
        public_key: Application public key (raw 32 bytes or a VerifyKey).
            An empty value disables verification.
        headers: Request headers (looked up case-insensitively)
        body: Raw request body bytes, exactly as received

    Raises:
        MissingSignatureHeaderError: X-Signature-Ed25519 is missing
        MissingTimestampHeaderError: X-Signature-Timestamp is missing
        InvalidSignatureEncodingError: the signature is not hex
        InvalidSignatureError: the signature does not verify

    Example:
        >>> verify_signature(b"", {}, b"{}")  # verification disabled
    """
    if public_key is None or (isinstance(public_key, (bytes, bytearray)) and len(public_key) == 0):
        return

    lookup = _as_header_lookup(headers)

    signature = lookup.get(HEADER_SIGNATURE)
    if not signature:
        raise MissingSignatureHeaderError()
    timestamp = lookup.get(HEADER_TIMESTAMP)
    if not timestamp:
        raise MissingTimestampHeaderError()

    try:
        sig = binascii.unhexlify(signature)
    except (binascii.Error, ValueError) as e:
        raise InvalidSignatureEncodingError(str(e)) from e

    verify_key = public_key if isinstance(public_key, VerifyKey) else VerifyKey(bytes(public_key))

    # timestamp || body, no delimiter
    message = timestamp.encode("utf-8") + body

    try:
        verify_key.verify(message, sig)
    except (BadSignatureError, ValueError) as e:
        raise InvalidSignatureError() from e
