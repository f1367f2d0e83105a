"""One-time pad masking of the per-session CSRF secret.

The wire token is ``base64(otp || (otp ^ secret))``. The xor is not
encryption; it only varies the value sent on every response (BREACH
mitigation) while the secret stays the same for the whole session.
"""

import base64
import binascii
import secrets

from sessionguard.errors import LengthMismatchError, MalformedTokenError, RandomnessError

# Default size of the session secret and of each one-time pad, in bytes
DEFAULT_SECRET_LENGTH = 32


def xor(a: bytes, b: bytes) -> bytes:
    """Xor two equal-length byte strings.

    Raises:
        LengthMismatchError: If the operands differ in length
    """
    if len(a) != len(b):
        raise LengthMismatchError(f"xor: length mismatch ({len(a)} != {len(b)})")
    return bytes(x ^ y for x, y in zip(a, b))


def generate_secret(length: int = DEFAULT_SECRET_LENGTH) -> bytes:
    """Return ``length`` bytes from the operating system's secure generator.

    Used for both the session secret and the per-response one-time pad.

    Raises:
        ValueError: If length is not positive
        RandomnessError: If the generator is unavailable
    """
    if length <= 0:
        raise ValueError(f"secret length must be positive, got {length}")
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise RandomnessError(f"unable to read {length} random bytes: {e}") from e


def mask_token(secret: bytes, otp: bytes) -> str:
    """Mask ``secret`` with ``otp`` and encode the result for the wire."""
    masked = xor(otp, secret)
    return base64.b64encode(otp + masked).decode("ascii")


def unmask_token(encoded: str, length: int = DEFAULT_SECRET_LENGTH) -> bytes:
    """Decode a wire token and recover the secret it was masked from.

    Args:
        encoded: Standard base64 token as sent by the client (may be empty)
        length: Expected secret length in bytes

    Returns:
        The claimed secret

    Raises:
        MalformedTokenError: If the token is not base64 or not ``2 * length`` bytes
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"token is not valid base64: {e}") from e

    if len(raw) != length * 2:
        raise MalformedTokenError(
            f"token has wrong size: expected {length * 2} bytes, got {len(raw)}"
        )

    return xor(raw[:length], raw[length:])


def tokens_match(expected: bytes, actual: bytes) -> bool:
    """Compare two secrets in constant time."""
    return secrets.compare_digest(expected, actual)
