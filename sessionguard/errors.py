"""Errors raised while issuing and validating CSRF tokens."""


class GuardError(Exception):
    """Base class for failures that terminate the current request."""

    status_code = 500


class SessionError(GuardError):
    """Raised when the session store cannot produce or persist a session."""

    status_code = 500


class RandomnessError(GuardError):
    """Raised when the secure random generator is unavailable."""

    status_code = 500


class LengthMismatchError(GuardError, ValueError):
    """Raised when xor operands have different lengths."""

    status_code = 500


class MalformedTokenError(GuardError):
    """Raised when a client token is missing, not base64, or the wrong size."""

    status_code = 400


class TokenMismatchError(GuardError):
    """Raised when an unmasked client token does not match the session secret."""

    status_code = 400
