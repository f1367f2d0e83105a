"""Tests for the one-time pad masking helpers."""

import base64
import secrets

import pytest

from sessionguard.errors import LengthMismatchError, MalformedTokenError, RandomnessError
from sessionguard.masking import (
    DEFAULT_SECRET_LENGTH,
    generate_secret,
    mask_token,
    tokens_match,
    unmask_token,
    xor,
)


def test_xor_is_self_inverse():
    a = secrets.token_bytes(32)
    b = secrets.token_bytes(32)
    assert xor(xor(a, b), b) == a


def test_xor_is_commutative():
    a = secrets.token_bytes(16)
    b = secrets.token_bytes(16)
    assert xor(a, b) == xor(b, a)


def test_xor_known_value():
    assert xor(b"\x0f\xf0", b"\xff\xff") == b"\xf0\x0f"


def test_xor_empty():
    assert xor(b"", b"") == b""


def test_xor_length_mismatch():
    with pytest.raises(LengthMismatchError):
        xor(b"abc", b"ab")


@pytest.mark.parametrize("length", [1, 16, DEFAULT_SECRET_LENGTH, 64])
def test_unmask_recovers_secret(length):
    """Masking then unmasking returns the original secret."""
    secret = generate_secret(length)
    otp = generate_secret(length)

    token = mask_token(secret, otp)

    assert unmask_token(token, length) == secret


def test_mask_token_layout():
    """The token is the pad followed by the pad xor the secret."""
    secret = bytes(range(32))
    otp = bytes([0xAA] * 32)

    raw = base64.b64decode(mask_token(secret, otp))

    assert len(raw) == 64
    assert raw[:32] == otp
    assert raw[32:] == xor(otp, secret)


def test_different_pads_give_different_tokens():
    secret = generate_secret()
    first = mask_token(secret, generate_secret())
    second = mask_token(secret, generate_secret())

    assert first != second
    assert unmask_token(first) == unmask_token(second) == secret


def test_generate_secret_length():
    assert len(generate_secret()) == DEFAULT_SECRET_LENGTH
    assert len(generate_secret(8)) == 8


def test_generate_secret_rejects_non_positive_length():
    with pytest.raises(ValueError):
        generate_secret(0)


def test_generate_secret_generator_failure(monkeypatch):
    def broken(length):
        raise OSError("no entropy")

    monkeypatch.setattr(secrets, "token_bytes", broken)

    with pytest.raises(RandomnessError):
        generate_secret()


@pytest.mark.parametrize("token", ["~~~BADTOKEN~~~", "abc", "é" * 8])
def test_unmask_rejects_invalid_base64(token):
    with pytest.raises(MalformedTokenError):
        unmask_token(token)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "dGVzdA==",
        base64.b64encode(bytes(16)).decode(),
        base64.b64encode(bytes(63)).decode(),
        base64.b64encode(bytes(65)).decode(),
    ],
)
def test_unmask_rejects_wrong_size(token):
    with pytest.raises(MalformedTokenError):
        unmask_token(token)


def test_tokens_match():
    secret = generate_secret()
    assert tokens_match(secret, bytes(secret))
    assert not tokens_match(secret, xor(secret, b"\x01" + bytes(31)))
