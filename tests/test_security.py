from datetime import timedelta

import pytest

from app.core.exceptions import BadRequestError
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    parse_bearer,
    verify_password,
)


def test_token_carries_user_id():
    token = create_access_token("65f0c0ffee0000000000beef")
    claims = decode_access_token(token)
    assert claims["sub"] == "65f0c0ffee0000000000beef"
    assert "exp" in claims


def test_expired_token_is_rejected():
    token = create_access_token("65f0c0ffee0000000000beef", expires_delta=timedelta(seconds=-10))
    assert decode_access_token(token) is None


def test_tampered_token_is_rejected():
    token = create_access_token("65f0c0ffee0000000000beef")
    head, body, sig = token.split(".")
    assert decode_access_token(f"{head}.{body}.{sig[::-1]}") is None
    assert decode_access_token("not-a-jwt") is None


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        (None, None),
        ("", None),
        ("abc", None),
        ("Bearer", None),
        ("Bearer a b", None),
        ("Basic abc", None),
    ],
)
def test_parse_bearer(header, expected):
    assert parse_bearer(header) == expected


def test_password_hash_roundtrip():
    h = hash_password("Secret1")
    assert h != "Secret1"
    assert verify_password("Secret1", h)
    assert not verify_password("secret1", h)


def test_password_too_long():
    with pytest.raises(BadRequestError):
        hash_password("A" * 73)
    assert not verify_password("A" * 73, hash_password("A" * 72))


def test_verify_against_garbage_hash():
    assert not verify_password("Secret1", "not-a-bcrypt-hash")
