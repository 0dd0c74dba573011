from __future__ import annotations

import time

import pytest

from conftest import TEST_TOKEN_SECRET, make_token, sign_token
from helpdesk.config import Role, Settings
from helpdesk.core import ConfigurationException
from helpdesk.shared.api.auth import TokenError, decode_token, ensure_token_secret, principal_from_claims


def test_decode_valid_token() -> None:
    claims = decode_token(make_token("agent-g", "agent"), TEST_TOKEN_SECRET)

    assert claims["sub"] == "agent-g"
    assert claims["role"] == "agent"


def test_decode_rejects_wrong_secret() -> None:
    with pytest.raises(TokenError):
        decode_token(make_token("agent-g", "agent", secret="other"), TEST_TOKEN_SECRET)


def test_decode_rejects_expired_token() -> None:
    token = make_token("agent-g", "agent", expires_in=-10)

    with pytest.raises(TokenError, match="expired"):
        decode_token(token, TEST_TOKEN_SECRET, now=time.time())


def test_decode_rejects_other_algorithms() -> None:
    with pytest.raises(TokenError, match="algorithm"):
        decode_token(make_token("agent-g", "agent", alg="none"), TEST_TOKEN_SECRET)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
def test_decode_rejects_malformed_token(token: str) -> None:
    with pytest.raises(TokenError):
        decode_token(token, TEST_TOKEN_SECRET)


@pytest.mark.parametrize("header, payload", [
    ({"alg": "HS256"}, ["agent-g", "agent"]),
    ({"alg": "HS256"}, "agent-g"),
    ("HS256", {"sub": "agent-g", "role": "agent"}),
    ([{"alg": "HS256"}], {"sub": "agent-g", "role": "agent"}),
])
def test_decode_rejects_signed_segments_that_are_not_objects(header, payload) -> None:
    with pytest.raises(TokenError, match="Malformed"):
        decode_token(sign_token(header, payload), TEST_TOKEN_SECRET)


@pytest.mark.parametrize("exp", ["soon", [1], {"at": 1}, None])
def test_decode_rejects_non_numeric_expiry(exp) -> None:
    token = sign_token({"alg": "HS256"}, {"sub": "agent-g", "role": "agent", "exp": exp})

    with pytest.raises(TokenError, match="expiry"):
        decode_token(token, TEST_TOKEN_SECRET)


def test_decode_rejects_non_ascii_segments() -> None:
    with pytest.raises(TokenError):
        decode_token("h\u00e9ader.payload.sig", TEST_TOKEN_SECRET)


def test_principal_from_claims() -> None:
    principal = principal_from_claims({"sub": "admin-1", "role": "admin"})

    assert principal.id == "admin-1"
    assert principal.role == Role.ADMIN


@pytest.mark.parametrize("claims", [{"role": "admin"}, {"sub": "x", "role": "root"}, {"sub": "x"}])
def test_principal_from_claims_rejects_incomplete_claims(claims: dict) -> None:
    with pytest.raises(TokenError):
        principal_from_claims(claims)


def test_placeholder_secret_is_refused_outside_development() -> None:
    ensure_token_secret(Settings(environment="development"))

    with pytest.raises(ConfigurationException):
        ensure_token_secret(Settings(environment="production", auth_token_secret="change-me"))

    ensure_token_secret(Settings(environment="production", auth_token_secret="s3cr3t-from-vault"))
