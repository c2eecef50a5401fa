from dataclasses import FrozenInstanceError
from datetime import timedelta

import jwt
import pytest

from services.errors import AuthenticationError, InternalError, TokenSigningError
from services.tokens import ACCESS, REFRESH, TokenIssuer, TokenSettings

SECRET = "unit-test-secret-with-enough-bytes!!"


@pytest.fixture
def issuer():
    return TokenIssuer(TokenSettings(secret=SECRET, issuer="account-api-tests"))


def test_access_token_carries_identity_and_type(issuer):
    token = issuer.issue_access_token("user-1")
    claims = jwt.decode(token, SECRET, algorithms=["HS256"], issuer="account-api-tests")
    assert claims["sub"] == "user-1"
    assert claims["type"] == ACCESS
    assert claims["exp"] > claims["iat"]


def test_refresh_token_outlives_access_token(issuer):
    access = issuer.decode(issuer.issue_access_token("user-1"), ACCESS)
    refresh = issuer.decode(issuer.issue_refresh_token("user-1"), REFRESH)
    assert refresh["exp"] - refresh["iat"] == int(timedelta(days=14).total_seconds())
    assert access["exp"] - access["iat"] == int(timedelta(minutes=15).total_seconds())


def test_each_refresh_token_is_unique(issuer):
    first = issuer.issue_refresh_token("user-1")
    second = issuer.issue_refresh_token("user-1")
    assert first != second


def test_decode_rejects_wrong_token_type(issuer):
    refresh = issuer.issue_refresh_token("user-1")
    with pytest.raises(AuthenticationError, match="Wrong token type"):
        issuer.decode(refresh, ACCESS)


def test_decode_rejects_foreign_signature(issuer):
    other = TokenIssuer(TokenSettings(secret="another-secret-with-enough-bytes!!", issuer="account-api-tests"))
    with pytest.raises(AuthenticationError, match="Invalid token"):
        issuer.decode(other.issue_access_token("user-1"), ACCESS)


def test_decode_rejects_expired_token():
    expired = TokenIssuer(TokenSettings(secret=SECRET, access_expires=timedelta(seconds=-30)))
    with pytest.raises(AuthenticationError, match="Token expired"):
        expired.decode(expired.issue_access_token("user-1"), ACCESS)


def test_decode_rejects_garbage_and_empty(issuer):
    with pytest.raises(AuthenticationError):
        issuer.decode("not-a-jwt", ACCESS)
    with pytest.raises(AuthenticationError):
        issuer.decode("", ACCESS)


def test_missing_secret_is_an_internal_error():
    issuer = TokenIssuer(TokenSettings(secret=""))
    with pytest.raises(TokenSigningError) as excinfo:
        issuer.issue_access_token("user-1")
    assert isinstance(excinfo.value, InternalError)
    assert not isinstance(excinfo.value, AuthenticationError)


def test_unsupported_algorithm_is_an_internal_error():
    issuer = TokenIssuer(TokenSettings(secret=SECRET, algorithm="NOPE256"))
    with pytest.raises(TokenSigningError):
        issuer.issue_refresh_token("user-1")


def test_settings_are_frozen(issuer):
    with pytest.raises(FrozenInstanceError):
        issuer.settings.secret = "changed"
