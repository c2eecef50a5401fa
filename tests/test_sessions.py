import pytest
from sqlalchemy.exc import OperationalError

from services.errors import AuthenticationError, InternalError
from utils.security import token_digest


def test_issue_session_stores_digest_of_refresh_token(registered, sessions, store):
    pair = sessions.issue_session(registered.user.id)
    user = store.find_by_id(registered.user.id)
    assert user.refresh_token_hash == token_digest(pair.refresh_token)
    assert pair.refresh_token not in (user.refresh_token_hash, user.password_hash)


def test_issue_then_revoke_leaves_no_valid_refresh_token(registered, sessions, store):
    pair = sessions.issue_session(registered.user.id)
    sessions.revoke_session(registered.user.id)

    assert store.find_by_id(registered.user.id).refresh_token_hash is None
    assert not sessions.is_refresh_token_current(pair.refresh_token)
    with pytest.raises(AuthenticationError):
        sessions.refresh_session(pair.refresh_token)


def test_revoke_is_idempotent(registered, sessions, store):
    sessions.revoke_session(registered.user.id)
    first = store.find_by_id(registered.user.id).has_active_session
    sessions.revoke_session(registered.user.id)
    second = store.find_by_id(registered.user.id).has_active_session
    assert first is False and second is False


def test_second_issue_rotates_out_the_first(registered, sessions):
    first = sessions.issue_session(registered.user.id)
    second = sessions.issue_session(registered.user.id)

    assert first.refresh_token != second.refresh_token
    assert not sessions.is_refresh_token_current(first.refresh_token)
    assert sessions.is_refresh_token_current(second.refresh_token)


def test_refresh_rotates_and_old_token_is_rejected(registered, sessions):
    old = registered.tokens.refresh_token
    new = sessions.refresh_session(old)

    assert new.refresh_token != old
    assert sessions.is_refresh_token_current(new.refresh_token)
    with pytest.raises(AuthenticationError, match="Invalid or revoked refresh token"):
        sessions.refresh_session(old)


def test_refresh_rejects_access_token(registered, sessions):
    with pytest.raises(AuthenticationError, match="Wrong token type"):
        sessions.refresh_session(registered.tokens.access_token)


def test_refresh_loses_when_session_changed_underneath(registered, sessions, store, monkeypatch):
    token = registered.tokens.refresh_token
    real_replace = store.replace_refresh_token

    def concurrent_login_first(user_id, expected_hash, token_hash):
        sessions.issue_session(user_id)
        return real_replace(user_id, expected_hash, token_hash)

    monkeypatch.setattr(store, "replace_refresh_token", concurrent_login_first)
    with pytest.raises(AuthenticationError):
        sessions.refresh_session(token)


def test_access_token_verifies_without_store(registered, sessions):
    claims = sessions.verify_access_token(registered.tokens.access_token)
    assert claims["sub"] == registered.user.id


def test_issue_session_for_missing_user_is_internal_error(sessions):
    with pytest.raises(InternalError):
        sessions.issue_session("00000000-0000-0000-0000-000000000000")


def test_failed_persist_returns_no_tokens(registered, sessions, store, monkeypatch):
    before = store.find_by_id(registered.user.id).refresh_token_hash

    def broken(user_id, token_hash):
        raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "update_refresh_token", broken)
    with pytest.raises(InternalError, match="Could not persist refresh token"):
        sessions.issue_session(registered.user.id)

    monkeypatch.undo()
    assert store.find_by_id(registered.user.id).refresh_token_hash == before


def test_authenticate_does_not_touch_session_state(registered, sessions, store):
    before = store.find_by_id(registered.user.id).refresh_token_hash
    user = sessions.authenticate("a@x.com", "secret123")
    assert user.id == registered.user.id
    assert store.find_by_id(registered.user.id).refresh_token_hash == before


def test_authenticate_failures_are_indistinguishable(registered, sessions):
    with pytest.raises(AuthenticationError) as wrong_password:
        sessions.authenticate("a@x.com", "wrong")
    with pytest.raises(AuthenticationError) as unknown_email:
        sessions.authenticate("nobody@x.com", "secret123")
    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.message == unknown_email.value.message
