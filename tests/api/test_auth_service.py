import time

import pytest

from pasteboard.api.auth import AuthService
from pasteboard.api.errors import AuthError, ConflictError, ValidationError


def test_register_creates_account_and_logs_it_in(auth_service: AuthService) -> None:
    account_id = auth_service.register("alice@example.com", "secret1", "secret1", token="tok-alice")

    assert auth_service.require_session("tok-alice") == account_id
    assert auth_service.get_account(account_id).email == "alice@example.com"


@pytest.mark.parametrize(
    "email,password,confirm,message",
    [
        ("", "secret1", "secret1", "All fields are required"),
        ("a@example.com", None, "secret1", "All fields are required"),
        ("a@example.com", "secret1", "", "All fields are required"),
        ("a@example.com", "secret1", "secret2", "Passwords do not match"),
        ("a@example.com", "short", "short", "Password must be at least 6 characters"),
    ],
)
def test_register_rejects_invalid_input(auth_service, email, password, confirm, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        auth_service.register(email, password, confirm, token="tok")

    assert excinfo.value.message == message


def test_register_duplicate_email_conflicts_and_keeps_original_hash(auth_service) -> None:
    account_id = auth_service.register("bob@example.com", "secret1", "secret1", token="tok-1")
    original_hash = auth_service.get_account(account_id).password_hash

    with pytest.raises(ConflictError) as excinfo:
        auth_service.register("bob@example.com", "another1", "another1", token="tok-2")

    assert excinfo.value.message == "Email already registered"
    assert auth_service.get_account(account_id).password_hash == original_hash
    assert auth_service.login("bob@example.com", "secret1", token="tok-3") == account_id
    with pytest.raises(AuthError):
        auth_service.require_session("tok-2")


def test_email_comparison_is_case_sensitive(auth_service) -> None:
    upper = auth_service.register("Carol@example.com", "secret1", "secret1", token="tok-upper")
    lower = auth_service.register("carol@example.com", "secret1", "secret1", token="tok-lower")

    assert upper != lower


def test_password_hash_uses_configured_work_factor(auth_service) -> None:
    account_id = auth_service.register("dave@example.com", "secret1", "secret1", token="tok")
    password_hash = auth_service.get_account(account_id).password_hash

    assert password_hash.startswith("$2b$04$")
    assert "secret1" not in password_hash


def test_login_failures_share_one_message(auth_service) -> None:
    auth_service.register("erin@example.com", "secret1", "secret1", token="tok")

    with pytest.raises(AuthError) as wrong_password:
        auth_service.login("erin@example.com", "wrong-password", token="tok-a")
    with pytest.raises(AuthError) as unknown_email:
        auth_service.login("nobody@example.com", "secret1", token="tok-b")

    assert wrong_password.value.message == "Invalid email or password"
    assert unknown_email.value.message == wrong_password.value.message


def test_login_requires_both_fields(auth_service) -> None:
    with pytest.raises(ValidationError) as excinfo:
        auth_service.login("erin@example.com", "", token="tok")

    assert excinfo.value.message == "Email and password are required"


def test_login_with_same_token_replaces_session(auth_service) -> None:
    first = auth_service.register("frank@example.com", "secret1", "secret1", token="shared")
    second = auth_service.register("grace@example.com", "secret1", "secret1", token="other")
    assert auth_service.require_session("shared") == first

    auth_service.login("grace@example.com", "secret1", token="shared")

    assert auth_service.require_session("shared") == second


def test_logout_is_idempotent(auth_service) -> None:
    auth_service.register("heidi@example.com", "secret1", "secret1", token="tok")

    auth_service.logout("tok")
    auth_service.logout("tok")
    auth_service.logout(None)

    with pytest.raises(AuthError):
        auth_service.require_session("tok")


@pytest.mark.parametrize("token", [None, "", "never-issued"])
def test_require_session_rejects_missing_or_unknown_tokens(auth_service, token) -> None:
    with pytest.raises(AuthError):
        auth_service.require_session(token)


def test_session_is_rejected_after_expiry(session_factory, make_settings) -> None:
    service = AuthService(session_factory, make_settings(session_max_age=1))
    account_id = service.register("ivan@example.com", "secret1", "secret1", token="tok")
    assert service.require_session("tok") == account_id

    time.sleep(2)

    with pytest.raises(AuthError) as excinfo:
        service.require_session("tok")
    assert excinfo.value.message == "Invalid or expired session"


def test_purge_expired_sessions_removes_only_stale_rows(session_factory, make_settings) -> None:
    short = AuthService(session_factory, make_settings(session_max_age=1))
    long = AuthService(session_factory, make_settings())
    short.register("judy@example.com", "secret1", "secret1", token="stale")
    account_id = long.register("mallory@example.com", "secret1", "secret1", token="fresh")

    time.sleep(2)

    assert long.purge_expired_sessions() == 1
    assert long.purge_expired_sessions() == 0
    assert long.require_session("fresh") == account_id
