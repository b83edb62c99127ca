import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from pasteboard.api.config import Settings
from pasteboard.api.database import session_scope
from pasteboard.api.errors import AuthError, ConflictError, NotFoundError, ValidationError
from pasteboard.api.models import Account, SessionRecord, utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Key under which the cookie-backed UI session stores its token
SESSION_KEY = "session_id"

# API callers send the token explicitly in one of these headers
session_id_header = APIKeyHeader(name="X-Session-ID", auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    """
    Registration, login and session validation against the sessions table.

    Both the cookie gate of the HTML pages and the header gate of the JSON API
    resolve tokens through require_session, so they share one expiration rule.
    """

    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self._session_factory = session_factory
        self._max_age = timedelta(seconds=settings.session_max_age)
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password."""
        return self._pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a plaintext password against its hash."""
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            return False

    # PUBLIC_INTERFACE
    def register(self, email: Optional[str], password: Optional[str],
                 confirm_password: Optional[str], token: str) -> int:
        """
        Create an account and log it in under the given session token.

        Returns:
            The new account id.

        Raises:
            ValidationError on missing fields, mismatch or short password.
            ConflictError if the email is already registered.
        """
        if not email or not password or not confirm_password:
            raise ValidationError("All fields are required")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        password_hash = self.hash_password(password)
        with session_scope(self._session_factory, "registering account") as db:
            account = Account(email=email, password_hash=password_hash)
            db.add(account)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError("Email already registered")
            account_id = account.id

        logger.info("Registered account %s", account_id)
        self._open_session(token, account_id)
        return account_id

    # PUBLIC_INTERFACE
    def login(self, email: Optional[str], password: Optional[str], token: str) -> int:
        """
        Check credentials and create or replace the session row for token.

        Raises:
            ValidationError if a field is missing.
            AuthError for an unknown email or a wrong password (same message).
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        with session_scope(self._session_factory, "looking up account") as db:
            account = db.query(Account).filter(Account.email == email).first()
        if account is None or not self.verify_password(password, account.password_hash):
            raise AuthError("Invalid email or password")

        self._open_session(token, account.id)
        logger.info("Account %s logged in", account.id)
        return account.id

    def _open_session(self, token: str, account_id: int) -> None:
        expires_at = utcnow() + self._max_age
        with session_scope(self._session_factory, "storing session") as db:
            db.merge(SessionRecord(session_id=token, user_id=account_id, expires_at=expires_at))
            db.commit()

    # PUBLIC_INTERFACE
    def logout(self, token: Optional[str]) -> None:
        """Delete the session row for token. Missing rows are ignored."""
        if not token:
            return
        with session_scope(self._session_factory, "deleting session") as db:
            db.query(SessionRecord).filter(SessionRecord.session_id == token).delete()
            db.commit()

    # PUBLIC_INTERFACE
    def require_session(self, token: Optional[str]) -> int:
        """
        Resolve a session token to its account id.

        Raises:
            AuthError if the token is absent, unknown or expired.
        """
        if not token:
            raise AuthError("Session ID required in X-Session-ID header or Authorization header")
        with session_scope(self._session_factory, "validating session") as db:
            record = (
                db.query(SessionRecord)
                .filter(SessionRecord.session_id == token, SessionRecord.expires_at > utcnow())
                .first()
            )
        if record is None:
            raise AuthError("Invalid or expired session")
        return record.user_id

    def get_account(self, account_id: int) -> Account:
        with session_scope(self._session_factory, "loading account") as db:
            account = db.query(Account).filter(Account.id == account_id).first()
        if account is None:
            raise NotFoundError("Account not found")
        return account

    def purge_expired_sessions(self) -> int:
        """Delete session rows that can no longer authenticate; returns how many."""
        with session_scope(self._session_factory, "purging expired sessions") as db:
            removed = (
                db.query(SessionRecord)
                .filter(SessionRecord.expires_at <= utcnow())
                .delete(synchronize_session=False)
            )
            db.commit()
        return removed


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_cookie_token(request: Request) -> Optional[str]:
    """Token carried by the signed session cookie of the HTML pages, if any."""
    return request.session.get(SESSION_KEY)


# PUBLIC_INTERFACE
def get_api_owner(
    session_id: Optional[str] = Depends(session_id_header),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> int:
    """
    Dependency that resolves the API caller's account id.

    The token is read from X-Session-ID, falling back to
    "Authorization: Bearer <token>".

    Raises:
        AuthError (401) if no valid, unexpired session matches.
    """
    token = session_id or (credentials.credentials if credentials else None)
    return auth.require_session(token)
