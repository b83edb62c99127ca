from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite hands back for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Account(Base):
    """
    Registered account with unique email and hashed password.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    sessions = relationship("SessionRecord", back_populates="account")
    notes = relationship("Note", back_populates="owner")


class SessionRecord(Base):
    """
    Login session keyed by the opaque token the client presents.
    """
    __tablename__ = "sessions"

    session_id = Column(String(255), primary_key=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False)

    account = relationship("Account", back_populates="sessions")

    __table_args__ = (
        Index("ix_sessions_expires_at", "expires_at"),
    )


class Note(Base):
    """
    Text note owned by an account, with creation and update timestamps.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("Account", back_populates="notes")

    __table_args__ = (
        Index("ix_notes_user_updated", "user_id", "updated_at"),
    )
