import re
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from pasteboard.api.database import session_scope
from pasteboard.api.errors import NotFoundError, ValidationError
from pasteboard.api.models import Note, utcnow

_NOTE_ID_RE = re.compile(r"-?[0-9]+")

# SQLite INTEGER is a signed 64-bit value
_MIN_NOTE_ID = -(2 ** 63)
_MAX_NOTE_ID = 2 ** 63 - 1


def parse_note_id(raw: Optional[str]) -> int:
    """Parse a note id path segment; anything but a 64-bit base-10 integer is rejected."""
    if raw is None or not _NOTE_ID_RE.fullmatch(raw):
        raise ValidationError("Invalid note ID")
    note_id = int(raw)
    if not _MIN_NOTE_ID <= note_id <= _MAX_NOTE_ID:
        raise ValidationError("Invalid note ID")
    return note_id


def _require_content(content: Optional[str]) -> str:
    if not content:
        raise ValidationError("Content is required")
    return content


class NotesService:
    """
    CRUD for notes, always scoped to the owning account.

    Every read, update and delete filters on (id, user_id); there is no other
    authorization check.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # PUBLIC_INTERFACE
    def list(self, owner_id: int) -> List[Note]:
        """All notes of the owner, most recently updated first."""
        with session_scope(self._session_factory, "listing notes") as db:
            return (
                db.query(Note)
                .filter(Note.user_id == owner_id)
                .order_by(Note.updated_at.desc(), Note.id.desc())
                .all()
            )

    # PUBLIC_INTERFACE
    def get(self, owner_id: int, note_id: int) -> Note:
        """
        Retrieve a single note. Only the owner can access it.

        Raises:
            NotFoundError if no note matches (id, owner).
        """
        with session_scope(self._session_factory, "fetching note") as db:
            note = db.query(Note).filter(Note.id == note_id, Note.user_id == owner_id).first()
        if note is None:
            raise NotFoundError("Note not found")
        return note

    # PUBLIC_INTERFACE
    def create(self, owner_id: int, content: Optional[str]) -> Note:
        """
        Create a note; created_at and updated_at start out equal.

        Raises:
            ValidationError if content is empty or missing.
        """
        content = _require_content(content)
        now = utcnow()
        with session_scope(self._session_factory, "creating note") as db:
            note = Note(user_id=owner_id, content=content, created_at=now, updated_at=now)
            db.add(note)
            db.commit()
            db.refresh(note)
        return note

    # PUBLIC_INTERFACE
    def update(self, owner_id: int, note_id: int, content: Optional[str]) -> Note:
        """
        Replace the content of a note and bump its updated_at.

        The ownership check and the write are separate statements.

        Raises:
            ValidationError if content is empty.
            NotFoundError if no note matches (id, owner).
        """
        content = _require_content(content)
        self.get(owner_id, note_id)
        with session_scope(self._session_factory, "updating note") as db:
            (
                db.query(Note)
                .filter(Note.id == note_id, Note.user_id == owner_id)
                .update({Note.content: content, Note.updated_at: utcnow()}, synchronize_session=False)
            )
            db.commit()
        return self.get(owner_id, note_id)

    # PUBLIC_INTERFACE
    def delete(self, owner_id: int, note_id: int) -> None:
        """
        Delete a note. Only the owner can delete it.

        Raises:
            NotFoundError if no note matches (id, owner).
        """
        self.get(owner_id, note_id)
        with session_scope(self._session_factory, "deleting note") as db:
            (
                db.query(Note)
                .filter(Note.id == note_id, Note.user_id == owner_id)
                .delete(synchronize_session=False)
            )
            db.commit()
