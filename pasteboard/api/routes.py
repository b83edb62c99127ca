from fastapi import APIRouter, Depends, Request, Response, status

from pasteboard.api.auth import get_api_owner
from pasteboard.api.models import Note
from pasteboard.api.notes import NotesService, parse_note_id
from pasteboard.api.schemas import (
    ErrorResponse,
    NoteContentRequest,
    NoteEnvelope,
    NoteListResponse,
    NoteResponse,
)

router = APIRouter(
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    },
)


def get_notes_service(request: Request) -> NotesService:
    return request.app.state.notes_service


def _to_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        content=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


# PUBLIC_INTERFACE
@router.get(
    "/notes",
    response_model=NoteListResponse,
    summary="List the caller's notes",
)
def list_notes(
    owner_id: int = Depends(get_api_owner),
    notes: NotesService = Depends(get_notes_service),
):
    """
    List all notes belonging to the caller, most recently updated first.

    Returns:
        NoteListResponse; an empty list when the caller has no notes.
    """
    return NoteListResponse(notes=[_to_response(n) for n in notes.list(owner_id)])


# PUBLIC_INTERFACE
@router.get(
    "/notes/{note_id}",
    response_model=NoteEnvelope,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Get a note by ID",
)
def get_note(
    note_id: str,
    owner_id: int = Depends(get_api_owner),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Retrieve a single note by ID. Only the owner can access it.

    Raises:
        400 if the id is not an integer, 404 if no owned note matches.
    """
    note = notes.get(owner_id, parse_note_id(note_id))
    return NoteEnvelope(note=_to_response(note))


# PUBLIC_INTERFACE
@router.post(
    "/notes",
    response_model=NoteEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new note",
)
def create_note(
    payload: NoteContentRequest,
    owner_id: int = Depends(get_api_owner),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Create a new note for the authenticated caller.

    Body:
        content: note text, required and non-empty

    Returns:
        The created note, including its generated id.
    """
    note = notes.create(owner_id, payload.content)
    return NoteEnvelope(note=_to_response(note))


# PUBLIC_INTERFACE
@router.put(
    "/notes/{note_id}",
    response_model=NoteEnvelope,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Update a note by ID",
)
def update_note(
    note_id: str,
    payload: NoteContentRequest,
    owner_id: int = Depends(get_api_owner),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Replace a note's content. Only the owner can modify it.
    """
    note = notes.update(owner_id, parse_note_id(note_id), payload.content)
    return NoteEnvelope(note=_to_response(note))


# PUBLIC_INTERFACE
@router.delete(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Delete a note by ID",
)
def delete_note(
    note_id: str,
    owner_id: int = Depends(get_api_owner),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Delete a note. Only the owner can delete it.
    """
    notes.delete(owner_id, parse_note_id(note_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
