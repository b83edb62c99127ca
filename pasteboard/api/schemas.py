from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# Notes

class NoteContentRequest(BaseModel):
    """Create or update note request"""
    content: Optional[str] = Field(None, description="Note text; must not be empty")


class NoteResponse(BaseModel):
    """Note response model"""
    id: int
    content: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NoteEnvelope(BaseModel):
    """Single note wrapped under the "note" key"""
    note: NoteResponse


class NoteListResponse(BaseModel):
    """All notes of the caller, most recently updated first"""
    notes: List[NoteResponse]


# Errors

class ErrorResponse(BaseModel):
    """Error body returned by the JSON API"""
    detail: str
