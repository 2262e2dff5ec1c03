from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ainotes.search import NoteRef
from ainotes.storage.base import Note


class NoteCreate(BaseModel):
    title: str = Field(default="", max_length=200)
    content: str = Field(default="", max_length=50_000)

    @model_validator(mode="after")
    def _not_blank(self):
        if not self.title.strip() and not self.content.strip():
            raise ValueError("Note needs a title or some content")
        return self


class NoteUpdate(NoteCreate):
    pass


class NoteOut(BaseModel):
    id: str
    owner_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_note(cls, note: Note) -> "NoteOut":
        return cls(**note.__dict__)


class AiSearchRequest(BaseModel):
    query: str = Field(max_length=500)


class NoteRefOut(BaseModel):
    id: str
    title: str
    content: str

    @classmethod
    def from_ref(cls, ref: NoteRef) -> "NoteRefOut":
        return cls(id=ref.id, title=ref.title, content=ref.content)


class SearchOut(BaseModel):
    results: Optional[list[NoteRefOut]]
    source: str
    message: Optional[str] = None
    error: Optional[str] = None
