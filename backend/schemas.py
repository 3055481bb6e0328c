from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator, ConfigDict

Language = Literal["en", "ar"]
Role = Literal["user", "model"]

LANGUAGES = ("en", "ar")
DEFAULT_LANGUAGE = "en"


class BRDCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    content: Optional[str] = None
    transcription: Optional[str] = None
    # the client sends camelCase for this one field
    extra_notes: Optional[str] = Field(default=None, alias="extraNotes")
    language: Language = DEFAULT_LANGUAGE

    @field_validator("language", mode="before")
    @classmethod
    def blank_language_is_default(cls, v):
        return v or DEFAULT_LANGUAGE


class BRDContentUpdate(BaseModel):
    content: str


class ChatMessageCreate(BaseModel):
    role: Role
    content: str


class BRDRecord(BaseModel):
    id: str
    title: Optional[str] = None
    content: Optional[str] = None
    transcription: Optional[str] = None
    extra_notes: Optional[str] = None
    final_doc_path: Optional[str] = None
    language: Language = DEFAULT_LANGUAGE
    created_at: Optional[str] = None


class ChatMessageRecord(BaseModel):
    id: str
    brd_id: str
    role: Role
    content: str
    created_at: Optional[str] = None
