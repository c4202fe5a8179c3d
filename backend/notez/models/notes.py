from typing import Optional

from pydantic import BaseModel, Field


class NoteSubmission(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=50_000)
    # Hidden form fields; the session identity remains authoritative.
    user_id: Optional[str] = Field(default=None, max_length=128)
    username: Optional[str] = Field(default=None, max_length=256)


class NoteEdit(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=50_000)


class PublishForm(BaseModel):
    # pydantic accepts "on"/"off" and "true"/"false" from HTML forms
    public: bool = False
