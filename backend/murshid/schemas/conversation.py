# murshid/schemas/conversation.py
"""
Pydantic schemas for conversation endpoints.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class MessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str

    @field_validator("content")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Content is required")
        return v


class CreateConversationIn(BaseModel):
    title: Optional[str] = Field(None, max_length=100)


class UpdateConversationIn(BaseModel):
    """New messages are appended after the existing ones; title renames."""
    messages: List[MessageIn] = []
    title: Optional[str] = Field(None, max_length=100)
