"""Pydantic request models for API endpoints."""

from pydantic import BaseModel


class StartBody(BaseModel):
    module_id: str
    lesson_id: str = ""
    character_id: str = "herophilus"


class MessageBody(BaseModel):
    text: str
