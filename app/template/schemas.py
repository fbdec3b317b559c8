# app/template/schemas.py
from datetime import datetime

from pydantic import Field

from app.core.schemas import APIModel


class TemplateOut(APIModel):
    id: int
    name: str
    filename: str
    content: str | None = ""
    is_default: bool
    created_at: datetime | None = None


class TemplateUpdate(APIModel):
    name: str | None = Field(default=None, min_length=1)
    is_default: bool | None = None


class TemplateResponse(APIModel):
    success: bool = True
    message: str | None = None
    data: TemplateOut


class TemplateListResponse(APIModel):
    success: bool = True
    data: list[TemplateOut]
    count: int
