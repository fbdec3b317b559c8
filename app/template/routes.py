# app/template/routes.py
import os

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.settings.schemas import MessageResponse
from app.template import services as template_service
from app.template.schemas import (
    TemplateListResponse,
    TemplateOut,
    TemplateResponse,
    TemplateUpdate,
)

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=TemplateListResponse)
def list_all(db: Session = Depends(get_db)):
    items = [TemplateOut.model_validate(t) for t in template_service.list_templates(db)]
    return TemplateListResponse(data=items, count=len(items))


@router.get("/default", response_model=TemplateResponse)
def get_default(db: Session = Depends(get_db)):
    template = template_service.get_default_template(db)
    if not template:
        raise NotFoundError("Default template")
    return TemplateResponse(data=TemplateOut.model_validate(template))


@router.get("/{template_id}", response_model=TemplateResponse)
def get(template_id: int, db: Session = Depends(get_db)):
    template = template_service.get_template(db, template_id)
    if not template:
        raise NotFoundError("Template")
    return TemplateResponse(data=TemplateOut.model_validate(template))


@router.post("/upload", response_model=TemplateResponse, status_code=201)
def upload(
    template: UploadFile = File(...),
    name: str | None = Form(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # one byte past the limit is enough to reject an oversized upload
    data = template.file.read(settings.MAX_TEMPLATE_SIZE + 1)
    created = template_service.create_template(
        db,
        settings,
        filename=template.filename or "template.pdf",
        content_type=template.content_type,
        data=data,
        name=name,
    )
    return TemplateResponse(
        message="Template uploaded successfully", data=TemplateOut.model_validate(created)
    )


@router.put("/{template_id}", response_model=TemplateResponse)
def update(template_id: int, payload: TemplateUpdate, db: Session = Depends(get_db)):
    updated = template_service.update_template(db, template_id, payload)
    return TemplateResponse(
        message="Template updated successfully", data=TemplateOut.model_validate(updated)
    )


@router.post("/{template_id}/default", response_model=TemplateResponse)
def set_default(template_id: int, db: Session = Depends(get_db)):
    updated = template_service.set_default(db, template_id)
    return TemplateResponse(
        message="Template set as default", data=TemplateOut.model_validate(updated)
    )


@router.delete("/{template_id}", response_model=MessageResponse)
def delete(template_id: int, db: Session = Depends(get_db)):
    template_service.delete_template(db, template_id)
    return MessageResponse(message="Template deleted successfully")


@router.get("/{template_id}/download")
def download(template_id: int, db: Session = Depends(get_db)):
    template = template_service.get_template(db, template_id)
    if not template:
        raise NotFoundError("Template")
    if not os.path.exists(template.filepath):
        raise NotFoundError("Template file")
    return FileResponse(
        template.filepath, media_type="application/pdf", filename=template.filename
    )
