# app/template/services.py
import logging
import re
import uuid
from pathlib import Path

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import BadRequestError, NotFoundError
from app.template import pdf
from app.template.models import Template
from app.template.schemas import TemplateUpdate

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("_", filename.replace("\\", "_").replace("/", "_")).lower()


def count_templates(db: Session) -> int:
    return db.query(Template).count()


def create_template(
    db: Session,
    settings: Settings,
    filename: str,
    content_type: str | None,
    data: bytes,
    name: str | None = None,
) -> Template:
    if not data:
        raise BadRequestError("No file uploaded")
    if content_type != PDF_CONTENT_TYPE:
        raise BadRequestError("File must be a PDF")
    if len(data) > settings.MAX_TEMPLATE_SIZE:
        raise BadRequestError("File size exceeds 5MB limit")

    logger.info("Processing PDF upload %s (%d bytes)", filename, len(data))
    content = pdf.extract_pdf_text(data)

    templates_dir = Path(settings.TEMPLATES_DIR)
    templates_dir.mkdir(parents=True, exist_ok=True)
    stored_filename = f"{uuid.uuid4().hex[:8]}_{sanitize_filename(filename)}"
    filepath = templates_dir / stored_filename
    filepath.write_bytes(data)

    def build(is_default: bool) -> Template:
        return Template(
            name=name or Path(filename).stem,
            filename=stored_filename,
            filepath=str(filepath),
            content=content,
            is_default=is_default,
        )

    # the first template becomes the default
    is_default = count_templates(db) == 0
    db_template = build(is_default)
    db.add(db_template)
    try:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not is_default:
                raise
            # a concurrent first upload already took the default
            db_template = build(False)
            db.add(db_template)
            db.commit()
    except Exception:
        db.rollback()
        filepath.unlink(missing_ok=True)
        raise
    db.refresh(db_template)
    logger.info("Template %s created (%s)", db_template.id, db_template.name)
    return db_template


def list_templates(db: Session) -> list[Template]:
    return (
        db.query(Template)
        .order_by(Template.is_default.desc(), Template.created_at.desc(), Template.id.desc())
        .all()
    )


def get_template(db: Session, template_id: int) -> Template | None:
    return db.get(Template, template_id)


def get_default_template(db: Session) -> Template | None:
    return db.query(Template).filter(Template.is_default.is_(True)).first()


def _clear_default(db: Session, keep_id: int) -> None:
    db.query(Template).filter(
        Template.is_default.is_(True), Template.id != keep_id
    ).update({Template.is_default: False}, synchronize_session="fetch")


def update_template(db: Session, template_id: int, payload: TemplateUpdate) -> Template:
    db_template = get_template(db, template_id)
    if not db_template:
        raise NotFoundError("Template")
    if payload.name is None and payload.is_default is None:
        raise BadRequestError("At least one field (name or isDefault) must be provided")

    if payload.name is not None:
        db_template.name = payload.name
    if payload.is_default is not None:
        if payload.is_default:
            _clear_default(db, template_id)
        db_template.is_default = payload.is_default
    db.commit()
    db.refresh(db_template)
    logger.info("Template %s updated", template_id)
    return db_template


def set_default(db: Session, template_id: int) -> Template:
    return update_template(db, template_id, TemplateUpdate(is_default=True))


def delete_template(db: Session, template_id: int) -> None:
    db_template = get_template(db, template_id)
    if not db_template:
        raise NotFoundError("Template")
    filepath = Path(db_template.filepath)
    db.delete(db_template)
    db.commit()
    if filepath.exists():
        filepath.unlink()
        logger.info("Template file %s deleted", filepath)
    logger.info("Template %s deleted", template_id)
