# app/template/models.py
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, text
from app.core.database import Base
from app.ticket.models import utcnow


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    filename = Column(String, nullable=False)
    filepath = Column(String, nullable=False)
    content = Column(Text, default="")  # extracted from the PDF, never edited
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# at most one default template
Index(
    "ix_templates_single_default",
    Template.is_default,
    unique=True,
    sqlite_where=text("is_default = 1"),
    postgresql_where=text("is_default"),
)
