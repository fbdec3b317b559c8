# app/settings/models.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Text
from app.core.database import Base
from app.ticket.models import utcnow


class AppSettings(Base):
    """Single-row table holding tracker and LLM configuration."""

    __tablename__ = "settings"
    __table_args__ = (CheckConstraint("id = 1", name="ck_settings_single_row"),)

    id = Column(Integer, primary_key=True, default=1)

    jira_base_url = Column(String, nullable=True)
    jira_username = Column(String, nullable=True)
    jira_api_token = Column(Text, nullable=True)  # encrypted
    jira_connected = Column(Boolean, default=False, nullable=False)

    llm_provider = Column(String, default="groq", nullable=False)

    groq_api_key = Column(Text, nullable=True)  # encrypted
    groq_model = Column(String, nullable=True)
    groq_temperature = Column(Float, nullable=True)

    ollama_base_url = Column(String, nullable=True)
    ollama_model = Column(String, nullable=True)

    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
