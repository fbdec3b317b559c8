# app/testplan/models.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.ticket.models import utcnow


class TestPlanHistory(Base):
    __tablename__ = "test_plan_history"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    ticket_key = Column(String, index=True, nullable=False)
    ticket_id = Column(Integer, ForeignKey("jira_tickets.id", ondelete="SET NULL"), nullable=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="SET NULL"), nullable=True)
    llm_provider = Column(String, nullable=False)
    generated_content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    ticket = relationship("Ticket", lazy="joined")
