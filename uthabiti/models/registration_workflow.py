import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from uthabiti.db.base import Base


def _workflow_id() -> str:
    return uuid.uuid4().hex


class RegistrationWorkflow(Base):
    __tablename__ = "registration_workflows"

    id = Column(String(32), primary_key=True, default=_workflow_id)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    flow = Column(String(20), nullable=False, default="new")
    step = Column(String(20), nullable=False, default="profile")
    status = Column(String(20), nullable=False, default="open")
    benefits_submitted = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
