from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from uthabiti.schemas.members import MemberOut


class WorkflowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    member_id: int
    flow: str
    step: str
    status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class RegistrationState(BaseModel):
    workflow: WorkflowOut
    member: MemberOut
    steps: list[str] = Field(default_factory=list)


class ResumeDraftRequest(BaseModel):
    membership_no: str = Field(min_length=1, max_length=30)
