# src/goaltracker_ui/models.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GoalStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProgressEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    goal_id: Optional[int] = None
    description: str = ""
    percentage: int = Field(default=0, ge=0, le=100)
    notes: str = ""
    outcome: str = ""
    action_taken: str = ""
    next_steps: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Goal(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    description: str = ""
    status: GoalStatus = GoalStatus.ACTIVE
    priority: GoalPriority = GoalPriority.MEDIUM
    due_date: Optional[datetime] = None
    # Stored by the backend as a JSON array encoded in a string
    tags: Optional[str] = None
    job_role_id: Optional[int] = None
    progress: List[ProgressEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("progress", mode="before")
    @classmethod
    def none_progress_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("progress")
    @classmethod
    def order_progress(cls, v: List[ProgressEntry]) -> List[ProgressEntry]:
        # Entries without a timestamp keep their position at the front
        return sorted(v, key=lambda p: (p.created_at is not None, p.created_at or datetime.min))

    @property
    def latest_percentage(self) -> int:
        if not self.progress:
            return 0
        return self.progress[-1].percentage


class GoalInput(BaseModel):
    """Payload for creating or updating a goal; unset fields are not sent."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[GoalStatus] = None
    priority: Optional[GoalPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[str] = None
    job_role_id: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ProgressInput(BaseModel):
    description: str
    percentage: int = Field(ge=0, le=100)
    notes: Optional[str] = None
    outcome: Optional[str] = None
    action_taken: Optional[str] = None
    next_steps: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    current_role: str = ""
    experience_level: str = ""
    industry: str = ""
    company_size: str = ""
    learning_style: str = ""
    available_hours_week: int = 0
    career_goals: str = ""

    @property
    def needs_onboarding(self) -> bool:
        # Industry is optional; role and experience gate the rest of the app
        return not self.current_role or not self.experience_level


class JobRole(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    description: str = ""


class Responsibility(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    job_role_id: Optional[int] = None
    title: str
    description: str = ""
    category: str = "general"
