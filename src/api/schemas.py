# src/api/schemas.py
"""Request/response models for the HTTP API"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, validator
from pydantic.types import constr, conint, confloat


# =============================================================================
# Task Creation
# =============================================================================

class AttachmentIn(BaseModel):
    """Link to a file already uploaded to storage"""
    file_name: constr(min_length=1, max_length=255)
    file_url: constr(min_length=1, max_length=2048)
    file_type: Optional[constr(max_length=100)] = None
    file_size: Optional[conint(ge=0)] = None

    class Config:
        extra = "forbid"


class TaskCreate(BaseModel):
    """Validated task creation with meaningful constraints"""
    title: constr(min_length=1, max_length=200) = Field(..., description="Short task title")
    description: constr(min_length=1, max_length=20000) = Field(..., description="Creative brief")
    credits_required: conint(ge=1, le=1000) = Field(..., description="Credits charged for the task")
    category: Optional[constr(max_length=100)] = Field(default=None, description="Category slug or name")
    requirements: Optional[Dict[str, Any]] = None
    required_skills: List[constr(min_length=1, max_length=100)] = Field(default_factory=list)
    estimated_hours: Optional[confloat(ge=0, le=1000)] = None
    deadline: Optional[datetime] = None
    chat_history: Optional[List[Dict[str, Any]]] = None
    style_references: Optional[List[str]] = None
    attachments: List[AttachmentIn] = Field(default_factory=list)
    moodboard_items: Optional[List[Dict[str, Any]]] = None
    brief_id: Optional[constr(max_length=36)] = None

    @validator("title", "description")
    def text_meaningful(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @validator("required_skills")
    def skills_unique(cls, v):
        seen = []
        for skill in v:
            skill = skill.strip()
            if skill and skill.lower() not in [s.lower() for s in seen]:
                seen.append(skill)
        return seen

    class Config:
        extra = "forbid"  # Reject unknown fields


class TaskCreateResponse(BaseModel):
    task_id: str
    status: str
    assigned_to: Optional[str]
    freelancer_id: Optional[str]
    match_score: Optional[float]
    is_fallback: bool
    complexity: str
    urgency: str
    credits_remaining: int


# =============================================================================
# Admin
# =============================================================================

class ReassignRequest(BaseModel):
    freelancer_id: constr(min_length=1, max_length=36)

    class Config:
        extra = "forbid"


class AlgorithmConfigCreate(BaseModel):
    name: constr(min_length=1, max_length=100)
    description: Optional[str] = None
    overrides: Dict[str, Any] = Field(default_factory=dict, description="Layered over the defaults")

    class Config:
        extra = "forbid"


class AssignPendingRequest(BaseModel):
    limit: Optional[conint(ge=1, le=1000)] = None
    dry_run: bool = False

    class Config:
        extra = "forbid"
