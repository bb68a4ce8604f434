"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from signote.storage.models import (
    ActionStatus,
    Confidence,
    Priority,
    StandingCadence,
    TopicCategory,
)


class NoteCreateRequest(BaseModel):
    """Request schema for creating a note."""

    title: str = Field(..., min_length=1, description="Note title")
    subtitle: str | None = Field(None, description="Optional subtitle")
    date: datetime | None = Field(None, description="Meeting date (defaults to now)")
    content: str = Field(default="", description="Rich-text (HTML) or plain content")


class NoteUpdateRequest(BaseModel):
    """Request schema for editing a note. Omitted fields are unchanged."""

    title: str | None = Field(None, min_length=1)
    subtitle: str | None = None
    date: datetime | None = None
    content: str | None = None


class NoteResponse(BaseModel):
    """Response schema for a note."""

    id: UUID
    title: str
    subtitle: str | None = None
    date: datetime
    content: str
    ceo_mentioned: bool
    ceo_confidence: Confidence | None = None
    ceo_evidence: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ExtractResponse(BaseModel):
    """Response schema after processing a note."""

    success: bool = True
    actions_created: int
    actions_skipped: int
    topics_seen: int
    ceo_mentioned: bool


class TopicResponse(BaseModel):
    """A topic linked to an action."""

    id: UUID
    name: str
    norm_key: str
    category: TopicCategory
    frequency: float

    model_config = {"from_attributes": True}


class EvidenceResponse(BaseModel):
    """An evidence excerpt for an action."""

    note_id: UUID
    excerpt: str

    model_config = {"from_attributes": True}


class ActionResponse(BaseModel):
    """Response schema for an action."""

    id: UUID
    activity: str
    priority: Priority
    due_date: datetime | None = None
    status: ActionStatus
    is_ceo_related: bool
    is_standing: bool
    standing_cadence: StandingCadence | None = None
    sort_score: float
    created_at: datetime
    completed_at: datetime | None = None
    completion_history: list[datetime] = Field(default_factory=list)
    note_id: UUID | None = None
    macro_goal_id: UUID | None = None
    topics: list[TopicResponse] = Field(default_factory=list)
    evidence: list[EvidenceResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ActionCreateRequest(BaseModel):
    """Request schema for a manually created action."""

    activity: str = Field(..., min_length=1)
    priority: Priority = Priority.P1
    due_date: datetime | None = None
    note_id: UUID | None = None


class ActionUpdateRequest(BaseModel):
    """Request schema for editing an action. Omitted fields are unchanged."""

    activity: str | None = Field(None, min_length=1)
    priority: Priority | None = None
    due_date: datetime | None = None
    status: ActionStatus | None = None
    macro_goal_id: UUID | None = None


class GoalResponse(BaseModel):
    """Response schema for a macro goal with its top open actions."""

    id: UUID
    goal: str
    topic_keys: list[str] = Field(default_factory=list)
    edited_by_user: bool
    created_at: datetime
    actions: list[ActionResponse] = Field(default_factory=list)


class GoalCreateRequest(BaseModel):
    """Request schema for a user-written goal."""

    goal: str = Field(..., min_length=1)
    topic_keys: list[str] = Field(default_factory=list)


class GoalUpdateRequest(BaseModel):
    """Request schema for editing a goal."""

    goal: str | None = Field(None, min_length=1)
    topic_keys: list[str] | None = None


class SettingsResponse(BaseModel):
    """Response schema for settings."""

    ceo_first_name: str | None = None
    ceo_aliases: list[str] = Field(default_factory=list)
    context_prompt: str | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class SettingsUpdateRequest(BaseModel):
    """Request schema for updating settings."""

    ceo_first_name: str | None = None
    ceo_aliases: list[str] = Field(default_factory=list)
    context_prompt: str | None = None


class RefreshStepResponse(BaseModel):
    """One completed refresh step."""

    name: str
    detail: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class RefreshResponse(BaseModel):
    """Response schema for a refresh."""

    success: bool
    message: str
    started_at: datetime
    finished_at: datetime
    steps: list[RefreshStepResponse] = Field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
