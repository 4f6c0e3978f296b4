"""Pydantic schemas for the public API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.automations.events import EVENT_NAMES


def _validate_trigger_event(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    normalized = value.strip()
    if normalized not in EVENT_NAMES:
        allowed = ", ".join(sorted(EVENT_NAMES))
        raise ValueError(f"Unknown trigger_event '{value}'. Allowed: {allowed}")
    return normalized


class AutomationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_active: bool = True
    trigger_event: str
    trigger_filter: Optional[Any] = None
    action_type: str = Field(default="send_email", min_length=1)
    action_payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("trigger_event")
    @classmethod
    def _known_event(cls, value: str) -> str:
        return _validate_trigger_event(value)


class AutomationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    trigger_event: Optional[str] = None
    trigger_filter: Optional[Any] = None
    action_type: Optional[str] = Field(default=None, min_length=1)
    action_payload: Optional[Dict[str, Any]] = None

    @field_validator("trigger_event")
    @classmethod
    def _known_event(cls, value: Optional[str]) -> Optional[str]:
        return _validate_trigger_event(value)


class AutomationRecord(BaseModel):
    id: str
    user_id: str
    name: str = ""
    description: Optional[str] = None
    trigger_event: str
    trigger_filter: Optional[Any] = None
    is_active: bool = True
    action_type: str
    action_payload: Any = None
    created_at: Optional[datetime] = None


class AutomationTestResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class AutomationRunRecord(BaseModel):
    id: Optional[str] = None
    automation_id: str
    event: str
    input: Dict[str, Any] = Field(default_factory=dict)
    result: str
    output: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    value: Optional[float] = None
    status: str = "New Leads"
    tags: Optional[list[str]] = None


class LeadUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    value: Optional[float] = None
    status: Optional[str] = None


class JobUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    title: Optional[str] = None
    scheduled_date: Optional[str] = None
    notes: Optional[str] = None


class EstimateActionRequest(BaseModel):
    action: Literal["approve", "request_changes"]


class EstimateActionResponse(BaseModel):
    success: bool = True
    status: str
    message: str


class SendResponse(BaseModel):
    success: bool = True
    message_id: Optional[str] = None
    status: str
