"""Common schemas used across the workflows."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Notice(BaseModel):
    """User-facing outcome of an action (rendered as a toast)."""

    title: str
    description: Optional[str] = None
    variant: Literal["default", "destructive"] = "default"


class GlobalNotificationCreate(BaseModel):
    """Bilingual site-wide notification payload."""

    type: str
    title: str
    title_ar: Optional[str] = None
    message: str
    message_ar: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
