"""Notification payloads sent to tenant administrators."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, Enum):  # noqa: UP042
    REVIEW_NEEDED = "review_needed"
    PROCESSING_COMPLETE = "processing_complete"
    PROCESSING_FAILED = "processing_failed"


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: NotificationType
    tenant_id: str
    document_id: str
    message: str
    pending_count: int | None = Field(default=None, ge=0)
