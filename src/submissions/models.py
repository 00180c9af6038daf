# src/submissions/models.py — v1
"""Submission domain models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from scavy.core.models import IdentificationResult


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_MORE_INFO = "needs_more_info"


class SubmissionType(StrEnum):
    NEW_DEVICE = "new_device"
    CORRECTION = "correction"
    ADDITIONAL_INFO = "additional_info"
    DUPLICATE_REPORT = "duplicate_report"


class SubmissionRecord(BaseModel):
    """Candidate identification awaiting review. Never deleted."""

    id: int | None = None
    user_id: str | None = None
    raw_result: IdentificationResult
    submission_type: SubmissionType = SubmissionType.NEW_DEVICE
    status: SubmissionStatus = SubmissionStatus.PENDING
    fingerprint: str | None = None
    brand: str | None = None
    model: str | None = None
    user_notes: str | None = None
    review_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    auto_approved: bool = False
    matched_device_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApprovalOutcome(BaseModel):
    """What an approval did to the catalog."""

    submission: SubmissionRecord
    device_id: int | None
    device_created: bool
    components_added: int = Field(default=0, ge=0)
