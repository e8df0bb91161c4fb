"""Data models for the CyberShield local store.

These models define the schema for every stored collection.
Field names are stored in camelCase. Day keys are ISO dates, so logs
written with another date format never count as today's submission.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .codec import to_camel


class TicketStatus(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"


class StoredModel(BaseModel):
    """Base for every stored record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SupportTicket(StoredModel):
    """Stored under cybershield_tickets."""

    id: str
    user_name: str
    question: str
    answer: str | None = None
    timestamp: datetime
    status: TicketStatus = TicketStatus.PENDING

    @model_validator(mode="after")
    def _answer_matches_status(self) -> Self:
        if (self.answer is not None) != (self.status == TicketStatus.RESOLVED):
            raise ValueError("answer must be set exactly when the ticket is resolved")
        return self


class QuestionOption(StoredModel):
    id: str
    text: str


class CustomQuestion(StoredModel):
    """Stored under cybershield_custom_questions.

    Operator-authored quiz question, immutable once created.
    """

    id: str
    text: str
    options: Annotated[list[QuestionOption], Field(min_length=2)]
    created_at: datetime


class Visitor(StoredModel):
    """Stored under cybershield_visitors."""

    username: str  # display form, unique case-insensitively
    last_seen: datetime


class UserProfile(StoredModel):
    """Stored under cybershield_detox_users.

    Head of the detox points ledger for one email.
    """

    email: str
    name: str
    total_points: Annotated[int, Field(ge=0)] = 0
    joined_at: datetime


class ScreenTimeLog(StoredModel):
    """Stored under cybershield_detox_logs.

    One screen-time submission; at most one per email and day.
    """

    id: str
    email: str
    date_str: str  # YYYY-MM-DD, local calendar day
    hours: Annotated[float, Field(ge=0)]
    points: int
    timestamp: datetime
    image_base64: str | None = None


class SubmissionResult(BaseModel):
    points: int
    new_total: int


class EvidenceAnalysis(BaseModel):
    """Output of the external screenshot analyzer."""

    valid: bool
    hours: Annotated[float, Field(ge=0)] = 0.0
