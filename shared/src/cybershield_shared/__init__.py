from .codec import CollectionCodec
from .models import (
    SupportTicket,
    TicketStatus,
    QuestionOption,
    CustomQuestion,
    Visitor,
    UserProfile,
    ScreenTimeLog,
    SubmissionResult,
    EvidenceAnalysis,
)

__all__ = [
    "CollectionCodec",
    "SupportTicket",
    "TicketStatus",
    "QuestionOption",
    "CustomQuestion",
    "Visitor",
    "UserProfile",
    "ScreenTimeLog",
    "SubmissionResult",
    "EvidenceAnalysis",
]
