"""Database models."""

# Import all models in dependency order to ensure proper relationship initialization

# Base models (no foreign keys)
from internhub.models.user import User
from internhub.models.audit_log import AuditLog

# Models with foreign keys to base models
from internhub.models.student import Student
from internhub.models.company import Company

# Models with foreign keys to other models
from internhub.models.subscription import Subscription
from internhub.models.opening import Opening
from internhub.models.application import Application, Stage
from internhub.models.clarification import ClarificationRequest
from internhub.models.interview import InterviewSlot
from internhub.models.notification import StudentNotification

# Export all models
__all__ = [
    "User",
    "AuditLog",
    "Student",
    "Company",
    "Subscription",
    "Opening",
    "Application",
    "Stage",
    "ClarificationRequest",
    "InterviewSlot",
    "StudentNotification",
]
