"""Happy companion engine: configuration, errors and shared enums."""
from .models import (
    RESUMABLE_AGENTS,
    EncryptionVariant,
    Flavor,
    can_agent_resume,
)
from .config import CompanionConfig
from .errors import (
    CompanionError,
    InvalidSelectionError,
    NotFoundError,
    ResumeNotFoundError,
    ValidationError,
)

__all__ = [
    # Config
    "CompanionConfig",
    # Models
    "EncryptionVariant",
    "Flavor",
    "RESUMABLE_AGENTS",
    "can_agent_resume",
    # Errors
    "CompanionError",
    "InvalidSelectionError",
    "NotFoundError",
    "ResumeNotFoundError",
    "ValidationError",
]
