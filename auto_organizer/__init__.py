"""Package initialization."""
__version__ = "0.1.0"

from auto_organizer.models import (
    ExistingFolder,
    FolderSuggestion,
    MoveExecutionResult,
    MoveOperation,
    OrganizeOptions,
    OrganizeResult,
    OrganizeSession,
    OrganizeStep,
    ScannedFile,
    SuggestedRule,
)
from auto_organizer.orchestrator import OrganizeOrchestrator

__all__ = [
    "ExistingFolder",
    "FolderSuggestion",
    "MoveExecutionResult",
    "MoveOperation",
    "OrganizeOptions",
    "OrganizeOrchestrator",
    "OrganizeResult",
    "OrganizeSession",
    "OrganizeStep",
    "ScannedFile",
    "SuggestedRule",
]
