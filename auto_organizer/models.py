"""
Core data models for the auto-organize workflow.

All models use Pydantic for validation and JSON (de)serialization of the
payloads exchanged with the organize service.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def clamp_confidence(value: float) -> float:
    """Clamp a service-supplied confidence into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


class OrganizeStep(str, Enum):
    """Workflow steps of an organize session."""
    IDLE = "idle"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    PREVIEW = "preview"
    EXECUTING = "executing"
    DONE = "done"


class ScannedFile(BaseModel):
    """Metadata for a file found directly inside the folder being organized."""
    filename: str = Field(..., description="File name, join key for suggestions")
    extension: str = Field("", description="Lower-cased extension including the dot")
    size_bytes: int = Field(0, ge=0, description="File size in bytes")
    path: str = Field(..., description="Absolute file path")
    modified: Optional[str] = Field(None, description="ISO-8601 modification time")
    content_preview: str = Field("", description="Extracted text preview, if any")

    @field_validator('filename', 'path')
    @classmethod
    def validate_not_empty(cls, v):
        """Ensure identity fields are not empty."""
        if not v or not v.strip():
            raise ValueError("filename and path cannot be empty")
        return v


class ExistingFolder(BaseModel):
    """Sub-folder that already exists under the organized folder."""
    folder_name: str
    folder_path: str
    sample_files: List[str] = Field(default_factory=list)
    file_count: int = Field(0, ge=0)


class FolderSuggestion(BaseModel):
    """Proposed destination folder with the files assigned to it."""
    folder_path: str = Field(..., description="Destination relative to the organized folder")
    folder_name: str = Field("", description="Display name")
    files: List[str] = Field(default_factory=list, description="Assigned filenames")
    reason: str = Field("", description="Why these files belong together")
    confidence: Optional[float] = Field(None, description="Service confidence, clamped to 0-1")
    file_count: int = Field(0, ge=0)

    @field_validator('confidence')
    @classmethod
    def validate_confidence(cls, v):
        """Confidence is advisory; out-of-range values are clamped, not rejected."""
        return clamp_confidence(v) if v is not None else None


class OrganizeResult(BaseModel):
    """Grouping returned by the clustering service."""
    folders: List[FolderSuggestion] = Field(default_factory=list)
    total_files: int = 0
    total_folders: int = 0
    naming_method: str = ""
    clustering_method: Optional[str] = None

    def assigned_filenames(self) -> List[str]:
        """Filenames referenced by at least one suggestion, in first-seen order."""
        seen = {}
        for folder in self.folders:
            for filename in folder.files:
                seen.setdefault(filename, None)
        return list(seen)


class MoveOperation(BaseModel):
    """A single file move inside the organized folder."""
    source_path: str
    dest_folder: str
    filename: str


class MoveExecutionResult(BaseModel):
    """Aggregate outcome of a batch of moves."""
    success: bool = True
    moved_count: int = Field(0, ge=0)
    skipped_count: int = Field(0, ge=0)
    errors: List[str] = Field(default_factory=list)


class SuggestedRule(BaseModel):
    """Sorting rule derived from a completed organize result."""
    rule_type: str
    pattern: str
    target_folder: str
    file_count: int = 0
    confidence: float = Field(0.0, description="Service confidence, clamped to 0-1")
    description: str = ""
    selected: bool = Field(True, description="Local curation state, never sent back")

    @field_validator('confidence')
    @classmethod
    def validate_confidence(cls, v):
        """Confidence is advisory; out-of-range values are clamped, not rejected."""
        return clamp_confidence(v)


class RulesResponse(BaseModel):
    """Payload of the generate-rules endpoint."""
    rules: List[SuggestedRule] = Field(default_factory=list)
    total_rules: int = 0


class ActionLogEntry(BaseModel):
    """History record for one moved file."""
    filename: str
    source_path: str
    dest_path: str
    confidence: float = Field(0.9, ge=0.0, le=1.0)


class RecentAction(BaseModel):
    """History entry as returned by the service."""
    id: str
    filename: str
    dest_path: str
    category_icon: Optional[str] = None
    created_at: str


class AuthTokens(BaseModel):
    """Tokens issued by the login and refresh endpoints."""
    access_token: str
    refresh_token: Optional[str] = None


class OrganizeOptions(BaseModel):
    """User-selected switches for one organize run."""
    use_gemini_naming: bool = Field(True, description="Let the service name folders with AI")
    use_gemini_full: bool = Field(False, description="Let the service cluster with AI")
    use_existing_folders: bool = Field(True, description="Send existing sub-folders as hints")
    use_content_extraction: bool = Field(False, description="Send text/OCR previews")
    custom_prompt: str = Field("", description="Free-text instructions for the service")


class OrganizeSession(BaseModel):
    """State of the single live organize session of an orchestrator."""
    session_id: int = 0
    step: OrganizeStep = OrganizeStep.IDLE
    status_message: str = ""
    selected_folder: str = ""
    options: OrganizeOptions = Field(default_factory=OrganizeOptions)
    scanned_files: List[ScannedFile] = Field(default_factory=list)
    existing_folders: List[ExistingFolder] = Field(default_factory=list)
    result: Optional[OrganizeResult] = None
    execution: Optional[MoveExecutionResult] = None
    suggested_rules: List[SuggestedRule] = Field(default_factory=list)

    @property
    def unassigned_files(self) -> List[str]:
        """Scanned filenames that no suggestion claims; they stay where they are."""
        if self.result is None:
            return []
        assigned = set(self.result.assigned_filenames())
        return [f.filename for f in self.scanned_files if f.filename not in assigned]
