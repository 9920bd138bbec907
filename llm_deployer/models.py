"""Enums and API request/response models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================

class MessageRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ProbeState(str, Enum):
    """Inference server availability."""
    UNKNOWN = "unknown"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


class ProbeErrorKind(str, Enum):
    """Classification of a failed availability probe."""
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    HTTP_ERROR = "http_error"
    OTHER = "other"


# ============================================================================
# API Request/Response Models
# ============================================================================

class StartSessionRequest(BaseModel):
    """Open a chat session bound to a model id."""
    model_id: str


class SendMessageRequest(BaseModel):
    """User message for an active session."""
    content: str
    max_tokens: Optional[int] = Field(default=None, gt=0)


class SelectModelRequest(BaseModel):
    """Explicit model override."""
    name: str


class LoadModelRequest(BaseModel):
    """Model name or weight file path to record as loaded."""
    path: str


class MessageOut(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime


class SessionOut(BaseModel):
    id: str
    model_id: str
    is_active: bool
    created_at: datetime
    ended_at: Optional[datetime] = None
    message_count: int = 0


class ReplyOut(BaseModel):
    session_id: str
    reply: str


class ModelListOut(BaseModel):
    models: List[str]
    selected: Optional[str] = None
    pinned: bool = False


class LoadedModelOut(BaseModel):
    id: str
    name: str
    path: str = ""
    is_running: bool
    created_at: datetime


class StatusOut(BaseModel):
    """Availability and selection status for display."""
    state: ProbeState
    error_kind: Optional[ProbeErrorKind] = None
    status_code: Optional[int] = None
    detail: Optional[str] = None
    base_url: Optional[str] = None
    checked_at: Optional[datetime] = None
    selected_model: Optional[str] = None
