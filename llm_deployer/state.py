"""Internal state: sessions, messages, catalog entries and status snapshots."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .models import MessageRole, ProbeErrorKind, ProbeState


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation turn. Immutable once created."""
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class ChatSession:
    """
    Conversation bound to a model id.

    History only grows while the session is active; ending a session
    freezes it.
    """
    model_id: str
    id: str = field(default_factory=new_id)
    is_active: bool = True
    history: List[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    ended_at: Optional[datetime] = None


@dataclass
class LoadedModel:
    """Client-side bookkeeping for a model known to the server."""
    name: str
    path: str = ""
    id: str = field(default_factory=new_id)
    is_running: bool = True
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SelectionPolicy:
    """Ranked preference entry used by the model selector."""
    pattern: str
    min_memory_gb: float
    priority: int


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one availability probe."""
    state: ProbeState
    error_kind: Optional[ProbeErrorKind] = None
    status_code: Optional[int] = None
    detail: Optional[str] = None
    base_url: Optional[str] = None
    checked_at: datetime = field(default_factory=utcnow)

    @property
    def reachable(self) -> bool:
        return self.state == ProbeState.REACHABLE


@dataclass(frozen=True)
class ResourceSample:
    """Host resource snapshot for display."""
    cpu_percent: float
    memory_percent: float
    memory_used_gb: float
    memory_available_gb: float
    memory_total_gb: float
    process_memory_mb: float
    thread_count: int
    timestamp: datetime = field(default_factory=utcnow)
