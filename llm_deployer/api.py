"""
HTTP endpoints over the chat orchestrator.

Provides session management, messaging, model catalog/selection and
status endpoints for a UI shell. Error mapping lives in main.py.
"""

import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, Request

from .chat import ChatOrchestrator
from .gateway import InferenceGateway
from .models import (
    LoadedModelOut,
    LoadModelRequest,
    MessageOut,
    ModelListOut,
    ProbeState,
    ReplyOut,
    SelectModelRequest,
    SendMessageRequest,
    SessionOut,
    StartSessionRequest,
    StatusOut,
)
from .resources import sample_once
from .state import ChatSession, LoadedModel

logger = logging.getLogger(__name__)

router = APIRouter()


def get_chat(request: Request) -> ChatOrchestrator:
    return request.app.state.chat


def get_gateway(request: Request) -> InferenceGateway:
    return request.app.state.chat.gateway


def _session_out(session: ChatSession) -> SessionOut:
    return SessionOut(
        id=session.id,
        model_id=session.model_id,
        is_active=session.is_active,
        created_at=session.created_at,
        ended_at=session.ended_at,
        message_count=len(session.history),
    )


def _loaded_out(model: LoadedModel) -> LoadedModelOut:
    return LoadedModelOut(
        id=model.id,
        name=model.name,
        path=model.path,
        is_running=model.is_running,
        created_at=model.created_at,
    )


def _model_list(gateway: InferenceGateway) -> ModelListOut:
    return ModelListOut(
        models=gateway.catalog.cached,
        selected=gateway.selector.selected,
        pinned=gateway.selector.pinned,
    )


# =============================================================================
# Status
# =============================================================================

@router.get("/v1/status", response_model=StatusOut)
async def status(gateway: InferenceGateway = Depends(get_gateway)):
    """Last probe result plus the selected model. Does not probe."""
    result = gateway.prober.last_result
    if result is None:
        return StatusOut(state=ProbeState.UNKNOWN, selected_model=gateway.selector.selected)
    return StatusOut(
        state=result.state,
        error_kind=result.error_kind,
        status_code=result.status_code,
        detail=result.detail,
        base_url=result.base_url,
        checked_at=result.checked_at,
        selected_model=gateway.selector.selected,
    )


@router.get("/v1/resources")
async def resources():
    """Host resource snapshot."""
    return asdict(sample_once())


# =============================================================================
# Models
# =============================================================================

@router.get("/v1/models", response_model=ModelListOut)
async def list_models(gateway: InferenceGateway = Depends(get_gateway)):
    """Cached catalog and current selection."""
    return _model_list(gateway)


@router.post("/v1/models/refresh", response_model=ModelListOut)
async def refresh_models(gateway: InferenceGateway = Depends(get_gateway)):
    await gateway.refresh()
    return _model_list(gateway)


@router.put("/v1/models/selected", response_model=ModelListOut)
async def select_model(
    body: SelectModelRequest,
    gateway: InferenceGateway = Depends(get_gateway),
):
    gateway.selector.set_selected(body.name)
    return _model_list(gateway)


@router.get("/v1/models/loaded", response_model=List[LoadedModelOut])
async def loaded_models(gateway: InferenceGateway = Depends(get_gateway)):
    """Models recorded by load requests or seen in a catalog listing."""
    return [_loaded_out(m) for m in gateway.catalog.get_loaded_models()]


@router.post("/v1/models/loaded", response_model=LoadedModelOut, status_code=201)
async def load_model(body: LoadModelRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return _loaded_out(gateway.catalog.load_model(body.path))


@router.delete("/v1/models/loaded/{model_id}", response_model=LoadedModelOut)
async def unload_model(model_id: str, gateway: InferenceGateway = Depends(get_gateway)):
    return _loaded_out(gateway.catalog.unload_model(model_id))


# =============================================================================
# Sessions
# =============================================================================

@router.post("/v1/sessions", response_model=SessionOut, status_code=201)
async def start_session(body: StartSessionRequest, chat: ChatOrchestrator = Depends(get_chat)):
    return _session_out(chat.start_session(body.model_id))


@router.get("/v1/sessions", response_model=List[SessionOut])
async def list_sessions(chat: ChatOrchestrator = Depends(get_chat)):
    return [_session_out(s) for s in chat.list_sessions()]


@router.get("/v1/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, chat: ChatOrchestrator = Depends(get_chat)):
    return _session_out(chat.get_session(session_id))


@router.delete("/v1/sessions/{session_id}", response_model=SessionOut)
async def end_session(session_id: str, chat: ChatOrchestrator = Depends(get_chat)):
    return _session_out(chat.end_session(session_id))


@router.post("/v1/sessions/{session_id}/messages", response_model=ReplyOut)
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    chat: ChatOrchestrator = Depends(get_chat),
):
    reply = await chat.send_message(session_id, body.content, body.max_tokens)
    return ReplyOut(session_id=session_id, reply=reply)


@router.get("/v1/sessions/{session_id}/messages", response_model=List[MessageOut])
async def get_history(session_id: str, chat: ChatOrchestrator = Depends(get_chat)):
    return [
        MessageOut(role=m.role, content=m.content, timestamp=m.timestamp)
        for m in chat.get_history(session_id)
    ]


@router.delete("/v1/sessions/{session_id}/messages")
async def clear_history(session_id: str, chat: ChatOrchestrator = Depends(get_chat)):
    return {"session_id": session_id, "cleared": chat.clear_history(session_id)}
