"""
Chat API: message, history, clear and model selection endpoints.

Every endpoint goes through the orchestrator dependency so tests can swap it
via app.dependency_overrides.
"""

from fastapi import APIRouter, Depends
from typing import Optional

from .schemas import (
    ChatMessageRequest,
    ChatMessageResponse,
    ChatHistoryResponse,
    ChatTurnResponse,
    ChatClearResponse,
    ModelListResponse,
    ModelResponse,
    ModelSetRequest
)
from ..agents.orchestrator import RetrievalOrchestrator
from ..core import config
from ..core.errors import SessionNotFoundError
from ..util.logging import logger

router = APIRouter()

_orchestrator: Optional[RetrievalOrchestrator] = None


def get_orchestrator() -> RetrievalOrchestrator:
    """Process-wide orchestrator, built on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RetrievalOrchestrator()
    return _orchestrator


@router.post("/chat", response_model=ChatMessageResponse)
async def send_chat_message(req: ChatMessageRequest,
                            orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    """Handle one user message and return the assistant reply."""
    result = await orchestrator.handle_message(req.message, session_id=req.session_id, model=req.model)

    logger.log_operation("chat_message", "fallback" if result.fallback else "success", {
        "session_id": result.session_id,
        "is_new_session": result.is_new_session,
        "model": result.model_used,
        "sources": len(result.sources)
    })

    return ChatMessageResponse(
        session_id=result.session_id,
        message=result.reply,
        is_new_session=result.is_new_session,
        model=result.model_used,
        sources=result.sources
    )


@router.get("/chat/{session_id}", response_model=ChatHistoryResponse)
def get_chat_history(session_id: str, orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    """Full transcript for a session, oldest turn first."""
    session = orchestrator.sessions.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    return ChatHistoryResponse(
        session_id=session.id,
        messages=[
            ChatTurnResponse(role=t.role, content=t.content, timestamp=t.timestamp)
            for t in session.turns
        ],
        created_at=session.created_at,
        updated_at=session.updated_at
    )


@router.delete("/chat/{session_id}", response_model=ChatClearResponse)
def clear_chat_history(session_id: str, orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    """Empty a session's transcript. The id stays usable; unknown ids are a no-op."""
    orchestrator.sessions.clear(session_id)
    return ChatClearResponse(session_id=session_id)


@router.get("/models", response_model=ModelListResponse)
def list_models(orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    return ModelListResponse(models=orchestrator.available_models(), default=config.DEFAULT_MODEL)


@router.get("/model", response_model=ModelResponse)
def get_active_model(orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    return ModelResponse(model=orchestrator.settings.get_active_model())


@router.put("/model", response_model=ModelResponse)
def set_active_model(req: ModelSetRequest, orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)):
    """Persist the model used when a chat request names none."""
    model = orchestrator.settings.set_active_model(req.model)
    logger.log_operation("set_active_model", "success", {"model": model})
    return ModelResponse(model=model)
