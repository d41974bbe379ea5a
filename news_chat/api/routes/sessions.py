import uuid

from fastapi import APIRouter, Depends

from news_chat.api.dependencies import get_system
from news_chat.api.models import ClearResponse, HistoryResponse, SessionResponse
from news_chat.system import NewsChatSystem

router = APIRouter()


@router.post("/sessions", response_model=SessionResponse)
def create_session():
    return SessionResponse(sessionId=str(uuid.uuid4()))


@router.get("/sessions/{session_id}/history", response_model=HistoryResponse)
def get_history(session_id: str, system: NewsChatSystem = Depends(get_system)):
    messages = system.get_history(session_id)
    return HistoryResponse(history=[message.to_dict() for message in messages])


@router.delete("/sessions/{session_id}", response_model=ClearResponse)
def clear_session(session_id: str, system: NewsChatSystem = Depends(get_system)):
    return ClearResponse(success=system.clear_history(session_id))
