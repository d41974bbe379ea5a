import logging

from fastapi import APIRouter, Depends, HTTPException

from news_chat.api.dependencies import get_system
from news_chat.api.models import ChatRequest, ChatResponse, IngestResponse
from news_chat.system import NewsChatSystem, QueryValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


# Handlers are plain functions so FastAPI runs the blocking system calls in
# its worker threadpool.
@router.post("/chat", response_model=ChatResponse)
def chat_endpoint(
    request: ChatRequest,
    system: NewsChatSystem = Depends(get_system)
):
    try:
        result = system.query(request.sessionId, request.message)
    except QueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error in chat endpoint: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to process query"
        )

    return ChatResponse(response=result.response, sources=result.sources)


@router.post("/chat/ingest", response_model=IngestResponse)
def ingest_endpoint(system: NewsChatSystem = Depends(get_system)):
    try:
        count = system.ingest_articles()
    except Exception as e:
        logger.error(f"Error in ingest endpoint: {e}")
        raise HTTPException(
            status_code=500,
            detail="Ingestion failed"
        )

    return IngestResponse(count=count, message=f"Ingested {count} articles")
