"""
WebSocket Chat Channel

One connection per session at ``/ws/{session_id}``. Clients send JSON frames
of the form ``{"type": "send-message", "message": ...}`` or
``{"type": "clear-session"}``; the server pushes ``{"type": <event>, "data":
...}`` frames for ``bot-typing``, ``bot-response``, ``session-cleared`` and
``error``.
"""

import logging
import time

import anyio.from_thread
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from news_chat.models import QueryResult
from news_chat.query.notifier import QueryNotifier
from news_chat.system import QueryValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketNotifier(QueryNotifier):
    """
    Forwards orchestrator events to a WebSocket.

    Events are raised on a worker thread, so every send is handed back to the
    event loop that owns the socket.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.error_sent = False

    def _send(self, event: str, data=None) -> None:
        anyio.from_thread.run(self.websocket.send_json, {'type': event, 'data': data})

    def working(self, session_id: str, active: bool) -> None:
        self._send('bot-typing', active)

    def result(self, session_id: str, result: QueryResult) -> None:
        self._send('bot-response', {
            'message': result.response,
            'sources': result.sources,
            'timestamp': int(time.time() * 1000),
        })

    def error(self, session_id: str, message: str) -> None:
        self._send('error', {'message': message})
        self.error_sent = True


@router.websocket("/ws/{session_id}")
async def chat_socket(websocket: WebSocket, session_id: str):
    system = websocket.app.state.system
    await websocket.accept()
    logger.info(f"Client connected to session {session_id}")

    try:
        while True:
            frame = await websocket.receive_json()
            event = frame.get('type') if isinstance(frame, dict) else None

            if event == 'send-message':
                notifier = WebSocketNotifier(websocket)
                try:
                    await run_in_threadpool(
                        system.query, session_id, frame.get('message'), notifier
                    )
                except QueryValidationError as e:
                    await websocket.send_json({'type': 'error', 'data': {'message': str(e)}})
                except Exception as e:
                    logger.error(f"WebSocket query failed for session {session_id}: {e}")
                    if not notifier.error_sent:
                        await websocket.send_json(
                            {'type': 'error', 'data': {'message': "Processing failed"}}
                        )

            elif event == 'clear-session':
                await run_in_threadpool(system.clear_history, session_id)
                await websocket.send_json({'type': 'session-cleared', 'data': None})

            else:
                logger.warning(f"Unknown WebSocket event: {event}")
                await websocket.send_json(
                    {'type': 'error', 'data': {'message': f"Unknown event: {event}"}}
                )
    except WebSocketDisconnect:
        logger.info(f"Client disconnected from session {session_id}")
