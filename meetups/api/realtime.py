# meetups/api/realtime.py
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from meetups.api.dependencies import authenticate_token
from meetups.domain.entities import Identity
from meetups.domain.errors import MeetupError
from meetups.realtime.chat_session import (
    ChatSession,
    EventChatSession,
    PrivateChatSession,
    SessionState,
    SessionView,
)

# close code sent when the session is ended by a sign-out
SIGNED_OUT_CLOSE_CODE = 4001


class WebSocketView(SessionView):
    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.closed = False

    async def _send(self, payload: dict) -> None:
        if self.closed:
            return
        await self.websocket.send_json(payload)

    async def show_state(self, state: SessionState, detail: dict) -> None:
        await self._send({"type": "state", "state": state.value, **detail})

    async def show_messages(self, chat_id: str, items: List[dict]) -> None:
        await self._send({"type": "messages", "chat_id": chat_id, "items": items})

    async def show_error(self, error: MeetupError, draft: str = "") -> None:
        await self._send({"type": "error", **error.to_dict(), "draft": draft})

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.websocket.close(code=SIGNED_OUT_CLOSE_CODE)


async def _authenticate(websocket: WebSocket, token: str) -> Optional[Identity]:
    state = websocket.app.state
    async with state.database.session() as session:
        return await authenticate_token(token, state.security_service, session)


def _session_args(websocket: WebSocket, identity: Identity) -> dict:
    state = websocket.app.state
    return {
        "services": state.services,
        "feed": state.change_feed,
        "user": identity,
        "view": WebSocketView(websocket),
        "logger": state.logger,
        "tz": ZoneInfo(state.config.TIMEZONE),
        "locale": state.config.LOCALE,
    }


async def _run_session(websocket: WebSocket, session: ChatSession) -> None:
    registry = websocket.app.state.session_registry
    registry.register(session)
    try:
        await session.open()
        while not session.closed:
            data = await websocket.receive_json()
            if data.get("type") == "draft":
                session.draft = data.get("text", "")
            elif data.get("type") == "send":
                await session.send(data.get("text"))
            elif data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        session.close()
        registry.unregister(session)


def create_router():
    router = APIRouter()

    @router.websocket("/ws/events/{event_id}/chat")
    async def event_chat_socket(websocket: WebSocket, event_id: str, token: str):
        identity = await _authenticate(websocket, token)
        if identity is None:
            await websocket.close(code=1008)
            return
        await websocket.accept()
        session = EventChatSession(
            event_id,
            websocket.app.state.access_gate,
            **_session_args(websocket, identity),
        )
        await _run_session(websocket, session)

    @router.websocket("/ws/chats/{chat_id}")
    async def private_chat_socket(websocket: WebSocket, chat_id: str, token: str):
        identity = await _authenticate(websocket, token)
        if identity is None:
            await websocket.close(code=1008)
            return
        await websocket.accept()
        session = PrivateChatSession(chat_id, **_session_args(websocket, identity))
        await _run_session(websocket, session)

    return router
