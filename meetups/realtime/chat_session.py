# meetups/realtime/chat_session.py
"""
Live chat views.

A session walks ``idle -> resolving_chat -> subscribed -> idle`` and may stop
in one of the labeled states (chat_unavailable, join_required, access_denied,
error). It holds at most two watches: the chat watch, which resolves which
chat the view shows, and the message watch for that chat. Every chat
snapshot cancels the message watch before a new one is created, and closing
the session cancels both. No watch is ever retried after a failure.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from functools import partial
from typing import List, Optional
from zoneinfo import ZoneInfo

from meetups.domain.entities import Identity
from meetups.domain.errors import (
    AccessDeniedError,
    JoinRequiredError,
    MeetupError,
    NotFoundError,
    PermissionDeniedError,
)
from meetups.infrastructure import schemas
from meetups.infrastructure.change_feed import ChangeFeed, QueryWatch
from meetups.infrastructure.event_handlers import (
    chat_channel,
    event_chat_channel,
    messages_channel,
)
from meetups.interactors.access_gate import AccessGate
from meetups.interactors.container import ServiceContainer
from meetups.realtime.day_grouping import group_by_day, serialize_items


class SessionState(str, Enum):
    IDLE = "idle"
    RESOLVING_CHAT = "resolving_chat"
    SUBSCRIBED = "subscribed"
    CHAT_UNAVAILABLE = "chat_unavailable"
    JOIN_REQUIRED = "join_required"
    ACCESS_DENIED = "access_denied"
    ERROR = "error"


class SessionView(ABC):
    """Where a session renders; the WebSocket endpoint is one implementation."""

    @abstractmethod
    async def show_state(self, state: SessionState, detail: dict) -> None:
        pass

    @abstractmethod
    async def show_messages(self, chat_id: str, items: List[dict]) -> None:
        pass

    @abstractmethod
    async def show_error(self, error: MeetupError, draft: str = "") -> None:
        pass

    async def close(self) -> None:
        pass


class ChatSession(ABC):
    denied_state = SessionState.ACCESS_DENIED

    def __init__(
        self,
        services: ServiceContainer,
        feed: ChangeFeed,
        user: Identity,
        view: SessionView,
        logger: logging.Logger,
        tz: ZoneInfo,
        locale: str = "fr_FR",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.services = services
        self.feed = feed
        self.user = user
        self.view = view
        self.logger = logger
        self.tz = tz
        self.locale = locale
        self.clock = clock or services.clock
        self.state = SessionState.IDLE
        self.chat_id: Optional[str] = None
        self.draft = ""
        self.closed = False
        self._chat_watch: Optional[QueryWatch] = None
        self._message_watch: Optional[QueryWatch] = None

    @property
    def watches(self) -> List[QueryWatch]:
        return [
            w for w in (self._chat_watch, self._message_watch)
            if w is not None and w.active
        ]

    @abstractmethod
    async def open(self) -> None:
        pass

    async def _set_state(self, state: SessionState, **detail) -> None:
        self.state = state
        await self.view.show_state(state, detail)

    async def _watch_chat(self, channel: str, fetch) -> None:
        self._chat_watch = QueryWatch(
            self.feed,
            [channel],
            fetch,
            self._on_chat,
            self._on_watch_error,
            name=f"chat:{channel}",
        )
        await self._chat_watch.start()

    async def _on_chat(self, chat: Optional[schemas.Chat]) -> None:
        if chat is None:
            self._cancel_messages()
            self.chat_id = None
            await self._set_state(SessionState.CHAT_UNAVAILABLE)
            return
        await self._subscribe_messages(chat)

    async def _subscribe_messages(self, chat: schemas.Chat) -> None:
        # the previous watch goes first, before any await
        self._cancel_messages()
        previous_chat_id, self.chat_id = self.chat_id, chat.id
        watch = QueryWatch(
            self.feed,
            [messages_channel(chat.id)],
            partial(self._fetch_messages, chat.id),
            partial(self._render, chat.id),
            self._on_watch_error,
            name=f"messages:{chat.id}",
        )
        self._message_watch = watch
        if self.state != SessionState.SUBSCRIBED or previous_chat_id != chat.id:
            await self._set_state(SessionState.SUBSCRIBED, chat_id=chat.id)
        if watch is self._message_watch and not self.closed:
            await watch.start()

    async def _fetch_messages(self, chat_id: str) -> List[schemas.Message]:
        async with self.services.scope() as interactors:
            return await interactors.messages.list_messages(chat_id, self.user.id)

    async def _render(self, chat_id: str, messages: List[schemas.Message]) -> None:
        items = group_by_day(messages, self.tz, self.clock(), self.locale)
        await self.view.show_messages(chat_id, serialize_items(items))

    async def _on_watch_error(self, error: MeetupError) -> None:
        self.cancel_watches()
        if isinstance(error, JoinRequiredError):
            state = SessionState.JOIN_REQUIRED
        elif isinstance(error, (AccessDeniedError, PermissionDeniedError)):
            state = self.denied_state
        elif isinstance(error, NotFoundError):
            state = SessionState.CHAT_UNAVAILABLE
        else:
            state = SessionState.ERROR
        self.logger.warning(
            f"Chat session of {self.user.id} stopped ({state.value}): {error!s}"
        )
        await self._set_state(state, code=error.code, message=error.message)

    def _cancel_messages(self) -> None:
        if self._message_watch is not None:
            self._message_watch.cancel()
            self._message_watch = None

    def cancel_watches(self) -> None:
        self._cancel_messages()
        if self._chat_watch is not None:
            self._chat_watch.cancel()
            self._chat_watch = None

    def close(self) -> None:
        """Tears the view down; no snapshot is delivered after this returns."""
        if self.closed:
            return
        self.closed = True
        self.cancel_watches()
        self.chat_id = None
        self.state = SessionState.IDLE

    async def shutdown(self) -> None:
        self.close()
        await self.view.close()

    async def send(self, text: Optional[str] = None) -> Optional[schemas.Message]:
        """
        Sends the draft (or `text`). The draft is cleared while the write is
        in flight and put back untouched when it fails.
        """
        text = self.draft if text is None else text
        if self.chat_id is None or self.state != SessionState.SUBSCRIBED:
            self.draft = text
            return None
        if not text.strip():
            return None

        self.draft = ""
        try:
            async with self.services.scope() as interactors:
                return await interactors.messages.send_message(
                    self.chat_id, self.user, text
                )
        except MeetupError as e:
            self.draft = text
            self.logger.warning(f"Message from {self.user.id} not sent: {e!s}")
            await self.view.show_error(e, draft=text)
            return None


class EventChatSession(ChatSession):
    """The group chat of an event, only opened for its participants."""

    denied_state = SessionState.JOIN_REQUIRED

    def __init__(self, event_id: str, access_gate: AccessGate, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.event_id = event_id
        self.access_gate = access_gate

    async def open(self) -> None:
        await self._set_state(SessionState.RESOLVING_CHAT, event_id=self.event_id)
        try:
            await self.access_gate.ensure_event_participant(self.event_id, self.user.id)
        except MeetupError as e:
            await self._on_watch_error(e)
            return
        if self.closed:
            return
        await self._watch_chat(event_chat_channel(self.event_id), self._resolve_chat)

    async def _resolve_chat(self) -> Optional[schemas.Chat]:
        async with self.services.scope() as interactors:
            return await interactors.chats.resolve_event_chat(self.event_id)


class PrivateChatSession(ChatSession):
    def __init__(self, chat_id: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.requested_chat_id = chat_id

    async def open(self) -> None:
        await self._set_state(SessionState.RESOLVING_CHAT, chat_id=self.requested_chat_id)
        await self._watch_chat(chat_channel(self.requested_chat_id), self._load_chat)

    async def _load_chat(self) -> schemas.Chat:
        async with self.services.scope() as interactors:
            return await interactors.chats.get_chat(
                self.requested_chat_id, self.user.id
            )
