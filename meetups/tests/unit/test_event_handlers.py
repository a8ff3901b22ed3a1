# meetups/tests/unit/test_event_handlers.py
from datetime import UTC, datetime
from typing import get_type_hints
from unittest.mock import AsyncMock, Mock

import pytest

from meetups.domain.events import (
    ChatCreated,
    ChatUpdated,
    MeetupCreated,
    MessageCreated,
    ParticipantJoined,
    ParticipantLeft,
)
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.infrastructure.event_handlers import EventHandlers
from meetups.interactors.access_gate import AccessGate


@pytest.fixture
def mock_change_feed():
    feed = AsyncMock()
    feed.listen_pattern = Mock()
    return feed


@pytest.fixture
def mock_access_gate():
    return Mock()


@pytest.fixture
def event_handlers(mock_change_feed, mock_access_gate):
    return EventHandlers(mock_change_feed, mock_access_gate)


def published_channels(feed) -> list[str]:
    return [call.args[0] for call in feed.publish.call_args_list]


async def test_publish_meetup_created(event_handlers, mock_change_feed):
    await event_handlers.publish_meetup_created(
        MeetupCreated(event_id="e1", organizer_id="u1")
    )
    mock_change_feed.publish.assert_called_once_with(
        "events:e1", {"event_id": "e1", "organizer_id": "u1"}
    )


async def test_participant_changes_invalidate_access(
    event_handlers, mock_change_feed, mock_access_gate
):
    await event_handlers.publish_participant_joined(
        ParticipantJoined(event_id="e1", user_id="u2")
    )
    await event_handlers.publish_participant_left(
        ParticipantLeft(event_id="e1", user_id="u2")
    )

    assert mock_access_gate.invalidate.call_count == 2
    mock_access_gate.invalidate.assert_called_with("e1", "u2")
    assert published_channels(mock_change_feed) == [
        "events:e1:participants",
        "events:e1:participants",
    ]


async def test_event_chat_update_reaches_every_listener(
    event_handlers, mock_change_feed
):
    await event_handlers.publish_chat_updated(
        ChatUpdated(chat_id="c1", chat_type="event", event_id="e1", member_ids=["u1", "u2"])
    )
    assert published_channels(mock_change_feed) == [
        "chats:c1",
        "events:e1:chat",
        "users:u1:chats",
        "users:u2:chats",
    ]


async def test_private_chat_has_no_event_channel(event_handlers, mock_change_feed):
    await event_handlers.publish_chat_created(
        ChatCreated(chat_id="c2", chat_type="private", member_ids=["u1", "u2"])
    )
    assert "events:None:chat" not in published_channels(mock_change_feed)
    assert published_channels(mock_change_feed)[0] == "chats:c2"


async def test_publish_message_created(event_handlers, mock_change_feed):
    event = MessageCreated(
        message_id="m1",
        chat_id="c1",
        sender_id="u1",
        sender_name="Alice",
        text="Salut",
        created_at=datetime(2025, 10, 15, 8, 0, tzinfo=UTC),
    )
    await event_handlers.publish_message_created(event)

    channel, payload = mock_change_feed.publish.call_args.args
    assert channel == "chats:c1:messages"
    assert payload["created_at"] == "2025-10-15T08:00:00Z"


def test_bind_registers_every_event(event_handlers, mock_change_feed):
    dispatcher = event_handlers.bind(EventDispatcher())
    assert set(dispatcher.handlers) == {
        "MeetupCreated",
        "MeetupUpdated",
        "ParticipantJoined",
        "ParticipantLeft",
        "ChatCreated",
        "ChatUpdated",
        "MessageCreated",
    }
    mock_change_feed.listen_pattern.assert_called_once_with(
        "events:*:participants", event_handlers.invalidate_access
    )

    # binding again keeps a single roster listener
    event_handlers.bind(EventDispatcher())
    assert mock_change_feed.listen_pattern.call_count == 1


async def test_roster_notification_invalidates_access(event_handlers, mock_access_gate):
    await event_handlers.invalidate_access(
        "events:e1:participants", {"event_id": "e1", "user_id": "u2"}
    )
    await event_handlers.invalidate_access("events:e1:participants", {"n": 1})

    mock_access_gate.invalidate.assert_called_once_with("e1", "u2")


def test_no_roster_listener_without_gate(mock_change_feed):
    EventHandlers(mock_change_feed).bind(EventDispatcher())
    mock_change_feed.listen_pattern.assert_not_called()


def test_access_gate_is_typed():
    hints = get_type_hints(EventHandlers.__init__)
    assert hints["access_gate"] == AccessGate | None
