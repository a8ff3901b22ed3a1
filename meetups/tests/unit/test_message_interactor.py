# meetups/tests/unit/test_message_interactor.py
from unittest.mock import AsyncMock, Mock, patch

import pytest

from meetups.domain.errors import InvalidInputError, PermissionDeniedError, StoreUnavailableError
from meetups.gateways.chat_gateway import ChatGateway


@pytest.fixture
async def private_chat(interactors, alice, bruno):
    chat, _ = await interactors.chats.start_private_chat(alice, bruno.id)
    return chat


async def test_send_message_updates_chat_preview(interactors, private_chat, alice, clock):
    message = await interactors.messages.send_message(private_chat.id, alice, "  Bonjour !  ")

    assert message.text == "Bonjour !"
    assert message.sender_name == "Alice"
    assert message.created_at == clock.now

    chat = await interactors.chats.get_chat(private_chat.id, alice.id)
    assert chat.last_message == "Bonjour !"
    assert chat.last_message_at == clock.now
    assert chat.last_message_sender == "Alice"


async def test_messages_are_listed_oldest_first(interactors, private_chat, alice, bruno, clock):
    for text in ("un", "deux", "trois"):
        await interactors.messages.send_message(private_chat.id, alice, text)
        clock.advance(seconds=10)

    messages = await interactors.messages.list_messages(private_chat.id, bruno.id)
    assert [m.text for m in messages] == ["un", "deux", "trois"]


async def test_listing_keeps_the_most_recent_window(interactors, private_chat, alice, clock):
    interactors.messages.window = 2
    for text in ("un", "deux", "trois"):
        await interactors.messages.send_message(private_chat.id, alice, text)
        clock.advance(seconds=10)

    messages = await interactors.messages.list_messages(private_chat.id, alice.id)
    assert [m.text for m in messages] == ["deux", "trois"]


async def test_non_member_cannot_read_or_write(interactors, private_chat, chloe):
    with pytest.raises(PermissionDeniedError):
        await interactors.messages.list_messages(private_chat.id, chloe.id)
    with pytest.raises(PermissionDeniedError):
        await interactors.messages.send_message(private_chat.id, chloe, "Coucou")


async def test_empty_message_is_rejected(interactors, private_chat, alice):
    with pytest.raises(InvalidInputError) as exc_info:
        await interactors.messages.send_message(private_chat.id, alice, "   ")
    assert exc_info.value.field == "text"
    assert await interactors.messages.list_messages(private_chat.id, alice.id) == []


async def test_failed_preview_update_keeps_the_message(
    interactors, private_chat, alice
):
    interactors.messages.logger = Mock()
    with patch.object(
        ChatGateway,
        "update_last_message",
        AsyncMock(side_effect=StoreUnavailableError()),
    ):
        message = await interactors.messages.send_message(private_chat.id, alice, "Bonsoir")

    interactors.messages.logger.warning.assert_called_once()
    messages = await interactors.messages.list_messages(private_chat.id, alice.id)
    assert [m.id for m in messages] == [message.id]

    chat = await interactors.chats.get_chat(private_chat.id, alice.id)
    assert chat.last_message is None


async def test_message_notifies_listeners(interactors, private_chat, alice, feed):
    channels = []

    async def record(channel, payload):
        channels.append(channel)

    feed.listen(
        [f"chats:{private_chat.id}:messages", f"chats:{private_chat.id}"], record
    )

    await interactors.messages.send_message(private_chat.id, alice, "Salut")
    await feed.wait_idle()

    assert channels == [f"chats:{private_chat.id}:messages", f"chats:{private_chat.id}"]
