# meetups/tests/unit/test_access_gate.py
import json
from unittest.mock import AsyncMock, patch

import pytest

from meetups.domain.errors import (
    AccessDeniedError,
    JoinRequiredError,
    PartialWriteError,
    StoreUnavailableError,
)
from meetups.gateways.event_gateway import EventGateway
from meetups.gateways.participant_gateway import ParticipantGateway


async def test_organizer_passes_the_gate(access_gate, test_event, alice):
    await access_gate.ensure_event_participant(test_event.id, alice.id)


async def test_non_participant_needs_to_join(access_gate, test_event, bruno):
    with pytest.raises(JoinRequiredError):
        await access_gate.ensure_event_participant(test_event.id, bruno.id)


async def test_positive_answers_are_cached(access_gate, test_event, alice):
    assert await access_gate.is_event_participant(test_event.id, alice.id)

    with patch.object(ParticipantGateway, "exists", AsyncMock(return_value=False)) as exists:
        assert await access_gate.is_event_participant(test_event.id, alice.id)
    exists.assert_not_called()


async def test_join_and_leave_invalidate_the_cache(
    access_gate, interactors, test_event, bruno
):
    assert not await access_gate.is_event_participant(test_event.id, bruno.id)

    await interactors.events.join_event(test_event.id, bruno)
    assert await access_gate.is_event_participant(test_event.id, bruno.id)

    await interactors.events.leave_event(test_event.id, bruno.id)
    assert not await access_gate.is_event_participant(test_event.id, bruno.id)



async def test_leave_with_stale_counter_still_invalidates(
    access_gate, interactors, test_event, bruno
):
    await interactors.events.join_event(test_event.id, bruno)
    assert await access_gate.is_event_participant(test_event.id, bruno.id)

    with patch.object(
        EventGateway,
        "increment_participants",
        AsyncMock(side_effect=StoreUnavailableError()),
    ):
        with pytest.raises(PartialWriteError) as exc_info:
            await interactors.events.leave_event(test_event.id, bruno.id)

    assert exc_info.value.failed_step == "participants_count"
    assert not await access_gate.is_event_participant(test_event.id, bruno.id)
    with pytest.raises(JoinRequiredError):
        await access_gate.ensure_event_participant(test_event.id, bruno.id)


async def test_roster_change_from_another_process_invalidates(
    access_gate, dispatcher, feed, test_event, bruno
):
    with patch.object(ParticipantGateway, "exists", AsyncMock(return_value=True)):
        assert await access_gate.is_event_participant(test_event.id, bruno.id)

    await feed.handle_relay_message(
        {
            "type": "pmessage",
            "channel": f"meetups:events:{test_event.id}:participants",
            "data": json.dumps(
                {
                    "origin": "other-process",
                    "payload": {"event_id": test_event.id, "user_id": bruno.id},
                }
            ),
        }
    )
    await feed.wait_idle()

    with patch.object(
        ParticipantGateway, "exists", AsyncMock(return_value=False)
    ) as exists:
        assert not await access_gate.is_event_participant(test_event.id, bruno.id)
    exists.assert_awaited_once()


async def test_forget_user_drops_only_their_answers(
    access_gate, test_event, interactors, alice, bruno
):
    await interactors.events.join_event(test_event.id, bruno)
    await access_gate.is_event_participant(test_event.id, alice.id)
    await access_gate.is_event_participant(test_event.id, bruno.id)

    access_gate.forget_user(alice.id)

    with patch.object(ParticipantGateway, "exists", AsyncMock(return_value=False)):
        assert not await access_gate.is_event_participant(test_event.id, alice.id)
        assert await access_gate.is_event_participant(test_event.id, bruno.id)


async def test_private_chat_membership(access_gate, interactors, alice, bruno, chloe):
    chat, _ = await interactors.chats.start_private_chat(alice, bruno.id)

    access_gate.ensure_chat_member(chat, bruno.id)
    with pytest.raises(AccessDeniedError):
        access_gate.ensure_chat_member(chat, chloe.id)
