from __future__ import annotations

import asyncio

import pytest

from client import state as chat
from client.controller import ChatController
from client.render import FAILURE_TEXT, NO_RESPONSE_TEXT
from client.storage import HistorySlot, SlotStore
from client.transcript import Transcript
from client.typewriter import TypingEngine
from helpers import GatedRelay, ScriptedRelay, msg, server_error


def make_controller(relay, slot, delay: float = 0.0):
    view = Transcript()
    controller = ChatController(relay, slot, view, TypingEngine(delay=delay))
    controller.load()
    return controller, view


async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition never became true")


@pytest.mark.asyncio
async def test_successful_exchange(slot):
    relay = ScriptedRelay("Hi there")
    controller, view = make_controller(relay, slot)

    await controller.submit("Hello")

    expected = [msg("user", "Hello"), msg("model", "Hi there")]
    assert controller.history == expected
    assert slot.load() == expected
    assert relay.calls == [[msg("user", "Hello")]]
    assert [(b.role, b.text) for b in view.bubbles] == [("user", "Hello"), ("bot", "Hi there")]
    bot = view.bubbles[-1]
    assert not bot.typing and not bot.thinking
    assert bot.html == "Hi there"
    assert view.controls_enabled
    assert view.scroll_requests >= len("Hi there")


@pytest.mark.asyncio
async def test_history_grows_by_two_per_exchange(slot):
    slot.save([msg("user", "a"), msg("model", "b")])
    relay = ScriptedRelay("second")
    controller, view = make_controller(relay, slot)

    await controller.submit("first")

    assert len(controller.history) == 4
    assert relay.calls[0][:2] == [msg("user", "a"), msg("model", "b")]
    assert slot.load() == controller.history


@pytest.mark.asyncio
async def test_blank_input_makes_no_request(slot):
    relay = ScriptedRelay()
    controller, view = make_controller(relay, slot)

    await controller.submit("   ")

    assert relay.calls == []
    assert controller.history == []
    assert view.bubbles == []


@pytest.mark.asyncio
async def test_failure_rolls_back_and_offers_retry(slot):
    relay = ScriptedRelay(server_error())
    controller, view = make_controller(relay, slot)

    await controller.submit("Hello")

    assert controller.history == []
    assert slot.load() == []
    user, bot = view.bubbles
    assert user.text == "Hello"
    assert bot.text == FAILURE_TEXT
    assert bot.error and bot.retry_enabled
    assert view.controls_enabled


@pytest.mark.asyncio
async def test_retry_after_failure_matches_direct_success(slot):
    relay = ScriptedRelay(server_error(), "Hi there")
    controller, view = make_controller(relay, slot)
    await controller.submit("Hello")
    failed_bubble = view.bubbles[-1].bubble_id

    await controller.retry(failed_bubble)

    expected = [msg("user", "Hello"), msg("model", "Hi there")]
    assert controller.history == expected
    assert slot.load() == expected
    assert relay.calls[1] == [msg("user", "Hello")]
    assert [b.text for b in view.bubbles] == ["Hello", "Hi there"]
    assert not view.bubbles[-1].error
    assert not view.bubbles[-1].retry_enabled


@pytest.mark.asyncio
async def test_repeated_retry_failures_offer_retry_again(slot):
    slot.save([msg("user", "a"), msg("model", "b")])
    relay = ScriptedRelay(server_error(), server_error(), server_error())
    controller, view = make_controller(relay, slot)
    await controller.submit("Hello")
    failed_bubble = view.bubbles[-1].bubble_id

    await controller.retry()
    await controller.retry()

    assert controller.history == [msg("user", "a"), msg("model", "b")]
    assert slot.load() == controller.history
    assert len(view.bubbles) == 4
    assert view.bubble(failed_bubble).retry_enabled
    assert len(relay.calls) == 3


@pytest.mark.asyncio
async def test_retry_without_failure_does_nothing(slot):
    relay = ScriptedRelay()
    controller, _ = make_controller(relay, slot)

    await controller.retry()

    assert relay.calls == []


@pytest.mark.asyncio
async def test_empty_reply_shows_neutral_message(slot):
    relay = ScriptedRelay(None)
    controller, view = make_controller(relay, slot)

    await controller.submit("Hello")

    assert view.bubbles[-1].text == NO_RESPONSE_TEXT
    assert not view.bubbles[-1].retry_enabled
    assert controller.history == [msg("user", "Hello")]


@pytest.mark.asyncio
async def test_unexpected_relay_errors_are_contained(slot):
    relay = ScriptedRelay(ValueError("bad payload"))
    controller, view = make_controller(relay, slot)

    await controller.submit("Hello")

    assert controller.history == []
    assert view.bubbles[-1].retry_enabled


@pytest.mark.asyncio
async def test_controls_disabled_while_awaiting(slot):
    relay = GatedRelay("Hi there")
    controller, view = make_controller(relay, slot)

    task = asyncio.create_task(controller.submit("Hello"))
    await wait_until(lambda: relay.calls)

    assert not view.controls_enabled
    assert view.bubbles[-1].thinking

    relay.gate.set()
    await task
    assert view.controls_enabled


@pytest.mark.asyncio
async def test_clear_empties_everything(slot):
    relay = ScriptedRelay("Hi there")
    controller, view = make_controller(relay, slot)
    await controller.submit("Hello")

    controller.clear()

    assert controller.history == []
    assert slot.load() == []
    assert view.bubbles == []


@pytest.mark.asyncio
async def test_reply_arriving_after_clear_is_discarded(slot):
    relay = GatedRelay("Hi there")
    controller, view = make_controller(relay, slot)

    task = asyncio.create_task(controller.submit("Hello"))
    await wait_until(lambda: relay.calls)
    controller.clear()
    relay.gate.set()
    await task

    assert controller.history == []
    assert slot.load() == []
    assert view.bubbles == []
    assert view.controls_enabled


@pytest.mark.asyncio
async def test_clear_cancels_typing(slot):
    relay = ScriptedRelay("x" * 200)
    controller, view = make_controller(relay, slot, delay=0.01)

    task = asyncio.create_task(controller.submit("Hello"))
    await wait_until(lambda: any(b.typing for b in view.bubbles))
    controller.clear()
    await asyncio.wait_for(task, timeout=1.0)

    assert view.bubbles == []
    assert controller.history == []
    assert slot.load() == []


@pytest.mark.asyncio
async def test_load_restores_saved_conversation(slot):
    slot.save([msg("user", "Hello"), msg("model", "Hi there")])

    controller, view = make_controller(ScriptedRelay(), slot)

    assert controller.history == [msg("user", "Hello"), msg("model", "Hi there")]
    assert [(b.role, b.text) for b in view.bubbles] == [("user", "Hello"), ("bot", "Hi there")]


@pytest.mark.asyncio
async def test_unwritable_slot_does_not_stall_the_chat(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    slot = HistorySlot(SlotStore(blocker / "storage.json"))
    relay = ScriptedRelay("Hi there", "Again to you")
    controller, view = make_controller(relay, slot)

    await controller.submit("Hello")
    await controller.submit("Again")

    assert len(relay.calls) == 2
    assert controller.state.phase is chat.Phase.IDLE
    assert controller.history == [
        msg("user", "Hello"),
        msg("model", "Hi there"),
        msg("user", "Again"),
        msg("model", "Again to you"),
    ]
    assert view.controls_enabled


@pytest.mark.asyncio
async def test_submit_during_typing_is_ignored(slot):
    relay = ScriptedRelay("x" * 100, "late")
    controller, view = make_controller(relay, slot, delay=0.01)

    task = asyncio.create_task(controller.submit("Hello"))
    await wait_until(lambda: any(b.typing for b in view.bubbles))
    await controller.submit("second")

    assert len(relay.calls) == 1
    assert controller.state.phase is chat.Phase.TYPING
    assert not view.controls_enabled

    await asyncio.wait_for(task, timeout=5.0)
    assert controller.state.phase is chat.Phase.IDLE
    assert view.controls_enabled
    assert len(view.bubbles) == 2
