from __future__ import annotations

import logging

from timesheet.sync.poller import ConvergencePoller


def _msg(mid: str, text: str) -> dict:
    return {"id": mid, "designer": "Steven", "text": text, "ts": 1}


def test_tick_replaces_chat_when_count_changes(make_controller, client) -> None:
    client.document = {"chatMessages": [_msg("m1", "hi")]}
    controller = make_controller()
    controller.load()
    reasons: list[str] = []
    controller.subscribe(reasons.append)
    client.document = {"chatMessages": [_msg("m1", "hi"), _msg("m2", "there")]}

    assert controller.poller.tick() is True

    assert [m.id for m in controller.document.chat_messages] == ["m1", "m2"]
    assert reasons == ["chat"]


def test_same_count_edit_upstream_is_not_picked_up(make_controller, client) -> None:
    client.document = {"chatMessages": [_msg("m1", "hi")]}
    controller = make_controller()
    controller.load()
    client.document = {"chatMessages": [_msg("m1", "edited upstream")]}

    assert controller.poller.tick() is False

    assert controller.document.chat_messages[0].text == "hi"


def test_tick_only_touches_chat(make_controller, client) -> None:
    controller = make_controller()
    controller.load()
    client.document = {
        "entries": [{"id": "e", "designer": "Rati", "task": "Remote", "startMs": 1}],
        "chatMessages": [_msg("m1", "hi")],
    }

    controller.poller.tick()

    assert controller.document.entries == []
    assert len(controller.document.chat_messages) == 1


def test_poll_failures_are_logged_and_polling_continues(
    make_controller, client, scheduler, caplog
) -> None:
    controller = make_controller(poll_interval_s=4.0)
    controller.load()
    controller.login("Rati", "Rati#2025")
    client.fail_reads = True

    with caplog.at_level(logging.WARNING, logger="timesheet"):
        scheduler.advance(8.0)
    assert client.reads == 3
    assert "chat poll failed" in caplog.text

    client.fail_reads = False
    client.document = {"chatMessages": [_msg("m1", "back online")]}
    scheduler.advance(4.0)

    assert [m.text for m in controller.document.chat_messages] == ["back online"]


def test_stopped_poller_does_not_read(client, scheduler) -> None:
    replaced: list[list] = []
    poller = ConvergencePoller(
        client,
        current_count=lambda: 0,
        on_replace=replaced.append,
        scheduler=scheduler,
        interval_s=1.0,
    )

    poller.start()
    poller.start()
    scheduler.advance(1.0)
    poller.stop()
    scheduler.advance(5.0)

    assert client.reads == 1
    assert poller.running is False
    assert replaced == []


def test_non_object_document_counts_as_empty_chat(client, scheduler) -> None:
    client.document = ["not", "a", "document"]
    replaced: list[list] = []
    poller = ConvergencePoller(
        client, current_count=lambda: 2, on_replace=replaced.append, scheduler=scheduler
    )

    assert poller.tick() is True
    assert replaced == [[]]
