import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from bots.human import HumanRelayBot
from engine.dispatch import BOT_ERROR, TIMEOUT, DecisionDispatcher
from engine.events import Event, EventBus, EventKind
from engine.game import RoundEngine
from engine.pending import PendingDecisions


def wait_for_request(table, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        entries = table.pending()
        if entries:
            return entries[0]
        time.sleep(0.01)
    raise AssertionError("no decision was registered")


def test_resolve_settles_exactly_once():
    table = PendingDecisions()
    request_id, future = table.register(0, "play", default={"move": "pass"})
    assert len(table) == 1
    assert table.resolve(request_id, {"move": "play", "cards": ["3S"]})
    assert future.result(timeout=1) == {"move": "play", "cards": ["3S"]}
    assert not table.resolve(request_id, {"move": "pass"})
    assert table.get(request_id) is None


def test_timer_applies_default():
    table = PendingDecisions()
    _, future = table.register(2, "bid", timeout=0.05, default={"action": "pass"})
    assert future.result(timeout=2) == {"action": "pass"}
    assert len(table) == 0


def test_resolve_for_seat_targets_newest_matching_request():
    table = PendingDecisions()
    _, older = table.register(1, "play", session_id="s1")
    time.sleep(0.01)
    _, newer = table.register(1, "play", session_id="s1")
    _, other = table.register(1, "play", session_id="s2")
    assert table.resolve_for_seat(1, "answer", session_id="s1")
    assert newer.result(timeout=1) == "answer"
    assert not older.done() and not other.done()
    assert not table.resolve_for_seat(0, "answer")


def test_abort_session_and_clear_use_defaults():
    table = PendingDecisions()
    _, a = table.register(0, "bid", session_id="s1", default="d0")
    _, b = table.register(1, "bid", session_id="s1", default="d1")
    _, c = table.register(2, "bid", session_id="s2", default="d2")
    assert [entry.seat for entry in table.pending("s1")] == [0, 1]
    assert table.abort_session("s1") == 2
    assert (a.result(timeout=1), b.result(timeout=1)) == ("d0", "d1")
    assert table.clear() == 1
    assert c.result(timeout=1) == "d2"


def test_register_rejects_bad_seat():
    with pytest.raises(ValueError):
        PendingDecisions().register(3, "bid")


def test_human_relay_bot_waits_for_client():
    table = PendingDecisions()
    engine = RoundEngine(seed=4)
    bot = HumanRelayBot(table, session_id="s", timeout=5.0)
    bot.on_round_start(0, None)
    with ThreadPoolExecutor(max_workers=1) as pool:
        answer = pool.submit(bot.decide_bid, engine.view(0))
        entry = wait_for_request(table)
        assert entry.phase == "bid"
        assert entry.context["seat"] == 0
        assert len(entry.context["hand"]) == 17
        assert table.resolve_for_seat(0, {"action": "call", "value": 2}, session_id="s")
        assert answer.result(timeout=2) == {"action": "call", "value": 2}


def test_human_relay_bot_times_out_to_pass():
    table = PendingDecisions()
    engine = RoundEngine(seed=4)
    bot = HumanRelayBot(table, timeout=0.05)
    assert bot.decide_bid(engine.view(0)) == {"action": "pass"}


def test_event_bus_history_and_failing_subscriber():
    bus = EventBus(keep_history=True, max_history=2)
    seen = []

    def broken(event):
        raise RuntimeError("observer bug")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    for kind in (EventKind.DEAL, EventKind.BID, EventKind.PLAY):
        bus.emit(Event(kind=kind, seat=0))
    assert [event.kind for event in seen] == [EventKind.DEAL, EventKind.BID, EventKind.PLAY]
    assert [event.kind for event in bus.history()] == [EventKind.BID, EventKind.PLAY]
    assert bus.history(EventKind.PLAY)[0].to_dict() == {"kind": "play", "seat": 0, "round": None, "group": None}

    assert bus.unsubscribe(seen.append)
    assert not bus.unsubscribe(seen.append)
    bus.clear_history()
    assert bus.history() == []


def test_dispatcher_reports_failures():
    def explode():
        raise ValueError("bad bot")

    with DecisionDispatcher(timeout=0.05) as dispatcher:
        assert dispatcher.call("ok", lambda: 7).value == 7
        assert dispatcher.call("slow", time.sleep, 0.5).failure == TIMEOUT
        assert dispatcher.call("raise", explode).failure == BOT_ERROR

    inline = DecisionDispatcher(timeout=None)
    assert inline.call("raise", explode).failure == BOT_ERROR
    assert inline.call("ok", lambda: 1).ok
    with pytest.raises(ValueError):
        DecisionDispatcher(timeout=0)
