"""
Tests for BroadcastHub / Subscription

Checks:
1. subscribe / unsubscribe bookkeeping (idempotent)
2. closed subscriptions are dropped on publish
3. bounded queue drops oldest, publisher never blocks
4. per-subscription snapshot cadence
5. tape -> hub wiring in the service
"""

import random
import threading

from src.percolator.core.ledger import Ledger
from src.percolator.core.prints.ambient_prints import AmbientPrintGenerator
from src.percolator.service import PaperTradingService
from src.percolator.stream.events import EventType, StreamEvent
from src.percolator.stream.hub import BroadcastHub, Subscription


def _evt(i: int) -> StreamEvent:
    return StreamEvent(type=EventType.TRADE, data={"i": i})


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRegistry:
    def test_subscribe_unsubscribe(self, hub: BroadcastHub) -> None:
        a = hub.subscribe()
        b = hub.subscribe()
        assert len(hub) == 2
        assert a.sub_id != b.sub_id

        hub.unsubscribe(a)
        hub.unsubscribe(a)

        assert len(hub) == 1
        assert a.closed
        assert not b.closed

    def test_publish_reaches_every_subscriber(self, hub: BroadcastHub) -> None:
        subs = [hub.subscribe() for _ in range(3)]
        assert hub.publish(_evt(1)) == 3
        assert all(s.pending() == 1 for s in subs)

    def test_closed_subscription_deregistered_on_publish(self, hub: BroadcastHub) -> None:
        a = hub.subscribe()
        b = hub.subscribe()
        a.close()

        delivered = hub.publish(_evt(1))

        assert delivered == 1
        assert hub.subscriptions() == [b]

    def test_closed_subscription_yields_nothing(self, hub: BroadcastHub) -> None:
        sub = hub.subscribe()
        hub.unsubscribe(sub)
        assert sub.offer(_evt(1)) is False
        assert sub.next_event(0.01) is None


class TestSubscription:
    def test_overflow_drops_oldest(self, ledger: Ledger) -> None:
        clock = FakeClock()
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot, max_queue=2, clock=clock)
        assert sub.next_event(0.01).type is EventType.SNAPSHOT

        for i in range(3):
            assert sub.offer(_evt(i)) is True

        assert sub.pending() == 2
        assert sub.dropped == 1
        assert sub.next_event(0.01).data == {"i": 1}
        assert sub.next_event(0.01).data == {"i": 2}
        assert sub.next_event(0.01) is None

    def test_periodic_snapshot_cadence(self, ledger: Ledger) -> None:
        clock = FakeClock()
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot, snapshot_interval_sec=1.0, clock=clock)

        # immediate snapshot on the first drain
        assert sub.next_event(0.01).type is EventType.SNAPSHOT

        sub.offer(_evt(1))
        clock.now = 0.5
        assert sub.next_event(0.01).type is EventType.TRADE
        assert sub.next_event(0.01) is None

        clock.now = 1.0
        snap = sub.next_event(0.01)
        assert snap.type is EventType.SNAPSHOT
        assert snap.data["cash"] == 10_000.0

        clock.now = 1.5
        assert sub.next_event(0.01) is None

    def test_snapshot_due_wins_over_queued_events(self, ledger: Ledger) -> None:
        clock = FakeClock()
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot, clock=clock)
        sub.offer(_evt(1))

        assert sub.next_event(0.01).type is EventType.SNAPSHOT
        assert sub.next_event(0.01).type is EventType.TRADE

    def test_poll_never_waits_and_ignores_cadence(self, ledger: Ledger) -> None:
        clock = FakeClock()
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot, clock=clock)

        # a snapshot is due, but poll only looks at the queue
        assert sub.snapshot_due()
        assert sub.poll() is None

        sub.offer(_evt(1))
        assert sub.poll().data == {"i": 1}
        assert sub.snapshot_due()

    def test_take_snapshot_restarts_cadence(self, ledger: Ledger) -> None:
        clock = FakeClock()
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot, snapshot_interval_sec=1.0, clock=clock)

        assert sub.take_snapshot().type is EventType.SNAPSHOT
        assert not sub.snapshot_due()

        clock.now = 0.99
        assert not sub.snapshot_due()
        clock.now = 1.0
        assert sub.snapshot_due()

    def test_poll_on_closed_subscription(self, ledger: Ledger) -> None:
        sub = Subscription(sub_id=1, snapshot_fn=ledger.snapshot)
        sub.offer(_evt(1))
        sub.close()
        assert sub.poll() is None

    def test_sse_framing(self) -> None:
        assert _evt(7).to_sse() == 'data: {"type":"trade","data":{"i":7}}\n\n'


class TestConcurrency:
    def test_subscribe_churn_while_publishing(self, hub: BroadcastHub) -> None:
        stop = threading.Event()
        errors: list = []

        def publisher() -> None:
            i = 0
            while not stop.is_set():
                try:
                    hub.publish(_evt(i))
                except Exception as e:  # pragma: no cover
                    errors.append(e)
                i += 1

        def churn() -> None:
            for _ in range(200):
                sub = hub.subscribe()
                hub.unsubscribe(sub)

        pub = threading.Thread(target=publisher)
        pub.start()
        workers = [threading.Thread(target=churn) for _ in range(4)]
        for w in workers:
            w.start()
        for w in workers:
            w.join(timeout=10)
        stop.set()
        pub.join(timeout=10)

        assert errors == []
        assert len(hub) == 0


class TestServiceWiring:
    def test_ambient_prints_reach_subscribers(self, service: PaperTradingService) -> None:
        sub = service.subscribe()
        assert sub.next_event(0.01).type is EventType.SNAPSHOT

        gen = AmbientPrintGenerator(
            instruments=service.instruments,
            prices=service.prices,
            tape=service.tape,
            rng=random.Random(1),
        )
        gen.run_once()

        events = [sub.next_event(0.01), sub.next_event(0.01)]
        assert [e.type for e in events] == [EventType.TRADE, EventType.TRADE]
        assert {e.data["source"] for e in events} == {"ambient"}

        service.unsubscribe(sub)
        assert len(service.hub) == 0
