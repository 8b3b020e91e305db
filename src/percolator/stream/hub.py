# src/percolator/stream/hub.py
from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from typing import Callable, Dict, List, Optional

from src.percolator.core.ledger.snapshot import Snapshot
from src.percolator.core.models.trade import Trade
from src.percolator.stream.events import StreamEvent

log = logging.getLogger("src.percolator.stream.hub")

DEFAULT_QUEUE_SIZE = 256


class Subscription:
    """
    One viewer. Owns a bounded event queue and its own snapshot cadence.

    The periodic snapshot is produced while the subscription is drained
    (`next_event`), so closing it stops the timer with nothing left behind.
    """

    def __init__(
        self,
        *,
        sub_id: int,
        snapshot_fn: Callable[[], Snapshot],
        snapshot_interval_sec: float = 1.0,
        max_queue: int = DEFAULT_QUEUE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sub_id = sub_id
        self._snapshot_fn = snapshot_fn
        self.snapshot_interval_sec = float(snapshot_interval_sec)
        self._clock = clock

        self._queue: "queue.Queue[StreamEvent]" = queue.Queue(maxsize=max(1, int(max_queue)))
        self._offer_lock = threading.Lock()
        self._closed = threading.Event()

        # first drain emits a snapshot right away
        self._next_snapshot_at = clock()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    # ------------------------------------------------------------------
    # publisher side (never blocks)
    # ------------------------------------------------------------------
    def offer(self, evt: StreamEvent) -> bool:
        """
        Enqueue without blocking. Returns False when the subscription is closed.
        A full queue drops its oldest event.
        """
        if self.closed:
            return False

        with self._offer_lock:
            try:
                self._queue.put_nowait(evt)
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass
                self.dropped += 1
                try:
                    self._queue.put_nowait(evt)
                except queue.Full:
                    self.dropped += 1
        return True

    # ------------------------------------------------------------------
    # consumer side
    # ------------------------------------------------------------------
    def next_event(self, timeout: float = 0.25) -> Optional[StreamEvent]:
        """
        Next queued event, or a fresh snapshot when one is due.
        Returns None on timeout or once closed.
        """
        if self.closed:
            return None
        if self.snapshot_due():
            return self.take_snapshot()

        wait = max(0.0, min(float(timeout), self._next_snapshot_at - self._clock()))
        try:
            return self._queue.get(timeout=wait)
        except queue.Empty:
            return None

    def snapshot_due(self) -> bool:
        return self._clock() >= self._next_snapshot_at

    def take_snapshot(self) -> StreamEvent:
        """Build a snapshot event now and restart the cadence. Takes the ledger lock."""
        self._next_snapshot_at = self._clock() + self.snapshot_interval_sec
        return StreamEvent.snapshot(self._snapshot_fn())

    def poll(self) -> Optional[StreamEvent]:
        """Queued event or None, never waits. Safe to call from an event loop."""
        if self.closed:
            return None
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()


class BroadcastHub:
    """
    Registry of live subscriptions, guarded by its own lock.

    Never takes the ledger lock. publish() iterates over a copy, so
    unsubscribe is safe mid-broadcast; closed subscriptions found while
    publishing are deregistered.
    """

    def __init__(
        self,
        *,
        snapshot_fn: Callable[[], Snapshot],
        snapshot_interval_sec: float = 1.0,
        max_queue: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._snapshot_fn = snapshot_fn
        self.snapshot_interval_sec = float(snapshot_interval_sec)
        self.max_queue = int(max_queue)

        self._lock = threading.Lock()
        self._subs: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    def subscribe(self) -> Subscription:
        sub = Subscription(
            sub_id=next(self._ids),
            snapshot_fn=self._snapshot_fn,
            snapshot_interval_sec=self.snapshot_interval_sec,
            max_queue=self.max_queue,
        )
        with self._lock:
            self._subs[sub.sub_id] = sub
            n = len(self._subs)
        log.info("[HUB] subscribed id=%d (total=%d)", sub.sub_id, n)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.close()
        with self._lock:
            removed = self._subs.pop(sub.sub_id, None)
            n = len(self._subs)
        if removed is not None:
            log.info("[HUB] unsubscribed id=%d (total=%d)", sub.sub_id, n)

    def subscriptions(self) -> List[Subscription]:
        with self._lock:
            return list(self._subs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    # ------------------------------------------------------------------
    def publish(self, evt: StreamEvent) -> int:
        delivered = 0
        for sub in self.subscriptions():
            if sub.offer(evt):
                delivered += 1
            else:
                self.unsubscribe(sub)
        return delivered

    def publish_trade(self, trade: Trade) -> int:
        return self.publish(StreamEvent.trade(trade))

    def publish_snapshot(self, snap: Snapshot) -> int:
        return self.publish(StreamEvent.snapshot(snap))
