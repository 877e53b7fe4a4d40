"""
Per-tenant engine workers: one daemon thread + FIFO queue per tenant.

Publishers (offer ingestion, plan edits) enqueue an event and return immediately. The worker
takes everything queued at that moment and runs a single pass for it:
- any plans-changed event -> pending backfills, then a full forward pass;
- otherwise -> a forward pass restricted to the offer ids that arrived.
stop() lets the worker finish what is queued (including an in-flight pass) before exiting.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from loadhunt.db.session import SessionLocal
from loadhunt.services.matching.backfill import run_pending_backfills
from loadhunt.services.matching.engine import MatchEngine, get_match_engine

logger = logging.getLogger(__name__)

EVENT_OFFERS = "offers"
EVENT_PLANS = "plans"


@dataclass(frozen=True)
class EngineEvent:
    kind: str
    offer_ids: tuple[int, ...] = ()


_STOP = object()


class EngineWorker:
    def __init__(
        self,
        tenant_id: str,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        engine: MatchEngine | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self._session_factory = session_factory
        self._engine = engine
        self._queue: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=f"engine-{tenant_id}", daemon=True)
        self._started = False
        self._lock = threading.Lock()
        self.passes = 0

    @property
    def engine(self) -> MatchEngine:
        if self._engine is None:
            self._engine = get_match_engine()
        return self._engine

    def start(self) -> None:
        with self._lock:
            if not self._started:
                self._thread.start()
                self._started = True

    def submit(self, event: EngineEvent) -> None:
        self._queue.put(event)

    def stop(self, timeout: float | None = 30.0) -> None:
        """Drain the queue, then exit."""
        with self._lock:
            if not self._started:
                return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Engine worker %s did not stop within %ss", self.tenant_id, timeout)

    def _run(self) -> None:
        while True:
            first = self._queue.get()
            events, stop = self._drain(first)
            if events:
                self.process(events)
            if stop:
                logger.info("Engine worker %s stopped (%s passes)", self.tenant_id, self.passes)
                return

    def _drain(self, first) -> tuple[list[EngineEvent], bool]:
        """Coalesce everything queued right now. Stops at the stop marker."""
        events: list[EngineEvent] = []
        item = first
        while True:
            if item is _STOP:
                return events, True
            events.append(item)
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return events, False

    def process(self, events: list[EngineEvent]) -> None:
        """Run one pass covering events. Runs in the caller's thread."""
        plans_changed = any(e.kind == EVENT_PLANS for e in events)
        offer_ids = sorted({i for e in events if e.kind == EVENT_OFFERS for i in e.offer_ids})
        db = self._session_factory()
        try:
            if plans_changed:
                run_pending_backfills(db, self.tenant_id, self.engine)
                self.engine.run_pass(db, self.tenant_id)
            elif offer_ids:
                self.engine.run_pass(db, self.tenant_id, offer_ids=offer_ids)
            self.passes += 1
        except Exception as e:
            db.rollback()
            logger.exception("Engine worker %s: pass failed (events=%s): %s", self.tenant_id, len(events), e)
        finally:
            db.close()


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_workers: dict[str, EngineWorker] = {}
_registry_lock = threading.Lock()
_session_factory: Callable[[], Session] = SessionLocal
_engine: MatchEngine | None = None
_synchronous = False


def configure(
    *,
    session_factory: Callable[[], Session] | None = None,
    engine: MatchEngine | None = None,
    synchronous: bool = False,
) -> None:
    """
    Set how new workers open sessions and which engine they use. synchronous=True runs each
    published event inline in the publisher's thread (tests, one-shot scripts).
    """
    global _session_factory, _engine, _synchronous
    with _registry_lock:
        _session_factory = session_factory or SessionLocal
        _engine = engine
        _synchronous = synchronous


def get_worker(tenant_id: str) -> EngineWorker:
    with _registry_lock:
        worker = _workers.get(tenant_id)
        if worker is None:
            worker = EngineWorker(tenant_id, session_factory=_session_factory, engine=_engine)
            _workers[tenant_id] = worker
            if not _synchronous:
                worker.start()
                logger.info("Engine worker started for tenant %s", tenant_id)
        return worker


def _publish(tenant_id: str, event: EngineEvent) -> None:
    worker = get_worker(tenant_id)
    if _synchronous:
        worker.process([event])
    else:
        worker.submit(event)


def publish_offers_inserted(tenant_id: str, offer_ids: list[int]) -> None:
    if offer_ids:
        _publish(tenant_id, EngineEvent(EVENT_OFFERS, tuple(offer_ids)))


def publish_plans_changed(tenant_id: str) -> None:
    _publish(tenant_id, EngineEvent(EVENT_PLANS))


def stop_all_workers(timeout: float | None = 30.0) -> None:
    with _registry_lock:
        workers = list(_workers.values())
        _workers.clear()
    for worker in workers:
        worker.stop(timeout)
    if workers:
        logger.info("Stopped %s engine workers", len(workers))
