"""Background scanning and the mod visibility state machine.

The mod service only calls :meth:`ScanEngine.submit`.  An engine decides
when and how a verdict is produced and hands it to :meth:`ScanEngine.deliver`,
which performs the single write that moves the mod out of ``pending``.
Verdicts are applied last-writer-wins; there is no in-flight tracking.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import Engine
from sqlmodel import Session

from azurite.config import settings
from azurite.models.mod import Mod, ScanResult

logger = logging.getLogger(__name__)

THREAT_REASON = "Malware detected in uploaded file"


@dataclass(frozen=True)
class ScanVerdict:
    result: ScanResult
    reason: str | None = None

    @classmethod
    def clean(cls) -> "ScanVerdict":
        return cls(ScanResult.CLEAN)

    @classmethod
    def threat(cls, reason: str = THREAT_REASON) -> "ScanVerdict":
        return cls(ScanResult.THREAT, reason)


class VerdictSource(Protocol):
    def verdict_for(self, mod_id: int, file_id: int | None) -> ScanVerdict: ...


class SimulatedVerdictSource:
    """Stand-in scanner: whole-mod scans are clean, every 13th file id is flagged."""

    def verdict_for(self, mod_id: int, file_id: int | None) -> ScanVerdict:
        if file_id is not None and file_id % 13 == 0:
            return ScanVerdict.threat()
        return ScanVerdict.clean()


def record_verdict(session: Session, mod_id: int, verdict: ScanVerdict) -> bool:
    """Apply a verdict to a mod; returns False when the mod no longer exists."""
    mod = session.get(Mod, mod_id)
    if mod is None:
        logger.info("Dropping %s verdict for deleted mod %d", verdict.result.value, mod_id)
        return False

    mod.is_scanned = True
    mod.scan_result = verdict.result.value
    if verdict.result == ScanResult.THREAT:
        mod.is_rejected = True
        mod.rejection_reason = verdict.reason or THREAT_REASON
    mod.updated_at = datetime.now(UTC)
    session.add(mod)
    session.commit()
    logger.info("Mod %d scanned: %s", mod_id, verdict.result.value)
    return True


class ScanEngine:
    """Base engine. Subclasses schedule work in ``submit`` and report through ``deliver``."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is not None:
            return self._engine
        from azurite import database

        return database.engine

    def start(self) -> None:
        pass

    def submit(self, mod_id: int, file_id: int | None = None) -> None:
        raise NotImplementedError

    def deliver(self, mod_id: int, verdict: ScanVerdict) -> bool:
        with Session(self.engine) as session:
            return record_verdict(session, mod_id, verdict)

    def shutdown(self, wait: bool = False) -> None:
        pass


class BackgroundScanEngine(ScanEngine):
    """Runs scans on a thread pool: sleep to model engine latency, then write once.

    The sleep happens outside any database session.  On shutdown, scans that
    have not yet written are abandoned.
    """

    def __init__(
        self,
        source: VerdictSource | None = None,
        *,
        mod_delay: float | None = None,
        file_delay: float | None = None,
        workers: int | None = None,
        engine: Engine | None = None,
    ) -> None:
        super().__init__(engine)
        self.source = source or SimulatedVerdictSource()
        self.mod_delay = settings.scan_delay_seconds if mod_delay is None else mod_delay
        self.file_delay = settings.file_scan_delay_seconds if file_delay is None else file_delay
        self.workers = workers or settings.scan_workers
        self._executor: ThreadPoolExecutor | None = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._futures: set[Future[None]] = set()

    def start(self) -> None:
        with self._lock:
            if self._executor is None:
                self._stop.clear()
                self._executor = ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix="scan"
                )

    def submit(self, mod_id: int, file_id: int | None = None) -> None:
        self.start()
        with self._lock:
            assert self._executor is not None
            future = self._executor.submit(self._run, mod_id, file_id)
            self._futures.add(future)
        future.add_done_callback(self._discard)
        logger.debug("Queued scan for mod %d (file %s)", mod_id, file_id)

    def _discard(self, future: Future[None]) -> None:
        with self._lock:
            self._futures.discard(future)

    def _run(self, mod_id: int, file_id: int | None) -> None:
        delay = self.mod_delay if file_id is None else self.file_delay
        if self._stop.wait(delay):
            return
        try:
            verdict = self.source.verdict_for(mod_id, file_id)
            self.deliver(mod_id, verdict)
        except Exception:
            logger.exception("Scan failed for mod %d (file %s)", mod_id, file_id)

    def drain(self, timeout: float | None = None) -> None:
        """Block until every queued scan has finished."""
        with self._lock:
            pending = set(self._futures)
        wait_futures(pending, timeout=timeout)

    def shutdown(self, wait: bool = False) -> None:
        self._stop.set()
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)
            logger.info("Scan engine stopped")


_scan_engine: ScanEngine = BackgroundScanEngine()


def get_scan_engine() -> ScanEngine:
    return _scan_engine


def set_scan_engine(engine: ScanEngine) -> None:
    global _scan_engine
    _scan_engine = engine
