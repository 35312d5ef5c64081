"""
Attack Recorder

Batches detected-attack records in memory and hands them to an AttackStore
without ever blocking or failing the request that produced them.

Flush triggers:
- the buffer reaches capacity (the swap happens inside record(), the write
  is scheduled on the running event loop; with no loop running only the
  newest capacity records are kept)
- the periodic timer started by start() fires
- stop() performs a final best-effort flush on shutdown

The buffer swap is done under a lock held only for the swap itself: records
appended while a batch is being written land in the fresh buffer. Nothing
here is held across I/O.
"""

import asyncio
import contextlib
import logging
import threading
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from ..telemetry.store import AttackStore, MemoryAttackStore
from .risk import RiskLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectedAttack:
    """A high-risk request, as kept for later analysis."""

    input_snippet: str
    threats: list[str]
    categories: list[str]
    risk_level: RiskLevel
    context: str
    llm_verified: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.label
        data["timestamp"] = self.timestamp.isoformat()
        return data


class AttackRecorder:
    """
    Size- and time-triggered batching writer for DetectedAttack records.

    State: collecting -> flushing -> collecting. record() is safe to call from
    any thread or task; flush() and the timer run on the event loop.
    """

    def __init__(
        self,
        store: AttackStore | None = None,
        capacity: int = 20,
        flush_interval_seconds: float = 60.0,
        snippet_max_chars: int = 2000,
        enabled: bool = True,
    ):
        """
        Initialize the recorder.

        Args:
            store: Destination for flushed batches (in-memory store if None)
            capacity: Buffer size that triggers a flush
            flush_interval_seconds: Period of the background flush
            snippet_max_chars: Input characters kept per record
            enabled: When False, record() is a no-op
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.store = store or MemoryAttackStore()
        self.capacity = capacity
        self.flush_interval_seconds = flush_interval_seconds
        self.snippet_max_chars = snippet_max_chars
        self.enabled = enabled

        self._lock = threading.Lock()
        self._buffer: list[DetectedAttack] = []
        # Batches swapped out while no event loop was running
        self._unsent: list[DetectedAttack] = []
        self._inflight: set[asyncio.Task[int]] = set()
        self._timer_task: asyncio.Task[None] | None = None

        self._stats = {"recorded": 0, "flushes": 0, "persisted": 0, "dropped": 0}

    @property
    def buffered(self) -> int:
        """Records waiting for the next flush."""
        with self._lock:
            return len(self._buffer) + len(self._unsent)

    @property
    def flush_count(self) -> int:
        """Number of non-empty batches handed to the store so far."""
        return self._stats["flushes"]

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats,
            "buffered": self.buffered,
            "capacity": self.capacity,
            "store": self.store.name,
            "timer_running": self.running,
        }

    def record(self, attack: DetectedAttack) -> None:
        """
        Append an attack to the buffer. Never raises.

        At capacity the buffer is swapped out and written in the background.
        """
        if not self.enabled:
            return

        try:
            if len(attack.input_snippet) > self.snippet_max_chars:
                attack = replace(attack, input_snippet=attack.input_snippet[: self.snippet_max_chars])

            with self._lock:
                self._buffer.append(attack)
                self._stats["recorded"] += 1
                if len(self._buffer) + len(self._unsent) < self.capacity:
                    return
                batch = self._swap_locked()

            self._schedule(batch)
        except Exception as e:
            logger.debug(f"Failed to record attack: {e}", extra={"error": str(e)})

    def _swap_locked(self) -> list[DetectedAttack]:
        """Take the current contents; caller holds the lock."""
        batch = self._unsent + self._buffer
        self._buffer = []
        self._unsent = []
        return batch

    def _schedule(self, batch: list[DetectedAttack]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread: keep the newest records for the next flush()
            with self._lock:
                pending = batch + self._unsent
                overflow = len(pending) - self.capacity
                if overflow > 0:
                    self._stats["dropped"] += overflow
                    pending = pending[overflow:]
                self._unsent = pending
            if overflow > 0:
                logger.debug(
                    "Attack backlog over capacity without an event loop",
                    extra={"dropped": overflow, "capacity": self.capacity},
                )
            return

        self._stats["flushes"] += 1
        task = loop.create_task(self._persist(batch))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _persist(self, batch: list[DetectedAttack]) -> int:
        if not batch:
            return 0

        try:
            written = await self.store.insert_many(batch)
        except Exception as e:
            self._stats["dropped"] += len(batch)
            logger.debug(
                f"Failed to persist attack batch: {e}",
                extra={"batch_size": len(batch), "store": self.store.name, "error": str(e)},
            )
            return 0

        self._stats["persisted"] += written
        logger.debug("Flushed attack batch", extra={"batch_size": written, "store": self.store.name})
        return written

    async def flush(self) -> int:
        """
        Swap the buffer and persist the captured batch.

        Returns:
            Number of records written (0 when empty or on store failure)
        """
        with self._lock:
            batch = self._swap_locked()
        if batch:
            self._stats["flushes"] += 1
        return await self._persist(batch)

    async def wait_idle(self) -> None:
        """Wait for batches scheduled by record() to finish writing."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_seconds)
            await self.flush()

    def start(self) -> None:
        """Start the periodic flush on the running event loop (idempotent)."""
        if self.running:
            return
        self._timer_task = asyncio.get_running_loop().create_task(self._run_timer())
        logger.debug(
            "Attack recorder timer started",
            extra={"flush_interval_seconds": self.flush_interval_seconds, "capacity": self.capacity},
        )

    async def stop(self, close_store: bool = True) -> None:
        """Cancel the timer, then make a best-effort final flush."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer_task
            self._timer_task = None

        await self.wait_idle()
        await self.flush()

        if close_store:
            try:
                await self.store.close()
            except Exception as e:
                logger.debug(f"Error closing attack store: {e}", extra={"error": str(e)})


# Global recorder instance (singleton)
_recorder: AttackRecorder | None = None


def get_attack_recorder() -> AttackRecorder:
    """
    Get the process-wide attack recorder, building it from configuration on
    first use.
    """
    global _recorder

    if _recorder is None:
        from ..config import get_config
        from ..telemetry.store import create_attack_store

        config = get_config().recorder
        _recorder = AttackRecorder(
            store=create_attack_store(config),
            capacity=config.capacity,
            flush_interval_seconds=config.flush_interval_seconds,
            snippet_max_chars=config.snippet_max_chars,
            enabled=config.enabled,
        )

    return _recorder


def set_attack_recorder(recorder: AttackRecorder | None) -> None:
    """Replace the process-wide recorder (None resets it)."""
    global _recorder
    _recorder = recorder
