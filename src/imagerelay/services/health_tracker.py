"""Process-wide, in-memory health bookkeeping for image providers.

State is keyed by descriptor id and lives only as long as the process.
Every read-modify-write of a record happens under one lock scoped to the
health map, so concurrent orchestration calls never lose an update.

Circuit breaking works on two horizons:

- Short cooldown: reaching the failure threshold disables the provider for
  ``cooldown_seconds``. When the window elapses the provider is half-open:
  it is eligible again with its error count lowered to ``threshold - 1``,
  so a single further failure trips it straight back.
- Forgiveness sweep: once the last failure is older than
  ``forgiveness_seconds`` the error count is reset to zero.
"""

import logging
import threading
import time
from typing import Callable, Optional

from imagerelay.models.health import HealthRecord

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_COOLDOWN_SECONDS = 60.0
DEFAULT_FORGIVENESS_SECONDS = 30 * 60.0


class ProviderHealthTracker:
    """Thread-safe map of provider id to HealthRecord."""

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        forgiveness_seconds: float = DEFAULT_FORGIVENESS_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the tracker.

        Args:
            failure_threshold: Consecutive failures that trigger a temporary disable
            cooldown_seconds: Length of the temporary disable window
            forgiveness_seconds: Idle time after the last failure before errors are reset
            clock: Returns the current time in epoch seconds
        """
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.forgiveness_seconds = forgiveness_seconds
        self._clock = clock
        self._records: dict[str, HealthRecord] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def _record(self, provider_id: str, now: float) -> HealthRecord:
        """Fetch or create a record and apply cooldown expiry. Caller holds the lock."""
        record = self._records.get(provider_id)
        if record is None:
            record = HealthRecord()
            self._records[provider_id] = record
        elif record.disabled_until is not None and now >= record.disabled_until:
            record.disabled_until = None
            record.consecutive_errors = min(record.consecutive_errors, self.failure_threshold - 1)
            logger.info(f"🔓 [HealthTracker] Cooldown elapsed for {provider_id}, provider is half-open")
        return record

    def record_success(self, provider_id: str, now: Optional[float] = None) -> HealthRecord:
        """Reset the error count, clear any disable and stamp the last use."""
        now = self.now() if now is None else now
        with self._lock:
            record = self._record(provider_id, now)
            record.consecutive_errors = 0
            record.disabled_until = None
            record.last_used_at = now
            return record.model_copy()

    def record_failure(self, provider_id: str, now: Optional[float] = None) -> HealthRecord:
        """Count a failure; tripping the threshold disables the provider atomically."""
        now = self.now() if now is None else now
        with self._lock:
            record = self._record(provider_id, now)
            record.consecutive_errors += 1
            record.last_used_at = now
            record.last_failure_at = now
            if record.consecutive_errors >= self.failure_threshold:
                record.disabled_until = now + self.cooldown_seconds
                logger.warning(
                    f"⛔ [HealthTracker] {provider_id} disabled for {self.cooldown_seconds:.0f}s "
                    f"after {record.consecutive_errors} consecutive errors"
                )
            else:
                logger.info(f"⚠️ [HealthTracker] {provider_id} failed, error count: {record.consecutive_errors}")
            return record.model_copy()

    def sweep_expired(self, now: Optional[float] = None) -> list[str]:
        """
        Forgive providers whose last failure is older than the forgiveness window.

        Returns:
            Ids of the records that were reset
        """
        now = self.now() if now is None else now
        forgiven: list[str] = []
        with self._lock:
            for provider_id in list(self._records):
                record = self._record(provider_id, now)
                if record.consecutive_errors == 0 or record.last_failure_at is None:
                    continue
                if now - record.last_failure_at > self.forgiveness_seconds:
                    record.consecutive_errors = 0
                    record.disabled_until = None
                    forgiven.append(provider_id)
        for provider_id in forgiven:
            logger.info(f"🧹 [HealthTracker] Auto-reset error count for {provider_id}")
        return forgiven

    def reset(self, provider_id: str) -> None:
        """Administrative override: zero the error count and clear any disable."""
        with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                return
            record.consecutive_errors = 0
            record.disabled_until = None
        logger.info(f"🔄 [HealthTracker] Reset health for {provider_id}")

    def reset_all(self) -> None:
        with self._lock:
            for record in self._records.values():
                record.consecutive_errors = 0
                record.disabled_until = None
        logger.info("🔄 [HealthTracker] Reset health for all providers")

    def get(self, provider_id: str, now: Optional[float] = None) -> HealthRecord:
        """Return a copy of the record (a fresh record for unknown ids)."""
        now = self.now() if now is None else now
        with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                return HealthRecord()
            return self._record(provider_id, now).model_copy()

    def snapshot(self, now: Optional[float] = None) -> dict[str, HealthRecord]:
        """Copies of every known record, consistent at one instant."""
        now = self.now() if now is None else now
        with self._lock:
            return {pid: self._record(pid, now).model_copy() for pid in list(self._records)}

    def is_available(self, provider_id: str, now: Optional[float] = None) -> bool:
        """Whether the provider may be ranked right now."""
        now = self.now() if now is None else now
        record = self.get(provider_id, now)
        return not record.is_disabled(now) and record.consecutive_errors < self.failure_threshold
