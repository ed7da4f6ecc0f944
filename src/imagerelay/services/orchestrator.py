"""Provider orchestrator: ordered fallback across image providers.

One call walks an explicit state machine::

    RANKING -> ATTEMPTING(i) -> SUCCEEDED | ATTEMPTING(i+1) | EXHAUSTED
                             -> CANCELLED (signal observed between attempts)
    RANKING -> NO_PROVIDERS

Attempts are strictly sequential in ranked order and the first success wins.
Per-attempt failures never escape as exceptions; they become trace entries
and health updates, and the call always returns a GenerationOutcome.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from imagerelay.models.descriptors import ProviderDescriptor, ProviderFamily
from imagerelay.models.errors import (
    ErrorCode,
    InvalidProviderConfig,
    NoProvidersConfigured,
    ProviderError,
    ProviderTimeout,
    TransportError,
)
from imagerelay.models.health import (
    HealthRecord,
    HealthSummary,
    ProviderStatus,
    ProviderStatusLabel,
    SystemHealth,
)
from imagerelay.models.metrics import GenerationMetrics
from imagerelay.models.responses import GenerationError, GenerationOutcome
from imagerelay.models.trace import AttemptRecord, AttemptStatus
from imagerelay.providers import default_providers
from imagerelay.providers.base import ImageProvider, truncate_diagnostic, validate_descriptor
from imagerelay.services.health_tracker import ProviderHealthTracker
from imagerelay.services.registry import ProviderRegistry

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 500


class OrchestratorState(str, Enum):
    RANKING = "ranking"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    NO_PROVIDERS = "no_providers"


TERMINAL_STATES = {
    OrchestratorState.SUCCEEDED,
    OrchestratorState.EXHAUSTED,
    OrchestratorState.CANCELLED,
    OrchestratorState.NO_PROVIDERS,
}


@dataclass
class OrchestrationRun:
    """Mutable state of a single orchestration call."""

    prompt: str
    started_at: float
    exclude_provider_ids: set[str] = field(default_factory=set)
    cancel_event: Optional[asyncio.Event] = None
    state: OrchestratorState = OrchestratorState.RANKING
    candidates: list[ProviderDescriptor] = field(default_factory=list)
    index: int = 0
    trace: list[AttemptRecord] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    image_bytes: Optional[bytes] = None
    winner: Optional[ProviderDescriptor] = None
    terminal_message: str = ""

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @property
    def attempt_count(self) -> int:
        return sum(1 for entry in self.trace if entry.status != AttemptStatus.SKIPPED)


class ProviderOrchestrator:
    """Ranks providers, attempts them in order and records every outcome."""

    def __init__(
        self,
        registry: ProviderRegistry,
        health: Optional[ProviderHealthTracker] = None,
        providers: Optional[Mapping[ProviderFamily, ImageProvider]] = None,
        attempt_timeout_seconds: Optional[float] = None,
        metrics_service: Any | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Source of ranked candidates
            health: Health tracker (defaults to the registry's tracker)
            providers: Family to provider dispatch table (defaults to all built-in providers)
            attempt_timeout_seconds: Bound on each attempt (defaults to the registry settings)
            metrics_service: Optional MetricsService for recording metrics
            timer: Monotonic clock used for trace offsets and durations
        """
        self.registry = registry
        self.health = health or registry.health
        self.providers = dict(providers) if providers is not None else default_providers()
        if attempt_timeout_seconds is None:
            attempt_timeout_seconds = registry.settings.attempt_timeout_seconds
        self.attempt_timeout_seconds = attempt_timeout_seconds
        self._metrics_service = metrics_service
        self._timer = timer

    async def generate(
        self,
        prompt: str,
        exclude_provider_ids: Optional[Iterable[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerationOutcome:
        """
        Generate one image with ordered fallback across providers.

        Args:
            prompt: Non-empty text prompt
            exclude_provider_ids: Provider ids that must not be attempted or traced
            cancel_event: External cancellation signal, checked between attempts

        Returns:
            GenerationOutcome carrying the image and winning provider, or the
            aggregated error; the full trace is attached either way
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")

        run = OrchestrationRun(
            prompt=prompt,
            started_at=self._timer(),
            exclude_provider_ids=set(exclude_provider_ids or ()),
            cancel_event=cancel_event,
        )
        logger.info(
            f"🚀 [Orchestrator] Starting generation, prompt length: {len(prompt)}, "
            f"excluded: {len(run.exclude_provider_ids)}"
        )

        handlers = {
            OrchestratorState.RANKING: self._rank,
            OrchestratorState.ATTEMPTING: self._attempt,
        }
        while run.state not in TERMINAL_STATES:
            run.state = await handlers[run.state](run)

        outcome = self._outcome(run)
        if self._metrics_service and hasattr(self._metrics_service, "record"):
            self._metrics_service.record(outcome.metrics, service_name="orchestrator")
        return outcome

    def _offset_ms(self, run: OrchestrationRun) -> int:
        return max(0, int((self._timer() - run.started_at) * 1000))

    async def _rank(self, run: OrchestrationRun) -> OrchestratorState:
        self.health.sweep_expired()
        try:
            run.candidates = await self.registry.rank(run.exclude_provider_ids)
        except NoProvidersConfigured as e:
            run.terminal_message = str(e)
            return OrchestratorState.NO_PROVIDERS
        run.index = 0
        return OrchestratorState.ATTEMPTING

    async def _attempt(self, run: OrchestrationRun) -> OrchestratorState:
        if run.index >= len(run.candidates):
            return OrchestratorState.EXHAUSTED
        if run.cancelled:
            self._skip_remaining(run)
            return OrchestratorState.CANCELLED

        descriptor = run.candidates[run.index]
        start_offset = self._offset_ms(run)
        started = self._timer()
        logger.info(f"🔄 [Orchestrator] Attempt {run.index + 1}/{len(run.candidates)}: {descriptor.log_label()}")

        try:
            image_bytes = await self._invoke(descriptor, run.prompt)
        except ProviderError as e:
            self._record_failure(run, descriptor, e, start_offset, started)
            run.index += 1
            return OrchestratorState.ATTEMPTING
        except Exception as e:
            wrapped = TransportError(f"Unexpected provider error: {truncate_diagnostic(e)}", original_exception=e)
            self._record_failure(run, descriptor, wrapped, start_offset, started)
            run.index += 1
            return OrchestratorState.ATTEMPTING

        self.health.record_success(descriptor.id)
        run.trace.append(
            AttemptRecord(
                provider_id=descriptor.id,
                display_name=descriptor.display_name,
                status=AttemptStatus.SUCCESS,
                start_offset_ms=start_offset,
                duration_ms=int((self._timer() - started) * 1000),
            )
        )
        run.image_bytes = image_bytes
        run.winner = descriptor
        return OrchestratorState.SUCCEEDED

    async def _invoke(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        validate_descriptor(descriptor)
        provider = self.providers.get(descriptor.family)
        if provider is None:
            raise InvalidProviderConfig(f"No provider registered for family {descriptor.family.value!r}")
        try:
            image_bytes = await asyncio.wait_for(
                provider.generate(descriptor, prompt), timeout=self.attempt_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(
                f"{descriptor.display_name} timed out after {self.attempt_timeout_seconds:g}s",
                original_exception=e,
            )
        if not image_bytes:
            raise TransportError(f"{descriptor.display_name} returned no image bytes")
        return image_bytes

    def _record_failure(
        self,
        run: OrchestrationRun,
        descriptor: ProviderDescriptor,
        error: ProviderError,
        start_offset: int,
        started: float,
    ) -> None:
        self.health.record_failure(descriptor.id)
        summary = truncate_diagnostic(error.summary, limit=SUMMARY_LIMIT)
        run.trace.append(
            AttemptRecord(
                provider_id=descriptor.id,
                display_name=descriptor.display_name,
                status=AttemptStatus.FAILED,
                start_offset_ms=start_offset,
                duration_ms=int((self._timer() - started) * 1000),
                error_code=error.error_code,
                error_summary=summary,
            )
        )
        run.failures.append(f"{descriptor.display_name} ({descriptor.id}): {summary}")
        logger.warning(f"❌ [Orchestrator] {descriptor.log_label()} failed: {summary}")

    def _skip_remaining(self, run: OrchestrationRun) -> None:
        offset = self._offset_ms(run)
        for descriptor in run.candidates[run.index:]:
            run.trace.append(
                AttemptRecord(
                    provider_id=descriptor.id,
                    display_name=descriptor.display_name,
                    status=AttemptStatus.SKIPPED,
                    start_offset_ms=offset,
                )
            )
        logger.info(f"🛑 [Orchestrator] Cancelled, skipped {len(run.candidates) - run.index} provider(s)")

    def _outcome(self, run: OrchestrationRun) -> GenerationOutcome:
        metrics = GenerationMetrics(
            duration_ms=self._offset_ms(run),
            attempt_count=run.attempt_count,
            provider_id=run.winner.id if run.winner else None,
            model_used=run.winner.model if run.winner else None,
            timestamp=datetime.now(timezone.utc),
        )

        if run.state == OrchestratorState.SUCCEEDED:
            logger.info(
                f"✅ [Orchestrator] Generated with {run.winner.log_label()} in {metrics.duration_ms}ms, "
                f"attempts: {metrics.attempt_count}"
            )
            return GenerationOutcome(
                success=True,
                image_bytes=run.image_bytes,
                provider_id=run.winner.id,
                provider_name=run.winner.display_name,
                trace=run.trace,
                metrics=metrics,
            )

        if run.state == OrchestratorState.NO_PROVIDERS:
            error = GenerationError(code=ErrorCode.NO_PROVIDERS_CONFIGURED, message=run.terminal_message)
        elif run.state == OrchestratorState.CANCELLED:
            message = f"Cancelled after {run.attempt_count} attempt(s)"
            if run.failures:
                message = f"{message}: " + "; ".join(run.failures)
            error = GenerationError(code=ErrorCode.CANCELLED, message=message)
        else:
            error = GenerationError(
                code=ErrorCode.ALL_PROVIDERS_EXHAUSTED,
                message=f"All {len(run.candidates)} provider(s) failed: " + "; ".join(run.failures),
            )

        logger.error(f"💥 [Orchestrator] Generation failed ({error.code.value}): {error.message}")
        return GenerationOutcome(success=False, trace=run.trace, error=error, metrics=metrics)

    # Operational surface

    def _status(self, descriptor: ProviderDescriptor, record: HealthRecord, now: float) -> ProviderStatus:
        if record.is_disabled(now) or record.consecutive_errors >= self.health.failure_threshold:
            label = ProviderStatusLabel.FAILED
        elif record.consecutive_errors > 0:
            label = ProviderStatusLabel.WARNING
        else:
            label = ProviderStatusLabel.HEALTHY
        return ProviderStatus(
            id=descriptor.id,
            display_name=descriptor.display_name,
            family=descriptor.family,
            origin=descriptor.origin,
            priority=descriptor.priority,
            enabled=descriptor.enabled,
            consecutive_errors=record.consecutive_errors,
            disabled_until=record.disabled_until,
            last_used_at=record.last_used_at,
            status=label,
        )

    async def get_provider_statuses(self) -> list[ProviderStatus]:
        """Every configured provider (including admin-disabled ones) with its health."""
        now = self.health.now()
        descriptors = await self.registry.load_descriptors(include_disabled=True)
        snapshot = self.health.snapshot(now)
        return [
            self._status(descriptor, snapshot.get(descriptor.id, HealthRecord()), now)
            for descriptor in self.registry.order(descriptors, now)
        ]

    async def get_system_health(self) -> SystemHealth:
        statuses = await self.get_provider_statuses()
        now = self.health.now()
        summary = HealthSummary(
            total=len(statuses),
            enabled=sum(1 for s in statuses if s.enabled and s.status != ProviderStatusLabel.FAILED),
            disabled=sum(
                1 for s in statuses
                if not s.enabled or (s.disabled_until is not None and now < s.disabled_until)
            ),
            errors=sum(1 for s in statuses if s.consecutive_errors > 0),
        )
        if summary.enabled == 0:
            overall = "critical"
        elif summary.errors > 0 or summary.disabled > 0:
            overall = "degraded"
        else:
            overall = "healthy"
        logger.info(
            f"🏥 [Orchestrator] System health: {overall} (total {summary.total}, enabled {summary.enabled}, "
            f"disabled {summary.disabled}, errors {summary.errors})"
        )
        return SystemHealth(overall=overall, providers=statuses, summary=summary)

    def reset_provider_health(self, provider_id: str) -> None:
        """Manual recovery: make a provider eligible again immediately."""
        self.health.reset(provider_id)

    def reset_all_provider_health(self) -> None:
        """Manual recovery for every provider; last-used stamps keep their ranking effect."""
        self.health.reset_all()
