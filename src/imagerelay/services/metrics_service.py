"""Metrics service for tracking orchestration metrics across calls."""

import logging
from typing import Any

from imagerelay.models.metrics import GenerationMetrics

logger = logging.getLogger(__name__)


class MetricsService:
    """In-memory aggregation of generation metrics."""

    def __init__(self):
        self._metrics: list[GenerationMetrics] = []

    def record(self, metrics: GenerationMetrics, service_name: str | None = None) -> None:
        """
        Record a generation metrics object.

        Args:
            metrics: The metrics to record
            service_name: Optional service name for categorization
        """
        self._metrics.append(metrics)
        logger.debug(f"📊 [MetricsService] Recorded metrics for {service_name or 'unknown'}: "
                     f"duration={metrics.duration_ms}ms, attempts={metrics.attempt_count}, "
                     f"provider={metrics.provider_id or '-'}")

    def get_all(self) -> list[GenerationMetrics]:
        return self._metrics.copy()

    def clear(self) -> None:
        self._metrics.clear()

    def summary(self) -> dict[str, Any]:
        """Counts, durations and per-provider success tallies."""
        if not self._metrics:
            return {
                "count": 0,
                "succeeded": 0,
                "total_duration_ms": 0,
                "avg_duration_ms": 0,
                "avg_attempts": 0,
                "by_provider": {},
            }

        total_duration = sum(m.duration_ms for m in self._metrics)
        total_attempts = sum(m.attempt_count for m in self._metrics)
        by_provider: dict[str, int] = {}
        for m in self._metrics:
            if m.provider_id:
                by_provider[m.provider_id] = by_provider.get(m.provider_id, 0) + 1

        return {
            "count": len(self._metrics),
            "succeeded": sum(by_provider.values()),
            "total_duration_ms": total_duration,
            "avg_duration_ms": total_duration / len(self._metrics),
            "avg_attempts": total_attempts / len(self._metrics),
            "by_provider": by_provider,
        }
