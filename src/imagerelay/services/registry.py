"""Provider registry: resolves configured providers into a ranked candidate list."""

import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from imagerelay.config import EngineSettings
from imagerelay.interfaces import AdminConfigSource
from imagerelay.models.descriptors import (
    DEFAULT_ADMIN_PRIORITY,
    ProviderDescriptor,
    ProviderFamily,
    ProviderOrigin,
)
from imagerelay.models.errors import NoProvidersConfigured
from imagerelay.models.health import HealthRecord
from imagerelay.services.health_tracker import ProviderHealthTracker

logger = logging.getLogger(__name__)

ENV_PROVIDER_ID = "gemini-env"
ENV_PROVIDER_NAME = "Google Gemini"

# Admin config keys, current then legacy
DESCRIPTOR_KEYS = ("provider_descriptors", "api_configs")

FAMILY_ALIASES = {"other": ProviderFamily.CUSTOM}


def parse_family(raw: Any) -> ProviderFamily:
    """Map a stored provider kind onto a ProviderFamily (unknown kinds become custom)."""
    value = str(raw or ProviderFamily.CUSTOM.value).strip().lower()
    if value in FAMILY_ALIASES:
        return FAMILY_ALIASES[value]
    try:
        return ProviderFamily(value)
    except ValueError:
        logger.warning(f"⚠️ [ProviderRegistry] Unknown provider family {value!r}, treating as custom")
        return ProviderFamily.CUSTOM


def parse_priority(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_ADMIN_PRIORITY


def _text(raw: Any) -> str:
    return str(raw).strip() if raw is not None else ""


class ProviderRegistry:
    """Builds descriptors from the environment and the admin config on every call."""

    def __init__(
        self,
        health: ProviderHealthTracker,
        config_source: Optional[AdminConfigSource] = None,
        settings: Optional[EngineSettings] = None,
    ):
        """
        Initialize the registry.

        Args:
            health: Shared health tracker used for ranking and exclusion
            config_source: Admin configuration store (None means no admin providers)
            settings: Engine settings carrying the environment-supplied credential
        """
        self.health = health
        self.config_source = config_source
        self.settings = settings or EngineSettings.from_env()

    def env_descriptor(self) -> Optional[ProviderDescriptor]:
        """The environment-supplied descriptor, if its credential is set."""
        key = self.settings.gemini_api_key.strip()
        if not key:
            return None
        return ProviderDescriptor(
            id=ENV_PROVIDER_ID,
            display_name=ENV_PROVIDER_NAME,
            family=ProviderFamily.GEMINI,
            origin=ProviderOrigin.ENV,
            credential=key,
            endpoint=self.settings.ai_model_url,
            model=self.settings.ai_model_name,
        )

    async def _admin_entries(self) -> list[Any]:
        if self.config_source is None:
            return []
        try:
            config = await self.config_source.get_admin_config()
        except Exception:
            logger.error("❌ [ProviderRegistry] Error loading admin config, using none", exc_info=True)
            return []
        if not config:
            return []
        for key in DESCRIPTOR_KEYS:
            entries = config.get(key)
            if isinstance(entries, list):
                return entries
        return []

    def _admin_descriptor(self, entry: Any, index: int) -> Optional[ProviderDescriptor]:
        if not isinstance(entry, dict):
            logger.warning(f"⚠️ [ProviderRegistry] Skipping non-object admin entry #{index}")
            return None
        name = _text(entry.get("name")) or f"provider-{index}"
        family = parse_family(entry.get("provider") or entry.get("family"))
        try:
            return ProviderDescriptor(
                id=f"{family.value}-{name}-{index}",
                display_name=name,
                family=family,
                origin=ProviderOrigin.CONFIG,
                credential=_text(entry.get("key") or entry.get("api_key")),
                endpoint=_text(entry.get("url") or entry.get("base_url") or entry.get("endpoint")),
                model=_text(entry.get("model")),
                enabled=bool(entry.get("enabled", False)),
                priority=parse_priority(entry.get("priority")),
            )
        except ValidationError as e:
            logger.warning(f"⚠️ [ProviderRegistry] Skipping unreadable admin entry #{index}: {e.error_count()} errors")
            return None

    async def load_descriptors(self, include_disabled: bool = False) -> list[ProviderDescriptor]:
        """
        Build every descriptor from configuration, unranked.

        Admin entries without a credential are dropped. Entries missing endpoint
        or model are kept so the misconfiguration shows up downstream.
        """
        descriptors: list[ProviderDescriptor] = []

        env = self.env_descriptor()
        if env is not None:
            descriptors.append(env)

        for index, entry in enumerate(await self._admin_entries()):
            descriptor = self._admin_descriptor(entry, index)
            if descriptor is None or not descriptor.credential:
                continue
            if not descriptor.enabled and not include_disabled:
                continue
            descriptors.append(descriptor)

        return descriptors

    def sort_key(self, descriptor: ProviderDescriptor, record: HealthRecord) -> tuple:
        return (
            descriptor.priority,
            record.last_used_at or 0.0,
            record.consecutive_errors,
            descriptor.id,
        )

    def order(
        self, descriptors: Iterable[ProviderDescriptor], now: Optional[float] = None
    ) -> list[ProviderDescriptor]:
        """Sort by priority, then least recently used, then fewest errors, then id."""
        snapshot = self.health.snapshot(now)
        return sorted(
            descriptors,
            key=lambda d: self.sort_key(d, snapshot.get(d.id, HealthRecord())),
        )

    async def list_descriptors(self, now: Optional[float] = None) -> list[ProviderDescriptor]:
        """Every enabled descriptor with a credential, in rank order, before exclusion."""
        return self.order(await self.load_descriptors(), now)

    async def rank(
        self,
        exclude_provider_ids: Optional[Iterable[str]] = None,
        now: Optional[float] = None,
    ) -> list[ProviderDescriptor]:
        """
        Produce the candidate list for one orchestration call.

        Args:
            exclude_provider_ids: Ids the caller does not want attempted
            now: Evaluation time in epoch seconds (defaults to the tracker clock)

        Returns:
            Eligible descriptors in attempt order

        Raises:
            NoProvidersConfigured: If no descriptor survives filtering
        """
        now = self.health.now() if now is None else now
        excluded = set(exclude_provider_ids or ())

        candidates = []
        for descriptor in await self.load_descriptors():
            if descriptor.id in excluded:
                continue
            if not self.health.is_available(descriptor.id, now):
                logger.info(f"⏸️ [ProviderRegistry] {descriptor.log_label()} excluded by circuit breaker")
                continue
            candidates.append(descriptor)

        ranked = self.order(candidates, now)
        if not ranked:
            logger.warning("⚠️ [ProviderRegistry] No eligible providers available")
            raise NoProvidersConfigured("No image providers are configured or eligible")

        logger.info(
            f"📋 [ProviderRegistry] {len(ranked)} candidate(s): "
            + ", ".join(f"{d.display_name}(p{d.priority})" for d in ranked)
        )
        return ranked
