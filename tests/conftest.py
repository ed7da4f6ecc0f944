"""Shared pytest fixtures for imagerelay tests."""

import pytest

from imagerelay.config import EngineSettings
from imagerelay.models.descriptors import ProviderDescriptor, ProviderFamily, ProviderOrigin
from imagerelay.models.errors import ProviderError, TransportError
from imagerelay.services.config_source import InMemoryAdminConfigSource
from imagerelay.services.health_tracker import ProviderHealthTracker
from imagerelay.services.orchestrator import ProviderOrchestrator
from imagerelay.services.registry import ProviderRegistry


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider:
    """Mock image provider whose result depends on the descriptor id."""

    def __init__(self, failures: dict[str, ProviderError] | None = None, on_call=None):
        """
        Initialize mock provider.

        Args:
            failures: Provider id -> error to raise; ids not listed succeed
            on_call: Optional hook called with the descriptor before the result
        """
        self.failures = failures or {}
        self.on_call = on_call
        self.calls: list[str] = []

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        self.calls.append(descriptor.id)
        if self.on_call:
            self.on_call(descriptor)
        error = self.failures.get(descriptor.id)
        if error is not None:
            raise error
        return f"image-from-{descriptor.id}".encode()


def admin_entry(name: str, priority: int = 5, provider: str = "grok", **overrides) -> dict:
    entry = {
        "name": name,
        "provider": provider,
        "key": f"key-{name}",
        "url": f"https://{name}.example.com/v1",
        "model": f"{name}-model",
        "enabled": True,
        "priority": priority,
    }
    entry.update(overrides)
    return entry


def make_descriptor(name: str = "test", family: ProviderFamily = ProviderFamily.GEMINI, **overrides) -> ProviderDescriptor:
    values = {
        "id": f"{family.value}-{name}-0",
        "display_name": name,
        "family": family,
        "origin": ProviderOrigin.CONFIG,
        "credential": "test-key",
        "endpoint": "https://api.example.com/v1",
        "model": "test-model",
    }
    values.update(overrides)
    return ProviderDescriptor(**values)


def failing(message: str = "connection reset") -> TransportError:
    return TransportError(message)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def health(clock):
    return ProviderHealthTracker(clock=clock)


@pytest.fixture
def settings():
    return EngineSettings(gemini_api_key="env-key")


@pytest.fixture
def config_source():
    return InMemoryAdminConfigSource()


@pytest.fixture
def registry(health, config_source, settings):
    return ProviderRegistry(health, config_source=config_source, settings=settings)


@pytest.fixture
def scripted_provider():
    return ScriptedProvider()


@pytest.fixture
def orchestrator_factory(registry):
    """Build an orchestrator dispatching every family to one provider."""

    def _build(provider, **kwargs) -> ProviderOrchestrator:
        providers = {family: provider for family in ProviderFamily}
        return ProviderOrchestrator(registry, providers=providers, **kwargs)

    return _build
