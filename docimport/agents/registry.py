"""Provider registry for resolving extraction models to providers.

Providers are registered by name with a factory; a model id is resolved to a provider through the price table,
with a prefix guess for ids the table does not list.
"""

from collections.abc import Callable

from docimport.agents.base import ExtractionProvider
from docimport.core.pricing import PRICE_TABLE

PREFIX_PROVIDERS = (("gemini", "gemini"), ("meta-llama/", "groq"), ("llama", "groq"))


class ProviderRegistry:
    """Registry for extraction providers."""

    def __init__(self, default: str = "gemini") -> None:
        """Initialize an empty registry with the provider name used for unknown models."""
        self.default = default
        self._factories: dict[str, Callable[[], ExtractionProvider]] = {}
        self._instances: dict[str, ExtractionProvider] = {}

    def register(self, name: str, factory: Callable[[], ExtractionProvider]) -> None:
        """Register a provider factory under a given name."""
        self._factories[name] = factory
        self._instances.pop(name, None)

    def get(self, name: str) -> ExtractionProvider:
        """Retrieve a provider by name, building it on first use."""
        if name not in self._instances:
            self._instances[name] = self._factories[name]()
        return self._instances[name]

    def provider_name_for(self, model: str) -> str:
        """Name of the provider that serves a model id."""
        if model in PRICE_TABLE:
            return PRICE_TABLE[model].provider
        for prefix, name in PREFIX_PROVIDERS:
            if model.startswith(prefix):
                return name
        return self.default

    def for_model(self, model: str) -> ExtractionProvider:
        """Retrieve the provider that serves a model id."""
        name = self.provider_name_for(model)
        if name not in self._factories:
            msg = f"No extraction provider registered for model '{model}' (provider '{name}')"
            raise KeyError(msg)
        return self.get(name)
