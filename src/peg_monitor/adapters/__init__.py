from __future__ import annotations

from typing import TYPE_CHECKING

from ..domain import ConfigurationError
from .quote_adapters import QUOTE_ADAPTERS, BaseQuoteAdapter

if TYPE_CHECKING:
    from ..settings import PegMonitorSettings


def build_quote_adapters(config: PegMonitorSettings) -> list[BaseQuoteAdapter]:
    """Instantiate the configured quote adapters in priority order.

    Raises:
        ConfigurationError: If a provider is unknown or an enabled provider
            is missing its required credential.
    """
    adapters: list[BaseQuoteAdapter] = []
    for name in config.providers:
        adapter_cls = QUOTE_ADAPTERS.get(name)
        if adapter_cls is None:
            valid = ", ".join(QUOTE_ADAPTERS)
            raise ConfigurationError(
                f"Unknown quote provider '{name}'. Available providers: {valid}"
            )
        adapter = adapter_cls(config)
        if not adapter.has_credentials:
            raise ConfigurationError(
                f"Quote provider '{name}' requires an API key; "
                f"set it or remove '{name}' from providers"
            )
        adapters.append(adapter)
    if not adapters:
        raise ConfigurationError("At least one quote provider must be configured")
    return adapters


__all__ = ["QUOTE_ADAPTERS", "build_quote_adapters"]
