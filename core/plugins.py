"""Lookup table from ecosystem name to analyzer and fixer implementations."""

from collections.abc import Callable

from .analyze_node import NodeAnalyzer
from .base import Analyzer, Fixer
from .config import Settings
from .fix_node import NodeFixer
from .registry import RegistryClient

AnalyzerFactory = Callable[[RegistryClient, Settings], Analyzer]
FixerFactory = Callable[[RegistryClient, Settings], Fixer]


class PluginRegistry:
    """Maps ecosystem names to factories.

    Factories receive the registry client for the current run so the
    analyzer and fixer share one metadata cache.
    """

    def __init__(self):
        self._analyzers: dict[str, AnalyzerFactory] = {}
        self._fixers: dict[str, FixerFactory] = {}

    def register(self, ecosystem: str, analyzer: AnalyzerFactory, fixer: FixerFactory) -> None:
        self._analyzers[ecosystem] = analyzer
        self._fixers[ecosystem] = fixer

    @property
    def ecosystems(self) -> list[str]:
        return list(self._analyzers)

    def analyzer(self, ecosystem: str, registry: RegistryClient, settings: Settings) -> Analyzer:
        try:
            factory = self._analyzers[ecosystem]
        except KeyError:
            raise KeyError(f"Unsupported ecosystem: {ecosystem}") from None
        return factory(registry, settings)

    def fixer(self, ecosystem: str, registry: RegistryClient, settings: Settings) -> Fixer:
        try:
            factory = self._fixers[ecosystem]
        except KeyError:
            raise KeyError(f"Unsupported ecosystem: {ecosystem}") from None
        return factory(registry, settings)


def default_registry() -> PluginRegistry:
    plugins = PluginRegistry()
    plugins.register(
        "node",
        analyzer=lambda registry, settings: NodeAnalyzer(registry=registry, settings=settings),
        fixer=lambda registry, settings: NodeFixer(registry=registry, settings=settings),
    )
    return plugins
