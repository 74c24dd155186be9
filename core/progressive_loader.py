# core/progressive_loader.py

import logging
from typing import Any, Awaitable, Callable

from core.loading_metrics import LoadingMetricsRegistry
from core.loading_session import LoadingSession
from core.loading_strategy import (
    ConstantSpeedProvider,
    EnvironmentSpeedProvider,
    StrategyCatalog,
)
from core.preload_queue import ResourcePreloader

logger = logging.getLogger(__name__)


class ProgressiveLoader:
    """
    Owns the metrics registry, strategy catalog and preload queue.

    Create one per application (or per test) and hand it to call sites
    instead of relying on module-level singletons.
    """

    def __init__(self,
                 metrics: LoadingMetricsRegistry = None,
                 strategies: StrategyCatalog = None,
                 preloader: ResourcePreloader = None):
        self.metrics = metrics or LoadingMetricsRegistry()
        self.strategies = strategies or StrategyCatalog()
        self.preloader = preloader or ResourcePreloader()
        self.strategies.validate()

    @classmethod
    def from_config(cls, config,
                    image_loader: Callable[[str], Awaitable[Any]] = None) -> 'ProgressiveLoader':
        """Build a loader from a PreloaderConfig"""
        if config.connection.effective_type is not None:
            provider = ConstantSpeedProvider(config.connection.effective_type)
        else:
            provider = EnvironmentSpeedProvider(config.connection.environment_variable)

        strategies = StrategyCatalog(provider, config.strategies)
        if config.connection.speed_override:
            strategies.update_connection_speed(config.connection.speed_override)

        logger.info("Progressive loader ready (connection speed: %s)",
                    strategies.connection_speed.value)
        return cls(
            strategies=strategies,
            preloader=ResourcePreloader(image_loader),
        )

    def create_session(self, session_id: str, loading_type: str = 'component') -> LoadingSession:
        return LoadingSession(session_id, loading_type, self.metrics, self.strategies)
