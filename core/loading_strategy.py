# core/loading_strategy.py

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)


class ConnectionSpeed(str, Enum):
    SLOW = 'slow'
    MEDIUM = 'medium'
    FAST = 'fast'


class MissingStrategyError(LookupError):
    """No strategy is registered for a loading type, even at medium speed"""


@dataclass(frozen=True)
class LoadingStrategy:
    """
    Tunable loading parameters for one resource type and connection speed.

    threshold is the visible fraction that triggers loading, root_margin the
    prefetch distance in pixels, delays are in milliseconds.
    """
    threshold: float
    root_margin: int
    animation_delay: int
    stagger_delay: Optional[int] = None
    enable_skeleton: Optional[bool] = None
    enable_blur: Optional[bool] = None
    quality: Optional[int] = None

    @property
    def root_margin_css(self) -> str:
        return f"{self.root_margin}px"

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> 'LoadingStrategy':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown strategy fields: {sorted(unknown)}")
        return cls(**data)


DEFAULT_STRATEGIES = {
    'component-slow': LoadingStrategy(
        threshold=0.05, root_margin=20, animation_delay=200,
        stagger_delay=100, enable_skeleton=True, enable_blur=False,
    ),
    'component-medium': LoadingStrategy(
        threshold=0.1, root_margin=50, animation_delay=150,
        stagger_delay=75, enable_skeleton=True, enable_blur=True,
    ),
    'component-fast': LoadingStrategy(
        threshold=0.1, root_margin=100, animation_delay=100,
        stagger_delay=50, enable_skeleton=True, enable_blur=True,
    ),
    'image-slow': LoadingStrategy(
        threshold=0.05, root_margin=20, animation_delay=300,
        enable_blur=True, quality=50,
    ),
    'image-medium': LoadingStrategy(
        threshold=0.1, root_margin=50, animation_delay=200,
        enable_blur=True, quality=75,
    ),
    'image-fast': LoadingStrategy(
        threshold=0.1, root_margin=100, animation_delay=100,
        enable_blur=True, quality=85,
    ),
}


def speed_from_effective_type(effective_type: Optional[str]) -> ConnectionSpeed:
    """Map a network effective-type signal onto a speed class"""
    if effective_type:
        effective_type = effective_type.strip().lower()
    if effective_type in ('slow-2g', '2g'):
        return ConnectionSpeed.SLOW
    if effective_type == '3g':
        return ConnectionSpeed.MEDIUM
    return ConnectionSpeed.FAST


class ConnectionSpeedProvider(ABC):
    """Source of the host's network-condition signal"""

    @abstractmethod
    def get_effective_type(self) -> Optional[str]:
        """Return an effective type such as '2g', '3g', '4g', or None if unknown."""


class ConstantSpeedProvider(ConnectionSpeedProvider):
    """Fixed signal for hosts with no network information"""

    def __init__(self, effective_type: Optional[str] = '4g'):
        self.effective_type = effective_type

    def get_effective_type(self) -> Optional[str]:
        return self.effective_type


class EnvironmentSpeedProvider(ConnectionSpeedProvider):
    """Read the effective type from an environment variable"""

    def __init__(self, variable: str = 'PRELOADER_EFFECTIVE_TYPE'):
        self.variable = variable

    def get_effective_type(self) -> Optional[str]:
        return os.environ.get(self.variable) or None


class StrategyCatalog:
    """
    Loading strategies keyed by "{type}-{speed}".

    Lookups use the current connection speed and fall back to the medium
    entry for the type. A type missing at medium speed is a configuration
    defect and raises MissingStrategyError.
    """

    def __init__(self,
                 speed_provider: ConnectionSpeedProvider = None,
                 strategies: Dict[str, LoadingStrategy] = None):
        self.speed_provider = speed_provider or ConstantSpeedProvider()
        self.strategies: Dict[str, LoadingStrategy] = dict(DEFAULT_STRATEGIES)
        if strategies:
            self.strategies.update(strategies)
        self.connection_speed = ConnectionSpeed.FAST
        self.detect_connection_speed()

    def detect_connection_speed(self) -> ConnectionSpeed:
        """Refresh the speed class from the provider"""
        effective_type = self.speed_provider.get_effective_type()
        self.connection_speed = speed_from_effective_type(effective_type)
        logger.debug("Connection %s -> %s", effective_type, self.connection_speed.value)
        return self.connection_speed

    def update_connection_speed(self, speed: Union[ConnectionSpeed, str]):
        self.connection_speed = ConnectionSpeed(speed)

    def set_custom_strategy(self, key: str, strategy: LoadingStrategy):
        self.strategies[key] = strategy

    def get_strategy(self, loading_type: str) -> LoadingStrategy:
        key = f"{loading_type}-{self.connection_speed.value}"
        strategy = self.strategies.get(key)
        if strategy is None:
            strategy = self.strategies.get(f"{loading_type}-{ConnectionSpeed.MEDIUM.value}")
        if strategy is None:
            raise MissingStrategyError(f"No loading strategy for type '{loading_type}'")
        return strategy

    def validate(self, loading_types: Iterable[str] = ('component', 'image')):
        """Fail fast unless every type is seeded for all speed classes"""
        missing = [
            f"{loading_type}-{speed.value}"
            for loading_type in loading_types
            for speed in ConnectionSpeed
            if f"{loading_type}-{speed.value}" not in self.strategies
        ]
        if missing:
            raise MissingStrategyError(f"Missing loading strategies: {', '.join(missing)}")
