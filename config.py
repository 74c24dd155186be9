from dataclasses import dataclass, field
from typing import Dict, Optional
import yaml
from pathlib import Path

from core.loading_strategy import ConnectionSpeed, LoadingStrategy
from core.preload_queue import PreloadPriority


@dataclass
class ConnectionConfig:
    """Configuration for connection speed detection"""
    effective_type: Optional[str] = None  # e.g. 2g, 3g, 4g; None reads the environment
    environment_variable: str = "PRELOADER_EFFECTIVE_TYPE"
    speed_override: Optional[str] = None  # Options: slow, medium, fast


@dataclass
class QueueConfig:
    """Configuration for the preload queue"""
    default_priority: str = "medium"  # Options: high, medium, low


@dataclass
class MetricsConfig:
    """Configuration for loading metrics"""
    export_path: Optional[str] = None


@dataclass
class PreloaderConfig:
    """Preloader-wide configuration"""
    log_level: str = "INFO"
    log_dir: str = "logs"

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    # Custom strategies keyed by "{type}-{speed}"
    strategies: Dict[str, LoadingStrategy] = field(default_factory=dict)

    def validate(self):
        """Raise ValueError for unusable settings"""
        PreloadPriority(self.queue.default_priority)
        if self.connection.speed_override is not None:
            ConnectionSpeed(self.connection.speed_override)
        for key in self.strategies:
            loading_type, _, speed = key.rpartition('-')
            if not loading_type:
                raise ValueError(f"Strategy key must look like 'type-speed': {key}")
            ConnectionSpeed(speed)

    def save(self, path: str = "preloader.yaml"):
        """Save configuration to YAML file"""
        config_dict = {
            'log_level': self.log_level,
            'log_dir': self.log_dir,
            'connection': {
                'effective_type': self.connection.effective_type,
                'environment_variable': self.connection.environment_variable,
                'speed_override': self.connection.speed_override
            },
            'queue': {
                'default_priority': self.queue.default_priority
            },
            'metrics': {
                'export_path': self.metrics.export_path
            },
            'strategies': {
                key: strategy.to_dict()
                for key, strategy in self.strategies.items()
            }
        }

        with open(path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, path: str = "preloader.yaml") -> 'PreloaderConfig':
        """Load configuration from YAML file"""
        if not Path(path).exists():
            return cls()  # Return default config

        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        config = cls()

        config.log_level = config_dict.get('log_level', config.log_level)
        config.log_dir = config_dict.get('log_dir', config.log_dir)

        if 'connection' in config_dict:
            conn = config_dict['connection'] or {}
            config.connection = ConnectionConfig(
                effective_type=conn.get('effective_type', config.connection.effective_type),
                environment_variable=conn.get('environment_variable', config.connection.environment_variable),
                speed_override=conn.get('speed_override', config.connection.speed_override)
            )

        if 'queue' in config_dict:
            q = config_dict['queue'] or {}
            config.queue = QueueConfig(
                default_priority=q.get('default_priority', config.queue.default_priority)
            )

        if 'metrics' in config_dict:
            m = config_dict['metrics'] or {}
            config.metrics = MetricsConfig(
                export_path=m.get('export_path', config.metrics.export_path)
            )

        for key, values in (config_dict.get('strategies') or {}).items():
            config.strategies[key] = LoadingStrategy.from_dict(values)

        config.validate()
        return config
