"""
Configuration management for remotesplit builds and sibling units.
"""

import os
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Dict, Any, List, Optional, Union

import yaml

from .exceptions import ConfigurationError

DEFAULT_DEPLOY_COMMAND = "docker compose up -d --build"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class SplitConfig:
    """Configuration for a split build and the units it produces."""

    # Build inputs
    entry: str = ""
    split: Union[str, List[str]] = "auto"
    output: str = ".remotesplit"
    threshold: int = 512_000
    worker_name: str = "main-worker"
    build_date: str = field(default_factory=lambda: date.today().isoformat())

    # Sibling networking
    service_host: str = "localhost"
    base_port: int = 50052

    # Protocol
    reference_capacity: int = 1024
    call_timeout: Optional[float] = None

    # Deploy
    deploy_command: str = DEFAULT_DEPLOY_COMMAND
    health_timeout: float = 30.0

    log_level: str = "INFO"

    def __post_init__(self):
        """Override defaults from REMOTESPLIT_* environment variables."""
        self.output = os.getenv("REMOTESPLIT_OUTPUT", self.output)
        self.threshold = int(os.getenv("REMOTESPLIT_THRESHOLD", self.threshold))
        self.worker_name = os.getenv("REMOTESPLIT_WORKER_NAME", self.worker_name)

        self.service_host = os.getenv("REMOTESPLIT_SERVICE_HOST", self.service_host)
        self.base_port = int(os.getenv("REMOTESPLIT_BASE_PORT", self.base_port))

        self.reference_capacity = int(
            os.getenv("REMOTESPLIT_REFERENCE_CAPACITY", self.reference_capacity)
        )
        timeout = os.getenv("REMOTESPLIT_CALL_TIMEOUT")
        if timeout:
            self.call_timeout = float(timeout)

        self.deploy_command = os.getenv("REMOTESPLIT_DEPLOY_COMMAND", self.deploy_command)
        self.health_timeout = float(os.getenv("REMOTESPLIT_HEALTH_TIMEOUT", self.health_timeout))
        self.log_level = os.getenv("REMOTESPLIT_LOG_LEVEL", self.log_level).upper()

        if isinstance(self.split, str) and self.split != "auto":
            self.split = [s.strip() for s in self.split.split(",") if s.strip()]

    def sibling_address(self, index: int) -> str:
        """Address the sibling at position ``index`` of the plan listens on."""
        return f"{self.service_host}:{self.base_port + index + 1}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "SplitConfig":
        """Create configuration from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**config_dict)

    @classmethod
    def from_file(cls, config_path: str) -> "SplitConfig":
        """Load configuration from YAML file."""
        try:
            with open(config_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load configuration {config_path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration {config_path} must be a mapping")
        return cls.from_dict(config_dict)

    def validate(self) -> None:
        """Validate configuration values."""
        if self.threshold <= 0:
            raise ConfigurationError(f"Invalid threshold: {self.threshold}")

        if self.base_port <= 0 or self.base_port >= 65535:
            raise ConfigurationError(f"Invalid base_port: {self.base_port}")

        if self.reference_capacity <= 0:
            raise ConfigurationError(f"Invalid reference_capacity: {self.reference_capacity}")

        if self.call_timeout is not None and self.call_timeout <= 0:
            raise ConfigurationError(f"Invalid call_timeout: {self.call_timeout}")

        if self.health_timeout <= 0:
            raise ConfigurationError(f"Invalid health_timeout: {self.health_timeout}")

        if not self.worker_name:
            raise ConfigurationError("worker_name must not be empty")

        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
