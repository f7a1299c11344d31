"""Deploy Key Common - Shared configuration and types"""

__version__ = "0.1.0"

from .config import ConfigLoader, ConfigError
from .types import (
    ProvisionerConfig,
    ProvisionStatus,
    DEFAULT_ENV,
    DEFAULT_HOSTS,
)

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "ProvisionerConfig",
    "ProvisionStatus",
    "DEFAULT_ENV",
    "DEFAULT_HOSTS",
]
