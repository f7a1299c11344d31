"""Configuration loading and validation"""

from pathlib import Path
from typing import Union
import yaml
from pydantic import ValidationError

from .types import ProvisionerConfig


class ConfigError(Exception):
    """Configuration loading or validation error"""
    pass


class ConfigLoader:
    """Load and validate deploy key configuration files"""

    def load(self, config_path: Union[str, Path]) -> ProvisionerConfig:
        """Load configuration from YAML file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")

        # An empty file means "all defaults"
        if data is None:
            data = {}

        return self.load_from_dict(data, base_path=config_path.parent)

    def load_from_dict(self, data: dict, base_path: Path = None) -> ProvisionerConfig:
        """Load configuration from dictionary"""
        if not isinstance(data, dict):
            raise ConfigError("Config must be a mapping")

        # Resolve a relative ssh_home against the config file location
        if base_path and data.get("ssh_home"):
            ssh_home = Path(data["ssh_home"]).expanduser()
            if not ssh_home.is_absolute():
                data = {**data, "ssh_home": str(base_path / ssh_home)}

        # Validate with pydantic
        try:
            return ProvisionerConfig(**data)
        except ValidationError as e:
            # Convert pydantic errors to ConfigError
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"{field}: {msg}")
            raise ConfigError("Validation errors:\n" + "\n".join(errors))
