"""Type definitions for deploy key configuration"""

import re
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator


DEFAULT_ENV = "GIT_SSH_KEY"
DEFAULT_HOSTS = ["github.com", "bitbucket.org"]

KEY_FILE_NAME = "deploy_key"
CONFIG_FILE_NAME = "config"

DIR_MODE = 0o700   # rwx------
FILE_MODE = 0o600  # rw-------

ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ProvisionerConfig(BaseModel):
    """Credential provisioner configuration

    Every field is optional; an empty config provisions the default
    hosts from ``GIT_SSH_KEY`` into ``~/.ssh``.
    """
    env: str = Field(
        default=DEFAULT_ENV,
        description="Environment variable holding the base64-encoded private key"
    )
    hosts: list[str] = Field(
        default_factory=lambda: list(DEFAULT_HOSTS),
        description="Hosts to generate ssh config stanzas for, in order"
    )
    ssh_home: Optional[Path] = Field(
        default=None,
        description="Private SSH directory (None = ~/.ssh of the current user)"
    )

    @field_validator('env')
    @classmethod
    def validate_env(cls, v):
        """Ensure env is a usable environment variable name"""
        if not ENV_NAME_PATTERN.match(v):
            raise ValueError(f"Invalid environment variable name: {v!r}")
        return v

    @field_validator('hosts')
    @classmethod
    def validate_hosts(cls, v):
        """Ensure at least one host and no blank or multi-word entries"""
        if not v:
            raise ValueError("At least one host is required")
        for host in v:
            if not host or not host.strip():
                raise ValueError("Host names must not be empty")
            if any(c.isspace() for c in host):
                raise ValueError(f"Host name must not contain whitespace: {host!r}")
        return v

    @property
    def ssh_dir(self) -> Path:
        if self.ssh_home is None:
            return Path.home() / ".ssh"
        return self.ssh_home.expanduser().absolute()

    @property
    def key_file(self) -> Path:
        return self.ssh_dir / KEY_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.ssh_dir / CONFIG_FILE_NAME


class ProvisionStatus(BaseModel):
    """Snapshot of what is currently provisioned on disk"""
    env: str
    env_present: bool
    key_file: Path
    key_file_exists: bool
    config_file: Path
    config_file_exists: bool

    @property
    def provisioned(self) -> bool:
        return self.key_file_exists and self.config_file_exists
