"""Deploy Key Provisioner - temporary SSH credentials for CI deploys"""

__version__ = "0.1.0"

from .provisioner import (
    CredentialProvisioner,
    KeyDecodeError,
    cleanup,
    decode_key,
    provisioned,
    render_ssh_config,
    setup,
)

__all__ = [
    "CredentialProvisioner",
    "KeyDecodeError",
    "cleanup",
    "decode_key",
    "provisioned",
    "render_ssh_config",
    "setup",
]
