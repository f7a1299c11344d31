"""Temporary SSH deploy key provisioning

Connects CI jobs to a private git host over SSH without persisting
long-lived credentials. A base64-encoded private key is read from an
environment variable, written to ``<ssh_home>/deploy_key`` and referenced
from a generated ``<ssh_home>/config``. ``cleanup`` removes both files and
clears the variable again.

Nothing happens unless the variable is set, so non-deploy builds that
call ``setup``/``cleanup`` unconditionally stay silent.
"""

import base64
import binascii
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, MutableMapping, Optional, Union

from deploy_key_common import ConfigLoader, ProvisionerConfig, ProvisionStatus
from deploy_key_common.types import DEFAULT_ENV, DIR_MODE, FILE_MODE

logger = logging.getLogger(__name__)

ConfigInput = Union[ProvisionerConfig, dict, None]

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


class KeyDecodeError(Exception):
    """Trigger variable does not hold valid base64"""
    pass


def decode_key(value: str, env: str = DEFAULT_ENV) -> bytes:
    """Decode base64 key material from an environment variable value.

    Line wraps and other whitespace are ignored, URL-safe characters are
    accepted and missing padding is restored. An empty value decodes to
    empty bytes. Anything else that is not base64 is rejected rather than
    written out as garbage.

    Raises:
        KeyDecodeError: If the value is not valid base64
    """
    compact = "".join(value.split()).translate(_URLSAFE_TO_STANDARD)
    compact += "=" * (-len(compact) % 4)

    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyDecodeError(f"{env} is not valid base64: {e}")


def render_ssh_config(hosts: list[str], key_file: Path) -> str:
    """Render one ssh client config stanza per host, separated by blank lines"""
    stanzas = [
        f"Host {host}\n"
        f"  IdentityFile {key_file}\n"
        f"  IdentitiesOnly yes\n"
        f"  UserKnownHostsFile=/dev/null\n"
        f"  StrictHostKeyChecking no\n"
        for host in hosts
    ]
    return "\n".join(stanzas)


def _write_private_file(path: Path, data: bytes) -> None:
    """Create or truncate path with owner-only permissions and write data"""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    # O_CREAT mode is ignored for files that already existed
    os.chmod(path, FILE_MODE)


class CredentialProvisioner:
    """Provision and clean up the deploy key described by a config"""

    def __init__(
        self,
        config: ConfigInput = None,
        environ: Optional[MutableMapping[str, str]] = None
    ):
        if config is None:
            config = ProvisionerConfig()
        elif isinstance(config, dict):
            config = ConfigLoader().load_from_dict(config)

        self.config = config
        self.environ = os.environ if environ is None else environ

    def is_active(self) -> bool:
        """Check whether the trigger variable is present"""
        return self.config.env in self.environ

    def setup(self) -> bool:
        """Write the deploy key and ssh config if the trigger variable is set.

        Returns:
            True if credentials were provisioned, False if the trigger
            variable is absent

        Raises:
            KeyDecodeError: If the variable is not valid base64 (no files
                are touched in that case)
            OSError: If the SSH directory or either file cannot be written
        """
        if not self.is_active():
            return False

        logger.info("Detected SSH key for git. Adding SSH config.")

        # Decode first so a bad value never leaves files behind
        key = decode_key(self.environ[self.config.env], self.config.env)

        self._ensure_ssh_dir()

        key_file = self.config.key_file
        _write_private_file(key_file, key)
        logger.debug(f"Wrote deploy key to {key_file}")

        config_file = self.config.config_file
        text = render_ssh_config(self.config.hosts, key_file)
        try:
            _write_private_file(config_file, text.encode())
        except OSError:
            self._remove(key_file)
            raise
        logger.debug(f"Wrote ssh config for {', '.join(self.config.hosts)} to {config_file}")

        return True

    def cleanup(self) -> bool:
        """Remove the files written by setup and clear the trigger variable.

        Deletion is best-effort: a file that is missing or cannot be
        removed is logged and skipped.

        Returns:
            True if cleanup ran, False if the trigger variable is absent
        """
        if not self.is_active():
            return False

        logger.info("Cleaning up SSH config")

        for path in (self.config.config_file, self.config.key_file):
            self._remove(path)

        # Clear sensitive private key from the environment
        del self.environ[self.config.env]

        return True

    def status(self) -> ProvisionStatus:
        """Report trigger variable presence and provisioned files"""
        return ProvisionStatus(
            env=self.config.env,
            env_present=self.is_active(),
            key_file=self.config.key_file,
            key_file_exists=self.config.key_file.exists(),
            config_file=self.config.config_file,
            config_file_exists=self.config.config_file.exists(),
        )

    def _ensure_ssh_dir(self) -> None:
        ssh_dir = self.config.ssh_dir
        try:
            ssh_dir.mkdir(mode=DIR_MODE)
        except FileExistsError:
            # Ignore if it already exists
            return
        # mkdir mode is filtered through the umask
        os.chmod(ssh_dir, DIR_MODE)
        logger.debug(f"Created {ssh_dir}")

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            logger.debug(f"Could not remove {path}: {e}")


def setup(
    config: ConfigInput = None,
    environ: Optional[MutableMapping[str, str]] = None
) -> bool:
    """Generate the deploy key and ssh config if the trigger variable exists"""
    return CredentialProvisioner(config, environ).setup()


def cleanup(
    config: ConfigInput = None,
    environ: Optional[MutableMapping[str, str]] = None
) -> bool:
    """Clean up any SSH config created by setup"""
    return CredentialProvisioner(config, environ).cleanup()


@contextmanager
def provisioned(
    config: ConfigInput = None,
    environ: Optional[MutableMapping[str, str]] = None
) -> Iterator[CredentialProvisioner]:
    """Provision credentials for the duration of a with-block.

    Cleanup always runs, including when setup or the block raises.

    Example:
        with provisioned({"hosts": ["github.com"]}):
            subprocess.run(["git", "clone", "git@github.com:org/private.git"], check=True)
    """
    provisioner = CredentialProvisioner(config, environ)
    try:
        provisioner.setup()
        yield provisioner
    finally:
        provisioner.cleanup()
