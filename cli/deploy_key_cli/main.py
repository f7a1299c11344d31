"""CLI command definitions"""

import logging
import os
import subprocess
import sys
import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from deploy_key_common import ConfigLoader, ConfigError, ProvisionerConfig
from deploy_key_provisioner import CredentialProvisioner, KeyDecodeError, render_ssh_config


console = Console()

logger = logging.getLogger(__name__)


def _print_error(e: Exception):
    console.print(f"[red]Error: {escape(str(e))}[/red]")


def _fail(e: Exception):
    _print_error(e)
    sys.exit(1)


def build_config(config_path, env, hosts, ssh_home) -> ProvisionerConfig:
    """Merge a YAML config file with command line overrides"""
    loader = ConfigLoader()

    data = {}
    if config_path:
        data = loader.load(config_path).model_dump(exclude_unset=True)

    if env:
        data["env"] = env
    if hosts:
        data["hosts"] = list(hosts)
    if ssh_home:
        data["ssh_home"] = ssh_home

    return loader.load_from_dict(data)


@click.group()
@click.option('--config', '-c', 'config_path', envvar='DEPLOY_KEY_CONFIG',
              type=click.Path(dir_okay=False), help='YAML config file')
@click.option('--env', help='Environment variable holding the base64 private key')
@click.option('--host', 'hosts', multiple=True, help='Host to configure (repeatable)')
@click.option('--ssh-home', type=click.Path(file_okay=False), help='SSH directory (default: ~/.ssh)')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, config_path, env, hosts, ssh_home, verbose):
    """Deploy Key - temporary SSH credentials for CI deploys"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, force=True)

    try:
        ctx.obj = build_config(config_path, env, hosts, ssh_home)
    except ConfigError as e:
        _fail(e)


@cli.command()
@click.pass_obj
def setup(config):
    """Install the deploy key and ssh config"""
    provisioner = CredentialProvisioner(config)

    try:
        if provisioner.setup():
            console.print(f"[green]✓ Deploy key installed for {', '.join(config.hosts)}[/green]")
        else:
            logger.debug(f"{config.env} is not set, nothing to do")
    except (KeyDecodeError, OSError) as e:
        _fail(e)


@cli.command()
@click.pass_obj
def cleanup(config):
    """Remove the deploy key and ssh config"""
    provisioner = CredentialProvisioner(config)

    if provisioner.cleanup():
        console.print("[green]✓ Deploy key removed[/green]")
    else:
        logger.debug(f"{config.env} is not set, nothing to do")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument('command', nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_obj
def run(config, command):
    """Run COMMAND with the deploy key installed, then clean up

    The key is removed afterwards even if COMMAND fails, and the exit
    status of COMMAND is passed through.

    Examples:
        deploy-key run -- npm install
        deploy-key --host gitlab.example.com run -- git clone git@gitlab.example.com:org/app.git
    """
    provisioner = CredentialProvisioner(config)

    try:
        provisioner.setup()

        # The child reads the key from disk, not from the environment
        child_env = dict(os.environ)
        child_env.pop(config.env, None)

        result = subprocess.run(list(command), env=child_env)
        returncode = result.returncode
    except (KeyDecodeError, OSError) as e:
        _print_error(e)
        returncode = 1
    finally:
        provisioner.cleanup()

    sys.exit(returncode)


@cli.command()
@click.pass_obj
def status(config):
    """Show what is currently provisioned"""
    info = CredentialProvisioner(config).status()

    table = Table(title="Deploy Key")
    table.add_column("ITEM")
    table.add_column("PATH")
    table.add_column("PRESENT")

    def mark(present: bool) -> str:
        return "[green]yes[/green]" if present else "[yellow]no[/yellow]"

    table.add_row("env", info.env, mark(info.env_present))
    table.add_row("key", str(info.key_file), mark(info.key_file_exists))
    table.add_row("config", str(info.config_file), mark(info.config_file_exists))

    console.print(table)


@cli.command('show-config')
@click.pass_obj
def show_config(config):
    """Print the ssh config that setup would write"""
    click.echo(render_ssh_config(config.hosts, config.key_file), nl=False)


if __name__ == "__main__":
    cli()
