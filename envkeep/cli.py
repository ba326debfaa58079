"""
envkeep command line.

``eval "$(envkeep)"`` runs the interactive session and applies the chosen
variables to the calling shell. Everything except the shell commands is
written to stderr.
"""
import sys
import logging
from dataclasses import dataclass, field
from typing import Optional

import click

from .exceptions import EnvkeepError, NoEntries
from .interactive import InteractiveDriver
from .prompt import Prompter
from .restore import restore
from .session import Session
from .version import __title__, __version__
from .vault.config import VaultConfig
from .vault.key_rotation import rotate_vault
from .vault.keychain import Keychain, SystemKeychain
from .vault.modes import decrypt_vault, encrypt_vault
from .vault.storage import LocalStorage, Storage

logger = logging.getLogger("envkeep.cli")

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass
class Context:
    """Collaborators shared by every command."""

    config: VaultConfig
    storage: Storage = field(default_factory=lambda: LocalStorage(dir_mode=0o700, file_mode=0o600))
    keychain: Keychain = field(default_factory=SystemKeychain)
    prompter: Prompter = field(default_factory=Prompter)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def emit(output: str) -> None:
    """Write shell commands to stdout."""
    if output:
        click.echo(output)


@click.group(invoke_without_command=True)
@click.option(
    "-f", "--variables-file", type=click.Path(dir_okay=False),
    help="Vault file (default: $ENVKEEP_FILE or ~/.envkeep/variables.json).",
)
@click.option(
    "--config-file", type=click.Path(dir_okay=False),
    help="Selection file (default: $ENVKEEP_CONFIG or ~/.envkeep/config.json).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages to stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    variables_file: Optional[str],
    config_file: Optional[str],
    verbose: bool,
):
    """Pick environment variable variants and apply them to your shell.

    Without a command, opens the interactive list. Use it as:

        eval "$(envkeep)"
    """
    setup_logging(verbose)
    if ctx.obj is None:
        ctx.obj = Context(config=VaultConfig.from_env(variables_file, config_file))
    if ctx.invoked_subcommand is None:
        _run(_interactive, ctx.obj)


def _run(command, obj: Context):
    """Call ``command`` and translate envkeep errors into exit codes."""
    try:
        return command(obj)
    except NoEntries as err:
        click.echo(str(err), err=True)
        raise click.exceptions.Exit(0) from err
    except EnvkeepError as err:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(err)) from err


def _interactive(obj: Context) -> None:
    session = Session.open(obj.config, obj.storage, obj.prompter, obj.keychain)
    emit(InteractiveDriver(session).run())


@cli.command()
@click.pass_obj
def encrypt(obj: Context):
    """Encrypt every variable with a password or a keychain key."""
    _run(
        lambda o: encrypt_vault(o.storage, o.config.variables_file, o.prompter, o.keychain),
        obj,
    )


@cli.command()
@click.pass_obj
def decrypt(obj: Context):
    """Store every variable in plaintext again."""
    _run(
        lambda o: decrypt_vault(o.storage, o.config.variables_file, o.prompter, o.keychain),
        obj,
    )


@cli.command()
@click.pass_obj
def rotate(obj: Context):
    """Re-encrypt every variable with a new password or keychain key."""
    _run(
        lambda o: rotate_vault(o.storage, o.config.variables_file, o.prompter, o.keychain),
        obj,
    )


@cli.command(name="restore")
@click.pass_obj
def restore_command(obj: Context):
    """Print export commands for the last applied selection."""
    emit(_run(
        lambda o: restore(o.config, o.storage, o.prompter, o.keychain),
        obj,
    ))


@cli.command()
def version():
    """Show the envkeep version."""
    click.echo(f"{__title__} {__version__}")


def main() -> None:
    cli(prog_name=__title__)
