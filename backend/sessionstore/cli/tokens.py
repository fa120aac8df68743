"""Flask CLI commands for inspecting and revoking refresh sessions."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from sessionstore.core.extensions import get_session_service, get_token_repository
from sessionstore.infra.memory.memory_token_repository import MemoryTokenRepository
from sessionstore.services._shared.errors import StorageError
from sessionstore.services._shared.ports import session_key

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for the token store when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("sessionstore").setLevel(level)
    LOGGER.setLevel(level)


@click.group("tokens")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for the token store.")
def tokens_cli(verbose: bool) -> None:
    """Refresh-session maintenance commands."""
    _configure_logging(verbose)


@tokens_cli.command("sessions")
@click.argument("user_id")
@with_appcontext
def sessions_command(user_id: str) -> None:
    """List the active refresh tokens of USER_ID."""
    try:
        tokens = get_session_service().active_sessions(user_id)
        ttl = get_token_repository().remaining_ttl(session_key(user_id))
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc
    if not tokens:
        click.echo(f"No active sessions for user {user_id}.")
        return
    click.echo(f"{len(tokens)} active session(s) for user {user_id}, group expires in {ttl}s:")
    for token in tokens:
        click.echo(f"  {token}")


@tokens_cli.command("revoke-all")
@click.argument("user_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@with_appcontext
def revoke_all_command(user_id: str, yes: bool) -> None:
    """Revoke every session of USER_ID."""
    if not yes:
        click.confirm(f"Revoke every session of user {user_id}?", abort=True)
    try:
        count = get_session_service().revoke_all(user_id)
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Revoked {count} session(s) for user {user_id}.")


@tokens_cli.command("cleanup")
@click.argument("user_id")
@with_appcontext
def cleanup_command(user_id: str) -> None:
    """Prune already revoked tokens from the session group of USER_ID."""
    pruned = get_token_repository().cleanup_expired_tokens(user_id)
    click.echo(f"Pruned {pruned} revoked token(s) for user {user_id}.")


@tokens_cli.command("sweep")
@with_appcontext
def sweep_command() -> None:
    """Run one expiry sweep over the in-process store."""
    repository = get_token_repository()
    if not isinstance(repository, MemoryTokenRepository):
        click.echo("The shared backend expires keys natively; nothing to sweep.")
        return
    evicted = repository.sweeper.sweep()
    click.echo(f"Evicted {evicted} expired entr{'y' if evicted == 1 else 'ies'}.")
