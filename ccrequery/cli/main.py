"""Command line interface for ccrequery.

Provides configuration inspection and a connection-stability check that
evaluates the requery gate against a set of connection message counts.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.table import Table

from ccrequery import __version__
from ccrequery.cli.config_commands import config as config_group
from ccrequery.config.config import ConfigManager
from ccrequery.models import LogLevel
from ccrequery.requery.adapters import MessageCountProbe
from ccrequery.requery.stability import ConnectionStabilityGate
from ccrequery.utils.exceptions import ConfigurationError
from ccrequery.utils.logging_config import LoggingContext, setup_logging

logger = logging.getLogger(__name__)


def _parse_counts(raw: str) -> list[int]:
    try:
        counts = [int(item) for item in raw.split(",") if item.strip()]
    except ValueError:
        msg = f"Message counts must be comma-separated integers: {raw!r}"
        raise click.BadParameter(msg) from None
    if any(count < 0 for count in counts):
        msg = "Message counts cannot be negative"
        raise click.BadParameter(msg)
    return counts


@click.group()
@click.version_option(__version__, prog_name="ccrequery")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option("--verbose", "-v", count=True, help="Increase verbosity (-v: info, -vv: debug)")
@click.pass_context
def cli(ctx, config, verbose):
    """ccrequery - requery scheduling for stalled downloads."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbosity"] = verbose


def _context_manager(ctx: click.Context) -> ConfigManager:
    try:
        manager = ConfigManager(ctx.obj.get("config"))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    verbosity = ctx.obj.get("verbosity", 0)
    if verbosity:
        observability = manager.config.observability
        observability.log_level = LogLevel.DEBUG if verbosity > 1 else LogLevel.INFO
        setup_logging(observability)
    return manager


@cli.command("stability")
@click.option(
    "--counts",
    required=True,
    help="Comma-separated message counts, one per active connection",
)
@click.pass_context
def stability(ctx, counts):
    """Check whether connections are stable enough to carry a requery."""
    cfg = _context_manager(ctx).config.requery
    message_counts = _parse_counts(counts)
    probe = MessageCountProbe.from_counts(message_counts)
    gate = ConnectionStabilityGate.from_config(probe, cfg)

    with LoggingContext("stability_check", connections=len(message_counts)):
        settled = probe.count_connections_with_at_least(
            cfg.min_messages_per_connection
        )
        total = probe.total_active_connection_messages()
        stable = gate.is_stable()

    table = Table(title="Connection stability")
    table.add_column("Check")
    table.add_column("Observed", justify="right")
    table.add_column("Required", justify="right")
    table.add_column("Result")
    table.add_row(
        f"Connections with >= {cfg.min_messages_per_connection} messages",
        str(settled),
        str(cfg.min_stable_connections),
        "ok" if settled >= cfg.min_stable_connections else "low",
    )
    table.add_row(
        "Messages across active connections",
        str(total),
        str(cfg.min_total_messages),
        "ok" if total >= cfg.min_total_messages else "low",
    )

    console = Console()
    console.print(table)

    if stable:
        console.print("[green]STABLE[/green]")
        return
    console.print("[yellow]UNSTABLE[/yellow]")
    ctx.exit(1)


cli.add_command(config_group)


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
