"""Configuration inspection CLI commands for ccrequery.

Adds commands:
- config show
- config get
"""

from __future__ import annotations

import json
import logging

import click
import toml

from ccrequery.config.config import ConfigManager
from ccrequery.utils.exceptions import ConfigurationError
from ccrequery.utils.logging_config import log_exception

logger = logging.getLogger(__name__)


def _load_manager(config_file: str | None) -> ConfigManager:
    try:
        return ConfigManager(config_file)
    except ConfigurationError as e:
        log_exception(logger, e, "Failed to load configuration")
        raise click.ClickException(str(e)) from e


@click.group()
def config():
    """Configuration management commands."""


@config.command("show")
@click.option(
    "--format",
    "format_",
    type=click.Choice(["toml", "json"]),
    default="toml",
)
@click.option(
    "--section",
    type=str,
    default=None,
    help="Show a single section (e.g. requery)",
)
@click.option("--config", "config_file", type=click.Path(exists=True), default=None)
def show_config(format_: str, section: str | None, config_file: str | None):
    """Show current configuration in the desired format."""
    cm = _load_manager(config_file)
    if section is None:
        click.echo(cm.export(format_))
        return

    data = cm.config.model_dump(mode="json", exclude_none=True)
    if section not in data:
        msg = f"Section not found: {section}"
        raise click.ClickException(msg)
    if format_ == "json":
        click.echo(json.dumps({section: data[section]}, indent=2))
    else:
        click.echo(toml.dumps({section: data[section]}))


@config.command("get")
@click.argument("key")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None)
def get_value(key: str, config_file: str | None):
    """Get a specific configuration value by dotted path."""
    cm = _load_manager(config_file)
    ref = cm.config.model_dump(mode="json")
    try:
        for part in key.split("."):
            ref = ref[part]
    except (KeyError, TypeError):
        msg = f"Key not found: {key}"
        raise click.ClickException(msg) from None
    click.echo(json.dumps(ref, indent=2))
