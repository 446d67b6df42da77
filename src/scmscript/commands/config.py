# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Config command for scmscript.

Validates the resolver configuration file.
"""

import typer

from scmscript.config import ResolverSettings, load_config

app = typer.Typer(help="Manage and validate configuration")


@app.command()
def validate(
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """
    Validate configuration file.

    Checks that the file is a YAML mapping and that every setting parses.
    """
    typer.echo("Validating configuration...")
    typer.echo()

    try:
        config = load_config(config_path)
        settings = ResolverSettings.from_config(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"Validation failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Configuration structure is valid")
    typer.echo()
    typer.echo(f"Checkout retries: {settings.checkout_retry_count}")
    typer.echo(f"Retry delay: {settings.retry_delay_s:g}s")
    typer.echo(f"Workspace suffix: {settings.workspace_suffix}")
    if settings.workspace_root:
        typer.echo(f"Workspace root: {settings.workspace_root}")
    typer.echo(f"Default durability: {settings.default_durability.value}")
    for job_name, hint in sorted(settings.job_durability.items()):
        typer.echo(f"  {job_name}: {hint.value}")
    typer.echo()
    typer.echo("Configuration validation complete!")
