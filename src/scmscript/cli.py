# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Main CLI entry point for scmscript.

Thin trigger: parses args, builds a run context, resolves, prints the
script. All resolution logic lives in scmscript.resolver.
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import typer

from scmscript import __version__
from scmscript.config import load_settings
from scmscript.errors import ResolutionError
from scmscript.event_client import EventClient
from scmscript.resolver import resolve
from scmscript.schemas import RunContext, ScmFlowDefinition, SourceReference

DEFAULT_WORKSPACE_ROOT = Path("~/.scmscript/workspace")

app = typer.Typer(
    name="scmscript",
    help="Resolve pipeline scripts stored in source control",
    no_args_is_help=True,
)


def _parse_env_args(args: Optional[List[str]]) -> Dict[str, str]:
    """Parse KEY=VALUE arguments into an environment dict.

    Values stay strings; a bare KEY without '=' is rejected.
    """
    env = {}
    for arg in args or []:
        if "=" not in arg:
            raise typer.BadParameter(f"expected KEY=VALUE, got: {arg}")
        key, value = arg.split("=", 1)
        env[key] = value
    return env


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
    )
    # Progress lines are always shown, like a build log
    if not verbose:
        logging.getLogger("scmscript.build").setLevel(logging.INFO)


@app.command("resolve")
def resolve_command(
    url: str = typer.Argument(..., help="Repository URL or local path"),
    script_path: str = typer.Argument("Jenkinsfile", help="Main script path inside the repository"),
    import_path: str = typer.Option("", "--import", "-i", help="Script concatenated before the main script"),
    revision: str = typer.Option("HEAD", "--revision", "-r", help="Revision to read"),
    lightweight: bool = typer.Option(True, "--lightweight/--no-lightweight", help="Read without a full checkout when possible"),
    job: str = typer.Option("pipeline", "--job", "-j", help="Owning job name (names the workspace)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace root directory"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
    env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="KEY=VALUE used to expand paths"),
    events: Optional[Path] = typer.Option(None, "--events", help="Append resolution events to this JSONL file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Resolve and print the script for a repository.

    Examples:
        scmscript resolve ./repo Jenkinsfile
        scmscript resolve ./repo Jenkinsfile --import lib/common.groovy
        scmscript resolve https://host/org/repo.git ci/${STAGE}.groovy -e STAGE=build
    """
    _configure_logging(verbose)

    try:
        settings = load_settings(config_path)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(1)

    workspace_root = workspace or settings.workspace_root or DEFAULT_WORKSPACE_ROOT
    run_context = RunContext(
        run_id=str(uuid.uuid4()),
        job_name=job,
        env=_parse_env_args(env),
        workspace_root=Path(workspace_root).expanduser(),
        event_client=EventClient(events.expanduser()) if events else None,
    )
    definition = ScmFlowDefinition(
        source=SourceReference(url=url, revision=revision),
        script_path=script_path,
        import_path=import_path,
        lightweight=lightweight,
    )

    try:
        result = resolve(definition, run_context, settings=settings)
    except ResolutionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if result.backing_directory is not None:
        typer.echo(f"Workspace: {result.backing_directory}", err=True)
    typer.echo(result.text, nl=False)


@app.command()
def version():
    """Show version information."""
    typer.echo(f"scmscript version {__version__}")


from scmscript.commands import config  # noqa: E402

app.add_typer(config.app, name="config")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
