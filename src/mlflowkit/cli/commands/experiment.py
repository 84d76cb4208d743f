"""
Experiment management CLI.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from typing import Callable, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from ...client import Client, ClientConfig, CreateOptions, DeleteOptions, GetOptions, ListOptions
from ...core.errors import InternalError, MLFlowKitError, ValidationError
from ...experiments.experiment import Experiment, LifecycleStage, NAMESPACE_TAG, Tags

console = Console()

ClientFactory = Callable[[ClientConfig], Client]


# ------------------------------------------------------------
# CLI Context (Dependency Injection + Global Options)
# ------------------------------------------------------------

class CLIContext:
    def __init__(
        self,
        config: ClientConfig,
        client_factory: ClientFactory,
        verbose: bool,
        json_output: bool,
    ):
        self.config = config
        self.verbose = verbose
        self.json_output = json_output
        self._client_factory = client_factory
        self._client: Optional[Client] = None

        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s | %(levelname)s | %(message)s",
        )

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = self._client_factory(self.config)
        return self._client

    @property
    def namespace(self) -> str:
        return self.config.namespace

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


pass_context = click.make_pass_decorator(CLIContext)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to YAML config file")
@click.option("--tracking-uri", help="Tracking server address (overrides config)")
@click.option("--namespace", help="Namespace for experiment names (overrides config)")
@click.option("--verbose", is_flag=True, help="Enable verbose debugging output")
@click.option("--json", "json_output", is_flag=True, help="Machine-readable JSON output")
@click.pass_context
def experiment(ctx, config_path, tracking_uri, namespace, verbose, json_output):
    """
    Manage experiments on a tracking server.
    """
    # A callable placed in ctx.obj by the caller replaces the default client.
    factory = ctx.obj if callable(ctx.obj) else Client.from_config

    try:
        config = ClientConfig.load(config_path) if config_path else ClientConfig()
        config = config.with_overrides(tracking_uri=tracking_uri, namespace=namespace)
    except MLFlowKitError as e:
        handle_error(e, verbose, json_output)

    ctx.obj = CLIContext(config, factory, verbose, json_output)
    ctx.call_on_close(ctx.obj.close)


# ------------------------------------------------------------
# Error Handling Wrapper
# ------------------------------------------------------------

def handle_error(e: Exception, verbose: bool, json_output: bool = False):
    if not isinstance(e, MLFlowKitError):
        if verbose:
            traceback.print_exc()
        e = InternalError(f"Unexpected error: {type(e).__name__}: {e}")

    if json_output:
        click.echo(json.dumps({"error": e.to_json()}))
    else:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            console.print(e.format())
    sys.exit(int(e.exit_code))


# ------------------------------------------------------------
# Output Helpers
# ------------------------------------------------------------

def _parse_tags(values: Tuple[str, ...]) -> Tags:
    tags = Tags()
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValidationError(f"Tag must be KEY=VALUE, got {item!r}", attribute="tags")
        if key == NAMESPACE_TAG:
            raise ValidationError(f"Tag key {NAMESPACE_TAG!r} is reserved", attribute="tags")
        tags.set(key, value)
    return tags


def _format_time(exp: Experiment, attr: str) -> str:
    value = getattr(exp, attr)
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def _show(ctx: CLIContext, exp: Experiment) -> None:
    if ctx.json_output:
        click.echo(json.dumps(exp.to_dict()))
        return

    console.print(f"  Name:      {exp.name}")
    console.print(f"  ID:        {exp.experiment_id}")
    console.print(f"  Namespace: {exp.namespace}")
    console.print(f"  Stage:     {getattr(exp.lifecycle_stage, 'value', exp.lifecycle_stage)}")
    if exp.artifact_location:
        console.print(f"  Artifacts: {exp.artifact_location}")
    console.print(f"  Created:   {_format_time(exp, 'creation_timestamp')}")
    console.print(f"  Updated:   {_format_time(exp, 'last_updated_timestamp')}")

    user_tags = [t for t in sorted(exp.tags) if t.key != NAMESPACE_TAG]
    if user_tags:
        console.print("  Tags:")
        for tag in user_tags:
            console.print(f"    {tag.key}={tag.value}")


# ------------------------------------------------------------
# Create Experiment
# ------------------------------------------------------------

@experiment.command("create")
@click.argument("name")
@click.option("--artifact-location", default="", help="Artifact storage location")
@click.option("--tag", "tags", multiple=True, help="Tag as KEY=VALUE (repeatable)")
@click.option("--ignore-existing", is_flag=True, help="Succeed if the experiment already exists")
@pass_context
def create_experiment(ctx: CLIContext, name: str, artifact_location: str, tags, ignore_existing: bool):
    """Create a new experiment."""
    try:
        exp = Experiment(name=name, artifact_location=artifact_location, tags=_parse_tags(tags))
        ctx.client.create_experiment(
            exp,
            CreateOptions(namespace=ctx.namespace, ignore_already_exists=ignore_existing),
        )

        if not ctx.json_output:
            console.print("[green]✓ Created experiment[/green]")
        _show(ctx, exp)

    except Exception as e:
        handle_error(e, ctx.verbose, ctx.json_output)


# ------------------------------------------------------------
# Get Experiment
# ------------------------------------------------------------

@experiment.command("get")
@click.argument("identifier")
@click.option("--by-name", is_flag=True, help="Treat IDENTIFIER as a name in the namespace")
@pass_context
def get_experiment(ctx: CLIContext, identifier: str, by_name: bool):
    """Show an experiment by ID (or by name with --by-name)."""
    try:
        options = GetOptions(namespace=ctx.namespace)
        if by_name:
            exp = ctx.client.get_experiment_by_name(identifier, options)
        else:
            exp = Experiment(experiment_id=identifier)
            ctx.client.get_experiment(exp, options)

        _show(ctx, exp)

    except Exception as e:
        handle_error(e, ctx.verbose, ctx.json_output)


# ------------------------------------------------------------
# List Experiments
# ------------------------------------------------------------

@experiment.command("list")
@click.option("--limit", default=1000, type=click.IntRange(1, 1000))
@click.option("--include-deleted", is_flag=True, help="Include soft-deleted experiments")
@pass_context
def list_experiments(ctx: CLIContext, limit: int, include_deleted: bool):
    """List experiments in the namespace."""
    try:
        experiments = ctx.client.list_experiments(
            ListOptions(namespace=ctx.namespace, max_results=limit, include_deleted=include_deleted)
        )

        if ctx.json_output:
            click.echo(json.dumps([e.to_dict() for e in experiments]))
            return

        if not experiments:
            console.print("[yellow]No experiments found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Name", style="green", overflow="fold")
        table.add_column("ID", style="dim")
        table.add_column("Created", style="dim")
        table.add_column("Stage")

        for exp in experiments:
            table.add_row(
                exp.name,
                exp.experiment_id,
                _format_time(exp, "creation_timestamp"),
                getattr(exp.lifecycle_stage, "value", exp.lifecycle_stage),
            )

        console.print(table)

    except Exception as e:
        handle_error(e, ctx.verbose, ctx.json_output)


# ------------------------------------------------------------
# Update Experiment
# ------------------------------------------------------------

@experiment.command("update")
@click.argument("experiment_id")
@click.option("--name", "new_name", help="New experiment name")
@click.option("--tag", "tags", multiple=True, help="Tag as KEY=VALUE (repeatable)")
@click.option("--stage", type=click.Choice([s.value for s in LifecycleStage]), help="Lifecycle stage")
@pass_context
def update_experiment(ctx: CLIContext, experiment_id: str, new_name: Optional[str], tags, stage: Optional[str]):
    """Rename, retag or restore an experiment."""
    try:
        exp = Experiment(experiment_id=experiment_id)
        ctx.client.get_experiment(exp, GetOptions(namespace=ctx.namespace))

        if new_name:
            exp.name = new_name
        for tag in _parse_tags(tags):
            exp.tags.set(tag.key, tag.value)
        if stage:
            exp.lifecycle_stage = LifecycleStage(stage)

        ctx.client.update_experiment(exp)

        if not ctx.json_output:
            console.print("[green]✓ Updated experiment[/green]")
        _show(ctx, exp)

    except Exception as e:
        handle_error(e, ctx.verbose, ctx.json_output)


# ------------------------------------------------------------
# Delete Experiment
# ------------------------------------------------------------

@experiment.command("delete")
@click.argument("experiment_id")
@click.option("--ignore-missing", is_flag=True, help="Succeed if the experiment does not exist")
@click.option("--yes", is_flag=True, help="Confirm deletion without prompt")
@pass_context
def delete_experiment(ctx: CLIContext, experiment_id: str, ignore_missing: bool, yes: bool):
    """Delete an experiment (soft delete on the server)."""
    try:
        if not yes:
            click.confirm(f"Are you sure you want to delete experiment {experiment_id}?", abort=True)

        exp = Experiment(experiment_id=experiment_id)
        ctx.client.delete_experiment(exp, DeleteOptions(ignore_missing=ignore_missing))

        if ctx.json_output:
            click.echo(json.dumps({"deleted": experiment_id}))
        else:
            console.print(f"[green]✓ Deleted experiment[/green] {experiment_id}")

    except click.exceptions.Abort:
        raise
    except Exception as e:
        handle_error(e, ctx.verbose, ctx.json_output)
