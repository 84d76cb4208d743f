"""
mlflowkit CLI entry point.
"""

import click

from .. import __version__
from .commands.experiment import experiment as experiment_group


@click.group()
@click.version_option(version=__version__, prog_name="mlflowkit")
def cli():
    """
    mlflowkit - Namespaced experiment management for MLflow tracking servers.
    """
    pass


cli.add_command(experiment_group)


if __name__ == "__main__":
    cli()
