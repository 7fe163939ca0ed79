"""ottl CLI"""

import click

from ottlcli import __version__
from ottlcli.cli.transform import transform

from .debug import add_debug_option


@click.group()
@click.version_option(__version__, prog_name="ottl")
@click.pass_context
def cli(ctx):
    """
    Apply OpenTelemetry Transformation Language statements to OTLP/JSON
    telemetry.
    """
    ctx.ensure_object(dict)


cli.add_command(add_debug_option(transform))

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
