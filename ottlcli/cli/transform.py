"""CLI command applying an OTTL statement to an OTLP/JSON document."""

from pathlib import Path
from typing import Optional

import click

from ottlcli.cli.error_formatting import format_transform_error
from ottlcli.cli.utils.logging import logger
from ottlcli.config import ConfigAccessor, get_default_context, get_output_indent
from ottlcli.errors import InputError, TransformError
from ottlcli.transform import TransformRequest, run


def read_statement(statement: Optional[str]) -> str:
    """The statement from ``--statement``, or else stdin read to EOF."""
    if statement is None:
        with click.open_file("-", "r") as stdin:
            statement = stdin.read()
        source = "stdin"
    else:
        source = "--statement"
    statement = statement.strip()
    if not statement:
        raise InputError(f"no OTTL statement provided on {source}")
    return statement


def read_input(input_file: str) -> bytes:
    if input_file == "-":
        with click.open_file("-", "rb") as stdin:
            return stdin.read()
    try:
        return Path(input_file).read_bytes()
    except OSError as e:
        raise InputError(f"failed to read input file {input_file}: {e}") from e


def write_output(output: bytes, output_file: Optional[str]) -> None:
    if output_file is None:
        with click.open_file("-", "wb") as stdout:
            stdout.write(output)
            stdout.flush()
        return
    try:
        Path(output_file).write_bytes(output)
    except OSError as e:
        raise InputError(f"failed to write output file {output_file}: {e}") from e


@click.command("transform")
@click.option(
    "--input-file",
    "-i",
    required=True,
    type=click.Path(dir_okay=False, allow_dash=True),
    help="OTLP/JSON document to transform ('-' for stdin, requires --statement).",
)
@click.option(
    "--statement",
    "-s",
    default=None,
    help="OTTL statement. Read from stdin when omitted.",
)
@click.option(
    "--context",
    "-c",
    default=None,
    help="Context to run the statement in: span, log, metric or datapoint. "
    "Detected from the input when omitted.",
)
@click.option(
    "--output-file",
    "-o",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the result to this file instead of stdout.",
)
@click.option(
    "--indent",
    default=None,
    type=click.IntRange(min=0),
    help="Pretty-print the output with this indent.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file to use instead of the default location.",
)
@click.pass_context
def transform(
    ctx,
    input_file: str,
    statement: Optional[str],
    context: Optional[str],
    output_file: Optional[str],
    indent: Optional[int],
    config_path: Optional[str],
):
    """Apply an OTTL statement to every record of an OTLP/JSON document.

    The statement is read from stdin unless --statement is given. The
    transformed document is written to stdout without a trailing newline.
    """
    if input_file == "-" and statement is None:
        raise click.UsageError(
            "--input-file - needs the statement passed with --statement, "
            "since stdin cannot carry both"
        )

    config = ConfigAccessor(Path(config_path) if config_path else None)
    if context is None:
        context = get_default_context(config)
    if indent is None:
        try:
            indent = get_output_indent(config)
        except ValueError as e:
            logger.error(f"config error: {e}")
            ctx.exit(1)

    try:
        request = TransformRequest(
            statement=read_statement(statement),
            data=read_input(input_file),
            context=context,
            indent=indent,
        )
        output = run(request)
        write_output(output, output_file)
    except TransformError as e:
        logger.error(format_transform_error(e))
        ctx.exit(1)

    if output_file is not None:
        logger.debug(f"Wrote {len(output)} bytes to {output_file}")
