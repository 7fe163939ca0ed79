import click

from .utils.logging import configure_logging


def add_debug_option(cmd: click.Command) -> click.Command:
    """Attach a ``--debug/--no-debug`` option to a command or group."""
    if not any(param.name == "debug" for param in cmd.params):
        cmd.params.insert(
            0,
            click.Option(
                ["--debug/--no-debug"],
                is_eager=True,
                expose_value=False,
                callback=_set_debug,
                help="Enable debug mode",
            ),
        )
    return cmd


def _set_debug(ctx: click.Context, param: click.Parameter, value: bool) -> bool:
    """Record the debug flag on the root context and (re)configure logging."""
    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)
    debug = root_ctx.obj.get("DEBUG", False)

    # `ottl --debug transform` keeps debug on even though the subcommand's
    # own flag defaults to off
    if value or ctx is root_ctx:
        debug = value
    root_ctx.obj["DEBUG"] = debug

    configure_logging(debug)
    return debug
