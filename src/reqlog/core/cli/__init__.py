"""reqlog CLI — entry point for request-log commands."""

import click

from reqlog import __version__


@click.group()
@click.version_option(version=__version__, package_name="reqlog")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="REQLOG_CONFIG",
    default=None,
    help="YAML or JSON config file (default: ~/.reqlog/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """reqlog — capture requests into markdown request logs."""
    from .common import load_config, setup_cli_logging

    config = load_config(config_path)
    setup_cli_logging(config, verbose)
    ctx.obj = config


# Register subcommands
from .log_cmd import log

main.add_command(log)
