#!/usr/bin/env python3
"""Main CLI entry point for sfm."""

import logging
import sys
from typing import Optional

import click

from ..config import resolve_config
from ..errors import ConfigError
from .stack import ls, mk, rm, stat, wait


@click.group()
@click.version_option(package_name="sfm")
@click.option("--region", "-r", help="AWS region (default: $AWS_REGION)")
@click.option("--profile", help="AWS profile to use")
@click.option("--debug", is_flag=True, help="Log debug output (or set $DEBUG)")
@click.option("--no-color", "no_color", is_flag=True, help="Disable colored events")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="YAML settings file (default: $SFM_CONFIG or ~/.sfm.yaml)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    region: Optional[str],
    profile: Optional[str],
    debug: bool,
    no_color: bool,
    config_file: Optional[str],
) -> None:
    """Sugar for managing CloudFormation stacks.

    sfm is pipe friendly: mk and rm print the stack name when stdout is a
    pipe, wait and stat read the stack name from stdin.

    \b
    aws s3 cp s3://bucket/tmpl.yml - | sfm mk foobar | sfm wait --dots
    sfm mk -t s3://bucket/tmpl.yml --wait dots foobar
    sfm rm --wait events foobar
    """
    try:
        config = resolve_config(
            region=region,
            profile=profile,
            debug=debug,
            color=False if no_color else None,
            config_file=config_file,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(levelname)s %(message)s",
    )
    ctx.obj = config


cli.add_command(ls)
cli.add_command(mk)
cli.add_command(rm)
cli.add_command(wait)
cli.add_command(stat)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
