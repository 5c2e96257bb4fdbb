#!/usr/bin/env python3
"""
Stack commands: ls, mk, rm, wait and stat.
"""

import sys
from typing import Optional, Tuple

import click

from ..cloudformation import (
    MakeAction,
    RenderConfig,
    RenderMode,
    StackManager,
    StackProvider,
    StackWaiter,
)
from ..cloudformation.sources import load_mapping_file, read_template
from ..config import SfmConfig
from ..errors import (
    ConfigError,
    InputError,
    SfmError,
    SourceError,
    StackRecoveryError,
    WaitError,
)
from ..output import ENCODINGS, encode_mapping, encode_stack

# Exit codes
EXIT_FAILURE = 1
EXIT_REMOTE = 3
EXIT_RECOVERY = 4
EXIT_USAGE = 64
EXIT_INPUT = 66

WAIT_STYLES = ("dots", "events")


def stdin_is_piped() -> bool:
    """Check if something is piped into stdin."""
    return not sys.stdin.isatty()


def stdout_is_piped() -> bool:
    """Check if stdout goes to a pipe or file."""
    return not sys.stdout.isatty()


def build_manager(config: SfmConfig) -> StackManager:
    """Create a stack manager from resolved settings."""
    session = config.create_session()
    provider = StackProvider(session, config.client_config())
    waiter = StackWaiter(
        provider,
        render=RenderConfig(enabled=config.color),
        poll_interval=config.poll_interval,
        max_iterations=config.max_iterations,
    )
    return StackManager(provider, waiter, capabilities=config.capabilities)


def get_manager(ctx: click.Context) -> StackManager:
    try:
        return build_manager(ctx.obj)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FAILURE)


def fail(message: str, code: int = EXIT_FAILURE) -> None:
    click.echo(message, err=True)
    sys.exit(code)


def usage_error(ctx: click.Context, message: str) -> None:
    click.echo(message, err=True)
    click.echo(ctx.get_help(), err=True)
    sys.exit(EXIT_USAGE)


def read_stack_name(name: Optional[str]) -> Optional[str]:
    """Take the stack name from a stdin pipe, falling back to the argument."""
    if stdin_is_piped():
        piped = click.get_text_stream("stdin").read().strip()
        if piped:
            return piped
    return name


def block(manager: StackManager, stack_name: str, mode: RenderMode) -> None:
    """Wait on a stack, exiting non-zero if the wait fails."""
    try:
        manager.await_completion(stack_name, mode)
    except WaitError as e:
        fail(f"error on wait: {e}")


@click.command(name="ls")
@click.option("--verbose", "-v", is_flag=True, help="Print change time, name and status")
@click.argument("glob", required=False, default="*")
@click.pass_context
def ls(ctx: click.Context, verbose: bool, glob: str) -> None:
    """List stacks, optionally filtered by a shell-style GLOB."""
    manager = get_manager(ctx)
    try:
        stacks = manager.list_stacks(glob)
    except SfmError as e:
        fail(f"cant list stacks: {e}")

    for stack in stacks:
        click.echo(stack.verbose_line() if verbose else stack.name)


@click.command(name="mk")
@click.option("--template", "-t", help="Template path or s3://bucket/key; or pipe it on stdin")
@click.option("--params", "-p", default="", help="k=v,k=v... parameters for the template")
@click.option(
    "--pf",
    "param_files",
    multiple=True,
    help="YAML or JSON parameter file; repeatable, later files win",
)
@click.option("--tags", default="", help="k=v,k=v... tags for the stack")
@click.option("--tagsfile", default="", help="YAML or JSON file containing tags")
@click.option("--sns", default="", help="Comma separated SNS topic ARNs to notify")
@click.option("--norb", is_flag=True, help="Do not roll back on error")
@click.option("--wait", "wait_style", default="", help="Block on the operation: dots or events")
@click.argument("name")
@click.pass_context
def mk(
    ctx: click.Context,
    template: Optional[str],
    params: str,
    param_files: Tuple[str, ...],
    tags: str,
    tagsfile: str,
    sns: str,
    norb: bool,
    wait_style: str,
    name: str,
) -> None:
    """Create stack NAME if it does not exist, update it otherwise.

    Parameters from -p override parameter files. Only parameters the template
    declares are sent; on update, declared parameters that were not supplied
    keep their current values. A stack left behind by a failed create is
    deleted and created again.
    """
    piped = stdin_is_piped()
    if not template and not piped:
        usage_error(ctx, "no template flag supplied and no pipe on stdin")

    manager = get_manager(ctx)
    session = manager.provider.session

    try:
        body = read_template(
            template, session, click.get_binary_stream("stdin") if piped else None
        )
    except SourceError as e:
        fail(f"cant open template '{template or '-'}': {e}", EXIT_FAILURE)

    try:
        parameter_sources = [load_mapping_file(f, session) for f in param_files]
        tag_sources = [load_mapping_file(tagsfile, session)]
    except InputError as e:
        fail(f"cant load params or tags file: {e}", EXIT_INPUT)

    topics = [arn for arn in sns.split(",") if arn] if sns else []

    try:
        result = manager.make_or_update(
            name,
            body,
            parameter_sources=parameter_sources,
            inline_parameters=params,
            tag_sources=tag_sources,
            inline_tags=tags,
            notify_topics=topics,
            disable_rollback=norb,
        )
    except InputError as e:
        fail(f"{e}", EXIT_INPUT)
    except StackRecoveryError as e:
        fail(f"{e}", EXIT_RECOVERY)
    except SfmError as e:
        fail(f"{e}", EXIT_REMOTE)

    if result.action is MakeAction.UNCHANGED:
        click.echo("no update required", err=True)
    else:
        mode = RenderMode.from_name(wait_style)
        if mode is not RenderMode.NONE:
            block(manager, name, mode)

    if stdout_is_piped():
        click.echo(name)


@click.command(name="rm")
@click.option("--force", is_flag=True, help="Not implemented")
@click.option("--wait", "wait_style", default="", help="Block on the operation: dots or events")
@click.argument("name")
@click.pass_context
def rm(ctx: click.Context, force: bool, wait_style: str, name: str) -> None:
    """Delete stack NAME."""
    if force:
        click.echo("--force is not yet implemented - you're on your own for now!", err=True)

    manager = get_manager(ctx)
    try:
        manager.remove(name)
    except SfmError as e:
        fail(f"cant delete stack: {e}")

    mode = RenderMode.from_name(wait_style)
    if mode is not RenderMode.NONE:
        block(manager, name, mode)

    if stdout_is_piped():
        click.echo(name)


@click.command(name="wait")
@click.option("--dots", is_flag=True, help="Print dots while waiting")
@click.option("--events", is_flag=True, help="Print stack events while waiting")
@click.argument("name", required=False)
@click.pass_context
def wait(ctx: click.Context, dots: bool, events: bool, name: Optional[str]) -> None:
    """Block on stack NAME while it is in progress.

    NAME can also be piped in, e.g. sfm mk ... | sfm wait --dots
    """
    if dots and events:
        usage_error(ctx, "--dots and --events are mutually exclusive flags; choose one")

    stack_name = read_stack_name(name)
    if not stack_name:
        usage_error(ctx, "wait requires a stack name on stdin or as the only positional argument")

    mode = RenderMode.DOTS if dots else RenderMode.EVENTS if events else RenderMode.NONE
    block(get_manager(ctx), stack_name, mode)


@click.command(name="stat")
@click.option("--outputs", "-o", "show", flag_value="outputs", help="Print stack outputs")
@click.option("--params", "-p", "show", flag_value="parameters", help="Print stack parameters")
@click.option("--tags", "-t", "show", flag_value="tags", help="Print stack tags")
@click.option("--resources", "-r", "show", flag_value="resources", help="Print logical and physical resource ids")
@click.option(
    "--encoding",
    "-e",
    type=click.Choice(ENCODINGS),
    default="text",
    help="Output encoding",
)
@click.argument("name", required=False)
@click.pass_context
def stat(ctx: click.Context, show: Optional[str], encoding: str, name: Optional[str]) -> None:
    """Print information about stack NAME.

    NAME can also be piped in, e.g. sfm mk ... | sfm wait | sfm stat
    """
    stack_name = read_stack_name(name)
    if not stack_name:
        usage_error(ctx, "stat requires a stack name on stdin or as the only positional argument")

    manager = get_manager(ctx)
    try:
        stack = manager.get(stack_name)
        if show == "resources":
            mapping = {
                logical_id: resource["pid"]
                for logical_id, resource in manager.resources(stack_name).items()
            }
        elif show:
            mapping = getattr(stack, show)
        else:
            click.echo(encode_stack(encoding, stack), nl=False)
            return
        click.echo(encode_mapping(encoding, mapping), nl=False)
    except SfmError as e:
        fail(f"cant stat stack: {e}")
