"""CLI entry point for buildbus. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from buildbus.errors import BuildBusError


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


async def _init_bus(project: str, track: bool):
    from buildbus.bus import BuildBus
    from buildbus.tracking import Trackable

    if track:
        Trackable.enable_tracking()
    bus = BuildBus.for_context(project)
    return await bus.init()


@click.group(invoke_without_command=True)
@click.option(
    "--project",
    "-p",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Project root holding pyproject.toml",
)
@click.option("--track", is_flag=True, help="Log tracking events for every hook call")
@click.option("--verbose", "-v", count=True, help="More logging; repeat for debug output")
@click.pass_context
def main(ctx, project, track, verbose):
    """Run extension packages through the build hook lifecycle."""
    level = logging.WARNING - 10 * min(verbose + (1 if track else 0), 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["project"] = project
    ctx.obj["track"] = track
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.pass_context
def hooks(ctx):
    """List the hooks each package declared."""
    try:
        bus = _run(_init_bus(ctx.obj["project"], ctx.obj["track"]))
    except BuildBusError as e:
        raise click.ClickException(str(e)) from e

    for name, provider in bus.target_providers.items():
        if not provider.own:
            continue
        click.echo(name)
        for target_name, target in provider.own.items():
            click.echo(f"  {target_name} [{target.hook_type}]")


@main.command()
@click.option("--trace", is_flag=True, help="Include the call stack that queued each request")
@click.pass_context
def transforms(ctx, trace):
    """Print the transform requests of all packages as JSON."""
    from buildbus.pipeline import collect_transform_requests
    from buildbus.transform.types import dump_loader_options

    async def collect():
        bus = await _init_bus(ctx.obj["project"], ctx.obj["track"])
        return await collect_transform_requests(bus)

    try:
        options = _run(collect())
    except BuildBusError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(dump_loader_options(options, include_trace=trace), indent=2))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--options",
    "options_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Loader options JSON from `buildbus transforms`; collected from the project if omitted",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write here instead of stdout")
@click.pass_context
def apply(ctx, file, options_file, output):
    """Apply the requested transforms to FILE."""
    from buildbus.pipeline import collect_transform_requests
    from buildbus.transform.apply import apply_transforms
    from buildbus.transform.types import load_loader_options

    file_id = str(Path(file).resolve())

    async def collect():
        bus = await _init_bus(ctx.obj["project"], ctx.obj["track"])
        return await collect_transform_requests(bus)

    try:
        if options_file is not None:
            options = load_loader_options(json.loads(Path(options_file).read_text()))
        else:
            options = _run(collect())
        result = apply_transforms(Path(file).read_text(), file_id, options)
    except (BuildBusError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    for warning in result.warnings:
        click.echo(f"warning: {warning}", err=True)
    for error in result.errors:
        click.echo(f"error: {error}", err=True)

    if output:
        Path(output).write_text(result.code)
    else:
        click.echo(result.code, nl=False)
    if result.errors:
        sys.exit(1)
