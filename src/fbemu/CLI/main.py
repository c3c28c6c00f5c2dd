"""
Command Line Interface for fbemu.
"""
import os
import time

import click
from docker.errors import DockerException

from ..BUILDERS.config_builder import EmulatorConfigBuilder
from ..BUILDERS.image_builder import ImageBuilder
from ..CONVERTERS.to_dockerfile import DockerfileConverter
from ..exceptions import FbemuError
from ..PARSERS.stack_parser import StackParser
from ..UTILS.logger import setup_logger


@click.group()
@click.option('--file', '-f', default='fbemu.yml', help='Stack file path')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--log-file', default=None, help='Also write logs to this file')
@click.pass_context
def cli(ctx, file, debug, log_file):
    """
    fbemu - Firebase emulators in a container.

    Builds an image running the Firebase emulator suite from a stack file
    and manages the container.
    """
    setup_logger(debug=debug, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj['file'] = file


def _load_builder(ctx) -> EmulatorConfigBuilder:
    file = ctx.obj['file']
    if not os.path.exists(file):
        click.echo(f"Error: {file} not found.")
        ctx.exit(1)
    try:
        return StackParser().load(file)
    except FbemuError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)


@cli.command()
@click.pass_context
def validate(ctx):
    """Check the configuration and list the enabled emulators."""
    builder = _load_builder(ctx)
    try:
        config = builder.build_config()
        ImageBuilder(config).validate()
    except FbemuError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    click.echo("Configuration is valid.")
    click.echo(f"{'EMULATOR':20} {'PORT':10}")
    click.echo("-" * 30)
    for emulator, exposed in config.services.items():
        port = str(exposed.fixed_port) if exposed.is_fixed else f"dynamic ({emulator.internal_port})"
        click.echo(f"{emulator.name:20} {port:10}")


@cli.command()
@click.pass_context
def plan(ctx):
    """Print the Dockerfile and the emulator command line."""
    builder = _load_builder(ctx)
    try:
        image = ImageBuilder(builder.build_config()).build()
    except FbemuError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    click.echo(DockerfileConverter(image).render())
    click.echo(f"Image:     {image.tag}")
    click.echo(f"Command:   {' '.join(image.command)}")
    click.echo(f"Downloads: {', '.join(image.downloads) or '-'}")


@cli.command()
@click.option('--out', '-o', default='build', help='Output directory')
@click.pass_context
def dockerfile(ctx, out):
    """Write the Dockerfile and its build context."""
    builder = _load_builder(ctx)
    try:
        image = ImageBuilder(builder.build_config()).build()
        DockerfileConverter(image).convert(out)
    except FbemuError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    click.echo(f"Build context written to {out}")


@cli.command()
@click.pass_context
def up(ctx):
    """Start the emulators and wait for Ctrl+C."""
    builder = _load_builder(ctx)
    try:
        container = builder.build()
    except FbemuError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    try:
        container.start()
        click.echo("Emulators started.")
        for emulator, endpoint in container.emulator_endpoints().items():
            click.echo(f"{emulator.name:20} {endpoint}")

        click.echo("Running... Press Ctrl+C to stop.")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopping emulators...")
    except (FbemuError, DockerException) as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    finally:
        container.stop()


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
