"""
Command Line Interface for testdock.
"""
import logging
import os

import click
import yaml

from ..errors import SpecError
from ..PARSERS.spec_parser import SpecParser
from ..UTILS.environment import dotenv_lookup, os_environ_lookup


@click.group()
@click.option('--file', '-f', default='testdock.yml', help='Dependency file path')
@click.option('--env-file', default=None, help='.env file used for ${VAR} interpolation')
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='Log level')
@click.pass_context
def cli(ctx, file, env_file, log_level):
    """
    testdock - declarative container dependencies for integration tests.

    Resolves dependency files into the run specifications a container runner consumes.
    """
    logging.basicConfig(level=getattr(logging, log_level),
                        format='%(levelname)s %(name)s: %(message)s')
    ctx.ensure_object(dict)
    ctx.obj['file'] = file

    lookup = os_environ_lookup
    if env_file:
        if not os.path.exists(env_file):
            raise click.ClickException(f"{env_file} not found.")
        lookup = dotenv_lookup(env_file, fallback=os_environ_lookup)
    ctx.obj['parser'] = SpecParser(lookup)


def _load(ctx):
    """
    Parses the dependency file named on the command line.
    """
    file = ctx.obj['file']
    if not os.path.exists(file):
        raise click.ClickException(f"{file} not found.")
    try:
        return ctx.obj['parser'].parse(file)
    except SpecError as e:
        raise click.ClickException(str(e))


def _select(dependencies, names):
    unknown = [n for n in names if n not in dependencies]
    if unknown:
        raise click.ClickException(f"Unknown dependency: {', '.join(unknown)}")
    return {n: dependencies[n] for n in (names or dependencies)}


@cli.command()
@click.argument('names', nargs=-1)
@click.pass_context
def describe(ctx, names):
    """Print resolved run specifications as YAML."""
    dependencies = _select(_load(ctx), names)
    output = {name: runnable.to_run_spec().to_dict() for name, runnable in dependencies.items()}
    click.echo(yaml.safe_dump(output, sort_keys=False), nl=False)


@cli.command()
@click.argument('names', nargs=-1)
@click.pass_context
def descriptor(ctx, names):
    """Print the image descriptor (name:tag) of each dependency."""
    dependencies = _select(_load(ctx), names)
    for name, runnable in dependencies.items():
        click.echo(f"{name:15} {runnable.descriptor()}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
