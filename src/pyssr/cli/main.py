"""Main CLI entry point."""
import asyncio
import logging
import sys

import click

from pyssr.config import resolve_settings
from pyssr.exceptions import ConfigError, PyssrError


def _settings(ctx_obj, **overrides):
    try:
        return resolve_settings(ctx_obj.get("config"), **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e))


def _server_options(func):
    func = click.option('--root', default=None, type=click.Path(file_okay=False), help='Project root directory')(func)
    func = click.option('--port', default=None, type=int, help='Port to bind to (default: $PORT or 8080)')(func)
    func = click.option('--host', default=None, help='Host to bind to')(func)
    return func


@click.group()
@click.version_option(package_name="pyssr")
@click.option('--config', 'config', default=None, type=click.Path(dir_okay=False), help='Path to pyssr.config.py')
@click.pass_context
def cli(ctx, config):
    """pyssr server-rendering host.

    Run 'pyssr serve' to start in the mode selected by PYSSR_ENV.
    Run 'pyssr dev' to start development server with hot reload.
    Run 'pyssr run' to start production server.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@_server_options
@click.pass_context
def serve(ctx, host, port, root):
    """Start the server in the mode selected by PYSSR_ENV."""
    settings = _settings(ctx.obj, host=host, port=port, root=root)
    _start(settings)


@cli.command()
@_server_options
@click.pass_context
def dev(ctx, host, port, root):
    """Start development server."""
    settings = _settings(ctx.obj, host=host, port=port, root=root, production=False)
    _start(settings)


@cli.command()
@_server_options
@click.option('--buffer/--no-buffer', default=None, help='Hold each page until rendering completes')
@click.pass_context
def run(ctx, host, port, root, buffer):
    """Run production server using Uvicorn."""
    settings = _settings(ctx.obj, host=host, port=port, root=root, production=True, buffer=buffer)
    _start(settings)


@cli.command()
@click.option('--root', default=None, type=click.Path(file_okay=False), help='Project root directory')
@click.pass_context
def check(ctx, root):
    """Validate the server bundle and template."""
    from pyssr.cli.validate import validate_build

    settings = _settings(ctx.obj, root=root)
    errors = validate_build(settings)
    if errors:
        for error in errors:
            click.echo(f"❌ {error}", err=True)
        sys.exit(1)
    click.echo(f"✅ Build in {settings.dist_path} is valid")


def _start(settings):
    from pyssr.runtime.dev_server import run_dev_server, run_server

    click.echo(f"🚀 Starting pyssr ({settings.mode}) on http://{settings.host}:{settings.port}")
    try:
        if settings.production:
            run_server(settings)
        else:
            asyncio.run(run_dev_server(settings))
    except PyssrError as e:
        logging.getLogger("pyssr").debug("startup failed", exc_info=e)
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
