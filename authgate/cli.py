"""
Command line interface for authgate.

Each subcommand answers one decision against the configured providers.
Exit status is 0 when the decision allows, 1 when it denies and 2 when
the decision could not be made.

Examples:
    authgate --config authgate.yaml auth alice s3cret
    authgate --config authgate.yaml authz alice GET /build/linux
    authgate --config authgate.yaml resources alice GET '^/build'
    authgate --config authgate.yaml host 10.0.0.5
"""

import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

import click

from .core import Config, DecisionService
from .errors import AuthGateError
from .util.logging import configure_logging

EXIT_ALLOW = 0
EXIT_DENY = 1
EXIT_ERROR = 2


def _load_config(config_file: Optional[Path]) -> Config:
    if config_file is None:
        return Config.from_env()
    return Config.from_file(str(config_file))


async def _with_service(ctx: click.Context,
                        decision: Callable[[DecisionService], Awaitable[bool]]) -> bool:
    service = DecisionService.from_config(ctx.obj["config"])
    try:
        return await decision(service)
    finally:
        await service.close()


def _run(ctx: click.Context, decision: Callable[[DecisionService], Awaitable[bool]],
         echo: bool = True) -> None:
    """Build the service, run one decision and exit with its status."""
    try:
        allowed = asyncio.run(_with_service(ctx, decision))
    except AuthGateError as e:
        click.echo(click.style(f"error: {e.message}", fg="red"), err=True)
        sys.exit(EXIT_ERROR)

    if echo:
        click.echo("allow" if allowed else "deny")
    sys.exit(EXIT_ALLOW if allowed else EXIT_DENY)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON configuration file (defaults to AUTHGATE_* variables)",
)
@click.option("--log-level", default=None, help="Logging level, e.g. DEBUG")
@click.pass_context
def main(ctx: click.Context, config_file: Optional[Path], log_level: Optional[str]) -> None:
    """Access-control decisions from the command line."""
    try:
        config = _load_config(config_file)
    except AuthGateError as e:
        click.echo(click.style(f"error: {e.message}", fg="red"), err=True)
        sys.exit(EXIT_ERROR)

    configure_logging(log_level or config.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("username")
@click.argument("password")
@click.pass_context
def auth(ctx: click.Context, username: str, password: str) -> None:
    """Verify USERNAME and PASSWORD against the authentication chain."""
    _run(ctx, lambda service: service.authenticate(username, password))


@main.command()
@click.argument("user")
@click.argument("action")
@click.argument("resource")
@click.pass_context
def authz(ctx: click.Context, user: str, action: str, resource: str) -> None:
    """Check whether USER may perform ACTION on RESOURCE."""
    _run(ctx, lambda service: service.is_authorized(user, action, resource))


@main.command()
@click.argument("user")
@click.argument("action")
@click.argument("pattern")
@click.pass_context
def resources(ctx: click.Context, user: str, action: str, pattern: str) -> None:
    """
    List resources matching PATTERN that USER may perform ACTION on.

    Exits with status 1 when nothing matches.
    """

    async def decision(service: DecisionService) -> bool:
        found = False
        async for resource in service.matching_resources(user, action, pattern):
            click.echo(resource)
            found = True
        return found

    _run(ctx, decision, echo=False)


@main.command()
@click.argument("host")
@click.pass_context
def host(ctx: click.Context, host: str) -> None:
    """Check whether HOST is trusted."""
    _run(ctx, lambda service: service.is_trusted_host(host))


@main.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Reload every refreshable provider and report failures."""

    async def decision(service: DecisionService) -> bool:
        await service.refresh_all()
        result = service.last_refresh
        for name in result.refreshed:
            click.echo(f"refreshed {name}")
        if result.failure is not None:
            for name, error in result.failure.failures:
                click.echo(click.style(f"failed {name}: {error}", fg="yellow"), err=True)
        return result.ok

    _run(ctx, decision, echo=False)


if __name__ == "__main__":
    main()
