import dataclasses
import functools
from collections.abc import Callable, Collection
from typing import Any

import click

from shimmer._cogs.aiokits import aioflags
from shimmer._cogs.configs import configuration
from shimmer._cogs.helpers import loaders
from shimmer._core.actions import loggers
from shimmer._core.reactor import controlling, running


@dataclasses.dataclass()
class CLIControls:
    """ Controls for the embedded runs, which are impossible to pass via CLI. """
    ready_flag: aioflags.Flag | None = None
    stop_flag: aioflags.Flag | None = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        else:
            name: str = super().convert(value, param, ctx)
            return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: bool | None = False,
                log_refkey: str | None = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


@click.version_option(prog_name='shimmer')
@click.group(name='shimmer', context_settings=dict(
    auto_envvar_prefix='SHIMMER',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('-L', '--liveness', 'liveness_endpoint', type=str, envvar='SHIMMER_RUN_LIVENESS')
@click.option('-w', '--workers', type=click.IntRange(min=1))
@click.option('--sync-timeout', type=click.FloatRange(min=0, min_open=True))
@click.option('-f', '--factory', type=str, default=loaders.DEFAULT_FACTORY, show_default=True)
@click.option('-m', '--module', 'modules', multiple=True)
@click.argument('paths', nargs=-1)
@click.make_pass_decorator(CLIControls, ensure=True)
def run(
        __controls: CLIControls,
        paths: Collection[str],
        modules: Collection[str],
        factory: str,
        workers: int | None,
        sync_timeout: float | None,
        liveness_endpoint: str | None,
) -> None:
    """ Start the controllers and reconcile until terminated. """
    if not paths and not modules:
        raise click.UsageError("Nothing to run: specify the files or the modules (-m).")

    factories = loaders.preload(paths=paths, modules=modules, factory=factory)
    controllers = [controller for fn in factories for controller in _collect(fn)]
    if not controllers:
        raise click.UsageError("No controllers are built by the factories.")

    for controller in controllers:
        _override(controller.settings, workers=workers, sync_timeout=sync_timeout)

    return running.run(
        controllers,
        liveness_endpoint=liveness_endpoint,
        stop_flag=__controls.stop_flag,
        ready_flag=__controls.ready_flag,
    )


def _collect(factory: Callable[[], Any]) -> list[controlling.Controller]:
    result = factory()
    items = [result] if isinstance(result, controlling.Controller) else list(result or [])
    for item in items:
        if not isinstance(item, controlling.Controller):
            raise click.UsageError(f"The factory {factory!r} returned a non-controller: {item!r}")
    return items


def _override(
        settings: configuration.ControllerSettings,
        *,
        workers: int | None,
        sync_timeout: float | None,
) -> None:
    if workers is not None:
        settings.queueing.workers = workers
    if sync_timeout is not None:
        settings.syncing.timeout = sync_timeout
