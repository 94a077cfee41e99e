import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from .. import __version__
from ..core.config import reload_settings
from ..core.exceptions import ConfigurationError
from ..core.logging import setup_logging
from .commands import analyze, anomalies, forecast, monitor, recommend, sample

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__, prog_name='cloudspend')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', type=click.Path(exists=True, dir_okay=False), help='Path to configuration file')
@click.pass_context
def cli(ctx, debug, config):
    """
    cloudspend - Multi-cloud cost analytics

    Detect anomalies, forecast spend, generate optimization recommendations
    and monitor budgets across AWS, Azure and GCP.
    """
    ctx.ensure_object(dict)

    try:
        settings = reload_settings(Path(config) if config else None)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    setup_logging(
        level="DEBUG" if debug else settings.logging.level,
        log_file=settings.logging.file,
        structured=settings.logging.structured,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
        handler=RichHandler(console=err_console, rich_tracebacks=True, show_path=debug),
    )
    if debug:
        logging.getLogger(__name__).debug("Debug logging enabled")

    ctx.obj['settings'] = settings
    ctx.obj['console'] = console


# Register commands
cli.add_command(analyze.analyze)
cli.add_command(anomalies.anomalies)
cli.add_command(forecast.forecast)
cli.add_command(recommend.recommend)
cli.add_command(monitor.monitor)
cli.add_command(sample.sample)


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information"""
    console.print(f"[bold blue]cloudspend[/bold blue] version [green]{__version__}[/green]")
    console.print("Multi-cloud cost analytics and anomaly detection")


if __name__ == '__main__':
    cli()
