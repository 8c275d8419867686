import click

from timesync.constants import DEFAULT_WEB_PORT
from timesync.errors import ConfigurationError
from timesync.settings import TimeSyncSettings
from timesync.timesync_daemon import TimeSyncDaemon


@click.command()
@click.option("--log-level", default="INFO", help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
@click.option("--source", "sources", multiple=True, help="Time source host, in priority order (repeatable)")
@click.option("--retries", type=int, default=None, help="Attempts per source beyond the first")
@click.option("--interval-ms", type=int, default=None, help="Delay between attempts in milliseconds")
@click.option("--periodicity-minutes", type=int, default=None, help="Minutes between automatic syncs (0 = manual only)")
@click.option("--dry-run", is_flag=True, default=False, help="Log clock changes without applying them")
@click.option("--web-host", default=None, help="Web server bind address")
@click.option("--web-port", default=None, type=int, help=f"Web server port (default: {DEFAULT_WEB_PORT})")
@click.option("--no-web", is_flag=True, default=False, help="Do not start the HTTP control interface")
@click.option(
    "--save-config",
    is_flag=True,
    default=False,
    help="Write the effective settings to the config file and exit",
)
def cli(log_level, sources, retries, interval_ms, periodicity_minutes, dry_run, web_host, web_port, no_web, save_config):
    overrides = {
        "sources": list(sources) or None,
        "retries": retries,
        "interval_ms": interval_ms,
        "periodicity_minutes": periodicity_minutes,
        "web_host": web_host,
        "web_port": web_port,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if dry_run:
        overrides["dry_run"] = True

    settings = TimeSyncSettings(log_level=log_level.upper(), **overrides)
    if save_config:
        try:
            path = settings.save_to_file()
        except (ConfigurationError, IOError) as e:
            raise click.ClickException(str(e))
        click.echo(f"Saved settings to {path}")
        return

    daemon = TimeSyncDaemon(settings, enable_web=not no_web)
    daemon.run()


if __name__ == "__main__":
    cli()
