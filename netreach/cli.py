"""Command-line interface for netreach."""

import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import click
from loguru import logger

from netreach import __version__
from netreach.core.config import Config
from netreach.core.errors import ConfigValidationError, ReachabilityError
from netreach.core.logger import configure_logging
from netreach.core.monitor import ReachabilityMonitor, new_monitor
from netreach.core.resolver import describe_target
from netreach.providers import default_provider

STATUS_MARKERS = {"wifi": "✓", "wwan": "◐", "unreachable": "✗"}


def _format_status(monitor: ReachabilityMonitor) -> str:
    status = monitor.status
    flags = monitor.flags
    rendered = flags.describe() if flags is not None else "?"
    return f"{STATUS_MARKERS[status.value]} {describe_target(monitor.hostname)}: {status} [{rendered}]"


def _allow_cellular(config: Config, no_cellular: bool) -> bool:
    return False if no_cellular else config.get_allow_cellular()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config: Optional[Path], verbose: bool):
    """netreach - Watch reachability of hosts and the default route."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config(config)
    cfg: Config = ctx.obj["config"]

    level = "DEBUG" if verbose else cfg.get_log_level()
    configure_logging(level, cfg.get("log_file"))
    ctx.obj["provider"] = default_provider(cfg)


@main.command()
@click.argument("hostname", required=False)
@click.option("--no-cellular", is_flag=True, help="Treat cellular connections as unreachable")
@click.pass_context
def status(ctx, hostname: Optional[str], no_cellular: bool):
    """Show the current reachability of HOSTNAME (default route if omitted)."""
    config: Config = ctx.obj["config"]

    try:
        monitor = new_monitor(
            hostname,
            provider=ctx.obj["provider"],
            allow_cellular=_allow_cellular(config, no_cellular),
        )
    except ReachabilityError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    try:
        click.echo(_format_status(monitor))
        flags = monitor.flags
        if flags:
            click.echo(f"  Flags: {', '.join(flags.names())}")
        else:
            click.echo("  Flags: none")
    finally:
        monitor.stop()


@main.command()
@click.argument("hostnames", nargs=-1)
@click.option("--no-cellular", is_flag=True, help="Treat cellular connections as unreachable")
@click.option("--count", type=int, default=None, help="Exit after this many changes")
@click.option("--duration", type=float, default=None, help="Exit after this many seconds")
@click.pass_context
def watch(ctx, hostnames, no_cellular: bool, count: Optional[int], duration: Optional[float]):
    """Print a line whenever the status of a target changes."""
    config: Config = ctx.obj["config"]
    targets: List[Optional[str]] = list(hostnames) or config.get_targets() or [None]

    done = threading.Event()
    lock = threading.Lock()
    seen = {"changes": 0}

    def on_change(monitor: ReachabilityMonitor):
        with lock:
            if done.is_set():
                return
            stamp = datetime.now().strftime("%H:%M:%S")
            click.echo(f"{stamp} {_format_status(monitor)}")
            seen["changes"] += 1
            if count is not None and seen["changes"] >= count:
                done.set()

    monitors: List[ReachabilityMonitor] = []
    try:
        for hostname in targets:
            monitor = new_monitor(
                hostname,
                provider=ctx.obj["provider"],
                allow_cellular=_allow_cellular(config, no_cellular),
                on_change=on_change,
            )
            monitors.append(monitor)
            monitor.start()

        logger.info(f"Watching {len(monitors)} target(s)")
        deadline = time.monotonic() + duration if duration is not None else None
        while not done.is_set():
            timeout = 0.5
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                timeout = min(timeout, remaining)
            done.wait(timeout)
    except ReachabilityError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    finally:
        for monitor in monitors:
            monitor.stop()


@main.group()
def target():
    """Manage watched targets."""
    pass


@target.command("list")
@click.pass_context
def target_list(ctx):
    """List watched targets."""
    config: Config = ctx.obj["config"]
    targets = config.get_targets()

    if not targets:
        click.echo("No targets configured (watching default route)")
        return

    click.echo("Watched targets:")
    for hostname in targets:
        click.echo(f"  {hostname}")


@target.command("add")
@click.argument("hostname")
@click.pass_context
def target_add(ctx, hostname: str):
    """Add a watched target."""
    config: Config = ctx.obj["config"]

    try:
        added = config.add_target(hostname)
    except ConfigValidationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if added:
        click.echo(f"✓ Target '{hostname}' added")
    else:
        click.echo(f"Target '{hostname}' is already watched")


@target.command("remove")
@click.argument("hostname")
@click.pass_context
def target_remove(ctx, hostname: str):
    """Remove a watched target."""
    config: Config = ctx.obj["config"]

    if config.remove_target(hostname):
        click.echo(f"✓ Target '{hostname}' removed")
    else:
        click.echo(f"✗ Target '{hostname}' not found", err=True)
        sys.exit(1)


@main.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show current configuration."""
    config: Config = ctx.obj["config"]
    click.echo(f"Configuration file: {config.config_path}")
    click.echo(f"Log level: {config.get('log_level')}")
    click.echo(f"Log file: {config.get('log_file') or '-'}")
    click.echo(f"Allow cellular: {config.get('allow_cellular')}")
    click.echo(f"Poll interval: {config.get('poll_interval')}s")
    click.echo(f"Cellular interfaces: {', '.join(config.get('interfaces.cellular', []))}")
    click.echo(f"Transient interfaces: {', '.join(config.get('interfaces.transient', []))}")
    click.echo(f"Targets: {', '.join(config.get_targets()) or '-'}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Set KEY (dot notation) to VALUE. Booleans and numbers are converted."""
    config: Config = ctx.obj["config"]

    lowered = value.lower()
    parsed = value
    if lowered in ("true", "yes", "on"):
        parsed = True
    elif lowered in ("false", "no", "off"):
        parsed = False
    else:
        try:
            parsed = float(value) if "." in value else int(value)
        except ValueError:
            pass

    try:
        config.set(key, parsed)
    except ConfigValidationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    config.save()
    click.echo(f"✓ {key} = {parsed!r}")


@config.command("import")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_import(ctx, file, file_format):
    """Import configuration from file."""
    config: Config = ctx.obj["config"]

    if config.import_config(file, file_format):
        click.echo(f"✓ Configuration imported from {file}")
    else:
        click.echo("✗ Failed to import configuration", err=True)
        sys.exit(1)


@config.command("export")
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_export(ctx, file, file_format):
    """Export configuration to file."""
    config: Config = ctx.obj["config"]

    if config.export_config(file, file_format):
        click.echo(f"✓ Configuration exported to {file}")
    else:
        click.echo("✗ Failed to export configuration", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
