"""Command-line interface for Hydro-Québec peak period tracking."""

import json
import logging
import time
from datetime import datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .classifier import in_season, season_window
from .collectors.chain import build_provider
from .config import HqPeakError, load_settings
from .models import PRECEDENCE
from .monitor import PeakMonitor
from .periods import cron_entries, extract_trigger_times, load_table, next_trigger

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, verbose):
    """Hydro-Québec peak periods - track PEAK, PRE_PEAK and PRE_PRE_PEAK."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    try:
        settings = load_settings()
        table = load_table(settings.periods_file)
    except HqPeakError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)
    ctx.obj["settings"] = settings
    ctx.obj["table"] = table


def make_monitor(ctx) -> PeakMonitor:
    settings = ctx.obj["settings"]
    return PeakMonitor(build_provider(settings), tz=settings.tz, table=ctx.obj["table"])


@cli.command()
@click.option("--at", "at", help="Evaluate at this ISO 8601 instant instead of now")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx, at, as_json):
    """Show which peak period is currently in effect."""
    tz = ctx.obj["settings"].tz
    try:
        now = None
        if at:
            now = datetime.fromisoformat(at)
            if now.tzinfo is None:
                now = now.replace(tzinfo=tz)
        snapshot = make_monitor(ctx).evaluate(now)
    except (ValueError, HqPeakError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    if as_json:
        data = {
            "now": snapshot.now.isoformat(),
            "in_season": in_season(snapshot.now, tz),
            "active": snapshot.active.value if snapshot.active else None,
            "states": {p.value: v for p, v in snapshot.states.items()},
            "events": len(snapshot.events),
        }
        console.print(json.dumps(data, indent=2))
        return

    local_now = snapshot.now.astimezone(tz)
    table = Table(title=f"Peak periods @ {local_now.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    table.add_column("Period", style="cyan")
    table.add_column("State", justify="center")

    for period_type in PRECEDENCE:
        state = "[red]ON[/red]" if snapshot.states[period_type] else "[green]off[/green]"
        table.add_row(period_type.value, state)

    console.print(table)

    if not in_season(snapshot.now, tz):
        start, end = season_window(snapshot.now, tz)
        console.print(
            f"[yellow]Outside peak season ({start.date()} → {end.date()})[/yellow]"
        )
    if not snapshot.events:
        console.print("[yellow]No peak events retrieved[/yellow]")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def events(ctx, as_json):
    """List peak events announced by the configured providers."""
    settings = ctx.obj["settings"]
    try:
        event_list = build_provider(settings).retrieve_events()
    except HqPeakError as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    if as_json:
        console.print(
            json.dumps(
                [{"begin": e.begin.isoformat(), "end": e.end.isoformat()} for e in event_list],
                indent=2,
            )
        )
        return

    if not event_list:
        console.print("[yellow]No peak events found[/yellow]")
        return

    table = Table(title="Peak Events")
    table.add_column("Date", style="cyan")
    table.add_column("Time")
    table.add_column("Duration", justify="right")

    for event in sorted(event_list, key=lambda e: e.begin):
        begin = event.begin.astimezone(settings.tz)
        end = event.end.astimezone(settings.tz)
        hours = (event.end - event.begin).total_seconds() / 3600
        table.add_row(
            begin.strftime("%Y-%m-%d"),
            f"{begin.strftime('%H:%M')} - {end.strftime('%H:%M')}",
            f"{hours:g} h",
        )

    console.print(table)


@cli.command()
@click.option("--cron", "as_cron", is_flag=True, help="Output crontab schedule lines")
@click.option("--command", "command", default="hqpeak status", help="Command for crontab lines")
@click.pass_context
def schedule(ctx, as_cron, command):
    """Show the daily times at which peak states should be re-evaluated."""
    settings = ctx.obj["settings"]
    table_ = ctx.obj["table"]

    if as_cron:
        # Print plainly so the output can be piped into crontab
        print(f"CRON_TZ={settings.timezone}")
        for entry in cron_entries(table_):
            print(f"{entry} {command}")
        return

    table = Table(title=f"Trigger times ({settings.timezone})")
    table.add_column("Time", style="cyan")
    for t in extract_trigger_times(table_):
        table.add_row(str(t))
    console.print(table)


@cli.command()
@click.option("--once", is_flag=True, help="Evaluate once and exit")
@click.pass_context
def watch(ctx, once):
    """Re-evaluate peak states at every trigger time.

    Runs in the foreground; stop with Ctrl+C.
    """
    settings = ctx.obj["settings"]
    try:
        monitor = make_monitor(ctx)
    except HqPeakError as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    try:
        while True:
            transitions = monitor.update()
            stamp = monitor.clock().strftime("%Y-%m-%d %H:%M:%S")
            if transitions:
                for t in transitions:
                    colour = "red" if t.on else "green"
                    console.print(
                        f"[{colour}]{stamp} {t.period_type.value} → "
                        f"{'ON' if t.on else 'OFF'}[/{colour}]"
                    )
            else:
                console.print(f"[dim]{stamp} no change[/dim]")

            if once:
                return

            wake = next_trigger(monitor.clock(), settings.tz, ctx.obj["table"])
            console.print(f"[cyan]Next check at {wake.strftime('%Y-%m-%d %H:%M')}[/cyan]")
            time.sleep(max(0.0, (wake - monitor.clock()).total_seconds()) + 1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


if __name__ == "__main__":
    cli()
