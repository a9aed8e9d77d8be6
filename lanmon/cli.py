import asyncio

import typer
from rich.console import Console
from rich.table import Table

console = Console()
cli_app = typer.Typer(name="lanmon", help="LAN Monitor command-line tools")

_STATUS_STYLE = {"up": "green", "down": "red", "warning": "yellow", "unknown": "dim"}


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


async def _ensure_db():
    from lanmon.core.database import init_db
    await init_db()


def _styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


@cli_app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: HOST setting)"),
    port: int = typer.Option(None, "--port", help="Listen port (default: PORT setting)"),
):
    """Run the HTTP API."""
    import uvicorn

    from lanmon.config import settings

    uvicorn.run("lanmon.main:app", host=host or settings.host, port=port or settings.port)


@cli_app.command("check")
def check():
    """Run one sweep over every target and print the outcomes."""
    async def _check():
        import httpx

        from lanmon.main import build_monitor

        await _ensure_db()
        async with httpx.AsyncClient() as client:
            monitor = build_monitor(client)
            return await monitor.sweep()

    outcomes = _run_async(_check())

    table = Table(title="Service Checks")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Host")
    table.add_column("Status")
    table.add_column("Response", justify="right")
    table.add_column("Detail")

    for o in outcomes:
        response = f"{o.response_ms} ms" if o.response_ms is not None else "-"
        detail = o.error or (f"HTTP {o.status_code}" if o.status_code else "")
        if o.extra and o.extra.get("models"):
            detail = ", ".join(m["name"] for m in o.extra["models"])
        table.add_row(o.id, o.name, o.host, _styled(o.status), response, detail)

    console.print(table)
    if any(o.status == "down" for o in outcomes):
        raise typer.Exit(code=1)


@cli_app.command("gpu")
def gpu():
    """Read GPU telemetry once."""
    from lanmon.config import settings
    from lanmon.services.gpu import GpuReader, gpu_query_command

    reader = GpuReader(
        command=gpu_query_command(settings.lanmon_gpu_command),
        timeout_s=settings.lanmon_gpu_timeout_seconds,
        warning_temp_c=settings.lanmon_gpu_warning_temp_c,
    )
    status = _run_async(reader.read_status())

    if status.status == "error":
        console.print(f"[bold red]GPU query failed:[/bold red] {status.error}")
        raise typer.Exit(code=1)

    table = Table(title="GPUs")
    table.add_column("#", style="cyan")
    table.add_column("Name")
    table.add_column("Util %", justify="right")
    table.add_column("Mem %", justify="right")
    table.add_column("Temp °C", justify="right")
    table.add_column("Power W", justify="right")
    table.add_column("Status")

    def fmt(value):
        return "N/A" if value is None else f"{value:g}"

    for g in status.gpus:
        table.add_row(
            str(g.id),
            g.name,
            fmt(g.utilization),
            fmt(g.memory_utilization),
            fmt(g.temperature),
            fmt(g.power_draw),
            _styled(g.status),
        )
    console.print(table)


@cli_app.command("models")
def models(
    service_id: str = typer.Argument("ollama", help="Inference target id"),
):
    """List installed and loaded models on an inference server."""
    from lanmon.core.exceptions import LanMonitorError

    async def _models():
        import httpx

        from lanmon.main import build_monitor

        async with httpx.AsyncClient() as client:
            return await build_monitor(client).model_inventory(service_id)

    try:
        inventory = _run_async(_models())
    except LanMonitorError as e:
        console.print(f"[bold red]{e.message}[/bold red]")
        raise typer.Exit(code=1)

    loaded = {m.name for m in inventory.loaded}
    table = Table(title=f"Models on {inventory.service_id}")
    table.add_column("Name", style="cyan")
    table.add_column("Size GB", justify="right")
    table.add_column("Loaded")
    for m in inventory.installed:
        size = "-" if m.size_gb is None else f"{m.size_gb:g}"
        table.add_row(m.name, size, "[green]yes[/green]" if m.name in loaded else "")
    console.print(table)


@cli_app.command("history")
def history(
    service_id: str = typer.Argument(None, help="Target id, e.g. 'ollama'; omit for every target"),
    hours: int = typer.Option(24, "--hours", help="Trailing window, clamped to 1-168"),
):
    """Show recorded checks and the uptime summary for one target, or all of them."""
    from lanmon.services.history import HistoryStore, clamp_hours
    from lanmon.services.uptime import summarize_uptime

    window = clamp_hours(hours)

    if service_id is None:
        from datetime import timedelta

        from lanmon.core.database import utcnow

        async def _all():
            await _ensure_db()
            return await HistoryStore().all_history()

        cutoff = utcnow() - timedelta(hours=window)
        grouped = {
            sid: [e for e in entries if e.timestamp > cutoff]
            for sid, entries in _run_async(_all()).items()
        }
        grouped = {sid: entries for sid, entries in grouped.items() if entries}
        if not grouped:
            console.print(f"[dim]No history in the last {window}h.[/dim]")
            return

        table = Table(title=f"All targets: last {window}h")
        table.add_column("ID", style="cyan")
        table.add_column("Samples", justify="right")
        table.add_column("Uptime", justify="right")
        table.add_column("Last status")
        for sid, entries in grouped.items():
            summary = summarize_uptime(entries)
            table.add_row(sid, str(len(entries)), f"{summary.percent_up}%", _styled(entries[-1].status))
        console.print(table)
        return

    async def _history():
        await _ensure_db()
        return await HistoryStore().query(service_id, window)

    entries = _run_async(_history())
    summary = summarize_uptime(entries)

    if not entries:
        console.print(f"[dim]No history for '{service_id}' in the last {window}h.[/dim]")
        return

    table = Table(title=f"{service_id}: last {window}h")
    table.add_column("Timestamp")
    table.add_column("Status")
    table.add_column("Response", justify="right")
    for e in entries:
        response = f"{e.response_ms} ms" if e.response_ms is not None else "-"
        table.add_row(e.timestamp.strftime("%Y-%m-%d %H:%M:%S"), _styled(e.status), response)
    console.print(table)

    segments = " ".join(f"{s.status}x{s.count}" for s in summary.segments)
    console.print(f"\n  Uptime: [bold]{summary.percent_up}%[/bold]  ({len(entries)} samples)")
    console.print(f"  Segments: {segments}\n")


@cli_app.command("clear-history")
def clear_history(
    service_id: str = typer.Argument(help="Target id whose history is deleted"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Delete every recorded check for one target."""
    from lanmon.services.history import HistoryStore

    if not yes:
        typer.confirm(f"Delete all history for '{service_id}'?", abort=True)

    async def _clear():
        await _ensure_db()
        return await HistoryStore().clear(service_id)

    removed = _run_async(_clear())
    console.print(f"[bold]Removed {removed} history entr{'y' if removed == 1 else 'ies'} for '{service_id}'.[/bold]")


@cli_app.command("prune-alerts")
def prune_alerts(
    days: int = typer.Option(7, "--days", help="Delete alerts older than this many days"),
):
    """Delete old alerts."""
    from lanmon.services.alerts import AlertRecorder

    async def _prune():
        await _ensure_db()
        return await AlertRecorder().prune(days)

    removed = _run_async(_prune())
    console.print(f"[bold]Removed {removed} alert(s) older than {days} day(s).[/bold]")


def main():
    cli_app()


if __name__ == "__main__":
    main()
