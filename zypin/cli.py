import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from zypin.config import ZypinConfig, configure_logging, load_config
from zypin.context import ZypinContext, build_context
from zypin.errors import StatusServerError
from zypin.registry.catalog import ProviderRegistry
from zypin.server.status_server import StatusProbe, probe_status
from zypin.supervisor.process_probe import terminate_pid

app = typer.Typer(help="Tool-agnostic testing framework controller")


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Discover capability providers and supervise their processes."""
    if debug:
        os.environ["ZYPIN_LOG_LEVEL"] = "debug"


def _load() -> ZypinConfig:
    config = load_config()
    configure_logging(config.log_level)
    return config


def parse_package_names(raw: str) -> list[str]:
    names: list[str] = []
    for item in raw.split(","):
        name = item.strip()
        if name and name not in names:
            names.append(name)
    return names


def read_pid_file(path: Path) -> Optional[int]:
    if not path.exists():
        return None
    try:
        pid = int(path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None
    return pid if pid > 0 else None


def write_pid_file(path: Path, pid: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(pid), encoding="utf-8")


def remove_pid_file(path: Path) -> None:
    if path.exists():
        path.unlink()


def _echo_packages(registry: ProviderRegistry) -> None:
    typer.echo("Available packages:")
    typer.echo("=" * 20)
    providers = registry.providers()
    if not providers:
        typer.echo("No packages found in configured plugin paths:")
        for path in registry.root_paths:
            typer.echo(f"  {path}")
        return
    for provider in providers:
        capabilities = ", ".join(sorted(provider.capabilities))
        typer.echo(f"  * {provider.name} ({provider.version})")
        typer.echo(f"    Capabilities: {capabilities}")
        template_names = [template.name for template in registry.templates_for(provider.name)]
        if template_names:
            typer.echo(f"    Templates: {', '.join(template_names)}")


async def start_packages(context: ZypinContext, names: list[str]) -> int:
    """Start each named package in order; returns how many started."""
    started = 0
    for name in names:
        provider = context.registry.lookup(name)
        if provider is None:
            typer.echo(f"Package '{name}' not found")
            continue
        if not provider.has_start:
            typer.echo(f"Package '{name}' does not support start functionality")
            continue
        if await context.supervisor.start_package(name, provider):
            started += 1
    return started


async def run_controller(context: ZypinContext, packages: Optional[str]) -> None:
    probe = await context.server.status()
    if probe.is_running:
        typer.echo("Zypin server is already running")
        typer.echo(f"Server running on {probe.url}")
        return

    try:
        typer.echo("Starting Zypin server...")
        await context.server.start_server()
    except StatusServerError as exc:
        typer.echo(f"Failed to start server: {exc}")
        typer.echo("Aborting start command")
        raise typer.Exit(code=1)
    typer.echo(f"Server running on port {context.server.port}")

    if not packages:
        _echo_packages(context.registry)
        typer.echo("\nUsage: zypin start --packages <package1,package2,...>")
        typer.echo("No packages specified. Stopping server.")
        await context.server.stop_server()
        return

    names = parse_package_names(packages)
    stop_event = asyncio.Event()
    context.supervisor.install_signal_handlers(asyncio.get_running_loop(), stop_event.set)
    write_pid_file(context.config.pid_path, os.getpid())

    # A signal during a pending start abandons the remaining starts.
    starting = asyncio.ensure_future(start_packages(context, names))
    stopping = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({starting, stopping}, return_when=asyncio.FIRST_COMPLETED)
        if starting.done():
            typer.echo(f"Started {starting.result()} of {len(names)} packages")
            await stopping
        else:
            typer.echo("Interrupted while starting packages")
    finally:
        for task in (starting, stopping):
            task.cancel()
        await asyncio.gather(starting, stopping, return_exceptions=True)
        context.supervisor.cleanup()
        await context.server.stop_server()
        remove_pid_file(context.config.pid_path)


@app.command()
def start(
    packages: Optional[str] = typer.Option(None, "--packages", help="Comma-separated list of packages to start"),
):
    """Start the status server and the requested packages, then supervise until interrupted."""
    context = build_context(_load())
    asyncio.run(run_controller(context, packages))


def stop_controller(context: ZypinContext) -> None:
    pid_path = context.config.pid_path
    controller_pid = read_pid_file(pid_path)
    if controller_pid is not None and controller_pid != os.getpid():
        if terminate_pid(controller_pid):
            typer.echo(f"Controller stopping (PID: {controller_pid})")
        else:
            typer.echo("Controller process not found. Cleaning up PID file.")
    context.supervisor.cleanup()
    remove_pid_file(pid_path)


@app.command()
def stop():
    """Stop the running controller and every tracked package."""
    context = build_context(_load())
    stop_controller(context)
    typer.echo("All packages stopped")


def report_health(probe: StatusProbe) -> None:
    """Print the status payload carried by probe; exits 1 when unusable."""
    if not probe.is_running:
        typer.echo("Zypin server is not running")
        if probe.error:
            typer.echo(f"  error: {probe.error}")
        elif probe.status_code is not None:
            typer.echo(f"  status: HTTP {probe.status_code}")
        typer.echo('Use "zypin start" to start the server first')
        raise typer.Exit(code=1)

    status = probe.payload
    if not isinstance(status, dict):
        typer.echo("Server returned an unexpected status payload")
        raise typer.Exit(code=1)

    typer.echo("Zypin Framework Status")
    typer.echo("=" * 40)
    if not status.get("running"):
        typer.echo("No packages currently running on server")
        return
    typer.echo(f"{status['running']} package(s) running on server:")
    for proc in status.get("packages", []):
        if not isinstance(proc, dict):
            continue
        typer.echo(f"  * {proc.get('name')} (PID: {proc.get('pid')})")
        started_at = proc.get("startTime")
        if started_at:
            try:
                started_at = datetime.fromisoformat(str(started_at)).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
            except ValueError:
                pass
            typer.echo(f"     Started: {started_at}")


@app.command()
def health(
    server: Optional[str] = typer.Option(None, "--server", help="Zypin server URL (e.g., http://server:8421)"),
):
    """Check health status of running packages."""
    config = _load()
    url = (server or config.server_url).rstrip("/")
    report_health(asyncio.run(probe_status(url, timeout_seconds=config.probe_timeout_seconds)))


@app.command()
def packages():
    """List discovered packages and their capabilities."""
    config = _load()
    _echo_packages(ProviderRegistry(config.plugin_paths))


@app.command()
def templates(
    package: Optional[str] = typer.Option(None, "--package", help="Only list templates of this package"),
):
    """List templates bundled with discovered packages."""
    config = _load()
    registry = ProviderRegistry(config.plugin_paths)
    items = registry.templates_for(package) if package else registry.templates()
    if not items:
        typer.echo("No templates found")
        return
    typer.echo("Available templates:")
    for template in items:
        typer.echo(f"  {template.namespaced_name} - {template.description}")


if __name__ == "__main__":
    app()
