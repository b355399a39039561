"""CLI entry point for tidalrelay."""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
from pathlib import Path

import typer

from tidalrelay import __version__
from tidalrelay.config import TidalConfig
from tidalrelay.events.wire import EventType, Wire, WireEvent
from tidalrelay.fragment import paragraph_at
from tidalrelay.process.registry import SessionRegistry, ToggleOutcome

app = typer.Typer(
    name="tidalrelay",
    help="Send code to a live TidalCycles interpreter and watch what it says back.",
    no_args_is_help=True,
)

_EVENT_STYLES = {
    EventType.INFO: {},
    EventType.WARNING: {"fg": typer.colors.YELLOW},
    EventType.ERROR: {"fg": typer.colors.RED, "bold": True},
    EventType.STATUS: {"dim": True},
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_event(event: WireEvent) -> str:
    if event.type == EventType.ERROR:
        return f"{event.data['kind']}: {event.data['error']}"
    return event.data["text"]


def _print_events(events: queue.Queue[WireEvent | None]) -> None:
    """Print wire events until the wire closes."""
    while True:
        event = events.get()
        if event is None:
            return
        typer.secho(
            format_event(event),
            err=event.type == EventType.ERROR,
            **_EVENT_STYLES[event.type],
        )


def _start_printer(wire: Wire) -> threading.Thread:
    printer = threading.Thread(
        target=_print_events, args=(wire.subscribe(),), name="tidalrelay-printer", daemon=True
    )
    printer.start()
    return printer


def _load_registry(config_file: str | None) -> SessionRegistry:
    config = TidalConfig.load(config_file)
    return SessionRegistry(config)


def _close(registry: SessionRegistry, printer: threading.Thread) -> None:
    registry.shutdown()
    registry.wire.close()
    printer.join(timeout=1)


@app.command()
def console(
    start: bool = typer.Option(
        True, "--start/--no-start", help="Start a session right away."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Interactive console: type code, send it with an empty line.

    Commands: :toggle, :hush, :status, :quit
    """
    setup_logging(verbose)
    registry = _load_registry(config_file)
    printer = _start_printer(registry.wire)

    typer.echo(f"tidalrelay v{__version__}")
    typer.echo("Type code and finish a block with an empty line. :quit to exit.")
    if start:
        registry.toggle()

    block: list[str] = []
    try:
        while True:
            try:
                line = input()
            except EOFError:
                break

            command = line.strip()
            if not block and command.startswith(":"):
                if command == ":quit":
                    break
                elif command == ":toggle":
                    registry.toggle()
                elif command == ":hush":
                    registry.hush()
                elif command == ":status":
                    session = registry.current()
                    status = session.status.value if session else "stopped"
                    typer.echo(f"session: {status}")
                else:
                    typer.secho(f"Unknown command: {command}", fg=typer.colors.RED, err=True)
                continue

            if command:
                block.append(line)
                continue
            if block:
                registry.send_text("\n".join(block))
                block = []
        if block:
            registry.send_text("\n".join(block))
    except KeyboardInterrupt:
        typer.echo("")
    finally:
        _close(registry, printer)


@app.command()
def play(
    file: Path = typer.Argument(help="Tidal source file."),
    line: int = typer.Option(
        1, "--line", "-l", min=1, help="Send the block around this line (1-based)."
    ),
    wait: float = typer.Option(
        5.0, "--wait", "-w", min=0, help="Seconds to keep playing before stopping."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Start a session, send one block from FILE, play for a while, stop."""
    setup_logging(verbose)

    if not file.is_file():
        typer.echo(f"Error: File not found: {file}", err=True)
        raise typer.Exit(1)

    fragment = paragraph_at(file.read_text(encoding="utf-8"), line - 1)
    if fragment is None:
        typer.echo(f"Error: Line {line} of {file} is blank", err=True)
        raise typer.Exit(1)

    registry = _load_registry(config_file)
    printer = _start_printer(registry.wire)
    try:
        if registry.toggle() != ToggleOutcome.STARTED:
            raise typer.Exit(1)
        registry.send_text(fragment.text)
        time.sleep(wait)
        registry.hush()
    finally:
        _close(registry, printer)


@app.command("boot-script")
def boot_script(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print the path of the bootstrap script sessions will replay."""
    typer.echo(TidalConfig.load(config_file).boot_script)


@app.command()
def config(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print the resolved configuration as JSON."""
    typer.echo(json.dumps(TidalConfig.load(config_file).model_dump(), indent=2))


if __name__ == "__main__":
    app()
