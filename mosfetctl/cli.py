"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import typer

from mosfetctl import __version__
from mosfetctl.core.config import load_profile
from mosfetctl.core.errors import ArgumentCountError, ArgumentError, MosfetctlError
from mosfetctl.core.model import OutputState, SerialLinkConfig
from mosfetctl.core.service import MosfetService

EXIT_FAIL = -1
EXIT_ARG_COUNT = -2

_STATE_WORDS = {
    "on": OutputState.ON,
    "up": OutputState.ON,
    "1": OutputState.ON,
    "off": OutputState.OFF,
    "down": OutputState.OFF,
    "0": OutputState.OFF,
}

WARRANTY = """\
Copyright (c) 2016-2023 Sequent Microsystems

This program is free software; you can redistribute it and/or modify
it under the terms of the GNU Lesser General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public License
along with this program. If not, see <http://www.gnu.org/licenses/>."""

LEVEL_HELP = "Board stack level 0..7"

# Let negative numbers through as positionals so range checks report them.
NUMERIC_ARGS = {"ignore_unknown_options": True}

app = typer.Typer(help="8-MOSFET expansion board control over I2C")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log bus traffic to stderr"),
    config: Path | None = typer.Option(None, "--config", help="Profile YAML overriding the defaults"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = config


def _build_service(ctx: typer.Context) -> MosfetService:
    loaded = load_profile(ctx.obj)
    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return MosfetService(profile=loaded.profile)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except ArgumentCountError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ARG_COUNT) from None
    except MosfetctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAIL) from None


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ArgumentError(f"Invalid {what} '{text}'") from None


def _parse_state(text: str) -> OutputState:
    state = _STATE_WORDS.get(text.strip().lower())
    if state is None:
        raise ArgumentError(f"Invalid mosfet state '{text}', use on/off")
    return state


@app.command("discovery")
def discovery(ctx: typer.Context) -> None:
    """List all boards on the bus: count and stack level of every board."""
    with _reporting_errors():
        result = _build_service(ctx).discover()
        typer.echo(f"{result.count} board(s) detected")
        if result.count:
            typer.echo("Id: " + " ".join(str(level) for level in reversed(result.levels)))


@app.command("write", context_settings=NUMERIC_ARGS)
def write(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    values: list[str] | None = typer.Argument(None, metavar="CHANNEL STATE | VALUE"),
) -> None:
    """Set one mosfet on/off, or all eight from a 0..255 value.

    Examples: `write 0 2 on` switches mosfet #2 on board #0 on;
    `write 0 255` switches every mosfet on.
    """
    with _reporting_errors():
        values = values or []
        if len(values) == 2:
            channel = _parse_int(values[0], "mosfet number")
            state = _parse_state(values[1])
            _build_service(ctx).set_channel(level, channel, state)
        elif len(values) == 1:
            value = _parse_int(values[0], "mosfet value")
            _build_service(ctx).set_all(level, value)
        else:
            raise ArgumentCountError(
                "Usage: mosfetctl write <level> <channel> <on/off> | mosfetctl write <level> <value>"
            )


@app.command("read", context_settings=NUMERIC_ARGS)
def read(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    channel: int | None = typer.Argument(None, help="Mosfet 1..8; omit to read all as one byte"),
) -> None:
    """Read one mosfet state (1/0) or the 8-mosfet value."""
    with _reporting_errors():
        service = _build_service(ctx)
        if channel is None:
            typer.echo(str(service.get_all(level)))
        else:
            typer.echo(str(int(service.get_channel(level, channel))))


@app.command("pwm-write", context_settings=NUMERIC_ARGS)
def pwm_write(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    channel: int = typer.Argument(..., help="Mosfet 1..8"),
    duty: float = typer.Argument(..., help="Fill factor 0..100 %"),
) -> None:
    """Set one mosfet PWM fill factor."""
    with _reporting_errors():
        _build_service(ctx).set_pwm(level, channel, duty)


@app.command("pwm-read", context_settings=NUMERIC_ARGS)
def pwm_read(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    channel: int = typer.Argument(..., help="Mosfet 1..8"),
) -> None:
    """Read one mosfet PWM fill factor."""
    with _reporting_errors():
        typer.echo(f"{_build_service(ctx).get_pwm(level, channel):.1f}")


@app.command("freq-write", context_settings=NUMERIC_ARGS)
def freq_write(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    hz: int = typer.Argument(..., help="PWM frequency 16..1000 Hz"),
) -> None:
    """Set the PWM frequency shared by all mosfets of a board."""
    with _reporting_errors():
        _build_service(ctx).set_frequency(level, hz)


@app.command("freq-read", context_settings=NUMERIC_ARGS)
def freq_read(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
) -> None:
    """Read the PWM frequency in Hz."""
    with _reporting_errors():
        typer.echo(str(_build_service(ctx).get_frequency(level)))


@app.command("serial-config-write", context_settings=NUMERIC_ARGS)
def serial_config_write(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    mode: int = typer.Argument(..., help="0 = disabled, 1 = Modbus RTU slave"),
    baud: int = typer.Argument(..., help="1200..921600"),
    stop_bits: int = typer.Argument(..., help="1 or 2"),
    parity: int = typer.Argument(..., help="0 = none, 1 = even, 2 = odd"),
    slave_address: int = typer.Argument(..., help="Modbus slave address 1..255"),
) -> None:
    """Write the RS485 communication settings.

    Example: `serial-config-write 0 1 9600 1 0 1` selects Modbus RTU at
    9600 bps, one stop bit, no parity, slave address 1 on board #0.
    """
    with _reporting_errors():
        config = SerialLinkConfig(
            mode=mode,
            baud=baud,
            stop_bits=stop_bits,
            parity=parity,
            slave_address=slave_address,
        )
        _build_service(ctx).set_serial_config(level, config)
        typer.echo("done")


@app.command("serial-config-read", context_settings=NUMERIC_ARGS)
def serial_config_read(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
) -> None:
    """Read the RS485 communication settings."""
    with _reporting_errors():
        config = _build_service(ctx).get_serial_config(level)
        typer.echo(
            "<mode> <baudrate> <stopbits> <parity> <add> "
            f"{config.mode} {config.baud} {config.stop_bits} {config.parity} {config.slave_address}"
        )


class _StdinVerdict:
    """Turns the first line typed on *stream* into a pass/fail answer."""

    def __init__(self, stream: TextIO) -> None:
        self._answer: bool | None = None
        self._thread = threading.Thread(target=self._read, args=(stream,), daemon=True)
        self._thread.start()

    def _read(self, stream: TextIO) -> None:
        line = stream.readline()
        self._answer = line.strip().lower() in {"y", "yes"}

    def __call__(self) -> bool | None:
        return self._answer


def _open_result_file(path: Path | None) -> TextIO | None:
    if path is None:
        return None
    try:
        return path.open("w", encoding="utf-8")
    except OSError as exc:
        typer.echo(f"Warning: could not open result file {path}, reporting to stdout: {exc}", err=True)
        return None


@app.command("self-test", context_settings=NUMERIC_ARGS)
def self_test(
    ctx: typer.Context,
    level: int = typer.Argument(..., help=LEVEL_HELP),
    output_file: Path | None = typer.Argument(None, help="Write the result line here instead of stdout"),
    cycles: int | None = typer.Option(None, "--cycles", help="Stop after N on/off sweeps"),
) -> None:
    """Turn the mosfets on and off in sequence until the operator answers."""
    with _reporting_errors():
        service = _build_service(ctx)
        result_file = _open_result_file(output_file)
        try:
            typer.echo("Are all mosfets and LEDs turning on and off in sequence?")
            typer.echo("Press y for Yes or any key for No....")
            report = service.self_test(level, _StdinVerdict(sys.stdin), max_cycles=cycles)
            line = "Mosfet Test ............................ " + ("PASS" if report.passed else "FAIL!")
            if result_file is None:
                typer.echo(line)
            else:
                result_file.write(line + "\n")
        finally:
            if result_file is not None:
                result_file.close()


@app.command("version")
def version() -> None:
    """Display the version number."""
    typer.echo(f"mosfetctl v{__version__}")
    typer.echo("This is free software with ABSOLUTELY NO WARRANTY.")
    typer.echo("For details type: mosfetctl warranty")


@app.command("warranty")
def warranty() -> None:
    """Display the warranty."""
    typer.echo(WARRANTY)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
