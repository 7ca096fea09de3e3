"""Service layer used by CLI and API frontends."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from mosfetctl.core.codec import (
    PWM_DUTY_LAYOUT,
    decode_duty,
    decode_frequency,
    decode_serial_config,
    duty_to_raw,
    encode_duty,
    encode_frequency,
    encode_serial_config,
    pwm_register,
    validate_serial_config,
)
from mosfetctl.core.config import load_profile
from mosfetctl.core.constants import (
    MAX_CHANNEL,
    MIN_CHANNEL,
    OUTPUT_PORT_REG,
    PWM_FREQUENCY_REG,
    PWM_FREQUENCY_SIZE,
    PWM_SIZE,
    SERIAL_SETTINGS_REG,
    SERIAL_SETTINGS_SIZE,
)
from mosfetctl.core.errors import ArgumentError
from mosfetctl.core.locator import BoardLocator, validate_level
from mosfetctl.core.model import (
    DiscoveryResult,
    OutputState,
    Profile,
    ResolvedBoard,
    SelfTestReport,
    SerialLinkConfig,
)
from mosfetctl.core.mutex import BusMutex, PosixBusMutex
from mosfetctl.core.remap import (
    decode_channel_state,
    encode_channel_state,
    logical_to_wire,
    validate_channel,
    wire_to_logical,
)
from mosfetctl.core.verify import write_verify
from mosfetctl.transports.base import Bus
from mosfetctl.transports.smbus import SMBus2Bus

LOGGER = logging.getLogger(__name__)

Verdict = Callable[[], bool | None]


class MosfetService:
    def __init__(
        self,
        *,
        bus: Bus | None = None,
        mutex: BusMutex | None = None,
        profile: Profile | None = None,
    ) -> None:
        if profile is None:
            loaded = load_profile()
            profile = loaded.profile
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.profile = profile
        self.bus = bus or SMBus2Bus(profile.bus_number)
        self.mutex = mutex or PosixBusMutex(
            profile.lock.name,
            max_count=profile.lock.initial_count,
            timeout_s=profile.lock.timeout_s,
        )
        self.locator = BoardLocator(
            self.bus,
            candidates=profile.candidates,
            line_inversion=profile.line_inversion,
        )

    @contextmanager
    def _board(self, level: int) -> Iterator[ResolvedBoard]:
        validate_level(level)
        with self.mutex:
            yield self.locator.locate(level)

    # -- Discovery ------------------------------------------------------

    def discover(self) -> DiscoveryResult:
        with self.mutex:
            result = self.locator.discover()
        LOGGER.debug("Discovered boards at levels %s", result.levels)
        return result

    def resolve(self, level: int) -> ResolvedBoard:
        with self._board(level) as board:
            return board

    # -- Output state ---------------------------------------------------

    def _read_port(self, board: ResolvedBoard) -> int:
        return self.bus.read(board.address, OUTPUT_PORT_REG, 1)[0]

    def _write_port(self, board: ResolvedBoard, port: int) -> None:
        self.bus.write(board.address, OUTPUT_PORT_REG, bytes([port]))

    def _set_channel(self, board: ResolvedBoard, channel: int, state: OutputState) -> None:
        self._write_port(board, encode_channel_state(self._read_port(board), channel, state))

    def _verified_channel(self, board: ResolvedBoard, channel: int, state: OutputState) -> None:
        result = write_verify(
            lambda: self._set_channel(board, channel, state),
            lambda: decode_channel_state(self._read_port(board), channel),
            lambda read: read == state,
            attempts=self.profile.verify_attempts,
        )
        result.raise_for_outcome(f"mosfet {channel}")

    def set_channel(self, level: int, channel: int, state: OutputState) -> ResolvedBoard:
        validate_channel(channel)
        state = OutputState(state)
        with self._board(level) as board:
            self._verified_channel(board, channel, state)
        return board

    def set_all(self, level: int, value: int) -> ResolvedBoard:
        wire = logical_to_wire(value)
        with self._board(level) as board:
            result = write_verify(
                lambda: self._write_port(board, wire),
                lambda: wire_to_logical(self._read_port(board)),
                lambda read: read == value,
                attempts=self.profile.verify_attempts,
            )
            result.raise_for_outcome("mosfets")
        return board

    def get_channel(self, level: int, channel: int) -> OutputState:
        validate_channel(channel)
        with self._board(level) as board:
            return decode_channel_state(self._read_port(board), channel)

    def get_all(self, level: int) -> int:
        with self._board(level) as board:
            return wire_to_logical(self._read_port(board))

    # -- PWM ------------------------------------------------------------

    def set_pwm(self, level: int, channel: int, duty: float) -> float:
        """Write a duty cycle and return the value the board confirmed."""
        register = pwm_register(channel)
        expected = duty_to_raw(duty)
        payload = encode_duty(duty)
        with self._board(level) as board:
            result = write_verify(
                lambda: self.bus.write(board.address, register, payload),
                lambda: self.bus.read(board.address, register, PWM_SIZE),
                lambda read: PWM_DUTY_LAYOUT.unpack(read)["raw"] == expected,
                attempts=self.profile.verify_attempts,
            )
            confirmed = result.raise_for_outcome(f"mosfet {channel} PWM (or not a PWM capable board)")
        return decode_duty(confirmed)

    def get_pwm(self, level: int, channel: int) -> float:
        register = pwm_register(channel)
        with self._board(level) as board:
            return decode_duty(self.bus.read(board.address, register, PWM_SIZE))

    def set_frequency(self, level: int, hz: int) -> None:
        payload = encode_frequency(hz)
        with self._board(level) as board:
            self.bus.write(board.address, PWM_FREQUENCY_REG, payload)

    def get_frequency(self, level: int) -> int:
        with self._board(level) as board:
            return decode_frequency(self.bus.read(board.address, PWM_FREQUENCY_REG, PWM_FREQUENCY_SIZE))

    # -- Serial link ----------------------------------------------------

    def set_serial_config(self, level: int, config: SerialLinkConfig) -> None:
        validate_serial_config(config, strict_slave_address=self.profile.strict_slave_address)
        payload = encode_serial_config(config)
        with self._board(level) as board:
            self.bus.write(board.address, SERIAL_SETTINGS_REG, payload)

    def get_serial_config(self, level: int) -> SerialLinkConfig:
        with self._board(level) as board:
            return decode_serial_config(
                self.bus.read(board.address, SERIAL_SETTINGS_REG, SERIAL_SETTINGS_SIZE)
            )

    # -- Self test ------------------------------------------------------

    def self_test(
        self,
        level: int,
        verdict: Verdict,
        *,
        max_cycles: int | None = None,
    ) -> SelfTestReport:
        """Sweep every channel ON then OFF until *verdict* returns True or False.

        *verdict* is polled after each transition; None keeps the sweep going.
        Running out of *max_cycles* without a verdict counts as a failure. All
        channels are switched OFF before returning, whatever the outcome.
        """
        if max_cycles is not None and max_cycles < 1:
            raise ArgumentError("max_cycles must be >= 1")

        with self._board(level) as board:
            cycles = 0
            answer: bool | None = None
            try:
                while answer is None and (max_cycles is None or cycles < max_cycles):
                    cycles += 1
                    answer = self._sweep(board, verdict)
            finally:
                self._write_port(board, logical_to_wire(0))
        return SelfTestReport(board=board, passed=answer is True, cycles=cycles)

    def _sweep(self, board: ResolvedBoard, verdict: Verdict) -> bool | None:
        for state in (OutputState.ON, OutputState.OFF):
            for channel in range(MIN_CHANNEL, MAX_CHANNEL + 1):
                self._verified_channel(board, channel, state)
                if self.profile.self_test_step_s:
                    time.sleep(self.profile.self_test_step_s)
                answer = verdict()
                if answer is not None:
                    return answer
        return None
