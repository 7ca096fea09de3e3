"""Stack-level to bus-address resolution."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mosfetctl.core.constants import ALL_OFF_WIRE, CONFIG_REG, MAX_LEVEL, MIN_LEVEL, OUTPUT_PORT_REG
from mosfetctl.core.errors import ArgumentError, BusIoError, DiscoveryError
from mosfetctl.core.model import AddressCandidate, DiscoveryResult, ResolvedBoard
from mosfetctl.transports.base import Bus

LOGGER = logging.getLogger(__name__)

DEFAULT_CANDIDATES = (
    AddressCandidate(name="primary", base=0x38),
    AddressCandidate(name="alternate", base=0x20),
)
DEFAULT_LINE_INVERSION = 0x07


def validate_level(level: int) -> int:
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ArgumentError(f"Invalid stack level {level} [{MIN_LEVEL}..{MAX_LEVEL}]")
    return level


class BoardLocator:
    def __init__(
        self,
        bus: Bus,
        *,
        candidates: Sequence[AddressCandidate] = DEFAULT_CANDIDATES,
        line_inversion: int = DEFAULT_LINE_INVERSION,
    ) -> None:
        if not candidates:
            raise ValueError("at least one address candidate is required")
        self.bus = bus
        self.candidates = tuple(candidates)
        self.line_inversion = line_inversion

    def candidate_addresses(self, level: int) -> list[tuple[AddressCandidate, int]]:
        validate_level(level)
        return [(c, c.address(level, self.line_inversion)) for c in self.candidates]

    def _probe(self, address: int) -> int | None:
        try:
            return self.bus.read(address, CONFIG_REG, 1)[0]
        except BusIoError as exc:
            LOGGER.debug("No answer at 0x%02x: %s", address, exc)
            return None

    def _find(self, level: int) -> tuple[AddressCandidate, int, int] | None:
        for candidate, address in self.candidate_addresses(level):
            config = self._probe(address)
            if config is not None:
                return candidate, address, config
        return None

    def detect(self, level: int) -> ResolvedBoard | None:
        """Probe *level* without touching the board."""
        found = self._find(level)
        if found is None:
            return None
        candidate, address, _ = found
        return ResolvedBoard(level=level, address=address, candidate=candidate.name)

    def locate(self, level: int) -> ResolvedBoard:
        """Resolve *level* to a responding board, initializing a fresh I/O expander."""
        found = self._find(level)
        if found is None:
            raise DiscoveryError(f"8-MOSFETS card id {level} not detected")
        candidate, address, config = found

        initialized = False
        if config != 0:
            LOGGER.info(
                "Initializing board at level %d (0x%02x, config register 0x%02x)",
                level,
                address,
                config,
            )
            self.bus.write(address, CONFIG_REG, bytes([0x00]))
            self.bus.write(address, OUTPUT_PORT_REG, bytes([ALL_OFF_WIRE]))
            initialized = True

        return ResolvedBoard(
            level=level,
            address=address,
            candidate=candidate.name,
            initialized=initialized,
        )

    def discover(self) -> DiscoveryResult:
        levels = tuple(
            level
            for level in range(MIN_LEVEL, MAX_LEVEL + 1)
            if self.detect(level) is not None
        )
        return DiscoveryResult(levels=levels)
