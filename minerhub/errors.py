from __future__ import annotations


class MinerError(Exception):
    """Base class for errors raised by miner adapters."""


class ConfigurationError(MinerError):
    """Adapter could not be built from the supplied configuration."""


class TransportError(MinerError):
    """The miner's telemetry endpoint could not be reached."""


class DecodeError(MinerError):
    """The telemetry response did not match the expected schema."""
