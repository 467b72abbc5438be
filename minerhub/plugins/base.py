from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class MinerBase:
    """Identity shared by every adapter: the binary and the directory holding it."""

    executable_name: str
    executable_path: Path

    @classmethod
    def from_path(cls, path: str) -> "MinerBase":
        binary = Path(path)
        return cls(executable_name=binary.name, executable_path=binary.parent)


class ProcessingConfig(BaseModel):
    max_usage: int = Field(default=0, description="Adapter-specific usage cap, 0 = unset.")
    threads: int = Field(default=0, ge=0)
    max_threads: int = Field(default=0, ge=0, description="Logical CPUs on the host.")
    type: str = ""


class Stats(BaseModel):
    hashrate: float = 0.0
    hashrate_human: str = ""
    current_difficulty: int = 0
    uptime: int = 0
    uptime_human: str = ""
    shares_good: int = 0
    # total - good as reported; negative values mean the miner's counters disagree
    shares_bad: int = 0
    errors: List[str] = Field(default_factory=list)


class Miner(ABC):
    """Base protocol for miner adapters."""

    name: str
    base: MinerBase

    @abstractmethod
    def write_config(
        self,
        pool_endpoint: str,
        wallet_address: str,
        coin_algorithm: str,
        processing_config: ProcessingConfig,
    ) -> None:
        """Write the miner's native config files next to its executable."""

    @abstractmethod
    def get_processing_config(self) -> ProcessingConfig:
        """Return the resources the miner is currently configured to use."""

    @abstractmethod
    def get_stats(self) -> Stats:
        """Fetch live telemetry and normalize it."""

    def get_name(self) -> str:
        return self.name

    @abstractmethod
    def get_last_hashrate(self) -> float:
        """Return the hashrate cached by the last successful get_stats call."""
