from __future__ import annotations

from typing import Dict, Type

from minerhub.config import MinerConfig
from minerhub.errors import ConfigurationError
from minerhub.plugins.base import Miner
from minerhub.plugins.xmr_stak import XmrStak

_REGISTRY: Dict[str, Type[Miner]] = {}


def register_miner(type_name: str, miner_cls: Type[Miner]) -> None:
    _REGISTRY[type_name] = miner_cls


def get_miner_class(type_name: str) -> Type[Miner]:
    try:
        return _REGISTRY[type_name]
    except KeyError:
        known = ", ".join(sorted(_REGISTRY)) or "none"
        raise ConfigurationError(
            f"Unknown miner type {type_name!r} (known: {known})"
        ) from None


def create_miner(type_name: str, config: MinerConfig) -> Miner:
    miner_cls = get_miner_class(type_name)
    return miner_cls(config)  # type: ignore[call-arg]


register_miner("xmr-stak", XmrStak)
