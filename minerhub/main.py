from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict

from minerhub.config import AppConfig, MinerConfig
from minerhub.logging_utils import configure_logging
from minerhub.plugins.base import Miner
from minerhub.plugins.registry import create_miner
from minerhub.services.stats_polling import StatsPoller
from minerhub.settings import CONF_DIR, load_settings, serialize_settings

logger = logging.getLogger("minerhub")


def load_app_config(conf_dir: Path = CONF_DIR) -> AppConfig:
    settings = load_settings(conf_dir)
    return AppConfig.from_settings(serialize_settings(settings))


def miner_key(type_name: str, index: int) -> str:
    return f"{type_name}:{index}"


def build_miners(config: AppConfig) -> Dict[str, Miner]:
    miners: Dict[str, Miner] = {}
    for index, entry in enumerate(config.miners):
        key = miner_key(entry.type, index)
        miners[key] = create_miner(
            entry.type, MinerConfig(path=entry.path, endpoint=entry.endpoint)
        )
        logger.info("Configured %s for %s", key, entry.path)
    return miners


def create_poller(config: AppConfig) -> StatsPoller:
    miners = build_miners(config)
    intervals = {
        miner_key(entry.type, index): entry.refresh_interval
        for index, entry in enumerate(config.miners)
        if entry.refresh_interval
    }
    return StatsPoller(miners, interval_s=config.refresh_interval, intervals=intervals)


def run(conf_dir: Path = CONF_DIR) -> None:
    config = load_app_config(conf_dir)
    configure_logging(config.log_level)
    logger.info("Starting minerhub with %s miner(s)", len(config.miners))

    poller = create_poller(config)
    poller.start()
    try:
        while poller.running:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping minerhub")
    finally:
        poller.shutdown()


if __name__ == "__main__":
    run()
