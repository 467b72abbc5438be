from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Any, Dict

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from minerhub.errors import MinerError
from minerhub.plugins.base import Miner

logger = logging.getLogger("minerhub.services.stats_polling")


class StatsPoller:
    """Poll each miner's telemetry on a schedule and keep the latest result.

    Every miner gets its own job capped at one running instance, so a single
    adapter is never polled from two threads at once. A failed poll keeps the
    last good stats and records the error next to them.
    """

    def __init__(
        self,
        miners: Dict[str, Miner],
        interval_s: int = 30,
        intervals: Dict[str, int] | None = None,
    ) -> None:
        self._miners = miners
        self._interval_s = interval_s
        self._intervals = intervals or {}
        self._lock = Lock()
        self._latest: dict[str, dict[str, Any]] = {}
        self._scheduler: BackgroundScheduler | None = None

    def start(self) -> None:
        if not self._miners:
            logger.info("No miners configured for polling")
            return

        executor = ThreadPoolExecutor(max_workers=max(1, len(self._miners)))
        self._scheduler = BackgroundScheduler(executors={"default": executor})

        for key in self._miners:
            interval = int(self._intervals.get(key) or self._interval_s)
            self._scheduler.add_job(
                self.poll_once,
                trigger=IntervalTrigger(seconds=interval),
                id=f"stats-{key}",
                name=f"Poll {key}",
                args=[key],
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Scheduled stats polling for %s (%s seconds)", key, interval)

        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def poll_once(self, key: str) -> Dict[str, Any]:
        miner = self._miners[key]
        timestamp = datetime.utcnow().isoformat()
        try:
            stats = miner.get_stats()
        except MinerError as exc:
            logger.warning("Stats unavailable for %s (%s): %s", key, miner.get_name(), exc)
            with self._lock:
                entry = self._latest.setdefault(key, {"stats": None})
                entry.update({"timestamp": timestamp, "error": str(exc)})
                return entry.copy()

        with self._lock:
            self._latest[key] = {
                "timestamp": timestamp,
                "stats": stats.model_dump(),
                "error": None,
            }
            return self._latest[key].copy()

    def get_latest(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {key: entry.copy() for key, entry in self._latest.items()}
