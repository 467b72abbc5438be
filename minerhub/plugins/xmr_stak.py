from __future__ import annotations

import logging
import os
import re
from threading import Lock
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from minerhub.config import MinerConfig
from minerhub.errors import ConfigurationError, DecodeError, TransportError
from minerhub.logging_utils import TRACE_LEVEL
from minerhub.plugins.base import Miner, MinerBase, ProcessingConfig, Stats
from minerhub.utils.formatting import humanize_hashrate, humanize_time

logger = logging.getLogger("minerhub.plugins.xmr_stak")

DEFAULT_ENDPOINT = "http://127.0.0.1:16000/api.json"
GENERAL_CONFIG_FILE = "config.txt"
POOL_CONFIG_FILE = "pools.txt"
CPU_CONFIG_FILE = "cpu.txt"
POOL_PASSWORD = "BLOC GUI Miner"

_COMMENT_START = re.compile(r"[/*]")
_STANZA = re.compile(r"\{*\}")


class ConnectionErrorEntry(BaseModel):
    last_seen: int = 0
    text: str = ""


class ResultErrorEntry(BaseModel):
    count: int = 0
    last_seen: int = 0
    text: str = ""


class HashrateReport(BaseModel):
    threads: List[List[Any]] = Field(default_factory=list)
    total: List[Optional[float]] = Field(default_factory=list)
    highest: Optional[float] = None


class ResultsReport(BaseModel):
    diff_current: int = 0
    shares_good: int = 0
    shares_total: int = 0
    avg_time: float = 0.0
    hashes_total: int = 0
    best: List[int] = Field(default_factory=list)
    error_log: List[ResultErrorEntry] = Field(default_factory=list)


class ConnectionReport(BaseModel):
    pool: str = ""
    uptime: int = 0
    ping: int = 0
    error_log: List[ConnectionErrorEntry] = Field(default_factory=list)


class XmrStakResponse(BaseModel):
    """Document served by the xmr-stak built-in web server at ``/api.json``."""

    version: str = ""
    hashrate: HashrateReport = Field(default_factory=HashrateReport)
    results: ResultsReport = Field(default_factory=ResultsReport)
    connection: ConnectionReport = Field(default_factory=ConnectionReport)


GENERAL_CONFIG = """
/*
 * Network timeouts.
 * call_timeout - How long should we wait for a response from the server before we assume it is dead and drop the connection.
 * retry_time   - How long should we wait before another connection attempt.
 *                Both values are in seconds.
 * giveup_limit - Limit how many times we try to reconnect to the pool. Zero means no limit.
 */
"call_timeout" : 10,
"retry_time" : 30,
"giveup_limit" : 0,

/*
 * Output control.
 * verbose_level - 0 - Don't print anything.
 *                 1 - Print intro, connection event, disconnect event
 *                 2 - All of level 1, and new job (block) event if the difficulty is different from the last job
 *                 3 - All of level 1, and new job (block) event in all cases, result submission event.
 *                 4 - All of level 3, and automatic hashrate report printing
 *
 * print_motd    - Display messages from your pool operator in the hashrate result.
 */
"verbose_level" : 3,
"print_motd" : true,

/*
 * Automatic hashrate report
 * h_print_time - How often, in seconds, should we print a hashrate report if verbose_level is set to 4.
 */
"h_print_time" : 60,

/*
 * Manual hardware AES override
 * true forces hardware AES, false disables it, null lets the miner decide.
 */
"aes_override" : null,

/*
 * Large page support
 * always  - Don't even try to use large pages. Always use slow memory.
 * warn    - We will try to use large pages, but fall back to slow memory if that fails.
 * no_mlck - Linux only: use large pages without locking memory.
 * never   - If we fail to allocate large pages we will print an error and exit.
 */
"use_slow_memory" : "warn",

/*
 * TLS Settings
 * tls_secure_algo - Use only secure algorithms. This will make us quit with an error if we can't negotiate a secure algo.
 */
"tls_secure_algo" : true,

/*
 * Daemon mode
 * Run without keyboard reports when the process is in the background.
 */
"daemon_mode" : true,

/*
 * Buffered output control.
 * Set this option to true to flush stdout after each line.
 */
"flush_stdout" : false,

/*
 * Output file
 * output_file - This option will log all output to a file.
 */
"output_file" : "",

/*
 * Built-in web server
 * httpd_port - Port we should listen on. Default, 0, will switch off the server.
 */
"httpd_port" : 16000,

/*
 * HTTP Authentication
 * http_login - Login. Empty login disables authentication.
 * http_pass  - Password.
 */
"http_login" : "",
"http_pass" : "",

/*
 * prefer_ipv4 - IPv6 preference. If the host is available on both IPv4 and IPv6 net, which one should be chosen?
 */
"prefer_ipv4" : true,
"""

CPU_CONFIG_HEADER = """
/*
 * Thread configuration for each thread. Make sure it matches the number above.
 * low_power_mode - This can either be a boolean (true or false), or a number between 1 to 5.
 * no_prefetch    - Some systems can gain up to extra 5% here.
 * affine_to_cpu  - This can be either false (no affinity), or the CPU core number.
 *
 * If you do not wish to mine with your CPU(s) then use:
 * "cpu_threads_conf" :
 * null,
 */
"""

CPU_THREAD_STANZA = (
    '{{ "low_power_mode" : false, "no_prefetch" : true, '
    '"asm" : "auto", "affine_to_cpu" : {index} }},'
)


def render_general_config() -> str:
    return GENERAL_CONFIG


def render_pool_config(pool_endpoint: str, wallet_address: str, coin_algorithm: str) -> str:
    """Render ``pools.txt``.

    Values are embedded verbatim; a double quote in any of them produces a
    file xmr-stak cannot parse.
    """
    entry = (
        f'{{"pool_address" : "{pool_endpoint}", "wallet_address" : "{wallet_address}", '
        f'"rig_id" : "", "pool_password" : "{POOL_PASSWORD}", "use_nicehash" : false, '
        f'"use_tls" : false, "tls_fingerprint" : "", "pool_weight" : 1 }},'
    )
    return (
        '\n"pool_list" :\n[\n'
        f"\t{entry}\n"
        "],\n"
        f'"currency" : "{coin_algorithm}",\n'
    )


def render_cpu_config(threads: int) -> str:
    """Render ``cpu.txt`` with one stanza per thread, pinned to cores 0..threads-1."""
    stanzas = "".join(
        f"\t{CPU_THREAD_STANZA.format(index=index)}\n" for index in range(threads)
    )
    return CPU_CONFIG_HEADER + '\n"cpu_threads_conf" :\n[\n' + stanzas + "],\n"


def count_cpu_threads(text: str) -> int:
    """Approximate the number of thread stanzas in a ``cpu.txt`` document.

    xmr-stak's config dialect is JSON-like but has comments and trailing
    commas, so instead of parsing it every line is cut at the first ``/`` or
    ``*`` and the closing braces left over are counted. A ``/`` inside a
    string value also cuts the line.
    """
    kept = "".join(_COMMENT_START.split(line, maxsplit=1)[0] for line in text.split("\n"))
    return len(_STANZA.findall(kept))


class XmrStak(Miner):
    """Adapter for the xmr-stak miner (https://github.com/fireice-uk/xmr-stak).

    Not meant to be polled from more than one thread at a time; the lock only
    keeps the cached hashrate and telemetry consistent with each other.
    """

    def __init__(self, config: MinerConfig, client: httpx.Client | None = None) -> None:
        endpoint = config.endpoint or DEFAULT_ENDPOINT
        try:
            scheme = httpx.URL(endpoint).scheme
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid xmr-stak endpoint {endpoint!r}: {exc}") from exc
        if scheme not in {"http", "https"}:
            raise ConfigurationError(f"xmr-stak endpoint must be http(s), got {endpoint!r}")

        self.name = "xmr-stak"
        self.endpoint = endpoint
        self.base = MinerBase.from_path(config.path)
        self._client = client
        self._lock = Lock()
        self._last_hashrate = 0.0
        self._result_stats_cache: XmrStakResponse | None = None

    def write_config(
        self,
        pool_endpoint: str,
        wallet_address: str,
        coin_algorithm: str,
        processing_config: ProcessingConfig,
    ) -> None:
        """Write config.txt, pools.txt and, if it is already there, cpu.txt.

        A missing cpu.txt tells xmr-stak to autodetect on first run, while an
        existing one with an empty thread list disables CPU mining, so the file
        is never created here. Writes are not atomic as a group: a failure
        part-way leaves the earlier files updated.
        """
        directory = self.base.executable_path
        (directory / GENERAL_CONFIG_FILE).write_text(render_general_config(), encoding="utf-8")
        (directory / POOL_CONFIG_FILE).write_text(
            render_pool_config(pool_endpoint, wallet_address, coin_algorithm),
            encoding="utf-8",
        )

        cpu_file = directory / CPU_CONFIG_FILE
        if cpu_file.exists():
            cpu_file.write_text(render_cpu_config(processing_config.threads), encoding="utf-8")
            logger.info(
                "Wrote xmr-stak config to %s with %s CPU threads",
                directory,
                processing_config.threads,
            )
        else:
            logger.info("Wrote xmr-stak config to %s; cpu.txt left for autodetection", directory)

        with self._lock:
            self._last_hashrate = 0.0

    def get_processing_config(self) -> ProcessingConfig:
        # xmr-stak merges CPU and GPU threads in its telemetry, so the thread
        # count comes from cpu.txt instead.
        return ProcessingConfig(
            max_usage=0,
            threads=self._get_cpu_thread_count(),
            max_threads=os.cpu_count() or 1,
            type=self.name,
        )

    def get_last_hashrate(self) -> float:
        with self._lock:
            return self._last_hashrate

    def get_stats(self) -> Stats:
        report = self._fetch_report()

        hashrate = 0.0
        if report.hashrate.total:
            hashrate = report.hashrate.total[0] or 0.0

        errors = [entry.text for entry in report.connection.error_log]
        errors.extend(f"({entry.count}) {entry.text}" for entry in report.results.error_log)

        stats = Stats(
            hashrate=hashrate,
            hashrate_human=humanize_hashrate(hashrate),
            current_difficulty=report.results.diff_current,
            uptime=report.connection.uptime,
            uptime_human=humanize_time(report.connection.uptime),
            shares_good=report.results.shares_good,
            shares_bad=report.results.shares_total - report.results.shares_good,
            errors=errors,
        )
        with self._lock:
            self._last_hashrate = hashrate
            self._result_stats_cache = report
        logger.debug("xmr-stak at %s reports %s", self.endpoint, stats.hashrate_human)
        return stats

    def _fetch_report(self) -> XmrStakResponse:
        try:
            if self._client is not None:
                response = self._client.get(self.endpoint)
            else:
                with httpx.Client() as client:
                    response = client.get(self.endpoint)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"xmr-stak telemetry request to {self.endpoint} failed: {exc}") from exc

        logger.log(TRACE_LEVEL, "xmr-stak telemetry payload: %s", response.text)
        try:
            return XmrStakResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise DecodeError(f"Unexpected xmr-stak telemetry from {self.endpoint}: {exc}") from exc

    def _get_cpu_thread_count(self) -> int:
        cpu_file = self.base.executable_path / CPU_CONFIG_FILE
        try:
            text = cpu_file.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return 0
        return count_cpu_threads(text)
