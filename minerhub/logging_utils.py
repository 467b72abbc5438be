from __future__ import annotations

import logging

TRACE_LEVEL = 5
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def ensure_trace_level() -> None:
    if logging.getLevelName(TRACE_LEVEL) != "TRACE":
        logging.addLevelName(TRACE_LEVEL, "TRACE")
        setattr(logging, "TRACE", TRACE_LEVEL)

    if not hasattr(logging.Logger, "trace"):
        def trace(self: logging.Logger, msg: str, *args: object, **kwargs: object) -> None:
            if self.isEnabledFor(TRACE_LEVEL):
                self._log(TRACE_LEVEL, msg, args, **kwargs)

        setattr(logging.Logger, "trace", trace)


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the root logger at ``level``.

    ``level`` may be any standard level name or ``TRACE``.
    """
    ensure_trace_level()
    level_const = logging.getLevelName(level.upper())
    if not isinstance(level_const, int):
        level_const = logging.INFO

    root = logging.getLogger()
    root.setLevel(level_const)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
