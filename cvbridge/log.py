"""
Bridge logging - one stdout line per event, tagged by component.

Every cvbridge module asks for its logger by short name (``ingest``,
``midi``, ``bridge``...). The names are remembered so the command line can
re-level all of them at once: ``--debug`` and ``--log-level`` arrive after the
modules have already been imported and their loggers created.

The audio callback never logs; its status reports are logged by the main
thread (see Bridge.report_audio_status).
"""
import logging
import sys
import os
import threading
from typing import Optional


LEVEL_ENV_VAR = "CVBRIDGE_LOG_LEVEL"

_logger_init_lock = threading.Lock()
_logger_names = set()


class BridgeFormatter(logging.Formatter):
    """One-line format: level initial, wall-clock time, component column.

    [W 21:04:10.532 midi     ] MIDI send failed for CC 7=127: ...
    [I 21:04:11.002 ingest   ] /stepped8 -> Channel 8: Audio 1.0000, MIDI 127

    Tracebacks, when present, follow on the next lines.
    """

    def format(self, record):
        level_char = record.levelname[0]

        # 9-char column keeps messages aligned; address_map → "address_m"
        component = record.name.split('.')[-1][:9].ljust(9)

        timestamp = self.formatTime(record, "%H:%M:%S")
        prefix = f"[{level_char} {timestamp}.{record.msecs:03.0f} {component}]"

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{prefix} {message}"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return the stdout logger for one bridge component.

    Args:
        name: Component name, e.g. "ingest"
        level: DEBUG/INFO/WARNING/ERROR; when omitted, CVBRIDGE_LOG_LEVEL
               decides, and INFO if that isn't set either

    Records still propagate, so pytest's caplog sees them.
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR, "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    with _logger_init_lock:
        _logger_names.add(name)
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(BridgeFormatter())
            logger.addHandler(handler)

    return logger


def set_level(level: str) -> None:
    """Re-level every component logger handed out so far.

    Unknown level names fall back to INFO.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    with _logger_init_lock:
        names = list(_logger_names)
    for name in names:
        logging.getLogger(name).setLevel(numeric)
