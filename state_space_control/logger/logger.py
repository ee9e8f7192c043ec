# state_space_control/logger/logger.py
from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import asdict, is_dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


class RepeatFilter(logging.Filter):
    """
    Collapse records that repeat the same format string.

    A control loop warning on every tick formats a new message each time (the
    time stamp moves) while the format string stays put, so records are keyed
    on (logger name, level, format string). After the first record for a key,
    repeats are dropped for cooldown_s seconds, or for the filter's lifetime
    when cooldown_s <= 0. The next record let through for that key carries the
    number dropped in its ``suppressed`` attribute (empty string when none).

    Use one instance per handler: the count is written onto the record.
    """
    def __init__(self, cooldown_s: float = 0.0) -> None:
        super().__init__()
        self.cooldown_s = float(cooldown_s)
        self._lock = threading.Lock()
        self._last_ts: Dict[Tuple[str, int, str], float] = {}
        self._dropped: Dict[Tuple[str, int, str], int] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        key = (record.name, record.levelno, str(record.msg))
        now = time.monotonic()

        with self._lock:
            last = self._last_ts.get(key)
            if last is not None and (self.cooldown_s <= 0.0 or now - last < self.cooldown_s):
                self._dropped[key] = self._dropped.get(key, 0) + 1
                return False

            self._last_ts[key] = now
            dropped = self._dropped.pop(key, 0)

        record.suppressed = f" [{dropped} repeats suppressed]" if dropped else ""
        return True


class JsonlLogger:
    """
    JSONL recorder for control runs: one JSON object per line.
    Line buffered so a crashed run still leaves every completed tick on disk.
    """
    def __init__(self, path: str, mkdirs: bool = True) -> None:
        self.path = str(path)
        if mkdirs:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._f = open(self.path, "a", buffering=1, encoding="utf-8")

    def write(self, event: str, **data: Any) -> None:
        row = {
            "ts_ns": time.time_ns(),
            "event": event,
            **self._normalize(data),
        }
        line = json.dumps(row, ensure_ascii=False, default=str)
        with self._lock:
            self._f.write(line + "\n")

    def close(self) -> None:
        with self._lock:
            if not self._f.closed:
                self._f.close()

    def __enter__(self) -> "JsonlLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _normalize(self, obj: Any) -> Any:
        """
        Make common objects JSON-friendly:
        - numpy arrays -> nested lists, numpy scalars -> python scalars
        - dataclasses -> dict
        - Path -> str
        - exceptions -> repr
        """
        if isinstance(obj, dict):
            return {k: self._normalize(v) for k, v in obj.items()}

        if isinstance(obj, (list, tuple)):
            return [self._normalize(v) for v in obj]

        if isinstance(obj, np.ndarray):
            return obj.tolist()

        if isinstance(obj, np.generic):
            return obj.item()

        if is_dataclass(obj) and not isinstance(obj, type):
            return self._normalize(asdict(obj))

        if isinstance(obj, Path):
            return str(obj)

        if isinstance(obj, BaseException):
            return repr(obj)

        return obj


class LogBundle:
    """
    Logging for one closed-loop run.

    Attaches a rotating text log <log_dir>/<name>.log (and optionally the
    console) to the package logger, so every module logging through
    logging.getLogger(__name__) lands in it. With record=True a JSONL
    recorder <log_dir>/<name>.jsonl is opened for per-tick rows; otherwise
    ``events`` is None.

    close() detaches the handlers and restores the logger's level and
    propagation, so bundles can be opened one after another in a process.
    """
    def __init__(
        self,
        name: str,
        log_dir: str = "logs",
        level: int = logging.INFO,
        console: bool = False,
        record: bool = False,
        max_bytes: int = 5_000_000,
        backup_count: int = 5,
        repeat_cooldown_s: float = 0.0,
        logger_name: str = "state_space_control",
    ) -> None:
        os.makedirs(log_dir, exist_ok=True)
        self.log_path = os.path.join(log_dir, f"{name}.log")

        self.log = logging.getLogger(logger_name)
        self._saved = (self.log.level, self.log.propagate)
        self.log.setLevel(level)
        self.log.propagate = False

        fmt = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(suppressed)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._handlers: List[logging.Handler] = [
            RotatingFileHandler(self.log_path, maxBytes=int(max_bytes), backupCount=int(backup_count))
        ]
        if console:
            self._handlers.append(logging.StreamHandler())
        for handler in self._handlers:
            handler.setLevel(level)
            handler.setFormatter(fmt)
            handler.addFilter(RepeatFilter(cooldown_s=repeat_cooldown_s))
            self.log.addHandler(handler)

        self.events: Optional[JsonlLogger] = None
        if record:
            self.events = JsonlLogger(os.path.join(log_dir, f"{name}.jsonl"))

        self.log.debug("Logging run '%s' to %s", name, self.log_path)

    def close(self) -> None:
        if self.events is not None:
            self.events.close()
        for handler in self._handlers:
            self.log.removeHandler(handler)
            handler.close()
        self._handlers = []
        self.log.setLevel(self._saved[0])
        self.log.propagate = self._saved[1]

    def __enter__(self) -> "LogBundle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
