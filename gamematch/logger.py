"""
Logging and run metrics for gamematch.

Every message can carry keyword context, appended to the line as JSON.
The console shows INFO and up by default; the daily file under logs/
keeps everything. Alongside the log, each run counts IGDB calls and match
outcomes per pass (covers, details, ratings) and prints a summary at the
end of a command.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    return handler


def _empty_metrics() -> dict:
    return {
        "api_calls": 0,
        "matches_attempted": 0,
        "matches_successful": 0,
        "matches_failed": 0,
        "errors_by_type": {},
        "passes": {},
    }


class StructuredLogger:
    def __init__(
        self,
        name: str = "gamematch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        self.logger = logging.getLogger(name)
        self.logger.handlers.clear()
        self.logger.propagate = False
        # the file handler wants DEBUG records even when the console does not
        self.logger.setLevel(logging.DEBUG if enable_file else _level(level))
        self.metrics = _empty_metrics()

        if enable_console:
            self.logger.addHandler(_handler(logging.StreamHandler(sys.stdout), _level(level), CONSOLE_FORMAT))
        if enable_file:
            log_dir = Path(log_dir or "logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            path = log_dir / f"gamematch_{datetime.now():%Y%m%d}.log"
            self.logger.addHandler(_handler(logging.FileHandler(path, encoding="utf-8"), logging.DEBUG, FILE_FORMAT))

    def set_console_level(self, level: str):
        """Change the console threshold; the log file keeps everything."""
        numeric = _level(level)
        has_file = False
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler):
                has_file = True
            else:
                handler.setLevel(numeric)
        if not has_file:
            self.logger.setLevel(numeric)

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def critical(self, message: str, **context):
        self._log(logging.CRITICAL, message, context)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message += f" | Context: {json.dumps(context, ensure_ascii=False, default=str)}"
        # report the caller's line, not this wrapper's
        self.logger.log(level, message, stacklevel=3)

    def _pass(self, pass_name: str) -> dict:
        return self.metrics["passes"].setdefault(pass_name, {"attempts": 0, "successes": 0})

    def record_api_call(self):
        self.metrics["api_calls"] += 1

    def record_match_attempt(self, pass_name: str):
        self.metrics["matches_attempted"] += 1
        self._pass(pass_name)["attempts"] += 1

    def record_match_success(self, pass_name: str):
        self.metrics["matches_successful"] += 1
        self._pass(pass_name)["successes"] += 1

    def record_match_failure(self, pass_name: str, error_type: str):
        """Count an unmatched title or a failed call under its reason."""
        self.metrics["matches_failed"] += 1
        self.record_error(error_type)

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Snapshot of the counters with a success_rate per pass."""
        passes = {}
        for pass_name, stats in self.metrics["passes"].items():
            passes[pass_name] = dict(stats)
            if stats["attempts"]:
                passes[pass_name]["success_rate"] = round(stats["successes"] / stats["attempts"], 3)
        return {**self.metrics, "errors_by_type": dict(self.metrics["errors_by_type"]), "passes": passes}

    def log_metrics_summary(self):
        metrics = self.get_metrics()
        attempts = metrics["matches_attempted"]
        successes = metrics["matches_successful"]
        overall = round(successes / attempts * 100, 1) if attempts else 0.0

        lines = [
            "=== Match Run Metrics ===",
            f"API Calls: {metrics['api_calls']}",
            f"Matches: {successes}/{attempts} ({overall}% success)",
        ]
        if metrics["passes"]:
            lines.append("Per pass:")
            for pass_name, stats in metrics["passes"].items():
                rate = stats.get("success_rate", 0) * 100
                lines.append(f"  {pass_name}: {stats['successes']}/{stats['attempts']} ({rate:.1f}%)")
        if metrics["errors_by_type"]:
            lines.append("Failure reasons:")
            lines.extend(f"  {reason}: {count}" for reason, count in metrics["errors_by_type"].items())
        for line in lines:
            self.info(line)


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "gamematch", level: str = "INFO", **kwargs) -> StructuredLogger:
    """Process-wide logger; arguments only apply on the first call."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)
    return _global_logger


def reset_logger():
    global _global_logger
    _global_logger = None
