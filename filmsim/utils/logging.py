"""
Logging utilities for FilmSim
Provides console setup and per-stage timing
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Dict, Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StageTimer:
    """Accumulates wall-clock time per named stage"""

    def __init__(self, name: str, log: Optional[logging.Logger] = None):
        """
        Args:
            name: Label used in the summary line
            log: Logger for the summary; this module's logger by default
        """
        self.name = name
        self.log = log or logger
        self.timings: Dict[str, float] = {}

    @contextmanager
    def stage(self, stage_name: str):
        """Time the enclosed block under stage_name"""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.timings[stage_name] = self.timings.get(stage_name, 0.0) + elapsed

    @property
    def total(self) -> float:
        return sum(self.timings.values())

    def log_summary(self, level: int = logging.DEBUG):
        """Log one line with every stage in milliseconds"""
        parts = ", ".join(f"{name}={seconds * 1000:.1f}ms"
                          for name, seconds in self.timings.items())
        self.log.log(level, f"{self.name}: {parts or 'no stages'} "
                            f"(total {self.total * 1000:.1f}ms)")


def setup_console_logging(level: str = "INFO", color: bool = True):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level
        color: Whether to use colored output
    """
    # Log to stderr so command output on stdout stays machine readable
    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        # Use colored formatter if supported
        try:
            import colorlog
            formatter = colorlog.ColoredFormatter(
                '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
        except ImportError:
            # colorlog is an optional extra
            formatter = logging.Formatter(LOG_FORMAT)
    else:
        formatter = logging.Formatter(LOG_FORMAT)

    console_handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, '_filmsim_console', False):
            root_logger.removeHandler(handler)
    console_handler._filmsim_console = True
    root_logger.addHandler(console_handler)
